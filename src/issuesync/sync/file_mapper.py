"""Utilities for mapping between issue ids and local filenames.

Mirror files use the naming convention:
    {id}-{slug}.md

Examples:
    123-fix-login-bug.md
    T3fa9c21b-add-dark-mode.md

Snapshots are keyed by id only:
    123.md

Pending comments sit next to the issue they belong to:
    123.comment.md
"""

import re
from dataclasses import dataclass

from ..utils.slug import slug_or_default

MARKDOWN_SUFFIX = ".md"
COMMENT_SUFFIX = ".comment.md"

# Ids are the remote number or a T-prefixed temporary token, never containing '-'
ISSUE_FILENAME_PATTERN = re.compile(r"^(?P<id>[A-Za-z0-9]+)(?:-(?P<slug>.*))?\.md$")


@dataclass
class ParsedIssueFilename:
    """Parsed components of a mirror filename."""

    issue_id: str
    slug: str


def generate_issue_filename(issue_id: str, title: str) -> str:
    """Generate a mirror filename from an id and title.

    Examples:
        >>> generate_issue_filename("123", "Fix Login Bug!")
        '123-fix-login-bug.md'
        >>> generate_issue_filename("T1a2b3c4d", "")
        'T1a2b3c4d-issue.md'
    """
    return f"{issue_id}-{slug_or_default(title)}{MARKDOWN_SUFFIX}"


def generate_original_filename(issue_id: str) -> str:
    """Generate the snapshot filename for an id.

    Examples:
        >>> generate_original_filename("123")
        '123.md'
    """
    return f"{issue_id}{MARKDOWN_SUFFIX}"


def generate_comment_filename(issue_id: str) -> str:
    """Generate the pending comment filename for an id.

    Examples:
        >>> generate_comment_filename("123")
        '123.comment.md'
    """
    return f"{issue_id}{COMMENT_SUFFIX}"


def parse_issue_filename(filename: str) -> ParsedIssueFilename | None:
    """Parse a mirror filename into its id and slug.

    The id is everything before the first '-'; a filename without a slug is
    accepted too.

    Examples:
        >>> parse_issue_filename("123-fix-bug.md").issue_id
        '123'
        >>> parse_issue_filename("123.md").slug
        ''
        >>> parse_issue_filename("notes.txt") is None
        True
    """
    if is_comment_filename(filename):
        return None
    match = ISSUE_FILENAME_PATTERN.match(filename)
    if not match:
        return None
    return ParsedIssueFilename(issue_id=match.group("id"), slug=match.group("slug") or "")


def is_issue_filename(filename: str) -> bool:
    """Check if a filename is a mirror file.

    Examples:
        >>> is_issue_filename("123-fix-bug.md")
        True
        >>> is_issue_filename("123.comment.md")
        False
    """
    return parse_issue_filename(filename) is not None


def is_comment_filename(filename: str) -> bool:
    """Check if a filename is a pending comment file."""
    return filename.endswith(COMMENT_SUFFIX) and len(filename) > len(COMMENT_SUFFIX)


def parse_comment_filename(filename: str) -> str | None:
    """Return the id a pending comment file belongs to.

    Examples:
        >>> parse_comment_filename("42.comment.md")
        '42'
        >>> parse_comment_filename("42-title.md") is None
        True
    """
    if not is_comment_filename(filename):
        return None
    return filename[: -len(COMMENT_SUFFIX)]
