"""Reading and writing the markdown + front matter representation of an issue."""

from __future__ import annotations

from pathlib import Path

import frontmatter
import yaml
from pydantic import ValidationError

from ..models import Issue, normalize_body
from .errors import MalformedIssueError

_HANDLER = frontmatter.YAMLHandler()
_DELIMITER = "---"


def render_issue(issue: Issue) -> str:
    """Serialize an issue to its file content.

    Layout is the front matter block, a blank line, then the normalized body.
    """
    # sort_keys=False keeps the model's key order
    metadata = _HANDLER.export(issue.to_frontmatter(), sort_keys=False).rstrip("\n")
    return f"{_DELIMITER}\n{metadata}\n{_DELIMITER}\n\n{normalize_body(issue.body)}"


def parse_issue(text: str, issue_id: str, path: Path | None = None) -> Issue:
    """Parse file content into an issue with the given id.

    Raises:
        MalformedIssueError: If the front matter is missing, unterminated,
            not valid YAML, not a mapping, or holds invalid field values
    """
    text = text.lstrip("\ufeff").replace("\r\n", "\n")
    if not text.startswith(_DELIMITER + "\n"):
        raise MalformedIssueError("missing front matter", path)

    try:
        fm, content = _HANDLER.split(text)
    except ValueError:
        raise MalformedIssueError("unterminated front matter", path) from None

    try:
        metadata = _HANDLER.load(fm)
    except yaml.YAMLError as e:
        raise MalformedIssueError(f"invalid front matter: {e}", path) from e

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise MalformedIssueError("front matter is not a mapping", path)

    try:
        return Issue.from_frontmatter(issue_id, metadata, content)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise MalformedIssueError(f"invalid value for '{field}': {first['msg']}", path) from e
