"""Rewriting of temporary id references after promotion."""

from __future__ import annotations

import re
from collections.abc import Mapping

from ..models import Issue

# "#T3fa9c21b" in free text; the id must end at a word boundary
LOCAL_REFERENCE_PATTERN = re.compile(r"#(T[A-Za-z0-9]+)\b")


def rewrite_text(text: str, mapping: Mapping[str, str]) -> str:
    """Replace "#<temporary id>" tokens with "#<permanent id>".

    Examples:
        >>> rewrite_text("depends on #T7", {"T7": "88"})
        'depends on #88'
        >>> rewrite_text("see #T70", {"T7": "88"})
        'see #T70'
    """

    def _replace(match: re.Match[str]) -> str:
        new_id = mapping.get(match.group(1))
        return f"#{new_id}" if new_id else match.group(0)

    return LOCAL_REFERENCE_PATTERN.sub(_replace, text)


def _rewrite_refs(refs: list[str], mapping: Mapping[str, str]) -> list[str]:
    return [mapping.get(ref, ref) for ref in refs]


def apply_mapping(issue: Issue, mapping: Mapping[str, str]) -> Issue:
    """Return the issue with every reference to a mapped id rewritten.

    Covers title and body text as well as parent, blocked_by and blocks.
    The issue's own id is left alone. Returns the same object when nothing
    changed.
    """
    if not mapping:
        return issue

    updates = {
        "title": rewrite_text(issue.title, mapping),
        "body": rewrite_text(issue.body, mapping),
        "parent": mapping.get(issue.parent, issue.parent) if issue.parent else issue.parent,
        "blocked_by": _rewrite_refs(issue.blocked_by, mapping),
        "blocks": _rewrite_refs(issue.blocks, mapping),
    }
    if all(getattr(issue, name) == value for name, value in updates.items()):
        return issue
    return issue.model_copy(update=updates)
