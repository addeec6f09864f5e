"""Human-readable per-field change summaries."""

from __future__ import annotations

from ..models import Issue, compute_changes

NONE = "<none>"
EMPTY = "<empty>"


def _quoted(value: str | None) -> str:
    return f'"{value}"' if value else NONE


def _set_delta(old: list[str], new: list[str], prefix: str = "") -> str:
    added = sorted(set(new) - set(old))
    removed = sorted(set(old) - set(new))
    parts = [f"+{prefix}{item}" for item in added] + [f"-{prefix}{item}" for item in removed]
    return ", ".join(parts)


def _body_change(old: str, new: str) -> str:
    if not old:
        return f"{EMPTY} -> {len(new)} chars"
    if not new:
        return f"{len(old)} chars -> {EMPTY}"
    return f"changed ({len(old)} chars -> {len(new)} chars)"


def change_lines(old: Issue, new: Issue) -> list[str]:
    """Describe how new differs from old, one line per changed field.

    Examples:
        >>> change_lines(Issue(title="a"), Issue(title="b"))
        ['title: "a" -> "b"']
    """
    a = old.normalized()
    b = new.normalized()
    changed = compute_changes(a, b)
    lines: list[str] = []

    if changed.title:
        lines.append(f"title: {_quoted(a.title)} -> {_quoted(b.title)}")
    if changed.state:
        lines.append(f"state: {a.state} -> {b.state}")
    if a.state_reason != b.state_reason:
        lines.append(f"state_reason: {a.state_reason or NONE} -> {b.state_reason or NONE}")
    if changed.labels:
        lines.append(f"labels: {_set_delta(a.labels, b.labels)}")
    if changed.assignees:
        lines.append(f"assignees: {_set_delta(a.assignees, b.assignees)}")
    if changed.milestone:
        lines.append(f"milestone: {_quoted(a.milestone)} -> {_quoted(b.milestone)}")
    if changed.issue_type:
        lines.append(f"type: {a.issue_type or NONE} -> {b.issue_type or NONE}")
    if changed.projects:
        lines.append(f"projects: {_set_delta(a.projects, b.projects)}")
    if changed.parent:
        old_parent = f"#{a.parent}" if a.parent else NONE
        new_parent = f"#{b.parent}" if b.parent else NONE
        lines.append(f"parent: {old_parent} -> {new_parent}")
    if changed.blocked_by:
        lines.append(f"blocked_by: {_set_delta(a.blocked_by, b.blocked_by, '#')}")
    if changed.blocks:
        lines.append(f"blocks: {_set_delta(a.blocks, b.blocks, '#')}")
    if changed.body:
        lines.append(f"body: {_body_change(a.body, b.body)}")
    return lines
