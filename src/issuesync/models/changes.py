"""Field-level change detection and three-way merge for issues."""

from __future__ import annotations

from dataclasses import dataclass, fields

from .issue import Issue

# Comparable fields, in display order
FIELD_NAMES = (
    "title",
    "labels",
    "assignees",
    "milestone",
    "issue_type",
    "projects",
    "state",
    "parent",
    "blocked_by",
    "blocks",
    "body",
)


@dataclass(frozen=True)
class FieldSet:
    """One flag per comparable issue field."""

    title: bool = False
    labels: bool = False
    assignees: bool = False
    milestone: bool = False
    issue_type: bool = False
    projects: bool = False
    state: bool = False
    parent: bool = False
    blocked_by: bool = False
    blocks: bool = False
    body: bool = False

    @classmethod
    def of(cls, *names: str) -> FieldSet:
        """Build a FieldSet with the named flags set."""
        unknown = set(names) - set(FIELD_NAMES)
        if unknown:
            raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
        return cls(**{name: True for name in names})

    def fields(self) -> list[str]:
        """Names of the flagged fields, in display order."""
        return [f.name for f in fields(self) if getattr(self, f.name)]

    def is_empty(self) -> bool:
        return not self.fields()

    def overlaps(self, other: FieldSet) -> bool:
        return not (self & other).is_empty()

    def __and__(self, other: FieldSet) -> FieldSet:
        return FieldSet(**{name: getattr(self, name) and getattr(other, name) for name in FIELD_NAMES})

    def __or__(self, other: FieldSet) -> FieldSet:
        return FieldSet(**{name: getattr(self, name) or getattr(other, name) for name in FIELD_NAMES})


def compute_changes(base: Issue, other: Issue) -> FieldSet:
    """Flag every field whose normalized value differs between base and other."""
    a = base.normalized()
    b = other.normalized()
    return FieldSet(**{name: getattr(a, name) != getattr(b, name) for name in FIELD_NAMES})


@dataclass
class MergeResult:
    """Outcome of a three-way merge."""

    merged: Issue | None
    ok: bool
    conflicting_fields: FieldSet
    local_changes: FieldSet
    remote_changes: FieldSet


def three_way_merge(base: Issue, local: Issue, remote: Issue) -> MergeResult:
    """Merge independent local and remote edits made since a common base.

    Fields changed on both sides are never resolved: the merge fails and
    reports exactly those fields. Otherwise the result is the remote issue
    with every locally changed field copied over from the local issue.
    """
    local_changes = compute_changes(base, local)
    remote_changes = compute_changes(base, remote)
    conflicts = local_changes & remote_changes

    if not conflicts.is_empty():
        return MergeResult(
            merged=None,
            ok=False,
            conflicting_fields=conflicts,
            local_changes=local_changes,
            remote_changes=remote_changes,
        )

    local_n = local.normalized()
    updates = {name: getattr(local_n, name) for name in local_changes.fields()}
    if local_changes.state:
        # The reason travels with the state it explains
        updates["state_reason"] = local_n.state_reason
    merged = remote.normalized().model_copy(update=updates)

    return MergeResult(
        merged=merged,
        ok=True,
        conflicting_fields=conflicts,
        local_changes=local_changes,
        remote_changes=remote_changes,
    )
