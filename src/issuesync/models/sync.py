"""Result models for reconciliation commands."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ChangeKind(str, Enum):
    """How a record was affected by a command, with its report marker."""

    ADDED = "A"  # New local file (pull) or newly created remote issue (push)
    UPDATED = "U"  # Existing record rewritten
    RESTORED = "R"  # File re-materialized from an orphaned snapshot
    MODIFIED = "M"  # Local edits not yet pushed (status)


@dataclass
class RecordChange:
    """One reported record with its per-field change summary."""

    kind: ChangeKind
    issue_id: str
    title: str
    path: Path | None = None
    details: list[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        """One-line report: marker, id and title."""
        return f"{self.kind.value} #{self.issue_id} {self.title}"


@dataclass
class Conflict:
    """A record skipped because both sides moved since the last sync."""

    issue_id: str
    path: Path | None = None
    conflicting_fields: list[str] = field(default_factory=list)
    local_fields: list[str] = field(default_factory=list)
    remote_fields: list[str] = field(default_factory=list)

    @property
    def mergeable(self) -> bool:
        """Whether the two sides changed disjoint sets of fields."""
        return not self.conflicting_fields


@dataclass
class PullResult:
    """Result of a pull operation."""

    added: list[RecordChange] = field(default_factory=list)
    updated: list[RecordChange] = field(default_factory=list)
    restored: list[RecordChange] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    unchanged: int = 0
    incremental: bool = False
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def changed_count(self) -> int:
        """Number of files written."""
        return len(self.added) + len(self.updated) + len(self.restored)

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0

    @property
    def has_errors(self) -> bool:
        """Whether any errors occurred."""
        return len(self.errors) > 0


@dataclass
class PushResult:
    """Result of a push operation."""

    created: list[RecordChange] = field(default_factory=list)
    updated: list[RecordChange] = field(default_factory=list)
    reference_updates: list[Path] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    id_mapping: dict[str, str] = field(default_factory=dict)  # temporary -> permanent
    created_labels: list[str] = field(default_factory=list)
    created_milestones: list[str] = field(default_factory=list)
    comments_posted: int = 0
    unchanged: int = 0
    planned: list[str] = field(default_factory=list)  # dry-run descriptions
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def success_count(self) -> int:
        """Number of issues created or updated remotely."""
        return len(self.created) + len(self.updated)

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0

    @property
    def has_errors(self) -> bool:
        """Whether any errors occurred."""
        return len(self.errors) > 0


@dataclass
class StatusReport:
    """Local changes not yet pushed."""

    modified: list[RecordChange] = field(default_factory=list)
    new: list[RecordChange] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.modified and not self.new
