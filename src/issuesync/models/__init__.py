"""Data models."""

from .catalog import (
    CatalogCache,
    IssueTypeCache,
    IssueTypeEntry,
    LabelCache,
    LabelEntry,
    MilestoneCache,
    MilestoneEntry,
    ProjectCache,
    ProjectEntry,
)
from .changes import FIELD_NAMES, FieldSet, MergeResult, compute_changes, three_way_merge
from .issue import (
    CLOSE_REASONS,
    LOCAL_ID_PREFIX,
    REASON_COMPLETED,
    REASON_NOT_PLANNED,
    STATE_CLOSED,
    STATE_OPEN,
    Issue,
    Location,
    equal_for_conflict_check,
    equal_ignoring_synced_at,
    is_local_id,
    normalize_body,
)
from .sync import ChangeKind, Conflict, PullResult, PushResult, RecordChange, StatusReport
from .sync_config import RepositoryConfig

__all__ = [
    "CLOSE_REASONS",
    "FIELD_NAMES",
    "LOCAL_ID_PREFIX",
    "REASON_COMPLETED",
    "REASON_NOT_PLANNED",
    "STATE_CLOSED",
    "STATE_OPEN",
    "CatalogCache",
    "ChangeKind",
    "Conflict",
    "FieldSet",
    "Issue",
    "IssueTypeCache",
    "IssueTypeEntry",
    "LabelCache",
    "LabelEntry",
    "Location",
    "MergeResult",
    "MilestoneCache",
    "MilestoneEntry",
    "ProjectCache",
    "ProjectEntry",
    "PullResult",
    "PushResult",
    "RecordChange",
    "RepositoryConfig",
    "StatusReport",
    "compute_changes",
    "equal_for_conflict_check",
    "equal_ignoring_synced_at",
    "is_local_id",
    "normalize_body",
    "three_way_merge",
]
