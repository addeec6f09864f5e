"""Issue domain model.

An issue is mirrored as a markdown file whose YAML front matter holds the
metadata and whose content is the issue body. The id is never stored in the
front matter; it is derived from the filename.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..utils.datetime import parse_datetime, to_iso

# State constants
STATE_OPEN = "open"
STATE_CLOSED = "closed"

# Close reasons accepted by the remote service
REASON_COMPLETED = "completed"
REASON_NOT_PLANNED = "not_planned"
CLOSE_REASONS = (REASON_COMPLETED, REASON_NOT_PLANNED)

# Temporary ids carry this prefix until they are promoted
LOCAL_ID_PREFIX = "T"

# Front matter keys owned by the model, in the order they are written
KNOWN_KEYS = (
    "title",
    "labels",
    "assignees",
    "milestone",
    "type",
    "projects",
    "state",
    "state_reason",
    "parent",
    "blocked_by",
    "blocks",
    "synced_at",
    "info",
)


def is_local_id(value: str | None) -> bool:
    """Check whether an id (or reference) is a temporary, not-yet-pushed id.

    Examples:
        >>> is_local_id("T3fa9c21b")
        True
        >>> is_local_id("42")
        False
    """
    return bool(value) and value.startswith(LOCAL_ID_PREFIX)


class Location(str, Enum):
    """Container a mirrored issue lives in."""

    OPEN = "open"
    CLOSED = "closed"

    @classmethod
    def for_state(cls, state: str) -> Location:
        """Map an issue state to its container."""
        if state.strip().lower() == STATE_CLOSED:
            return cls.CLOSED
        return cls.OPEN


def normalize_body(body: str) -> str:
    """Normalize body text: LF newlines, no leading blank lines, one trailing newline."""
    body = body.replace("\r\n", "\n").lstrip("\n")
    if not body.strip("\n"):
        return ""
    return body.rstrip("\n") + "\n"


def normalize_strings(values: list[str]) -> list[str]:
    """Strip, drop empty entries, deduplicate and sort."""
    return sorted({value.strip() for value in values if value and value.strip()})


def normalize_ref(value: Any) -> str | None:
    """Convert a reference as written by a user (42, "#42", "T1") to its id."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip().lstrip("#").strip()
    return text or None


def _ref_value(ref: str) -> int | str:
    """Render numeric references as integers so the YAML stays natural."""
    return int(ref) if ref.isdigit() else ref


class Issue(BaseModel):
    """A single issue, either mirrored from the remote tracker or authored locally."""

    id: str = ""

    title: str = ""
    labels: list[str] = Field(default_factory=list)
    assignees: list[str] = Field(default_factory=list)
    milestone: str = ""
    issue_type: str = ""
    projects: list[str] = Field(default_factory=list)
    state: str = STATE_OPEN
    state_reason: str | None = None

    # Relationships, each a permanent or temporary id
    parent: str | None = None
    blocked_by: list[str] = Field(default_factory=list)
    blocks: list[str] = Field(default_factory=list)

    synced_at: datetime | None = None
    body: str = ""

    # Provenance, only ever populated from the remote side
    author: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Front matter keys this model does not know about, preserved verbatim
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("title", "milestone", "issue_type", "author", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v)

    @field_validator("labels", "assignees", "projects", mode="before")
    @classmethod
    def _coerce_string_list(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(item) for item in v if item is not None]

    @field_validator("blocked_by", "blocks", mode="before")
    @classmethod
    def _coerce_ref_list(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if not isinstance(v, list | tuple | set):
            v = [v]
        refs = [normalize_ref(item) for item in v]
        return [ref for ref in refs if ref]

    @field_validator("parent", mode="before")
    @classmethod
    def _coerce_parent(cls, v: Any) -> str | None:
        return normalize_ref(v)

    @field_validator("state", mode="before")
    @classmethod
    def _validate_state(cls, v: Any) -> str:
        state = str(v or STATE_OPEN).strip().lower()
        if state not in (STATE_OPEN, STATE_CLOSED):
            raise ValueError(f"state must be '{STATE_OPEN}' or '{STATE_CLOSED}', got '{v}'")
        return state

    @field_validator("state_reason", mode="before")
    @classmethod
    def _coerce_state_reason(cls, v: Any) -> str | None:
        if v is None:
            return None
        reason = str(v).strip().lower()
        return reason or None

    @field_validator("synced_at", "created_at", "updated_at", mode="before")
    @classmethod
    def _coerce_datetime(cls, v: Any) -> datetime | None:
        return parse_datetime(v)

    @property
    def is_local(self) -> bool:
        """Whether this issue still carries a temporary id."""
        return is_local_id(self.id)

    @property
    def location(self) -> Location:
        """Container this issue belongs in according to its state."""
        return Location.for_state(self.state)

    def normalized(self) -> Issue:
        """Return a copy with set fields sorted and body whitespace normalized."""
        return self.model_copy(
            update={
                "labels": normalize_strings(self.labels),
                "assignees": normalize_strings(self.assignees),
                "projects": normalize_strings(self.projects),
                "blocked_by": normalize_strings(self.blocked_by),
                "blocks": normalize_strings(self.blocks),
                "milestone": self.milestone.strip(),
                "issue_type": self.issue_type.strip(),
                "parent": normalize_ref(self.parent),
                "state_reason": self.state_reason or None,
                "body": normalize_body(self.body),
            }
        )

    def to_frontmatter(self) -> dict[str, Any]:
        """Convert to dict suitable for YAML front matter."""
        issue = self.normalized()
        data: dict[str, Any] = {"title": issue.title}
        if issue.labels:
            data["labels"] = issue.labels
        if issue.assignees:
            data["assignees"] = issue.assignees
        if issue.milestone:
            data["milestone"] = issue.milestone
        if issue.issue_type:
            data["type"] = issue.issue_type
        if issue.projects:
            data["projects"] = issue.projects
        data["state"] = issue.state
        if issue.state_reason:
            data["state_reason"] = issue.state_reason
        if issue.parent:
            data["parent"] = _ref_value(issue.parent)
        if issue.blocked_by:
            data["blocked_by"] = [_ref_value(ref) for ref in issue.blocked_by]
        if issue.blocks:
            data["blocks"] = [_ref_value(ref) for ref in issue.blocks]
        if issue.synced_at:
            data["synced_at"] = to_iso(issue.synced_at)

        info: dict[str, Any] = {}
        if issue.author:
            info["author"] = issue.author
        if issue.created_at:
            info["created_at"] = to_iso(issue.created_at)
        if issue.updated_at:
            info["updated_at"] = to_iso(issue.updated_at)
        if info:
            data["info"] = info

        for key, value in self.extra.items():
            if key not in data:
                data[key] = value
        return data

    @classmethod
    def from_frontmatter(cls, issue_id: str, metadata: dict[str, Any], body: str) -> Issue:
        """Create an Issue from parsed front matter."""
        info = metadata.get("info")
        if not isinstance(info, dict):
            info = {}
        return cls(
            id=issue_id,
            title=metadata.get("title"),
            labels=metadata.get("labels"),
            assignees=metadata.get("assignees"),
            milestone=metadata.get("milestone"),
            issue_type=metadata.get("type"),
            projects=metadata.get("projects"),
            state=metadata.get("state"),
            state_reason=metadata.get("state_reason"),
            parent=metadata.get("parent"),
            blocked_by=metadata.get("blocked_by"),
            blocks=metadata.get("blocks"),
            synced_at=metadata.get("synced_at"),
            author=info.get("author"),
            created_at=info.get("created_at"),
            updated_at=info.get("updated_at"),
            body=normalize_body(body),
            extra={k: v for k, v in metadata.items() if k not in KNOWN_KEYS},
        )


def _comparable(issue: Issue, ignore_state_reason: bool) -> tuple:
    n = issue.normalized()
    return (
        n.id,
        n.title,
        n.labels,
        n.assignees,
        n.milestone,
        n.issue_type,
        n.projects,
        n.state,
        None if ignore_state_reason else n.state_reason,
        n.parent,
        n.blocked_by,
        n.blocks,
        n.body,
    )


def equal_ignoring_synced_at(a: Issue, b: Issue) -> bool:
    """Strict equality: every comparable field after normalization."""
    return _comparable(a, False) == _comparable(b, False)


def equal_for_conflict_check(a: Issue, b: Issue) -> bool:
    """Like strict equality, but state_reason is not compared.

    The remote service fills in a state reason on its own when an issue is
    closed or reopened, which must not count as someone else's edit.
    """
    return _comparable(a, True) == _comparable(b, True)
