"""Protocol for the remote issue tracker consumed by the sync engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from ..models import Issue, IssueTypeEntry, LabelEntry, MilestoneEntry, ProjectEntry


@dataclass
class IssueEdit:
    """Field edits for one issue, submitted as part of a batch.

    None means "leave unchanged". An empty milestone clears it. Labels and
    assignees are the complete final sets, not deltas.
    """

    number: str
    title: str | None = None
    body: str | None = None
    milestone: str | None = None
    labels: list[str] | None = None
    assignees: list[str] | None = None

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (self.title, self.body, self.milestone, self.labels, self.assignees)
        )


class RemoteIssueService(Protocol):
    """Interface to the remote issue tracker.

    Issue numbers are passed and returned as strings, matching local ids.
    Every method raises on transport failure; callers decide whether a
    failure is fatal or only a warning.
    """

    def list_issues(
        self,
        state: str = "open",
        labels: list[str] | None = None,
        since: datetime | None = None,
    ) -> list[Issue]:
        """List issues.

        Args:
            state: "open", "closed" or "all"
            labels: Only issues carrying any of these labels
            since: Only issues updated at or after this time
        """
        ...

    def get_issue(self, number: str) -> Issue:
        """Fetch one issue. Raises if it does not exist."""
        ...

    def get_issues(self, numbers: list[str]) -> dict[str, Issue]:
        """Fetch many issues in batched requests.

        Returns:
            Issues keyed by number; numbers that do not exist are absent.
        """
        ...

    def create_issue(self, issue: Issue) -> str:
        """Create an issue from title, body, labels, assignees and milestone.

        Returns:
            The permanent number assigned by the tracker.
        """
        ...

    def edit_issues(self, edits: list[IssueEdit]) -> dict[str, str]:
        """Apply field edits to many issues in one batched request.

        Returns:
            Error messages keyed by number for edits the tracker rejected.
        """
        ...

    def close_issue(self, number: str, reason: str | None = None) -> None: ...

    def reopen_issue(self, number: str) -> None: ...

    def list_labels(self) -> list[LabelEntry]: ...

    def create_label(self, name: str, color: str) -> LabelEntry: ...

    def list_milestones(self) -> list[MilestoneEntry]: ...

    def create_milestone(self, title: str) -> MilestoneEntry: ...

    def list_issue_types(self) -> list[IssueTypeEntry]: ...

    def list_projects(self) -> list[ProjectEntry]: ...

    def add_to_project(self, number: str, project_id: str) -> None: ...

    def remove_from_project(self, number: str, project_id: str) -> None: ...

    def set_issue_type(self, number: str, type_id: str | None) -> None:
        """Set the issue type, or clear it when type_id is None."""
        ...

    def set_parent(self, number: str, parent: str | None) -> None:
        """Make number a sub-issue of parent, or detach it when parent is None."""
        ...

    def add_blocked_by(self, number: str, blocker: str) -> None: ...

    def remove_blocked_by(self, number: str, blocker: str) -> None: ...

    def create_comment(self, number: str, body: str) -> None: ...
