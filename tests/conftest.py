"""Shared fixtures: an initialized mirror and an in-memory remote tracker."""

from datetime import UTC, datetime

import pytest

from issuesync.github.client import GitHubClientError
from issuesync.models import (
    STATE_CLOSED,
    STATE_OPEN,
    Issue,
    IssueTypeEntry,
    LabelEntry,
    MilestoneEntry,
    ProjectEntry,
    RepositoryConfig,
)
from issuesync.repositories import LocalStore
from issuesync.repositories.protocol import IssueEdit
from issuesync.sync.engine import SyncEngine

SEED_TIME = datetime(2024, 1, 1, tzinfo=UTC)


class FakeIssueService:
    """In-memory stand-in for the remote tracker that records every call."""

    def __init__(self) -> None:
        self.issues: dict[str, Issue] = {}
        self.labels: list[LabelEntry] = [LabelEntry(name="bug", color="d73a4a")]
        self.milestones: list[MilestoneEntry] = [MilestoneEntry(title="v1.0", number=1)]
        self.issue_types: list[IssueTypeEntry] = [
            IssueTypeEntry(id="IT_bug", name="Bug"),
            IssueTypeEntry(id="IT_task", name="Task"),
        ]
        self.projects: list[ProjectEntry] = [ProjectEntry(id="PVT_1", title="Roadmap")]
        self.comments: list[tuple[str, str]] = []
        self.project_items: set[tuple[str, str]] = set()
        self.calls: list[tuple] = []
        self.next_number = 100
        # Method name -> exception raised when it is called
        self.failures: dict[str, Exception] = {}
        # Issue number -> error message returned by edit_issues
        self.edit_failures: dict[str, str] = {}

    # --- Test helpers ---

    def add(self, issue: Issue) -> Issue:
        """Seed a remote issue."""
        if issue.updated_at is None:
            issue = issue.model_copy(update={"updated_at": SEED_TIME})
        self.issues[issue.id] = issue
        return issue

    def modify(self, number: str, **changes) -> None:
        """Change a remote issue the way another user would."""
        changes.setdefault("updated_at", datetime.now(UTC))
        self.issues[number] = self.issues[number].model_copy(update=changes)

    def called(self, name: str) -> list[tuple]:
        """Arguments of every call to one method."""
        return [call[1:] for call in self.calls if call[0] == name]

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    def _touch(self, number: str, **changes) -> None:
        changes["updated_at"] = datetime.now(UTC)
        self.issues[number] = self.issues[number].model_copy(update=changes)

    # --- RemoteIssueService ---

    def list_issues(self, state="open", labels=None, since=None) -> list[Issue]:
        self._record("list_issues", state, labels, since)
        result = []
        for issue in self.issues.values():
            if state != "all" and issue.state != state:
                continue
            if labels and not set(labels) & set(issue.labels):
                continue
            if since is not None and (issue.updated_at is None or issue.updated_at < since):
                continue
            result.append(issue.model_copy(deep=True))
        return result

    def get_issue(self, number: str) -> Issue:
        self._record("get_issue", number)
        if number not in self.issues:
            raise GitHubClientError(f"Issue #{number} not found")
        return self.issues[number].model_copy(deep=True)

    def get_issues(self, numbers: list[str]) -> dict[str, Issue]:
        self._record("get_issues", list(numbers))
        return {n: self.issues[n].model_copy(deep=True) for n in numbers if n in self.issues}

    def create_issue(self, issue: Issue) -> str:
        self._record("create_issue", issue.title)
        number = str(self.next_number)
        self.next_number += 1
        source = issue.normalized()
        self.issues[number] = Issue(
            id=number,
            title=source.title,
            body=source.body,
            labels=source.labels,
            assignees=source.assignees,
            milestone=source.milestone,
            state=STATE_OPEN,
            updated_at=datetime.now(UTC),
        )
        return number

    def edit_issues(self, edits: list[IssueEdit]) -> dict[str, str]:
        self._record("edit_issues", list(edits))
        errors = {}
        for edit in edits:
            if edit.number in self.edit_failures:
                errors[edit.number] = self.edit_failures[edit.number]
                continue
            changes = {
                name: value
                for name in ("title", "body", "milestone", "labels", "assignees")
                if (value := getattr(edit, name)) is not None
            }
            self._touch(edit.number, **changes)
        return errors

    def close_issue(self, number: str, reason: str | None = None) -> None:
        self._record("close_issue", number, reason)
        self._touch(number, state=STATE_CLOSED, state_reason=reason or "completed")

    def reopen_issue(self, number: str) -> None:
        self._record("reopen_issue", number)
        self._touch(number, state=STATE_OPEN, state_reason="reopened")

    def list_labels(self) -> list[LabelEntry]:
        self._record("list_labels")
        return list(self.labels)

    def create_label(self, name: str, color: str) -> LabelEntry:
        self._record("create_label", name, color)
        entry = LabelEntry(name=name, color=color)
        self.labels.append(entry)
        return entry

    def list_milestones(self) -> list[MilestoneEntry]:
        self._record("list_milestones")
        return list(self.milestones)

    def create_milestone(self, title: str) -> MilestoneEntry:
        self._record("create_milestone", title)
        entry = MilestoneEntry(title=title, number=len(self.milestones) + 1)
        self.milestones.append(entry)
        return entry

    def list_issue_types(self) -> list[IssueTypeEntry]:
        self._record("list_issue_types")
        return list(self.issue_types)

    def list_projects(self) -> list[ProjectEntry]:
        self._record("list_projects")
        return list(self.projects)

    def add_to_project(self, number: str, project_id: str) -> None:
        self._record("add_to_project", number, project_id)
        self.project_items.add((number, project_id))

    def remove_from_project(self, number: str, project_id: str) -> None:
        self._record("remove_from_project", number, project_id)
        self.project_items.discard((number, project_id))

    def set_issue_type(self, number: str, type_id: str | None) -> None:
        self._record("set_issue_type", number, type_id)
        names = {entry.id: entry.name for entry in self.issue_types}
        self._touch(number, issue_type=names.get(type_id, "") if type_id else "")

    def set_parent(self, number: str, parent: str | None) -> None:
        self._record("set_parent", number, parent)
        self._touch(number, parent=parent)

    def add_blocked_by(self, number: str, blocker: str) -> None:
        self._record("add_blocked_by", number, blocker)
        self._touch(number, blocked_by=[*self.issues[number].blocked_by, blocker])
        if blocker in self.issues:
            self._touch(blocker, blocks=[*self.issues[blocker].blocks, number])

    def remove_blocked_by(self, number: str, blocker: str) -> None:
        self._record("remove_blocked_by", number, blocker)
        self._touch(number, blocked_by=[ref for ref in self.issues[number].blocked_by if ref != blocker])
        if blocker in self.issues:
            self._touch(blocker, blocks=[ref for ref in self.issues[blocker].blocks if ref != number])

    def create_comment(self, number: str, body: str) -> None:
        self._record("create_comment", number, body)
        self.comments.append((number, body))


@pytest.fixture
def store(tmp_path):
    """An initialized, empty mirror."""
    store = LocalStore(tmp_path)
    store.ensure_layout()
    store.save_config(RepositoryConfig(owner="acme", repo="widgets"))
    return store


@pytest.fixture
def remote():
    """A remote tracker holding two open issues."""
    service = FakeIssueService()
    service.add(Issue(id="1", title="First issue", labels=["bug"], body="First body\n", author="alice"))
    service.add(Issue(id="2", title="Second issue", body="Second body\n", author="bob"))
    return service


@pytest.fixture
def engine(store, remote):
    return SyncEngine(store, remote, lock_timeout=1.0)


@pytest.fixture
def pulled(engine):
    """Engine whose mirror already holds the remote's open issues."""
    engine.pull()
    return engine
