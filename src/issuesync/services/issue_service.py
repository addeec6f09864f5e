"""Local record operations that don't talk to the remote tracker (except diff --remote)."""

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass

from ..models import (
    CLOSE_REASONS,
    STATE_CLOSED,
    STATE_OPEN,
    ChangeKind,
    Issue,
    Location,
    RecordChange,
    RepositoryConfig,
    StatusReport,
    equal_ignoring_synced_at,
)
from ..repositories import LocalIssue, LocalStore, RemoteIssueService
from ..sync.local_id import generate_local_id
from ..sync.summary import change_lines
from ..utils.lock import DEFAULT_LOCK_TIMEOUT

logger = logging.getLogger(__name__)

STATE_ALL = "all"


@dataclass
class IssueDiff:
    """Field-level differences between a record and a reference copy."""

    issue_id: str
    title: str
    against: str  # "snapshot", "remote" or "new"
    lines: list[str]

    @property
    def is_empty(self) -> bool:
        return not self.lines


class IssueService:
    """Service for working with the local mirror."""

    def __init__(
        self,
        store: LocalStore,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        editor: str | None = None,
    ) -> None:
        """
        Initialize the issue service.

        Args:
            store: Local mirror store
            lock_timeout: Seconds to wait for the store lock
            editor: Editor command, overriding $EDITOR / $VISUAL
        """
        self._store = store
        self._lock_timeout = lock_timeout
        self._editor = editor

    # --- Setup ---

    def init_repository(self, slug: str | None = None, base_url: str | None = None) -> RepositoryConfig:
        """
        Create the mirror layout and its config.

        Without a slug, the repository is detected from the git origin remote.
        Re-initializing keeps last_full_pull when the repository is unchanged.

        Raises:
            ValueError: If the repository cannot be determined
        """
        if slug:
            config = RepositoryConfig.from_slug(slug)
        else:
            config = RepositoryConfig.from_remote_url(self._git_origin_url())
        if base_url:
            config.base_url = base_url

        self._store.ensure_layout()
        with self._store.lock(self._lock_timeout):
            if self._store.is_initialized():
                existing = self._store.load_config()
                if existing.full_name == config.full_name and existing.base_url == config.base_url:
                    config.last_full_pull = existing.last_full_pull
            self._store.save_config(config)

        logger.info("Initialized mirror for %s in %s", config.full_name, self._store.root)
        return config

    # --- Mutations ---

    def new_issue(
        self,
        title: str,
        labels: list[str] | None = None,
        body: str = "",
    ) -> LocalIssue:
        """
        Create a new local record with a temporary id.

        The record is created on the remote by the next push.
        """
        title = title.strip()
        if not title:
            raise ValueError("Title must not be empty")
        self._store.load_config()

        with self._store.lock(self._lock_timeout):
            issue_id = generate_local_id(self._store.existing_ids())
            issue = Issue(id=issue_id, title=title, labels=labels or [], body=body)
            path = self._store.write_issue(issue, Location.OPEN)

        logger.info("Issue created: %s (labels=%s)", issue_id, issue.labels)
        return LocalIssue(issue=issue, path=path, location=Location.OPEN)

    def close(self, ref: str, reason: str = "completed") -> LocalIssue:
        """Mark a record closed and move it to the closed container."""
        if reason not in CLOSE_REASONS:
            raise ValueError(f"Invalid close reason '{reason}' (expected one of: {', '.join(CLOSE_REASONS)})")
        return self._set_state(ref, STATE_CLOSED, reason)

    def reopen(self, ref: str) -> LocalIssue:
        """Mark a record open and move it back to the open container."""
        return self._set_state(ref, STATE_OPEN, None)

    # --- Queries ---

    def status(self) -> StatusReport:
        """Records with local changes since their last synchronization."""
        self._store.load_config()
        loaded = self._store.load_issues()
        report = StatusReport(errors=[str(e) for e in loaded.errors])

        for local in loaded.issues:
            issue = local.issue
            if issue.is_local:
                report.new.append(RecordChange(ChangeKind.ADDED, issue.id, issue.title, local.path))
                continue
            original = self._store.read_original(issue.id)
            if original is None:
                report.modified.append(
                    RecordChange(ChangeKind.MODIFIED, issue.id, issue.title, local.path, ["no snapshot"])
                )
            elif not equal_ignoring_synced_at(issue, original):
                report.modified.append(
                    RecordChange(
                        ChangeKind.MODIFIED,
                        issue.id,
                        issue.title,
                        local.path,
                        change_lines(original, issue),
                    )
                )
        return report

    def list_issues(
        self,
        state: str = STATE_OPEN,
        label: str | None = None,
        local_only: bool = False,
    ) -> list[LocalIssue]:
        """
        List mirrored records.

        Args:
            state: "open", "closed" or "all"
            label: Only records carrying this label (case-insensitive)
            local_only: Only records not yet created remotely
        """
        if state not in (STATE_OPEN, STATE_CLOSED, STATE_ALL):
            raise ValueError(f"Invalid state '{state}'")
        self._store.load_config()
        issues = self._store.load_issues().issues

        if state != STATE_ALL:
            issues = [local for local in issues if local.issue.state == state]
        if label:
            wanted = label.lower()
            issues = [local for local in issues if wanted in (name.lower() for name in local.issue.labels)]
        if local_only:
            issues = [local for local in issues if local.issue.is_local]
        return sorted(issues, key=lambda local: _sort_key(local.issue.id))

    def get(self, ref: str) -> LocalIssue:
        """Find one record by id or path."""
        self._store.load_config()
        return self._store.find_issue(ref)

    def diff(self, ref: str, remote: RemoteIssueService | None = None) -> IssueDiff:
        """
        Compare a record with its snapshot, or with the live remote issue.

        Raises:
            IssueNotFoundError: If the record does not exist
            GitHubNotFoundError: If the remote issue no longer exists
        """
        local = self.get(ref)
        issue = local.issue
        if issue.is_local:
            return IssueDiff(issue.id, issue.title, "new", ["not yet pushed"])

        if remote is not None:
            other = remote.get_issue(issue.id)
            # remote -> local: the lines describe what a push would change
            return IssueDiff(issue.id, issue.title, "remote", change_lines(other, issue))

        original = self._store.read_original(issue.id)
        if original is None:
            return IssueDiff(issue.id, issue.title, "snapshot", ["no snapshot"])
        return IssueDiff(issue.id, issue.title, "snapshot", change_lines(original, issue))

    def diff_all(self) -> list[IssueDiff]:
        """Diffs for every modified record, against their snapshots."""
        report = self.status()
        return [
            IssueDiff(change.issue_id, change.title, "snapshot", change.details)
            for change in report.modified
        ]

    # --- Editor ---

    def open_in_editor(self, local: LocalIssue) -> bool:
        """
        Open a record in the user's editor.

        Returns:
            True if the editor exited successfully
        """
        editor = self._editor or os.environ.get("EDITOR") or os.environ.get("VISUAL")
        if not editor:
            for candidate in ["nvim", "vim", "vi", "nano"]:
                if shutil.which(candidate):
                    editor = candidate
                    break
            else:
                return False

        # Editors with arguments (e.g., "code --wait")
        command = [*shlex.split(editor), str(local.path.absolute())]
        try:
            result = subprocess.run(command, check=False)
        except FileNotFoundError:
            logger.warning("Editor not found: %s", editor)
            return False
        return result.returncode == 0

    # --- Private Methods ---

    def _set_state(self, ref: str, state: str, reason: str | None) -> LocalIssue:
        self._store.load_config()
        with self._store.lock(self._lock_timeout):
            local = self._store.find_issue(ref)
            issue = local.issue.model_copy(update={"state": state, "state_reason": reason})
            location = Location.for_state(state)
            path = self._store.write_issue(issue, location, previous_path=local.path)

        logger.info("Issue %s: state=%s reason=%s", issue.id, state, reason)
        return LocalIssue(issue=issue, path=path, location=location)

    def _git_origin_url(self) -> str:
        try:
            result = subprocess.run(
                ["git", "remote", "get-url", "origin"],
                cwd=self._store.project_root,
                capture_output=True,
                text=True,
                check=True,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise ValueError(
                "Could not detect the repository from git; pass it as owner/repo"
            ) from e
        return result.stdout.strip()


def _sort_key(issue_id: str) -> tuple[int, int, str]:
    """Permanent ids numerically, then temporary ids."""
    if issue_id.isdigit():
        return (0, int(issue_id), "")
    return (1, 0, issue_id)
