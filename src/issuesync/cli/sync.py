"""Pull, push and sync commands against the remote tracker."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..github.client import GitHubAuthError, GitHubClient, GitHubClientError
from ..github.service import GitHubIssueService
from ..models import Conflict, PullResult, PushResult
from ..repositories import LocalStore, StoreError
from ..sync.engine import SyncCancelledError, SyncEngine
from ..utils.lock import DEFAULT_LOCK_TIMEOUT, LockTimeoutError
from .output import error, header, info, record, success, warn

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


def run_pull(
    project_root: Path,
    ids: list[str] | None = None,
    all_states: bool = False,
    full: bool = False,
    force: bool = False,
    labels: list[str] | None = None,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> int:
    """Fetch remote issues into the local mirror.

    Args:
        project_root: Path to project root containing .issues
        ids: Only pull these issues
        all_states: Include closed issues
        full: Ignore the last pull timestamp
        force: Overwrite local changes (resolve conflicts to the remote)
        labels: Only fetch issues carrying these labels
        lock_timeout: Seconds to wait for the store lock

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    store = LocalStore(project_root)

    def pull(engine: SyncEngine) -> int:
        header(f"Pulling from {store.load_config().full_name}...")
        result = engine.pull(ids, all_states=all_states, full=full, force=force, labels=labels)
        _display_pull_result(result)
        return 1 if result.has_errors or result.has_conflicts else 0

    return _with_engine(store, lock_timeout, pull)


def run_push(
    project_root: Path,
    ids: list[str] | None = None,
    dry_run: bool = False,
    force: bool = False,
    post_comments: bool = True,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> int:
    """Send local changes to the remote tracker.

    Args:
        project_root: Path to project root containing .issues
        ids: Only push these issues
        dry_run: Show what would be pushed without writing anything
        force: Push even when the remote issue changed since the last sync
        post_comments: Post pending comment files
        lock_timeout: Seconds to wait for the store lock

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    store = LocalStore(project_root)

    def push(engine: SyncEngine) -> int:
        header(f"Pushing to {store.load_config().full_name}...")
        result = engine.push(ids, dry_run=dry_run, force=force, post_comments=post_comments)
        _display_push_result(result)
        return 1 if result.has_errors or result.has_conflicts else 0

    return _with_engine(store, lock_timeout, push)


def run_sync(project_root: Path, lock_timeout: float = DEFAULT_LOCK_TIMEOUT) -> int:
    """Push local changes, then pull remote ones."""
    store = LocalStore(project_root)

    def sync(engine: SyncEngine) -> int:
        full_name = store.load_config().full_name
        header(f"Pushing to {full_name}...")
        pushed = engine.push()
        _display_push_result(pushed)
        if pushed.has_errors:
            error("Push failed, skipping pull")
            return 1

        print()
        header(f"Pulling from {full_name}...")
        pulled = engine.pull()
        _display_pull_result(pulled)
        failed = pushed.has_conflicts or pulled.has_errors or pulled.has_conflicts
        return 1 if failed else 0

    return _with_engine(store, lock_timeout, sync)


def _with_engine(store: LocalStore, lock_timeout: float, command) -> int:
    """Authenticate, build the engine and run command, mapping failures to exit codes."""
    try:
        config = store.load_config()
    except StoreError as e:
        error(str(e))
        return 1

    try:
        client = GitHubClient.from_environment(config.base_url)
    except GitHubAuthError as e:
        error(f"GitHub authentication failed: {e}")
        info("Set GITHUB_TOKEN environment variable or run 'gh auth login'")
        return 1

    cancel_event = threading.Event()
    with client, _cancel_on_interrupt(cancel_event):
        remote = GitHubIssueService(client, config.owner, config.repo)
        engine = SyncEngine(store, remote, lock_timeout=lock_timeout, cancel_event=cancel_event)
        try:
            return command(engine)
        except SyncCancelledError:
            error("Interrupted")
            return EXIT_INTERRUPTED
        except GitHubAuthError as e:
            error(f"GitHub authentication failed: {e}")
            return 1
        except GitHubClientError as e:
            error(f"GitHub error: {e}")
            return 1
        except LockTimeoutError as e:
            error(str(e))
            info("Another issuesync command is running on this mirror")
            return 1
        except StoreError as e:
            error(str(e))
            return 1


@contextmanager
def _cancel_on_interrupt(cancel_event: threading.Event) -> Iterator[None]:
    """First Ctrl-C stops at the next remote call; a second one interrupts immediately."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        logger.info("Interrupt received, stopping after the current request")
        cancel_event.set()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _display_pull_result(result: PullResult) -> None:
    """Display one line per changed record, then conflicts and problems."""
    for change in [*result.added, *result.updated, *result.restored]:
        record(change.kind.value, f"#{change.issue_id} {change.title}", change.details)
    _display_conflicts(result.conflicts, "local changes kept, use --force to overwrite them")
    _display_problems(result.warnings, result.errors)

    print()
    if result.changed_count:
        success(f"Pulled {result.changed_count} issue(s)")
    elif not result.has_conflicts and not result.has_errors:
        info("Everything is up to date")
    if result.unchanged:
        info(f"{result.unchanged} unchanged")
    if result.incremental:
        info("Incremental pull (use --full to fetch everything)")


def _display_push_result(result: PushResult) -> None:
    """Display created and updated records, then conflicts and problems."""
    if result.dry_run:
        header("[DRY RUN] Would push:")
        for line in result.planned:
            info(line)
        if not result.planned:
            info("Nothing to push")
        _display_conflicts(result.conflicts, "remote changed since last pull")
        _display_problems(result.warnings, result.errors)
        return

    for name in result.created_labels:
        success(f"Created label '{name}'")
    for title in result.created_milestones:
        success(f"Created milestone '{title}'")
    for change in [*result.created, *result.updated]:
        record(change.kind.value, f"#{change.issue_id} {change.title}", change.details)
    for path in result.reference_updates:
        info(f"Updated references in {path}")
    _display_conflicts(result.conflicts, "remote changed since last pull, pull first or use --force")
    _display_problems(result.warnings, result.errors)

    print()
    if result.success_count:
        success(f"Pushed {result.success_count} issue(s)")
    elif not result.has_conflicts and not result.has_errors:
        info("Nothing to push")
    if result.comments_posted:
        success(f"Posted {result.comments_posted} comment(s)")


def _display_conflicts(conflicts: list[Conflict], hint: str) -> None:
    """Display conflict details."""
    for conflict in conflicts:
        details = []
        if conflict.conflicting_fields:
            details.append(f"both changed: {', '.join(conflict.conflicting_fields)}")
        else:
            details.append("changes do not overlap")
        if conflict.local_fields:
            details.append(f"local: {', '.join(conflict.local_fields)}")
        if conflict.remote_fields:
            details.append(f"remote: {', '.join(conflict.remote_fields)}")
        record("C", f"#{conflict.issue_id} ({hint})", details)
    if conflicts:
        error(f"{len(conflicts)} conflict(s)")


def _display_problems(warnings: list[str], errors: list[str]) -> None:
    for message in warnings:
        warn(message)
    for message in errors:
        error(message)
