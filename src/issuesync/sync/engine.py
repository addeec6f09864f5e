"""Sync engine for bidirectional reconciliation with the remote tracker.

This module provides the SyncEngine class which handles:
- Pulling remote issues into the local mirror
- Creating remote issues for records authored offline under temporary ids
- Rewriting references to promoted ids across the whole mirror
- Pushing local edits of existing issues back to the remote tracker
- Conflict detection against the last synchronized snapshot

Every record is compared three ways: the local file, its snapshot under
.sync/originals, and the remote issue. Any local edit blocks a pull write
and any remote movement blocks a push write, unless forced.
"""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

from ..models import (
    STATE_CLOSED,
    STATE_OPEN,
    CatalogCache,
    ChangeKind,
    Conflict,
    FieldSet,
    Issue,
    Location,
    PullResult,
    PushResult,
    RecordChange,
    compute_changes,
    equal_for_conflict_check,
    equal_ignoring_synced_at,
    is_local_id,
    three_way_merge,
)
from ..repositories import LoadResult, LocalIssue, LocalStore, MalformedIssueError
from ..repositories.filesystem import CATALOGS
from ..repositories.protocol import IssueEdit, RemoteIssueService
from ..utils.datetime import now_utc
from ..utils.lock import DEFAULT_LOCK_TIMEOUT
from .references import apply_mapping
from .summary import change_lines

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Colors picked at random for labels created during push
LABEL_COLORS = (
    "0052CC",
    "00875A",
    "5243AA",
    "FF5630",
    "FFAB00",
    "36B37E",
    "00B8D9",
    "6554C0",
    "FF8B00",
    "57D9A3",
    "1D7AFC",
    "E774BB",
    "8777D9",
    "2684FF",
    "FF991F",
)


class SyncCancelledError(Exception):
    """The operation was cancelled before the next remote call."""

    pass


class SyncEngine:
    """Engine for reconciling the local mirror with the remote tracker.

    Handles the workflow of:
    1. Pull: fetch remote issues, write the ones without local edits
    2. Push: create issues with temporary ids, rewrite references to them,
       then send field, state, relationship, type and project edits
    3. Restore files whose snapshot survived their deletion
    4. Keep the label, milestone, issue type and project caches current

    Mutating operations hold the store lock for their whole duration.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteIssueService,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        cancel_event: threading.Event | None = None,
        max_workers: int = 4,
    ) -> None:
        """
        Initialize the sync engine.

        Args:
            store: Local mirror
            remote: Remote tracker
            lock_timeout: Seconds to wait for the store lock
            cancel_event: When set, the next remote call raises SyncCancelledError
            max_workers: Upper bound on concurrent remote fetches
        """
        self._store = store
        self._remote_service = remote
        self._lock_timeout = lock_timeout
        self._cancel_event = cancel_event
        self._max_workers = max_workers
        self._catalogs: dict[str, CatalogCache] = {}

    # --- Pull ---

    def pull(
        self,
        ids: list[str] | None = None,
        *,
        all_states: bool = False,
        full: bool = False,
        force: bool = False,
        labels: list[str] | None = None,
    ) -> PullResult:
        """Fetch remote issues into the local mirror.

        Args:
            ids: Only pull these issues (skips catalog refresh and restore)
            all_states: Also fetch closed issues
            full: Ignore the last pull timestamp and fetch everything
            force: Overwrite local edits instead of reporting conflicts
            labels: Only fetch issues carrying these labels

        Returns:
            PullResult with added, updated, restored and conflicting records
        """
        with self._store.lock(self._lock_timeout):
            return self._pull(ids or [], all_states, full, force, labels or [])

    def _pull(
        self,
        ids: list[str],
        all_states: bool,
        full: bool,
        force: bool,
        labels: list[str],
    ) -> PullResult:
        result = PullResult()
        config = self._store.load_config()
        loaded = self._store.load_issues()
        self._record_load_errors(loaded, result.errors)
        local_by_id = loaded.by_id()
        started = now_utc()

        if ids:
            numbers = self._resolve_pull_ids(ids, result)
            fetched = self._remote(self._remote_service.get_issues, numbers) if numbers else {}
            for number in numbers:
                if number not in fetched:
                    result.errors.append(f"Issue #{number} not found on remote")
            remote_issues = [fetched[n] for n in numbers if n in fetched]
        else:
            incremental = config.last_full_pull is not None and not (all_states or full or labels)
            result.incremental = incremental
            remote_issues = self._fetch_for_pull(
                local_by_id,
                all_states=all_states,
                since=config.last_full_pull if incremental else None,
                labels=labels,
                result=result,
            )
            if incremental and not remote_issues:
                logger.info("Nothing to pull: no issues updated since %s", config.last_full_pull)
                config.last_full_pull = started
                self._store.save_config(config)
                return result

        logger.info("Reconciling %d remote issue(s)", len(remote_issues))
        for remote in remote_issues:
            self._pull_one(remote, local_by_id.get(remote.id), loaded.broken_ids, force, result, started)

        if not ids:
            if not labels:
                config.last_full_pull = started
                self._store.save_config(config)
            self._refresh_catalogs(result)
            self._restore_orphans(loaded.broken_ids, result, started)

        logger.info(
            "Pull complete: %d added, %d updated, %d restored, %d unchanged, %d conflict(s)",
            len(result.added),
            len(result.updated),
            len(result.restored),
            result.unchanged,
            len(result.conflicts),
        )
        return result

    def _resolve_pull_ids(self, ids: list[str], result: PullResult) -> list[str]:
        """Turn command-line references into remote numbers."""
        numbers: list[str] = []
        for ref in ids:
            path = Path(ref)
            if path.suffix == ".md" and path.exists():
                key = self._store.find_issue(ref).issue.id
            else:
                key = ref.strip().lstrip("#")
            if is_local_id(key):
                result.errors.append(f"Issue {key} has not been pushed yet, nothing to pull")
                continue
            if key not in numbers:
                numbers.append(key)
        return numbers

    def _fetch_for_pull(
        self,
        local_by_id: dict[str, LocalIssue],
        all_states: bool,
        since: datetime | None,
        labels: list[str],
        result: PullResult,
    ) -> list[Issue]:
        """Fetch the listing, plus known issues the listing would miss.

        A plain pull only lists open issues. Issues closed remotely since the
        last pull are caught by fetching every known number alongside it.
        """
        state = "all" if (all_states or since is not None) else STATE_OPEN
        known: list[str] = []
        if state == STATE_OPEN and not labels:
            known = sorted(issue_id for issue_id in local_by_id if not is_local_id(issue_id))

        with ThreadPoolExecutor(max_workers=2) as pool:
            listing = pool.submit(self._remote, self._remote_service.list_issues, state, labels or None, since)
            batch = pool.submit(self._remote, self._remote_service.get_issues, known) if known else None
            issues = listing.result()
            extra: dict[str, Issue] = {}
            if batch is not None:
                try:
                    extra = batch.result()
                except SyncCancelledError:
                    raise
                except Exception as e:
                    self._warn(result.warnings, f"Failed to fetch known issues: {e}")

        logger.info("Fetched %d issue(s) (state=%s, since=%s)", len(issues), state, since)
        seen = {issue.id for issue in issues}
        for number in sorted(extra, key=_number_sort_key):
            if number not in seen:
                issues.append(extra[number])
        return issues

    def _pull_one(
        self,
        remote: Issue,
        local: LocalIssue | None,
        broken_ids: set[str],
        force: bool,
        result: PullResult,
        now: datetime,
    ) -> None:
        """Reconcile one remote issue into the mirror."""
        number = remote.id
        if number in broken_ids:
            result.errors.append(f"Issue #{number}: local file is unreadable, not overwritten")
            return

        try:
            original = self._store.read_original(number)
        except MalformedIssueError as e:
            result.errors.append(str(e))
            return

        local_changed = local is not None and (
            original is None or not equal_ignoring_synced_at(local.issue, original)
        )
        if local_changed and not force:
            result.conflicts.append(self._describe_conflict(original, local, remote))
            logger.warning("Skipping conflict: #%s (use --force to overwrite)", number)
            return

        remote = remote.model_copy(update={"synced_at": now})
        if local is not None:
            remote = remote.model_copy(update={"extra": local.issue.extra})
        location = Location.for_state(remote.state)
        target = self._store.path_for(remote, location)

        content_changed = local is None or not equal_ignoring_synced_at(local.issue, remote)
        path_changed = local is not None and local.path != target
        snapshot_current = original is not None and equal_ignoring_synced_at(original, remote)
        if snapshot_current and not content_changed and not path_changed:
            result.unchanged += 1
            return

        path = self._store.write_issue(remote, location, previous_path=local.path if local else None)
        self._store.write_original(remote)

        if local is None:
            change = RecordChange(ChangeKind.ADDED, number, remote.title, path)
            result.added.append(change)
        else:
            details = change_lines(local.issue, remote)
            if not details and path_changed:
                details = [f"file: {local.path.name} -> {path.name}"]
            change = RecordChange(ChangeKind.UPDATED, number, remote.title, path, details)
            result.updated.append(change)
        logger.info("Pulled %s", change.summary)

    def _describe_conflict(self, original: Issue | None, local: LocalIssue, remote: Issue) -> Conflict:
        """Report which fields each side changed, and where they overlap."""
        if original is None:
            differing = compute_changes(local.issue, remote).fields()
            return Conflict(
                issue_id=remote.id,
                path=local.path,
                conflicting_fields=differing,
                local_fields=differing,
                remote_fields=differing,
            )
        merge = three_way_merge(original, local.issue, remote)
        return Conflict(
            issue_id=remote.id,
            path=local.path,
            conflicting_fields=merge.conflicting_fields.fields(),
            local_fields=merge.local_changes.fields(),
            remote_fields=merge.remote_changes.fields(),
        )

    def _refresh_catalogs(self, result: PullResult) -> None:
        """Refresh every catalog cache concurrently; failures only warn."""
        fetchers = self._catalog_fetchers()
        with ThreadPoolExecutor(max_workers=min(len(fetchers), self._max_workers)) as pool:
            futures = {name: pool.submit(self._remote, fetch) for name, fetch in fetchers.items()}

        for name, future in futures.items():
            try:
                items = future.result()
            except SyncCancelledError:
                raise
            except Exception as e:
                self._warn(result.warnings, f"Failed to refresh {name}: {e}")
                continue
            self._store.save_catalog(name, self._store.build_catalog(name, items))
            logger.debug("Refreshed %s cache (%d entries)", name, len(items))

    def _restore_orphans(self, broken_ids: set[str], result: PullResult, now: datetime) -> None:
        """Re-create files deleted locally whose snapshot still exists."""
        existing = self._store.existing_ids() | broken_ids
        orphans = [
            issue_id
            for issue_id in self._store.original_ids()
            if not is_local_id(issue_id) and issue_id not in existing
        ]
        if not orphans:
            return

        logger.info("Restoring %d deleted issue(s)", len(orphans))
        fetched = self._best_effort(
            result.warnings, "fetch deleted issues", self._remote_service.get_issues, orphans
        )
        if fetched is None:
            return

        for number in orphans:
            remote = fetched.get(number)
            if remote is None:
                self._warn(result.warnings, f"Cannot restore #{number}: not found on remote")
                continue
            remote = remote.model_copy(update={"synced_at": now})
            path = self._store.write_issue(remote, Location.for_state(remote.state))
            self._store.write_original(remote)
            change = RecordChange(ChangeKind.RESTORED, number, remote.title, path)
            result.restored.append(change)
            logger.info("Restored %s", change.summary)

    # --- Push ---

    def push(
        self,
        ids: list[str] | None = None,
        *,
        dry_run: bool = False,
        force: bool = False,
        post_comments: bool = True,
    ) -> PushResult:
        """Send local changes to the remote tracker.

        Args:
            ids: Only push these issues (ids or paths)
            dry_run: Report what would happen without writing anything
            force: Push even when the remote issue moved since the last sync
            post_comments: Post pending comment files after pushing

        Returns:
            PushResult with created, updated and conflicting records
        """
        with self._store.lock(self._lock_timeout):
            return self._push(ids or [], dry_run, force, post_comments)

    def _push(self, ids: list[str], dry_run: bool, force: bool, post_comments: bool) -> PushResult:
        result = PushResult(dry_run=dry_run)
        self._store.load_config()
        now = now_utc()

        loaded = self._store.load_issues()
        self._record_load_errors(loaded, result.errors)
        selected = self._select(loaded, ids, result.errors)
        scope = [local.issue.id for local in selected] if ids else None

        self._load_catalogs(result.warnings, save=not dry_run)
        self._resolve_dependencies(selected, dry_run, result)

        # Promote temporary ids
        mapping: dict[str, str] = {}
        sent: dict[str, Issue] = {}
        for local in selected:
            if not local.issue.is_local:
                continue
            if dry_run:
                result.planned.append(f"Would create: {local.issue.title} ({local.issue.id})")
                continue
            number, snapshot = self._promote(local, now, result)
            mapping[local.issue.id] = number
            sent[number] = snapshot

        if mapping:
            result.id_mapping = dict(mapping)
            self._rewrite_references(mapping, result)
            loaded = self._store.load_issues()
            if scope is not None:
                scope = [mapping.get(issue_id, issue_id) for issue_id in scope]
            selected = self._select(loaded, scope or [], [])

        # Phase 1: find records with local edits
        pending: list[tuple[LocalIssue, Issue | None]] = []
        for local in selected:
            issue = local.issue
            if issue.is_local:
                continue
            original = sent.get(issue.id)
            if original is None:
                try:
                    original = self._store.read_original(issue.id)
                except MalformedIssueError as e:
                    result.errors.append(str(e))
                    continue
            if original is not None and equal_ignoring_synced_at(issue, original):
                if issue.id not in sent:
                    result.unchanged += 1
                continue
            pending.append((local, original))

        if dry_run:
            for local, original in pending:
                details = change_lines(original, local.issue) if original else ["no snapshot, compared against remote"]
                result.planned.append(f"Would update #{local.issue.id} {local.issue.title}")
                result.planned.extend(f"    {line}" for line in details)
            return result

        if pending:
            self._push_updates(pending, set(sent), force, now, result)

        if post_comments:
            conflicted = {conflict.issue_id for conflict in result.conflicts}
            self._post_comments(scope, conflicted, result)

        logger.info(
            "Push complete: %d created, %d updated, %d unchanged, %d conflict(s)",
            len(result.created),
            len(result.updated),
            result.unchanged,
            len(result.conflicts),
        )
        return result

    def _select(self, loaded: LoadResult, ids: list[str], errors: list[str]) -> list[LocalIssue]:
        """Pick the records named by ids (all records when ids is empty)."""
        if not ids:
            return list(loaded.issues)

        by_id = loaded.by_id()
        by_path = {local.path.resolve(): local for local in loaded.issues}
        selected: list[LocalIssue] = []
        for ref in ids:
            local = by_id.get(ref.strip().lstrip("#"))
            if local is None and ref.endswith(".md"):
                local = by_path.get(Path(ref).resolve())
            if local is None:
                errors.append(f"Issue {ref} not found locally")
                continue
            if local not in selected:
                selected.append(local)
        return selected

    def _promote(self, local: LocalIssue, now: datetime, result: PushResult) -> tuple[str, Issue]:
        """Create a remote issue for a temporary id and rename its file.

        Returns:
            The permanent number, and a snapshot of exactly what was sent
        """
        old_id = local.issue.id
        number = self._remote(self._remote_service.create_issue, local.issue)

        promoted = local.issue.model_copy(update={"id": number, "synced_at": now})
        path = self._store.write_issue(promoted, local.location, previous_path=local.path)

        created = local.issue.normalized()
        snapshot = Issue(
            id=number,
            title=created.title,
            body=created.body,
            labels=created.labels,
            assignees=created.assignees,
            milestone=created.milestone,
            state=STATE_OPEN,
            synced_at=now,
        )
        self._store.write_original(snapshot)
        self._store.rename_comment(old_id, number)

        change = RecordChange(ChangeKind.ADDED, number, promoted.title, path, [f"created from {old_id}"])
        result.created.append(change)
        logger.info("Created issue #%s from %s", number, old_id)
        return number, snapshot

    def _rewrite_references(self, mapping: dict[str, str], result: PushResult) -> None:
        """Replace promoted temporary ids everywhere in the mirror."""
        for local in self._store.load_issues().issues:
            updated = apply_mapping(local.issue, mapping)
            if updated is local.issue:
                continue
            path = self._store.write_issue(updated, local.location, previous_path=local.path)
            result.reference_updates.append(path)
            logger.info("Updated references in %s", path)

    def _push_updates(
        self,
        pending: list[tuple[LocalIssue, Issue | None]],
        created: set[str],
        force: bool,
        now: datetime,
        result: PushResult,
    ) -> None:
        """Check for conflicts, then send state, field and secondary edits."""
        numbers = [local.issue.id for local, _ in pending]
        remote_by_id = self._remote(self._remote_service.get_issues, numbers)

        edits: list[IssueEdit] = []
        accepted: list[tuple[LocalIssue, Issue, FieldSet]] = []
        for local, original in pending:
            number = local.issue.id
            remote = remote_by_id.get(number)
            if remote is None:
                self._warn(result.warnings, f"Issue #{number} not found on remote, skipped")
                continue

            remote_moved = original is not None and not equal_for_conflict_check(remote, original)
            if remote_moved and number not in created and not force:
                conflict = self._describe_conflict(original, local, remote)
                result.conflicts.append(conflict)
                logger.warning("Skipping conflict: #%s (remote changed since last sync)", number)
                continue

            baseline = original if original is not None else remote
            changes = compute_changes(baseline, local.issue)
            if changes.state:
                self._transition_state(number, local.issue)
                # The snapshot follows the remote state as soon as it changes
                partial = baseline.model_copy(
                    update={"state": local.issue.state, "state_reason": local.issue.state_reason}
                )
                self._store.write_original(partial)
            elif (
                local.issue.state == STATE_CLOSED
                and local.issue.state_reason
                and local.issue.state_reason != baseline.state_reason
            ):
                self._warn(
                    result.warnings,
                    f"State reason of #{number} is only sent when closing; the remote keeps its own",
                )

            edit = _build_edit(number, local.issue, changes)
            if not edit.is_empty:
                edits.append(edit)
            accepted.append((local, baseline, changes))

        failed: dict[str, str] = {}
        if edits:
            logger.info("Submitting %d field edit(s)", len(edits))
            failed = self._remote(self._remote_service.edit_issues, edits)

        for local, baseline, changes in accepted:
            number = local.issue.id
            if number in failed:
                result.errors.append(f"Failed to update #{number}: {failed[number]}")
                continue

            self._sync_secondary(number, baseline, local.issue, changes, result.warnings)

            synced = local.issue.model_copy(update={"synced_at": now})
            path = self._store.write_issue(synced, Location.for_state(synced.state), previous_path=local.path)
            self._store.write_original(synced)
            change = RecordChange(
                ChangeKind.UPDATED, number, synced.title, path, change_lines(baseline, local.issue)
            )
            result.updated.append(change)
            logger.info("Pushed %s", change.summary)

    def _transition_state(self, number: str, issue: Issue) -> None:
        if issue.state == STATE_CLOSED:
            self._remote(self._remote_service.close_issue, number, issue.state_reason)
            logger.info("Closed #%s (%s)", number, issue.state_reason or "no reason")
        else:
            self._remote(self._remote_service.reopen_issue, number)
            logger.info("Reopened #%s", number)

    def _sync_secondary(
        self,
        number: str,
        baseline: Issue,
        local: Issue,
        changes: FieldSet,
        warnings: list[str],
    ) -> None:
        """Issue type, relationships and projects. Each call only warns on failure."""
        old = baseline.normalized()
        new = local.normalized()

        if changes.issue_type:
            type_id: str | None = None
            if new.issue_type:
                entry = self._catalogs["issue_types"].find(new.issue_type)
                if entry is None:
                    self._warn(warnings, f"Unknown issue type '{new.issue_type}' for #{number}")
                else:
                    type_id = entry.id
            if type_id is not None or not new.issue_type:
                self._best_effort(
                    warnings, f"set type of #{number}", self._remote_service.set_issue_type, number, type_id
                )

        if changes.parent:
            if new.parent and is_local_id(new.parent):
                self._warn(warnings, f"Parent {new.parent} of #{number} has not been pushed yet")
            else:
                self._best_effort(
                    warnings, f"set parent of #{number}", self._remote_service.set_parent, number, new.parent
                )

        # Each edge is recorded as "blocked issue, blocking issue"
        added_edges = [(number, ref) for ref in sorted(set(new.blocked_by) - set(old.blocked_by))]
        added_edges += [(ref, number) for ref in sorted(set(new.blocks) - set(old.blocks))]
        removed_edges = [(number, ref) for ref in sorted(set(old.blocked_by) - set(new.blocked_by))]
        removed_edges += [(ref, number) for ref in sorted(set(old.blocks) - set(new.blocks))]
        for blocked, blocker in added_edges:
            if is_local_id(blocked) or is_local_id(blocker):
                self._warn(warnings, f"Skipping relationship #{blocked} <- #{blocker}: not pushed yet")
                continue
            self._best_effort(
                warnings,
                f"mark #{blocked} blocked by #{blocker}",
                self._remote_service.add_blocked_by,
                blocked,
                blocker,
            )
        for blocked, blocker in removed_edges:
            if is_local_id(blocked) or is_local_id(blocker):
                continue
            self._best_effort(
                warnings,
                f"unmark #{blocked} blocked by #{blocker}",
                self._remote_service.remove_blocked_by,
                blocked,
                blocker,
            )

        if changes.projects:
            projects = self._catalogs["projects"]
            for name in sorted(set(new.projects) ^ set(old.projects)):
                entry = projects.find(name)
                if entry is None:
                    self._warn(warnings, f"Unknown project '{name}' for #{number}")
                    continue
                if name in new.projects:
                    action, call = f"add #{number} to {name}", self._remote_service.add_to_project
                else:
                    action, call = f"remove #{number} from {name}", self._remote_service.remove_from_project
                self._best_effort(warnings, action, call, number, entry.id)

    def _post_comments(self, scope: list[str] | None, conflicted: set[str], result: PushResult) -> None:
        """Post pending comment files for pushed issues, deleting each once posted.

        Comments on conflicted issues wait until the conflict is resolved.
        """
        for comment in self._store.pending_comments():
            if is_local_id(comment.issue_id) or comment.issue_id in conflicted:
                continue
            if scope is not None and comment.issue_id not in scope:
                continue
            try:
                self._remote(self._remote_service.create_comment, comment.issue_id, comment.body)
            except SyncCancelledError:
                raise
            except Exception as e:
                self._warn(result.warnings, f"Failed to post comment on #{comment.issue_id}: {e}")
                continue
            comment.path.unlink(missing_ok=True)
            result.comments_posted += 1
            logger.info("Posted comment on #%s", comment.issue_id)

    # --- Catalogs ---

    def _catalog_fetchers(self) -> dict[str, Callable[[], list]]:
        service = self._remote_service
        return {
            "labels": service.list_labels,
            "milestones": service.list_milestones,
            "issue_types": service.list_issue_types,
            "projects": service.list_projects,
        }

    def _load_catalogs(self, warnings: list[str], save: bool) -> None:
        """Load cached catalogs, fetching any that have never been filled."""
        fetchers = self._catalog_fetchers()
        for name in CATALOGS:
            cache = self._store.load_catalog(name)
            if cache.is_empty and cache.synced_at is None:
                items = self._best_effort(warnings, f"fetch {name}", fetchers[name])
                if items is not None:
                    cache = self._store.build_catalog(name, items)
                    if save:
                        self._store.save_catalog(name, cache)
            self._catalogs[name] = cache

    def _resolve_dependencies(self, selected: list[LocalIssue], dry_run: bool, result: PushResult) -> None:
        """Create labels and milestones referenced locally but unknown remotely."""
        labels = self._catalogs["labels"]
        milestones = self._catalogs["milestones"]

        wanted_labels: dict[str, str] = {}
        wanted_milestones: dict[str, str] = {}
        for local in selected:
            issue = local.issue.normalized()
            for name in issue.labels:
                wanted_labels.setdefault(name.lower(), name)
            if issue.milestone:
                wanted_milestones.setdefault(issue.milestone.lower(), issue.milestone)

        labels_changed = False
        for name in sorted(wanted_labels.values()):
            if labels.contains(name):
                continue
            if dry_run:
                result.planned.append(f"Would create label: {name}")
                continue
            color = random.choice(LABEL_COLORS)
            entry = self._best_effort(
                result.warnings, f"create label '{name}'", self._remote_service.create_label, name, color
            )
            if entry is None:
                continue
            labels.add(entry)
            labels_changed = True
            result.created_labels.append(name)
            logger.info("Created label %s (#%s)", name, color)

        milestones_changed = False
        for title in sorted(wanted_milestones.values()):
            if milestones.contains(title):
                continue
            if dry_run:
                result.planned.append(f"Would create milestone: {title}")
                continue
            entry = self._best_effort(
                result.warnings, f"create milestone '{title}'", self._remote_service.create_milestone, title
            )
            if entry is None:
                continue
            milestones.add(entry)
            milestones_changed = True
            result.created_milestones.append(title)
            logger.info("Created milestone %s", title)

        if labels_changed:
            self._store.save_catalog("labels", labels)
        if milestones_changed:
            self._store.save_catalog("milestones", milestones)

    # --- Helpers ---

    def _remote(self, fn: Callable[..., T], *args: Any) -> T:
        """Call the remote service unless the operation was cancelled."""
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise SyncCancelledError("Operation cancelled")
        return fn(*args)

    def _best_effort(self, warnings: list[str], what: str, fn: Callable[..., T], *args: Any) -> T | None:
        """Call the remote service; a failure becomes a warning."""
        try:
            return self._remote(fn, *args)
        except SyncCancelledError:
            raise
        except Exception as e:
            self._warn(warnings, f"Failed to {what}: {e}")
            return None

    def _warn(self, warnings: list[str], message: str) -> None:
        logger.warning("%s", message)
        warnings.append(message)

    def _record_load_errors(self, loaded: LoadResult, errors: list[str]) -> None:
        errors.extend(str(error) for error in loaded.errors)


def _build_edit(number: str, local: Issue, changes: FieldSet) -> IssueEdit:
    """Field edits for the batched update; labels and assignees are final sets."""
    issue = local.normalized()
    return IssueEdit(
        number=number,
        title=issue.title if changes.title else None,
        body=issue.body if changes.body else None,
        milestone=issue.milestone if changes.milestone else None,
        labels=issue.labels if changes.labels else None,
        assignees=issue.assignees if changes.assignees else None,
    )


def _number_sort_key(number: str) -> tuple[int, str]:
    return (int(number), number) if number.isdigit() else (0, number)
