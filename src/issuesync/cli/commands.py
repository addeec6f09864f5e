"""Commands that work on the local mirror: init, new, close, reopen, status, list, diff, view."""

import logging
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape

from ..github.client import GitHubAuthError, GitHubClient, GitHubClientError
from ..github.service import GitHubIssueService
from ..repositories import LocalStore, StoreError
from ..services.issue_service import IssueService
from ..utils.lock import DEFAULT_LOCK_TIMEOUT, LockTimeoutError
from .output import error, header, info, record, success, warn

logger = logging.getLogger(__name__)


def _service(project_root: Path, lock_timeout: float = DEFAULT_LOCK_TIMEOUT, editor: str | None = None) -> IssueService:
    return IssueService(LocalStore(project_root), lock_timeout=lock_timeout, editor=editor)


def run_init(
    project_root: Path,
    slug: str | None = None,
    base_url: str | None = None,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> int:
    """Create the .issues layout and record which repository it mirrors.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    try:
        config = _service(project_root, lock_timeout).init_repository(slug, base_url)
    except (ValueError, StoreError, LockTimeoutError) as e:
        error(str(e))
        return 1

    success(f"Initialized issue mirror for {config.full_name}")
    info("Run 'issuesync pull' to fetch issues")
    return 0


def run_new(
    project_root: Path,
    title: str,
    labels: list[str] | None = None,
    body: str = "",
    edit: bool = False,
    editor: str | None = None,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> int:
    """Create a local record; it gets a permanent number on the next push."""
    service = _service(project_root, lock_timeout, editor)
    try:
        local = service.new_issue(title, labels, body)
    except (ValueError, StoreError, LockTimeoutError) as e:
        error(str(e))
        return 1

    success(f"Created #{local.issue.id} {local.issue.title}")
    info(str(local.path))
    if edit and not service.open_in_editor(local):
        warn("Could not open an editor (set $EDITOR)")
    return 0


def run_close(
    project_root: Path,
    ref: str,
    reason: str = "completed",
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> int:
    """Close a record locally; the state change is sent on the next push."""
    try:
        local = _service(project_root, lock_timeout).close(ref, reason)
    except (ValueError, StoreError, LockTimeoutError) as e:
        error(str(e))
        return 1

    success(f"Closed #{local.issue.id} {local.issue.title} ({reason})")
    return 0


def run_reopen(project_root: Path, ref: str, lock_timeout: float = DEFAULT_LOCK_TIMEOUT) -> int:
    """Reopen a record locally."""
    try:
        local = _service(project_root, lock_timeout).reopen(ref)
    except (StoreError, LockTimeoutError) as e:
        error(str(e))
        return 1

    success(f"Reopened #{local.issue.id} {local.issue.title}")
    return 0


def run_status(project_root: Path) -> int:
    """Show records with local changes not yet pushed."""
    try:
        report = _service(project_root).status()
    except StoreError as e:
        error(str(e))
        return 1

    for change in report.new:
        record(change.kind.value, f"#{change.issue_id} {change.title}")
    for change in report.modified:
        record(change.kind.value, f"#{change.issue_id} {change.title}", change.details)
    for message in report.errors:
        error(message)

    if report.is_clean:
        info("No local changes")
    else:
        print()
        info(f"{len(report.new)} new, {len(report.modified)} modified (run 'issuesync push' to send them)")
    return 1 if report.errors else 0


def run_list(
    project_root: Path,
    state: str = "open",
    label: str | None = None,
    local_only: bool = False,
) -> int:
    """List mirrored records."""
    try:
        issues = _service(project_root).list_issues(state, label, local_only)
    except (ValueError, StoreError) as e:
        error(str(e))
        return 1

    for local in issues:
        issue = local.issue
        labels = f"  [{', '.join(issue.labels)}]" if issue.labels else ""
        closed = f"  ({issue.state})" if state == "all" and issue.state != "open" else ""
        print(f"#{issue.id:<10} {issue.title}{labels}{closed}")
    if not issues:
        info("No issues")
    return 0


def run_diff(project_root: Path, ref: str | None = None, remote: bool = False) -> int:
    """Show field changes against the snapshot, or against the live remote issue."""
    service = _service(project_root)
    try:
        if ref is None:
            diffs = service.diff_all()
        elif remote:
            diffs = [_remote_diff(service, project_root, ref)]
        else:
            diffs = [service.diff(ref)]
    except GitHubAuthError as e:
        error(f"GitHub authentication failed: {e}")
        info("Set GITHUB_TOKEN environment variable or run 'gh auth login'")
        return 1
    except GitHubClientError as e:
        error(f"GitHub error: {e}")
        return 1
    except StoreError as e:
        error(str(e))
        return 1

    shown = [diff for diff in diffs if not diff.is_empty]
    for diff in shown:
        header(f"#{diff.issue_id} {diff.title} (vs {diff.against})")
        for line in diff.lines:
            print(f"    {line}")
    if not shown:
        info("No differences")
    return 0


def run_view(project_root: Path, ref: str) -> int:
    """Render one record in the terminal."""
    try:
        local = _service(project_root).get(ref)
    except StoreError as e:
        error(str(e))
        return 1

    issue = local.issue
    console = Console()
    console.print(f"[bold]#{issue.id} {escape(issue.title)}[/bold]  [dim]{issue.state}[/dim]")
    meta = [
        ("labels", ", ".join(issue.labels)),
        ("assignees", ", ".join(issue.assignees)),
        ("milestone", issue.milestone),
        ("type", issue.issue_type),
        ("projects", ", ".join(issue.projects)),
        ("parent", f"#{issue.parent}" if issue.parent else ""),
        ("blocked by", ", ".join(f"#{ref}" for ref in issue.blocked_by)),
        ("blocks", ", ".join(f"#{ref}" for ref in issue.blocks)),
        ("author", issue.author),
    ]
    for name, value in meta:
        if value:
            console.print(f"[dim]{name}:[/dim] {escape(value)}")
    console.print()
    console.print(Markdown(issue.body or "_No description_"))
    return 0


def _remote_diff(service: IssueService, project_root: Path, ref: str):
    config = LocalStore(project_root).load_config()
    with GitHubClient.from_environment(config.base_url) as client:
        return service.diff(ref, GitHubIssueService(client, config.owner, config.repo))
