"""CLI entry point for issuesync."""

import argparse
from pathlib import Path

from .config import Settings
from .logging import setup_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="issuesync",
        description="Offline mirror of a GitHub issue tracker as markdown files",
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        default=None,
        help="Path to project root containing .issues (default: current directory)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (-v for INFO, -vv for DEBUG)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Path to write logs to file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    init = commands.add_parser("init", help="Create the mirror for a repository")
    init.add_argument("repository", nargs="?", help="owner/repo (default: detected from the git origin remote)")
    init.add_argument("--base-url", default=None, help="API host for GitHub Enterprise (default: api.github.com)")

    pull = commands.add_parser("pull", help="Fetch remote issues into the mirror")
    pull.add_argument("ids", nargs="*", help="Only pull these issues")
    pull.add_argument("--all", action="store_true", dest="all_states", help="Include closed issues")
    pull.add_argument("--full", action="store_true", help="Ignore the last pull time and fetch everything")
    pull.add_argument("--force", action="store_true", help="Overwrite local changes")
    pull.add_argument("--label", action="append", dest="labels", default=[], help="Only issues with this label")

    push = commands.add_parser("push", help="Send local changes to the remote tracker")
    push.add_argument("ids", nargs="*", help="Only push these issues (ids or paths)")
    push.add_argument("--dry-run", action="store_true", help="Show what would be pushed")
    push.add_argument("--force", action="store_true", help="Push even if the remote issue changed")
    push.add_argument("--no-comments", action="store_true", help="Don't post pending comment files")

    commands.add_parser("sync", help="Push, then pull")
    commands.add_parser("status", help="Show local changes not yet pushed")

    list_ = commands.add_parser("list", help="List mirrored issues")
    list_.add_argument("--state", choices=["open", "closed", "all"], default="open")
    list_.add_argument("--label", default=None, help="Only issues with this label")
    list_.add_argument("--local", action="store_true", help="Only issues not yet pushed")

    new = commands.add_parser("new", help="Create a local issue")
    new.add_argument("title")
    new.add_argument("--label", action="append", dest="labels", default=[])
    new.add_argument("--body", default="")
    new.add_argument("--edit", action="store_true", help="Open the new file in $EDITOR")

    close = commands.add_parser("close", help="Close an issue locally")
    close.add_argument("id")
    close.add_argument("--reason", choices=["completed", "not_planned"], default="completed")

    reopen = commands.add_parser("reopen", help="Reopen an issue locally")
    reopen.add_argument("id")

    diff = commands.add_parser("diff", help="Show local changes field by field")
    diff.add_argument("id", nargs="?", default=None)
    diff.add_argument("--remote", action="store_true", help="Compare with the live remote issue")

    view = commands.add_parser("view", help="Render an issue")
    view.add_argument("id")

    return parser.parse_args(argv)


def run_command(args: argparse.Namespace, settings: Settings) -> int:
    """Dispatch a parsed command and return its exit code."""
    # Import here so --help and --version stay fast
    from .cli import commands
    from .cli.sync import run_pull, run_push, run_sync

    root = settings.project_root
    timeout = settings.lock_timeout

    if args.command == "init":
        return commands.run_init(root, args.repository, args.base_url, lock_timeout=timeout)
    if args.command == "pull":
        return run_pull(
            root,
            args.ids,
            all_states=args.all_states,
            full=args.full,
            force=args.force,
            labels=args.labels,
            lock_timeout=timeout,
        )
    if args.command == "push":
        return run_push(
            root,
            args.ids,
            dry_run=args.dry_run,
            force=args.force,
            post_comments=not args.no_comments,
            lock_timeout=timeout,
        )
    if args.command == "sync":
        return run_sync(root, lock_timeout=timeout)
    if args.command == "status":
        return commands.run_status(root)
    if args.command == "list":
        return commands.run_list(root, args.state, args.label, args.local)
    if args.command == "new":
        return commands.run_new(
            root,
            args.title,
            args.labels,
            args.body,
            edit=args.edit,
            editor=settings.editor,
            lock_timeout=timeout,
        )
    if args.command == "close":
        return commands.run_close(root, args.id, args.reason, lock_timeout=timeout)
    if args.command == "reopen":
        return commands.run_reopen(root, args.id, lock_timeout=timeout)
    if args.command == "diff":
        return commands.run_diff(root, args.id, args.remote)
    if args.command == "view":
        return commands.run_view(root, args.id)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    # Build settings from CLI args
    settings_kwargs: dict = {}
    if args.project_root:
        settings_kwargs["project_root"] = args.project_root
    if args.verbose:
        settings_kwargs["verbose"] = args.verbose
    if args.log_file:
        settings_kwargs["log_file"] = args.log_file

    settings = Settings(**settings_kwargs)

    setup_logging(settings.verbose, settings.log_file, command=args.command)

    try:
        exit_code = run_command(args, settings)
    except KeyboardInterrupt:
        print()
        exit_code = 130
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
