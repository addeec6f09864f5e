"""Tests for the command line interface."""

from unittest.mock import MagicMock, patch

import pytest

from issuesync.__main__ import main, parse_args
from issuesync.cli import commands
from issuesync.cli.sync import EXIT_INTERRUPTED, run_pull, run_push, run_sync
from issuesync.github.client import GitHubAuthError, GitHubClientError
from issuesync.models import Issue, Location
from issuesync.sync.engine import SyncCancelledError


@pytest.fixture
def github(remote):
    """Route the CLI's GitHub access to the in-memory remote."""
    with (
        patch("issuesync.cli.sync.GitHubClient.from_environment", return_value=MagicMock()),
        patch("issuesync.cli.sync.GitHubIssueService", return_value=remote),
    ):
        yield remote


class TestParseArgs:
    """Tests for argument parsing."""

    def test_pull_options(self):
        args = parse_args(["pull", "1", "2", "--all", "--full", "--label", "bug", "--label", "ui"])

        assert args.command == "pull"
        assert args.ids == ["1", "2"]
        assert args.all_states
        assert args.full
        assert not args.force
        assert args.labels == ["bug", "ui"]

    def test_push_options(self):
        args = parse_args(["push", "--dry-run", "--no-comments"])

        assert args.ids == []
        assert args.dry_run
        assert args.no_comments

    def test_global_options(self, tmp_path):
        args = parse_args(["--project-root", str(tmp_path), "-vv", "status"])

        assert args.project_root == tmp_path
        assert args.verbose == 2

    def test_close_reason_is_validated(self):
        with pytest.raises(SystemExit):
            parse_args(["close", "5", "--reason", "duplicate"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "issuesync 0.1.0" in capsys.readouterr().out


class TestMain:
    """Tests for main()."""

    def test_exit_code_from_command(self, store, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--project-root", str(tmp_path), "list"])

        assert exc_info.value.code == 0

    def test_settings_reach_commands(self, store, tmp_path, monkeypatch):
        """The lock timeout from the environment is passed to commands."""
        monkeypatch.setenv("ISSUESYNC_LOCK_TIMEOUT", "3")

        with patch("issuesync.cli.commands.run_close", return_value=0) as mock_close:
            with pytest.raises(SystemExit):
                main(["--project-root", str(tmp_path), "close", "5", "--reason", "not_planned"])

        mock_close.assert_called_once_with(tmp_path, "5", "not_planned", lock_timeout=3.0)

    def test_keyboard_interrupt(self, tmp_path):
        with patch("issuesync.cli.commands.run_status", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                main(["--project-root", str(tmp_path), "status"])

        assert exc_info.value.code == 130

    def test_log_file(self, store, tmp_path):
        log_file = tmp_path / "logs" / "issuesync.log"

        with pytest.raises(SystemExit):
            main(["--project-root", str(tmp_path), "--log-file", str(log_file), "status"])

        assert "issuesync status" in log_file.read_text()


class TestRunPull:
    """Tests for run_pull."""

    def test_pull_writes_files(self, store, github, capsys):
        code = run_pull(store.project_root)

        assert code == 0
        assert store.existing_ids() == {"1", "2"}
        out = capsys.readouterr().out
        assert "Pulling from acme/widgets" in out
        assert "#1 First issue" in out
        assert "Pulled 2 issue(s)" in out

    def test_conflict_exit_code(self, store, github, capsys):
        """Conflicts are reported and make the command fail."""
        run_pull(store.project_root)
        local = store.find_issue("1")
        store.write_issue(local.issue.model_copy(update={"title": "Local title"}), Location.OPEN, local.path)
        github.modify("1", title="Remote title")

        code = run_pull(store.project_root)

        assert code == 1
        out = capsys.readouterr().out
        assert "both changed: title" in out
        assert "1 conflict(s)" in out

    def test_not_initialized(self, tmp_path, capsys):
        assert run_pull(tmp_path) == 1

    def test_missing_token(self, store, capsys):
        with patch("issuesync.cli.sync.GitHubClient.from_environment", side_effect=GitHubAuthError("No GitHub token found")):
            code = run_pull(store.project_root)

        assert code == 1
        assert "gh auth login" in capsys.readouterr().out

    def test_remote_failure(self, store, github):
        github.failures["list_issues"] = GitHubClientError("HTTP 502")

        assert run_pull(store.project_root) == 1

    def test_cancelled(self, store, github, capsys):
        with patch("issuesync.cli.sync.SyncEngine.pull", side_effect=SyncCancelledError("Interrupted")):
            code = run_pull(store.project_root)

        assert code == EXIT_INTERRUPTED

    def test_lock_held(self, store, github, capsys):
        with store.lock(timeout=1.0):
            code = run_pull(store.project_root, lock_timeout=0.1)

        assert code == 1
        assert "Another issuesync command" in capsys.readouterr().out


class TestRunPush:
    """Tests for run_push and run_sync."""

    def test_dry_run_lists_plan(self, store, github, capsys):
        run_pull(store.project_root)
        local = store.find_issue("2")
        store.write_issue(local.issue.model_copy(update={"title": "Renamed"}), Location.OPEN, local.path)

        code = run_push(store.project_root, dry_run=True)

        assert code == 0
        assert "[DRY RUN]" in capsys.readouterr().out
        assert github.issues["2"].title == "Second issue"

    def test_push_creates(self, store, github, capsys):
        store.write_issue(Issue(id="T0000abcd", title="Brand new"), Location.OPEN)

        code = run_push(store.project_root)

        assert code == 0
        assert "#100 Brand new" in capsys.readouterr().out
        assert store.existing_ids() == {"100"}

    def test_sync_pushes_then_pulls(self, store, github, capsys):
        store.write_issue(Issue(id="T0000abcd", title="Brand new"), Location.OPEN)

        code = run_sync(store.project_root)

        assert code == 0
        assert store.existing_ids() == {"1", "2", "100"}
        out = capsys.readouterr().out
        assert out.index("Pushing to") < out.index("Pulling from")


class TestLocalCommands:
    """Tests for commands that only touch the mirror."""

    def test_init(self, tmp_path, capsys):
        assert commands.run_init(tmp_path, "acme/widgets") == 0
        assert "acme/widgets" in capsys.readouterr().out

    def test_init_invalid(self, tmp_path, capsys):
        assert commands.run_init(tmp_path, "widgets") == 1

    def test_new_and_status(self, store, capsys):
        assert commands.run_new(store.project_root, "Draft idea", ["feature"]) == 0
        assert commands.run_status(store.project_root) == 0

        out = capsys.readouterr().out
        assert "Draft idea" in out
        assert "1 new, 0 modified" in out

    def test_new_with_editor(self, store):
        with patch("subprocess.run", return_value=MagicMock(returncode=0)) as mock_run:
            assert commands.run_new(store.project_root, "Edit me", edit=True, editor="nano") == 0

        assert mock_run.call_args[0][0][0] == "nano"

    def test_close_and_reopen(self, store, capsys):
        store.write_issue(Issue(id="5", title="Done"), Location.OPEN)

        assert commands.run_close(store.project_root, "5", "not_planned") == 0
        assert store.find_issue("5").location == Location.CLOSED
        assert commands.run_reopen(store.project_root, "5") == 0
        assert store.find_issue("5").location == Location.OPEN

    def test_close_unknown(self, store, capsys):
        assert commands.run_close(store.project_root, "404") == 1

    def test_list(self, store, capsys):
        store.write_issue(Issue(id="3", title="Three", labels=["bug"]), Location.OPEN)

        assert commands.run_list(store.project_root) == 0
        assert "Three  [bug]" in capsys.readouterr().out

    def test_status_with_malformed_file(self, store, capsys):
        (store.dir_for(Location.OPEN) / "9-broken.md").write_text("oops\n")

        assert commands.run_status(store.project_root) == 1

    def test_diff(self, store, github, capsys):
        run_pull(store.project_root)
        local = store.find_issue("1")
        store.write_issue(local.issue.model_copy(update={"labels": ["bug", "ui"]}), Location.OPEN, local.path)
        capsys.readouterr()

        assert commands.run_diff(store.project_root, "1") == 0
        assert "labels: +ui" in capsys.readouterr().out

    def test_diff_remote(self, store, github, capsys):
        run_pull(store.project_root)
        github.modify("1", title="Changed remotely")
        capsys.readouterr()

        with (
            patch("issuesync.cli.commands.GitHubClient.from_environment", return_value=MagicMock()),
            patch("issuesync.cli.commands.GitHubIssueService", return_value=github),
        ):
            assert commands.run_diff(store.project_root, "1", remote=True) == 0

        assert "vs remote" in capsys.readouterr().out

    def test_view(self, store, capsys):
        store.write_issue(Issue(id="3", title="Three [x]", labels=["bug"], body="**Bold**\n"), Location.OPEN)

        assert commands.run_view(store.project_root, "3") == 0

        out = capsys.readouterr().out
        assert "#3 Three [x]" in out
        assert "labels: bug" in out
        assert "Bold" in out
