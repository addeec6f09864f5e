"""Tests for the markdown file representation."""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from issuesync.models import Issue
from issuesync.repositories import MalformedIssueError
from issuesync.repositories.markdown import parse_issue, render_issue


class TestRenderIssue:
    """Tests for render_issue."""

    def test_layout(self):
        """Front matter, blank line, then the body."""
        issue = Issue(id="1", title="Fix login", labels=["bug"], body="Steps\n")

        text = render_issue(issue)

        assert text == "---\ntitle: Fix login\nlabels:\n- bug\nstate: open\n---\n\nSteps\n"

    def test_empty_body(self):
        text = render_issue(Issue(id="1", title="T"))

        assert text.endswith("---\n\n")

    def test_id_is_not_written(self):
        assert "id:" not in render_issue(Issue(id="42", title="T"))

    def test_numeric_title_is_quoted(self):
        """A title that looks like a number survives a round trip as text."""
        issue = parse_issue(render_issue(Issue(id="1", title="2024")), "1")

        assert issue.title == "2024"


class TestParseIssue:
    """Tests for parse_issue."""

    def test_round_trip(self):
        issue = Issue(
            id="5",
            title="Everything",
            labels=["a", "b"],
            assignees=["alice"],
            milestone="v1",
            issue_type="Bug",
            projects=["Roadmap"],
            state="closed",
            state_reason="completed",
            parent="2",
            blocked_by=["3", "T0000abcd"],
            blocks=["4"],
            synced_at=datetime(2024, 1, 2, tzinfo=UTC),
            author="alice",
            body="Line one\n\nLine two\n",
        )

        parsed = parse_issue(render_issue(issue), "5")

        assert parsed == issue.normalized()

    def test_crlf_and_bom(self):
        text = "\ufeff---\r\ntitle: Windows\r\n---\r\n\r\nBody\r\n"

        issue = parse_issue(text, "1")

        assert issue.title == "Windows"
        assert issue.body == "Body\n"

    def test_empty_front_matter(self):
        issue = parse_issue("---\n---\nJust text\n", "1")

        assert issue.title == ""
        assert issue.body == "Just text\n"

    def test_missing_front_matter(self):
        with pytest.raises(MalformedIssueError, match="missing front matter"):
            parse_issue("title: nope\n", "1")

    def test_unterminated_front_matter(self):
        with pytest.raises(MalformedIssueError, match="unterminated front matter"):
            parse_issue("---\ntitle: nope\n", "1")

    def test_invalid_yaml(self):
        with pytest.raises(MalformedIssueError, match="invalid front matter"):
            parse_issue("---\ntitle: [unclosed\n---\n", "1")

    def test_not_a_mapping(self):
        with pytest.raises(MalformedIssueError, match="not a mapping"):
            parse_issue("---\n- a\n- b\n---\n", "1")

    def test_invalid_field_value(self):
        with pytest.raises(MalformedIssueError, match="invalid value for 'state'"):
            parse_issue("---\ntitle: T\nstate: merged\n---\n", "1")

    def test_error_carries_path(self):
        path = Path("/tmp/1-x.md")

        with pytest.raises(MalformedIssueError) as exc_info:
            parse_issue("nothing", "1", path)

        assert exc_info.value.path == path
        assert str(exc_info.value).startswith(str(path))
