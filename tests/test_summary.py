"""Tests for per-field change summaries."""

from issuesync.models import Issue
from issuesync.sync import change_lines


class TestChangeLines:
    """Tests for change_lines."""

    def test_no_changes(self):
        issue = Issue(id="1", title="Same", labels=["a"])

        assert change_lines(issue, issue) == []

    def test_title(self):
        assert change_lines(Issue(title="Old"), Issue(title="New")) == ['title: "Old" -> "New"']

    def test_set_fields_show_deltas(self):
        old = Issue(labels=["bug", "ui"], assignees=["alice"])
        new = Issue(labels=["bug", "urgent"], assignees=[])

        assert change_lines(old, new) == ["labels: +urgent, -ui", "assignees: -alice"]

    def test_state_and_reason(self):
        old = Issue(state="open")
        new = Issue(state="closed", state_reason="not_planned")

        assert change_lines(old, new) == ["state: open -> closed", "state_reason: <none> -> not_planned"]

    def test_relationships(self):
        old = Issue(parent="3", blocked_by=["4"])
        new = Issue(blocked_by=["4", "5"], blocks=["9"])

        assert change_lines(old, new) == [
            "parent: #3 -> <none>",
            "blocked_by: +#5",
            "blocks: +#9",
        ]

    def test_milestone_and_type(self):
        old = Issue()
        new = Issue(milestone="v1.0", issue_type="Bug")

        assert change_lines(old, new) == ['milestone: <none> -> "v1.0"', "type: <none> -> Bug"]

    def test_body_lengths(self):
        """Bodies are summarized by size rather than printed."""
        assert change_lines(Issue(), Issue(body="abc\n")) == ["body: <empty> -> 4 chars"]
        assert change_lines(Issue(body="abc\n"), Issue()) == ["body: 4 chars -> <empty>"]

    def test_normalization_hides_noise(self):
        """Order and trailing blank lines are not reported."""
        old = Issue(labels=["b", "a"], body="Text\n")
        new = Issue(labels=["a", "b"], body="Text\n\n\n")

        assert change_lines(old, new) == []
