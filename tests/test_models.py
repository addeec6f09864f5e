"""Tests for data models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from issuesync.models import (
    Issue,
    LabelCache,
    LabelEntry,
    Location,
    RepositoryConfig,
    equal_for_conflict_check,
    equal_ignoring_synced_at,
    is_local_id,
    normalize_body,
)


class TestIssueModel:
    """Tests for the Issue model."""

    def test_defaults(self):
        """New issue has expected defaults."""
        issue = Issue(id="1")
        assert issue.title == ""
        assert issue.labels == []
        assert issue.state == "open"
        assert issue.state_reason is None
        assert issue.parent is None
        assert issue.location == Location.OPEN

    def test_state_is_lowercased(self):
        assert Issue(state="CLOSED").state == "closed"

    def test_invalid_state(self):
        with pytest.raises(ValidationError):
            Issue(state="merged")

    def test_references_accept_numbers_and_hashes(self):
        """References written as 42, "#42" or "T1" all normalize to ids."""
        issue = Issue(parent=42, blocked_by=["#7", 8, "T1a2b3c4d"], blocks="#9")
        assert issue.parent == "42"
        assert issue.blocked_by == ["7", "8", "T1a2b3c4d"]
        assert issue.blocks == ["9"]

    def test_null_lists(self):
        """YAML nulls become empty values."""
        issue = Issue(labels=None, assignees=None, milestone=None, title=None)
        assert issue.labels == []
        assert issue.assignees == []
        assert issue.milestone == ""
        assert issue.title == ""

    def test_single_label_string(self):
        assert Issue(labels="bug").labels == ["bug"]

    def test_is_local(self):
        assert Issue(id="T0000abcd").is_local
        assert not Issue(id="12").is_local

    def test_closed_location(self):
        assert Issue(state="closed").location == Location.CLOSED


class TestLocalIds:
    """Tests for is_local_id."""

    def test_temporary(self):
        assert is_local_id("T3fa9c21b")

    def test_permanent(self):
        assert not is_local_id("42")

    def test_empty(self):
        assert not is_local_id(None)
        assert not is_local_id("")


class TestNormalization:
    """Tests for normalization used by every comparison."""

    def test_body_line_endings(self):
        assert normalize_body("a\r\nb\r\n") == "a\nb\n"

    def test_body_leading_and_trailing_blank_lines(self):
        assert normalize_body("\n\nText\n\n\n") == "Text\n"

    def test_empty_body(self):
        assert normalize_body("\n\n") == ""

    def test_sets_are_sorted_and_deduplicated(self):
        issue = Issue(labels=["b", "a", "b", " "], assignees=["zed", "amy"]).normalized()
        assert issue.labels == ["a", "b"]
        assert issue.assignees == ["amy", "zed"]

    def test_set_order_does_not_count_as_change(self):
        a = Issue(id="1", labels=["x", "y"])
        b = Issue(id="1", labels=["y", "x"])
        assert equal_ignoring_synced_at(a, b)


class TestEquality:
    """Tests for the two equality relations."""

    def test_synced_at_is_ignored(self):
        a = Issue(id="1", title="T", synced_at=datetime(2024, 1, 1, tzinfo=UTC))
        b = Issue(id="1", title="T", synced_at=datetime(2025, 1, 1, tzinfo=UTC))
        assert equal_ignoring_synced_at(a, b)

    def test_provenance_is_ignored(self):
        a = Issue(id="1", author="alice", updated_at=datetime(2024, 1, 1, tzinfo=UTC))
        b = Issue(id="1")
        assert equal_ignoring_synced_at(a, b)

    def test_state_reason_counts_for_strict_equality(self):
        a = Issue(id="1", state="closed", state_reason="completed")
        b = Issue(id="1", state="closed", state_reason="not_planned")
        assert not equal_ignoring_synced_at(a, b)
        assert equal_for_conflict_check(a, b)

    def test_state_counts_for_conflict_check(self):
        assert not equal_for_conflict_check(Issue(id="1"), Issue(id="1", state="closed"))


class TestFrontmatter:
    """Tests for front matter conversion."""

    def test_key_order(self):
        """Keys are written in a fixed order with provenance nested under info."""
        issue = Issue(
            id="1",
            title="T",
            labels=["bug"],
            milestone="v1",
            state="closed",
            state_reason="completed",
            parent="3",
            synced_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC),
            author="alice",
        )
        data = issue.to_frontmatter()
        assert list(data) == ["title", "labels", "milestone", "state", "state_reason", "parent", "synced_at", "info"]
        assert data["parent"] == 3
        assert data["synced_at"] == "2024-01-02T03:04:05+00:00"
        assert data["info"] == {"author": "alice"}

    def test_empty_fields_omitted(self):
        assert Issue(id="1", title="T").to_frontmatter() == {"title": "T", "state": "open"}

    def test_temporary_references_stay_strings(self):
        data = Issue(id="1", blocked_by=["T0000abcd", "4"]).to_frontmatter()
        assert data["blocked_by"] == [4, "T0000abcd"]

    def test_extra_keys_round_trip(self):
        issue = Issue.from_frontmatter("1", {"title": "T", "priority": "high"}, "")
        assert issue.extra == {"priority": "high"}
        assert issue.to_frontmatter()["priority"] == "high"

    def test_from_frontmatter(self):
        metadata = {
            "title": "Fix it",
            "labels": ["bug"],
            "type": "Bug",
            "state": "open",
            "blocked_by": [5],
            "info": {"author": "bob", "created_at": "2024-01-01T00:00:00Z"},
        }
        issue = Issue.from_frontmatter("12", metadata, "\nBody\n")
        assert issue.id == "12"
        assert issue.issue_type == "Bug"
        assert issue.blocked_by == ["5"]
        assert issue.author == "bob"
        assert issue.created_at == datetime(2024, 1, 1, tzinfo=UTC)
        assert issue.body == "Body\n"


class TestRepositoryConfig:
    """Tests for RepositoryConfig."""

    def test_from_slug(self):
        config = RepositoryConfig.from_slug("acme/widgets")
        assert config.owner == "acme"
        assert config.repo == "widgets"
        assert config.base_url == "api.github.com"
        assert config.full_name == "acme/widgets"

    @pytest.mark.parametrize("slug", ["acme", "acme/", "/widgets", "a/b/c"])
    def test_bad_slug(self, slug):
        with pytest.raises(ValueError):
            RepositoryConfig.from_slug(slug)

    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/acme/widgets.git",
            "https://github.com/acme/widgets",
            "git@github.com:acme/widgets.git",
            "ssh://git@github.com/acme/widgets",
        ],
    )
    def test_from_remote_url(self, url):
        config = RepositoryConfig.from_remote_url(url)
        assert config.full_name == "acme/widgets"

    def test_invalid_name(self):
        with pytest.raises(ValidationError):
            RepositoryConfig(owner="acme", repo="wid gets")


class TestCatalogCache:
    """Tests for catalog caches."""

    def test_find_ignores_case(self):
        cache = LabelCache(items=[LabelEntry(name="Bug")])
        assert cache.find("bug").name == "Bug"
        assert cache.contains("BUG")
        assert cache.find("feature") is None

    def test_add_replaces(self):
        cache = LabelCache(items=[LabelEntry(name="bug", color="000000")])
        cache.add(LabelEntry(name="Bug", color="ffffff"))
        assert len(cache.items) == 1
        assert cache.find("bug").color == "ffffff"

    def test_empty(self):
        assert LabelCache().is_empty
        assert LabelCache().synced_at is None

    def test_json_round_trip(self):
        cache = LabelCache(items=[LabelEntry(name="bug")], synced_at=datetime(2024, 1, 1, tzinfo=UTC))
        assert LabelCache.model_validate_json(cache.model_dump_json()) == cache
