"""Tests for LocalStore."""

import pytest

from issuesync.models import Issue, LabelEntry, Location, RepositoryConfig
from issuesync.repositories import IssueNotFoundError, LocalStore, NotInitializedError


class TestLayout:
    """Tests for the store layout and config."""

    def test_not_initialized(self, tmp_path):
        store = LocalStore(tmp_path)

        assert not store.is_initialized()
        with pytest.raises(NotInitializedError):
            store.load_config()

    def test_config_round_trip(self, store):
        assert store.is_initialized()
        assert store.load_config() == RepositoryConfig(owner="acme", repo="widgets")

    def test_config_is_yaml(self, store):
        text = store.config_path.read_text()

        assert "owner: acme" in text
        assert "repo: widgets" in text

    def test_invalid_config(self, store):
        store.config_path.write_text("owner: [\n")

        with pytest.raises(NotInitializedError, match="Invalid config"):
            store.load_config()

    def test_paths(self, store, tmp_path):
        issue = Issue(id="12", title="Fix: the thing!")

        assert store.path_for(issue, Location.OPEN) == tmp_path / ".issues" / "open" / "12-fix-the-thing.md"
        assert store.original_path("12") == tmp_path / ".issues" / ".sync" / "originals" / "12.md"


class TestIssueFiles:
    """Tests for reading and writing mirror files."""

    def test_write_and_load(self, store):
        store.write_issue(Issue(id="1", title="One"), Location.OPEN)
        store.write_issue(Issue(id="2", title="Two", state="closed"), Location.CLOSED)

        loaded = store.load_issues()

        assert [(local.issue.id, local.location) for local in loaded.issues] == [
            ("1", Location.OPEN),
            ("2", Location.CLOSED),
        ]
        assert loaded.errors == []

    def test_write_renames_previous_file(self, store):
        """Writing under a new title or container leaves a single file."""
        old = store.write_issue(Issue(id="1", title="Old name"), Location.OPEN)

        new = store.write_issue(Issue(id="1", title="New name", state="closed"), Location.CLOSED, previous_path=old)

        assert not old.exists()
        assert new.name == "1-new-name.md"
        assert store.existing_ids() == {"1"}

    def test_id_comes_from_filename(self, store):
        path = store.dir_for(Location.OPEN) / "9-anything.md"
        path.write_text("---\ntitle: Nine\n---\n\nBody\n")

        assert store.find_issue("9").issue.id == "9"

    def test_malformed_file_is_reported(self, store):
        store.write_issue(Issue(id="1", title="Good"), Location.OPEN)
        (store.dir_for(Location.OPEN) / "2-bad.md").write_text("no front matter")

        loaded = store.load_issues()

        assert [local.issue.id for local in loaded.issues] == ["1"]
        assert len(loaded.errors) == 1
        assert loaded.errors[0].message == "missing front matter"
        assert loaded.broken_ids == {"2"}

    def test_duplicate_id_is_reported(self, store):
        """Two files for one id: the second is flagged and the id is unsafe to overwrite."""
        store.write_issue(Issue(id="1", title="One"), Location.OPEN)
        store.write_issue(Issue(id="1", title="One again", state="closed"), Location.CLOSED)

        loaded = store.load_issues()

        assert len(loaded.issues) == 1
        assert "duplicate file for #1" in loaded.errors[0].message
        assert loaded.broken_ids == {"1"}

    def test_ignores_other_files(self, store):
        (store.dir_for(Location.OPEN) / "README.txt").write_text("hi")
        (store.dir_for(Location.OPEN) / "1.comment.md").write_text("a comment")

        assert store.load_issues().issues == []

    def test_find_by_path(self, store):
        path = store.write_issue(Issue(id="3", title="Three"), Location.OPEN)

        local = store.find_issue(str(path))

        assert local.issue.id == "3"
        assert local.location == Location.OPEN

    def test_find_missing(self, store):
        with pytest.raises(IssueNotFoundError):
            store.find_issue("404")

    def test_no_temp_files_left_behind(self, store):
        store.write_issue(Issue(id="1", title="One"), Location.OPEN)

        assert [p.name for p in store.dir_for(Location.OPEN).iterdir()] == ["1-one.md"]


class TestSnapshots:
    """Tests for snapshots under .sync/originals."""

    def test_missing_snapshot(self, store):
        assert store.read_original("1") is None

    def test_round_trip(self, store):
        issue = Issue(id="1", title="One", labels=["bug"], body="Text\n")

        store.write_original(issue)

        assert store.read_original("1") == issue
        assert store.original_ids() == ["1"]


class TestCatalogs:
    """Tests for cached catalogs."""

    def test_missing_cache_is_empty(self, store):
        cache = store.load_catalog("labels")

        assert cache.is_empty
        assert cache.synced_at is None

    def test_save_and_load(self, store):
        cache = store.build_catalog("labels", [LabelEntry(name="bug", color="d73a4a")])

        store.save_catalog("labels", cache)

        loaded = store.load_catalog("labels")
        assert loaded.names() == ["bug"]
        assert loaded.synced_at is not None

    def test_corrupt_cache_is_ignored(self, store):
        (store.sync_dir / "labels.json").write_text("{not json")

        assert store.load_catalog("labels").is_empty


class TestPendingComments:
    """Tests for comment files."""

    def test_lists_non_empty_comments(self, store):
        (store.dir_for(Location.OPEN) / "1.comment.md").write_text("Hello\n\n")
        (store.dir_for(Location.CLOSED) / "2.comment.md").write_text("   \n")

        comments = store.pending_comments()

        assert [(c.issue_id, c.body) for c in comments] == [("1", "Hello\n")]

    def test_rename_comment(self, store):
        (store.dir_for(Location.OPEN) / "T0000abcd.comment.md").write_text("Hi\n")

        store.rename_comment("T0000abcd", "88")

        assert (store.dir_for(Location.OPEN) / "88.comment.md").exists()
        assert not (store.dir_for(Location.OPEN) / "T0000abcd.comment.md").exists()
