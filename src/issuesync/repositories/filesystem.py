"""Filesystem-backed local store for the issue mirror.

Layout under the project root:

    .issues/
      open/<id>-<slug>.md
      closed/<id>-<slug>.md
      .sync/config.yml
      .sync/lock
      .sync/originals/<id>.md
      .sync/labels.json, milestones.json, issue_types.json, projects.json
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..models import (
    CatalogCache,
    Issue,
    IssueTypeCache,
    LabelCache,
    Location,
    MilestoneCache,
    ProjectCache,
    RepositoryConfig,
)
from ..sync.file_mapper import (
    generate_comment_filename,
    generate_issue_filename,
    generate_original_filename,
    parse_comment_filename,
    parse_issue_filename,
)
from ..utils.datetime import now_utc
from ..utils.lock import DEFAULT_LOCK_TIMEOUT, file_lock
from .errors import IssueNotFoundError, MalformedIssueError, NotInitializedError
from .markdown import parse_issue, render_issue

logger = logging.getLogger(__name__)

ISSUES_DIR = ".issues"
SYNC_DIR = ".sync"
ORIGINALS_DIR = "originals"
CONFIG_FILE = "config.yml"
LOCK_FILE = "lock"

CATALOGS: dict[str, tuple[str, type[CatalogCache]]] = {
    "labels": ("labels.json", LabelCache),
    "milestones": ("milestones.json", MilestoneCache),
    "issue_types": ("issue_types.json", IssueTypeCache),
    "projects": ("projects.json", ProjectCache),
}


@dataclass
class LocalIssue:
    """An issue loaded from the mirror together with where it lives."""

    issue: Issue
    path: Path
    location: Location


@dataclass
class LoadResult:
    """All mirror files, plus the ones that could not be read."""

    issues: list[LocalIssue] = field(default_factory=list)
    errors: list[MalformedIssueError] = field(default_factory=list)
    broken_ids: set[str] = field(default_factory=set)

    def by_id(self) -> dict[str, LocalIssue]:
        return {local.issue.id: local for local in self.issues}


@dataclass
class PendingComment:
    """A comment written locally, to be posted on the next push."""

    issue_id: str
    path: Path
    body: str


class LocalStore:
    """
    Local mirror of the remote tracker.

    Each issue is one markdown file with YAML front matter. The last
    synchronized copy of each issue is kept under .sync/originals and serves
    as the common base for three-way comparison.
    """

    def __init__(self, project_root: Path) -> None:
        self.project_root = project_root
        self.root = project_root / ISSUES_DIR
        self.sync_dir = self.root / SYNC_DIR
        self.originals_dir = self.sync_dir / ORIGINALS_DIR

    # --- Layout ---

    def dir_for(self, location: Location) -> Path:
        """Directory holding issues in the given container."""
        return self.root / location.value

    def path_for(self, issue: Issue, location: Location) -> Path:
        """Mirror path an issue is written to in the given container."""
        return self.dir_for(location) / generate_issue_filename(issue.id, issue.title)

    def original_path(self, issue_id: str) -> Path:
        return self.originals_dir / generate_original_filename(issue_id)

    @property
    def config_path(self) -> Path:
        return self.sync_dir / CONFIG_FILE

    def is_initialized(self) -> bool:
        return self.config_path.exists()

    def ensure_layout(self) -> None:
        """Create the directory structure if it doesn't exist."""
        for location in Location:
            self.dir_for(location).mkdir(parents=True, exist_ok=True)
        self.originals_dir.mkdir(parents=True, exist_ok=True)

    def lock(self, timeout: float = DEFAULT_LOCK_TIMEOUT) -> AbstractContextManager[None]:
        """Exclusive lock over the store, held by every mutating command."""
        return file_lock(self.sync_dir / LOCK_FILE, timeout)

    # --- Config ---

    def load_config(self) -> RepositoryConfig:
        """Load .sync/config.yml.

        Raises:
            NotInitializedError: If the store has not been initialized
        """
        if not self.config_path.exists():
            raise NotInitializedError(
                f"No issue mirror found in {self.project_root} (run 'issuesync init' first)"
            )
        try:
            data = yaml.safe_load(self.config_path.read_text()) or {}
            return RepositoryConfig.model_validate(data)
        except (yaml.YAMLError, ValidationError) as e:
            raise NotInitializedError(f"Invalid config {self.config_path}: {e}") from e

    def save_config(self, config: RepositoryConfig) -> None:
        self.sync_dir.mkdir(parents=True, exist_ok=True)
        data = config.model_dump(mode="json")
        _write_atomic(self.config_path, yaml.safe_dump(data, sort_keys=False))

    # --- Mirror files ---

    def load_issues(self) -> LoadResult:
        """Load every mirror file from both containers.

        Malformed files are reported in the result instead of aborting the load.
        """
        result = LoadResult()
        seen: dict[str, Path] = {}

        for location, path in self._iter_issue_files():
            issue_id = parse_issue_filename(path.name).issue_id
            if issue_id in seen:
                error = MalformedIssueError(f"duplicate file for #{issue_id} (also {seen[issue_id]})", path)
                logger.warning("%s", error)
                result.errors.append(error)
                result.broken_ids.add(issue_id)
                continue
            seen[issue_id] = path

            try:
                issue = self.read_issue(path)
            except MalformedIssueError as e:
                logger.warning("Failed to parse issue file %s: %s", path, e.message)
                result.errors.append(e)
                result.broken_ids.add(issue_id)
                continue
            result.issues.append(LocalIssue(issue=issue, path=path, location=location))

        logger.debug("Loaded %d issue(s), %d error(s)", len(result.issues), len(result.errors))
        return result

    def read_issue(self, path: Path) -> Issue:
        """Parse one mirror file; the id comes from the filename."""
        parsed = parse_issue_filename(path.name)
        if parsed is None:
            raise MalformedIssueError("not an issue filename", path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedIssueError(f"unreadable: {e}", path) from e
        return parse_issue(text, parsed.issue_id, path)

    def find_issue(self, ref: str) -> LocalIssue:
        """Find a mirror file by id ("42", "#42", "T1a2b3c4d") or by path.

        Raises:
            IssueNotFoundError: If nothing matches
        """
        candidate = Path(ref)
        if candidate.suffix == ".md" and candidate.exists():
            issue = self.read_issue(candidate)
            container = candidate.resolve().parent.name
            location = Location(container) if container in (loc.value for loc in Location) else issue.location
            return LocalIssue(issue=issue, path=candidate, location=location)

        wanted = ref.strip().lstrip("#")
        for location, path in self._iter_issue_files():
            if parse_issue_filename(path.name).issue_id == wanted:
                return LocalIssue(issue=self.read_issue(path), path=path, location=location)
        raise IssueNotFoundError(f"Issue {ref} not found")

    def existing_ids(self) -> set[str]:
        """Ids of every mirror file, readable or not."""
        return {parse_issue_filename(path.name).issue_id for _, path in self._iter_issue_files()}

    def write_issue(self, issue: Issue, location: Location, previous_path: Path | None = None) -> Path:
        """Write an issue into a container, moving it from previous_path if given.

        The old file is renamed before writing so an id never has two files.

        Returns:
            The path written
        """
        target = self.path_for(issue, location)
        target.parent.mkdir(parents=True, exist_ok=True)
        if previous_path is not None and previous_path != target and previous_path.exists():
            previous_path.rename(target)
            logger.info("Renamed %s -> %s", previous_path, target)
        _write_atomic(target, render_issue(issue))
        return target

    # --- Snapshots ---

    def read_original(self, issue_id: str) -> Issue | None:
        """Load the snapshot for an id, or None if it was never synchronized."""
        path = self.original_path(issue_id)
        if not path.exists():
            return None
        return parse_issue(path.read_text(encoding="utf-8"), issue_id, path)

    def write_original(self, issue: Issue) -> None:
        self.originals_dir.mkdir(parents=True, exist_ok=True)
        _write_atomic(self.original_path(issue.id), render_issue(issue))

    def original_ids(self) -> list[str]:
        """Ids that have a snapshot."""
        if not self.originals_dir.exists():
            return []
        return sorted(path.stem for path in self.originals_dir.glob("*.md"))

    # --- Catalog caches ---

    def load_catalog(self, name: str) -> CatalogCache:
        """Load a catalog cache, falling back to an empty one if missing or unreadable."""
        filename, model = CATALOGS[name]
        path = self.sync_dir / filename
        if not path.exists():
            return model()
        try:
            return model.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable %s cache %s: %s", name, path, e)
            return model()

    def build_catalog(self, name: str, items: list) -> CatalogCache:
        """Build a fresh cache for name from a complete remote listing."""
        _, model = CATALOGS[name]
        return model(items=items, synced_at=now_utc())

    def save_catalog(self, name: str, cache: CatalogCache) -> None:
        filename, _ = CATALOGS[name]
        self.sync_dir.mkdir(parents=True, exist_ok=True)
        _write_atomic(self.sync_dir / filename, cache.model_dump_json(indent=2) + "\n")

    # --- Pending comments ---

    def pending_comments(self) -> list[PendingComment]:
        """Non-empty comment files waiting to be posted."""
        comments = []
        for location in Location:
            directory = self.dir_for(location)
            if not directory.exists():
                continue
            for path in sorted(directory.glob("*.comment.md")):
                issue_id = parse_comment_filename(path.name)
                body = path.read_text(encoding="utf-8").strip()
                if issue_id and body:
                    comments.append(PendingComment(issue_id=issue_id, path=path, body=body + "\n"))
        return comments

    def rename_comment(self, old_id: str, new_id: str) -> None:
        """Carry a pending comment over to a promoted id."""
        for location in Location:
            path = self.dir_for(location) / generate_comment_filename(old_id)
            if path.exists():
                path.rename(path.with_name(generate_comment_filename(new_id)))

    # --- Private Methods ---

    def _iter_issue_files(self) -> Iterator[tuple[Location, Path]]:
        for location in Location:
            directory = self.dir_for(location)
            if not directory.exists():
                continue
            for path in sorted(directory.glob("*.md")):
                if parse_issue_filename(path.name) is not None:
                    yield location, path


def _write_atomic(path: Path, content: str) -> None:
    """Write via a temp file in the same directory, then replace."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
