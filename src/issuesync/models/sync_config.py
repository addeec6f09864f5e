"""Configuration model for a mirrored repository (.issues/.sync/config.yml)."""

from __future__ import annotations

import re
from datetime import datetime
from typing import ClassVar

from pydantic import BaseModel, Field, field_validator

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

# https://github.com/owner/repo(.git) or git@github.com:owner/repo(.git)
_REMOTE_URL_PATTERN = re.compile(r"[:/](?P<owner>[A-Za-z0-9_.-]+)/(?P<repo>[A-Za-z0-9_.-]+?)(?:\.git)?/?$")


class RepositoryConfig(BaseModel):
    """Which remote repository the local mirror tracks, and pull bookkeeping."""

    DEFAULT_BASE_URL: ClassVar[str] = "api.github.com"

    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
    base_url: str = DEFAULT_BASE_URL
    last_full_pull: datetime | None = None

    @field_validator("owner", "repo")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate owner and repo names contain only characters GitHub allows."""
        v = v.strip()
        if not _NAME_PATTERN.match(v):
            raise ValueError(f"Invalid repository component: '{v}'")
        return v

    @property
    def full_name(self) -> str:
        """Repository in owner/repo form."""
        return f"{self.owner}/{self.repo}"

    @classmethod
    def from_slug(cls, slug: str) -> RepositoryConfig:
        """Build a config from an 'owner/repo' string."""
        owner, sep, repo = slug.strip().partition("/")
        if not sep or not owner or not repo or "/" in repo:
            raise ValueError(f"Expected owner/repo, got '{slug}'")
        return cls(owner=owner, repo=repo)

    @classmethod
    def from_remote_url(cls, url: str) -> RepositoryConfig:
        """Build a config from a git remote URL (https or ssh form)."""
        match = _REMOTE_URL_PATTERN.search(url.strip())
        if not match:
            raise ValueError(f"Cannot determine owner/repo from remote URL '{url}'")
        return cls(owner=match.group("owner"), repo=match.group("repo"))
