"""Cached catalogs of remote-side named entities.

Catalogs let push resolve label and milestone names without asking the
remote service every time. They are never authoritative: the remote side
always wins when the cache is refreshed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field


class CatalogEntry(BaseModel):
    """Base class for catalog entries, looked up by a case-insensitive key."""

    @property
    def key(self) -> str:
        raise NotImplementedError


class LabelEntry(CatalogEntry):
    """A repository label."""

    name: str
    color: str = ""

    @property
    def key(self) -> str:
        return self.name


class MilestoneEntry(CatalogEntry):
    """A repository milestone."""

    title: str
    number: int | None = None
    description: str = ""
    due_on: datetime | None = None
    state: str = "open"

    @property
    def key(self) -> str:
        return self.title


class IssueTypeEntry(CatalogEntry):
    """An issue type defined by the owning organization."""

    id: str = ""
    name: str
    description: str = ""

    @property
    def key(self) -> str:
        return self.name


class ProjectEntry(CatalogEntry):
    """A project (v2) issues can be added to."""

    id: str = ""
    title: str

    @property
    def key(self) -> str:
        return self.title


EntryT = TypeVar("EntryT", bound=CatalogEntry)


class CatalogCache(BaseModel, Generic[EntryT]):
    """The full known set of one catalog plus when it was last refreshed."""

    items: list[EntryT] = Field(default_factory=list)
    synced_at: datetime | None = None

    def find(self, name: str) -> EntryT | None:
        """Find an entry by name, ignoring case."""
        wanted = name.strip().lower()
        for item in self.items:
            if item.key.lower() == wanted:
                return item
        return None

    def contains(self, name: str) -> bool:
        return self.find(name) is not None

    def add(self, item: EntryT) -> None:
        """Add an entry, replacing any existing entry with the same key."""
        existing = self.find(item.key)
        if existing is not None:
            self.items.remove(existing)
        self.items.append(item)

    def names(self) -> list[str]:
        return sorted(item.key for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items


LabelCache = CatalogCache[LabelEntry]
MilestoneCache = CatalogCache[MilestoneEntry]
IssueTypeCache = CatalogCache[IssueTypeEntry]
ProjectCache = CatalogCache[ProjectEntry]
