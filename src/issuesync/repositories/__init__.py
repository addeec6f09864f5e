"""Repository layer for data access."""

from .errors import IssueNotFoundError, MalformedIssueError, NotInitializedError, StoreError
from .filesystem import LoadResult, LocalIssue, LocalStore, PendingComment
from .protocol import RemoteIssueService

__all__ = [
    "IssueNotFoundError",
    "LoadResult",
    "LocalIssue",
    "LocalStore",
    "MalformedIssueError",
    "NotInitializedError",
    "PendingComment",
    "RemoteIssueService",
    "StoreError",
]
