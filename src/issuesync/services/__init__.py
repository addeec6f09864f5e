"""Service layer for business logic."""

from .issue_service import IssueDiff, IssueService

__all__ = [
    "IssueDiff",
    "IssueService",
]
