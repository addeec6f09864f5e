"""GitHub transport."""

from .client import (
    GitHubAuthError,
    GitHubClient,
    GitHubClientError,
    GitHubForbiddenError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from .service import GitHubIssueService, issue_from_node

__all__ = [
    "GitHubAuthError",
    "GitHubClient",
    "GitHubClientError",
    "GitHubForbiddenError",
    "GitHubIssueService",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "issue_from_node",
]
