"""Errors raised by the local store."""

from pathlib import Path


class StoreError(Exception):
    """Base exception for local store errors."""

    pass


class NotInitializedError(StoreError):
    """The project has no .issues directory or config."""

    pass


class IssueNotFoundError(StoreError):
    """No local file matches the requested id or path."""

    pass


class MalformedIssueError(StoreError):
    """An issue file could not be parsed."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)
