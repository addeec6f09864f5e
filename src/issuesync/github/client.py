"""GitHub API client (GraphQL, plus the few REST endpoints GraphQL lacks)."""

from __future__ import annotations

import logging
import os
import re
import subprocess
import time
from collections.abc import Callable
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_HOST = "api.github.com"

# Checked in order before falling back to the gh CLI
TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")

REQUEST_TIMEOUT = 30.0


class GitHubClientError(Exception):
    """Any failure talking to GitHub."""

    pass


class GitHubAuthError(GitHubClientError):
    """No usable token, or the token was rejected."""

    pass


class GitHubNotFoundError(GitHubClientError):
    pass


class GitHubForbiddenError(GitHubClientError):
    """The token lacks a scope or the repository denies access."""

    pass


class GitHubRateLimitError(GitHubClientError):
    pass


# GraphQL error "type" values that map onto a specific exception
_GRAPHQL_ERROR_TYPES: dict[str, type[GitHubClientError]] = {
    "NOT_FOUND": GitHubNotFoundError,
    "FORBIDDEN": GitHubForbiddenError,
    "INSUFFICIENT_SCOPES": GitHubForbiddenError,
    "RATE_LIMITED": GitHubRateLimitError,
}


class GitHubClient:
    """Synchronous GitHub client shared by every remote call of a command.

    Wraps one httpx.Client so connections are reused. GraphQL is the main
    interface; execute() treats any error as fatal while execute_partial()
    hands back per-alias errors of batched requests. rest() covers label and
    milestone creation.
    """

    def __init__(self, token: str, base_url: str = DEFAULT_HOST):
        """
        Args:
            token: Personal access token or gh CLI token
            base_url: API host, e.g. "github.example.com" for Enterprise
        """
        self.token = token
        self.base_url = base_url
        self._rest_url = f"https://{base_url}"
        self._graphql_url = f"{self._rest_url}/graphql"
        self._client = httpx.Client(
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "Accept": "application/vnd.github+json",
            },
            timeout=REQUEST_TIMEOUT,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @classmethod
    def from_environment(cls, base_url: str = DEFAULT_HOST) -> GitHubClient:
        """Build a client from GITHUB_TOKEN / GH_TOKEN, else from `gh auth token`.

        Raises:
            GitHubAuthError: If neither source yields a token
        """
        for name in TOKEN_ENV_VARS:
            token = os.environ.get(name)
            if token:
                logger.debug("Using token from %s", name)
                return cls(token, base_url)

        token = _token_from_gh_cli(base_url)
        if token:
            logger.debug("Using token from gh CLI")
            return cls(token, base_url)

        logger.error("No GitHub token found for %s", base_url)
        raise GitHubAuthError(
            "No GitHub token found. Either:\n"
            "  - Set GITHUB_TOKEN environment variable\n"
            "  - Run 'gh auth login' to authenticate with GitHub CLI"
        )

    def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a GraphQL query or mutation and return its 'data'.

        Raises:
            GitHubClientError: Or the subclass matching the HTTP status or the
                first typed GraphQL error
        """
        op_name = _operation_name(query)
        result, elapsed_ms = self._post_graphql(op_name, query, variables)

        errors = result.get("errors")
        if errors:
            for error in errors:
                error_class = _classify_graphql_error(error)
                if error_class is not None:
                    message = error.get("message", "")
                    logger.error("GraphQL %s: %s - %s (%.0fms)", op_name, error_class.__name__, message, elapsed_ms)
                    raise error_class(message)
            messages = _messages(errors)
            logger.error("GraphQL %s: errors=%s (%.0fms)", op_name, messages, elapsed_ms)
            raise GitHubClientError(f"GraphQL errors: {'; '.join(messages)}")

        logger.info("GraphQL %s: 200 OK (%.0fms)", op_name, elapsed_ms)
        return result.get("data") or {}

    def execute_partial(
        self, query: str, variables: dict[str, Any] | None = None
    ) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        """Execute an aliased batch where some aliases may fail on their own.

        Returns:
            (data, errors). Aliases that failed are null in data and have an
            entry in errors whose 'path' starts with the alias.

        Raises:
            GitHubClientError: If the request failed as a whole
        """
        op_name = _operation_name(query)
        result, elapsed_ms = self._post_graphql(op_name, query, variables)
        errors = result.get("errors") or []
        data = result.get("data")
        if data is None:
            messages = _messages(errors)
            logger.error("GraphQL %s: errors=%s (%.0fms)", op_name, messages, elapsed_ms)
            raise GitHubClientError(f"GraphQL errors: {'; '.join(messages) or 'no data'}")
        if errors:
            logger.warning("GraphQL %s: %d partial error(s) (%.0fms)", op_name, len(errors), elapsed_ms)
        else:
            logger.info("GraphQL %s: 200 OK (%.0fms)", op_name, elapsed_ms)
        return data, errors

    def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.execute(query, variables)

    def mutate(self, mutation: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.execute(mutation, variables)

    def rest(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        """Call a REST endpoint, e.g. rest("POST", "/repos/o/r/labels", {...})."""
        label = f"REST {method} {path}"
        url = f"{self._rest_url}{path}"
        response, elapsed_ms = self._timed(label, lambda: self._client.request(method, url, json=json))
        logger.info("%s: %d (%.0fms)", label, response.status_code, elapsed_ms)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GitHubClientError(f"Invalid JSON response: {e}") from e

    def _post_graphql(
        self, op_name: str, query: str, variables: dict[str, Any] | None
    ) -> tuple[dict[str, Any], float]:
        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        # Variables only at DEBUG level to avoid logging issue content at INFO
        logger.debug("GraphQL %s: variables=%s", op_name, variables)

        label = f"GraphQL {op_name}"
        response, elapsed_ms = self._timed(label, lambda: self._client.post(self._graphql_url, json=payload))
        try:
            return response.json(), elapsed_ms
        except ValueError as e:
            logger.error("%s: Invalid JSON response (%.0fms)", label, elapsed_ms)
            raise GitHubClientError(f"Invalid JSON response: {e}") from e

    def _timed(self, label: str, send: Callable[[], httpx.Response]) -> tuple[httpx.Response, float]:
        """Send one request, timing it and mapping failures onto client exceptions."""
        start_time = time.monotonic()
        try:
            response = send()
        except httpx.RequestError as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.error("%s failed after %.0fms: %s", label, elapsed_ms, e)
            raise GitHubClientError(f"Request failed: {e}") from e

        elapsed_ms = (time.monotonic() - start_time) * 1000
        _check_status(response, label, elapsed_ms)
        return response, elapsed_ms


def _check_status(response: httpx.Response, label: str, elapsed_ms: float) -> None:
    status = response.status_code
    if status < 400:
        return
    logger.error("%s: HTTP %d (%.0fms)", label, status, elapsed_ms)
    if status == 401:
        raise GitHubAuthError(
            "Authentication failed. Check your GITHUB_TOKEN.\n"
            "Required scopes: repo, read:project (project to change project membership)"
        )
    if status == 429 or (status == 403 and "rate limit" in response.text.lower()):
        raise GitHubRateLimitError("GitHub API rate limit exceeded. Try again later.")
    if status == 403:
        raise GitHubForbiddenError(
            "Permission denied. Check that your token has the required scopes:\n"
            "  - repo (for issue operations)\n"
            "  - read:project / project (for project membership)"
        )
    if status == 404:
        raise GitHubNotFoundError("Resource not found")
    raise GitHubClientError(f"HTTP {status}: {response.text}")


def _classify_graphql_error(error: dict[str, Any]) -> type[GitHubClientError] | None:
    """Exception class for a typed GraphQL error, None for untyped ones."""
    error_class = _GRAPHQL_ERROR_TYPES.get(error.get("type", ""))
    if error_class is not None:
        return error_class
    message = error.get("message", "").lower()
    if "not found" in message:
        return GitHubNotFoundError
    if "permission" in message:
        return GitHubForbiddenError
    return None


def _messages(errors: list[dict[str, Any]]) -> list[str]:
    return [error.get("message", str(error)) for error in errors]


def _token_from_gh_cli(base_url: str) -> str | None:
    command = ["gh", "auth", "token"]
    if base_url != DEFAULT_HOST:
        command += ["--hostname", base_url]
    try:
        result = subprocess.run(command, capture_output=True, text=True, check=True)
    except (subprocess.CalledProcessError, FileNotFoundError):
        logger.debug("gh CLI not available or not authenticated")
        return None
    return result.stdout.strip() or None


def _operation_name(query: str) -> str:
    """Extract the operation name for logging ("query GetIssues" -> "GetIssues")."""
    op_match = re.search(r"(?:query|mutation)\s+(\w+)", query)
    return op_match.group(1) if op_match else "anonymous"
