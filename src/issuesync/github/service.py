"""GitHub implementation of the remote issue service."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from ..models import (
    Issue,
    IssueTypeEntry,
    LabelEntry,
    MilestoneEntry,
    ProjectEntry,
)
from ..repositories.protocol import IssueEdit
from ..utils.datetime import to_iso
from . import queries
from .client import GitHubClient, GitHubClientError, GitHubNotFoundError

logger = logging.getLogger(__name__)

# Aliased fields per batched request
BATCH_SIZE = 50

_STATE_FILTERS = {
    "open": ["OPEN"],
    "closed": ["CLOSED"],
    "all": None,
}


def issue_from_node(node: dict[str, Any]) -> Issue:
    """Convert a GraphQL IssueFields node to an Issue."""

    def names(connection: dict | None, key: str) -> list[str]:
        return [item[key] for item in (connection or {}).get("nodes") or [] if item]

    projects = [
        item["project"]["title"]
        for item in (node.get("projectItems") or {}).get("nodes") or []
        if item and item.get("project")
    ]
    return Issue(
        id=str(node["number"]),
        title=node.get("title") or "",
        body=node.get("body") or "",
        state=(node.get("state") or "OPEN").lower(),
        state_reason=(node.get("stateReason") or "").lower() or None,
        labels=names(node.get("labels"), "name"),
        assignees=names(node.get("assignees"), "login"),
        milestone=(node.get("milestone") or {}).get("title"),
        issue_type=(node.get("issueType") or {}).get("name"),
        projects=projects,
        parent=(node.get("parent") or {}).get("number"),
        blocked_by=names(node.get("blockedBy"), "number"),
        blocks=names(node.get("blocking"), "number"),
        author=(node.get("author") or {}).get("login"),
        created_at=node.get("createdAt"),
        updated_at=node.get("updatedAt"),
    )


def _chunks(items: list, size: int = BATCH_SIZE) -> list[list]:
    return [items[i : i + size] for i in range(0, len(items), size)]


def _alias_of(error: dict[str, Any]) -> str | None:
    path = error.get("path") or []
    return str(path[0]) if path else None


class GitHubIssueService:
    """Remote issue service backed by the GitHub GraphQL API.

    Node ids are looked up lazily and cached per issue number, since most
    mutations take node ids rather than numbers.
    """

    def __init__(self, client: GitHubClient, owner: str, repo: str) -> None:
        self._client = client
        self.owner = owner
        self.repo = repo
        self._node_ids: dict[str, str] = {}
        self._repository_id: str | None = None

    @property
    def _repo_vars(self) -> dict[str, Any]:
        return {"owner": self.owner, "name": self.repo}

    # --- Issues ---

    def list_issues(
        self,
        state: str = "open",
        labels: list[str] | None = None,
        since: datetime | None = None,
    ) -> list[Issue]:
        """List issues in the given state ("open", "closed" or "all")."""
        if state not in _STATE_FILTERS:
            raise ValueError(f"Unknown state filter: {state}")

        variables: dict[str, Any] = {
            **self._repo_vars,
            "states": _STATE_FILTERS[state],
            "labels": labels or None,
            "since": to_iso(since) if since else None,
            "cursor": None,
        }
        issues: list[Issue] = []
        page_count = 0
        while True:
            data = self._client.query(queries.LIST_ISSUES, variables)
            connection = data["repository"]["issues"]
            for node in connection["nodes"]:
                if node:
                    self._node_ids[str(node["number"])] = node["id"]
                    issues.append(issue_from_node(node))
            page_count += 1
            logger.debug("Page %d: %d issue(s) so far", page_count, len(issues))
            if not connection["pageInfo"]["hasNextPage"]:
                break
            variables["cursor"] = connection["pageInfo"]["endCursor"]

        logger.info("Listed %d issue(s) from %s/%s", len(issues), self.owner, self.repo)
        return issues

    def get_issue(self, number: str) -> Issue:
        issues = self.get_issues([number])
        if number not in issues:
            raise GitHubNotFoundError(f"Issue #{number} not found in {self.owner}/{self.repo}")
        return issues[number]

    def get_issues(self, numbers: list[str]) -> dict[str, Issue]:
        """Fetch issues by number, BATCH_SIZE per request."""
        found: dict[str, Issue] = {}
        for chunk in _chunks([n for n in numbers if n.isdigit()]):
            fields = "\n".join(
                f"    i{i}: issue(number: {int(number)}) {{ ...IssueFields }}" for i, number in enumerate(chunk)
            )
            data, errors = self._client.execute_partial(queries.GET_ISSUES_TEMPLATE % fields, self._repo_vars)
            self._raise_unless_not_found(errors)
            repository = data.get("repository") or {}
            for i, number in enumerate(chunk):
                node = repository.get(f"i{i}")
                if node:
                    self._node_ids[number] = node["id"]
                    found[number] = issue_from_node(node)
        return found

    def create_issue(self, issue: Issue) -> str:
        """Create an issue and return its number."""
        normalized = issue.normalized()
        resolved = self._resolve_ids(
            labels=normalized.labels,
            milestones=[normalized.milestone] if normalized.milestone else [],
            users=normalized.assignees,
        )
        payload: dict[str, Any] = {
            "repositoryId": resolved["repository"],
            "title": normalized.title,
            "body": normalized.body,
            "labelIds": [resolved["labels"][name] for name in normalized.labels if name in resolved["labels"]],
            "assigneeIds": [resolved["users"][u] for u in normalized.assignees if u in resolved["users"]],
        }
        if normalized.milestone and normalized.milestone in resolved["milestones"]:
            payload["milestoneId"] = resolved["milestones"][normalized.milestone]

        data = self._client.mutate(queries.CREATE_ISSUE, {"input": payload})
        created = data["createIssue"]["issue"]
        number = str(created["number"])
        self._node_ids[number] = created["id"]
        logger.info("Created issue %s/%s#%s", self.owner, self.repo, number)
        return number

    def edit_issues(self, edits: list[IssueEdit]) -> dict[str, str]:
        """Apply field edits with one aliased updateIssue mutation per chunk."""
        failures: dict[str, str] = {}
        for chunk in _chunks(edits):
            resolved = self._resolve_ids(
                numbers=[edit.number for edit in chunk],
                labels=sorted({name for edit in chunk for name in edit.labels or []}),
                milestones=sorted({edit.milestone for edit in chunk if edit.milestone}),
                users=sorted({login for edit in chunk for login in edit.assignees or []}),
            )
            declarations = []
            fields = []
            variables: dict[str, Any] = {}
            aliases: dict[str, str] = {}
            for i, edit in enumerate(chunk):
                node_id = self._node_ids.get(edit.number)
                if node_id is None:
                    failures[edit.number] = "issue not found"
                    continue
                variables[f"e{i}"] = self._edit_input(node_id, edit, resolved)
                declarations.append(f"$e{i}: UpdateIssueInput!")
                fields.append(f"  e{i}: updateIssue(input: $e{i}) {{ issue {{ number }} }}")
                aliases[f"e{i}"] = edit.number
            if not fields:
                continue

            mutation = queries.EDIT_ISSUES_TEMPLATE % (", ".join(declarations), "\n".join(fields))
            _, errors = self._client.execute_partial(mutation, variables)
            for error in errors:
                number = aliases.get(_alias_of(error) or "")
                if number is None:
                    raise GitHubClientError(f"GraphQL error: {error.get('message', error)}")
                failures[number] = error.get("message", "update failed")
        return failures

    def _edit_input(self, node_id: str, edit: IssueEdit, resolved: dict[str, Any]) -> dict[str, Any]:
        data: dict[str, Any] = {"id": node_id}
        if edit.title is not None:
            data["title"] = edit.title
        if edit.body is not None:
            data["body"] = edit.body
        if edit.milestone is not None:
            # An unknown milestone clears rather than fails the whole edit
            data["milestoneId"] = resolved["milestones"].get(edit.milestone) if edit.milestone else None
        if edit.labels is not None:
            missing = [name for name in edit.labels if name not in resolved["labels"]]
            if missing:
                logger.warning("Unknown label(s) for #%s: %s", edit.number, ", ".join(missing))
            data["labelIds"] = [resolved["labels"][name] for name in edit.labels if name in resolved["labels"]]
        if edit.assignees is not None:
            data["assigneeIds"] = [resolved["users"][u] for u in edit.assignees if u in resolved["users"]]
        return data

    def close_issue(self, number: str, reason: str | None = None) -> None:
        variables = {
            "issueId": self._node_id(number),
            "stateReason": reason.upper() if reason else None,
        }
        self._client.mutate(queries.CLOSE_ISSUE, variables)

    def reopen_issue(self, number: str) -> None:
        self._client.mutate(queries.REOPEN_ISSUE, {"issueId": self._node_id(number)})

    # --- Catalogs ---

    def list_labels(self) -> list[LabelEntry]:
        nodes = self._paginate(queries.GET_REPOSITORY_LABELS, "labels")
        return [LabelEntry(name=node["name"], color=node.get("color") or "") for node in nodes]

    def create_label(self, name: str, color: str) -> LabelEntry:
        data = self._client.rest(
            "POST", f"/repos/{self.owner}/{self.repo}/labels", {"name": name, "color": color}
        )
        return LabelEntry(name=data["name"], color=data.get("color") or color)

    def list_milestones(self) -> list[MilestoneEntry]:
        nodes = self._paginate(queries.GET_REPOSITORY_MILESTONES, "milestones")
        return [
            MilestoneEntry(
                title=node["title"],
                number=node.get("number"),
                description=node.get("description") or "",
                due_on=node.get("dueOn"),
                state=(node.get("state") or "OPEN").lower(),
            )
            for node in nodes
        ]

    def create_milestone(self, title: str) -> MilestoneEntry:
        data = self._client.rest("POST", f"/repos/{self.owner}/{self.repo}/milestones", {"title": title})
        return MilestoneEntry(
            title=data["title"],
            number=data.get("number"),
            description=data.get("description") or "",
            due_on=data.get("due_on"),
            state=data.get("state") or "open",
        )

    def list_issue_types(self) -> list[IssueTypeEntry]:
        data = self._client.query(queries.GET_ISSUE_TYPES, self._repo_vars)
        nodes = ((data.get("repository") or {}).get("issueTypes") or {}).get("nodes") or []
        return [
            IssueTypeEntry(id=node["id"], name=node["name"], description=node.get("description") or "")
            for node in nodes
            if node
        ]

    def list_projects(self) -> list[ProjectEntry]:
        data = self._client.query(queries.GET_PROJECTS, self._repo_vars)
        owner = (data.get("repository") or {}).get("owner") or {}
        nodes = (owner.get("projectsV2") or {}).get("nodes") or []
        return [ProjectEntry(id=node["id"], title=node["title"]) for node in nodes if node]

    # --- Secondary edits ---

    def add_to_project(self, number: str, project_id: str) -> None:
        variables = {"projectId": project_id, "contentId": self._node_id(number)}
        self._client.mutate(queries.ADD_ITEM_TO_PROJECT, variables)

    def remove_from_project(self, number: str, project_id: str) -> None:
        data = self._client.query(queries.GET_ISSUE_PROJECT_ITEMS, {**self._repo_vars, "number": int(number)})
        issue = (data.get("repository") or {}).get("issue") or {}
        for item in (issue.get("projectItems") or {}).get("nodes") or []:
            if item and item["project"]["id"] == project_id:
                self._client.mutate(queries.DELETE_PROJECT_ITEM, {"projectId": project_id, "itemId": item["id"]})
                return
        logger.debug("Issue #%s is not in project %s", number, project_id)

    def set_issue_type(self, number: str, type_id: str | None) -> None:
        variables = {"issueId": self._node_id(number), "issueTypeId": type_id}
        self._client.mutate(queries.UPDATE_ISSUE_TYPE, variables)

    def set_parent(self, number: str, parent: str | None) -> None:
        child_id = self._node_id(number)
        if parent:
            variables = {"issueId": self._node_id(parent), "subIssueId": child_id}
            self._client.mutate(queries.ADD_SUB_ISSUE, variables)
            return

        data = self._client.query(queries.GET_ISSUE_PARENT, {**self._repo_vars, "number": int(number)})
        current = ((data.get("repository") or {}).get("issue") or {}).get("parent")
        if current:
            self._client.mutate(queries.REMOVE_SUB_ISSUE, {"issueId": current["id"], "subIssueId": child_id})

    def add_blocked_by(self, number: str, blocker: str) -> None:
        variables = {"issueId": self._node_id(number), "blockingIssueId": self._node_id(blocker)}
        self._client.mutate(queries.ADD_BLOCKED_BY, variables)

    def remove_blocked_by(self, number: str, blocker: str) -> None:
        variables = {"issueId": self._node_id(number), "blockingIssueId": self._node_id(blocker)}
        self._client.mutate(queries.REMOVE_BLOCKED_BY, variables)

    def create_comment(self, number: str, body: str) -> None:
        self._client.mutate(queries.ADD_COMMENT, {"subjectId": self._node_id(number), "body": body})

    # --- Private Methods ---

    def _node_id(self, number: str) -> str:
        """Node id for an issue number, looked up once and cached."""
        if number not in self._node_ids:
            self._resolve_ids(numbers=[number])
        if number not in self._node_ids:
            raise GitHubNotFoundError(f"Issue #{number} not found in {self.owner}/{self.repo}")
        return self._node_ids[number]

    def _resolve_ids(
        self,
        numbers: list[str] | None = None,
        labels: list[str] | None = None,
        milestones: list[str] | None = None,
        users: list[str] | None = None,
    ) -> dict[str, Any]:
        """Resolve names to node ids in one aliased query.

        Unknown names are simply missing from the result.
        """
        numbers = [n for n in numbers or [] if n not in self._node_ids and n.isdigit()]
        labels = labels or []
        users = users or []

        declarations = "".join(f", $l{i}: String!" for i in range(len(labels)))
        declarations += "".join(f", $u{i}: String!" for i in range(len(users)))
        repo_fields = [f"    i{i}: issue(number: {int(n)}) {{ id }}" for i, n in enumerate(numbers)]
        repo_fields += [f"    l{i}: label(name: $l{i}) {{ id }}" for i in range(len(labels))]
        if milestones:
            repo_fields.append("    milestones(first: 100, states: [OPEN, CLOSED]) { nodes { id title } }")
        user_fields = [f"  u{i}: user(login: $u{i}) {{ id }}" for i in range(len(users))]

        variables: dict[str, Any] = dict(self._repo_vars)
        variables.update({f"l{i}": name for i, name in enumerate(labels)})
        variables.update({f"u{i}": login for i, login in enumerate(users)})

        query = queries.RESOLVE_IDS_TEMPLATE % (declarations, "\n".join(repo_fields), "\n".join(user_fields))
        data, errors = self._client.execute_partial(query, variables)
        self._raise_unless_not_found(errors)

        repository = data.get("repository") or {}
        self._repository_id = repository.get("id") or self._repository_id
        for i, number in enumerate(numbers):
            node = repository.get(f"i{i}")
            if node:
                self._node_ids[number] = node["id"]

        resolved: dict[str, Any] = {
            "repository": self._repository_id,
            "labels": {},
            "milestones": {},
            "users": {},
        }
        for i, name in enumerate(labels):
            node = repository.get(f"l{i}")
            if node:
                resolved["labels"][name] = node["id"]
        wanted = {title.lower(): title for title in milestones or []}
        for node in (repository.get("milestones") or {}).get("nodes") or []:
            if node and node["title"].lower() in wanted:
                resolved["milestones"][wanted[node["title"].lower()]] = node["id"]
        for i, login in enumerate(users):
            node = data.get(f"u{i}")
            if node:
                resolved["users"][login] = node["id"]
            else:
                logger.warning("Unknown GitHub user: %s", login)
        return resolved

    def _paginate(self, query: str, connection_name: str) -> list[dict[str, Any]]:
        variables: dict[str, Any] = {**self._repo_vars, "cursor": None}
        nodes: list[dict[str, Any]] = []
        while True:
            data = self._client.query(query, variables)
            connection = data["repository"][connection_name]
            nodes.extend(node for node in connection["nodes"] if node)
            if not connection["pageInfo"]["hasNextPage"]:
                return nodes
            variables["cursor"] = connection["pageInfo"]["endCursor"]

    def _raise_unless_not_found(self, errors: list[dict[str, Any]]) -> None:
        """Missing issues, labels and users are expected in aliased lookups; other errors are not."""
        for error in errors:
            if error.get("type") != "NOT_FOUND":
                raise GitHubClientError(f"GraphQL error: {error.get('message', error)}")


