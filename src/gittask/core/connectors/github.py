"""
GitHub connector.

Talks to the GitHub REST API v3 with httpx. Issues map to tasks, issue
comments to comments and issue labels to labels. Issue deletion is only
available through the GraphQL API.
"""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import quote

from gittask.core.tasks.models import (
    AUTHOR,
    CREATED,
    DESCRIPTION,
    NAME,
    STATUS,
    Comment,
    Label,
    Task,
)

from .base import ConnectorError, RemoteScope, RemoteTaskState, Statuses, register_connector
from .http import HttpConnector, timestamp

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"
PAGE_SIZE = 100

HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")

_REMOTE_PATTERNS = [
    # HTTPS: https://github.com/owner/repo.git or https://github.com/owner/repo
    re.compile(r"^https://github\.com/([\w.-]+)/([\w.-]+?)(?:\.git)?/?$", re.IGNORECASE),
    # SSH: git@github.com:owner/repo.git or git@github.com:owner/repo
    re.compile(r"^git@github\.com:([\w.-]+)/([\w.-]+?)(?:\.git)?$", re.IGNORECASE),
    # ssh://git@github.com/owner/repo.git
    re.compile(r"^ssh://git@github\.com/([\w.-]+)/([\w.-]+?)(?:\.git)?$", re.IGNORECASE),
]

DELETE_ISSUE_MUTATION = """
mutation($issueId: ID!) {
  deleteIssue(input: {issueId: $issueId}) {
    clientMutationId
  }
}
"""


def _hex_color(color: str) -> str | None:
    match = HEX_COLOR.match(color or "")
    return match.group(1).lower() if match else None


@register_connector("github")
class GitHubConnector(HttpConnector):
    """
    GitHub issues connector.

    Example:
        >>> connector = GitHubConnector()
        >>> connector.supports_remote("git@github.com:octo/hello.git")
        RemoteScope(namespace='octo', project='hello')
    """

    name = "github"
    config_options: list[str] = []
    token_env_vars = ("GITHUB_TOKEN", "GITHUB_API_TOKEN")
    default_headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }

    def _base_url(self) -> str:
        return API_URL

    def _auth_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def supports_remote(self, url: str) -> RemoteScope | None:
        for pattern in _REMOTE_PATTERNS:
            match = pattern.match(url.strip())
            if match:
                return RemoteScope(match.group(1), match.group(2))
        return None

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _to_task(
        self,
        scope: RemoteScope,
        data: dict[str, Any],
        with_comments: bool,
        with_labels: bool,
        statuses: Statuses,
    ) -> Task:
        open_status, closed_status = statuses
        props = {
            NAME: data.get("title") or "",
            STATUS: closed_status if data.get("state") == "closed" else open_status,
            DESCRIPTION: data.get("body") or "",
            CREATED: timestamp(data.get("created_at")),
            AUTHOR: (data.get("user") or {}).get("login", ""),
        }
        task = Task(id=str(data["number"]), props=props)

        # The issue payload carries a comment count; skip the extra call when zero
        if with_comments and data.get("comments", 1):
            task.comments = self._list_comments(scope, task.id) or None
        if with_labels:
            labels = [
                Label(
                    name=label["name"],
                    color=label.get("color") or "",
                    description=label.get("description"),
                )
                for label in data.get("labels") or []
            ]
            task.labels = labels or None
        return task

    def _list_comments(self, scope: RemoteScope, task_id: str) -> list[Comment]:
        comments = []
        page = 1
        while True:
            data = self._request(
                "GET",
                f"/repos/{scope}/issues/{task_id}/comments",
                params={"per_page": PAGE_SIZE, "page": page},
            )
            for item in data or []:
                comments.append(
                    Comment(
                        id=str(item["id"]),
                        props={
                            AUTHOR: (item.get("user") or {}).get("login", ""),
                            CREATED: timestamp(item.get("created_at")),
                        },
                        text=item.get("body") or "",
                    )
                )
            if not data or len(data) < PAGE_SIZE:
                break
            page += 1
        return comments

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def list_remote_tasks(
        self,
        scope: RemoteScope,
        with_comments: bool,
        with_labels: bool,
        limit: int | None,
        state: RemoteTaskState,
        statuses: Statuses,
    ) -> list[Task]:
        tasks: list[Task] = []
        page = 1
        per_page = min(limit, PAGE_SIZE) if limit else PAGE_SIZE

        while limit is None or len(tasks) < limit:
            data = self._request(
                "GET",
                f"/repos/{scope}/issues",
                params={"state": state.value, "per_page": per_page, "page": page},
            )
            for item in data or []:
                # The issues API also returns pull requests
                if "pull_request" in item:
                    continue
                tasks.append(self._to_task(scope, item, with_comments, with_labels, statuses))
                if limit is not None and len(tasks) >= limit:
                    break
            if not data or len(data) < per_page:
                break
            page += 1

        return tasks

    def get_remote_task(
        self,
        scope: RemoteScope,
        task_id: str,
        with_comments: bool,
        with_labels: bool,
        statuses: Statuses,
    ) -> Task | None:
        data = self._request("GET", f"/repos/{scope}/issues/{task_id}", allow_missing=True)
        if data is None or "pull_request" in data:
            return None
        return self._to_task(scope, data, with_comments, with_labels, statuses)

    def create_remote_task(self, scope: RemoteScope, task: Task) -> str:
        payload: dict[str, Any] = {"title": task.name, "body": task.description}
        if task.labels:
            payload["labels"] = [label.name for label in task.labels]
        data = self._request("POST", f"/repos/{scope}/issues", write=True, json=payload)
        logger.info("Created GitHub issue %s#%s", scope, data["number"])
        return str(data["number"])

    def update_remote_task(
        self,
        scope: RemoteScope,
        task: Task,
        labels: list[Label] | None,
        state: RemoteTaskState,
    ) -> None:
        payload: dict[str, Any] = {
            "title": task.name,
            "body": task.description,
            "state": state.value,
        }
        if labels is not None:
            payload["labels"] = [label.name for label in labels]
        self._request("PATCH", f"/repos/{scope}/issues/{task.id}", write=True, json=payload)

    def delete_remote_task(self, scope: RemoteScope, task_id: str) -> None:
        data = self._request("GET", f"/repos/{scope}/issues/{task_id}")
        result = self._request(
            "POST",
            "/graphql",
            write=True,
            json={"query": DELETE_ISSUE_MUTATION, "variables": {"issueId": data["node_id"]}},
        )
        if result and result.get("errors"):
            raise ConnectorError(result["errors"][0].get("message", "GraphQL error"))

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def create_remote_comment(self, scope: RemoteScope, task_id: str, comment: Comment) -> str:
        data = self._request(
            "POST",
            f"/repos/{scope}/issues/{task_id}/comments",
            write=True,
            json={"body": comment.text},
        )
        return str(data["id"])

    def update_remote_comment(
        self, scope: RemoteScope, task_id: str, comment_id: str, text: str
    ) -> None:
        self._request(
            "PATCH",
            f"/repos/{scope}/issues/comments/{comment_id}",
            write=True,
            json={"body": text},
        )

    def delete_remote_comment(self, scope: RemoteScope, task_id: str, comment_id: str) -> None:
        self._request("DELETE", f"/repos/{scope}/issues/comments/{comment_id}", write=True)

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def create_remote_label(self, scope: RemoteScope, task_id: str, label: Label) -> None:
        color = _hex_color(label.color)
        if color:
            existing = self._request(
                "GET", f"/repos/{scope}/labels/{quote(label.name, safe='')}", allow_missing=True
            )
            if existing is None:
                payload: dict[str, Any] = {"name": label.name, "color": color}
                if label.description:
                    payload["description"] = label.description
                self._request("POST", f"/repos/{scope}/labels", write=True, json=payload)

        self._request(
            "POST",
            f"/repos/{scope}/issues/{task_id}/labels",
            write=True,
            json={"labels": [label.name]},
        )

    def update_remote_label(
        self, scope: RemoteScope, task_id: str, old_name: str, label: Label
    ) -> None:
        payload: dict[str, Any] = {"new_name": label.name}
        color = _hex_color(label.color)
        if color:
            payload["color"] = color
        if label.description is not None:
            payload["description"] = label.description
        self._request(
            "PATCH", f"/repos/{scope}/labels/{quote(old_name, safe='')}", write=True, json=payload
        )

    def delete_remote_label(self, scope: RemoteScope, task_id: str, name: str) -> None:
        self._request(
            "DELETE",
            f"/repos/{scope}/issues/{task_id}/labels/{quote(name, safe='')}",
            write=True,
        )
