"""
GitLab connector.

Uses the GitLab REST API v4. Issues are addressed by their project-scoped
`iid`, comments are issue notes, and labels are the issue's label names
(colors live on the project's label definitions). The host defaults to
gitlab.com and can point at a self-hosted instance through `task.gitlab.url`
or GITLAB_URL.
"""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import quote, urlparse

import httpx

from gittask.core.config import TaskConfig, get_env
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

from .base import RemoteScope, RemoteTaskState, Statuses, register_connector
from .http import HttpConnector, timestamp

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://gitlab.com"
PAGE_SIZE = 100

HEX_COLOR = re.compile(r"^#?[0-9a-fA-F]{6}$")

_STATES = {
    RemoteTaskState.OPEN: "opened",
    RemoteTaskState.CLOSED: "closed",
    RemoteTaskState.ALL: "all",
}


def _split_url(url: str) -> tuple[str, str]:
    """Return (scheme, host) of a configured GitLab URL, with or without scheme."""
    if "://" not in url:
        url = f"https://{url}"
    parsed = urlparse(url)
    return parsed.scheme or "https", parsed.netloc


def _quote(value: str) -> str:
    return quote(value, safe="")


@register_connector("gitlab")
class GitLabConnector(HttpConnector):
    """
    GitLab issues connector.

    Example:
        >>> connector = GitLabConnector(base_url="https://git.example.com")
        >>> connector.supports_remote("git@git.example.com:team/app/api.git")
        RemoteScope(namespace='team/app', project='api')
    """

    name = "gitlab"
    config_options = ["task.gitlab.url"]
    token_env_vars = ("GITLAB_TOKEN", "GITLAB_API_TOKEN")

    def __init__(
        self,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
        base_url: str | None = None,
    ) -> None:
        super().__init__(token=token, transport=transport)
        self._url = base_url

    @property
    def url(self) -> str:
        return (self._url or get_env("GITLAB_URL") or DEFAULT_URL).rstrip("/")

    def configure(self, config: TaskConfig) -> None:
        """Point the connector at the host configured in `task.gitlab.url`."""
        if config.gitlab_url and config.gitlab_url != self._url:
            self._url = config.gitlab_url
            self.close()

    def _base_url(self) -> str:
        scheme, host = _split_url(self.url)
        return f"{scheme}://{host}/api/v4"

    def _auth_headers(self, token: str) -> dict[str, str]:
        return {"PRIVATE-TOKEN": token}

    def supports_remote(self, url: str) -> RemoteScope | None:
        _, host = _split_url(self.url)
        host = re.escape(host)
        patterns = [
            rf"^https?://(?:[^@/]+@)?{host}/(.+)/([^/]+?)(?:\.git)?/?$",
            rf"^git@{host}:(.+)/([^/]+?)(?:\.git)?$",
            rf"^ssh://git@{host}(?::\d+)?/(.+)/([^/]+?)(?:\.git)?$",
        ]
        for pattern in patterns:
            match = re.match(pattern, url.strip(), re.IGNORECASE)
            if match:
                return RemoteScope(match.group(1), match.group(2))
        return None

    def _project(self, scope: RemoteScope) -> str:
        return f"/projects/{_quote(str(scope))}"

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
            DESCRIPTION: data.get("description") or "",
            CREATED: timestamp(data.get("created_at")),
            AUTHOR: (data.get("author") or {}).get("username", ""),
        }
        task = Task(id=str(data["iid"]), props=props)

        if with_comments and data.get("user_notes_count", 1):
            task.comments = self._list_notes(scope, task.id) or None
        if with_labels:
            labels = []
            for label in data.get("labels") or []:
                # Plain names unless with_labels_details was requested
                if isinstance(label, str):
                    labels.append(Label(name=label))
                else:
                    labels.append(
                        Label(
                            name=label["name"],
                            color=label.get("color") or "",
                            description=label.get("description"),
                        )
                    )
            task.labels = labels or None
        return task

    def _list_notes(self, scope: RemoteScope, task_id: str) -> list[Comment]:
        comments = []
        page = 1
        while True:
            data = self._request(
                "GET",
                f"{self._project(scope)}/issues/{task_id}/notes",
                params={
                    "sort": "asc",
                    "order_by": "created_at",
                    "per_page": PAGE_SIZE,
                    "page": page,
                },
            )
            for note in data or []:
                # System notes record events like label changes
                if note.get("system"):
                    continue
                comments.append(
                    Comment(
                        id=str(note["id"]),
                        props={
                            AUTHOR: (note.get("author") or {}).get("username", ""),
                            CREATED: timestamp(note.get("created_at")),
                        },
                        text=note.get("body") or "",
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
            params: dict[str, Any] = {
                "state": _STATES[state],
                "order_by": "created_at",
                "sort": "desc",
                "per_page": per_page,
                "page": page,
            }
            if with_labels:
                params["with_labels_details"] = "true"
            data = self._request("GET", f"{self._project(scope)}/issues", params=params)
            for item in data or []:
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
        params = {"with_labels_details": "true"} if with_labels else None
        data = self._request(
            "GET",
            f"{self._project(scope)}/issues/{task_id}",
            allow_missing=True,
            params=params,
        )
        if data is None:
            return None
        return self._to_task(scope, data, with_comments, with_labels, statuses)

    def create_remote_task(self, scope: RemoteScope, task: Task) -> str:
        payload: dict[str, Any] = {"title": task.name, "description": task.description}
        if task.labels:
            payload["labels"] = ",".join(label.name for label in task.labels)
        data = self._request("POST", f"{self._project(scope)}/issues", write=True, json=payload)
        logger.info("Created GitLab issue %s#%s", scope, data["iid"])
        return str(data["iid"])

    def update_remote_task(
        self,
        scope: RemoteScope,
        task: Task,
        labels: list[Label] | None,
        state: RemoteTaskState,
    ) -> None:
        payload: dict[str, Any] = {
            "title": task.name,
            "description": task.description,
            "state_event": "close" if state == RemoteTaskState.CLOSED else "reopen",
        }
        if labels is not None:
            payload["labels"] = ",".join(label.name for label in labels)
        self._request(
            "PUT", f"{self._project(scope)}/issues/{task.id}", write=True, json=payload
        )

    def delete_remote_task(self, scope: RemoteScope, task_id: str) -> None:
        self._request("DELETE", f"{self._project(scope)}/issues/{task_id}", write=True)

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def create_remote_comment(self, scope: RemoteScope, task_id: str, comment: Comment) -> str:
        data = self._request(
            "POST",
            f"{self._project(scope)}/issues/{task_id}/notes",
            write=True,
            json={"body": comment.text},
        )
        return str(data["id"])

    def update_remote_comment(
        self, scope: RemoteScope, task_id: str, comment_id: str, text: str
    ) -> None:
        self._request(
            "PUT",
            f"{self._project(scope)}/issues/{task_id}/notes/{comment_id}",
            write=True,
            json={"body": text},
        )

    def delete_remote_comment(self, scope: RemoteScope, task_id: str, comment_id: str) -> None:
        self._request(
            "DELETE", f"{self._project(scope)}/issues/{task_id}/notes/{comment_id}", write=True
        )

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def create_remote_label(self, scope: RemoteScope, task_id: str, label: Label) -> None:
        if HEX_COLOR.match(label.color or ""):
            existing = self._request(
                "GET", f"{self._project(scope)}/labels/{_quote(label.name)}", allow_missing=True
            )
            if existing is None:
                payload: dict[str, Any] = {
                    "name": label.name,
                    "color": "#" + label.color.lstrip("#"),
                }
                if label.description:
                    payload["description"] = label.description
                self._request("POST", f"{self._project(scope)}/labels", write=True, json=payload)

        self._request(
            "PUT",
            f"{self._project(scope)}/issues/{task_id}",
            write=True,
            json={"add_labels": label.name},
        )

    def update_remote_label(
        self, scope: RemoteScope, task_id: str, old_name: str, label: Label
    ) -> None:
        payload: dict[str, Any] = {"new_name": label.name}
        if HEX_COLOR.match(label.color or ""):
            payload["color"] = "#" + label.color.lstrip("#")
        if label.description is not None:
            payload["description"] = label.description
        self._request(
            "PUT", f"{self._project(scope)}/labels/{_quote(old_name)}", write=True, json=payload
        )

    def delete_remote_label(self, scope: RemoteScope, task_id: str, name: str) -> None:
        self._request(
            "PUT",
            f"{self._project(scope)}/issues/{task_id}",
            write=True,
            json={"remove_labels": name},
        )
