"""
Tests for the GitLab connector.
"""

import json

import httpx
import pytest

from gittask.core.config import TaskConfig
from gittask.core.connectors import (
    GitLabConnector,
    MissingTokenError,
    RemoteScope,
    RemoteTaskState,
)
from gittask.core.tasks import Label, Task

SCOPE = RemoteScope("team/app", "api")
PROJECT = "/api/v4/projects/team/app/api"
STATUSES = ("OPEN", "CLOSED")


class Router:
    """Records requests and answers them from a (method, path) table."""

    def __init__(self, routes: dict) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"message": "404 Not found"})
        answer = self.routes[key]
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(200, json=answer)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def make_connector(routes: dict, token: str | None = "secret", **kwargs):
    router = Router(routes)
    connector = GitLabConnector(token=token, transport=httpx.MockTransport(router), **kwargs)
    return connector, router


def gitlab_issue(iid: int, **overrides) -> dict:
    data = {
        "id": 1000 + iid,
        "iid": iid,
        "title": f"Issue {iid}",
        "description": "Details",
        "state": "opened",
        "created_at": "2024-01-02T03:04:05.000Z",
        "author": {"username": "tanuki"},
        "user_notes_count": 0,
        "labels": [],
    }
    data.update(overrides)
    return data


class TestRemotes:
    @pytest.mark.parametrize(
        "url",
        [
            "https://gitlab.com/team/app/api.git",
            "https://gitlab.com/team/app/api",
            "git@gitlab.com:team/app/api.git",
            "ssh://git@gitlab.com/team/app/api.git",
        ],
    )
    def test_matches_subgroups(self, url: str) -> None:
        assert GitLabConnector().supports_remote(url) == SCOPE

    def test_rejects_other_hosts(self) -> None:
        assert GitLabConnector().supports_remote("git@github.com:octo/hello.git") is None

    def test_self_hosted_from_config(self) -> None:
        connector = GitLabConnector()
        connector.configure(TaskConfig(gitlab_url="git.example.com"))

        assert connector.supports_remote("git@git.example.com:ops/tools.git") == RemoteScope(
            "ops", "tools"
        )
        assert connector.supports_remote("git@gitlab.com:ops/tools.git") is None

    def test_self_hosted_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("GITLAB_URL", "https://git.example.com/")

        assert GitLabConnector().url == "https://git.example.com"

    def test_project_path_is_encoded(self) -> None:
        connector, router = make_connector(
            {("GET", f"{PROJECT}/issues/3"): gitlab_issue(3)},
            base_url="https://git.example.com",
        )

        connector.get_remote_task(SCOPE, "3", False, False, STATUSES)

        request = router.requests[0]
        assert request.url.host == "git.example.com"
        assert b"/projects/team%2Fapp%2Fapi/issues/3" in request.url.raw_path
        assert request.headers["PRIVATE-TOKEN"] == "secret"


class TestRead:
    def test_get_maps_issue_and_notes(self) -> None:
        connector, _ = make_connector(
            {
                ("GET", f"{PROJECT}/issues/3"): gitlab_issue(
                    3,
                    state="closed",
                    user_notes_count=2,
                    labels=[{"name": "bug", "color": "#d73a4a", "description": "Broken"}],
                ),
                ("GET", f"{PROJECT}/issues/3/notes"): [
                    {"id": 50, "body": "added ~bug label", "system": True},
                    {
                        "id": 51,
                        "body": "On it",
                        "system": False,
                        "author": {"username": "dev"},
                        "created_at": "2024-01-02T03:04:05Z",
                    },
                ],
            }
        )

        task = connector.get_remote_task(SCOPE, "3", True, True, STATUSES)

        assert task.id == "3"
        assert task.status == "CLOSED"
        assert task.description == "Details"
        assert task.get_property("author") == "tanuki"
        assert task.comment_ids == ["51"]
        assert task.comments[0].get_property("author") == "dev"
        assert task.labels == [Label(name="bug", color="#d73a4a", description="Broken")]

    def test_plain_label_names(self) -> None:
        connector, _ = make_connector(
            {("GET", f"{PROJECT}/issues/3"): gitlab_issue(3, labels=["bug", "ui"])}
        )

        task = connector.get_remote_task(SCOPE, "3", False, True, STATUSES)

        assert [lbl.name for lbl in task.labels] == ["bug", "ui"]

    def test_get_missing(self) -> None:
        connector, _ = make_connector({})

        assert connector.get_remote_task(SCOPE, "3", True, True, STATUSES) is None

    def test_list_maps_state_filter(self) -> None:
        connector, router = make_connector(
            {("GET", f"{PROJECT}/issues"): [gitlab_issue(4), gitlab_issue(3)]}
        )

        tasks = connector.list_remote_tasks(
            SCOPE, False, True, None, RemoteTaskState.OPEN, STATUSES
        )

        assert [t.id for t in tasks] == ["4", "3"]
        params = router.requests[0].url.params
        assert params["state"] == "opened"
        assert params["with_labels_details"] == "true"


class TestWrite:
    def test_write_without_token(self) -> None:
        connector, _ = make_connector({}, token=None)

        with pytest.raises(MissingTokenError, match="GITLAB_TOKEN"):
            connector.delete_remote_task(SCOPE, "3")

    def test_create_task(self) -> None:
        connector, router = make_connector(
            {("POST", f"{PROJECT}/issues"): gitlab_issue(12)}
        )
        task = Task.new("New", status="OPEN", description="Body")
        task.add_label("bug")
        task.add_label("ui")

        assert connector.create_remote_task(SCOPE, task) == "12"
        assert router.body() == {"title": "New", "description": "Body", "labels": "bug,ui"}

    @pytest.mark.parametrize(
        ("state", "event"), [(RemoteTaskState.CLOSED, "close"), (RemoteTaskState.OPEN, "reopen")]
    )
    def test_update_state_event(self, state: RemoteTaskState, event: str) -> None:
        connector, router = make_connector({("PUT", f"{PROJECT}/issues/3"): gitlab_issue(3)})
        task = Task.new("Title", status="OPEN", task_id="3")

        connector.update_remote_task(SCOPE, task, None, state)

        assert router.body()["state_event"] == event
        assert "labels" not in router.body()

    def test_notes(self) -> None:
        connector, router = make_connector(
            {
                ("POST", f"{PROJECT}/issues/3/notes"): {"id": 77},
                ("PUT", f"{PROJECT}/issues/3/notes/77"): {"id": 77},
                ("DELETE", f"{PROJECT}/issues/3/notes/77"): httpx.Response(204),
            }
        )
        task = Task.new("Title", status="OPEN", task_id="3")
        comment = task.add_comment("First")

        note_id = connector.create_remote_comment(SCOPE, "3", comment)
        connector.update_remote_comment(SCOPE, "3", note_id, "Edited")
        connector.delete_remote_comment(SCOPE, "3", note_id)

        assert note_id == "77"
        assert router.body(1) == {"body": "Edited"}

    def test_create_label(self) -> None:
        connector, router = make_connector(
            {
                ("POST", f"{PROJECT}/labels"): {"name": "bug"},
                ("PUT", f"{PROJECT}/issues/3"): gitlab_issue(3, labels=["bug"]),
            }
        )

        connector.create_remote_label(SCOPE, "3", Label(name="bug", color="d73a4a"))

        assert router.body(1) == {"name": "bug", "color": "#d73a4a"}
        assert router.body(2) == {"add_labels": "bug"}

    def test_update_label(self) -> None:
        connector, router = make_connector(
            {("PUT", f"{PROJECT}/labels/bug"): {"name": "defect"}}
        )

        connector.update_remote_label(
            SCOPE, "3", "bug", Label(name="defect", color="Red", description="")
        )

        assert router.body() == {"new_name": "defect", "description": ""}

    def test_delete_label(self) -> None:
        connector, router = make_connector({("PUT", f"{PROJECT}/issues/3"): gitlab_issue(3)})

        connector.delete_remote_label(SCOPE, "3", "bug")

        assert router.body() == {"remove_labels": "bug"}
