"""
Tests for the GitHub connector.

HTTP traffic goes through httpx.MockTransport; each test declares the
responses for the (method, path) pairs it expects.
"""

import json

import httpx
import pytest

from gittask.core.connectors import (
    ConnectorError,
    GitHubConnector,
    MissingTokenError,
    RemoteScope,
    RemoteTaskState,
)
from gittask.core.connectors.http import timestamp
from gittask.core.tasks import Comment, Label, Task

SCOPE = RemoteScope("octo", "hello")
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
            return httpx.Response(404, json={"message": "Not Found"})
        answer = self.routes[key]
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(200, json=answer)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def make_connector(routes: dict, token: str | None = "secret") -> tuple[GitHubConnector, Router]:
    router = Router(routes)
    return GitHubConnector(token=token, transport=httpx.MockTransport(router)), router


def issue(number: int, **overrides) -> dict:
    data = {
        "number": number,
        "node_id": f"I_{number}",
        "title": f"Issue {number}",
        "body": "Details",
        "state": "open",
        "created_at": "2024-01-02T03:04:05Z",
        "user": {"login": "octocat"},
        "comments": 0,
        "labels": [],
    }
    data.update(overrides)
    return data


class TestSupportsRemote:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/octo/hello.git",
            "https://github.com/octo/hello",
            "https://github.com/octo/hello/",
            "git@github.com:octo/hello.git",
            "ssh://git@github.com/octo/hello.git",
        ],
    )
    def test_matches(self, url: str) -> None:
        assert GitHubConnector().supports_remote(url) == SCOPE

    @pytest.mark.parametrize(
        "url", ["https://gitlab.com/octo/hello.git", "git@example.com:octo/hello.git"]
    )
    def test_rejects_other_hosts(self, url: str) -> None:
        assert GitHubConnector().supports_remote(url) is None


def test_timestamp() -> None:
    assert timestamp("2024-01-02T03:04:05Z") == "1704164645"
    assert timestamp(None) == ""


class TestRead:
    def test_get_maps_issue(self) -> None:
        connector, router = make_connector(
            {
                ("GET", "/repos/octo/hello/issues/5"): issue(
                    5,
                    state="closed",
                    comments=1,
                    labels=[{"name": "bug", "color": "d73a4a", "description": None}],
                ),
                ("GET", "/repos/octo/hello/issues/5/comments"): [
                    {
                        "id": 777,
                        "body": "Seen it",
                        "user": {"login": "hubot"},
                        "created_at": "2024-01-02T03:04:05Z",
                    }
                ],
            }
        )

        task = connector.get_remote_task(SCOPE, "5", True, True, STATUSES)

        assert task.id == "5"
        assert task.name == "Issue 5"
        assert task.status == "CLOSED"
        assert task.description == "Details"
        assert task.get_property("author") == "octocat"
        assert task.get_property("created") == "1704164645"
        assert task.comments == [
            Comment(id="777", props={"author": "hubot", "created": "1704164645"}, text="Seen it")
        ]
        assert task.labels == [Label(name="bug", color="d73a4a")]
        assert router.requests[0].headers["Authorization"] == "Bearer secret"

    def test_get_skips_comment_call_when_none(self) -> None:
        connector, router = make_connector({("GET", "/repos/octo/hello/issues/5"): issue(5)})

        task = connector.get_remote_task(SCOPE, "5", True, True, STATUSES)

        assert task.comments is None
        assert task.labels is None
        assert len(router.requests) == 1

    def test_get_missing_issue(self) -> None:
        connector, _ = make_connector({})

        assert connector.get_remote_task(SCOPE, "5", False, False, STATUSES) is None

    def test_get_pull_request_is_not_a_task(self) -> None:
        connector, _ = make_connector(
            {("GET", "/repos/octo/hello/issues/5"): issue(5, pull_request={"url": "..."})}
        )

        assert connector.get_remote_task(SCOPE, "5", False, False, STATUSES) is None

    def test_reads_work_without_token(self) -> None:
        connector, router = make_connector(
            {("GET", "/repos/octo/hello/issues/5"): issue(5)}, token=None
        )

        assert connector.get_remote_task(SCOPE, "5", False, False, STATUSES) is not None
        assert "Authorization" not in router.requests[0].headers

    def test_list_skips_pull_requests_and_honors_limit(self) -> None:
        connector, router = make_connector(
            {
                ("GET", "/repos/octo/hello/issues"): [
                    issue(9),
                    issue(8, pull_request={"url": "..."}),
                    issue(7),
                    issue(6),
                ]
            }
        )

        tasks = connector.list_remote_tasks(
            SCOPE, False, False, 2, RemoteTaskState.OPEN, STATUSES
        )

        assert [t.id for t in tasks] == ["9", "7"]
        params = router.requests[0].url.params
        assert params["state"] == "open"
        assert params["per_page"] == "2"


class TestWrite:
    def test_write_without_token(self) -> None:
        connector, router = make_connector({}, token=None)

        with pytest.raises(MissingTokenError, match="GITHUB_TOKEN"):
            connector.create_remote_task(SCOPE, Task.new("New", status="OPEN"))
        assert router.requests == []

    def test_token_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("GITHUB_API_TOKEN", "from-env")

        assert GitHubConnector().token == "from-env"

    def test_create_task(self) -> None:
        connector, router = make_connector(
            {("POST", "/repos/octo/hello/issues"): issue(42, title="New")}
        )
        task = Task.new("New", status="OPEN", description="Body")
        task.add_label("bug")

        remote_id = connector.create_remote_task(SCOPE, task)

        assert remote_id == "42"
        assert router.body() == {"title": "New", "body": "Body", "labels": ["bug"]}

    def test_update_task_state(self) -> None:
        connector, router = make_connector(
            {("PATCH", "/repos/octo/hello/issues/5"): issue(5, state="closed")}
        )
        task = Task.new("Renamed", status="CLOSED", task_id="5")

        connector.update_remote_task(SCOPE, task, None, RemoteTaskState.CLOSED)

        assert router.body() == {"title": "Renamed", "body": "", "state": "closed"}

    def test_error_message_from_provider(self) -> None:
        connector, _ = make_connector(
            {
                ("PATCH", "/repos/octo/hello/issues/5"): httpx.Response(
                    422, json={"message": "Validation Failed"}
                )
            }
        )
        task = Task.new("Renamed", status="OPEN", task_id="5")

        with pytest.raises(ConnectorError, match="Validation Failed"):
            connector.update_remote_task(SCOPE, task, [], RemoteTaskState.OPEN)

    def test_delete_uses_graphql(self) -> None:
        connector, router = make_connector(
            {
                ("GET", "/repos/octo/hello/issues/5"): issue(5),
                ("POST", "/graphql"): {"data": {"deleteIssue": {"clientMutationId": None}}},
            }
        )

        connector.delete_remote_task(SCOPE, "5")

        assert router.body()["variables"] == {"issueId": "I_5"}

    def test_delete_graphql_error(self) -> None:
        connector, _ = make_connector(
            {
                ("GET", "/repos/octo/hello/issues/5"): issue(5),
                ("POST", "/graphql"): {"errors": [{"message": "Must be an admin"}]},
            }
        )

        with pytest.raises(ConnectorError, match="Must be an admin"):
            connector.delete_remote_task(SCOPE, "5")

    def test_comment_operations(self) -> None:
        connector, router = make_connector(
            {
                ("POST", "/repos/octo/hello/issues/5/comments"): {"id": 901},
                ("PATCH", "/repos/octo/hello/issues/comments/901"): {"id": 901},
                ("DELETE", "/repos/octo/hello/issues/comments/901"): httpx.Response(204),
            }
        )

        comment_id = connector.create_remote_comment(SCOPE, "5", Comment(id="1", text="Hi"))
        connector.update_remote_comment(SCOPE, "5", comment_id, "Hello")
        connector.delete_remote_comment(SCOPE, "5", comment_id)

        assert comment_id == "901"
        assert router.body(1) == {"body": "Hello"}
        assert [r.method for r in router.requests] == ["POST", "PATCH", "DELETE"]

    def test_create_label_defines_missing_repo_label(self) -> None:
        connector, router = make_connector(
            {
                ("POST", "/repos/octo/hello/labels"): {"name": "needs review"},
                ("POST", "/repos/octo/hello/issues/5/labels"): [{"name": "needs review"}],
            }
        )

        connector.create_remote_label(
            SCOPE, "5", Label(name="needs review", color="#D73A4A", description="Look")
        )

        assert router.requests[0].url.raw_path == b"/repos/octo/hello/labels/needs%20review"
        assert router.body(1) == {
            "name": "needs review",
            "color": "d73a4a",
            "description": "Look",
        }
        assert router.body(2) == {"labels": ["needs review"]}

    def test_create_label_with_color_name_only_attaches(self) -> None:
        connector, router = make_connector(
            {("POST", "/repos/octo/hello/issues/5/labels"): [{"name": "bug"}]}
        )

        connector.create_remote_label(SCOPE, "5", Label(name="bug", color="Red"))

        assert len(router.requests) == 1

    def test_update_label_renames_repo_label(self) -> None:
        connector, router = make_connector(
            {("PATCH", "/repos/octo/hello/labels/bug"): {"name": "defect"}}
        )

        connector.update_remote_label(SCOPE, "5", "bug", Label(name="defect", color="ff0000"))

        assert router.body() == {"new_name": "defect", "color": "ff0000"}

    def test_delete_label(self) -> None:
        connector, router = make_connector(
            {("DELETE", "/repos/octo/hello/issues/5/labels/bug"): []}
        )

        connector.delete_remote_label(SCOPE, "5", "bug")

        assert router.requests[0].method == "DELETE"
