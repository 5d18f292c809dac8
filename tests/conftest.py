"""
Pytest configuration and shared fixtures.

Provides a throwaway git repository, a task store on top of it, and an
in-memory connector that stands in for a remote issue tracker.
"""

import subprocess
from pathlib import Path

import pytest

from gittask.core.connectors import (
    ConnectorError,
    RemoteScope,
    RemoteTaskState,
    reset_connectors,
)
from gittask.core.connectors import base as connector_base
from gittask.core.gitstore import GitObjectStore
from gittask.core.tasks import Comment, Label, Task, TaskStore

# ==============================================================================
# Environment
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep real tokens, user .env files and cached connectors out of tests."""
    for name in (
        "GITHUB_TOKEN",
        "GITHUB_API_TOKEN",
        "GITLAB_TOKEN",
        "GITLAB_API_TOKEN",
        "GITLAB_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    yield
    reset_connectors()


# ==============================================================================
# Repository Fixtures
# ==============================================================================


def run_git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository for testing."""
    repo = tmp_path / "repo"
    repo.mkdir()

    subprocess.run(["git", "init"], cwd=repo, capture_output=True, check=True)

    # Configure git user (required for commits)
    run_git(repo, "config", "user.email", "test@example.com")
    run_git(repo, "config", "user.name", "Test User")

    return repo


@pytest.fixture
def git(git_repo: Path) -> GitObjectStore:
    return GitObjectStore(git_repo)


@pytest.fixture
def store(git: GitObjectStore) -> TaskStore:
    """Task store with default configuration."""
    return TaskStore(git)


@pytest.fixture
def in_repo(git_repo: Path, monkeypatch) -> Path:
    """Run the test from inside the repository (for CLI commands)."""
    monkeypatch.chdir(git_repo)
    return git_repo


# ==============================================================================
# Fake Remote Tracker
# ==============================================================================


class FakeConnector:
    """
    In-memory remote tracker.

    Issues get ids starting at 100 and comments ids starting at 9000, so
    tests can tell local and remote ids apart. Every call is recorded in
    `calls` as (method, task_id). Comments whose text is in
    `fail_on_comment` are refused.
    """

    name = "fake"
    config_options: list[str] = []

    def __init__(self) -> None:
        self.issues: dict[str, dict] = {}
        self.calls: list[tuple[str, str | None]] = []
        self.fail_on: set[str] = set()
        self.fail_on_comment: set[str] = set()
        self._next_issue = 100
        self._next_comment = 9000

    def supports_remote(self, url: str) -> RemoteScope | None:
        if "fake.example" in url:
            return RemoteScope("acme", "widgets")
        return None

    def seed(
        self,
        task_id: str,
        name: str,
        state: RemoteTaskState = RemoteTaskState.OPEN,
        description: str = "",
        comments: list[Comment] | None = None,
        labels: list[Label] | None = None,
    ) -> None:
        self.issues[task_id] = {
            "name": name,
            "description": description,
            "state": state,
            "comments": list(comments or []),
            "labels": list(labels or []),
        }

    def _to_task(self, task_id, issue, with_comments, with_labels, statuses) -> Task:
        open_status, closed_status = statuses
        status = closed_status if issue["state"] == RemoteTaskState.CLOSED else open_status
        task = Task.new(issue["name"], status=status, description=issue["description"])
        task.id = task_id
        if with_comments:
            task.comments = [c.model_copy() for c in issue["comments"]] or None
        if with_labels:
            task.labels = [lbl.model_copy() for lbl in issue["labels"]] or None
        return task

    def _check(self, method: str, task_id: str | None) -> None:
        self.calls.append((method, task_id))
        if task_id in self.fail_on:
            raise ConnectorError(f"Remote refused task {task_id}")

    def list_remote_tasks(self, scope, with_comments, with_labels, limit, state, statuses):
        self._check("list", None)
        tasks = []
        for task_id in sorted(self.issues, key=int, reverse=True):
            issue = self.issues[task_id]
            if state != RemoteTaskState.ALL and issue["state"] != state:
                continue
            tasks.append(self._to_task(task_id, issue, with_comments, with_labels, statuses))
        return tasks[:limit] if limit else tasks

    def get_remote_task(self, scope, task_id, with_comments, with_labels, statuses):
        self._check("get", task_id)
        issue = self.issues.get(task_id)
        if issue is None:
            return None
        return self._to_task(task_id, issue, with_comments, with_labels, statuses)

    def create_remote_task(self, scope, task):
        self._check("create", task.id)
        task_id = str(self._next_issue)
        self._next_issue += 1
        self.seed(task_id, task.name, description=task.description, labels=task.labels)
        return task_id

    def update_remote_task(self, scope, task, labels, state):
        self._check("update", task.id)
        issue = self.issues[task.id]
        issue.update(name=task.name, description=task.description, state=state)
        if labels is not None:
            issue["labels"] = list(labels)

    def delete_remote_task(self, scope, task_id):
        self._check("delete", task_id)
        del self.issues[task_id]

    def create_remote_comment(self, scope, task_id, comment):
        self._check("create_comment", task_id)
        if comment.text in self.fail_on_comment:
            raise ConnectorError(f"Remote refused comment {comment.text!r}")
        comment_id = str(self._next_comment)
        self._next_comment += 1
        self.issues[task_id]["comments"].append(
            Comment(id=comment_id, props=dict(comment.props), text=comment.text)
        )
        return comment_id

    def update_remote_comment(self, scope, task_id, comment_id, text):
        self._check("update_comment", task_id)
        for comment in self.issues[task_id]["comments"]:
            if comment.id == comment_id:
                comment.text = text

    def delete_remote_comment(self, scope, task_id, comment_id):
        self._check("delete_comment", task_id)
        issue = self.issues[task_id]
        issue["comments"] = [c for c in issue["comments"] if c.id != comment_id]

    def create_remote_label(self, scope, task_id, label):
        self._check("create_label", task_id)
        self.issues[task_id]["labels"].append(label)

    def update_remote_label(self, scope, task_id, old_name, label):
        self._check("update_label", task_id)

    def delete_remote_label(self, scope, task_id, name):
        self._check("delete_label", task_id)
        issue = self.issues[task_id]
        issue["labels"] = [lbl for lbl in issue["labels"] if lbl.name != name]


@pytest.fixture
def fake_connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def fake_registry(monkeypatch):
    """Register FakeConnector as "fake" for the duration of a test."""
    monkeypatch.setattr(connector_base, "_connectors", dict(connector_base._connectors))
    connector_base.register_connector("fake")(FakeConnector)
    return connector_base
