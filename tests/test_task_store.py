"""
Tests for the git object task store.
"""

import pytest

from gittask.core.config import TaskConfig
from gittask.core.gitstore import GitError, GitObjectStore
from gittask.core.tasks import (
    AUTHOR,
    CREATED,
    InvalidMigrationError,
    Task,
    TaskNotFoundError,
    TaskStore,
    TaskStoreError,
)


def make_task(name: str = "Fix bug", status: str = "OPEN", task_id: str | None = None) -> Task:
    return Task.new(name, status=status, task_id=task_id)


class TestCreate:
    def test_assigns_sequential_ids(self, store: TaskStore) -> None:
        first = store.create(make_task("one"))
        second = store.create(make_task("two"))

        assert (first.id, second.id) == ("1", "2")
        assert store.find("2").name == "two"

    def test_fills_created_and_author(self, store: TaskStore) -> None:
        task = store.create(make_task())

        assert task.get_property(CREATED).isdigit()
        assert task.get_property(AUTHOR) == "Test User"

    def test_keeps_given_author(self, store: TaskStore) -> None:
        task = make_task()
        task.set_property(AUTHOR, "octocat")

        assert store.create(task).get_property(AUTHOR) == "octocat"

    def test_does_not_mutate_argument(self, store: TaskStore) -> None:
        task = make_task()

        store.create(task)

        assert task.id is None
        assert task.get_property(CREATED) is None

    def test_next_id_ignores_non_numeric_ids(self, store: TaskStore) -> None:
        store.create(make_task(task_id="9"))
        store.create(make_task(task_id="draft"))

        assert store.next_id() == "10"

    def test_next_id_empty_store(self, store: TaskStore) -> None:
        assert store.next_id() == "1"


class TestRead:
    def test_list_and_find(self, store: TaskStore) -> None:
        store.create(make_task("one"))
        store.create(make_task("two"))

        assert sorted(t.name for t in store.list()) == ["one", "two"]
        assert store.find("3") is None
        assert store.exists("1")
        assert not store.exists("3")

    def test_find_returns_what_create_stored(self, store: TaskStore) -> None:
        task = make_task()
        task.set_property("priority", "high")
        task.set_property("description", "Steps to reproduce")
        task.add_comment("first", props={"author": "octocat"})
        task.add_comment("second")
        task.add_label("bug", color="red", description="Something is broken")

        created = store.create(task)
        found = store.find(created.id)

        assert found is not None
        assert found.model_dump() == created.model_dump()
        assert found.comment_ids == ["1", "2"]

    def test_list_empty_store(self, store: TaskStore) -> None:
        assert store.list() == []

    def test_list_skips_undecodable_records(self, store: TaskStore, caplog) -> None:
        store.create(make_task("good"))
        store.git.commit_tree_change(
            store.ref_path, {"99": store.git.write_blob(b"not json")}, message="corrupt"
        )

        tasks = store.list()

        assert [t.id for t in tasks] == ["1"]
        assert "Task ID 99" in caplog.text
        with pytest.raises(TaskStoreError):
            store.find("99")


class TestUpdate:
    def test_update(self, store: TaskStore) -> None:
        task = store.create(make_task())
        task.set_property("status", "CLOSED")

        store.update(task)

        assert store.find("1").status == "CLOSED"

    def test_update_missing_task(self, store: TaskStore) -> None:
        with pytest.raises(TaskNotFoundError, match="Task ID 7 not found"):
            store.update(make_task(task_id="7"))

    def test_update_without_id(self, store: TaskStore) -> None:
        with pytest.raises(TaskStoreError):
            store.update(make_task())

    def test_history_newest_first(self, store: TaskStore) -> None:
        task = store.create(make_task())
        store.create(make_task("other"))
        task.set_property("priority", "high")
        store.update(task)

        history = store.history("1")

        assert [c.message for c in history] == ["update task", "create task"]


class TestDelete:
    def test_delete_in_one_commit(self, store: TaskStore) -> None:
        for name in ("a", "b", "c"):
            store.create(make_task(name))
        before = len(store.git.log(store.ref_path))

        removed = store.delete(["1", "3", "8"])

        assert removed == ["1", "3"]
        assert store.ids() == ["2"]
        assert len(store.git.log(store.ref_path)) == before + 1

    def test_delete_nothing_matched(self, store: TaskStore) -> None:
        store.create(make_task())
        before = len(store.git.log(store.ref_path))

        assert store.delete(["5"]) == []
        assert len(store.git.log(store.ref_path)) == before

    def test_clear(self, store: TaskStore) -> None:
        store.create(make_task("a"))
        store.create(make_task("b"))

        assert store.clear() == 2
        assert store.list() == []
        # History survives
        assert store.history("1")


class TestImport:
    def test_keeps_ids_and_assigns_missing(self, store: TaskStore) -> None:
        store.create(make_task("existing"))

        imported = store.import_tasks(
            [make_task("kept", task_id="2"), make_task("new"), make_task("newer")]
        )

        assert [t.id for t in imported] == ["2", "3", "4"]
        assert sorted(store.ids()) == ["1", "2", "3", "4"]
        assert [c.message for c in store.git.log(store.ref_path)][0] == "import tasks"


class TestMigrateId:
    def test_single_commit_move(self, store: TaskStore) -> None:
        store.create(make_task())
        before = len(store.git.log(store.ref_path))

        moved = store.migrate_id("1", "123")

        assert moved.id == "123"
        assert store.find("1") is None
        assert store.find("123").name == "Fix bug"
        assert len(store.git.log(store.ref_path)) == before + 1

    def test_target_taken(self, store: TaskStore) -> None:
        store.create(make_task("a"))
        store.create(make_task("b"))

        with pytest.raises(InvalidMigrationError, match="already exists"):
            store.migrate_id("1", "2")
        assert store.find("1").name == "a"

    def test_empty_target(self, store: TaskStore) -> None:
        store.create(make_task())

        with pytest.raises(InvalidMigrationError):
            store.migrate_id("1", "")

    def test_missing_source(self, store: TaskStore) -> None:
        with pytest.raises(TaskNotFoundError):
            store.migrate_id("1", "2")

    def test_update_comment_id(self, store: TaskStore) -> None:
        task = make_task()
        task.add_comment("note")
        store.create(task)

        store.update_comment_id("1", "1", "555")

        assert store.find("1").comment_ids == ["555"]
        with pytest.raises(TaskStoreError):
            store.update_comment_id("1", "1", "556")


class TestRefPath:
    def test_custom_ref_from_config(self, git: GitObjectStore) -> None:
        store = TaskStore(git, TaskConfig(ref_path="refs/tasks/other"))
        store.create(make_task())

        assert git.resolve_ref("refs/tasks/other") is not None
        assert git.resolve_ref("refs/tasks/tasks") is None

    def test_move_history(self, store: TaskStore) -> None:
        store.create(make_task())
        head = store.git.resolve_ref("refs/tasks/tasks")

        ref = store.set_ref_path("tasks/main", move=True)

        assert ref == "refs/tasks/main"
        assert store.git.resolve_ref("refs/tasks/main") == head
        assert store.git.resolve_ref("refs/tasks/tasks") is None
        assert store.git.get_config("task.ref") == "refs/tasks/main"
        assert store.find("1").name == "Fix bug"

    def test_switch_without_move_starts_empty(self, store: TaskStore) -> None:
        store.create(make_task())

        store.set_ref_path("refs/tasks/fresh")

        assert store.list() == []
        assert store.git.resolve_ref("refs/tasks/tasks") is not None

    def test_default_ref_unsets_config(self, store: TaskStore) -> None:
        store.set_ref_path("tasks/main")
        store.set_ref_path("refs/tasks/tasks")

        assert store.git.get_config("task.ref") is None


def test_concurrent_writer_is_rejected(git: GitObjectStore, monkeypatch) -> None:
    """A writer whose base head went stale must not overwrite the other commit."""
    store = TaskStore(git)
    store.create(make_task("first"))
    stale_head = git.resolve_ref(store.ref_path)
    other = TaskStore(GitObjectStore(git.repo_dir))
    other.create(make_task("racing"))

    real_resolve = git.resolve_ref

    def stale_resolve(ref: str) -> str | None:
        return stale_head if ref == store.ref_path else real_resolve(ref)

    with monkeypatch.context() as m:
        m.setattr(git, "resolve_ref", stale_resolve)
        with pytest.raises(GitError):
            git.commit_tree_change(store.ref_path, {"9": git.write_blob(b"{}")}, message="late")

    assert sorted(store.ids()) == ["1", "2"]
