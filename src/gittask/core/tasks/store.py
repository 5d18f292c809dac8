"""
Git object task store.

Each task is one JSON blob in the tree behind the task ref; the entry name is
the task id. Every mutation is one commit on top of the previous head, so the
ref's commit chain doubles as the audit log.

Id allocation scans existing entry names and takes `max(numeric) + 1`. The
scan and the later write are not one atomic step, so two processes creating
tasks at the same moment can compute the same id. The ref update is guarded by
the expected previous head, so the slower writer fails instead of silently
overwriting the other's commit.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from gittask.core.config import TaskConfig, normalize_ref_path
from gittask.core.gitstore import CommitInfo, GitError, GitObjectStore

from .models import AUTHOR, CREATED, Task

logger = logging.getLogger(__name__)


class TaskStoreError(Exception):
    """Error raised by task store operations."""

    pass


class TaskNotFoundError(TaskStoreError):
    """A task required by the operation does not exist."""

    def __init__(self, task_id: str):
        super().__init__(f"Task ID {task_id} not found")
        self.task_id = task_id


class InvalidMigrationError(TaskStoreError):
    """The target of an id migration is empty or already in use."""

    pass


class TaskStore:
    """
    CRUD over task records stored in git objects.

    Example:
        >>> git = GitObjectStore(Path("."))
        >>> store = TaskStore(git, load_config(git))
        >>> task = store.create(Task.new("Fix bug", status="OPEN"))
        >>> task.id
        '1'
        >>> store.find("1").name
        'Fix bug'
    """

    def __init__(self, git: GitObjectStore, config: TaskConfig | None = None) -> None:
        """
        Initialize the task store.

        Args:
            git: Object store adapter for the repository.
            config: Loaded configuration; defaults are used when omitted.
        """
        self.git = git
        self.config = config or TaskConfig()

    @classmethod
    def open(cls, repo_dir: Path | None = None) -> TaskStore:
        """Open the store for a repository, loading its git config."""
        from gittask.core.config import load_config

        git = GitObjectStore(repo_dir)
        return cls(git, load_config(git))

    @property
    def ref_path(self) -> str:
        """Ref holding the task tree."""
        return self.config.ref_path

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _decode(self, entry_name: str, content: bytes) -> Task:
        try:
            return Task.from_blob(entry_name, content)
        except (ValidationError, UnicodeDecodeError) as e:
            raise TaskStoreError(f"Task ID {entry_name}: cannot decode record: {e}") from e

    def list(self) -> list[Task]:
        """
        Load every task in the current tree.

        Records that fail to decode are logged and skipped; the remaining
        tasks are still returned.
        """
        entries = [e for e in self.git.walk_entries(self.ref_path) if e.type == "blob"]
        blobs = self.git.read_blobs([entry.sha for entry in entries])

        tasks = []
        for entry in entries:
            content = blobs.get(entry.sha)
            if content is None:
                continue
            try:
                tasks.append(self._decode(entry.name, content))
            except TaskStoreError as e:
                logger.warning("Skipping task: %s", e)
        return tasks

    def find(self, task_id: str) -> Task | None:
        """
        Get a task by id.

        Returns:
            Task if found, None otherwise.
        """
        for entry in self.git.walk_entries(self.ref_path):
            if entry.name == task_id:
                return self._decode(entry.name, self.git.read_blob(entry.sha))
        return None

    def exists(self, task_id: str) -> bool:
        return any(entry.name == task_id for entry in self.git.walk_entries(self.ref_path))

    def ids(self) -> list[str]:
        return [entry.name for entry in self.git.walk_entries(self.ref_path)]

    def next_id(self) -> str:
        """Largest numeric entry name plus one, or "1" for an empty store."""
        highest = 0
        for name in self.ids():
            if name.isdigit():
                highest = max(highest, int(name))
        return str(highest + 1)

    def history(self, task_id: str) -> list[CommitInfo]:
        """Commits that touched a task, newest first."""
        return self.git.log(self.ref_path, path=task_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _author(self) -> str | None:
        try:
            return self.git.identity().name
        except GitError as e:
            logger.debug("No commit identity for author: %s", e)
            return None

    def _fill_defaults(self, task: Task) -> None:
        if not task.get_property(CREATED):
            task.set_property(CREATED, str(int(time.time())))
        if not task.get_property(AUTHOR):
            author = self._author()
            if author:
                task.set_property(AUTHOR, author)

    def comment_props(self) -> dict[str, str]:
        """`created` and `author` properties for a new local comment."""
        props = {CREATED: str(int(time.time()))}
        author = self._author()
        if author:
            props[AUTHOR] = author
        return props

    def _write(self, tasks: Iterable[Task], removals: list[str], message: str) -> str:
        inserts = {}
        for task in tasks:
            if task.id is None:
                raise TaskStoreError(f"Task {task.name!r} has no id")
            inserts[task.id] = self.git.write_blob(task.to_blob())
        return self.git.commit_tree_change(self.ref_path, inserts, removals, message)

    def create(self, task: Task) -> Task:
        """
        Store a new task.

        Assigns the next numeric id when the task has none, and fills in
        `created` and `author` when they are missing.

        Returns:
            The stored task (a copy carrying its id).
        """
        task = task.model_copy(deep=True)
        if task.id is None:
            task.id = self.next_id()
        self._fill_defaults(task)

        self._write([task], [], "create task")
        logger.info("Created task %s", task.id)
        return task

    def update(self, task: Task) -> Task:
        """
        Rewrite an existing task in place.

        Raises:
            TaskStoreError: If the task has no id.
            TaskNotFoundError: If no task with that id exists.
        """
        if task.id is None:
            raise TaskStoreError("Cannot update a task without an id")
        if not self.exists(task.id):
            raise TaskNotFoundError(task.id)

        self._write([task], [], "update task")
        return task

    def delete(self, task_ids: Iterable[str]) -> list[str]:
        """
        Remove several tasks in one commit.

        Unknown ids are skipped. Nothing is committed if none matched.

        Returns:
            Ids that were removed.
        """
        existing = set(self.ids())
        removed = [task_id for task_id in dict.fromkeys(task_ids) if task_id in existing]
        if not removed:
            return []

        self._write([], removed, "delete task" if len(removed) == 1 else "delete tasks")
        logger.info("Deleted tasks: %s", ", ".join(removed))
        return removed

    def clear(self) -> int:
        """
        Remove every task in one commit.

        Returns:
            Number of tasks removed.
        """
        return len(self.delete(self.ids()))

    def import_tasks(self, tasks: Iterable[Task]) -> list[Task]:
        """
        Write several tasks in one commit.

        Tasks keep their ids (replacing existing records with the same id);
        tasks without an id get consecutive new ids.
        """
        prepared: list[Task] = []
        next_id = int(self.next_id())
        taken = set(self.ids())

        for task in tasks:
            task = task.model_copy(deep=True)
            if task.id is None:
                while str(next_id) in taken:
                    next_id += 1
                task.id = str(next_id)
            taken.add(task.id)
            self._fill_defaults(task)
            prepared.append(task)

        if prepared:
            self._write(prepared, [], "import tasks")
        return prepared

    def migrate_id(self, old_id: str, new_id: str) -> Task:
        """
        Move a task to a new id.

        The new entry is written and the old one removed in the same tree,
        so the change is a single commit.

        Raises:
            TaskNotFoundError: If old_id does not exist.
            InvalidMigrationError: If new_id is empty or already used.
        """
        if not new_id:
            raise InvalidMigrationError("New task ID must not be empty")

        task = self.find(old_id)
        if task is None:
            raise TaskNotFoundError(old_id)
        if new_id == old_id:
            return task
        if self.exists(new_id):
            raise InvalidMigrationError(f"Task ID {new_id} already exists")

        task.id = new_id
        self._write([task], [old_id], f"move task {old_id} -> {new_id}")
        logger.info("Task ID %s -> %s updated", old_id, new_id)
        return task

    def update_comment_id(self, task_id: str, old_comment_id: str, new_comment_id: str) -> Task:
        """
        Rename one comment id and commit.

        Raises:
            TaskNotFoundError: If the task does not exist.
            TaskStoreError: If the comment does not exist or the new id is taken.
        """
        task = self.find(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        try:
            task.set_comment_id(old_comment_id, new_comment_id)
        except ValueError as e:
            raise TaskStoreError(str(e)) from e
        return self.update(task)

    # ------------------------------------------------------------------
    # Ref path
    # ------------------------------------------------------------------

    def set_ref_path(self, ref_path: str, move: bool = False) -> str:
        """
        Change the ref holding the task tree and persist it in `task.ref`.

        Args:
            ref_path: New ref; short names are normalized.
            move: Point the new ref at the current history and delete the
                  old ref, instead of starting from an empty store.

        Returns:
            The normalized ref path.
        """
        new_ref = normalize_ref_path(ref_path)
        old_ref = self.ref_path

        if move and new_ref != old_ref:
            head = self.git.resolve_ref(old_ref)
            if head is not None:
                self.git.update_ref(new_ref, head)
                self.git.delete_ref(old_ref)
                logger.info("Moved task history from %s to %s", old_ref, new_ref)

        self.config = self.config.model_copy(update={"ref_path": new_ref})
        if new_ref == TaskConfig().ref_path:
            self.git.unset_config("task.ref")
        else:
            self.git.set_config("task.ref", new_ref)
        return new_ref
