"""
Sync service for reconciling local tasks with a remote tracker.

Push walks local task ids and makes the remote match: missing remote tasks are
created (and the local task takes over the remote id), status changes are sent
as remote updates, and local comments unknown to the remote are created there.
Pull walks remote tasks and upserts them into the local store.

Merge policy:
- union by identity: nothing is ever deleted because the other side lacks it
- on push the local status wins
- on pull the remote name, description and status overwrite the local ones
  and comments (by id) and labels (by name) are merged into the local lists

Every id is processed independently; a failure is recorded in the report and
the loop moves on.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from gittask.core.config import TaskConfig
from gittask.core.connectors import ConnectorError, RemoteConnector, RemoteScope, RemoteTaskState
from gittask.core.gitstore import GitError
from gittask.core.tasks import Comment, Label, Task, TaskStore, TaskStoreError
from gittask.core.tasks.models import DESCRIPTION, NAME, STATUS

from .models import SyncOperation, SyncOutcome, SyncReport, TaskSyncResult

logger = logging.getLogger(__name__)

# Errors that fail one task without aborting the whole loop
SYNC_ERRORS = (ConnectorError, GitError, TaskStoreError, ValueError)


class SyncService:
    """
    Reconciles the local task store with one remote project.

    Example:
        >>> connector, scope = select_connector(git.list_remotes(), config=config)
        >>> service = SyncService(store, connector, scope)
        >>> report = service.push(["1", "2"])
        >>> print(report.summary())
    """

    def __init__(
        self,
        store: TaskStore,
        connector: RemoteConnector,
        scope: RemoteScope,
        config: TaskConfig | None = None,
    ) -> None:
        """
        Initialize the sync service.

        Args:
            store: Local task store.
            connector: Connector for the remote tracker.
            scope: Remote project the connector talks to.
            config: Configuration; defaults to the store's.
        """
        self.store = store
        self.connector = connector
        self.scope = scope
        self.config = config or store.config

    @property
    def remote_label(self) -> str:
        return f"{self.connector.name}:{self.scope}"

    def _statuses(self) -> tuple[str, str]:
        return self.config.remote_statuses()

    def _remote_state(self, status: str) -> RemoteTaskState:
        return RemoteTaskState.CLOSED if self.config.is_done(status) else RemoteTaskState.OPEN

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def push(
        self,
        task_ids: Iterable[str],
        no_comments: bool = False,
        no_labels: bool = False,
    ) -> SyncReport:
        """
        Push local tasks to the remote.

        Args:
            task_ids: Local task ids to push.
            no_comments: Do not create comments remotely.
            no_labels: Do not send labels.

        Returns:
            SyncReport with one result per id.
        """
        report = SyncReport(
            operation=SyncOperation.PUSH,
            remote=self.remote_label,
            started_at=datetime.now(),
        )

        for task_id in task_ids:
            try:
                result = self._push_task(task_id, no_comments, no_labels)
            except SYNC_ERRORS as e:
                logger.warning("Push of task %s failed: %s", task_id, e)
                result = TaskSyncResult(
                    task_id=task_id, outcome=SyncOutcome.FAILED, message=str(e)
                )
            report.add(result)

        report.completed_at = datetime.now()
        logger.info(report.summary())
        return report

    def _push_task(self, task_id: str, no_comments: bool, no_labels: bool) -> TaskSyncResult:
        local = self.store.find(task_id)
        if local is None:
            return TaskSyncResult(task_id=task_id, outcome=SyncOutcome.LOCAL_NOT_FOUND)

        remote = self.connector.get_remote_task(
            self.scope,
            task_id,
            with_comments=not no_comments,
            with_labels=not no_labels,
            statuses=self._statuses(),
        )

        if remote is None:
            return self._push_new_task(local, no_comments, no_labels)

        if local.status != remote.status:
            logger.info("Task %s: %s -> %s", task_id, remote.status, local.status)
            # Labels are never sent as a replacement list; missing ones are added below
            self.connector.update_remote_task(
                self.scope, local, labels=None, state=self._remote_state(local.status)
            )
            if not no_labels:
                self._push_missing_labels(local, remote)
            created = 0 if no_comments else self._push_missing_comments(local, remote)
            return TaskSyncResult(
                task_id=task_id, outcome=SyncOutcome.UPDATED, comments_created=created
            )

        created = 0 if no_comments else self._push_missing_comments(local, remote)
        if created:
            return TaskSyncResult(
                task_id=task_id, outcome=SyncOutcome.COMMENTS_SYNCED, comments_created=created
            )
        return TaskSyncResult(task_id=task_id, outcome=SyncOutcome.NOTHING_TO_SYNC)

    def _push_new_task(self, local: Task, no_comments: bool, no_labels: bool) -> TaskSyncResult:
        local_id = _task_id(local)

        outgoing = local.model_copy(update={"labels": None}) if no_labels else local
        remote_id = self.connector.create_remote_task(self.scope, outgoing)
        logger.info("Created remote task %s for local task %s", remote_id, local_id)

        if remote_id != local_id:
            local = self.store.migrate_id(local_id, remote_id)

        # A new remote task has no comments yet
        created = 0 if no_comments else self._push_missing_comments(local, None)
        return TaskSyncResult(
            task_id=remote_id,
            outcome=SyncOutcome.CREATED,
            previous_id=local_id,
            comments_created=created,
        )

    def _push_missing_labels(self, local: Task, remote: Task) -> None:
        remote_names = {label.name for label in remote.labels or []}
        for label in local.labels or []:
            if label.name not in remote_names:
                self.connector.create_remote_label(self.scope, _task_id(local), label)

    def _push_missing_comments(self, local: Task, remote: Task | None) -> int:
        """
        Create local comments the remote does not know and adopt their remote ids.

        Each adopted id is committed right after its remote create, so a
        failure part way through never leaves a created comment unrecorded.

        Returns:
            Number of comments created remotely.
        """
        task_id = _task_id(local)
        remote_ids = set(remote.comment_ids) if remote is not None else set()

        created = 0
        for comment in list(local.comments or []):
            if comment.id in remote_ids:
                continue
            remote_comment_id = self.connector.create_remote_comment(
                self.scope, task_id, comment
            )
            created += 1
            if comment.id != remote_comment_id:
                logger.info("Comment ID %s -> %s updated", comment.id, remote_comment_id)
                if comment.id is None:
                    comment.id = remote_comment_id
                else:
                    local.set_comment_id(comment.id, remote_comment_id)
                self.store.update(local)
        return created

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    def pull(
        self,
        task_ids: Iterable[str] | None = None,
        limit: int | None = None,
        status: str | None = None,
        no_comments: bool = False,
        no_labels: bool = False,
    ) -> SyncReport:
        """
        Pull remote tasks into the local store.

        Args:
            task_ids: Remote ids to fetch. When omitted, the remote list is
                      pulled instead.
            limit: Maximum number of tasks when listing.
            status: Only list open (or, for a done status, closed) tasks.
            no_comments: Do not fetch or compare comments.
            no_labels: Do not fetch or compare labels.

        Returns:
            SyncReport with one result per remote task.
        """
        report = SyncReport(
            operation=SyncOperation.PULL,
            remote=self.remote_label,
            started_at=datetime.now(),
        )
        statuses = self._statuses()

        if task_ids is not None:
            for task_id in task_ids:
                try:
                    remote = self.connector.get_remote_task(
                        self.scope,
                        task_id,
                        with_comments=not no_comments,
                        with_labels=not no_labels,
                        statuses=statuses,
                    )
                    if remote is None:
                        result = TaskSyncResult(
                            task_id=task_id, outcome=SyncOutcome.REMOTE_NOT_FOUND
                        )
                    else:
                        result = self._import_remote_task(remote, no_comments, no_labels)
                except SYNC_ERRORS as e:
                    logger.warning("Pull of task %s failed: %s", task_id, e)
                    result = TaskSyncResult(
                        task_id=task_id, outcome=SyncOutcome.FAILED, message=str(e)
                    )
                report.add(result)
        else:
            state = RemoteTaskState.ALL
            if status is not None:
                state = self._remote_state(self.config.full_status_name(status))

            remote_tasks = self.connector.list_remote_tasks(
                self.scope,
                with_comments=not no_comments,
                with_labels=not no_labels,
                limit=limit,
                state=state,
                statuses=statuses,
            )
            for remote in remote_tasks:
                try:
                    result = self._import_remote_task(remote, no_comments, no_labels)
                except SYNC_ERRORS as e:
                    logger.warning("Import of task %s failed: %s", remote.id, e)
                    result = TaskSyncResult(
                        task_id=remote.id or "", outcome=SyncOutcome.FAILED, message=str(e)
                    )
                report.add(result)

        report.completed_at = datetime.now()
        logger.info(report.summary())
        return report

    def _import_remote_task(
        self, remote: Task, no_comments: bool, no_labels: bool
    ) -> TaskSyncResult:
        task_id = _task_id(remote)
        local = self.store.find(task_id)

        if local is None:
            if no_comments:
                remote.comments = None
            if no_labels:
                remote.labels = None
            self.store.create(remote)
            return TaskSyncResult(task_id=task_id, outcome=SyncOutcome.CREATED)

        merged = local.model_copy(deep=True)
        merged.props = {
            **local.props,
            NAME: remote.name,
            DESCRIPTION: remote.description,
            STATUS: remote.status,
        }
        if not no_comments:
            merged.comments = _union(local.comments, remote.comments, lambda c: c.id)
        if not no_labels:
            merged.labels = _union(local.labels, remote.labels, lambda lbl: lbl.name)

        if merged.model_dump() == local.model_dump():
            return TaskSyncResult(task_id=task_id, outcome=SyncOutcome.NOTHING_TO_SYNC)

        self.store.update(merged)
        return TaskSyncResult(task_id=task_id, outcome=SyncOutcome.UPDATED)

    # ------------------------------------------------------------------
    # Single edits
    # ------------------------------------------------------------------

    def push_task_deleted(self, task_id: str) -> None:
        self.connector.delete_remote_task(self.scope, task_id)

    def push_comment_added(self, task_id: str, comment: Comment) -> str:
        """
        Create a new local comment remotely and adopt the remote id.

        Returns:
            The remote comment id.
        """
        remote_comment_id = self.connector.create_remote_comment(self.scope, task_id, comment)
        if comment.id is not None and comment.id != remote_comment_id:
            self.store.update_comment_id(task_id, comment.id, remote_comment_id)
        return remote_comment_id

    def push_comment_updated(self, task_id: str, comment_id: str, text: str) -> None:
        self.connector.update_remote_comment(self.scope, task_id, comment_id, text)

    def push_comment_deleted(self, task_id: str, comment_id: str) -> None:
        self.connector.delete_remote_comment(self.scope, task_id, comment_id)

    def push_label_added(self, task_id: str, label: Label) -> None:
        self.connector.create_remote_label(self.scope, task_id, label)

    def push_label_deleted(self, task_id: str, name: str) -> None:
        self.connector.delete_remote_label(self.scope, task_id, name)


def _task_id(task: Task) -> str:
    if task.id is None:
        raise TaskStoreError(f"Task {task.name!r} has no id")
    return task.id


def _union(local: list | None, remote: list | None, key) -> list | None:
    """
    Merge two item lists by identity.

    Remote items replace local items with the same key and unknown remote
    items are appended. Local items the remote lacks are kept.
    """
    remote_by_key = {key(item): item for item in remote or []}
    merged = [remote_by_key.pop(key(item), item) for item in local or []]
    merged.extend(remote_by_key.values())
    return merged or None
