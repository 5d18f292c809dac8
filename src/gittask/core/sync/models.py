"""
Data models for the sync service.

Defines Pydantic models for per-task sync outcomes and the report returned by
push and pull.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SyncOperation(str, Enum):
    PUSH = "push"
    PULL = "pull"


class SyncOutcome(str, Enum):
    """What happened to one task during push or pull."""

    CREATED = "created"
    UPDATED = "updated"
    COMMENTS_SYNCED = "comments_synced"
    NOTHING_TO_SYNC = "nothing_to_sync"
    LOCAL_NOT_FOUND = "local_not_found"
    REMOTE_NOT_FOUND = "remote_not_found"
    FAILED = "failed"


class TaskSyncResult(BaseModel):
    """
    Outcome for a single task id.

    `task_id` is the id the task ended up with; for pushes that caused an id
    migration, `previous_id` holds the local id before the push.
    """

    task_id: str = Field(description="Final task id")
    outcome: SyncOutcome = Field(description="What happened")
    previous_id: str | None = Field(
        default=None,
        description="Local id before migrating to the remote id",
    )
    comments_created: int = Field(default=0, description="Comments created remotely")
    message: str = Field(default="", description="Error or informational message")

    def describe(self) -> str:
        """One line for terminal output."""
        if self.outcome == SyncOutcome.CREATED:
            if self.previous_id and self.previous_id != self.task_id:
                return f"Task ID {self.previous_id} -> {self.task_id} created"
            return f"Task ID {self.task_id} created"
        if self.outcome == SyncOutcome.UPDATED:
            return f"Task ID {self.task_id} updated"
        if self.outcome == SyncOutcome.COMMENTS_SYNCED:
            return f"Task ID {self.task_id}: {self.comments_created} comment(s) created"
        if self.outcome == SyncOutcome.NOTHING_TO_SYNC:
            return f"Task ID {self.task_id}: Nothing to sync"
        if self.outcome == SyncOutcome.LOCAL_NOT_FOUND:
            return f"Task ID {self.task_id} not found"
        if self.outcome == SyncOutcome.REMOTE_NOT_FOUND:
            return f"Task ID {self.task_id} not found in remote"
        return f"Task ID {self.task_id}: {self.message}"


class SyncReport(BaseModel):
    """
    Result of a push or pull over many task ids.

    Failures on individual ids are recorded here; the loop that produced
    the report carries on with the remaining ids.
    """

    operation: SyncOperation = Field(description="push or pull")
    remote: str = Field(default="", description="connector:namespace/project")
    results: list[TaskSyncResult] = Field(default_factory=list)

    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    def add(self, result: TaskSyncResult) -> TaskSyncResult:
        self.results.append(result)
        return result

    def count(self, outcome: SyncOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def success(self) -> bool:
        return all(
            r.outcome not in (SyncOutcome.FAILED, SyncOutcome.LOCAL_NOT_FOUND)
            for r in self.results
        )

    @property
    def failed(self) -> list[TaskSyncResult]:
        return [r for r in self.results if r.outcome == SyncOutcome.FAILED]

    @property
    def duration_seconds(self) -> float | None:
        """Calculate operation duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def summary(self) -> str:
        """Generate a human-readable summary of the report."""
        if not self.results:
            return f"{self.operation.value}: no tasks processed"

        parts = []
        for outcome in SyncOutcome:
            n = self.count(outcome)
            if n:
                parts.append(f"{n} {outcome.value.replace('_', ' ')}")
        return f"{self.operation.value}: " + ", ".join(parts)
