"""
Task records and the git object task store.
"""

from .models import AUTHOR, CREATED, DESCRIPTION, NAME, STATUS, Comment, Label, Task
from .store import InvalidMigrationError, TaskNotFoundError, TaskStore, TaskStoreError

__all__ = [
    # Models
    "Task",
    "Comment",
    "Label",
    "NAME",
    "STATUS",
    "DESCRIPTION",
    "CREATED",
    "AUTHOR",
    # Store
    "TaskStore",
    "TaskStoreError",
    "TaskNotFoundError",
    "InvalidMigrationError",
]
