"""
Synchronization between the local task store and remote trackers.
"""

from .models import SyncOperation, SyncOutcome, SyncReport, TaskSyncResult
from .service import SyncService

__all__ = [
    "SyncService",
    "SyncOperation",
    "SyncOutcome",
    "SyncReport",
    "TaskSyncResult",
]
