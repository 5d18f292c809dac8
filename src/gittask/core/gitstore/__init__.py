"""
Git object store adapter.

Stores records as blobs in a tree behind a dedicated ref, using git plumbing
(`hash-object`, `mktree`, `commit-tree`, `update-ref`) so the working tree and
index are never touched.

Example:
    >>> from gittask.core.gitstore import GitObjectStore
    >>> store = GitObjectStore(Path("."))
    >>> store.resolve_ref("refs/tasks/tasks")
"""

from gittask.core.gitstore.models import CommitInfo, Identity, TreeEntry
from gittask.core.gitstore.service import (
    GitError,
    GitObjectStore,
    RefNotFoundError,
    RepositoryNotFoundError,
)

__all__ = [
    "GitObjectStore",
    "GitError",
    "RefNotFoundError",
    "RepositoryNotFoundError",
    "TreeEntry",
    "Identity",
    "CommitInfo",
]
