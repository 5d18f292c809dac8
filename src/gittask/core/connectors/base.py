"""
Remote connector protocol and registry.

A connector adapts one issue tracker (GitHub, GitLab, ...) to the operations
the sync service needs. Connectors register themselves by name; the sync
service picks the one matching the repository's remotes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import Enum
from typing import NamedTuple, Protocol, runtime_checkable

from gittask.core.config import TaskConfig
from gittask.core.tasks.models import Comment, Label, Task

logger = logging.getLogger(__name__)


class ConnectorError(Exception):
    """Error reported by a remote tracker or raised while talking to it."""

    pass


class MissingTokenError(ConnectorError):
    """No API token is configured for a call that needs one."""

    pass


class NoMatchingRemoteError(ConnectorError):
    """No configured remote is recognized by any connector."""

    def __init__(self) -> None:
        super().__init__("No matching remotes")


class AmbiguousRemoteError(ConnectorError):
    """More than one remote matched; the caller must choose one."""

    def __init__(self, matches: list[str]) -> None:
        super().__init__(
            "More than one matching remote found: "
            + ", ".join(matches)
            + ". Please specify with --remote option."
        )
        self.matches = matches


class RemoteScope(NamedTuple):
    """Opaque (namespace, project) pair identifying a remote repository."""

    namespace: str
    project: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.project}"


class RemoteTaskState(str, Enum):
    """Remote issue state. ALL is only meaningful as a list filter."""

    OPEN = "open"
    CLOSED = "closed"
    ALL = "all"


# (open_status, closed_status) local status names
Statuses = tuple[str, str]


@runtime_checkable
class RemoteConnector(Protocol):
    """
    Protocol for remote tracker connectors.

    Ids are strings on both sides. Remote tasks are returned as local Task
    models whose status is mapped through the `statuses` pair.
    """

    name: str
    config_options: list[str]

    def supports_remote(self, url: str) -> RemoteScope | None:
        """
        Check whether a git remote URL belongs to this tracker.

        Returns:
            Scope parsed from the URL, or None if it does not match.
        """
        ...

    def list_remote_tasks(
        self,
        scope: RemoteScope,
        with_comments: bool,
        with_labels: bool,
        limit: int | None,
        state: RemoteTaskState,
        statuses: Statuses,
    ) -> list[Task]:
        """List remote tasks filtered by state, newest first."""
        ...

    def get_remote_task(
        self,
        scope: RemoteScope,
        task_id: str,
        with_comments: bool,
        with_labels: bool,
        statuses: Statuses,
    ) -> Task | None:
        """
        Fetch one remote task.

        Returns:
            Task if found, None otherwise.
        """
        ...

    def create_remote_task(self, scope: RemoteScope, task: Task) -> str:
        """Create a remote task and return the id the remote assigned."""
        ...

    def update_remote_task(
        self,
        scope: RemoteScope,
        task: Task,
        labels: list[Label] | None,
        state: RemoteTaskState,
    ) -> None:
        """Overwrite a remote task's name, description, labels and state."""
        ...

    def delete_remote_task(self, scope: RemoteScope, task_id: str) -> None: ...

    def create_remote_comment(self, scope: RemoteScope, task_id: str, comment: Comment) -> str:
        """Create a comment and return the remote comment id."""
        ...

    def update_remote_comment(
        self, scope: RemoteScope, task_id: str, comment_id: str, text: str
    ) -> None: ...

    def delete_remote_comment(self, scope: RemoteScope, task_id: str, comment_id: str) -> None: ...

    def create_remote_label(self, scope: RemoteScope, task_id: str, label: Label) -> None: ...

    def update_remote_label(
        self, scope: RemoteScope, task_id: str, old_name: str, label: Label
    ) -> None: ...

    def delete_remote_label(self, scope: RemoteScope, task_id: str, name: str) -> None: ...


# Connector registry
_connectors: dict[str, type] = {}
_instances: dict[str, RemoteConnector] = {}


def register_connector(name: str) -> Callable[[type], type]:
    """
    Decorator to register a connector implementation.

    Usage:
        @register_connector("github")
        class GitHubConnector:
            ...

    Args:
        name: Connector name (e.g., 'github', 'gitlab')
    """

    def decorator(connector_class: type) -> type:
        _connectors[name] = connector_class
        return connector_class

    return decorator


def list_connectors() -> list[str]:
    return list(_connectors.keys())


def get_connector(name: str) -> RemoteConnector:
    """
    Get the connector instance for a provider, creating it on first use.

    Raises:
        ValueError: If no connector is registered under that name.
    """
    if name not in _instances:
        connector_class = _connectors.get(name)
        if connector_class is None:
            raise ValueError(
                f"Connector '{name}' not registered. "
                f"Available connectors: {', '.join(_connectors.keys())}"
            )
        _instances[name] = connector_class()
    return _instances[name]


def reset_connectors() -> None:
    """Drop cached connector instances (and their HTTP clients)."""
    for connector in _instances.values():
        close = getattr(connector, "close", None)
        if close is not None:
            close()
    _instances.clear()


def get_matching_connectors(
    remotes: Iterable[str],
    connector_type: str | None = None,
    config: TaskConfig | None = None,
) -> list[tuple[RemoteConnector, RemoteScope]]:
    """
    Match every remote URL against every registered connector.

    Args:
        remotes: Git remote URLs.
        connector_type: Only consider this connector.
        config: Repository configuration, handed to connectors that read
                settings such as a self-hosted URL.

    Returns:
        All (connector, scope) matches, in remote order.
    """
    names = [connector_type] if connector_type else list_connectors()
    connectors = [get_connector(name) for name in names]
    if config is not None:
        for connector in connectors:
            configure = getattr(connector, "configure", None)
            if configure is not None:
                configure(config)

    matches = []
    for url in remotes:
        for connector in connectors:
            scope = connector.supports_remote(url)
            if scope is not None:
                logger.debug("Remote %s matched connector %s (%s)", url, connector.name, scope)
                matches.append((connector, scope))
    return matches


def select_connector(
    remotes: Iterable[str],
    connector_type: str | None = None,
    config: TaskConfig | None = None,
) -> tuple[RemoteConnector, RemoteScope]:
    """
    Pick the single connector matching the remotes.

    Raises:
        NoMatchingRemoteError: If nothing matched.
        AmbiguousRemoteError: If more than one remote matched.
    """
    matches = get_matching_connectors(remotes, connector_type, config)
    if not matches:
        raise NoMatchingRemoteError()
    if len(matches) > 1:
        raise AmbiguousRemoteError([f"{c.name}:{scope}" for c, scope in matches])
    return matches[0]
