"""
Remote tracker connectors.

Importing this package registers the bundled GitHub and GitLab connectors.
"""

from .base import (
    AmbiguousRemoteError,
    ConnectorError,
    MissingTokenError,
    NoMatchingRemoteError,
    RemoteConnector,
    RemoteScope,
    RemoteTaskState,
    Statuses,
    get_connector,
    get_matching_connectors,
    list_connectors,
    register_connector,
    reset_connectors,
    select_connector,
)
from .github import GitHubConnector
from .gitlab import GitLabConnector

__all__ = [
    # Protocol and types
    "RemoteConnector",
    "RemoteScope",
    "RemoteTaskState",
    "Statuses",
    # Errors
    "ConnectorError",
    "MissingTokenError",
    "NoMatchingRemoteError",
    "AmbiguousRemoteError",
    # Registry
    "register_connector",
    "get_connector",
    "list_connectors",
    "reset_connectors",
    "get_matching_connectors",
    "select_connector",
    # Providers
    "GitHubConnector",
    "GitLabConnector",
]
