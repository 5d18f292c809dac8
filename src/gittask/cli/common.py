"""
Shared helpers for CLI commands: opening the store, picking the remote,
and rendering statuses and timestamps.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import typer
from rich.text import Text

from gittask.cli.errors import (
    ExitCode,
    print_error,
    print_invalid_option_error,
    print_not_git_repo_error,
)
from gittask.core.config import TaskConfig, load_config
from gittask.core.connectors import ConnectorError, select_connector
from gittask.core.gitstore import GitError, GitObjectStore, RepositoryNotFoundError
from gittask.core.sync import SyncService
from gittask.core.tasks import TaskStore
from gittask.utils import parse_id_args

# Terminal color names accepted in status definitions, mapped to rich colors
_COLOR_ALIASES = {
    "default": "",
    "darkgray": "bright_black",
    "darkgrey": "bright_black",
    "lightgray": "white",
    "lightgrey": "white",
    "purple": "magenta",
    "lightpurple": "bright_magenta",
}


def open_store(repo_dir: Path | None = None) -> TaskStore:
    """Open the task store for the current repository or exit with an error."""
    try:
        git = GitObjectStore(repo_dir)
        return TaskStore(git, load_config(git))
    except RepositoryNotFoundError:
        print_not_git_repo_error()
        raise typer.Exit(ExitCode.USER_ERROR)


def open_sync(
    store: TaskStore,
    remote: str | None = None,
    connector_type: str | None = None,
) -> SyncService:
    """
    Build a sync service for the single matching remote.

    Args:
        store: Local task store.
        remote: Only consider this git remote.
        connector_type: Only consider this connector (github, gitlab).
    """
    try:
        remotes = store.git.list_remotes(remote)
        connector, scope = select_connector(remotes, connector_type, store.config)
    except (GitError, ConnectorError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR)
    return SyncService(store, connector, scope)


def parse_ids_or_exit(values: list[str] | None) -> list[str]:
    try:
        return parse_id_args(values)
    except ValueError as e:
        print_error(str(e), solution="Use ids like 1,3..5,7")
        raise typer.Exit(ExitCode.USER_ERROR)


def resolve_status(config: TaskConfig, status: str) -> str:
    """Expand a status shortcut, exiting if the status is unknown."""
    full = config.full_status_name(status)
    if config.get_status(full) is None:
        print_invalid_option_error(status, [s.name for s in config.statuses])
        raise typer.Exit(ExitCode.USER_ERROR)
    return full


def color_to_style(color: str | None) -> str:
    """Translate a configured color name, number or hex value to a rich color."""
    if not color:
        return ""
    key = color.lower()
    if key in _COLOR_ALIASES:
        return _COLOR_ALIASES[key]
    if key.isdigit():
        return f"color({key})"
    if key.startswith("light"):
        return f"bright_{key[len('light'):]}"
    if len(key) == 6 and all(c in "0123456789abcdef" for c in key):
        return f"#{key}"
    return key


def status_text(config: TaskConfig, status: str) -> Text:
    """Render a status with its configured color and styles."""
    definition = config.get_status(status)
    if definition is None:
        return Text(status)
    parts = [color_to_style(definition.color)]
    if definition.style:
        parts.extend(s.strip().lower() for s in definition.style.split(",") if s.strip())
    return Text(status, style=" ".join(p for p in parts if p))


def format_timestamp(value: str | None) -> str:
    """Format epoch seconds as local date and time; other values pass through."""
    if not value:
        return ""
    try:
        return datetime.fromtimestamp(int(value)).strftime("%Y-%m-%d %H:%M")
    except (ValueError, OverflowError, OSError):
        return value
