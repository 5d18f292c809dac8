"""
Configuration loading from the repository's git config.

Implements the configuration precedence chain:
    defaults < git config (`task.*` keys)

The result is an explicit TaskConfig value. Nothing is cached at module level;
callers thread the config into the store and the sync service.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from gittask.core.gitstore import GitObjectStore

from .models import DEFAULT_REF_PATH, StatusDefinition, TaskConfig

logger = logging.getLogger(__name__)

# git config key -> TaskConfig field
CONFIG_KEYS: dict[str, str] = {
    "task.ref": "ref_path",
    "task.statuses": "statuses",
    "task.properties": "properties",
    "task.list.columns": "list_columns",
    "task.list.sort": "list_sort",
    "task.gitlab.url": "gitlab_url",
    "task.jira.url": "jira_url",
    "task.redmine.url": "redmine_url",
    "task.redmine.api_key": "redmine_api_key",
}

JSON_KEYS = {"task.statuses", "task.properties"}
LIST_KEYS = {"task.list.columns", "task.list.sort"}


def normalize_ref_path(value: str) -> str:
    """
    Expand a short ref name.

    Example:
        >>> normalize_ref_path("tasks")
        'refs/heads/tasks'
        >>> normalize_ref_path("tasks/main")
        'refs/tasks/main'
        >>> normalize_ref_path("refs/tasks/tasks")
        'refs/tasks/tasks'
    """
    if "/" not in value:
        return f"refs/heads/{value}"
    if value.count("/") == 1 and not value.startswith("/") and not value.endswith("/"):
        return f"refs/{value}"
    return value


def parse_config_value(key: str, raw: str) -> Any:
    """
    Convert a raw git config string to the TaskConfig field value.

    Raises:
        ValueError: If a JSON key holds invalid JSON.
    """
    if key in JSON_KEYS:
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {key}: {e}") from e
    if key in LIST_KEYS:
        return [part.strip() for part in raw.split(",") if part.strip()]
    if key == "task.ref":
        return normalize_ref_path(raw)
    return raw


def format_config_value(key: str, value: Any) -> str:
    """Inverse of parse_config_value."""
    if key == "task.statuses":
        return json.dumps([StatusDefinition.model_validate(s).model_dump() for s in value])
    if key in JSON_KEYS:
        return json.dumps(value)
    if key in LIST_KEYS:
        return ", ".join(value)
    return str(value)


def load_config(git: GitObjectStore) -> TaskConfig:
    """
    Load configuration from git config, merged over defaults.

    Invalid values are logged and replaced by their defaults so a broken key
    never makes the task store unusable.

    Raises:
        RepositoryNotFoundError: If the directory is not a git repository.
    """
    values: dict[str, Any] = {}

    for key, field in CONFIG_KEYS.items():
        raw = git.get_config(key)
        if raw is None:
            continue
        try:
            values[field] = parse_config_value(key, raw)
        except ValueError as e:
            logger.warning("Ignoring config %s: %s", key, e)

    try:
        return TaskConfig(**values)
    except ValidationError as e:
        logger.warning("Invalid task configuration, falling back to defaults: %s", e)
        valid = {}
        for field, value in values.items():
            try:
                TaskConfig(**{field: value})
                valid[field] = value
            except ValidationError:
                continue
        return TaskConfig(**valid)


def save_config(git: GitObjectStore, config: TaskConfig) -> None:
    """
    Write configuration back to git config.

    Only values that differ from the defaults are stored; default values are
    unset so later changes to the defaults take effect.
    """
    defaults = TaskConfig()

    for key, field in CONFIG_KEYS.items():
        value = getattr(config, field)
        if value is None or value == getattr(defaults, field):
            git.unset_config(key)
        else:
            git.set_config(key, format_config_value(key, value))


def get_config_value(config: TaskConfig, key: str) -> str:
    """
    Read one config key as text.

    Raises:
        KeyError: If key is not a known configuration option.
    """
    if key not in CONFIG_KEYS:
        raise KeyError(key)
    value = getattr(config, CONFIG_KEYS[key])
    if value is None:
        return ""
    if key == "task.ref":
        return value or DEFAULT_REF_PATH
    return format_config_value(key, value)


def set_config_value(config: TaskConfig, key: str, raw: str) -> TaskConfig:
    """
    Return a copy of config with one key changed.

    Raises:
        KeyError: If key is not a known configuration option.
        ValueError: If the value does not parse or validate.
    """
    if key not in CONFIG_KEYS:
        raise KeyError(key)
    data = config.model_dump()
    data[CONFIG_KEYS[key]] = parse_config_value(key, raw)
    try:
        return TaskConfig(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid value for {key}: {e}") from e
