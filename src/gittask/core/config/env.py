"""Tokens and connector URLs from the environment and .env files.

Connectors look up GITHUB_TOKEN, GITLAB_TOKEN, GITLAB_URL and friends in the
process environment. Those can also be kept in .env files, merged as

  exported variables > <project>/.env.local > <project>/.env > user .env

Exported variables are never replaced by a file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def user_env_file() -> Path:
    """`$XDG_CONFIG_HOME/git-task/.env`, defaulting to ~/.config."""
    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "git-task" / ".env"


def _file_values(paths: Iterable[Path]) -> dict[str, str]:
    # Later files win
    merged: dict[str, str] = {}
    for path in paths:
        path = Path(path)
        if not path.is_file():
            continue
        logger.debug("Reading environment from %s", path)
        merged.update({k: v for k, v in dotenv_values(path).items() if k and v is not None})
    return merged


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> None:
    """Export values from the user and project .env files that are not already set.

    Args:
        project_dir: Directory holding the project files (defaults to cwd).
        user_env_paths: Replace the default user file.
        project_env_paths: Replace the default project files.
    """
    base = project_dir or Path.cwd()
    if user_env_paths is None:
        user_env_paths = [user_env_file()]
    if project_env_paths is None:
        project_env_paths = [base / ".env", base / ".env.local"]

    values = _file_values([*user_env_paths, *project_env_paths])
    for key, value in values.items():
        os.environ.setdefault(key, value)


def get_env(*names: str) -> str | None:
    """Return the first non-empty environment variable among names."""
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None
