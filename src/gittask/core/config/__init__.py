"""
Configuration models and loading.

Configuration lives in the repository's git config under `task.*` keys and is
loaded into an explicit TaskConfig value: defaults < git config.
"""

from .env import get_env, load_layered_env
from .loader import (
    CONFIG_KEYS,
    get_config_value,
    load_config,
    normalize_ref_path,
    save_config,
    set_config_value,
)
from .models import DEFAULT_REF_PATH, StatusDefinition, TaskConfig, default_statuses

__all__ = [
    # Models
    "DEFAULT_REF_PATH",
    "StatusDefinition",
    "TaskConfig",
    "default_statuses",
    # Loader functions
    "CONFIG_KEYS",
    "get_config_value",
    "load_config",
    "normalize_ref_path",
    "save_config",
    "set_config_value",
    # Environment
    "get_env",
    "load_layered_env",
]
