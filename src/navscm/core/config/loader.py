"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import NavScmConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per session
_config_cache: NavScmConfig | None = None

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "NAVSCM_DEVENV_PATH": ("devenv", "path"),
    "NAVSCM_SERVER": ("devenv", "server"),
    "NAVSCM_DATABASE": ("devenv", "database"),
    "NAVSCM_CODE_PAGE": ("devenv", "code_page"),
    "NAVSCM_TEMP_ROOT": ("devenv", "temp_root"),
    "NAVSCM_SQLITE_PATH": ("source", "sqlite_path"),
    "NAVSCM_WORKING_COPY": ("working_copy", "path"),
    "NAVSCM_CACHE_PATH": ("cache", "path"),
}


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/navscm/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "navscm" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .navscm.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".navscm.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested dicts
    are merged, not replaced.

    Example:
        >>> base = {"a": 1, "b": {"x": 10, "y": 20}}
        >>> override = {"b": {"y": 30, "z": 40}, "c": 3}
        >>> deep_merge(base, override)
        {"a": 1, "b": {"x": 10, "y": 30, "z": 40}, "c": 3}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient: skip the broken layer
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.
    See ENV_OVERRIDES for the supported variables. Empty values are ignored.

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    for env_name, (section, key) in ENV_OVERRIDES.items():
        if value := os.environ.get(env_name):
            section_values = dict(result.get(section) or {})
            section_values[key] = value
            result[section] = section_values

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "devenv": {"code_page": "cp850"},
        "source": {"table": "Object"},
        "working_copy": {"path": "objects"},
        "cache": {"path": ".navscm/cache.json"},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> NavScmConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (NAVSCM_*)
        2. Project config (.navscm.json)
        3. User config (~/.config/navscm/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .navscm.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated NavScmConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = NavScmConfig(**merged)
    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
