"""
Loading of navscm settings from .env files.

Connection settings (finsql path, server, database) are often kept out of
the project config and put into .env files instead. Only the variables listed
in `ENV_OVERRIDES` are taken from those files; anything else in them belongs
to other tools and is left alone.

Layers, lowest precedence first:
    user .env (~/.config/navscm/.env) < project .env < project .env.local
    < process environment
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from dotenv import dotenv_values

from .loader import ENV_OVERRIDES, get_xdg_config_home

logger = logging.getLogger(__name__)

ENV_PREFIX = "NAVSCM_"
PROJECT_ENV_FILES = (".env", ".env.local")


def read_env_file(path: Path) -> dict[str, str]:
    """
    Read the navscm settings from one .env file.

    Unknown NAVSCM_* names are reported, since they are most likely typos.
    Keys without a value are skipped.
    """
    if not path.is_file():
        return {}

    settings: dict[str, str] = {}
    for name, value in dotenv_values(path).items():
        if not name or value is None or not name.startswith(ENV_PREFIX):
            continue
        if name not in ENV_OVERRIDES:
            logger.warning("Ignoring unknown setting %s in %s", name, path)
            continue
        settings[name] = value
    return settings


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> dict[str, str]:
    """
    Export navscm settings from .env files into the process environment.

    Later files override earlier ones; a variable already set in the process
    environment is never overridden.

    Args:
        project_dir: Base directory of the project env files (defaults to cwd)
        user_env_paths: Explicit user env files
        project_env_paths: Explicit project env files

    Returns:
        The variables that were set, with their values
    """
    if user_env_paths is None:
        user_env_paths = [get_xdg_config_home() / "navscm" / ".env"]
    if project_env_paths is None:
        base = project_dir or Path.cwd()
        project_env_paths = [base / name for name in PROJECT_ENV_FILES]

    layered: dict[str, str] = {}
    for path in [*user_env_paths, *project_env_paths]:
        layered.update(read_env_file(Path(path)))

    applied = {name: value for name, value in layered.items() if name not in os.environ}
    os.environ.update(applied)

    if applied:
        logger.debug("Loaded %s from .env files", ", ".join(sorted(applied)))
    return applied
