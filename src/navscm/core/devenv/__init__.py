"""
NAV development environment (finsql) driver.

Example:
    >>> from navscm.core.devenv import DevEnvInterface
    >>> devenv = DevEnvInterface(Path("finsql.exe"), "sql-01", "NAV DEV", source)
    >>> refreshed = devenv.compile_object(obj)
"""

from navscm.core.devenv.interface import (
    LOG_FILE_NAME,
    RESULT_FILE_NAME,
    DevEnvInterface,
    run_subprocess,
)
from navscm.core.devenv.models import DevEnvResult
from navscm.core.devenv.scratch import MAX_ATTEMPTS, ScratchDirectory, random_name

__all__ = [
    "LOG_FILE_NAME",
    "MAX_ATTEMPTS",
    "RESULT_FILE_NAME",
    "DevEnvInterface",
    "DevEnvResult",
    "ScratchDirectory",
    "random_name",
    "run_subprocess",
]
