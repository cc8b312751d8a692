"""
Scratch directories for development environment invocations.

Every finsql call gets a fresh, empty directory of its own. finsql drops its
result and error files there; the directory is removed afterwards no matter
how the call ended.
"""

from __future__ import annotations

import logging
import secrets
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from types import TracebackType

from navscm.core.exceptions import ScratchDirectoryError

MAX_ATTEMPTS = 3


def random_name() -> str:
    """Cryptographically random directory name."""
    return f"navscm-{secrets.token_hex(16)}"


class ScratchDirectory:
    """
    Context manager owning an exclusive temporary directory.

    Example:
        >>> with ScratchDirectory() as scratch:
        ...     (scratch.path / "navcommandresult.txt").exists()
        False
    """

    def __init__(
        self,
        root: Path | None = None,
        *,
        attempts: int = MAX_ATTEMPTS,
        name_factory: Callable[[], str] = random_name,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Args:
            root: Parent directory (defaults to the system temp directory)
            attempts: Total number of creation attempts before giving up
            name_factory: Produces a directory name per attempt
            logger: Logger to use instead of the module logger
        """
        if attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {attempts}")
        self.root = root or Path(tempfile.gettempdir())
        self.attempts = attempts
        self.name_factory = name_factory
        self.logger = logger or logging.getLogger(__name__)
        self._path: Path | None = None

    @property
    def path(self) -> Path:
        if self._path is None:
            raise RuntimeError("Scratch directory has not been created")
        return self._path

    def create(self) -> Path:
        """
        Create the directory.

        A name collision or creation failure is retried with a new name, up to
        `attempts` tries in total.

        Raises:
            ScratchDirectoryError: If every attempt failed
        """
        last_error: OSError | None = None
        for attempt in range(1, self.attempts + 1):
            candidate = self.root / self.name_factory()
            try:
                candidate.mkdir()
            except OSError as e:
                last_error = e
                self.logger.warning(
                    "Attempt %d/%d to create scratch directory %s failed: %s",
                    attempt,
                    self.attempts,
                    candidate,
                    e,
                )
                continue
            self.logger.debug("Created scratch directory %s", candidate)
            self._path = candidate
            return candidate

        raise ScratchDirectoryError(
            f"Could not create a scratch directory in {self.root} "
            f"after {self.attempts} attempts: {last_error}",
            root=str(self.root),
        )

    def cleanup(self) -> None:
        """
        Delete every entry of the directory, then the directory itself.

        Raises:
            ScratchDirectoryError: If anything could not be removed
        """
        if self._path is None:
            return
        path = self._path
        try:
            for entry in path.iterdir():
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
            path.rmdir()
        except OSError as e:
            raise ScratchDirectoryError(
                f"Failed to remove scratch directory {path}: {e}", path=str(path)
            ) from e

        self.logger.debug("Removed scratch directory %s", path)
        self._path = None

    def __enter__(self) -> ScratchDirectory:
        self.create()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()

