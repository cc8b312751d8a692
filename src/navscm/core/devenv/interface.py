"""
Interface to the NAV development environment command line (finsql.exe).

finsql does not report errors through its exit code. It writes an error log
to the path given as `LogFile` if, and only if, the command failed. Every
invocation therefore runs in its own scratch directory, and the presence of
the log file after the process exits is the sole failure signal.

All text finsql writes (error log, command result, console output) is encoded
in a legacy OEM code page regardless of the system locale.

Authentication is NTLM single sign-on; SQL user/password logins are not
supported.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from navscm.core.devenv.models import DevEnvResult
from navscm.core.devenv.scratch import ScratchDirectory
from navscm.core.exceptions import (
    ConfigurationError,
    DevEnvError,
    DevEnvNotFoundError,
)
from navscm.core.objects.models import (
    OBJECT_FILE_SUFFIX,
    DatabaseObject,
    ObjectIdentity,
    ObjectKey,
)
from navscm.core.objects.parser import DEFAULT_CODE_PAGE, read_object_key
from navscm.core.objects.source import ObjectSource

IS_WINDOWS = sys.platform == "win32"

LOG_FILE_NAME = "navcommanderror.txt"
RESULT_FILE_NAME = "navcommandresult.txt"

Command = Union[str, Sequence[str]]
Runner = Callable[[Command, Path], "subprocess.CompletedProcess[bytes]"]
ObjectRef = Union[ObjectKey, ObjectIdentity]


def run_subprocess(command: Command, cwd: Path) -> subprocess.CompletedProcess[bytes]:
    """Run the tool synchronously, capturing raw output bytes."""
    return subprocess.run(command, cwd=cwd, capture_output=True, check=False)


def _key_of(obj: ObjectRef) -> ObjectKey:
    return obj if isinstance(obj, ObjectKey) else obj.key


def _param(key: str, value: object) -> str:
    return f'{key}="{value}"'


class DevEnvInterface:
    """
    Runs export, import and compile commands through finsql.

    Example:
        >>> devenv = DevEnvInterface(
        ...     Path(r"C:\\Program Files (x86)\\Microsoft Dynamics NAV\\90\\finsql.exe"),
        ...     server="sql-erp-01",
        ...     database="NAV DEV",
        ...     source=source,
        ... )
        >>> devenv.export_object(obj, Path("objects") / obj.relative_path)
    """

    def __init__(
        self,
        devenv_path: Path,
        server: str,
        database: str,
        source: ObjectSource | None = None,
        *,
        code_page: str = DEFAULT_CODE_PAGE,
        temp_root: Path | None = None,
        runner: Runner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Attach to a development environment.

        Args:
            devenv_path: Full path to finsql.exe
            server: Database server host name
            database: Database (catalog) name
            source: Object source used to re-read objects after import/compile
            code_page: Encoding of everything finsql writes
            temp_root: Parent directory for scratch directories
            runner: Callable executing the command; defaults to subprocess.run
            logger: Logger to use instead of the module logger

        Raises:
            DevEnvNotFoundError: If `devenv_path` does not exist
            ConfigurationError: If server or database are empty
        """
        if not server:
            raise ConfigurationError("No database server configured")
        if not database:
            raise ConfigurationError("No database name configured")
        if not devenv_path.is_file():
            raise DevEnvNotFoundError(devenv_path)

        self.devenv_path = devenv_path
        self.server = server
        self.database = database
        self.source = source
        self.code_page = code_page
        self.temp_root = temp_root
        self.runner = runner or run_subprocess
        self.logger = logger or logging.getLogger(__name__)

        self.logger.debug("Attached to development environment %s", devenv_path)
        self.logger.debug("Using database [%s] on server %s", database, server)

    def build_command(self, fragment: str, log_file: Path) -> str:
        """Append the log file and connection parameters to a command fragment."""
        return ",".join(
            [
                fragment,
                _param("LogFile", log_file),
                _param("ServerName", self.server),
                _param("Database", self.database),
            ]
        )

    def _command_line(self, command: str) -> Command:
        # finsql parses its raw command line; on Windows it is passed verbatim
        if IS_WINDOWS:
            return f'"{self.devenv_path}" {command}'
        return [str(self.devenv_path), command]

    def _decode(self, data: bytes | None) -> str:
        if not data:
            return ""
        return data.decode(self.code_page, errors="replace")

    def _read_text(self, path: Path) -> str:
        return self._decode(path.read_bytes()) if path.exists() else ""

    def execute(self, fragment: str) -> DevEnvResult:
        """
        Run one finsql command.

        The command runs in a fresh scratch directory that is removed again
        afterwards, whether the command succeeded or not. The call blocks
        until finsql exits.

        Args:
            fragment: Command and its parameters, e.g.
                'Command=CompileObjects,Filter="Type=Codeunit;ID=1"'

        Returns:
            DevEnvResult; `success` is False if finsql wrote an error log

        Raises:
            ScratchDirectoryError: If the scratch directory cannot be created
                or removed
            DevEnvNotFoundError: If the executable disappeared
        """
        started_at = datetime.now(timezone.utc)

        with ScratchDirectory(self.temp_root, logger=self.logger) as scratch:
            log_file = scratch.path / LOG_FILE_NAME
            command = self.build_command(fragment, log_file)
            self.logger.debug("Running %s %s", self.devenv_path, command)

            try:
                completed = self.runner(self._command_line(command), scratch.path)
            except FileNotFoundError as e:
                raise DevEnvNotFoundError(self.devenv_path) from e

            duration_ms = int((datetime.now(timezone.utc) - started_at).total_seconds() * 1000)

            parts = [
                self._read_text(scratch.path / RESULT_FILE_NAME),
                self._decode(completed.stdout),
                self._decode(completed.stderr),
            ]
            output = "\n".join(part.strip() for part in parts if part and part.strip())

            error_message: str | None = None
            if log_file.exists():
                error_message = self._read_text(log_file).strip() or "finsql reported an error"

            result = DevEnvResult(
                success=error_message is None,
                exit_code=completed.returncode,
                command=command,
                output=output,
                error_message=error_message,
                duration_ms=duration_ms,
            )

        if result.success:
            self.logger.debug("Command finished after %d ms: %s", duration_ms, output)
        else:
            self.logger.error("Command failed: %s", result.error_message)
        return result

    def _run(self, key: ObjectKey, operation: str, fragment: str) -> DevEnvResult:
        result = self.execute(fragment)
        if not result.success:
            raise DevEnvError(
                key.cache_key,
                operation,
                result.error_message or "unknown error",
                output=result.output,
            )
        return result

    def _reload(self, key: ObjectKey, operation: str) -> DatabaseObject:
        if self.source is None:
            raise ConfigurationError(f"An object source is required to {operation} objects")
        refreshed = self.source.get_object(key)
        if refreshed is None:
            raise DevEnvError(
                key.cache_key, operation, f"{key} is not in the database after {operation}"
            )
        return refreshed

    def export_object(self, obj: ObjectRef, destination: Path) -> DevEnvResult:
        """
        Export an object to a text file.

        Args:
            obj: Object (or key) to export
            destination: Target file; must end in .txt, as finsql derives the
                export format from the extension. Parent directories are created.

        Raises:
            ValueError: If the destination has the wrong extension
            DevEnvError: If finsql reported an error
        """
        key = _key_of(obj)
        if destination.suffix.lower() != OBJECT_FILE_SUFFIX:
            raise ValueError(
                f"Export destination {destination} must end with {OBJECT_FILE_SUFFIX}"
            )
        destination = destination.resolve()
        destination.parent.mkdir(parents=True, exist_ok=True)

        self.logger.info("Exporting %s to %s", key, destination)
        return self._run(
            key,
            "export",
            ",".join(
                [
                    "Command=ExportObjects",
                    _param("File", destination),
                    _param("Filter", key.filter_expression),
                ]
            ),
        )

    def import_object(self, obj: ObjectRef, source_path: Path) -> DatabaseObject:
        """
        Import a text file, overwriting the object in the database.

        Schema changes are synchronized with force, which may drop table data.

        Returns:
            The database object as it is after the import

        Raises:
            FileNotFoundError: If `source_path` does not exist
            DevEnvError: If finsql reported an error
        """
        key = _key_of(obj)
        if not source_path.is_file():
            raise FileNotFoundError(f"Object file not found: {source_path}")

        self.logger.info("Importing %s from %s", key, source_path)
        self._run(
            key,
            "import",
            ",".join(
                [
                    "Command=ImportObjects",
                    _param("File", source_path.resolve()),
                    "ImportAction=overwrite",
                    "SynchronizeSchemaChanges=force",
                ]
            ),
        )
        return self._reload(key, "import")

    def import_file(self, source_path: Path) -> DatabaseObject:
        """Import a working-copy file, taking the object key from its header."""
        key = read_object_key(source_path, encoding=self.code_page)
        return self.import_object(key, source_path)

    def compile_object(self, obj: ObjectRef) -> DatabaseObject:
        """
        Compile an object, synchronizing schema changes with force.

        Returns:
            The database object as it is after compilation

        Raises:
            DevEnvError: If finsql reported an error
        """
        key = _key_of(obj)
        self.logger.info("Compiling %s", key)
        self._run(
            key,
            "compile",
            ",".join(
                [
                    "Command=CompileObjects",
                    _param("Filter", key.filter_expression),
                    "SynchronizeSchemaChanges=force",
                ]
            ),
        )
        return self._reload(key, "compile")
