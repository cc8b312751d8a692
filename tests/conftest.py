"""
Pytest configuration and shared fixtures.

Provides fixtures for temp directories, an SQLite copy of the NAV object table,
exported object files, a fake finsql runner and isolated configuration.
"""

import json
import os
import re
import sqlite3
import subprocess
from datetime import datetime
from pathlib import Path

import pytest

from navscm.core.devenv import RESULT_FILE_NAME, DevEnvInterface
from navscm.core.objects import NavObjectType, SqlObjectSource, sanitize_name

# ==============================================================================
# Object File Helpers
# ==============================================================================


def object_text(
    object_type: str,
    object_id: int,
    name: str,
    date: str = "28.09.15",
    time: str = "12:00:00",
    version_list: str = "CMNM6.03",
    newline: str = "\n",
) -> str:
    """Render an exported text object the way finsql writes it."""
    lines = [
        f"OBJECT {object_type} {object_id} {name}",
        "{",
        "  OBJECT-PROPERTIES",
        "  {",
        f"    Date={date};",
        f"    Time={time};",
        f"    Version List={version_list};",
        "  }",
        "  PROPERTIES",
        "  {",
        "    OnRun=BEGIN",
        "          END;",
        "",
        "  }",
        "  CODE",
        "  {",
        "",
        "    BEGIN",
        "    END.",
        "  }",
        "}",
        "",
    ]
    return newline.join(lines)


def write_object_file(
    root: Path,
    object_type: str,
    object_id: int,
    name: str,
    encoding: str = "cp850",
    **properties: str,
) -> Path:
    """Write an object file to its working-copy location below `root`."""
    path = root / object_type / f"{object_id} - {sanitize_name(name)}.txt"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(object_text(object_type, object_id, name, **properties).encode(encoding))
    return path


# ==============================================================================
# Object Table
# ==============================================================================


class ObjectTable:
    """SQLite stand-in for the NAV object table."""

    def __init__(self, path: Path):
        self.path = path
        self.connection = sqlite3.connect(str(path))
        self.connection.execute(
            """
            CREATE TABLE [Object] (
                [Type] INTEGER NOT NULL,
                [Company Name] TEXT NOT NULL DEFAULT '',
                [ID] INTEGER NOT NULL,
                [Name] TEXT NOT NULL,
                [Modified] INTEGER NOT NULL DEFAULT 0,
                [Compiled] INTEGER NOT NULL DEFAULT 1,
                [Date] TEXT NOT NULL,
                [Time] TEXT NOT NULL,
                [Version List] TEXT NOT NULL DEFAULT ''
            )
            """
        )
        self.connection.commit()

    def add(
        self,
        object_type: int,
        object_id: int,
        name: str,
        modified_date: str = "2015-09-28",
        modified_time: str = "12:00:00",
        version_list: str = "CMNM6.03",
        modified: bool = False,
        company_name: str = "",
    ) -> None:
        self.connection.execute(
            "INSERT INTO [Object] ([Type], [Company Name], [ID], [Name], [Modified], "
            "[Date], [Time], [Version List]) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                int(object_type),
                company_name,
                object_id,
                name,
                int(modified),
                modified_date,
                modified_time,
                version_list,
            ),
        )
        self.connection.commit()

    def touch(
        self,
        object_type: int,
        object_id: int,
        modified_date: str,
        modified_time: str,
        name: str | None = None,
    ) -> None:
        """Mark an object as modified at a new point in time."""
        self.connection.execute(
            "UPDATE [Object] SET [Modified] = 1, [Date] = ?, [Time] = ?, "
            "[Name] = COALESCE(?, [Name]) WHERE [Type] = ? AND [ID] = ?",
            (modified_date, modified_time, name, int(object_type), object_id),
        )
        self.connection.commit()

    def row(self, object_type: int, object_id: int) -> tuple | None:
        cursor = self.connection.execute(
            "SELECT [Name], [Date], [Time], [Version List] FROM [Object] "
            "WHERE [Type] = ? AND [ID] = ? AND [Company Name] = ''",
            (int(object_type), object_id),
        )
        return cursor.fetchone()

    def source(self) -> SqlObjectSource:
        return SqlObjectSource(self.connection)


@pytest.fixture
def object_table(tmp_path):
    """Provide an empty object table in tmp_path/nav.db."""
    table = ObjectTable(tmp_path / "nav.db")
    yield table
    table.connection.close()


# ==============================================================================
# Fake finsql
# ==============================================================================

_PARAM_PATTERN = re.compile(r'(\w+)="([^"]*)"')
_FILTER_PATTERN = re.compile(r"^Type=(\w+);ID=(\d+)$")


class FakeFinsql:
    """
    Runner standing in for finsql.exe.

    Behaves like the real tool: failures are reported by writing the error log
    named in the LogFile parameter, exports render the object from the object
    table into the File parameter.
    """

    def __init__(self, table: ObjectTable | None = None, encoding: str = "cp850"):
        self.table = table
        self.encoding = encoding
        self.calls: list[tuple[str, Path]] = []
        self.error: str | None = None
        self.failing_filters: set[str] = set()
        self.result_text = ""
        self.stdout = b""
        self.stderr = b""
        self.returncode = 0
        self.scratch_entries: list[list[str]] = []

    @property
    def commands(self) -> list[str]:
        return [command for command, _ in self.calls]

    def __call__(self, command, cwd: Path) -> subprocess.CompletedProcess:
        text = command if isinstance(command, str) else " ".join(command)
        self.calls.append((text, cwd))
        self.scratch_entries.append(sorted(p.name for p in cwd.iterdir()))
        params = dict(_PARAM_PATTERN.findall(text))

        error = self.error
        if error is None and params.get("Filter") in self.failing_filters:
            error = f"Object {params['Filter']} could not be exported."

        if error is not None:
            Path(params["LogFile"]).write_bytes(error.encode(self.encoding))
        elif "Command=ExportObjects" in text and self.table is not None:
            self._export(params["File"], params["Filter"])

        if self.result_text:
            (cwd / RESULT_FILE_NAME).write_bytes(self.result_text.encode(self.encoding))

        return subprocess.CompletedProcess(command, self.returncode, self.stdout, self.stderr)

    def _export(self, file_name: str, filter_expression: str) -> None:
        match = _FILTER_PATTERN.match(filter_expression)
        assert match, filter_expression
        object_type = NavObjectType.from_label(match.group(1))
        object_id = int(match.group(2))

        row = self.table.row(object_type, object_id)
        assert row is not None, filter_expression
        name, modified_date, modified_time, version_list = row

        text = object_text(
            object_type.label,
            object_id,
            name,
            date=datetime.strptime(modified_date, "%Y-%m-%d").strftime("%d.%m.%y"),
            time=modified_time,
            version_list=version_list,
            newline="\r\n",
        )
        Path(file_name).write_bytes(text.encode(self.encoding))


@pytest.fixture
def fake_finsql(object_table):
    """Provide a fake finsql runner exporting from the object table."""
    return FakeFinsql(object_table)


@pytest.fixture
def finsql_exe(tmp_path):
    """Provide a placeholder finsql.exe; only its existence is checked."""
    path = tmp_path / "bin" / "finsql.exe"
    path.parent.mkdir()
    path.write_bytes(b"")
    return path


@pytest.fixture
def scratch_root(tmp_path):
    """Provide a parent directory for scratch directories."""
    root = tmp_path / "scratch"
    root.mkdir()
    return root


@pytest.fixture
def devenv(finsql_exe, object_table, fake_finsql, scratch_root):
    """Provide a DevEnvInterface wired to the fake runner."""
    return DevEnvInterface(
        finsql_exe,
        server="sql-erp-01",
        database="NAV DEV",
        source=object_table.source(),
        temp_root=scratch_root,
        runner=fake_finsql,
    )


# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """
    Provide a clean environment without NAVSCM_* env vars.

    Removes all NAVSCM_* environment variables to ensure tests
    don't inherit configuration from the system.
    """
    for key in list(os.environ.keys()):
        if key.startswith("NAVSCM_"):
            monkeypatch.delenv(key, raising=False)

    monkeypatch.setenv("XDG_CONFIG_HOME", "/tmp/test-config")

    return monkeypatch


@pytest.fixture
def isolated_config(clean_env, tmp_path, monkeypatch):
    """
    Provide completely isolated config environment.

    Sets XDG_CONFIG_HOME to a temporary location and clears the config cache
    to prevent tests from loading system or user configs.
    """
    config_home = tmp_path / "config"
    config_home.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))

    from navscm.core.config import clear_cache

    clear_cache()
    yield config_home
    clear_cache()


@pytest.fixture
def project_dir(isolated_config, tmp_path, object_table, finsql_exe, scratch_root):
    """
    Provide a project directory configured against the test object table.

    Creates:
    - .navscm.json pointing at nav.db, the placeholder finsql.exe and the
      scratch root
    """
    project = tmp_path / "project"
    project.mkdir()

    config = {
        "devenv": {
            "path": str(finsql_exe),
            "server": "sql-erp-01",
            "database": "NAV DEV",
            "temp_root": str(scratch_root),
        },
        "source": {"sqlite_path": str(object_table.path)},
    }
    (project / ".navscm.json").write_text(json.dumps(config, indent=2))
    return project
