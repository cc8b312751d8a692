"""
Tests for the navscm CLI.

Commands run against a project directory configured with the SQLite object
table; finsql invocations go to the fake runner.
"""

import pytest
from rich.console import Console
from typer.testing import CliRunner

from navscm import __version__
from navscm.cli import app, cache, errors, objects, sync
from navscm.core.devenv import interface as interface_module
from navscm.core.objects import NavObjectType

from conftest import FakeFinsql, write_object_file

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Render rich output without wrapping long lines."""
    for module in (cache, errors, objects, sync):
        monkeypatch.setattr(module, "console", Console(width=200))


@pytest.fixture
def finsql(monkeypatch, object_table):
    """Route every finsql invocation to a fake runner."""
    fake = FakeFinsql(object_table)
    monkeypatch.setattr(interface_module, "run_subprocess", fake)
    return fake


@pytest.fixture
def invoke(project_dir):
    """Invoke navscm against the configured project directory."""

    def _invoke(*args):
        return runner.invoke(app, ["-C", str(project_dir), *args])

    return _invoke


@pytest.fixture
def tn_test(object_table):
    object_table.add(NavObjectType.CODEUNIT, 99997, "TN_Test", modified=True)


class TestMain:
    """Test the main command."""

    def test_version(self):
        """Test --version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help(self):
        """Test that help lists the commands."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("cache", "status", "sync", "export", "import", "compile"):
            assert command in result.output

    def test_missing_configuration(self, isolated_config, tmp_path):
        """Test that an unconfigured project is a user error."""
        result = runner.invoke(app, ["-C", str(tmp_path), "status"])
        assert result.exit_code == 2
        assert "No object database configured" in result.output


class TestCacheCommands:
    """Test cache refresh and show."""

    def test_refresh_and_show(self, invoke, tn_test, project_dir):
        """Test refreshing the cache and listing it."""
        result = invoke("cache", "refresh")
        assert result.exit_code == 0, result.output
        assert "Cached 1 objects" in result.output
        assert (project_dir / ".navscm" / "cache.json").exists()

        result = invoke("cache", "show")
        assert result.exit_code == 0, result.output
        assert "5.99997" in result.output
        assert "TN_Test" in result.output

    def test_show_single(self, invoke, tn_test):
        """Test showing one object by key."""
        invoke("cache", "refresh")
        result = invoke("cache", "show", "5.99997")
        assert result.exit_code == 0, result.output
        assert "CMNM6.03" in result.output

    def test_show_without_cache(self, invoke):
        """Test that a missing cache points at refresh."""
        result = invoke("cache", "show")
        assert result.exit_code == 2
        assert "No object cache found" in result.output
        assert "navscm cache refresh" in result.output

    def test_show_invalid_key(self, invoke):
        """Test that malformed keys are rejected."""
        result = invoke("cache", "show", "codeunit-1")
        assert result.exit_code == 2
        assert "Invalid cache key" in result.output

    def test_show_unknown_key(self, invoke, tn_test):
        """Test that an uncached object is an error."""
        invoke("cache", "refresh")
        result = invoke("cache", "show", "5.1")
        assert result.exit_code == 1
        assert "not in the cache" in result.output


class TestStatusCommand:
    """Test the status command."""

    def test_status(self, invoke, tn_test, object_table, project_dir):
        """Test that differing objects are listed."""
        object_table.add(NavObjectType.TABLE, 18, "Customer")
        write_object_file(project_dir / "objects", "Table", 18, "Customer")

        result = invoke("status")

        assert result.exit_code == 0, result.output
        assert "Codeunit 99997" in result.output
        assert "database_only" in result.output
        assert "Table 18" not in result.output
        assert "1 of 2 objects in sync" in result.output

    def test_status_all(self, invoke, object_table, project_dir):
        """Test that --all includes objects in sync."""
        object_table.add(NavObjectType.TABLE, 18, "Customer")
        write_object_file(project_dir / "objects", "Table", 18, "Customer")

        result = invoke("status", "--all")

        assert result.exit_code == 0, result.output
        assert "Table 18" in result.output
        assert "in_sync" in result.output

    def test_status_reports_skipped_files(self, invoke, project_dir):
        """Test that unreadable working-copy files are mentioned."""
        notes = project_dir / "objects" / "notes.txt"
        notes.parent.mkdir()
        notes.write_text("hello\n")

        result = invoke("status")

        assert result.exit_code == 0, result.output
        assert "Skipped" in result.output


class TestSyncCommand:
    """Test the sync command."""

    def test_dry_run(self, invoke, tn_test, finsql):
        """Test that --dry-run lists pending objects without exporting."""
        result = invoke("sync", "--dry-run")
        assert result.exit_code == 0, result.output
        assert "Codeunit 99997: TN_Test" in result.output
        assert finsql.calls == []

    def test_dry_run_nothing_pending(self, invoke, finsql):
        """Test the dry run message when nothing changed."""
        result = invoke("sync", "--dry-run")
        assert result.exit_code == 0
        assert "No objects to export" in result.output

    def test_sync(self, invoke, tn_test, finsql, project_dir):
        """Test exporting changed objects."""
        result = invoke("sync")

        assert result.exit_code == 0, result.output
        assert "Exported 5.99997" in result.output
        assert (project_dir / "objects" / "Codeunit" / "99997 - TN_Test.txt").exists()
        assert (project_dir / ".navscm" / "cache.json").exists()

    def test_sync_failure(self, invoke, tn_test, finsql, project_dir):
        """Test that failed exports give a non-zero exit code."""
        finsql.failing_filters.add("Type=Codeunit;ID=99997")

        result = invoke("sync")

        assert result.exit_code == 1
        assert "export failed" in result.output
        assert not (project_dir / ".navscm" / "cache.json").exists()

    def test_sync_interrupted(self, invoke, tn_test, monkeypatch, project_dir):
        """Test that Ctrl+C during export exits with 130 and keeps the cache."""

        def interrupt(command, cwd):
            raise KeyboardInterrupt

        monkeypatch.setattr(interface_module, "run_subprocess", interrupt)

        result = invoke("sync")

        assert result.exit_code == 130
        assert "interrupted" in result.output
        assert not (project_dir / ".navscm" / "cache.json").exists()


class TestObjectCommands:
    """Test export, import and compile."""

    def test_export(self, invoke, tn_test, finsql, project_dir):
        """Test exporting one object to the working copy."""
        result = invoke("export", "Codeunit", "99997")
        assert result.exit_code == 0, result.output
        assert (project_dir / "objects" / "Codeunit" / "99997 - TN_Test.txt").exists()

    def test_export_to(self, invoke, tn_test, finsql, tmp_path):
        """Test exporting to an explicit file using the type ordinal."""
        target = tmp_path / "out.txt"
        result = invoke("export", "5", "99997", "--to", str(target))
        assert result.exit_code == 0, result.output
        assert target.exists()

    def test_export_wrong_extension(self, invoke, tn_test, finsql, tmp_path):
        """Test that non-text targets are refused."""
        result = invoke("export", "Codeunit", "99997", "--to", str(tmp_path / "out.fob"))
        assert result.exit_code == 2
        assert finsql.calls == []

    def test_export_unsupported_type(self, invoke, finsql):
        """Test that unsupported types are usage errors."""
        result = invoke("export", "Form", "21")
        assert result.exit_code == 2
        assert finsql.calls == []

    def test_export_missing_object(self, invoke, finsql):
        """Test exporting an object that is not in the database."""
        result = invoke("export", "Codeunit", "1")
        assert result.exit_code == 2
        assert "does not exist" in result.output

    def test_export_failure(self, invoke, tn_test, finsql):
        """Test that finsql errors are reported."""
        finsql.error = "The license does not allow export."
        result = invoke("export", "Codeunit", "99997")
        assert result.exit_code == 1
        assert "The license does not allow export." in result.output

    def test_import(self, invoke, tn_test, finsql, project_dir):
        """Test importing an object file."""
        path = write_object_file(project_dir / "objects", "Codeunit", 99997, "TN_Test")
        result = invoke("import", str(path))
        assert result.exit_code == 0, result.output
        assert "Imported Codeunit 99997: TN_Test" in result.output
        assert "Command=ImportObjects" in finsql.commands[0]

    def test_import_missing_file(self, invoke, finsql, tmp_path):
        """Test that a missing file is a user error."""
        result = invoke("import", str(tmp_path / "missing.txt"))
        assert result.exit_code == 2
        assert finsql.calls == []

    def test_compile(self, invoke, tn_test, finsql):
        """Test compiling an object."""
        result = invoke("compile", "Codeunit", "99997")
        assert result.exit_code == 0, result.output
        assert "Compiled Codeunit 99997: TN_Test" in result.output
        assert 'Filter="Type=Codeunit;ID=99997"' in finsql.commands[0]

    def test_compile_failure(self, invoke, tn_test, finsql):
        """Test that compile errors are reported."""
        finsql.error = "You have specified an unknown variable."
        result = invoke("compile", "Codeunit", "99997")
        assert result.exit_code == 1
        assert "Compile of object 5.99997 failed" in result.output
