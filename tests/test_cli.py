"""Tests for the usage-stats command-line tool.

Run with: pytest tests/test_cli.py -v
"""

import tempfile
from pathlib import Path

import pytest

from cli import usage_cli
from config import AppConfig
from storage.database import SQLiteBackend, set_backend


@pytest.fixture
def workspace(monkeypatch):
    """Temp dir with a SQLite backend installed and default config."""
    with tempfile.TemporaryDirectory() as tmpdir:
        monkeypatch.setattr(usage_cli, "get_config", lambda: AppConfig())
        path = Path(tmpdir)
        set_backend(SQLiteBackend(path / "cli.db"))
        yield path


class TestParser:
    """Tests for argument parsing."""

    def test_import_takes_many_files(self):
        args = usage_cli.build_parser().parse_args(["import", "a.csv", "b.csv"])
        assert args.files == ["a.csv", "b.csv"]

    def test_create_account_requires_password(self):
        with pytest.raises(SystemExit):
            usage_cli.build_parser().parse_args(["create-account", "a@b.com"])

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            usage_cli.main([])
        assert exc_info.value.code == 1
        assert "usage-stats" in capsys.readouterr().out


class TestCommands:
    """Tests for running commands end to end against SQLite."""

    def test_import_then_stats(self, workspace, capsys):
        report = workspace / "users_logs_1705276800000.csv"
        report.write_text("User,Total emails,Emails sent\nkyle@example.com,12,5\n", encoding="utf-8")

        usage_cli.main(["import", str(report)])
        out = capsys.readouterr().out
        assert "Inserted:" in out
        assert "2024-01-15" in out

        # Each command closes the backend when done
        set_backend(SQLiteBackend(workspace / "cli.db"))
        usage_cli.main(["stats", "--email", "KYLE"])
        out = capsys.readouterr().out
        assert "kyle@example.com" in out
        assert "1 rows" in out

    def test_import_missing_file_exits(self, workspace, capsys):
        with pytest.raises(SystemExit) as exc_info:
            usage_cli.main(["import", str(workspace / "missing.csv")])
        assert exc_info.value.code == 1
        assert "File not found" in capsys.readouterr().out

    def test_validate_reports_layout(self, workspace, capsys):
        report = workspace / "users_logs_1705276800000.csv"
        report.write_text("Dept,User,Total emails\nSales,kyle@example.com,12\n", encoding="utf-8")

        usage_cli.main(["validate", str(report)])

        out = capsys.readouterr().out
        assert "VALID - Ready for import" in out
        assert "2024-01-15 (from filename)" in out
        assert "email <- column 2" in out
        assert "total_emails <- column 3" in out

    def test_validate_without_email_column_exits(self, workspace, capsys):
        report = workspace / "report.csv"
        report.write_text("Dept,Total emails\nSales,12\n", encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            usage_cli.main(["validate", str(report)])

        assert exc_info.value.code == 1
        assert "user email column" in capsys.readouterr().out

    def test_summary_empty(self, workspace, capsys):
        usage_cli.main(["summary"])
        assert "No usage data" in capsys.readouterr().out

    def test_create_account(self, workspace, capsys):
        usage_cli.main(["create-account", "admin@example.com", "--password", "pw"])
        assert "Created account admin@example.com" in capsys.readouterr().out

        set_backend(SQLiteBackend(workspace / "cli.db"))
        usage_cli.main(["create-account", "admin@example.com", "--password", "pw"])
        assert "already exists" in capsys.readouterr().out
