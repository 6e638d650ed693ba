"""Tests for the miginfo command line interface."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from miginfo.cli import cli
from miginfo.migrations import Migration
from miginfo.models.schema_history import SchemaHistoryEntry


class _Migration(Migration):
    def __init__(self, version, description, fail=False):
        self._version = version
        self._description = description
        self._fail = fail

    @property
    def version(self):
        return self._version

    @property
    def description(self):
        return self._description

    def up(self, session):
        if self._fail:
            raise RuntimeError("disk full")


@pytest.fixture
def registry(monkeypatch):
    migrations = [_Migration("1", "create users"), _Migration("2", "add email")]
    monkeypatch.setattr("miginfo.migrations.MIGRATIONS", migrations)
    return migrations


@pytest.fixture
def invoke(test_settings, session_factory):
    def _invoke(args):
        runner = CliRunner()
        return runner.invoke(
            cli, args, obj={"settings": test_settings, "session_factory": session_factory}
        )

    return _invoke


class TestInfo:
    def test_help(self, invoke):
        result = invoke(["info", "--help"])
        assert result.exit_code == 0
        assert "--target" in result.output
        assert "--out-of-order" in result.output

    def test_no_migrations(self, invoke, monkeypatch):
        monkeypatch.setattr("miginfo.migrations.MIGRATIONS", [])
        result = invoke(["info"])
        assert result.exit_code == 0
        assert "No migrations found" in result.output
        assert result.output.startswith("+-")

    def test_pending(self, invoke, registry):
        result = invoke(["info"])
        assert result.exit_code == 0
        assert "create users" in result.output
        assert result.output.count("Pending") == 2

    def test_target(self, invoke, registry):
        result = invoke(["info", "--target", "1"])
        assert result.exit_code == 0
        assert "Above Target" in result.output

    def test_invalid_target(self, invoke, registry):
        result = invoke(["info", "--target", "latest"])
        assert result.exit_code == 1
        assert "Invalid version" in result.output


class TestMigrate:
    def test_applies_and_prints_table(self, invoke, registry, db_session):
        result = invoke(["migrate"])
        assert result.exit_code == 0
        assert "Found 2 pending migration(s)" in result.output
        assert "All migrations completed successfully" in result.output
        assert result.output.count("Success") == 2
        assert db_session.query(SchemaHistoryEntry).count() == 2

    def test_up_to_date(self, invoke, registry):
        invoke(["migrate"])
        result = invoke(["migrate"])
        assert result.exit_code == 0
        assert "Database is up to date" in result.output

    def test_dry_run(self, invoke, registry, db_session):
        result = invoke(["migrate", "--dry-run"])
        assert result.exit_code == 0
        assert "[DRY RUN]" in result.output
        assert db_session.query(SchemaHistoryEntry).count() == 0

    def test_failure_exits_nonzero(self, invoke, monkeypatch):
        monkeypatch.setattr(
            "miginfo.migrations.MIGRATIONS", [_Migration("1", "broken", fail=True)]
        )
        result = invoke(["migrate"])
        assert result.exit_code == 1
        assert "Migration failed" in result.output
        assert "disk full" in result.output

        info = invoke(["info"])
        assert "Failed" in info.output


class TestBaselineAndRepair:
    def test_baseline(self, invoke, registry):
        result = invoke(["baseline", "--version", "1"])
        assert result.exit_code == 0
        assert "Baselined schema at version 1" in result.output

        info = invoke(["info"])
        assert "<< Baseline >>" in info.output
        assert "BASELINE" in info.output

    def test_baseline_twice_fails(self, invoke, registry):
        invoke(["baseline"])
        result = invoke(["baseline"])
        assert result.exit_code == 1
        assert "Baseline failed" in result.output

    def test_repair(self, invoke, monkeypatch):
        monkeypatch.setattr(
            "miginfo.migrations.MIGRATIONS", [_Migration("1", "broken", fail=True)]
        )
        invoke(["migrate"])
        result = invoke(["repair"])
        assert result.exit_code == 0
        assert "Removed 1 failed migration(s)" in result.output

    def test_repair_error_exits_nonzero(self, invoke):
        with patch("miginfo.migrations.repair", side_effect=RuntimeError("database is locked")):
            result = invoke(["repair"])
        assert result.exit_code == 1
        assert "✗ Repair failed: database is locked" in result.output

    def test_migrate_blocked_until_repair(self, invoke, monkeypatch):
        monkeypatch.setattr(
            "miginfo.migrations.MIGRATIONS", [_Migration("1", "broken", fail=True)]
        )
        invoke(["migrate"])
        result = invoke(["migrate"])
        assert result.exit_code == 1
        assert "run repair" in result.output
