"""Tests for migration versions, types and states."""

import pytest

from miginfo.exceptions import InvalidVersionError, MigrationError
from miginfo.models.migration import (
    MigrationRecord,
    MigrationState,
    MigrationType,
    MigrationVersion,
)


class TestMigrationVersion:
    def test_str_keeps_text(self):
        assert str(MigrationVersion("1.2.3")) == "1.2.3"

    def test_underscores_normalized(self):
        assert str(MigrationVersion("2_1")) == "2.1"
        assert MigrationVersion("2_1") == MigrationVersion("2.1")

    def test_numeric_ordering(self):
        assert MigrationVersion("1.10") > MigrationVersion("1.9")
        assert MigrationVersion("2") > MigrationVersion("1.99")
        assert MigrationVersion("1.0.1") > MigrationVersion("1")

    def test_trailing_zeros_equal(self):
        assert MigrationVersion("1.0") == MigrationVersion("1")
        assert hash(MigrationVersion("1.0.0")) == hash(MigrationVersion("1"))

    def test_sorting(self):
        versions = [MigrationVersion(v) for v in ["3", "1.1", "10", "1", "2.0.5"]]
        assert [str(v) for v in sorted(versions)] == ["1", "1.1", "2.0.5", "3", "10"]

    @pytest.mark.parametrize("text", ["", "abc", "1.a", "1..2", "-1", "1.2-beta"])
    def test_invalid(self, text):
        with pytest.raises(InvalidVersionError):
            MigrationVersion(text)

    def test_invalid_is_migration_error_and_value_error(self):
        with pytest.raises(MigrationError):
            MigrationVersion("x")
        with pytest.raises(ValueError):
            MigrationVersion("x")

    def test_from_string_none(self):
        assert MigrationVersion.from_string(None) is None
        assert MigrationVersion.from_string("  ") is None
        assert MigrationVersion.from_string("4") == MigrationVersion("4")

    def test_not_equal_to_string(self):
        assert MigrationVersion("1") != "1"


class TestMigrationState:
    def test_every_state_has_display_name(self):
        for state in MigrationState:
            assert state.display_name
            assert state.display_name != state.name

    def test_display_names(self):
        assert MigrationState.SUCCESS.display_name == "Success"
        assert MigrationState.PENDING.display_name == "Pending"
        assert MigrationState.MISSING_FAILED.display_name == "Failed (Missing)"
        assert MigrationState.FUTURE_SUCCESS.display_name == "Future"

    def test_display_names_unique(self):
        names = [state.display_name for state in MigrationState]
        assert len(names) == len(set(names))

    def test_flags(self):
        assert MigrationState.FAILED.failed and MigrationState.FAILED.applied
        assert not MigrationState.PENDING.applied
        assert not MigrationState.MISSING_SUCCESS.resolved
        assert MigrationState.BASELINE.applied


class TestMigrationRecord:
    def test_repeatable(self):
        record = MigrationRecord(
            version=None,
            description="refresh views",
            type=MigrationType.SQL,
            installed_on=None,
            state=MigrationState.PENDING,
        )
        assert record.is_repeatable

    def test_frozen(self):
        record = MigrationRecord(
            version=MigrationVersion("1"),
            description="init",
            type=MigrationType.SCHEMA,
            installed_on=None,
            state=MigrationState.PENDING,
        )
        assert not record.is_repeatable
        with pytest.raises(AttributeError):
            record.description = "changed"
