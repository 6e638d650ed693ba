"""Migration registry, info service and runner for miginfo."""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from miginfo.exceptions import DuplicateMigrationError, MigrationError, MigrationFailedError
from miginfo.models.migration import (
    MigrationRecord,
    MigrationState,
    MigrationType,
    MigrationVersion,
)
from miginfo.models.schema_history import SchemaHistoryEntry

logger = logging.getLogger(__name__)

BASELINE_DESCRIPTION = "<< Baseline >>"


class Migration(ABC):
    """Base class for database migrations.

    A migration whose ``version`` is None is repeatable: it is re-applied
    whenever its ``checksum`` changes.
    """

    type: MigrationType = MigrationType.PYTHON

    @property
    @abstractmethod
    def version(self) -> str | None:
        """Version identifier, or None for a repeatable migration."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of this migration."""
        pass

    @abstractmethod
    def up(self, session: Session) -> None:
        """Apply the migration."""
        pass

    def down(self, session: Session) -> None:
        """Rollback the migration (optional, not always safe)."""
        raise NotImplementedError(f"Migration {self.version} does not support rollback")

    @property
    def script(self) -> str:
        return type(self).__name__

    @property
    def checksum(self) -> int | None:
        return None

    @property
    def parsed_version(self) -> MigrationVersion | None:
        return MigrationVersion.from_string(self.version)


# Registry of all available migrations
MIGRATIONS: list[Migration] = []


@dataclass
class _ResolvedRow:
    record: MigrationRecord
    migration: Migration | None = None


def _ensure_history_table(session: Session) -> None:
    """Ensure the schema_history table exists."""
    engine = session.get_bind()
    SchemaHistoryEntry.__table__.create(engine, checkfirst=True)


def _load_history(session: Session, create_table: bool) -> list[SchemaHistoryEntry]:
    if create_table:
        _ensure_history_table(session)
    elif not inspect(session.get_bind()).has_table(SchemaHistoryEntry.__tablename__):
        return []
    return session.query(SchemaHistoryEntry).order_by(SchemaHistoryEntry.installed_rank).all()


def _index_migrations(
    migrations: list[Migration],
) -> tuple[dict[MigrationVersion, Migration], dict[str, Migration]]:
    versioned: dict[MigrationVersion, Migration] = {}
    repeatable: dict[str, Migration] = {}
    for migration in migrations:
        version = migration.parsed_version
        if version is None:
            if migration.description in repeatable:
                raise DuplicateMigrationError(
                    f"Found more than one repeatable migration with description "
                    f"'{migration.description}'"
                )
            repeatable[migration.description] = migration
        else:
            if version in versioned:
                raise DuplicateMigrationError(
                    f"Found more than one migration with version {version}: "
                    f"{versioned[version].script}, {migration.script}"
                )
            versioned[version] = migration
    return versioned, repeatable


def _applied_record(
    version: MigrationVersion | None, entry: SchemaHistoryEntry, state: MigrationState
) -> MigrationRecord:
    return MigrationRecord(
        version=version,
        description=entry.description,
        type=MigrationType[entry.type],
        installed_on=entry.installed_on,
        state=state,
        script=entry.script,
    )


def _pending_record(
    version: MigrationVersion | None, migration: Migration, state: MigrationState
) -> MigrationRecord:
    return MigrationRecord(
        version=version,
        description=migration.description,
        type=migration.type,
        installed_on=None,
        state=state,
        script=migration.script,
    )


def _resolve(
    session: Session,
    migrations: list[Migration] | None,
    target: MigrationVersion | None,
    out_of_order: bool,
    create_table: bool = True,
) -> list[_ResolvedRow]:
    migrations = MIGRATIONS if migrations is None else migrations
    resolved_versioned, resolved_repeatable = _index_migrations(migrations)
    history = _load_history(session, create_table)

    applied_versioned: dict[MigrationVersion, tuple[MigrationVersion, SchemaHistoryEntry]] = {}
    applied_repeatable: dict[str, SchemaHistoryEntry] = {}
    out_of_order_versions: set[MigrationVersion] = set()
    baseline_version: MigrationVersion | None = None
    highest_applied: MigrationVersion | None = None

    for entry in history:
        version = MigrationVersion.from_string(entry.version)
        if version is None:
            applied_repeatable[entry.description] = entry
            continue
        if entry.type == MigrationType.BASELINE.name:
            baseline_version = version
        elif entry.success and highest_applied is not None and version < highest_applied:
            out_of_order_versions.add(version)
        if entry.success and (highest_applied is None or version > highest_applied):
            highest_applied = version
        # Latest row for a version wins
        applied_versioned[version] = (version, entry)

    highest_resolved = max(resolved_versioned) if resolved_versioned else None

    rows: list[_ResolvedRow] = []
    for version in sorted(set(resolved_versioned) | set(applied_versioned)):
        migration = resolved_versioned.get(version)
        applied = applied_versioned.get(version)

        if applied is not None:
            applied_version, entry = applied
            if entry.type == MigrationType.BASELINE.name:
                state = MigrationState.BASELINE
            elif migration is None:
                if highest_resolved is None or applied_version > highest_resolved:
                    state = (
                        MigrationState.FUTURE_SUCCESS
                        if entry.success
                        else MigrationState.FUTURE_FAILED
                    )
                else:
                    state = (
                        MigrationState.MISSING_SUCCESS
                        if entry.success
                        else MigrationState.MISSING_FAILED
                    )
            elif not entry.success:
                state = MigrationState.FAILED
            elif applied_version in out_of_order_versions:
                state = MigrationState.OUT_OF_ORDER
            else:
                state = MigrationState.SUCCESS
            rows.append(_ResolvedRow(_applied_record(applied_version, entry, state), migration))
            continue

        if baseline_version is not None and version <= baseline_version:
            state = MigrationState.BELOW_BASELINE
        elif target is not None and version > target:
            state = MigrationState.ABOVE_TARGET
        elif highest_applied is not None and version < highest_applied and not out_of_order:
            state = MigrationState.IGNORED
        else:
            state = MigrationState.PENDING
        rows.append(_ResolvedRow(_pending_record(version, migration, state), migration))

    for description in sorted(set(resolved_repeatable) | set(applied_repeatable)):
        migration = resolved_repeatable.get(description)
        entry = applied_repeatable.get(description)

        if entry is None:
            rows.append(
                _ResolvedRow(_pending_record(None, migration, MigrationState.PENDING), migration)
            )
        elif migration is None:
            state = (
                MigrationState.MISSING_SUCCESS if entry.success else MigrationState.MISSING_FAILED
            )
            rows.append(_ResolvedRow(_applied_record(None, entry, state)))
        elif entry.checksum == migration.checksum:
            state = MigrationState.SUCCESS if entry.success else MigrationState.FAILED
            rows.append(_ResolvedRow(_applied_record(None, entry, state), migration))
        else:
            rows.append(_ResolvedRow(_applied_record(None, entry, MigrationState.OUTDATED)))
            rows.append(
                _ResolvedRow(_pending_record(None, migration, MigrationState.PENDING), migration)
            )

    return rows


def collect_migration_records(
    session: Session,
    migrations: list[Migration] | None = None,
    target: MigrationVersion | None = None,
    out_of_order: bool = False,
) -> list[MigrationRecord]:
    """Merge registered migrations with the schema history.

    Versioned migrations come first in ascending version order, followed by
    repeatable migrations ordered by description.
    """
    return [row.record for row in _resolve(session, migrations, target, out_of_order)]


def get_pending_migrations(
    session: Session,
    migrations: list[Migration] | None = None,
    target: MigrationVersion | None = None,
    out_of_order: bool = False,
) -> list[Migration]:
    """Get list of migrations that haven't been applied yet."""
    return [
        row.migration
        for row in _resolve(session, migrations, target, out_of_order)
        if row.record.state is MigrationState.PENDING and row.migration is not None
    ]


def _label(migration: Migration) -> str:
    if migration.version is None:
        return f"<< repeatable: {migration.description} >>"
    return migration.version


def _record_history(
    session: Session, migration: Migration, success: bool, execution_time: int
) -> None:
    version = migration.parsed_version
    session.add(
        SchemaHistoryEntry(
            version=str(version) if version is not None else None,
            description=migration.description,
            type=migration.type.name,
            script=migration.script,
            checksum=migration.checksum,
            installed_on=datetime.now(UTC),
            execution_time=execution_time,
            success=success,
        )
    )
    session.commit()


def _apply(session: Session, migration: Migration) -> None:
    label = _label(migration)
    logger.info(f"Applying migration {label} - {migration.description}")
    started = time.monotonic()
    try:
        migration.up(session)
        session.commit()
    except Exception as e:
        session.rollback()
        elapsed_ms = int((time.monotonic() - started) * 1000)
        _record_history(session, migration, success=False, execution_time=elapsed_ms)
        logger.error(f"Migration {label} failed: {e}")
        raise MigrationFailedError(migration.version, migration.description, e) from e

    elapsed_ms = int((time.monotonic() - started) * 1000)
    _record_history(session, migration, success=True, execution_time=elapsed_ms)
    logger.info(f"✓ Migration {label} applied ({elapsed_ms} ms)")


def run_migrations(
    session: Session,
    migrations: list[Migration] | None = None,
    dry_run: bool = False,
    target: MigrationVersion | None = None,
    out_of_order: bool = False,
) -> int:
    """Run all pending migrations. Returns how many were (or would be) applied.

    Refuses to run while the schema history holds a failed migration; run
    ``repair`` first so it becomes pending again. A dry run never creates
    the schema history table.
    """
    rows = _resolve(session, migrations, target, out_of_order, create_table=not dry_run)

    failed = [row.record for row in rows if row.record.state.failed]
    if failed:
        labels = ", ".join(
            str(r.version) if r.version is not None else f"<< repeatable: {r.description} >>"
            for r in failed
        )
        raise MigrationError(
            f"Detected failed migration(s): {labels}. "
            "Fix them and run repair before migrating again."
        )

    pending = [
        row.migration
        for row in rows
        if row.record.state is MigrationState.PENDING and row.migration is not None
    ]

    if not pending:
        logger.info("No pending migrations")
        return 0

    logger.info(f"Found {len(pending)} pending migration(s)")

    for migration in pending:
        if dry_run:
            logger.info(f"[DRY RUN] Would apply: {_label(migration)} - {migration.description}")
        else:
            _apply(session, migration)
    return len(pending)


def baseline(
    session: Session, version: str = "1", description: str = BASELINE_DESCRIPTION
) -> SchemaHistoryEntry:
    """Mark an existing schema as being at ``version`` without running anything."""
    _ensure_history_table(session)
    parsed = MigrationVersion(version)

    if session.query(SchemaHistoryEntry).count() > 0:
        raise MigrationError(
            "Cannot baseline: schema history is not empty. Baseline only a fresh history."
        )

    entry = SchemaHistoryEntry(
        version=str(parsed),
        description=description,
        type=MigrationType.BASELINE.name,
        script=description,
        installed_on=datetime.now(UTC),
        execution_time=0,
        success=True,
    )
    session.add(entry)
    session.commit()
    logger.info(f"Baselined schema at version {parsed}")
    return entry


def repair(session: Session) -> int:
    """Remove failed entries from the schema history. Returns the number removed."""
    _ensure_history_table(session)
    removed = (
        session.query(SchemaHistoryEntry)
        .filter(SchemaHistoryEntry.success.is_(False))
        .delete(synchronize_session=False)
    )
    session.commit()
    if removed:
        logger.info(f"Removed {removed} failed migration(s) from schema history")
    else:
        logger.info("No failed migrations to repair")
    return removed
