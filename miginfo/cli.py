"""Command line interface for inspecting and applying database migrations."""

import logging
import sys

import click

from miginfo.config import get_settings
from miginfo.db import get_session_factory, init_db
from miginfo.models.migration import MigrationVersion

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """miginfo - database migration history and status"""
    ctx.ensure_object(dict)

    # Don't initialize database during resilient parsing (help, completion)
    if ctx.resilient_parsing:
        return

    # Allow tests to inject settings and session_factory via ctx.obj
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = get_settings()
    settings = ctx.obj["settings"]

    logging.getLogger().setLevel(settings.log_level)

    if "session_factory" not in ctx.obj:
        init_db(settings.database_url)
        ctx.obj["session_factory"] = get_session_factory(settings.database_url)


def _target(ctx: click.Context, target: str | None) -> MigrationVersion | None:
    value = target if target is not None else ctx.obj["settings"].target_version
    return MigrationVersion.from_string(value)


def _echo_table(session, target, out_of_order) -> None:
    from miginfo.core.dumper import dump_to_ascii_table
    from miginfo.migrations import collect_migration_records

    records = collect_migration_records(session, target=target, out_of_order=out_of_order)
    click.echo(dump_to_ascii_table(records), nl=False)


@cli.command()
@click.option("--target", default=None, help="Treat versions above this one as out of scope.")
@click.option(
    "--out-of-order",
    is_flag=True,
    default=False,
    help="Show versions below the highest applied one as pending instead of ignored.",
)
@click.pass_context
def info(ctx: click.Context, target: str | None, out_of_order: bool) -> None:
    """Print the migration info table (applied and pending)."""
    out_of_order = out_of_order or ctx.obj["settings"].out_of_order

    session = ctx.obj["session_factory"]()
    try:
        _echo_table(session, _target(ctx, target), out_of_order)
    except Exception as e:
        click.echo(f"✗ Info failed: {e}", err=True)
        sys.exit(1)
    finally:
        session.close()


@cli.command()
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Show what would be applied without making changes.",
)
@click.option("--target", default=None, help="Only migrate up to this version.")
@click.pass_context
def migrate(ctx: click.Context, dry_run: bool, target: str | None) -> None:
    """Run pending database migrations."""
    from miginfo.migrations import get_pending_migrations, run_migrations

    settings = ctx.obj["settings"]
    session = ctx.obj["session_factory"]()
    try:
        target_version = _target(ctx, target)
        pending = get_pending_migrations(
            session, target=target_version, out_of_order=settings.out_of_order
        )

        if pending:
            click.echo(f"Found {len(pending)} pending migration(s):")
            for migration in pending:
                label = migration.version or "(repeatable)"
                click.echo(f"  • {label}: {migration.description}")

        if dry_run:
            if not pending:
                click.echo("✓ Database is up to date. No migrations needed.")
            click.echo("\n[DRY RUN] No changes were made.")
            return

        if pending:
            click.echo("\nApplying migrations...")
        # Also refuses to continue past a failed migration
        applied = run_migrations(
            session, target=target_version, out_of_order=settings.out_of_order
        )
        if applied:
            click.echo("\n✓ All migrations completed successfully!\n")
        else:
            click.echo("✓ Database is up to date. No migrations needed.")

        _echo_table(session, target_version, settings.out_of_order)
    except Exception as e:
        click.echo(f"\n✗ Migration failed: {e}", err=True)
        sys.exit(1)
    finally:
        session.close()


@cli.command(name="baseline")
@click.option("--version", "version", default=None, help="Version to baseline the schema at.")
@click.option("--description", default=None, help="Description of the baseline entry.")
@click.pass_context
def baseline_cmd(ctx: click.Context, version: str | None, description: str | None) -> None:
    """Mark an existing database as being at a given version."""
    from miginfo.migrations import baseline

    settings = ctx.obj["settings"]
    session = ctx.obj["session_factory"]()
    try:
        entry = baseline(
            session,
            version=version or settings.baseline_version,
            description=description or settings.baseline_description,
        )
        click.echo(f"✓ Baselined schema at version {entry.version}")
    except Exception as e:
        click.echo(f"✗ Baseline failed: {e}", err=True)
        sys.exit(1)
    finally:
        session.close()


@cli.command(name="repair")
@click.pass_context
def repair_cmd(ctx: click.Context) -> None:
    """Remove failed migrations from the schema history."""
    from miginfo.migrations import repair

    session = ctx.obj["session_factory"]()
    try:
        removed = repair(session)
        click.echo(f"✓ Removed {removed} failed migration(s) from schema history.")
    except Exception as e:
        click.echo(f"✗ Repair failed: {e}", err=True)
        sys.exit(1)
    finally:
        session.close()


if __name__ == "__main__":
    cli()
