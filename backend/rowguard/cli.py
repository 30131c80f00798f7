# Overview: Flask CLI command groups for bootstrap and record inspection.

# backend/rowguard/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to rowguard (PowerShell: $env:FLASK_APP="rowguard").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Record inspection:
# - python -m flask records list [--all]
#   List records (use --all to include soft-deleted ones).
# - python -m flask records show 7 [--all]
#   Show one record with its current version.
# - python -m flask records delete 7 --version 3 [--hard]
#   Delete a record if it is still at the given version.

import click
from flask.cli import with_appcontext

from .extensions import db
from .guard import ConcurrentModificationError
from .services import record_service
from .services.record_service import RecordNotFoundError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('records')
def records_group():
    """Record inspection commands."""


def _format_record(record) -> str:
    deleted = f"  deleted_at={record.deleted_at.isoformat()}" if record.deleted_at else ""
    return f"  [{record.id}] {record.name}  value={record.value}  version={record.version}{deleted}"


@records_group.command('list')
@click.option('--all', 'include_deleted', is_flag=True, help='Include soft-deleted records')
@with_appcontext
def list_records(include_deleted):
    """List records with their versions."""
    records = record_service.list_records(include_deleted=include_deleted)
    if not records:
        click.echo("No records found.")
        return

    click.echo(f"\nRecords ({len(records)}):\n")
    for record in records:
        click.echo(_format_record(record))


@records_group.command('show')
@click.argument('record_id', type=int)
@click.option('--all', 'include_deleted', is_flag=True, help='Include soft-deleted records')
@with_appcontext
def show_record(record_id, include_deleted):
    """Show one record."""
    record = record_service.get_record(record_id, include_deleted=include_deleted)
    if record is None:
        raise click.ClickException(f"Record {record_id} not found")
    click.echo(_format_record(record))


@records_group.command('delete')
@click.argument('record_id', type=int)
@click.option('--version', 'expected_version', type=int, required=True, help='Version you expect the record to be at')
@click.option('--hard', is_flag=True, help='Remove the row instead of marking it deleted')
@with_appcontext
def delete_record(record_id, expected_version, hard):
    """Delete a record if nobody changed it since the given version."""
    try:
        record_service.delete_record(record_id, expected_version, hard=hard)
    except RecordNotFoundError as exc:
        raise click.ClickException(str(exc))
    except ConcurrentModificationError as exc:
        raise click.ClickException(f"Conflict: {exc}")

    if hard:
        click.echo(f"PASS Record {record_id} removed.")
    else:
        click.echo(f"PASS Record {record_id} soft-deleted.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(records_group)
