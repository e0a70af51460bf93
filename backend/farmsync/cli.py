# Overview: Flask CLI command groups for schema bootstrap and sync inspection.

# backend/farmsync/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to farmsync (PowerShell: $env:FLASK_APP="farmsync").
# - Use: python -m flask <group> <command> [options]
#
# Schema bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Sync inspection:
# - python -m flask sync apply batch.json [--user-id u1]
#   Apply a batch file through the same coordinator as POST /api/sync.
# - python -m flask sync snapshot u1
#   Print the snapshot a client would receive.
# - python -m flask sync check u1 --since 2026-01-01T00:00:00Z
#   Print the change probe a client would receive.
# - python -m flask sync stats
#   Row counts per table.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import change_service, snapshot_service, sync_service
from .services.entity_store import EntityStore, StoreError
from .validation import ValidationError


@click.group('system')
def system_group():
    """Schema bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Schema ready")


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

    click.echo("PASS Database reset complete")


@click.group('sync')
def sync_group():
    """Apply and inspect synced data."""


@sync_group.command('apply')
@click.argument('batch_file', type=click.File('r'))
@click.option('--user-id', default=None, help='Overrides userId in the batch file')
@with_appcontext
def apply_batch(batch_file, user_id):
    """Apply a JSON batch file as a single sync."""
    try:
        batch = json.load(batch_file)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON: {e}")
    if not isinstance(batch, dict):
        raise click.ClickException("Batch file must contain a JSON object")

    try:
        result = sync_service.sync_batch(user_id or batch.get("userId"), batch)
    except (ValidationError, StoreError) as e:
        raise click.ClickException(str(e))

    counts = result.counts
    click.echo(
        f"PASS Synced {counts['transactions']} transactions, {counts['loans']} loans, "
        f"{counts['products']} products, {counts['settings']} settings"
    )
    click.echo(f"syncedAt: {result.to_dict()['syncedAt']}")


@sync_group.command('snapshot')
@click.argument('user_id')
@with_appcontext
def show_snapshot(user_id):
    """Print a user's snapshot as JSON."""
    try:
        snapshot = snapshot_service.get_snapshot(user_id)
    except (ValidationError, StoreError) as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps(snapshot, indent=2, sort_keys=True))


@sync_group.command('check')
@click.argument('user_id')
@click.option('--since', default=None, help='ISO-8601 timestamp (defaults to the epoch)')
@with_appcontext
def check_updates(user_id, since):
    """Print the change probe for a user."""
    try:
        result = change_service.check_updates(user_id, since)
    except (ValidationError, StoreError) as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps(result, indent=2, sort_keys=True))


@sync_group.command('stats')
@with_appcontext
def stats():
    """Show row counts per table."""
    counts = EntityStore().table_counts()
    click.echo(f"{'Table':<16} {'Rows':>8}")
    click.echo("-" * 25)
    for table, count in counts.items():
        click.echo(f"{table:<16} {count:>8}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(sync_group)
