# Overview: Flask CLI command groups for bootstrap and store setup.

# backend/optistore/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions
#   Delete expired or revoked sessions older than 30 days.
#
# Users:
# - python -m flask users create-owner --username owner --email owner@optistore.local --name "Store Owner"
#   Create an owner account (prompts for the password).
#
# Stores:
# - python -m flask stores create --owner owner --name "Optique Centre" --timezone "Africa/Casablanca"
#   Create a store for an owner.
# - python -m flask stores set-tax-rate 1 20
#   Change a store's tax rate (percent). Existing sales keep their rate.
# - python -m flask stores list
#   List all stores with owner and tax rate.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Store, User
from .services import session_service, store_service, tax_service
from .services.auth_service import create_owner, PasswordValidationError, UserError
from .services.store_service import StoreError
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables. Safe to run repeatedly."""
    db.create_all()
    click.echo("PASS Tables created.")
    click.echo("Next: python -m flask users create-owner, then python -m flask stores create")


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


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} stale sessions.")


@click.group('users')
def users_group():
    """User account commands."""


@users_group.command('create-owner')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--name', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_owner_command(username, email, name, password):
    """Create an owner account."""
    try:
        user = create_owner(username, email, password, name)
    except (PasswordValidationError, UserError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created owner: {user.username} ({user.email}) ID: {user.id}")


@click.group('stores')
def stores_group():
    """Store commands."""


@stores_group.command('create')
@click.option('--owner', 'owner_username', required=True, help='Owner username')
@click.option('--name', required=True)
@click.option('--code', default=None)
@click.option('--timezone', default='UTC', show_default=True)
@click.option('--tax-rate', 'tax_rate', default=None, help='Percent; defaults to DEFAULT_TAX_RATE_PERCENT')
@with_appcontext
def create_store_command(owner_username, name, code, timezone, tax_rate):
    owner = db.session.query(User).filter_by(username=owner_username).first()
    if not owner or not owner.is_owner:
        raise click.ClickException(f"No owner account named {owner_username}")

    try:
        store = store_service.create_store(
            name,
            owner_id=owner.id,
            code=code,
            timezone=timezone,
            tax_rate_percent=tax_rate,
        )
    except (StoreError, ValidationError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created store: {store.name} (ID: {store.id}, tax {store.tax_rate_percent}%)")


@stores_group.command('set-tax-rate')
@click.argument('store_id', type=int)
@click.argument('rate')
@with_appcontext
def set_tax_rate_command(store_id, rate):
    try:
        store = tax_service.set_tax_rate_percent(store_id, rate)
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Store {store.id} tax rate is now {store.tax_rate_percent}%")


@stores_group.command('list')
@with_appcontext
def list_stores_command():
    stores = db.session.query(Store).order_by(Store.id.asc()).all()
    if not stores:
        click.echo("No stores.")
        return
    for store in stores:
        owner = store.owner.username if store.owner else "-"
        click.echo(
            f"{store.id:>4}  {store.name:<30} owner={owner:<16} tz={store.timezone:<20} tax={store.tax_rate_percent}%"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stores_group)
