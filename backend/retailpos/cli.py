# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/retailpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates all tables and the default users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --name "Ana" --email ana@store.local --password "Password123!" --role MANAGER
#
# Inventory:
# - python -m flask inventory check-ledger
#   Report products whose cached stock differs from the movement ledger.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import ROLES, ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_MANAGER
from .services import auth_service, inventory_service, session_service
from .validation import ValidationError


DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = [
    ("Administrator", "admin@retailpos.local", ROLE_ADMIN),
    ("Manager", "manager@retailpos.local", ROLE_MANAGER),
    ("Cashier", "cashier@retailpos.local", ROLE_EMPLOYEE),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables and the default users (one per role).

    All passwords default to "Password123!". Change them in production.
    """
    click.echo("START Initializing RetailPOS...")
    db.create_all()

    for name, email, role in DEFAULT_USERS:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        try:
            auth_service.create_user(name=name, email=email, password=DEFAULT_PASSWORD, role=role)
            click.echo(f"PASS Created user: {email} with role '{role}'")
        except ValidationError as e:
            click.echo(f"FAIL Failed to create user '{email}': {e}")

    click.echo("DONE RetailPOS initialized. Default password: Password123!")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = auth_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<24} {'Email':<34} {'Role':<10} {'Active'}")
    click.echo("="*90)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<24} {user.email:<34} {user.role:<10} {active_str}")
    click.echo("="*90 + "\n")


@users_group.command('create')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(ROLES, case_sensitive=False), default=ROLE_EMPLOYEE, show_default=True)
@with_appcontext
def create_user_command(name, email, password, role):
    """Create a user (prompts if options are omitted)."""
    try:
        user = auth_service.create_user(name=name, email=email, password=password, role=role)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role {user.role})")


@click.group('inventory')
def inventory_group():
    """Stock ledger inspection."""


@inventory_group.command('check-ledger')
@with_appcontext
def check_ledger():
    """Report cached stock that disagrees with the movement ledger (read-only)."""
    drift = inventory_service.find_ledger_drift()
    if not drift:
        click.echo("PASS Cached stock matches the ledger for every tracked product.")
        return

    click.echo(f"FAIL {len(drift)} product(s) out of line with the ledger:")
    for row in drift:
        click.echo(
            f"  {row['product_id']:<6} {row['sku']:<24} cached={row['stock_cached']} "
            f"ledger={row['ledger_quantity']} diff={row['difference']:+d}"
        )
    raise SystemExit(1)


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions(older_than_days):
    """Delete expired or revoked sessions older than the cutoff."""
    deleted = session_service.cleanup_expired_sessions(older_than_days=older_than_days)
    click.echo(f"PASS Deleted {deleted} session(s).")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(maintenance_group)
