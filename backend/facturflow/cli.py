# Overview: Flask CLI command groups for bootstrap, inspection, and scheduled jobs.

# backend/facturflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all accounts with their company name and active status.
# - python -m flask users create --name "Jane Doe" --email jane@example.fr --password "Password123!"
#   Create an account (prompts if options are omitted).
#
# Scheduled jobs (same work as the /api/cron endpoints):
# - python -m flask jobs update-overdue
# - python -m flask jobs expire-quotes
# - python -m flask jobs sync-einvoice-events
# - python -m flask jobs cleanup-sessions

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import einvoice_service, jobs_service, session_service
from .services.auth_service import PasswordValidationError, create_user
from .services.superpdp_client import EInvoiceError
from .validation import ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Full name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(name, email, password):
    """
    Create a new account.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(name=name, email=email, password=password)
        click.echo(f"PASS Created user: {user.name} ({user.email}) id={user.id}")
        click.echo("SECURITY Password securely hashed with bcrypt")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except ConflictError as e:
        db.session.rollback()
        click.echo(f"FAIL {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all accounts."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Active':<8} {'Company'}")
    click.echo("="*100)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<25} {user.email:<35} {active_str:<8} {user.company_name or '-'}")

    click.echo("="*100 + "\n")


@click.group('jobs')
def jobs_group():
    """Scheduled maintenance jobs."""


@jobs_group.command('update-overdue')
@with_appcontext
def update_overdue_cli():
    """Mark SENT invoices and deposits past their due date as OVERDUE."""
    updated = jobs_service.update_overdue()
    click.echo(f"PASS {updated} document(s) marked OVERDUE.")


@jobs_group.command('expire-quotes')
@with_appcontext
def expire_quotes_cli():
    """Cancel SENT quotes past their validity date."""
    updated = jobs_service.expire_quotes()
    click.echo(f"PASS {updated} quote(s) expired.")


@jobs_group.command('sync-einvoice-events')
@with_appcontext
def sync_einvoice_events_cli():
    """Pull e-invoice status events from the gateway."""
    try:
        result = einvoice_service.sync_einvoice_events()
    except EInvoiceError as e:
        db.session.rollback()
        raise click.ClickException(str(e))
    click.echo(f"PASS {result['processed']} event(s) applied, cursor at {result['last_event_id']}.")


@jobs_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired and revoked sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired session(s).")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(jobs_group)
