# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/scrapyard/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app scrapyard <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask --app scrapyard system init
#   Create tables and load the store, seeding plans and the platform operator if empty.
# - python -m flask --app scrapyard system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data), then reseed.
# - python -m flask --app scrapyard system lifecycle-check
#   Block every company whose trial or subscription has ended.
#
# Company management:
# - python -m flask --app scrapyard companies list
#   List all companies with status, plan and expiration.
# - python -m flask --app scrapyard companies renew --company-id <id> --days 30
#   Extend a company's paid period and reactivate it.
#
# Backups:
# - python -m flask --app scrapyard backups export --out dump.json [--company-id <id>]
#   Write a global dump (or one company's snapshot) to a file.
# - python -m flask --app scrapyard backups auto
#   Take today's automatic SYSTEM backup if it has not run yet.

from contextlib import contextmanager

import click
from flask.cli import with_appcontext

from .domain import Role
from .extensions import db, get_store
from .services import backup_service, subscription_service
from .time_utils import to_utc_z


@contextmanager
def _acting_as(store, user):
    """
    Run commands as `user` without touching the saved session pointer.

    The previous in-memory identity is restored afterwards.
    """
    previous = store.current_user
    store.set_current_user(user)
    try:
        yield user
    finally:
        store.set_current_user(previous)


def _platform_operator(store):
    email = store.config["PLATFORM_ADMIN_EMAIL"]
    user = store.find_user_by_email(email)
    if user is not None and user.role is Role.SUPER_ADMIN:
        return user
    for user in store.users:
        if user.role is Role.SUPER_ADMIN:
            return user
    return None


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create the schema and load the store.

    Empty collections are seeded: the plan catalogue and the platform
    operator (PLATFORM_ADMIN_EMAIL / PLATFORM_ADMIN_PASSWORD).

    SECURITY: Change the operator password immediately in production!
    """
    click.echo("START Initializing scrapyard store...")
    db.create_all()
    store = get_store().reload()
    click.echo(f"PASS Companies: {len(store.companies)}, users: {len(store.users)}, plans: {len(store.plans)}")

    operator = _platform_operator(store)
    if operator is None:
        click.echo("WARN No platform operator found")
    else:
        click.echo(f"PASS Platform operator: {operator.email}")


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

    store = get_store()
    store.set_current_user(None)
    store.reload()
    click.echo("PASS Database reset complete. Seed data restored.")


@system_group.command('lifecycle-check')
@with_appcontext
def lifecycle_check():
    """Block every company whose access period has passed."""
    blocked = subscription_service.run_lifecycle_checks(get_store())
    if not blocked:
        click.echo("PASS No companies to block")
        return
    for company_id in blocked:
        click.echo(f"BLOCKED {company_id}")
    click.echo(f"PASS Blocked {len(blocked)} companies")


# =============================================================================
# COMPANIES
# =============================================================================

@click.group('companies')
def companies_group():
    """Tenant (company) management commands."""


@companies_group.command('list')
@with_appcontext
def list_companies():
    """List all companies."""
    store = get_store()
    if not store.companies:
        click.echo("No companies found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<38} {'Name':<24} {'Plan':<14} {'Status':<10} {'Expires':<22} {'Owner'}")
    click.echo("="*100)

    for company in store.companies:
        owner = subscription_service.owner_of(store, company.id)
        expires = to_utc_z(subscription_service.expiration_of(company)) or '-'
        click.echo(
            f"{company.id:<38} {company.name[:24]:<24} {company.plan:<14} "
            f"{company.status.value:<10} {expires:<22} {owner.email if owner else '-'}"
        )

    click.echo("="*100 + "\n")


@companies_group.command('renew')
@click.option('--company-id', required=True, help='Company ID')
@click.option('--days', type=int, required=True, help='Days to add')
@with_appcontext
def renew_company(company_id, days):
    """Extend a company's paid period (as the platform operator)."""
    store = get_store()
    operator = _platform_operator(store)
    if operator is None:
        click.echo("FAIL No platform operator found. Run 'system init' first.")
        return

    with _acting_as(store, operator):
        result = subscription_service.renew_subscription(store, company_id, days)

    if not result.success:
        click.echo(f"FAIL {result.message}")
        return
    click.echo(f"PASS {result.data.name} active until {to_utc_z(result.data.subscription_ends_at)}")


# =============================================================================
# BACKUPS
# =============================================================================

@click.group('backups')
def backups_group():
    """Backup and snapshot commands."""


@backups_group.command('export')
@click.option('--out', 'out_path', type=click.Path(dir_okay=False, writable=True), default=None,
              help='Output file (default: generated backup file name)')
@click.option('--company-id', default=None, help="Export one company's snapshot instead of the global dump")
@with_appcontext
def export_backup_cli(out_path, company_id):
    """Write a snapshot to disk."""
    store = get_store()
    if company_id:
        actor = subscription_service.owner_of(store, company_id)
        if actor is None:
            click.echo(f"FAIL No owner found for company {company_id}")
            return
    else:
        actor = _platform_operator(store)
        if actor is None:
            click.echo("FAIL No platform operator found. Run 'system init' first.")
            return

    with _acting_as(store, actor):
        export = backup_service.export_backup(store)

    if export is None:
        click.echo("FAIL Nothing to export")
        return

    path = out_path or export.filename
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(export.content)
    click.echo(f"PASS Wrote {path} ({export.size_label})")


@backups_group.command('auto')
@with_appcontext
def auto_backup_cli():
    """Take today's automatic SYSTEM backup if it has not run yet."""
    store = get_store()
    operator = _platform_operator(store)
    if operator is None:
        click.echo("FAIL No platform operator found. Run 'system init' first.")
        return

    with _acting_as(store, operator):
        log = backup_service.run_auto_backup(store)

    if log is None:
        click.echo("SKIP Automatic backup already taken today")
        return
    click.echo(f"PASS Backup {log.id} taken ({log.size})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(companies_group)
    app.cli.add_command(backups_group)
