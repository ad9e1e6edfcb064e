# Overview: Flask CLI command groups for bootstrap, seeding and maintenance.

# backend/autoshop/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables and the default admin/client accounts (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --email admin@autoshop.local --first-name Ana --last-name Pop --role admin
#   Create a user (prompts for the password).
# - python -m flask users list
#
# Calendar:
# - python -m flask calendar materialize --date 2030-01-07 [--days 5]
#   Pre-create the working-hour slots for a range of days.
#
# Parts:
# - python -m flask parts add --name "Brake pad" --part-number BP-100 --price 20 --stock 10
# - python -m flask parts low-stock

from datetime import timedelta

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import Part, Supplier, User, USER_ROLES
from .services import auth_service, calendar_service, parts_service
from .validation import parse_date, parse_money_cents


DEFAULT_PASSWORD = "Password123"

DEFAULT_USERS = (
    ("admin@autoshop.local", "Workshop", "Admin", "admin"),
    ("client@autoshop.local", "Demo", "Client", "client"),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """
    Create all tables and the default accounts.

    Users: admin@autoshop.local (admin), client@autoshop.local (client),
    both with password "Password123".

    SECURITY: Change passwords immediately in production!
    """
    click.echo("BUILD  Creating all tables...")
    db.create_all()

    for email, first_name, last_name, role in DEFAULT_USERS:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"SKIP  User exists: {email}")
            continue
        auth_service.create_user(
            email=email,
            password=DEFAULT_PASSWORD,
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
        click.echo(f"PASS Created user: {email} ({role})")

    click.echo("PASS Database initialized.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init-db' to seed accounts.")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', prompt=True, help='Last name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(USER_ROLES)), default='client', show_default=True, help='Role')
@with_appcontext
def create_user_cli(email, first_name, last_name, password, role):
    """Create a user account."""
    try:
        user = auth_service.create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
    except ServiceError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Email':<32} {'Name':<25} {'Role':<12} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<32} {user.full_name:<25} {user.role:<12} {active_str}")

    click.echo("="*80 + "\n")


@click.group('calendar')
def calendar_group():
    """Calendar slot commands."""


@calendar_group.command('materialize')
@click.option('--date', 'start', required=True, help='First day (YYYY-MM-DD)')
@click.option('--days', default=1, show_default=True, type=click.IntRange(min=1), help='Number of days')
@with_appcontext
def materialize_cli(start, days):
    """Create the working-hour slots for each weekday in the range."""
    try:
        first_day = parse_date(start)
    except ServiceError as e:
        raise click.ClickException(e.message)

    created = 0
    for offset in range(days):
        day = first_day + timedelta(days=offset)
        count = calendar_service.ensure_day_materialized(day)
        if count:
            click.echo(f"PASS {day}: {count} slots created")
        created += count

    click.echo(f"Done. {created} slots created.")


@click.group('parts')
def parts_group():
    """Parts inventory commands."""


@parts_group.command('add')
@click.option('--name', required=True, help='Part name')
@click.option('--part-number', required=True, help='Unique part number')
@click.option('--price', required=True, help='Unit price (e.g. 19.99)')
@click.option('--stock', default=0, show_default=True, type=click.IntRange(min=0), help='Initial stock')
@click.option('--minimum', default=5, show_default=True, type=click.IntRange(min=0), help='Minimum stock level')
@click.option('--category', default=None, help='Category')
@click.option('--supplier', default=None, help='Supplier company name (created if missing)')
@with_appcontext
def add_part_cli(name, part_number, price, stock, minimum, category, supplier):
    """Add a part to the catalogue."""
    try:
        price_cents = parse_money_cents(price, field="price", required=True)
    except ServiceError as e:
        raise click.ClickException(e.message)

    if db.session.query(Part).filter_by(part_number=part_number).first():
        raise click.ClickException(f"Part number already exists: {part_number}")

    supplier_row = None
    if supplier:
        supplier_row = db.session.query(Supplier).filter_by(company_name=supplier).first()
        if not supplier_row:
            supplier_row = Supplier(company_name=supplier)
            db.session.add(supplier_row)

    part = Part(
        name=name,
        part_number=part_number,
        category=category,
        price_cents=price_cents,
        stock_quantity=stock,
        minimum_stock_level=minimum,
        supplier=supplier_row,
    )
    db.session.add(part)
    db.session.commit()
    click.echo(f"PASS Created part {part.name} (ID: {part.id}, stock: {part.stock_quantity})")


@parts_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """List parts at or below their minimum stock level."""
    parts = parts_service.get_low_stock_parts()
    if not parts:
        click.echo("No low-stock parts.")
        return
    for part in parts:
        click.echo(f"{part.part_number:<15} {part.name:<30} stock={part.stock_quantity} min={part.minimum_stock_level}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(calendar_group)
    app.cli.add_command(parts_group)
