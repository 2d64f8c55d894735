# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
#
# System bootstrap/repair:
# - flask --app storefront system init-db
#   Create any missing tables (development; production uses `flask db upgrade`).
# - flask --app storefront system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask --app storefront system seed
#   Idempotent: default admin/customer users and a few sample products.
#
# Users:
# - flask --app storefront users list
# - flask --app storefront users create --email a@b.c --password "Password123!" --role admin
# - flask --app storefront users set-role --email a@b.c --role customer
#
# Inventory:
# - flask --app storefront inventory low-stock --threshold 5
#
# Audit:
# - flask --app storefront audit recent --action checkout --limit 20

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import StorefrontError
from .extensions import db
from .models import Product, User, VALID_ROLES
from .response import Pagination
from .services import audit_service, auth_service, inventory_service


DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = [
    ("admin@storefront.local", "admin"),
    ("customer@storefront.local", "customer"),
]

SAMPLE_PRODUCTS = [
    ("Espresso Beans 1kg", "Dark roast, whole bean", 2490, 40),
    ("Pour-over Kettle", "Gooseneck, 1L", 4900, 12),
    ("Ceramic Mug", "350ml, dishwasher safe", 1200, 3),
    ("Paper Filters (100)", None, 550, 0),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


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

    click.echo("PASS Database reset complete. Run 'flask --app storefront system seed' to add sample data.")


@system_group.command('seed')
@with_appcontext
def seed():
    """
    Create default users and sample products.

    Users: admin@storefront.local (admin), customer@storefront.local (customer)
    Password for both: "Password123!"

    SECURITY: Change passwords immediately outside development!
    """
    db.create_all()

    for email, role in DEFAULT_USERS:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        auth_service.create_user(email, DEFAULT_PASSWORD, role)
        click.echo(f"PASS Created user: {email} with role '{role}'")

    if db.session.query(Product.id).first():
        click.echo("WARN  Products already present, skipping sample catalog.")
    else:
        for name, description, price, stock in SAMPLE_PRODUCTS:
            db.session.add(Product(name=name, description=description, price=price, stock=stock))
        db.session.commit()
        click.echo(f"PASS Created {len(SAMPLE_PRODUCTS)} sample products")

    click.echo("\nDefault Credentials (CHANGE OUTSIDE DEVELOPMENT!):")
    for email, role in DEFAULT_USERS:
        click.echo(f"   {role:<9} -> {email} / {DEFAULT_PASSWORD}")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), default='customer', show_default=True, help='Role')
@with_appcontext
def create_user_cli(email, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = auth_service.create_user(email, password, role)
    except StorefrontError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user {user.email} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.created_at, User.email).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<38} {'Email':<35} {'Role'}")
    click.echo("=" * 90)
    for user in users:
        click.echo(f"{user.id:<38} {user.email:<35} {user.role}")
    click.echo("=" * 90)
    click.echo(f"Total: {len(users)} user(s)\n")


@users_group.command('set-role')
@click.option('--email', required=True, help='Email address')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), required=True, help='Role')
@with_appcontext
def set_role_cli(email, role):
    """Change a user's role. Existing tokens keep their old role until they expire."""
    user = db.session.query(User).filter_by(email=auth_service.normalize_email(email)).first()
    if not user:
        raise click.ClickException(f"User '{email}' not found")

    user = auth_service.set_role(user.id, role)
    click.echo(f"PASS {user.email} now has role '{user.role}'")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@click.option('--threshold', type=int, default=None, help='Stock at or below this value (default: LOW_STOCK_THRESHOLD)')
@click.option('--limit', type=int, default=100, show_default=True)
@with_appcontext
def low_stock(threshold, limit):
    """List products whose stock is at or below the threshold."""
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]

    products, total = inventory_service.list_low_stock(threshold, Pagination(page=1, per_page=limit))
    if not products:
        click.echo(f"No products at or below {threshold}.")
        return

    click.echo(f"{'Stock':>6}  {'Product ID':<38} Name")
    for product in products:
        click.echo(f"{product.stock:>6}  {product.id:<38} {product.name}")
    click.echo(f"Total: {total} product(s) at or below {threshold}")


@click.group('audit')
def audit_group():
    """Audit trail inspection."""


@audit_group.command('recent')
@click.option('--user-id', default=None, help='Only rows for this user id')
@click.option('--action', default=None, help='Only rows with this action, e.g. checkout')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def recent_audit(user_id, action, limit):
    """Show the most recent audit rows."""
    entries = audit_service.list_audit_logs(user_id=user_id, action=action, limit=limit)
    if not entries:
        click.echo("No audit entries.")
        return

    for entry in entries:
        row = entry.to_dict()
        click.echo(f"{row['created_at']}  {row['action']:<20} user={row['user_id'] or '-'} {row['metadata'] or ''}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(audit_group)
