# Overview: Flask CLI command groups for bootstrap, inspection, and catalog seeding.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the default warehouse and an admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --email admin@store.local --password "Password123!" --role ADMIN
#   Create a user (prompts if options are omitted).
#
# Catalog seeding:
# - python -m flask catalog add-product --sku TSHIRT-01 --name "T-Shirt" --price-cents 1999
# - python -m flask catalog add-warehouse --code MAIN --name "Main Warehouse"

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import ServiceError
from .models import Product, User, Warehouse
from .services.auth_service import create_user


DEFAULT_ADMIN_EMAIL = "admin@store.local"
DEFAULT_ADMIN_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the storefront database.

    Creates:
    - All tables (if missing)
    - Warehouse MAIN (if no warehouse exists)
    - Admin user admin@store.local / "Password123!" (if no user exists)

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing storefront...")

    db.create_all()
    click.echo("PASS Tables ready")

    warehouse = db.session.query(Warehouse).order_by(Warehouse.id.asc()).first()
    if not warehouse:
        warehouse = Warehouse(code="MAIN", name="Main Warehouse", is_active=True)
        db.session.add(warehouse)
        db.session.commit()
        click.echo(f"PASS Created warehouse: {warehouse.code} (ID: {warehouse.id})")
    else:
        click.echo(f"PASS Using existing warehouse: {warehouse.code} (ID: {warehouse.id})")

    if not db.session.query(User).first():
        user = create_user(
            db.session,
            email=DEFAULT_ADMIN_EMAIL,
            password=DEFAULT_ADMIN_PASSWORD,
            role="SUPER_ADMIN",
            first_name="Store",
            last_name="Admin",
        )
        click.echo(f"PASS Created admin user: {user.email}")
    else:
        click.echo("PASS Users already exist, skipping admin bootstrap")

    click.echo("DONE Storefront initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)

    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return

    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.email:<32} {user.role:<12} {status}")


@users_group.command('create')
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', default='USER', show_default=True)
@click.option('--first-name', default=None)
@click.option('--last-name', default=None)
@with_appcontext
def create_user_command(email, password, role, first_name, last_name):
    try:
        user = create_user(
            db.session,
            email=email,
            password=password,
            role=role,
            first_name=first_name,
            last_name=last_name,
        )
    except ServiceError as e:
        db.session.rollback()
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role: {user.role})")


@click.group('catalog')
def catalog_group():
    """Minimal catalog seeding (catalog CRUD lives in its own service)."""


@catalog_group.command('add-product')
@click.option('--sku', required=True)
@click.option('--name', required=True)
@click.option('--price-cents', type=click.IntRange(min=0), required=True)
@click.option('--description', default=None)
@click.option('--inactive', is_flag=True, help='Create the product as inactive')
@with_appcontext
def add_product(sku, name, price_cents, description, inactive):
    if db.session.query(Product).filter_by(sku=sku).first():
        click.echo(f"FAIL SKU already exists: {sku}")
        raise SystemExit(1)

    product = Product(
        sku=sku,
        name=name,
        description=description,
        price_cents=price_cents,
        is_active=not inactive,
    )
    db.session.add(product)
    db.session.commit()
    click.echo(f"PASS Created product {product.sku} (ID: {product.id})")


@catalog_group.command('add-warehouse')
@click.option('--code', required=True)
@click.option('--name', required=True)
@with_appcontext
def add_warehouse(code, name):
    if db.session.query(Warehouse).filter_by(code=code).first():
        click.echo(f"FAIL Warehouse code already exists: {code}")
        raise SystemExit(1)

    warehouse = Warehouse(code=code, name=name, is_active=True)
    db.session.add(warehouse)
    db.session.commit()
    click.echo(f"PASS Created warehouse {warehouse.code} (ID: {warehouse.id})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
