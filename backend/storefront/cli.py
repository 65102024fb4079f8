# Overview: Flask CLI command groups for bootstrap, user management, and catalog seeding.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--role admin]
#   List all accounts.
# - python -m flask users create --name "Admin User" --email admin@ecommerce.com --password "admin123" --role admin
#   Create an account (prompts if options are omitted). This is the supported
#   way to create admins.
#
# Catalog:
# - python -m flask catalog seed [--reset]
#   Insert the sample catalog and a default admin (admin@ecommerce.com / admin123).

import click
from decimal import Decimal
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Product, CartItem, OrderItem, ROLE_ADMIN, ROLE_USER, VALID_ROLES
from .services.auth_service import create_user, PasswordValidationError
from .validation import ConflictError, ValidationError


DEFAULT_ADMIN = {
    "name": "Admin User",
    "email": "admin@ecommerce.com",
    "password": "admin123",
}

SAMPLE_PRODUCTS = [
    {
        "name": "Wireless Bluetooth Headphones",
        "description": "Premium noise-cancelling headphones with 30-hour battery life. Crystal clear audio and comfortable design for all-day wear.",
        "price": "89.99",
        "category": "Electronics",
        "stock": 50,
        "image": "https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=500",
    },
    {
        "name": "Smart Fitness Watch",
        "description": "Track your health and fitness goals with this advanced smartwatch. Features heart rate monitoring, GPS, and sleep tracking.",
        "price": "199.99",
        "category": "Electronics",
        "stock": 30,
        "image": "https://images.unsplash.com/photo-1523275335684-37898b6baf30?w=500",
    },
    {
        "name": "Laptop Backpack",
        "description": "Water-resistant backpack with multiple compartments. Perfect for work, travel, or school with dedicated laptop sleeve.",
        "price": "49.99",
        "category": "Accessories",
        "stock": 100,
        "image": "https://images.unsplash.com/photo-1553062407-98eeb64c6a62?w=500",
    },
    {
        "name": "Portable Phone Charger",
        "description": "20000mAh power bank with fast charging capability. Charges multiple devices simultaneously.",
        "price": "34.99",
        "category": "Electronics",
        "stock": 75,
        "image": "https://images.unsplash.com/photo-1609091839311-d5365f9ff1c5?w=500",
    },
    {
        "name": "Stainless Steel Water Bottle",
        "description": "Keep drinks cold for 24 hours or hot for 12 hours. Eco-friendly and durable design.",
        "price": "24.99",
        "category": "Accessories",
        "stock": 120,
        "image": "https://images.unsplash.com/photo-1602143407151-7111542de6e8?w=500",
    },
    {
        "name": "Desk Lamp with USB Port",
        "description": "LED desk lamp with adjustable brightness and color temperature. Built-in USB charging port.",
        "price": "39.99",
        "category": "Home",
        "stock": 60,
        "image": "https://images.unsplash.com/photo-1507473885765-e6ed057f782c?w=500",
    },
    {
        "name": "Wireless Mouse",
        "description": "Ergonomic wireless mouse with precision tracking. Long battery life and comfortable grip.",
        "price": "29.99",
        "category": "Electronics",
        "stock": 85,
        "image": "https://images.unsplash.com/photo-1527814050087-3793815479db?w=500",
    },
    {
        "name": "Coffee Maker",
        "description": "Programmable coffee maker with thermal carafe. Brew perfect coffee every morning.",
        "price": "79.99",
        "category": "Home",
        "stock": 40,
        "image": "https://images.unsplash.com/photo-1517668808822-9ebb02f2a0e6?w=500",
    },
    {
        "name": "Yoga Mat",
        "description": "Non-slip exercise mat with extra cushioning. Perfect for yoga, pilates, and floor exercises.",
        "price": "34.99",
        "category": "Sports",
        "stock": 90,
        "image": "https://images.unsplash.com/photo-1601925260368-ae2f83cf8b7f?w=500",
    },
    {
        "name": "Bluetooth Speaker",
        "description": "Portable waterproof speaker with 360 degree sound. Perfect for outdoor adventures.",
        "price": "59.99",
        "category": "Electronics",
        "stock": 55,
        "image": "https://images.unsplash.com/photo-1608043152269-423dbba4e7e1?w=500",
    },
    {
        "name": "Running Shoes",
        "description": "Lightweight and breathable running shoes with superior cushioning and support.",
        "price": "119.99",
        "category": "Sports",
        "stock": 45,
        "image": "https://images.unsplash.com/photo-1542291026-7eec264c27ff?w=500",
    },
    {
        "name": "Sunglasses",
        "description": "UV protection sunglasses with polarized lenses. Stylish and protective.",
        "price": "79.99",
        "category": "Accessories",
        "stock": 70,
        "image": "https://images.unsplash.com/photo-1572635196237-14b3f281503f?w=500",
    },
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create the schema for a fresh database.

    Idempotent: existing tables are left untouched. Production deployments
    should prefer `flask db upgrade` so the migration history stays in sync.
    """
    click.echo("START Creating tables...")
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
    click.echo("BUILD  Recreating tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), default=ROLE_USER, show_default=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """
    Create a new account.

    Unlike public registration, the requested role is always honoured here.
    Password must be at least 8 characters.
    """
    try:
        user = create_user(name=name, email=email, password=password, role=role)
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users."""
    query = db.session.query(User)
    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Role':<8} {'Last login'}")
    click.echo("="*90)

    for user in users:
        last_login = user.last_login_at.isoformat(timespec="seconds") if user.last_login_at else "never"
        click.echo(f"{user.id:<5} {user.name:<25} {user.email:<35} {user.role:<8} {last_login}")

    click.echo("="*90 + "\n")


@click.group('catalog')
def catalog_group():
    """Catalog data commands."""


@catalog_group.command('seed')
@click.option('--reset', is_flag=True, help='Delete existing products before seeding')
@with_appcontext
def seed_catalog(reset):
    """
    Load the sample catalog and a default admin account.

    Without --reset, products whose name already exists are skipped, so the
    command can be re-run safely.
    """
    click.echo("START Seeding catalog...")

    if reset:
        db.session.query(CartItem).delete(synchronize_session=False)
        db.session.query(OrderItem).update({OrderItem.product_id: None}, synchronize_session=False)
        deleted = db.session.query(Product).delete(synchronize_session=False)
        db.session.commit()
        click.echo(f"DELETE  Removed {deleted} existing products")

    admin = db.session.query(User).filter_by(email=DEFAULT_ADMIN["email"]).first()
    if admin is None:
        admin = create_user(role=ROLE_ADMIN, **DEFAULT_ADMIN)
        click.echo(f"PASS Admin created: {admin.email} / {DEFAULT_ADMIN['password']}")
    else:
        click.echo(f"SKIP Admin already exists: {admin.email}")

    existing = {name for (name,) in db.session.query(Product.name).all()}
    created = 0
    for data in SAMPLE_PRODUCTS:
        if data["name"] in existing:
            continue
        db.session.add(Product(**{**data, "price": Decimal(data["price"]), "images": []}))
        created += 1
    db.session.commit()

    click.echo(f"PASS Created {created} products ({len(SAMPLE_PRODUCTS) - created} already present)")
    click.echo("\nWARN Change the default admin password before deploying!")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
