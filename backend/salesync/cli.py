# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/salesync/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username admin --email admin@salesync.local --password "Password123!" --role admin
# - python -m flask users deactivate --username someone
#   Disable the login and revoke its sessions.
#
# Catalog:
# - python -m flask products list
# - python -m flask products create --name "USB Cable" --price-cents 1500 --cost-cents 900 --qty 40 --category Accessories
#   Opening stock is recorded as an "in" movement by --recorded-by (default: first admin).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, Product, User
from .models.auth import ROLE_ADMIN, VALID_ROLES
from .models.inventory import MOVEMENT_IN
from .services.auth_service import PasswordValidationError, create_user
from .services.ledger_service import record_movement
from .services.session_service import revoke_all_user_sessions


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is up to date.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask users create' to add an admin.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), prompt=True, help='Role')
@click.option('--first-name', default='', help='First name')
@click.option('--last-name', default='', help='Last name')
@with_appcontext
def create_user_cli(username, email, password, role, first_name, last_name):
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
        user = create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            first_name=first_name,
            last_name=last_name,
        )
        click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")
        click.echo(f"     User ID: {user.id}")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<10} {'Active'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<10} {active_str}")

    click.echo("="*90 + "\n")


@users_group.command('deactivate')
@click.option('--username', prompt=True, help='Username')
@with_appcontext
def deactivate_user_cli(username):
    """Disable a login and revoke every session it holds."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    user.is_active = False
    revoked = revoke_all_user_sessions(user.id, reason="User deactivated")
    click.echo(f"PASS Deactivated {username}; revoked {revoked} session(s)")


@click.group('products')
def products_group():
    """Catalog bootstrap commands."""


@products_group.command('create')
@click.option('--name', prompt=True, help='Product name')
@click.option('--price-cents', type=int, prompt=True, help='Selling price in cents')
@click.option('--cost-cents', type=int, prompt=True, help='Cost price in cents')
@click.option('--qty', type=int, default=0, show_default=True, help='Opening stock')
@click.option('--min-stock', type=int, default=10, show_default=True, help='Minimum stock level')
@click.option('--sku', default=None, help='Optional SKU')
@click.option('--category', default=None, help='Category name (created if missing)')
@click.option('--recorded-by', default=None, help='Username recorded on the opening stock movement (default: first admin)')
@with_appcontext
def create_product_cli(name, price_cents, cost_cents, qty, min_stock, sku, category, recorded_by):
    """
    Create a product with opening stock.

    Opening stock is written to the ledger as an "in" movement, so a
    --qty above zero needs a user to record it against.
    """
    if price_cents < 0 or cost_cents < 0 or qty < 0:
        click.echo("FAIL Prices and quantity must be non-negative")
        return

    recorder = None
    if qty > 0:
        if recorded_by:
            recorder = db.session.query(User).filter_by(username=recorded_by).first()
        else:
            recorder = (
                db.session.query(User)
                .filter_by(role=ROLE_ADMIN, is_active=True)
                .order_by(User.id)
                .first()
            )
        if not recorder:
            click.echo("FAIL Opening stock needs a recording user; create an admin or pass --recorded-by")
            return

    category_row = None
    if category:
        category_row = db.session.query(Category).filter_by(name=category).first()
        if not category_row:
            category_row = Category(name=category)
            db.session.add(category_row)

    product = Product(
        name=name,
        sku=sku,
        category=category_row,
        price_cents=price_cents,
        cost_price_cents=cost_cents,
        qty_in_stock=qty,
        min_stock_level=min_stock,
    )
    db.session.add(product)
    db.session.flush()

    if qty > 0:
        record_movement(
            product=product,
            movement_type=MOVEMENT_IN,
            quantity=qty,
            reason="Initial stock",
            recorded_by_user_id=recorder.id,
        )
    db.session.commit()

    click.echo(f"PASS Created product {product.id}: {product.name} (stock {product.qty_in_stock})")


@products_group.command('list')
@with_appcontext
def list_products():
    """List products with stock level and approved totals."""
    products = db.session.query(Product).order_by(Product.id).all()

    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Name':<30} {'Price':>10} {'Stock':>7} {'Level':<14} {'Sales':>12} {'Profit':>12}")
    click.echo("="*100)

    for p in products:
        click.echo(
            f"{p.id:<5} {p.name[:30]:<30} {p.price_cents:>10} {p.qty_in_stock:>7} {p.stock_level:<14} "
            f"{p.total_sales_cents:>12} {p.total_profit_cents:>12}"
        )

    click.echo("="*100 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
