# Overview: Flask CLI command groups for bootstrap, inspection, and ledger maintenance.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant management:
# - python -m flask tenants list
#   List all tenants.
# - python -m flask tenants create --name "Acme Shop" --slug acme
#   Create a new tenant (storefront slug must be unique).
#
# Catalog bootstrap:
# - python -m flask products create --tenant-id 1 --sku TSHIRT-01 --name "T-Shirt" --price-cents 1999 --initial-stock 25
#   Create a product; initial stock is booked as an IN movement.
#
# Ledger maintenance:
# - python -m flask ledger verify [--tenant-id 1]
#   Report products whose cached stock differs from their movement ledger.
#   Exits with status 1 when drift is found.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import LedgerError
from .models import Tenant, Product
from .models.inventory import MOVEMENT_IN
from .services import inventory_service, tenant_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables. Production deployments use 'flask db upgrade'."""
    db.create_all()
    click.echo("PASS Schema created.")


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


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants."""
    tenants = db.session.query(Tenant).order_by(Tenant.id).all()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*72)
    click.echo(f"{'ID':<5} {'Name':<30} {'Slug':<20} {'Active':<8} {'Products'}")
    click.echo("="*72)

    for tenant in tenants:
        product_count = db.session.query(Product).filter_by(tenant_id=tenant.id).count()
        active_str = "Yes" if tenant.is_active else "No"

        click.echo(f"{tenant.id:<5} {tenant.name:<30} {tenant.slug:<20} {active_str:<8} {product_count}")

    click.echo("="*72 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant display name')
@click.option('--slug', required=True, help='Storefront slug (unique)')
@with_appcontext
def create_tenant_cli(name, slug):
    """Create a new tenant."""
    slug = slug.strip().lower()
    existing = db.session.query(Tenant).filter_by(slug=slug).first()
    if existing:
        click.echo(f"FAIL Tenant with slug '{slug}' already exists")
        return

    tenant = Tenant(name=name, slug=slug, is_active=True)
    db.session.add(tenant)
    db.session.commit()

    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Slug: {tenant.slug})")


@click.group('products')
def products_group():
    """Catalog bootstrap commands."""


@products_group.command('create')
@click.option('--tenant-id', type=int, required=True)
@click.option('--sku', required=True)
@click.option('--name', required=True)
@click.option('--price-cents', type=int, required=True)
@click.option('--initial-stock', type=int, default=0, show_default=True)
@with_appcontext
def create_product_cli(tenant_id, sku, name, price_cents, initial_stock):
    """Create a product at stock 0, then book initial stock through the ledger."""
    try:
        tenant_service.find_by_id(tenant_id)
    except LedgerError as e:
        click.echo(f"FAIL {e.message}")
        return

    product = Product(tenant_id=tenant_id, sku=sku, name=name, price_cents=price_cents, stock=0)
    db.session.add(product)
    db.session.commit()

    if initial_stock > 0:
        try:
            inventory_service.create_movement(
                tenant_id=tenant_id,
                product_id=product.id,
                movement_type=MOVEMENT_IN,
                quantity=initial_stock,
                comment="Initial stock",
            )
        except LedgerError as e:
            click.echo(f"FAIL Product created but initial stock rejected: {e.message}")
            return

    click.echo(f"PASS Created product: {sku} (ID: {product.id}, Stock: {initial_stock})")


@click.group('ledger')
def ledger_group():
    """Stock ledger maintenance commands."""


@ledger_group.command('verify')
@click.option('--tenant-id', type=int, default=None, help='Limit to one tenant')
@with_appcontext
def verify_ledger_cli(tenant_id):
    """Compare every product's cached stock with SUM(IN) - SUM(OUT)."""
    drifted = inventory_service.find_inconsistent_products(tenant_id)

    if not drifted:
        click.echo("PASS Stock matches the movement ledger for every product.")
        return

    click.echo(f"FAIL {len(drifted)} product(s) drifted from the ledger:")
    click.echo(f"{'Tenant':<8} {'Product':<9} {'SKU':<20} {'Stock':<8} {'Ledger'}")
    for row in drifted:
        click.echo(
            f"{row['tenant_id']:<8} {row['product_id']:<9} {row['sku']:<20} "
            f"{row['stock']:<8} {row['ledger_balance']}"
        )
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(products_group)
    app.cli.add_command(ledger_group)
