# Overview: Flask CLI command groups for bootstrap, catalog seeding, and reconciliation inspection.

# backend/rxledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to rxledger (PowerShell: $env:FLASK_APP="rxledger").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog add-product --tenant-id 1 --actor-id 1 --name "Amoxicillin 500mg" \
#       --unit-type Capsules --units-per-pack 10 --price-per-pack 1500 --packs 5
#   Register a product with opening stock (audited as a `create` entry).
#
# Reconciliation:
# - python -m flask reconciliations list --tenant-id 1 [--status pending]
#   List reconciliation cases for a pharmacy.
# - python -m flask reconciliations stats --tenant-id 1
#   Case counts and summed deficits per status.

import click
from flask.cli import with_appcontext

from .extensions import db
from .exceptions import LedgerError
from .services import products_service, reconciliation_service
from .stock_record import UNIT_TYPES


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    from . import models  # noqa: F401
    db.create_all()
    click.echo("PASS Database tables created")


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
    click.echo("PASS Database reset complete")


@click.group('catalog')
def catalog_group():
    """Catalog seeding commands."""


@catalog_group.command('add-product')
@click.option('--tenant-id', type=int, required=True)
@click.option('--actor-id', type=int, required=True, help='User recorded as creator')
@click.option('--name', required=True)
@click.option('--sku', default=None)
@click.option('--unit-type', type=click.Choice(UNIT_TYPES), default='Tablets')
@click.option('--units-per-pack', type=int, default=1)
@click.option('--price-per-pack', 'price_per_pack', type=int, default=0, help='Selling price per pack, in cents')
@click.option('--cost-per-pack', 'cost_per_pack', type=int, default=0, help='Cost per pack, in cents')
@click.option('--packs', type=int, default=0, help='Opening full packs')
@click.option('--units', type=int, default=0, help='Opening loose units')
@with_appcontext
def add_product(tenant_id, actor_id, name, sku, unit_type, units_per_pack, price_per_pack, cost_per_pack, packs, units):
    """Register a product with opening stock."""
    try:
        product = products_service.create_product(
            tenant_id=tenant_id,
            actor_id=actor_id,
            data={
                "name": name,
                "sku": sku,
                "unit_type": unit_type,
                "units_per_pack": units_per_pack,
                "selling_price_per_pack_cents": price_per_pack,
                "cost_per_pack_cents": cost_per_pack,
                "full_packs": packs,
                "loose_units": units,
            },
        )
    except LedgerError as e:
        raise click.ClickException(e.message)

    click.echo(
        f"PASS Created product {product.name} (ID: {product.id}) "
        f"stock: {product.full_packs} packs + {product.loose_units} loose = {product.total_units} units"
    )


@click.group('reconciliations')
def reconciliations_group():
    """Reconciliation ledger inspection."""


@reconciliations_group.command('list')
@click.option('--tenant-id', type=int, required=True)
@click.option('--status', default=None, help='pending, investigating, resolved or adjusted')
@with_appcontext
def list_reconciliations(tenant_id, status):
    """List reconciliation cases."""
    try:
        cases = reconciliation_service.list_cases(tenant_id, status)
    except LedgerError as e:
        raise click.ClickException(e.message)

    if not cases:
        click.echo("No reconciliation cases found")
        return

    click.echo(f"\n{'ID':<6} {'Status':<14} {'Product':<30} {'Sold':>6} {'Avail':>6} {'Deficit':>8}")
    click.echo("-" * 76)
    for case in cases:
        click.echo(
            f"{case.id:<6} {case.status:<14} {case.product_name[:30]:<30} "
            f"{case.quantity_sold:>6} {case.available_stock:>6} {case.deficit:>8}"
        )


@reconciliations_group.command('stats')
@click.option('--tenant-id', type=int, required=True)
@with_appcontext
def reconciliation_stats(tenant_id):
    """Case counts and summed deficits per status."""
    stats = reconciliation_service.get_stats(tenant_id)
    for status, row in stats["by_status"].items():
        click.echo(f"{status:<14} cases={row['count']:<5} deficit={row['total_deficit']}")
    click.echo(f"TOTAL          cases={stats['total_cases']:<5} deficit={stats['total_deficit']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(reconciliations_group)
