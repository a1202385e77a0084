# Overview: Flask CLI command groups for bootstrap, inspection, and ledger audits.

# backend/storeledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Store bootstrap/inspection:
# - python -m flask stores create --name "Corner Shop" --slug corner --plan PREMIUM
#   Create a store (tenant).
# - python -m flask stores list
#   List all stores with plan and active status.
#
# Ledger audits:
# - python -m flask ledger audit [--store-id 1]
#   Check debt balances and that stock counts agree with the stock log.

import click
from flask.cli import with_appcontext
from sqlalchemy import func

from .extensions import db
from .models import Debt, Product, Store, StockMutation
from .models.customers import DEBT_ACTIVE, DEBT_PAID
from .models.tenancy import PLAN_PREMIUM, PLAN_STANDARD


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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

    click.echo("PASS Database reset complete. Run 'python -m flask stores create' to add a store.")


# =============================================================================
# STORE COMMANDS
# =============================================================================

@click.group('stores')
def stores_group():
    """Store (tenant) bootstrap and inspection commands."""


@stores_group.command('create')
@click.option('--name', required=True, help='Store name')
@click.option('--slug', required=True, help='Public shop slug (unique)')
@click.option('--phone', help='Contact phone')
@click.option('--plan', type=click.Choice([PLAN_STANDARD, PLAN_PREMIUM]), default=PLAN_STANDARD, show_default=True)
@with_appcontext
def create_store_cli(name, slug, phone, plan):
    """Create a new store."""
    existing = db.session.query(Store).filter_by(slug=slug).first()
    if existing:
        click.echo(f"FAIL Store with slug '{slug}' already exists")
        return

    store = Store(name=name, slug=slug, phone=phone, plan=plan, is_active=True)
    db.session.add(store)
    db.session.commit()

    click.echo(f"PASS Created store: {store.name} (ID: {store.id}, Slug: {store.slug}, Plan: {store.plan})")


@stores_group.command('list')
@with_appcontext
def list_stores_cli():
    """List all stores."""
    stores = db.session.query(Store).order_by(Store.id.asc()).all()
    if not stores:
        click.echo("No stores found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Slug':<20} {'Plan':<10} {'Active'}")
    click.echo("="*80)
    for store in stores:
        active_str = "yes" if store.is_active else "no"
        click.echo(f"{store.id:<5} {store.name:<30} {store.slug:<20} {store.plan:<10} {active_str}")
    click.echo("="*80 + "\n")


# =============================================================================
# LEDGER AUDIT
# =============================================================================

def audit_ledger(store_id: int | None = None) -> list[str]:
    """Return one message per ledger inconsistency found (empty when clean)."""
    problems = []

    debts = db.session.query(Debt)
    if store_id is not None:
        debts = debts.filter(Debt.store_id == store_id)
    for debt in debts.all():
        if debt.total_amount != debt.paid_amount + debt.remaining_amount:
            problems.append(f"debt {debt.id}: total != paid + remaining")
        if debt.remaining_amount < 0:
            problems.append(f"debt {debt.id}: negative remaining amount")
        if debt.status == DEBT_PAID and debt.remaining_amount != 0:
            problems.append(f"debt {debt.id}: paid with remaining {debt.remaining_amount}")
        if debt.status == DEBT_ACTIVE and debt.remaining_amount == 0:
            problems.append(f"debt {debt.id}: active with nothing remaining")

    latest = (
        db.session.query(StockMutation.product_id, func.max(StockMutation.id).label("last_id"))
        .group_by(StockMutation.product_id)
        .subquery()
    )
    rows = (
        db.session.query(Product, StockMutation)
        .outerjoin(latest, latest.c.product_id == Product.id)
        .outerjoin(StockMutation, StockMutation.id == latest.c.last_id)
    )
    if store_id is not None:
        rows = rows.filter(Product.store_id == store_id)
    for product, mutation in rows.all():
        if product.stock_quantity < 0:
            problems.append(f"product {product.id}: negative stock {product.stock_quantity}")
        if mutation is None:
            if product.stock_quantity != 0:
                problems.append(f"product {product.id}: stock {product.stock_quantity} with no stock log")
        elif mutation.stock_after != product.stock_quantity:
            problems.append(
                f"product {product.id}: stock {product.stock_quantity} but last log entry says {mutation.stock_after}"
            )

    return problems


@click.group('ledger')
def ledger_group():
    """Ledger consistency checks."""


@ledger_group.command('audit')
@click.option('--store-id', type=int, help='Limit the audit to one store')
@with_appcontext
def audit_cli(store_id):
    """Verify debt balances and stock counts against the stock log."""
    problems = audit_ledger(store_id)
    if not problems:
        click.echo("PASS Ledger is consistent")
        return
    for problem in problems:
        click.echo(f"FAIL {problem}")
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(ledger_group)
