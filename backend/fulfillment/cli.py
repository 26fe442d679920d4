# Overview: Flask CLI command groups for bootstrap, ledger inspection, and order decisions.

# backend/fulfillment/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the balance row.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Ledger inspection/repair:
# - python -m flask ledger balance
#   Print running income/profit totals.
# - python -m flask ledger reconcile
#   Compare totals with the ledger lines; exits 1 on mismatch.
# - python -m flask ledger revert HASH --reason "priceIsLow"
#   Revert one sale by transaction hash.
#
# Order decisions:
# - python -m flask orders accept ord_12
# - python -m flask orders decline ord_12

import click
from flask.cli import with_appcontext

from .errors import FulfillmentError
from .extensions import db
from .services import balance_service, order_service, revert_service


def _money(cents) -> str:
    return f"{(cents or 0) / 100:,.2f}"


def _fail(exc: FulfillmentError):
    click.echo(f"FAIL {exc.message} ({exc.code})", err=True)
    raise SystemExit(1)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create missing tables and the singleton balance row."""
    click.echo("START Initializing fulfillment ledger...")
    db.create_all()
    balance_service.ensure_balance()
    db.session.commit()
    click.echo("PASS Tables and balance ready.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('ledger')
def ledger_group():
    """Balance and ledger commands."""


@ledger_group.command('balance')
@with_appcontext
def show_balance():
    balance = balance_service.get_balance()
    click.echo(f"Total income: {_money(balance['total_income_cents'])}")
    click.echo(f"Real profit:  {_money(balance['real_profit_cents'])}")


@ledger_group.command('reconcile')
@with_appcontext
def reconcile_ledger():
    """Check balance totals and sale/ledger pairing without writing anything."""
    report = balance_service.reconcile()

    click.echo(
        f"Balance income {_money(report.balance_income_cents)} / ledger {_money(report.ledger_income_cents)}"
    )
    click.echo(
        f"Balance profit {_money(report.balance_profit_cents)} / ledger {_money(report.ledger_profit_cents)}"
    )
    for tx_hash in report.sales_without_ledger_line:
        click.echo(f"  sale without ledger line: {tx_hash}")
    for tx_hash in report.ledger_lines_without_sale:
        click.echo(f"  ledger line without sale: {tx_hash}")

    if not report.is_consistent:
        click.echo("FAIL Ledger is inconsistent", err=True)
        raise SystemExit(1)
    click.echo("PASS Ledger is consistent")


@ledger_group.command('revert')
@click.argument('transaction_hash')
@click.option('--reason', default=None, help='Why the sale is reverted')
@with_appcontext
def revert_cli(transaction_hash, reason):
    try:
        result = revert_service.revert_transaction(transaction_hash, reason)
    except FulfillmentError as exc:
        _fail(exc)
    restored = "stock restored" if result.stock_restored else "stock NOT restored (product missing)"
    click.echo(f"PASS Reverted {transaction_hash}: {result.quantity} x {result.product_id}, {restored}")


@click.group('orders')
def orders_group():
    """Order decision commands."""


@orders_group.command('accept')
@click.argument('order_id')
@with_appcontext
def accept_cli(order_id):
    try:
        result = order_service.accept_order(order_id)
    except FulfillmentError as exc:
        _fail(exc)
    if result.applied:
        click.echo(
            f"PASS Order {order_id} accepted: {len(result.sales)} sales, income {_money(result.total_income_cents)}"
        )
    else:
        click.echo(f"SKIP Order {order_id} already {result.status.value}")


@orders_group.command('decline')
@click.argument('order_id')
@with_appcontext
def decline_cli(order_id):
    try:
        result = order_service.decline_order(order_id)
    except FulfillmentError as exc:
        _fail(exc)
    if result.applied:
        click.echo(f"PASS Order {order_id} declined")
    else:
        click.echo(f"SKIP Order {order_id} already {result.status.value}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(orders_group)
