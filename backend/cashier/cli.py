# Overview: Flask CLI command groups for bootstrap and payment gateway setup.

# backend/cashier/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to cashier (PowerShell: $env:FLASK_APP="cashier").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Idempotent demo data: one cashier, one customer, a few products.
#
# Payment gateways:
# - python -m flask gateways list
#   Show every configured gateway and whether it is ready.
# - python -m flask gateways configure midtrans --endpoint https://... --server-key KEY --enable
#   Create or update a gateway configuration.
# - python -m flask gateways set-default midtrans
#   Make a gateway (or "cash") the register default.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Customer, Product, PaymentGatewayConfig
from .services import payment_settings_service
from .services.payment_settings_service import PaymentSettingsError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate every table."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


DEMO_PRODUCTS = [
    # barcode, title, buy, sell, stock
    ("8990001000011", "Mineral Water 600ml", 250, 400, 120),
    ("8990001000028", "Instant Noodles", 220, 350, 200),
    ("8990001000035", "Ground Coffee 200g", 2800, 3900, 25),
    ("8990001000042", "Chocolate Bar", 900, 1500, 40),
]


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Create demo cashier, customer and products (skips existing rows)."""
    cashier = db.session.query(User).filter_by(email="cashier@cashier.local").first()
    if not cashier:
        cashier = User(name="Demo Cashier", email="cashier@cashier.local", is_active=True)
        db.session.add(cashier)
        click.echo("PASS Created cashier: cashier@cashier.local")
    else:
        click.echo("WARN  Cashier already exists, skipping...")

    if not db.session.query(Customer).filter_by(name="Walk-in Customer").first():
        db.session.add(Customer(name="Walk-in Customer"))
        click.echo("PASS Created customer: Walk-in Customer")

    for barcode, title, buy, sell, stock in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(barcode=barcode).first():
            click.echo(f"WARN  Product {barcode} already exists, skipping...")
            continue
        db.session.add(Product(
            barcode=barcode,
            title=title,
            buy_price_cents=buy,
            sell_price_cents=sell,
            stock=stock,
        ))
        click.echo(f"PASS Created product: {title} ({barcode})")

    db.session.commit()
    click.echo(f"\nCashier ID: {cashier.id} (send as X-Cashier-Id)")


@click.group('gateways')
def gateways_group():
    """Payment gateway configuration."""


@gateways_group.command('list')
@with_appcontext
def list_gateways():
    configs = db.session.query(PaymentGatewayConfig).order_by(PaymentGatewayConfig.gateway).all()
    default = payment_settings_service.default_gateway()

    if not configs:
        click.echo("No gateways configured.")
    else:
        click.echo("\n" + "="*70)
        click.echo(f"{'Gateway':<16} {'Enabled':<9} {'Ready':<7} {'Production':<11} {'Endpoint'}")
        click.echo("="*70)
        for config in configs:
            click.echo(
                f"{config.gateway:<16} {str(config.is_enabled):<9} {str(config.is_ready):<7} "
                f"{str(config.is_production):<11} {config.endpoint_url or '-'}"
            )
        click.echo("="*70)
    click.echo(f"Effective default: {default}\n")


@gateways_group.command('configure')
@click.argument('gateway')
@click.option('--endpoint', help='Payment creation endpoint URL')
@click.option('--server-key', help='Server key sent as a bearer token')
@click.option('--enable/--disable', default=None, help='Toggle the gateway')
@click.option('--production/--sandbox', default=None, help='Environment flag')
@with_appcontext
def configure_gateway(gateway, endpoint, server_key, enable, production):
    try:
        config = payment_settings_service.configure_gateway(
            gateway,
            endpoint_url=endpoint,
            server_key=server_key,
            is_enabled=enable,
            is_production=production,
        )
    except PaymentSettingsError as e:
        click.echo(f"FAIL {e}")
        return
    state = "ready" if config.is_ready else "not ready"
    click.echo(f"PASS Gateway {config.gateway} saved ({state})")


@gateways_group.command('set-default')
@click.argument('gateway')
@with_appcontext
def set_default_gateway(gateway):
    try:
        settings = payment_settings_service.set_default_gateway(gateway)
    except PaymentSettingsError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Default gateway set to {settings.default_gateway}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(gateways_group)
