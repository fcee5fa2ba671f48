# Overview: Flask CLI command groups for schema bootstrap and demo data.

# backend/quitanda/cli.py
# Commands (run from the backend directory, FLASK_APP=quitanda):
# - flask system init-db
#   Create all tables that do not exist yet.
# - flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask system seed-demo
#   Create a category, a few products with opening stock and a fiado client.
# - flask stock low
#   List active products at or below their minimum quantity.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, Product
from .services import clients_service, products_service


@click.group('system')
def system_group():
    """Schema bootstrap and demo data commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """Drop and recreate all tables."""
    if not yes:
        click.echo("Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("Database reset.")


DEMO_PRODUCTS = [
    # name, barcode, price_cents, cost_price_cents, quantity, min_quantity
    ("Arroz 5kg", "7890000000011", 2899, 2100, 40, 10),
    ("Feijao Carioca 1kg", "7890000000028", 899, 610, 60, 15),
    ("Cafe 500g", "7890000000035", 1790, 1250, 25, 8),
    ("Oleo de Soja 900ml", "7890000000042", 749, 520, 30, 10),
]


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Idempotently create demo catalog and a fiado client."""
    category = db.session.query(Category).filter_by(name="Mercearia").first()
    if category is None:
        category = products_service.create_category(db.session, {"name": "Mercearia"})

    created = 0
    for name, barcode, price, cost, quantity, min_quantity in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(barcode=barcode).first():
            continue
        products_service.create_product(db.session, {
            "name": name,
            "barcode": barcode,
            "price_cents": price,
            "cost_price_cents": cost,
            "quantity": quantity,
            "min_quantity": min_quantity,
            "category_id": category.id,
        })
        created += 1

    if not clients_service.list_clients(db.session, limit=1):
        clients_service.create_client(db.session, {"name": "Cliente Fiado", "credit_limit_cents": 50000})

    click.echo(f"Seeded {created} products.")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('low')
@with_appcontext
def low_stock():
    """List products at or below their minimum quantity."""
    products = products_service.list_low_stock(db.session)
    if not products:
        click.echo("No products below minimum.")
        return
    for p in products:
        click.echo(f"{p.id:>5}  {p.name:<40} {p.quantity:>6} / min {p.min_quantity}")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
