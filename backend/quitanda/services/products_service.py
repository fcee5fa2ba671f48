# Overview: Service-layer operations for products; catalog reads and writes.

from __future__ import annotations

from sqlalchemy import or_

from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Category, Product, Supplier
from .audit_service import append_audit_event
from .concurrency import run_with_retry
from .stock_ledger import credit_stock


def get_product(session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def find_product_by_barcode(session, barcode: str) -> Product:
    product = session.query(Product).filter_by(barcode=barcode).first()
    if product is None:
        raise NotFoundError("Product", barcode)
    return product


def _check_references(session, patch: dict) -> None:
    if patch.get("category_id") is not None and session.get(Category, patch["category_id"]) is None:
        raise NotFoundError("Category", patch["category_id"])
    if patch.get("supplier_id") is not None and session.get(Supplier, patch["supplier_id"]) is None:
        raise NotFoundError("Supplier", patch["supplier_id"])


def _check_barcode_unique(session, barcode: str | None, exclude_id: int | None = None) -> None:
    if not barcode:
        return
    q = session.query(Product.id).filter(Product.barcode == barcode)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Barcode already in use: {barcode}")


def create_product(session, patch: dict, *, user_id: int | None = None) -> Product:
    """
    Create a product.

    An initial ``quantity`` is booked as an ENTRY movement so the stock ledger
    explains the opening balance like any other change.
    """
    patch = dict(patch)
    initial_quantity = patch.pop("quantity", None) or 0
    if initial_quantity < 0:
        raise ValidationError("quantity must be >= 0")

    def _op():
        _check_references(session, patch)
        _check_barcode_unique(session, patch.get("barcode"))

        product = Product(quantity=0, **patch)
        session.add(product)
        session.flush()

        if initial_quantity > 0:
            credit_stock(
                session,
                product_id=product.id,
                quantity=initial_quantity,
                reason="Initial stock",
                unit_price_cents=product.cost_price_cents,
                reference_type="product",
                reference_id=product.id,
                user_id=user_id,
            )

        append_audit_event(
            session,
            event_type="product.created",
            entity_type="product",
            entity_id=product.id,
            actor_user_id=user_id,
            payload={"name": product.name, "price_cents": product.price_cents},
        )
        session.commit()
        return product

    return run_with_retry(session, _op)


def update_product(session, product_id: int, patch: dict, *, user_id: int | None = None) -> Product:
    """Update catalog fields. Stock is never changed here (use the stock ledger)."""
    if "quantity" in patch:
        raise ValidationError("quantity can only change through stock movements")

    def _op():
        product = get_product(session, product_id)
        _check_references(session, patch)
        _check_barcode_unique(session, patch.get("barcode"), exclude_id=product.id)

        for key, value in patch.items():
            setattr(product, key, value)

        append_audit_event(
            session,
            event_type="product.updated",
            entity_type="product",
            entity_id=product.id,
            actor_user_id=user_id,
            payload={"fields": sorted(patch.keys())},
        )
        session.commit()
        return product

    return run_with_retry(session, _op)


def list_products(
    session,
    *,
    active_only: bool = False,
    category_id: int | None = None,
    search: str | None = None,
    limit: int = 50,
) -> list[Product]:
    q = session.query(Product)
    if active_only:
        q = q.filter(Product.is_active.is_(True))
    if category_id is not None:
        q = q.filter(Product.category_id == category_id)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(Product.name.ilike(pattern), Product.barcode == search.strip()))
    return q.order_by(Product.name.asc(), Product.id.asc()).limit(limit).all()


def list_low_stock(session) -> list[Product]:
    """Active products at or below their minimum quantity, emptiest first."""
    return (
        session.query(Product)
        .filter(Product.is_active.is_(True), Product.quantity <= Product.min_quantity)
        .order_by(Product.quantity.asc(), Product.id.asc())
        .all()
    )


def create_category(session, patch: dict) -> Category:
    if session.query(Category.id).filter(Category.name == patch["name"]).first() is not None:
        raise ConflictError(f"Category already exists: {patch['name']}")
    category = Category(**patch)
    session.add(category)
    session.commit()
    return category


def list_categories(session) -> list[Category]:
    return session.query(Category).order_by(Category.name.asc()).all()


def create_supplier(session, patch: dict) -> Supplier:
    for key in ("email", "document_number"):
        value = patch.get(key)
        if value and session.query(Supplier.id).filter(getattr(Supplier, key) == value).first() is not None:
            raise ConflictError(f"Supplier with {key} {value} already exists")
    supplier = Supplier(**patch)
    session.add(supplier)
    session.commit()
    return supplier


def list_suppliers(session) -> list[Supplier]:
    return session.query(Supplier).order_by(Supplier.name.asc()).all()
