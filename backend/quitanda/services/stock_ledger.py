# Overview: Stock ledger; keeps Product.quantity and StockMovement rows in step.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..models import Product, StockMovement
from ..models.inventory import (
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_ENTRY,
    MOVEMENT_EXIT,
    INBOUND_TYPES,
    OUTBOUND_TYPES,
)
from .audit_service import append_audit_event
from .concurrency import lock_for_update, run_with_retry
"""
Stock Ledger Invariants (authoritative)

- Product.quantity is never negative.
- Every change of Product.quantity appends exactly one StockMovement in the
  same DB transaction; movements are never updated or deleted.
- Decrements are a single conditional UPDATE
      UPDATE products SET quantity = quantity - :q WHERE id = :id AND quantity >= :q
  so a stale read can never oversell. Zero affected rows = insufficient stock.
- Functions here never commit; the calling workflow owns the transaction.
- Low stock (quantity <= min_quantity) is only logged, it never blocks.
"""


def _get_product(session, product_id: int, *, lock: bool = False) -> Product:
    query = session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def _require_positive(quantity: int) -> None:
    if quantity is None or quantity <= 0:
        raise ValidationError("quantity must be > 0")


def _total_price(unit_price_cents: int | None, quantity: int, total_price_cents: int | None) -> int | None:
    if total_price_cents is not None:
        return total_price_cents
    if unit_price_cents is None:
        return None
    return unit_price_cents * quantity


def _notify_low_stock(product: Product) -> None:
    if product.is_low_stock:
        current_app.logger.warning(
            "Low stock: product %s (%s) at %s, minimum %s",
            product.id, product.name, product.quantity, product.min_quantity,
        )


def _append_movement(
    session,
    product: Product,
    *,
    movement_type: str,
    quantity: int,
    quantity_before: int,
    reason: str | None,
    unit_price_cents: int | None,
    total_price_cents: int | None,
    reference_type: str | None,
    reference_id: int | None,
    user_id: int | None,
) -> StockMovement:
    movement = StockMovement(
        product_id=product.id,
        type=movement_type,
        quantity=quantity,
        quantity_before=quantity_before,
        quantity_after=product.quantity,
        unit_price_cents=unit_price_cents,
        total_price_cents=_total_price(unit_price_cents, quantity, total_price_cents),
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
        user_id=user_id,
    )
    session.add(movement)
    session.flush()
    return movement


def debit_stock(
    session,
    *,
    product_id: int,
    quantity: int,
    reason: str | None = None,
    movement_type: str = MOVEMENT_EXIT,
    unit_price_cents: int | None = None,
    total_price_cents: int | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    user_id: int | None = None,
) -> StockMovement:
    """Remove ``quantity`` units and record an EXIT (or LOSS) movement."""
    if movement_type not in OUTBOUND_TYPES:
        raise ValidationError(f"{movement_type} is not an outbound movement")
    _require_positive(quantity)
    product = _get_product(session, product_id)

    result = session.execute(
        update(Product)
        .where(Product.id == product_id, Product.quantity >= quantity)
        .values(quantity=Product.quantity - quantity, version_id=Product.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    session.refresh(product)
    if result.rowcount == 0:
        raise InsufficientStockError(product.id, product.name, product.quantity, quantity)

    movement = _append_movement(
        session,
        product,
        movement_type=movement_type,
        quantity=quantity,
        quantity_before=product.quantity + quantity,
        reason=reason,
        unit_price_cents=unit_price_cents,
        total_price_cents=total_price_cents,
        reference_type=reference_type,
        reference_id=reference_id,
        user_id=user_id,
    )
    _notify_low_stock(product)
    return movement


def credit_stock(
    session,
    *,
    product_id: int,
    quantity: int,
    reason: str | None = None,
    movement_type: str = MOVEMENT_ENTRY,
    unit_price_cents: int | None = None,
    total_price_cents: int | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    user_id: int | None = None,
) -> StockMovement:
    """Add ``quantity`` units (no upper bound) and record an ENTRY or RETURN movement."""
    if movement_type not in INBOUND_TYPES:
        raise ValidationError(f"{movement_type} is not an inbound movement")
    _require_positive(quantity)
    product = _get_product(session, product_id)

    session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(quantity=Product.quantity + quantity, version_id=Product.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    session.refresh(product)

    return _append_movement(
        session,
        product,
        movement_type=movement_type,
        quantity=quantity,
        quantity_before=product.quantity - quantity,
        reason=reason,
        unit_price_cents=unit_price_cents,
        total_price_cents=total_price_cents,
        reference_type=reference_type,
        reference_id=reference_id,
        user_id=user_id,
    )


def adjust_stock(
    session,
    *,
    product_id: int,
    counted_quantity: int,
    reason: str | None = None,
    user_id: int | None = None,
) -> StockMovement:
    """
    Set quantity to a physical count and record an ADJUSTMENT movement.

    The movement quantity is the absolute difference; the direction is in
    quantity_before/quantity_after. Concurrent writers are caught by the
    product version counter (StaleDataError).
    """
    if counted_quantity is None or counted_quantity < 0:
        raise ValidationError("counted quantity must be >= 0")
    product = _get_product(session, product_id, lock=True)

    before = product.quantity
    difference = counted_quantity - before
    if difference == 0:
        raise ValidationError("counted quantity equals current stock; nothing to adjust")

    product.quantity = counted_quantity
    session.flush()

    movement = _append_movement(
        session,
        product,
        movement_type=MOVEMENT_ADJUSTMENT,
        quantity=abs(difference),
        quantity_before=before,
        reason=reason,
        unit_price_cents=None,
        total_price_cents=None,
        reference_type=None,
        reference_id=None,
        user_id=user_id,
    )
    _notify_low_stock(product)
    return movement


def record_movement(
    session,
    *,
    product_id: int,
    movement_type: str,
    quantity: int,
    reason: str | None = None,
    unit_price_cents: int | None = None,
    user_id: int | None = None,
    attempts: int = 3,
) -> StockMovement:
    """
    Record a manual stock movement (receiving, loss, count, ...) and commit.

    For ADJUSTMENT, ``quantity`` is the counted stock level.
    """
    def _op():
        if movement_type in INBOUND_TYPES:
            movement = credit_stock(
                session,
                product_id=product_id,
                quantity=quantity,
                reason=reason,
                movement_type=movement_type,
                unit_price_cents=unit_price_cents,
                user_id=user_id,
            )
        elif movement_type in OUTBOUND_TYPES:
            movement = debit_stock(
                session,
                product_id=product_id,
                quantity=quantity,
                reason=reason,
                movement_type=movement_type,
                unit_price_cents=unit_price_cents,
                user_id=user_id,
            )
        elif movement_type == MOVEMENT_ADJUSTMENT:
            movement = adjust_stock(
                session,
                product_id=product_id,
                counted_quantity=quantity,
                reason=reason,
                user_id=user_id,
            )
        else:
            raise ValidationError(f"Unknown movement type: {movement_type}")

        append_audit_event(
            session,
            event_type="stock.movement_recorded",
            entity_type="stock_movement",
            entity_id=movement.id,
            actor_user_id=user_id,
            note=reason,
            payload={
                "product_id": product_id,
                "type": movement_type,
                "quantity": movement.quantity,
                "quantity_after": movement.quantity_after,
            },
        )
        session.commit()
        return movement

    return run_with_retry(session, _op, attempts=attempts)


def list_movements(
    session,
    *,
    product_id: int | None = None,
    movement_type: str | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    limit: int = 50,
) -> list[StockMovement]:
    q = session.query(StockMovement)
    if product_id is not None:
        q = q.filter(StockMovement.product_id == product_id)
    if movement_type:
        q = q.filter(StockMovement.type == movement_type)
    if reference_type:
        q = q.filter(StockMovement.reference_type == reference_type)
    if reference_id is not None:
        q = q.filter(StockMovement.reference_id == reference_id)
    return q.order_by(StockMovement.id.desc()).limit(limit).all()
