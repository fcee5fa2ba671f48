"""
Sales Service - create and cancel sales as single units of work.

CreateSale:
    validate client -> validate products and price lines -> compute totals ->
    check credit -> persist sale + items -> debit stock per line (EXIT) ->
    extend client credit (FIADO) -> audit -> commit

CancelSale:
    lock sale -> refuse if CANCELLED -> credit stock per line (RETURN) ->
    release client credit (FIADO, floored at 0) -> mark CANCELLED -> audit -> commit

Every step runs inside one DB transaction; any failure rolls everything back,
so a sale either exists with all of its stock and credit effects or not at all.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..errors import (
    AlreadyCancelledError,
    CreditSaleRequiresClientError,
    InactiveProductError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from ..models import Product, Sale, SaleItem
from ..models.inventory import MOVEMENT_EXIT, MOVEMENT_RETURN
from ..models.sales import PAYMENT_FIADO, STATUS_CANCELLED, STATUS_PAID, STATUS_PENDING
from ..time_utils import utcnow
from ..validation import SaleRequest
from .audit_service import append_audit_event
from .concurrency import lock_for_update, run_with_retry
from .credit_ledger import ensure_credit_available, extend_credit, get_client, release_credit
from .stock_ledger import credit_stock, debit_stock


SALE_REFERENCE = "sale"


def _price_lines(session, request: SaleRequest) -> tuple[list[dict], int]:
    """Resolve products, check availability and compute line totals in supplied order."""
    lines: list[dict] = []
    subtotal = 0
    requested: dict[int, int] = {}

    for line in request.items:
        if line.quantity is None or line.quantity <= 0:
            raise ValidationError(
                "Line quantity must be > 0",
                details={"product_id": line.product_id, "quantity": line.quantity},
            )
        if line.discount_cents is None or line.discount_cents < 0:
            raise ValidationError(
                "Line discount must be >= 0",
                details={"product_id": line.product_id, "discount_cents": line.discount_cents},
            )

        product = session.get(Product, line.product_id)
        if product is None:
            raise NotFoundError("Product", line.product_id)
        if not product.is_active:
            raise InactiveProductError(product.id, product.name)

        # The same product may appear on several lines
        requested[product.id] = requested.get(product.id, 0) + line.quantity
        if product.quantity < requested[product.id]:
            raise InsufficientStockError(product.id, product.name, product.quantity, requested[product.id])

        gross = product.price_cents * line.quantity
        if line.discount_cents > gross:
            raise ValidationError(
                "Line discount cannot exceed the line amount",
                details={"product_id": product.id, "line_amount_cents": gross, "discount_cents": line.discount_cents},
            )
        line_total = gross - line.discount_cents
        subtotal += line_total

        lines.append({
            "product_id": product.id,
            "product_name": product.name,
            "quantity": line.quantity,
            "unit_price_cents": product.price_cents,
            "discount_cents": line.discount_cents,
            "total_cents": line_total,
        })

    return lines, subtotal


def create_sale(session, request: SaleRequest, *, attempts: int = 3) -> Sale:
    """
    Create a sale, debit stock for each line and, for FIADO, charge the client.

    Raises NotFoundError, InactiveProductError, InsufficientStockError,
    CreditLimitExceededError, CreditSaleRequiresClientError or ValidationError.
    """
    if not request.items:
        raise ValidationError("A sale requires at least one item")

    is_credit = request.payment_method == PAYMENT_FIADO

    def _op():
        client = None
        if request.client_id is not None:
            client = get_client(session, request.client_id)
        if is_credit and client is None:
            raise CreditSaleRequiresClientError()

        lines, subtotal = _price_lines(session, request)

        if request.discount_cents < 0:
            raise ValidationError("discount_cents must be >= 0")
        if request.discount_cents > subtotal:
            raise ValidationError(
                "Discount cannot exceed subtotal",
                details={"subtotal_cents": subtotal, "discount_cents": request.discount_cents},
            )
        total = subtotal - request.discount_cents

        # Fail before stock is touched; extend_credit re-checks atomically below
        if is_credit:
            ensure_credit_available(client, total)

        sale = Sale(
            client_id=request.client_id,
            user_id=request.user_id,
            subtotal_cents=subtotal,
            discount_cents=request.discount_cents,
            total_cents=total,
            payment_method=request.payment_method,
            payment_status=STATUS_PENDING if is_credit else STATUS_PAID,
            notes=request.notes,
        )
        if not is_credit:
            sale.paid_at = utcnow()
        session.add(sale)

        for number, line in enumerate(lines, start=1):
            sale.items.append(SaleItem(line_number=number, **line))
        session.flush()

        for item in sale.items:
            debit_stock(
                session,
                product_id=item.product_id,
                quantity=item.quantity,
                reason=f"Sale #{sale.id}",
                movement_type=MOVEMENT_EXIT,
                unit_price_cents=item.unit_price_cents,
                total_price_cents=item.total_cents,
                reference_type=SALE_REFERENCE,
                reference_id=sale.id,
                user_id=sale.user_id,
            )

        if is_credit:
            extend_credit(session, client.id, total)

        append_audit_event(
            session,
            event_type="sale.created",
            entity_type="sale",
            entity_id=sale.id,
            actor_user_id=sale.user_id,
            payload={
                "client_id": sale.client_id,
                "payment_method": sale.payment_method,
                "total_cents": sale.total_cents,
                "items": len(lines),
            },
        )

        session.commit()
        current_app.logger.info(
            "Sale %s created: %s items, total %s cents, %s",
            sale.id, len(lines), sale.total_cents, sale.payment_method,
        )
        return sale

    return run_with_retry(session, _op, attempts=attempts)


def cancel_sale(
    session,
    sale_id: int,
    *,
    user_id: int | None = None,
    reason: str | None = None,
    attempts: int = 3,
) -> Sale:
    """
    Cancel a sale and reverse its stock and credit effects.

    Cancelling twice raises AlreadyCancelledError; the second call changes nothing.
    """
    def _op():
        sale = lock_for_update(session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise NotFoundError("Sale", sale_id)
        if sale.is_cancelled:
            raise AlreadyCancelledError(sale.id)

        for item in sale.items:
            credit_stock(
                session,
                product_id=item.product_id,
                quantity=item.quantity,
                reason=f"Cancellation of sale #{sale.id}",
                movement_type=MOVEMENT_RETURN,
                unit_price_cents=item.unit_price_cents,
                total_price_cents=item.total_cents,
                reference_type=SALE_REFERENCE,
                reference_id=sale.id,
                user_id=user_id,
            )

        if sale.client_id is not None and sale.is_credit:
            release_credit(session, sale.client_id, sale.total_cents)

        sale.payment_status = STATUS_CANCELLED
        sale.cancelled_at = utcnow()
        sale.cancelled_by_user_id = user_id
        sale.cancel_reason = reason

        append_audit_event(
            session,
            event_type="sale.cancelled",
            entity_type="sale",
            entity_id=sale.id,
            actor_user_id=user_id,
            occurred_at=sale.cancelled_at,
            note=reason,
            payload={"client_id": sale.client_id, "total_cents": sale.total_cents},
        )

        session.commit()
        current_app.logger.info("Sale %s cancelled", sale.id)
        return sale

    return run_with_retry(session, _op, attempts=attempts)


def mark_sale_paid(session, sale_id: int, *, user_id: int | None = None, attempts: int = 3) -> Sale:
    """PENDING -> PAID. Already PAID sales are returned unchanged."""
    def _op():
        sale = lock_for_update(session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise NotFoundError("Sale", sale_id)
        if sale.is_cancelled:
            raise AlreadyCancelledError(sale.id)
        if sale.payment_status == STATUS_PAID:
            return sale

        sale.payment_status = STATUS_PAID
        sale.paid_at = utcnow()

        append_audit_event(
            session,
            event_type="sale.paid",
            entity_type="sale",
            entity_id=sale.id,
            actor_user_id=user_id,
            occurred_at=sale.paid_at,
        )
        session.commit()
        return sale

    return run_with_retry(session, _op, attempts=attempts)


def get_sale(session, sale_id: int) -> Sale:
    sale = session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale", sale_id)
    return sale


def list_sales(
    session,
    *,
    client_id: int | None = None,
    status: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 50,
) -> list[Sale]:
    """Most recent first. ``start``/``end`` are inclusive bounds on created_at."""
    q = session.query(Sale)
    if client_id is not None:
        q = q.filter(Sale.client_id == client_id)
    if status:
        q = q.filter(Sale.payment_status == status)
    if start is not None:
        q = q.filter(Sale.created_at >= start)
    if end is not None:
        q = q.filter(Sale.created_at <= end)
    return q.order_by(Sale.id.desc()).limit(limit).all()
