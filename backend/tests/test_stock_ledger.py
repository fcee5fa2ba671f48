# Overview: Pytest coverage for the stock ledger.

"""
Stock Ledger Tests

Verifies:
- Every quantity change appends one movement with before/after snapshots
- Decrements are guarded by the UPDATE itself, so stale reads cannot oversell
- Manual movements (ENTRY, LOSS, ADJUSTMENT) commit with an audit event
- Catalog updates cannot touch quantity directly
"""

import pytest
from sqlalchemy import text

from quitanda.errors import InsufficientStockError, NotFoundError, ValidationError
from quitanda.models import AuditLog, Product, StockMovement
from quitanda.services import products_service
from quitanda.services.stock_ledger import (
    adjust_stock,
    credit_stock,
    debit_stock,
    list_movements,
    record_movement,
)


class TestDebitCredit:

    def test_debit_records_exit(self, db_session, make_product):
        product = make_product(quantity=10)

        movement = debit_stock(db_session, product_id=product.id, quantity=4, unit_price_cents=250, reason="Venda balcao")
        db_session.commit()

        assert db_session.get(Product, product.id).quantity == 6
        assert movement.type == "EXIT"
        assert (movement.quantity_before, movement.quantity_after) == (10, 6)
        assert movement.total_price_cents == 1000

    def test_debit_insufficient_leaves_quantity(self, db_session, make_product):
        product = make_product(quantity=3)

        with pytest.raises(InsufficientStockError) as exc:
            debit_stock(db_session, product_id=product.id, quantity=4)
        db_session.rollback()

        assert exc.value.available == 3
        assert db_session.get(Product, product.id).quantity == 3

    def test_debit_to_exactly_zero(self, db_session, make_product):
        product = make_product(quantity=3)

        debit_stock(db_session, product_id=product.id, quantity=3)
        db_session.commit()

        assert db_session.get(Product, product.id).quantity == 0

    def test_stale_read_cannot_oversell(self, db_session, make_product):
        """The session believes 10 units exist; the row only has 1."""
        product = make_product(quantity=10)
        assert product.quantity == 10
        db_session.execute(text("UPDATE products SET quantity = 1 WHERE id = :id"), {"id": product.id})

        with pytest.raises(InsufficientStockError) as exc:
            debit_stock(db_session, product_id=product.id, quantity=3)

        assert exc.value.available == 1
        assert product.quantity == 1
        db_session.rollback()

    def test_debit_rejects_inbound_type(self, db_session, make_product):
        product = make_product()
        with pytest.raises(ValidationError):
            debit_stock(db_session, product_id=product.id, quantity=1, movement_type="ENTRY")

    def test_zero_quantity_rejected(self, db_session, make_product):
        product = make_product()
        with pytest.raises(ValidationError):
            debit_stock(db_session, product_id=product.id, quantity=0)
        with pytest.raises(ValidationError):
            credit_stock(db_session, product_id=product.id, quantity=0)

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            credit_stock(db_session, product_id=99999, quantity=1)

    def test_credit_has_no_upper_bound(self, db_session, make_product):
        product = make_product(quantity=0)

        movement = credit_stock(db_session, product_id=product.id, quantity=1000000)
        db_session.commit()

        assert movement.type == "ENTRY"
        assert db_session.get(Product, product.id).quantity == 1000000

    def test_opening_stock_is_an_entry(self, db_session, make_product):
        product = make_product(quantity=12, cost_price_cents=300)

        entries = list_movements(db_session, product_id=product.id, movement_type="ENTRY")

        assert len(entries) == 1
        assert entries[0].quantity == 12
        assert entries[0].reason == "Initial stock"
        assert entries[0].total_price_cents == 3600


class TestAdjustment:

    def test_adjust_down(self, db_session, make_product):
        product = make_product(quantity=10)

        movement = adjust_stock(db_session, product_id=product.id, counted_quantity=7, reason="Inventario")
        db_session.commit()

        assert movement.type == "ADJUSTMENT"
        assert movement.quantity == 3
        assert (movement.quantity_before, movement.quantity_after) == (10, 7)
        assert db_session.get(Product, product.id).quantity == 7

    def test_adjust_up(self, db_session, make_product):
        product = make_product(quantity=10)

        movement = adjust_stock(db_session, product_id=product.id, counted_quantity=15)

        assert movement.quantity == 5
        assert movement.quantity_after == 15

    def test_adjust_without_difference(self, db_session, make_product):
        product = make_product(quantity=10)
        with pytest.raises(ValidationError):
            adjust_stock(db_session, product_id=product.id, counted_quantity=10)

    def test_adjust_negative_count(self, db_session, make_product):
        product = make_product(quantity=10)
        with pytest.raises(ValidationError):
            adjust_stock(db_session, product_id=product.id, counted_quantity=-1)


class TestRecordMovement:

    def test_loss_commits_and_audits(self, db_session, make_product):
        product = make_product(quantity=10)

        movement = record_movement(
            db_session, product_id=product.id, movement_type="LOSS", quantity=2, reason="Vencido", user_id=5,
        )

        db_session.expire_all()
        assert db_session.get(Product, product.id).quantity == 8
        assert db_session.get(StockMovement, movement.id).type == "LOSS"
        event = db_session.query(AuditLog).filter_by(event_type="stock.movement_recorded").one()
        assert event.entity_id == movement.id
        assert event.actor_user_id == 5

    def test_adjustment_uses_counted_quantity(self, db_session, make_product):
        product = make_product(quantity=10)

        record_movement(db_session, product_id=product.id, movement_type="ADJUSTMENT", quantity=4)

        assert db_session.get(Product, product.id).quantity == 4

    def test_failed_movement_rolls_back(self, db_session, make_product):
        product = make_product(quantity=1)

        with pytest.raises(InsufficientStockError):
            record_movement(db_session, product_id=product.id, movement_type="EXIT", quantity=2)

        assert db_session.get(Product, product.id).quantity == 1
        assert db_session.query(AuditLog).filter_by(event_type="stock.movement_recorded").count() == 0

    def test_unknown_type(self, db_session, make_product):
        product = make_product()
        with pytest.raises(ValidationError):
            record_movement(db_session, product_id=product.id, movement_type="TELEPORT", quantity=1)


class TestCatalogStockGuard:

    def test_update_product_refuses_quantity(self, db_session, make_product):
        product = make_product(quantity=10)
        with pytest.raises(ValidationError):
            products_service.update_product(db_session, product.id, {"quantity": 99})

    def test_low_stock_listing(self, db_session, make_product):
        low = make_product(quantity=1, min_quantity=5)
        make_product(quantity=50, min_quantity=5)
        make_product(quantity=0, min_quantity=5, is_active=False)

        assert [p.id for p in products_service.list_low_stock(db_session)] == [low.id]
