from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


MOVEMENT_ENTRY = "ENTRY"
MOVEMENT_EXIT = "EXIT"
MOVEMENT_ADJUSTMENT = "ADJUSTMENT"
MOVEMENT_LOSS = "LOSS"
MOVEMENT_RETURN = "RETURN"

MOVEMENT_TYPES = (
    MOVEMENT_ENTRY,
    MOVEMENT_EXIT,
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_LOSS,
    MOVEMENT_RETURN,
)

# Movement kinds that raise / lower the product quantity
INBOUND_TYPES = (MOVEMENT_ENTRY, MOVEMENT_RETURN)
OUTBOUND_TYPES = (MOVEMENT_EXIT, MOVEMENT_LOSS)


class StockMovement(db.Model):
    """
    Append-only stock ledger row.

    Every change of Product.quantity has exactly one row here, written in the
    same DB transaction. ``quantity`` is always positive; the direction is
    given by ``type`` (and by quantity_before/quantity_after).

    reference_type/reference_id link the row to the document that caused it
    (e.g. ("sale", 42)) so movements can be queried without parsing ``reason``.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        db.Index("ix_stock_movements_reference", "reference_type", "reference_id"),
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    quantity_before = db.Column(db.Integer, nullable=True)
    quantity_after = db.Column(db.Integer, nullable=True)

    unit_price_cents = db.Column(db.Integer, nullable=True)
    total_price_cents = db.Column(db.Integer, nullable=True)

    reason = db.Column(db.String(255), nullable=True)
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    user_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("movements", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "reason": self.reason,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }
