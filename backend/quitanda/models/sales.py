from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


PAYMENT_CASH = "CASH"
PAYMENT_CARD = "CARD"
PAYMENT_PIX = "PIX"
PAYMENT_FIADO = "FIADO"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD, PAYMENT_PIX, PAYMENT_FIADO)

STATUS_PAID = "PAID"
STATUS_PENDING = "PENDING"
STATUS_CANCELLED = "CANCELLED"
PAYMENT_STATUSES = (STATUS_PAID, STATUS_PENDING, STATUS_CANCELLED)


class Sale(db.Model):
    """
    Sale document.

    LIFECYCLE: created PAID (CASH/CARD/PIX) or PENDING (FIADO). PENDING may
    become PAID; either may become CANCELLED, which is terminal. Items and
    amounts never change after creation.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("subtotal_cents >= 0", name="ck_sales_subtotal_non_negative"),
        db.CheckConstraint("discount_cents >= 0", name="ck_sales_discount_non_negative"),
        db.CheckConstraint("discount_cents <= subtotal_cents", name="ck_sales_discount_le_subtotal"),
        db.CheckConstraint("total_cents >= 0", name="ck_sales_total_non_negative"),
        db.Index("ix_sales_status_created", "payment_status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default=STATUS_PAID, index=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    client = db.relationship("Client", backref=db.backref("sales", lazy="dynamic"))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_credit(self) -> bool:
        return self.payment_method == PAYMENT_FIADO

    @property
    def is_cancelled(self) -> bool:
        return self.payment_status == STATUS_CANCELLED

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "client_id": self.client_id,
            "user_id": self.user_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "cancel_reason": self.cancel_reason,
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["total_items"] = sum(item.quantity for item in self.items)
        return data


class SaleItem(db.Model):
    """Line of a sale; price and name are snapshots taken at sale time."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_sale_items_price_non_negative"),
        db.CheckConstraint("discount_cents >= 0", name="ck_sale_items_discount_non_negative"),
        db.CheckConstraint("total_cents >= 0", name="ck_sale_items_total_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    # Position within the sale, preserves the order items were supplied
    line_number = db.Column(db.Integer, nullable=False)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship(
        "Sale",
        backref=db.backref("items", lazy=True, order_by="SaleItem.line_number", cascade="all, delete-orphan"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "line_number": self.line_number,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
        }
