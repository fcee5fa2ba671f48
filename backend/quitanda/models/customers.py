from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Client(db.Model):
    """
    Customer with a store-credit ("fiado") account.

    CREDIT: current_debt_cents grows with FIADO sales and shrinks with
    payments or cancellations. It may never exceed credit_limit_cents at the
    moment it is increased (see services/credit_ledger.py).
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.CheckConstraint("credit_limit_cents >= 0", name="ck_clients_limit_non_negative"),
        db.CheckConstraint("current_debt_cents >= 0", name="ck_clients_debt_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    # CPF (11 digits, stored without punctuation)
    document_number = db.Column(db.String(14), nullable=True, unique=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    credit_limit_cents = db.Column(db.Integer, nullable=False, default=0)
    current_debt_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def available_credit_cents(self) -> int:
        return max(0, self.credit_limit_cents - self.current_debt_cents)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "document_number": self.document_number,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "credit_limit_cents": self.credit_limit_cents,
            "current_debt_cents": self.current_debt_cents,
            "available_credit_cents": self.available_credit_cents,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
