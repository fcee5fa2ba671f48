"""
Domain error taxonomy.

Every error carries a stable machine-readable ``code`` and the HTTP status
the API layer answers with, so routes can translate any of them the same way:

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for business-rule failures raised by the services."""

    code = "DOMAIN_ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


class ValidationError(DomainError, ValueError):
    """400-level input problem (negative prices, zero quantities, ...)."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ConflictError(DomainError, ValueError):
    """409-level uniqueness conflict (duplicate barcode, category name...)."""

    code = "CONFLICT"
    status_code = 409


class NotFoundError(DomainError):
    code = "ENTITY_NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(
            f"{entity} not found: {entity_id}",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class InactiveProductError(DomainError):
    code = "INACTIVE_PRODUCT"
    status_code = 409

    def __init__(self, product_id: int, product_name: str):
        super().__init__(
            f'Product "{product_name}" is inactive and cannot be sold',
            details={"product_id": product_id, "product": product_name},
        )


class InsufficientStockError(DomainError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f'Insufficient stock for "{product_name}": available {available}, requested {requested}',
            details={
                "product_id": product_id,
                "product": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.available = available
        self.requested = requested


class CreditLimitExceededError(DomainError):
    code = "CREDIT_LIMIT_EXCEEDED"
    status_code = 409

    def __init__(self, client_id: int, credit_limit_cents: int, attempted_debt_cents: int):
        super().__init__(
            "Credit limit exceeded",
            details={
                "client_id": client_id,
                "credit_limit_cents": credit_limit_cents,
                "attempted_debt_cents": attempted_debt_cents,
            },
        )


class CreditSaleRequiresClientError(DomainError):
    code = "CREDIT_SALE_REQUIRES_CLIENT"
    status_code = 400

    def __init__(self):
        super().__init__("FIADO sales require a registered client")


class AlreadyCancelledError(DomainError):
    code = "ALREADY_CANCELLED"
    status_code = 409

    def __init__(self, sale_id: int):
        super().__init__(f"Sale {sale_id} is already cancelled", details={"sale_id": sale_id})
