from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.inventory import MOVEMENT_TYPES
from .models.sales import PAYMENT_METHODS


# Maximum price: R$ 9.999.999,99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(key: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_price(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        price = patch[key]
        if price < 0:
            raise ValidationError(f"{key} must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_price(patch, "price_cents")
    _check_price(patch, "cost_price_cents")

    if "min_quantity" in patch and patch["min_quantity"] is not None:
        if patch["min_quantity"] < 0:
            raise ValidationError("min_quantity must be >= 0")

    if "quantity" in patch and patch["quantity"] is not None:
        if patch["quantity"] < 0:
            raise ValidationError("quantity must be >= 0")


def normalize_document_number(value: str | None) -> str | None:
    if value is None:
        return None
    return re.sub(r"\D", "", value) or None


def enforce_rules_client(patch: dict) -> None:
    if "name" in patch:
        name = patch["name"] or ""
        if len(name.strip()) < 2:
            raise ValidationError("name must have at least 2 characters")

    if patch.get("document_number"):
        digits = normalize_document_number(patch["document_number"])
        if digits is None or len(digits) != 11:
            raise ValidationError("document_number must have 11 digits")
        patch["document_number"] = digits

    if patch.get("email") and not _EMAIL_RE.match(patch["email"]):
        raise ValidationError("email is invalid")

    if "credit_limit_cents" in patch and patch["credit_limit_cents"] is not None:
        if patch["credit_limit_cents"] < 0:
            raise ValidationError("credit_limit_cents must be >= 0")


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: int
    quantity: int
    discount_cents: int = 0


@dataclass(frozen=True)
class SaleRequest:
    user_id: int
    payment_method: str
    items: tuple[SaleLineRequest, ...]
    client_id: int | None = None
    discount_cents: int = 0
    notes: str | None = None


def parse_sale_line(raw: Any, index: int) -> SaleLineRequest:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")
    if "product_id" not in raw or "quantity" not in raw:
        raise ValidationError(f"items[{index}] requires product_id and quantity")

    quantity = coerce_int(f"items[{index}].quantity", raw["quantity"])
    if quantity <= 0:
        raise ValidationError(f"items[{index}].quantity must be > 0")

    discount = raw.get("discount_cents")
    discount = 0 if discount is None else coerce_int(f"items[{index}].discount_cents", discount)
    if discount < 0:
        raise ValidationError(f"items[{index}].discount_cents must be >= 0")

    return SaleLineRequest(
        product_id=coerce_int(f"items[{index}].product_id", raw["product_id"]),
        quantity=quantity,
        discount_cents=discount,
    )


def parse_sale_request(payload: Any) -> SaleRequest:
    """Turn a CreateSale JSON body into a SaleRequest, rejecting malformed fields."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if payload.get("user_id") is None:
        raise ValidationError("user_id is required")

    method = payload.get("payment_method")
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("A sale requires at least one item")

    discount = payload.get("discount_cents")
    discount = 0 if discount is None else coerce_int("discount_cents", discount)
    if discount < 0:
        raise ValidationError("discount_cents must be >= 0")

    client_id = payload.get("client_id")
    notes = payload.get("notes")

    return SaleRequest(
        user_id=coerce_int("user_id", payload["user_id"]),
        payment_method=method,
        items=tuple(parse_sale_line(raw, i) for i, raw in enumerate(raw_items)),
        client_id=None if client_id is None else coerce_int("client_id", client_id),
        discount_cents=discount,
        notes=str(notes).strip() if notes else None,
    )


def parse_movement_type(value: Any) -> str:
    if value not in MOVEMENT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(MOVEMENT_TYPES)}")
    return value
