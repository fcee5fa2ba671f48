# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/quitanda/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, current_app, jsonify, request

from ..errors import DomainError, ValidationError
from ..extensions import db
from ..models.sales import PAYMENT_STATUSES
from ..services import sales_service
from ..time_utils import parse_iso_datetime
from ..validation import coerce_int, parse_sale_request


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _optional_user_id(data: dict) -> int | None:
    value = data.get("user_id")
    return None if value is None else coerce_int("user_id", value)


@sales_bp.post("")
def create_sale_route():
    """
    Create a sale.

    Body:
    {
      "user_id": 1,
      "client_id": 7,                       # required for FIADO
      "payment_method": "CASH|CARD|PIX|FIADO",
      "items": [{"product_id": 3, "quantity": 2, "discount_cents": 0}],
      "discount_cents": 0,
      "notes": "..."
    }
    """
    try:
        sale_request = parse_sale_request(request.get_json(silent=True))
        sale = sales_service.create_sale(
            db.session,
            sale_request,
            attempts=current_app.config["SALE_RETRY_ATTEMPTS"],
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
def list_sales_route():
    """
    Query params: client_id, status, start, end (ISO-8601, inclusive), limit.
    """
    try:
        status = request.args.get("status")
        if status and status not in PAYMENT_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(PAYMENT_STATUSES)}")
        try:
            start = parse_iso_datetime(request.args.get("start"))
            end = parse_iso_datetime(request.args.get("end"))
        except ValueError:
            raise ValidationError("start/end must be ISO-8601 datetimes")

        sales = sales_service.list_sales(
            db.session,
            client_id=request.args.get("client_id", type=int),
            status=status,
            start=start,
            end=end,
            limit=request.args.get("limit", type=int) or current_app.config["DEFAULT_PAGE_LIMIT"],
        )
        return jsonify({"sales": [s.to_dict(include_items=False) for s in sales]}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(db.session, sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/cancel")
def cancel_sale_route(sale_id: int):
    """
    Cancel a sale and reverse its stock and credit effects.

    Body (optional): user_id, reason
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.cancel_sale(
            db.session,
            sale_id,
            user_id=_optional_user_id(data),
            reason=data.get("reason"),
            attempts=current_app.config["SALE_RETRY_ATTEMPTS"],
        )
        return jsonify({"sale": sale.to_dict()}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/pay")
def mark_paid_route(sale_id: int):
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.mark_sale_paid(
            db.session,
            sale_id,
            user_id=_optional_user_id(data),
            attempts=current_app.config["SALE_RETRY_ATTEMPTS"],
        )
        return jsonify({"sale": sale.to_dict()}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark sale paid")
        return jsonify({"error": "Internal server error"}), 500
