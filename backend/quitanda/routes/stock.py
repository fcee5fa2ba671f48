# Overview: Flask API routes for manual stock movements and the movement history.

from flask import Blueprint, current_app, jsonify, request

from ..errors import DomainError, ValidationError
from ..extensions import db
from ..services import stock_ledger
from ..validation import coerce_int, parse_movement_type

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.post("/movements")
def create_movement_route():
    """
    Record a manual stock movement.

    Body: product_id, type (ENTRY|EXIT|LOSS|RETURN|ADJUSTMENT), quantity,
    optional reason, unit_price_cents, user_id.
    For ADJUSTMENT, quantity is the counted stock level.
    """
    try:
        data = request.get_json(silent=True) or {}
        if data.get("product_id") is None or data.get("quantity") is None:
            raise ValidationError("product_id and quantity required")

        unit_price = data.get("unit_price_cents")
        user_id = data.get("user_id")
        movement = stock_ledger.record_movement(
            db.session,
            product_id=coerce_int("product_id", data["product_id"]),
            movement_type=parse_movement_type(data.get("type")),
            quantity=coerce_int("quantity", data["quantity"]),
            reason=data.get("reason"),
            unit_price_cents=None if unit_price is None else coerce_int("unit_price_cents", unit_price),
            user_id=None if user_id is None else coerce_int("user_id", user_id),
            attempts=current_app.config["SALE_RETRY_ATTEMPTS"],
        )
        return jsonify({"movement": movement.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record stock movement")
        return jsonify({"error": "Internal server error"}), 500


@stock_bp.get("/movements")
def list_movements_route():
    try:
        movement_type = request.args.get("type")
        if movement_type:
            parse_movement_type(movement_type)
        movements = stock_ledger.list_movements(
            db.session,
            product_id=request.args.get("product_id", type=int),
            movement_type=movement_type,
            reference_type=request.args.get("reference_type"),
            reference_id=request.args.get("reference_id", type=int),
            limit=request.args.get("limit", type=int) or current_app.config["DEFAULT_PAGE_LIMIT"],
        )
        return jsonify({"movements": [m.to_dict() for m in movements]}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list stock movements")
        return jsonify({"error": "Internal server error"}), 500
