# Overview: Flask API routes for clients and fiado payments.

from flask import Blueprint, current_app, jsonify, request

from ..errors import DomainError, ValidationError
from ..extensions import db
from ..models import Client
from ..services import clients_service
from ..services.credit_ledger import get_client
from ..validation import ModelValidationPolicy, coerce_int, enforce_rules_client, validate_payload

CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "document_number", "email", "phone", "address", "credit_limit_cents", "is_active"},
    required_on_create={"name"},
)

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


@clients_bp.post("")
def create_client_route():
    try:
        patch = validate_payload(
            model=Client, payload=request.get_json(silent=True), policy=CLIENT_POLICY, partial=False
        )
        enforce_rules_client(patch)
        client = clients_service.create_client(db.session, patch)
        return jsonify({"client": client.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create client")
        return jsonify({"error": "Internal server error"}), 500


@clients_bp.get("")
def list_clients_route():
    clients = clients_service.list_clients(
        db.session,
        active_only=request.args.get("active", "").lower() == "true",
        limit=request.args.get("limit", type=int) or current_app.config["DEFAULT_PAGE_LIMIT"],
    )
    return jsonify({"clients": [c.to_dict() for c in clients]}), 200


@clients_bp.get("/debtors")
def list_debtors_route():
    clients = clients_service.list_debtors(db.session)
    return jsonify({
        "clients": [c.to_dict() for c in clients],
        "total_debt_cents": sum(c.current_debt_cents for c in clients),
    }), 200


@clients_bp.get("/<int:client_id>")
def get_client_route(client_id: int):
    try:
        client = get_client(db.session, client_id)
        return jsonify({"client": client.to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load client")
        return jsonify({"error": "Internal server error"}), 500


@clients_bp.patch("/<int:client_id>")
def update_client_route(client_id: int):
    try:
        patch = validate_payload(
            model=Client, payload=request.get_json(silent=True), policy=CLIENT_POLICY, partial=True
        )
        enforce_rules_client(patch)
        client = clients_service.update_client(db.session, client_id, patch)
        return jsonify({"client": client.to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update client")
        return jsonify({"error": "Internal server error"}), 500


@clients_bp.post("/<int:client_id>/payments")
def pay_debt_route(client_id: int):
    """Body: amount_cents, optional user_id."""
    try:
        data = request.get_json(silent=True) or {}
        if data.get("amount_cents") is None:
            raise ValidationError("amount_cents required")
        user_id = data.get("user_id")
        client = clients_service.pay_debt(
            db.session,
            client_id,
            coerce_int("amount_cents", data["amount_cents"]),
            user_id=None if user_id is None else coerce_int("user_id", user_id),
        )
        return jsonify({"client": client.to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record client payment")
        return jsonify({"error": "Internal server error"}), 500
