# Overview: Flask API routes for categories and suppliers.

from flask import Blueprint, current_app, jsonify, request

from ..errors import DomainError
from ..extensions import db
from ..models import Category, Supplier
from ..services import products_service
from ..validation import ModelValidationPolicy, validate_payload

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "document_number"},
    required_on_create={"name"},
)

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


@catalog_bp.post("/categories")
def create_category_route():
    try:
        patch = validate_payload(
            model=Category, payload=request.get_json(silent=True), policy=CATEGORY_POLICY, partial=False
        )
        category = products_service.create_category(db.session, patch)
        return jsonify({"category": category.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/categories")
def list_categories_route():
    categories = products_service.list_categories(db.session)
    return jsonify({"categories": [c.to_dict() for c in categories]}), 200


@catalog_bp.post("/suppliers")
def create_supplier_route():
    try:
        patch = validate_payload(
            model=Supplier, payload=request.get_json(silent=True), policy=SUPPLIER_POLICY, partial=False
        )
        supplier = products_service.create_supplier(db.session, patch)
        return jsonify({"supplier": supplier.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/suppliers")
def list_suppliers_route():
    suppliers = products_service.list_suppliers(db.session)
    return jsonify({"suppliers": [s.to_dict() for s in suppliers]}), 200
