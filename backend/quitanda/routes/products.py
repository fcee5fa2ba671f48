# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/quitanda/routes/products.py
"""
Product catalog routes.

Stock levels are read-only here: ``quantity`` is accepted on create as the
opening balance (booked as an ENTRY movement) and rejected on update.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import DomainError
from ..extensions import db
from ..models import Product
from ..services import products_service
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "barcode", "price_cents", "cost_price_cents",
        "quantity", "min_quantity", "unit", "category_id", "supplier_id", "is_active",
    },
    required_on_create={"name", "price_cents"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_POLICY.writable_fields - {"quantity"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    """
    List products.

    Query params:
    - active: "true" to hide deactivated products
    - category_id: int
    - q: name fragment or exact barcode
    - limit: int (default DEFAULT_PAGE_LIMIT)
    """
    products = products_service.list_products(
        db.session,
        active_only=request.args.get("active", "").lower() == "true",
        category_id=request.args.get("category_id", type=int),
        search=request.args.get("q"),
        limit=request.args.get("limit", type=int) or current_app.config["DEFAULT_PAGE_LIMIT"],
    )
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.post("")
def create_product_route():
    try:
        patch = validate_payload(
            model=Product, payload=request.get_json(silent=True), policy=PRODUCT_POLICY, partial=False
        )
        enforce_rules_product(patch)
        product = products_service.create_product(db.session, patch)
        return jsonify({"product": product.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/low-stock")
def low_stock_route():
    products = products_service.list_low_stock(db.session)
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.get("/barcode/<string:barcode>")
def get_by_barcode_route(barcode: str):
    try:
        product = products_service.find_product_by_barcode(db.session, barcode)
        return jsonify({"product": product.to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to look up barcode")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(db.session, product_id)
        return jsonify({"product": product.to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
def update_product_route(product_id: int):
    try:
        patch = validate_payload(
            model=Product, payload=request.get_json(silent=True), policy=PRODUCT_UPDATE_POLICY, partial=True
        )
        enforce_rules_product(patch)
        product = products_service.update_product(db.session, product_id, patch)
        return jsonify({"product": product.to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500
