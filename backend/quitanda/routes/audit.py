# Overview: Read-only API over the audit log.

from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..services.audit_service import list_audit_events

audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("")
def list_audit_route():
    """Query params: entity_type, entity_id, event_type, limit."""
    events = list_audit_events(
        db.session,
        entity_type=request.args.get("entity_type"),
        entity_id=request.args.get("entity_id", type=int),
        event_type=request.args.get("event_type"),
        limit=request.args.get("limit", type=int) or current_app.config["DEFAULT_PAGE_LIMIT"],
    )
    return jsonify({"events": [e.to_dict() for e in events]}), 200
