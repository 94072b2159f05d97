"""
Operational Readiness & Decision Governance
Governance audit trail blueprint (read-only).

Endpoints:
    GET  /api/v1/governance/events              — list / filter governance events
    GET  /api/v1/governance/events/<event_id>   — single event
"""

from flask import Blueprint, jsonify, request

from readiness_gov.blueprints import tenant
from readiness_gov.services import governance_audit

audit_bp = Blueprint("audit", __name__, url_prefix="/api/v1/governance")


@audit_bp.route("/events", methods=["GET"])
def list_events():
    """
    Newest-first governance events for the caller's org.

    Query params:
        action       — exact action name
        target_type  — filter by target type
        target_id    — filter by target id
        limit        — max items (default 100, max 500)
    """
    org_id, site_id, _ = tenant()
    limit = request.args.get("limit", 100, type=int)
    events = governance_audit.list_events(
        org_id,
        site_id=site_id,
        action=request.args.get("action"),
        target_type=request.args.get("target_type"),
        target_id=request.args.get("target_id"),
        limit=limit,
    )
    return jsonify({"ok": True, "events": events, "total": len(events)})


@audit_bp.route("/events/<event_id>", methods=["GET"])
def get_event(event_id):
    org_id, _, _ = tenant()
    return jsonify({"ok": True, "event": governance_audit.get_event(org_id, event_id)})
