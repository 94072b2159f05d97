"""
Operational Readiness & Decision Governance
Execution decision blueprint.

Endpoints:
    POST /api/v1/decisions/station-issue           — decision on a station issue
    POST /api/v1/decisions/line-shift              — decision on a line NO_GO gap
    GET  /api/v1/decisions                         — active decisions (filters below)
    POST /api/v1/decisions/<decision_id>/supersede — retire an active decision
"""

from flask import Blueprint, jsonify, request

from readiness_gov.blueprints import json_body, tenant
from readiness_gov.services import decision_ledger, execution_decisions

decision_bp = Blueprint("decision", __name__, url_prefix="/api/v1/decisions")


@decision_bp.route("/station-issue", methods=["POST"])
def station_issue_decision():
    """
    Body: {date, shift_code, station_id, issue_type?, decision_type | action, note?}
    """
    org_id, site_id, user_id = tenant()
    result = execution_decisions.record_station_issue_decision(org_id, site_id, json_body(), user_id)
    return jsonify({"ok": True, **result}), 201 if result["created"] else 200


@decision_bp.route("/line-shift", methods=["POST"])
def line_shift_decision():
    """
    Body: {date, shift_code, line, action?, note?}
    """
    org_id, site_id, user_id = tenant()
    result = execution_decisions.record_line_shift_decision(org_id, site_id, json_body(), user_id)
    return jsonify({"ok": True, **result}), 201 if result["created"] else 200


@decision_bp.route("", methods=["GET"])
def list_decisions():
    """
    Active decisions for the caller's org.

    Query params:
        target_type    — e.g. station_shift, line_shift, shift_readiness
        target_id      — repeatable, or comma-separated
        decision_type  — exact match
    """
    org_id, site_id, _ = tenant()
    target_ids = None
    raw_ids = request.args.getlist("target_id")
    if raw_ids:
        target_ids = [t.strip() for raw in raw_ids for t in raw.split(",") if t.strip()]
    rows = decision_ledger.list_active_decisions(
        org_id,
        site_id=site_id,
        target_type=request.args.get("target_type"),
        target_ids=target_ids,
        decision_type=request.args.get("decision_type"),
    )
    return jsonify({"ok": True, "decisions": [r.to_dict() for r in rows], "total": len(rows)})


@decision_bp.route("/<decision_id>/supersede", methods=["POST"])
def supersede_decision(decision_id):
    org_id, _, user_id = tenant()
    return jsonify({"ok": True, "decision": execution_decisions.supersede(org_id, decision_id, user_id)})
