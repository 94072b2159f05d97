"""
Operational Readiness & Decision Governance
Readiness blueprint.

Endpoints:
    GET  /api/v1/readiness?date=&shift_code=             — composed Legal + Ops readiness
    GET  /api/v1/readiness/policy-binding/<shift_id>      — policy binding for one shift
    GET  /api/v1/readiness/decision?shift_id=             — active shift readiness decision
    POST /api/v1/readiness/decision                       — record a shift readiness decision
"""

from flask import Blueprint, jsonify, request

from readiness_gov.blueprints import json_body, tenant
from readiness_gov.core.exceptions import NotFoundError, ValidationError
from readiness_gov.models.roster import Shift
from readiness_gov.services import execution_decisions, policy_binding, readiness_service

readiness_bp = Blueprint("readiness", __name__, url_prefix="/api/v1/readiness")


@readiness_bp.route("", methods=["GET"])
def get_readiness():
    """
    Composed readiness for the caller's org/site.

    Query params:
        date        — YYYY-MM-DD (required)
        shift_code  — Day | Evening | Night | S1 | S2 | S3 (required, any case)

    409 when policy binding blocks the scope; 200 otherwise (a degraded
    pillar is reported in the body, never defaulted).
    """
    org_id, site_id, _ = tenant()
    payload = readiness_service.get_shift_readiness(
        org_id, site_id,
        request.args.get("date"),
        request.args.get("shift_code") or request.args.get("shift"),
    )
    return jsonify(payload), 409 if payload["blocked"] else 200


@readiness_bp.route("/policy-binding/<shift_id>", methods=["GET"])
def get_policy_binding(shift_id):
    org_id, _, _ = tenant()
    if Shift.query_for_org(org_id).filter_by(id=shift_id).first() is None:
        raise NotFoundError(resource="Shift", resource_id=shift_id, org_id=org_id)
    result = policy_binding.resolve_policy_binding(org_id, shift_id)
    return jsonify(result.to_dict()), 200 if result.ok else 409


@readiness_bp.route("/decision", methods=["GET"])
def get_readiness_decision():
    org_id, site_id, _ = tenant()
    shift_id = (request.args.get("shift_id") or "").strip()
    if not shift_id:
        raise ValidationError("shift_id is required", details={"shift_id": "required"})
    return jsonify({
        "ok": True,
        "decision": execution_decisions.get_shift_readiness_decision(org_id, site_id, shift_id),
    })


@readiness_bp.route("/decision", methods=["POST"])
def post_readiness_decision():
    """
    Record ACKNOWLEDGED / OVERRIDE / ESCALATE / STOP for a shift.

    Body: {shift_id, decision, note?}
    201 on first record, 200 when an existing decision was updated.
    """
    org_id, site_id, user_id = tenant()
    data = json_body()
    result = execution_decisions.record_shift_readiness_decision(
        org_id, site_id,
        data.get("shift_id"),
        data.get("decision"),
        note=data.get("note"),
        actor_user_id=user_id,
    )
    return jsonify({"ok": True, **result}), 201 if result["created"] else 200
