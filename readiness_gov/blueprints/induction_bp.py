"""
Operational Readiness & Decision Governance
Induction gate + employee legitimacy blueprint.

Endpoints:
    GET   /api/v1/induction/checkpoints                        — applicable checkpoints
    POST  /api/v1/induction/checkpoints                        — create checkpoint
    PATCH /api/v1/induction/checkpoints/<checkpoint_id>        — activate / deactivate
    POST  /api/v1/employees/<employee_id>/induction/enroll     — enroll (RESTRICTED)
    POST  /api/v1/employees/<employee_id>/induction/complete   — complete a checkpoint
    GET   /api/v1/employees/<employee_id>/induction            — induction summary
    POST  /api/v1/employees/<employee_id>/legitimacy           — legitimacy evaluation
"""

from flask import Blueprint, jsonify

from readiness_gov.blueprints import json_body, tenant
from readiness_gov.core.exceptions import ValidationError
from readiness_gov.services import induction_service, legitimacy
from readiness_gov.utils.helpers import clean_text

induction_bp = Blueprint("induction", __name__, url_prefix="/api/v1")


def _site(data=None):
    """Body site_id overrides the tenant site (checkpoint admin, enrollment)."""
    _, site_id, _ = tenant()
    if data and "site_id" in data:
        return clean_text(data.get("site_id"))
    return site_id


# ── Checkpoints ──────────────────────────────────────────────────────────────

@induction_bp.route("/induction/checkpoints", methods=["GET"])
def list_checkpoints():
    org_id, site_id, _ = tenant()
    return jsonify({"ok": True, "checkpoints": induction_service.list_checkpoints(org_id, site_id)})


@induction_bp.route("/induction/checkpoints", methods=["POST"])
def create_checkpoint():
    """
    Body: {code, name, stage?, sort_order?, site_id?}
    site_id null (explicit) creates an org-wide checkpoint.
    """
    org_id, _, user_id = tenant()
    data = json_body()
    checkpoint = induction_service.create_checkpoint(org_id, data, site_id=_site(data), actor_user_id=user_id)
    return jsonify({"ok": True, "checkpoint": checkpoint}), 201


@induction_bp.route("/induction/checkpoints/<checkpoint_id>", methods=["PATCH"])
def update_checkpoint(checkpoint_id):
    org_id, _, user_id = tenant()
    data = json_body()
    if not isinstance(data.get("is_active"), bool):
        raise ValidationError("is_active (boolean) is required", details={"is_active": "required"})
    checkpoint = induction_service.set_checkpoint_active(org_id, checkpoint_id, data["is_active"], user_id)
    return jsonify({"ok": True, "checkpoint": checkpoint})


# ── Employee induction ───────────────────────────────────────────────────────

@induction_bp.route("/employees/<employee_id>/induction/enroll", methods=["POST"])
def enroll(employee_id):
    org_id, _, user_id = tenant()
    data = json_body()
    induction = induction_service.enroll_employee(org_id, _site(data), employee_id, user_id)
    return jsonify({"ok": True, "induction": induction})


@induction_bp.route("/employees/<employee_id>/induction/complete", methods=["POST"])
def complete(employee_id):
    """Body: {checkpoint_id, site_id?}"""
    org_id, _, user_id = tenant()
    data = json_body()
    checkpoint_id = clean_text(data.get("checkpoint_id"))
    if not checkpoint_id:
        raise ValidationError("checkpoint_id is required", details={"checkpoint_id": "required"})
    induction = induction_service.complete_checkpoint(org_id, _site(data), employee_id, checkpoint_id, user_id)
    return jsonify({"ok": True, "induction": induction})


@induction_bp.route("/employees/<employee_id>/induction", methods=["GET"])
def get_induction(employee_id):
    org_id, site_id, _ = tenant()
    return jsonify({"ok": True, "induction": induction_service.get_employee_induction(org_id, site_id, employee_id)})


# ── Legitimacy ───────────────────────────────────────────────────────────────

@induction_bp.route("/employees/<employee_id>/legitimacy", methods=["POST"])
def employee_legitimacy(employee_id):
    """
    Body: {compliance_statuses: [VALID|WARNING|ILLEGAL, ...], disciplinary_restriction?: bool}
    Read-only: nothing is written.
    """
    org_id, _, _ = tenant()
    data = json_body()
    statuses = data.get("compliance_statuses") or []
    if not isinstance(statuses, list):
        raise ValidationError("compliance_statuses must be a list", details={"compliance_statuses": "invalid"})
    result = legitimacy.evaluate_for_employee(
        org_id, _site(data), employee_id,
        compliance_statuses=statuses,
        disciplinary_restriction=bool(data.get("disciplinary_restriction", False)),
    )
    return jsonify({"ok": True, "legitimacy": result})
