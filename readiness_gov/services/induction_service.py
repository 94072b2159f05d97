"""
Induction / Checkpoint Gate.

Per employee per site:

    not enrolled ──enroll──▶ RESTRICTED ──all required completed──▶ CLEARED
                                 ▲                                     │
                                 └──────────── re-enroll ──────────────┘

Required checkpoints = active org-wide (site_id NULL) + active site-specific.
Clearance is recomputed synchronously on every completion and lazily on
every status read, and requires a non-empty required set. CLEARED never
reverts on its own.

Legacy rule: an employee with no induction row for the site (or no site at
all) reports CLEARED with zero counts, so introducing induction at a site
does not retroactively restrict existing staff.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from readiness_gov.core.exceptions import ConflictError, NotFoundError, ValidationError
from readiness_gov.models import db
from readiness_gov.models.base import _utcnow
from readiness_gov.models.induction import (
    INDUCTION_CLEARED,
    INDUCTION_RESTRICTED,
    EmployeeInduction,
    EmployeeInductionCompletion,
    InductionCheckpoint,
)
from readiness_gov.services import governance_audit
from readiness_gov.utils.helpers import clean_text

logger = logging.getLogger(__name__)

TARGET_TYPE = "employee_induction"


def _not_enrolled() -> dict:
    return {
        "enrolled": False,
        "status": INDUCTION_CLEARED,
        "required_count": 0,
        "completed_count": 0,
        "remaining": [],
    }


# ---------------------------------------------------------------------------
# Checkpoint administration
# ---------------------------------------------------------------------------


def _required_checkpoints(org_id: str, site_id: str | None) -> list[InductionCheckpoint]:
    q = InductionCheckpoint.query_for_org(org_id).filter(InductionCheckpoint.is_active.is_(True))
    if site_id:
        q = q.filter(or_(InductionCheckpoint.site_id.is_(None), InductionCheckpoint.site_id == site_id))
    else:
        q = q.filter(InductionCheckpoint.site_id.is_(None))
    return q.order_by(InductionCheckpoint.sort_order, InductionCheckpoint.code).all()


def list_checkpoints(org_id: str, site_id: str | None = None) -> list[dict]:
    """Active checkpoints applicable to the site, ordered by sort_order then code."""
    return [c.to_dict() for c in _required_checkpoints(org_id, site_id)]


def create_checkpoint(
    org_id: str,
    data: dict,
    site_id: str | None = None,
    actor_user_id: str | None = None,
) -> dict:
    """Create a checkpoint. site_id None makes it org-wide.

    Raises:
        ValidationError: code or name missing, sort_order not an integer.
        ConflictError: (org, site, code) already exists.
    """
    code = clean_text(data.get("code"))
    name = clean_text(data.get("name"))
    if not code:
        raise ValidationError("code is required", details={"code": "required"})
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    try:
        sort_order = int(data.get("sort_order", 0) or 0)
    except (TypeError, ValueError):
        raise ValidationError("sort_order must be an integer", details={"sort_order": data.get("sort_order")})

    duplicate = (
        InductionCheckpoint.query_for_org(org_id)
        .filter(InductionCheckpoint.code == code)
        .filter(InductionCheckpoint.site_id.is_(None) if site_id is None else InductionCheckpoint.site_id == site_id)
        .first()
    )
    if duplicate is not None:
        raise ConflictError("InductionCheckpoint", "code", code)

    checkpoint = InductionCheckpoint(
        org_id=org_id,
        site_id=site_id,
        code=code,
        name=name,
        stage=clean_text(data.get("stage")),
        sort_order=sort_order,
        is_active=True,
    )
    try:
        db.session.add(checkpoint)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("InductionCheckpoint", "code", code)

    governance_audit.append_event(
        org_id=org_id,
        site_id=site_id,
        actor_user_id=actor_user_id,
        action="INDUCTION_CHECKPOINT_CREATE",
        target_type="induction_checkpoint",
        target_id=checkpoint.id,
        meta={"code": code, "name": name},
        idempotency_key=governance_audit.build_idempotency_key(
            "INDUCTION_CHECKPOINT_CREATE", org_id, checkpoint.id),
    )
    logger.info("Induction checkpoint created", extra={"org_id": org_id, "site_id": site_id, "target_id": checkpoint.id})
    return checkpoint.to_dict()


def set_checkpoint_active(
    org_id: str,
    checkpoint_id: str,
    is_active: bool,
    actor_user_id: str | None = None,
) -> dict:
    """Activate or deactivate a checkpoint.

    Each real change bumps ``revision`` and is audited under that revision,
    so repeating a request lands on the same event. Already-CLEARED
    employees are not touched; RESTRICTED employees pick the new required
    set up on their next completion or status read.
    """
    checkpoint = db.session.get(InductionCheckpoint, checkpoint_id)
    if checkpoint is None or checkpoint.org_id != org_id:
        raise NotFoundError(resource="InductionCheckpoint", resource_id=checkpoint_id, org_id=org_id)

    if checkpoint.is_active != bool(is_active):
        checkpoint.is_active = bool(is_active)
        checkpoint.revision = (checkpoint.revision or 0) + 1
        db.session.commit()

    # Revision 0 is the state written at creation, audited by INDUCTION_CHECKPOINT_CREATE.
    if checkpoint.revision:
        governance_audit.append_event(
            org_id=org_id,
            site_id=checkpoint.site_id,
            actor_user_id=actor_user_id,
            action="INDUCTION_CHECKPOINT_UPDATE",
            target_type="induction_checkpoint",
            target_id=checkpoint.id,
            meta={
                "before": {"is_active": not checkpoint.is_active},
                "after": {"is_active": checkpoint.is_active},
                "revision": checkpoint.revision,
            },
            idempotency_key=governance_audit.build_idempotency_key(
                "INDUCTION_CHECKPOINT_UPDATE", org_id, checkpoint.id, f"r{checkpoint.revision}"),
        )
    return checkpoint.to_dict()


# ---------------------------------------------------------------------------
# Employee state machine
# ---------------------------------------------------------------------------


def _get_induction(org_id: str, site_id: str, employee_id: str) -> EmployeeInduction | None:
    return EmployeeInduction.query_for_org(org_id).filter_by(site_id=site_id, employee_id=employee_id).first()


def _completed_ids(employee_id: str, checkpoint_ids: list[str]) -> set[str]:
    if not checkpoint_ids:
        return set()
    rows = (
        db.session.query(EmployeeInductionCompletion.checkpoint_id)
        .filter(
            EmployeeInductionCompletion.employee_id == employee_id,
            EmployeeInductionCompletion.checkpoint_id.in_(checkpoint_ids),
        )
        .all()
    )
    return {r.checkpoint_id for r in rows}


def _recompute(induction: EmployeeInduction, actor_user_id: str | None = None) -> str:
    """Flip RESTRICTED → CLEARED if every required checkpoint is completed."""
    if induction.status == INDUCTION_CLEARED:
        return INDUCTION_CLEARED

    required = _required_checkpoints(induction.org_id, induction.site_id)
    if not required:
        return induction.status

    done = _completed_ids(induction.employee_id, [c.id for c in required])
    if not all(c.id in done for c in required):
        return induction.status

    now = _utcnow()
    induction.status = INDUCTION_CLEARED
    induction.cleared_at = now
    induction.updated_at = now
    db.session.commit()

    governance_audit.append_event(
        org_id=induction.org_id,
        site_id=induction.site_id,
        actor_user_id=actor_user_id,
        action="INDUCTION_CLEARED",
        target_type=TARGET_TYPE,
        target_id=induction.employee_id,
        legitimacy_status=INDUCTION_CLEARED,
        meta={"required_count": len(required)},
        idempotency_key=governance_audit.build_idempotency_key(
            "INDUCTION_CLEARED", induction.org_id, induction.employee_id,
            induction.site_id, induction.enrolled_at.isoformat() if induction.enrolled_at else None),
    )
    logger.info(
        "Employee induction cleared",
        extra={"org_id": induction.org_id, "site_id": induction.site_id, "employee_id": induction.employee_id},
    )
    return INDUCTION_CLEARED


def _restrict(induction: EmployeeInduction, now: datetime) -> None:
    induction.status = INDUCTION_RESTRICTED
    induction.enrolled_at = now
    induction.cleared_at = None
    induction.updated_at = now


def enroll_employee(org_id: str, site_id: str, employee_id: str, actor_user_id: str | None = None) -> dict:
    """Enroll (or re-enroll) an employee: status RESTRICTED, cleared_at reset.

    An employee who is already RESTRICTED keeps their enrollment; only a new
    row or a CLEARED employee gets a fresh ``enrolled_at``. The audit key is
    that enrollment instant, so a repeated request lands on the same event.
    """
    if not clean_text(site_id):
        raise ValidationError("site_id is required to enroll", details={"site_id": "required"})
    if not clean_text(employee_id):
        raise ValidationError("employee_id is required", details={"employee_id": "required"})

    now = _utcnow()
    induction = _get_induction(org_id, site_id, employee_id)
    if induction is None:
        induction = EmployeeInduction(
            org_id=org_id,
            site_id=site_id,
            employee_id=employee_id,
            created_by=actor_user_id,
        )
        db.session.add(induction)
        _restrict(induction, now)
    elif induction.status != INDUCTION_RESTRICTED or induction.enrolled_at is None:
        _restrict(induction, now)
    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent enrollment created the row first; adopt it.
        db.session.rollback()
        induction = _get_induction(org_id, site_id, employee_id)
        if induction is None:
            raise
        if induction.status != INDUCTION_RESTRICTED or induction.enrolled_at is None:
            _restrict(induction, now)
            db.session.commit()

    governance_audit.append_event(
        org_id=org_id,
        site_id=site_id,
        actor_user_id=actor_user_id,
        action="INDUCTION_ENROLL",
        target_type=TARGET_TYPE,
        target_id=employee_id,
        legitimacy_status=INDUCTION_RESTRICTED,
        idempotency_key=governance_audit.build_idempotency_key(
            "INDUCTION_ENROLL", org_id, employee_id, site_id, induction.enrolled_at.isoformat()),
    )
    logger.info("Employee enrolled in induction",
                extra={"org_id": org_id, "site_id": site_id, "employee_id": employee_id})
    return get_employee_induction(org_id, site_id, employee_id)


def complete_checkpoint(
    org_id: str,
    site_id: str,
    employee_id: str,
    checkpoint_id: str,
    actor_user_id: str | None = None,
) -> dict:
    """Record a completion and recompute clearance in the same call.

    Re-completing an already completed checkpoint is a no-op write.

    Raises:
        ValidationError: employee not enrolled at the site.
        NotFoundError: checkpoint not active / not applicable to the site.
    """
    induction = _get_induction(org_id, site_id, employee_id) if site_id else None
    if induction is None:
        raise ValidationError(
            "Employee is not enrolled in induction for this site",
            details={"employee_id": employee_id, "site_id": site_id},
        )

    checkpoint = db.session.get(InductionCheckpoint, checkpoint_id)
    applicable = (
        checkpoint is not None
        and checkpoint.org_id == org_id
        and checkpoint.is_active
        and checkpoint.site_id in (None, site_id)
    )
    if not applicable:
        raise NotFoundError(resource="InductionCheckpoint", resource_id=checkpoint_id, org_id=org_id)

    existing = EmployeeInductionCompletion.query.filter_by(
        employee_id=employee_id, checkpoint_id=checkpoint_id,
    ).first()
    if existing is None:
        try:
            db.session.add(EmployeeInductionCompletion(
                org_id=org_id,
                site_id=site_id,
                employee_id=employee_id,
                checkpoint_id=checkpoint_id,
                completed_by=actor_user_id,
            ))
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.info("Checkpoint completion already recorded",
                        extra={"employee_id": employee_id, "target_id": checkpoint_id})
        else:
            governance_audit.append_event(
                org_id=org_id,
                site_id=site_id,
                actor_user_id=actor_user_id,
                action="INDUCTION_CHECKPOINT_COMPLETE",
                target_type=TARGET_TYPE,
                target_id=employee_id,
                meta={"checkpoint_id": checkpoint_id, "code": checkpoint.code},
                idempotency_key=governance_audit.build_idempotency_key(
                    "INDUCTION_CHECKPOINT_COMPLETE", org_id, employee_id, checkpoint_id),
            )

    induction = _get_induction(org_id, site_id, employee_id)
    _recompute(induction, actor_user_id)
    return get_employee_induction(org_id, site_id, employee_id)


def get_employee_induction(org_id: str, site_id: str | None, employee_id: str) -> dict:
    """Induction summary: enrolled, status, required/completed counts, remaining codes."""
    if not clean_text(site_id):
        return _not_enrolled()

    induction = _get_induction(org_id, site_id, employee_id)
    if induction is None:
        return _not_enrolled()

    status = _recompute(induction)
    required = _required_checkpoints(org_id, site_id)
    done = _completed_ids(employee_id, [c.id for c in required])
    return {
        "enrolled": True,
        "status": status,
        "required_count": len(required),
        "completed_count": len(done),
        "remaining": [c.code for c in required if c.id not in done],
    }


def get_induction_status_for_legitimacy(org_id: str, site_id: str | None, employee_id: str) -> str:
    """RESTRICTED if enrolled and not cleared, else CLEARED. Read-only."""
    if not clean_text(site_id):
        return INDUCTION_CLEARED
    induction = _get_induction(org_id, site_id, employee_id)
    if induction is None:
        return INDUCTION_CLEARED
    return INDUCTION_RESTRICTED if induction.status == INDUCTION_RESTRICTED else INDUCTION_CLEARED
