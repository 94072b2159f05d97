"""
Governance Audit Trail — append-only, idempotent event log.

Every governance-relevant mutation appends one GovernanceEvent. The
``idempotency_key`` is unique at the storage layer:

    - first insert        → "recorded"
    - same key again      → "duplicate"  (success, nothing stored)
    - any other failure   → AuditWriteError  (aborts the enclosing mutation)

Call sites that only want side-channel logging use ``append_event_best_effort``.

Usage:
    from readiness_gov.services import governance_audit
    governance_audit.append_event(
        org_id=org_id, actor_user_id=user_id,
        action="STATION_ISSUE_DECISION",
        target_type="station_shift", target_id=target_id,
        idempotency_key=governance_audit.build_idempotency_key(
            "STATION_ISSUE_DECISION", org_id, target_id, "ACKNOWLEDGED"),
    )
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from readiness_gov.core.exceptions import AuditWriteError, NotFoundError, ValidationError
from readiness_gov.models import db
from readiness_gov.models.governance import GOVERNANCE_ACTIONS, OUTCOME_RECORDED, GovernanceEvent

logger = logging.getLogger(__name__)

APPEND_RECORDED = "recorded"
APPEND_DUPLICATE = "duplicate"

_MAX_LIST_LIMIT = 500


def build_idempotency_key(action: str, org_id: str, target_id, *salt) -> str:
    """Compose ``ACTION:org:target[:salt...]``; blank parts become "NA"."""
    parts = [action, org_id, target_id, *salt]
    return ":".join(str(p) if p not in (None, "") else "NA" for p in parts)


def append_event(
    *,
    org_id: str,
    action: str,
    target_type: str,
    idempotency_key: str,
    target_id: str | None = None,
    site_id: str | None = None,
    actor_user_id: str | None = None,
    outcome: str = OUTCOME_RECORDED,
    legitimacy_status: str | None = None,
    readiness_status: str | None = None,
    reason_codes: list[str] | None = None,
    meta: dict | None = None,
) -> str:
    """Append one governance event; returns APPEND_RECORDED or APPEND_DUPLICATE.

    Raises:
        ValidationError: unknown action or missing idempotency key.
        AuditWriteError: the row could not be written for any reason other
            than an existing row with the same idempotency key.
    """
    if action not in GOVERNANCE_ACTIONS:
        raise ValidationError(f"Unknown governance action: {action}", details={"action": action})
    if not idempotency_key:
        raise ValidationError("idempotency_key is required", details={"idempotency_key": "required"})

    event = GovernanceEvent(
        org_id=org_id,
        site_id=site_id,
        actor_user_id=actor_user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        outcome=outcome,
        legitimacy_status=legitimacy_status,
        readiness_status=readiness_status,
        reason_codes=list(reason_codes or []),
        meta=dict(meta or {}),
        idempotency_key=idempotency_key,
    )
    log_extra = {
        "org_id": org_id,
        "action": action,
        "target_type": target_type,
        "target_id": target_id,
        "idempotency_key": idempotency_key,
    }

    try:
        db.session.add(event)
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        existing = GovernanceEvent.query.filter_by(idempotency_key=idempotency_key).first()
        if existing is not None:
            logger.info("Governance event already recorded", extra=log_extra)
            return APPEND_DUPLICATE
        logger.error("Governance event rejected by database", extra=log_extra)
        raise AuditWriteError(f"Could not append {action}: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Governance event write failed", extra=log_extra, exc_info=True)
        raise AuditWriteError(f"Could not append {action}") from exc

    logger.info("Governance event recorded", extra=log_extra)
    return APPEND_RECORDED


def append_event_best_effort(**kwargs) -> str | None:
    """Append a side-channel event; failures are logged and swallowed."""
    try:
        return append_event(**kwargs)
    except AuditWriteError:
        logger.warning("Best-effort governance event dropped: %s", kwargs.get("action"))
        return None


def list_events(
    org_id: str,
    *,
    site_id: str | None = None,
    action: str | None = None,
    target_type: str | None = None,
    target_id: str | None = None,
    limit: int = 100,
) -> list[dict]:
    """Newest-first events for an org, optionally filtered."""
    q = GovernanceEvent.query_for_org(org_id)
    if site_id:
        q = q.filter(GovernanceEvent.site_id == site_id)
    if action:
        q = q.filter(GovernanceEvent.action == action)
    if target_type:
        q = q.filter(GovernanceEvent.target_type == target_type)
    if target_id:
        q = q.filter(GovernanceEvent.target_id == target_id)
    limit = max(1, min(int(limit), _MAX_LIST_LIMIT))
    rows = q.order_by(GovernanceEvent.created_at.desc(), GovernanceEvent.id).limit(limit).all()
    return [r.to_dict() for r in rows]


def get_event(org_id: str, event_id: str) -> dict:
    event = db.session.get(GovernanceEvent, event_id)
    if event is None or event.org_id != org_id:
        raise NotFoundError(resource="GovernanceEvent", resource_id=event_id, org_id=org_id)
    return event.to_dict()
