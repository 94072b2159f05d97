"""
Decision Ledger — current state of human governance decisions.

One active row per (decision_type, target_type, target_id). Recording a
decision for a target that already has an active row updates that row in
place: the first write fixes the record identity, the last write wins the
content. Every content change bumps ``version``; a write that carries the
row's current content is a no-op, so (id, version) names one audited state.

Concurrency:
    The read-then-write in ``record_decision`` can race. The partial unique
    index ``uq_execution_decisions_active_target`` is the serialisation
    point: an IntegrityError on insert means another request created the
    row first, so the loser re-reads it and applies its update there. The
    conflict never reaches the client.
"""

from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from readiness_gov.core.exceptions import InvalidStateError, NotFoundError
from readiness_gov.models import db
from readiness_gov.models.base import _utcnow
from readiness_gov.models.decision import STATUS_ACTIVE, STATUS_SUPERSEDED, ExecutionDecision

logger = logging.getLogger(__name__)


def _find_active(org_id, decision_type, target_type, target_id):
    return (
        ExecutionDecision.query_for_org(org_id)
        .filter_by(
            decision_type=decision_type,
            target_type=target_type,
            target_id=target_id,
            status=STATUS_ACTIVE,
        )
        .first()
    )


def _apply(row, *, site_id, reason, root_cause, actions, actor_user_id) -> bool:
    """Write the payload onto ``row``; False when it already holds exactly that."""
    incoming = {
        "site_id": row.site_id if site_id is None else site_id,
        "reason": reason,
        "root_cause": root_cause,
        "actions": actions,
        "created_by": actor_user_id,
    }
    if all(getattr(row, name) == value for name, value in incoming.items()):
        return False
    for name, value in incoming.items():
        setattr(row, name, value)
    row.version = (row.version or 1) + 1
    row.updated_at = _utcnow()
    return True


def record_decision(
    org_id: str,
    site_id: str | None,
    decision_type: str,
    target_type: str,
    target_id: str,
    *,
    reason: str | None = None,
    root_cause: dict | None = None,
    actions: dict | None = None,
    actor_user_id: str | None = None,
) -> tuple[ExecutionDecision, bool]:
    """Record a decision exactly once per target.

    Returns:
        (row, created) — ``created`` is False when an existing active row
        was updated, including when a concurrent insert won the race.
    """
    fields = {
        "site_id": site_id,
        "reason": reason,
        "root_cause": dict(root_cause or {}),
        "actions": dict(actions or {}),
        "actor_user_id": actor_user_id,
    }
    log_extra = {
        "org_id": org_id,
        "decision_type": decision_type,
        "target_type": target_type,
        "target_id": target_id,
    }

    existing = _find_active(org_id, decision_type, target_type, target_id)
    if existing is not None:
        if _apply(existing, **fields):
            db.session.commit()
            logger.info("Decision updated", extra={**log_extra, "decision_id": existing.id})
        else:
            logger.info("Decision unchanged", extra={**log_extra, "decision_id": existing.id})
        return existing, False

    row = ExecutionDecision(
        org_id=org_id,
        site_id=site_id,
        decision_type=decision_type,
        target_type=target_type,
        target_id=target_id,
        reason=reason,
        root_cause=fields["root_cause"],
        actions=fields["actions"],
        status=STATUS_ACTIVE,
        version=1,
        created_by=actor_user_id,
    )
    try:
        db.session.add(row)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        winner = _find_active(org_id, decision_type, target_type, target_id)
        if winner is None:
            raise
        if _apply(winner, **fields):
            db.session.commit()
        logger.info("Decision insert lost race; updated winner",
                    extra={**log_extra, "decision_id": winner.id})
        return winner, False

    logger.info("Decision recorded", extra={**log_extra, "decision_id": row.id})
    return row, True


def get_active_decision(org_id, decision_type, target_type, target_id) -> ExecutionDecision | None:
    return _find_active(org_id, decision_type, target_type, target_id)


def list_active_decisions(
    org_id: str,
    *,
    site_id: str | None = None,
    target_type: str | None = None,
    target_ids: list[str] | None = None,
    decision_type: str | None = None,
) -> list[ExecutionDecision]:
    """Active decisions for an org.

    ``site_id`` matches rows for that site and org-wide rows (site NULL).
    """
    q = ExecutionDecision.query_for_org(org_id).filter(ExecutionDecision.status == STATUS_ACTIVE)
    if site_id:
        q = q.filter(or_(ExecutionDecision.site_id == site_id, ExecutionDecision.site_id.is_(None)))
    if target_type:
        q = q.filter(ExecutionDecision.target_type == target_type)
    if decision_type:
        q = q.filter(ExecutionDecision.decision_type == decision_type)
    if target_ids is not None:
        if not target_ids:
            return []
        q = q.filter(ExecutionDecision.target_id.in_(target_ids))
    return q.order_by(ExecutionDecision.created_at.desc()).all()


def get_decision(org_id: str, decision_id: str) -> ExecutionDecision:
    row = db.session.get(ExecutionDecision, decision_id)
    if row is None or row.org_id != org_id:
        raise NotFoundError(resource="ExecutionDecision", resource_id=decision_id, org_id=org_id)
    return row


def supersede_decision(org_id: str, decision_id: str, actor_user_id: str | None = None) -> ExecutionDecision:
    """Retire an active decision so a fresh one can take its target."""
    row = get_decision(org_id, decision_id)
    if row.status != STATUS_ACTIVE:
        raise InvalidStateError("ExecutionDecision", row.status, "Only active decisions can be superseded")
    row.status = STATUS_SUPERSEDED
    row.updated_at = _utcnow()
    db.session.commit()
    logger.info(
        "Decision superseded",
        extra={
            "org_id": org_id,
            "decision_id": row.id,
            "target_type": row.target_type,
            "target_id": row.target_id,
            "user_id": actor_user_id,
        },
    )
    return row
