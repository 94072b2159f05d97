"""
Governance audit model, keyed by idempotency.

Models:
    - GovernanceEvent: immutable, append-only history of governance actions.

``idempotency_key`` is unique: a second insert with the same key is the
same logical event and is reported as a duplicate, never stored twice.
"""

from readiness_gov.models import db
from readiness_gov.models.base import OrgScopedModel, _iso, _utcnow, _uuid

# ── Constants ────────────────────────────────────────────────────────────────

OUTCOME_RECORDED = "RECORDED"
OUTCOME_BLOCKED = "BLOCKED"

GOVERNANCE_ACTIONS = {
    # Decision ledger
    "SHIFT_READINESS_DECISION",
    "STATION_ISSUE_DECISION",
    "LINE_SHIFT_DECISION",
    "DECISION_SUPERSEDE",
    # Induction gate
    "INDUCTION_ENROLL",
    "INDUCTION_CHECKPOINT_COMPLETE",
    "INDUCTION_CLEARED",
    "INDUCTION_CHECKPOINT_CREATE",
    "INDUCTION_CHECKPOINT_UPDATE",
    # Policy binding
    "POLICY_BINDING_BLOCKED",
}


class GovernanceEvent(OrgScopedModel):
    """
    Immutable audit trail row for a governance-relevant mutation.

    One row per logical action instance. ``meta`` carries free-form
    context (before/after values, request route, …).
    """

    __tablename__ = "governance_events"
    __table_args__ = (
        db.Index("idx_gov_events_target", "target_type", "target_id"),
        db.Index("idx_gov_events_action", "action"),
        db.Index("idx_gov_events_ts", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    site_id = db.Column(db.String(36), nullable=True, index=True)
    actor_user_id = db.Column(db.String(36), nullable=True, index=True)

    # What happened, to what
    action = db.Column(db.String(60), nullable=False)
    target_type = db.Column(db.String(50), nullable=False)
    target_id = db.Column(db.String(64), nullable=True)

    # Outcome and the governance state it was taken under
    outcome = db.Column(db.String(30), nullable=False, default=OUTCOME_RECORDED)
    legitimacy_status = db.Column(db.String(30), nullable=True)
    readiness_status = db.Column(db.String(30), nullable=True)
    reason_codes = db.Column(db.JSON, nullable=False, default=list)
    meta = db.Column(db.JSON, nullable=False, default=dict)

    idempotency_key = db.Column(db.String(255), nullable=False, unique=True)

    # Timestamp (immutable)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "site_id": self.site_id,
            "actor_user_id": self.actor_user_id,
            "action": self.action,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "outcome": self.outcome,
            "legitimacy_status": self.legitimacy_status,
            "readiness_status": self.readiness_status,
            "reason_codes": list(self.reason_codes or []),
            "meta": self.meta or {},
            "idempotency_key": self.idempotency_key,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<GovernanceEvent {self.action} on {self.target_type}/{self.target_id}>"
