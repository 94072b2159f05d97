"""
Decision ledger model — current state of human governance decisions.

Models:
    - ExecutionDecision: one row per decision subject while active.

The partial unique index on (decision_type, target_type, target_id)
WHERE status = 'active' is the serialisation point for concurrent
submissions; the ledger service treats a violation as "already recorded".
"""

from readiness_gov.models import db
from readiness_gov.models.base import OrgScopedModel, _iso, _utcnow, _uuid

STATUS_ACTIVE = "active"
STATUS_SUPERSEDED = "superseded"

VALID_STATUSES = frozenset({STATUS_ACTIVE, STATUS_SUPERSEDED})


class ExecutionDecision(OrgScopedModel):
    __tablename__ = "execution_decisions"
    __table_args__ = (
        db.Index(
            "uq_execution_decisions_active_target",
            "decision_type", "target_type", "target_id",
            unique=True,
            postgresql_where=db.text("status = 'active'"),
            sqlite_where=db.text("status = 'active'"),
        ),
        db.Index("ix_execution_decisions_lookup", "org_id", "target_type", "target_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    site_id = db.Column(db.String(36), nullable=True, index=True)
    decision_type = db.Column(
        db.String(50), nullable=False,
        comment="shift_readiness | ACKNOWLEDGED | OVERRIDDEN | resolve_no_go | …",
    )
    target_type = db.Column(
        db.String(50), nullable=False,
        comment="shift_readiness | station_shift | line_shift",
    )
    target_id = db.Column(db.String(64), nullable=False, comment="Derived, see decision_identity")
    reason = db.Column(db.Text, nullable=True)
    root_cause = db.Column(db.JSON, nullable=True)
    actions = db.Column(db.JSON, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE)
    version = db.Column(db.Integer, nullable=False, default=1, comment="Bumped on every content change")
    created_by = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "site_id": self.site_id,
            "decision_type": self.decision_type,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "reason": self.reason,
            "root_cause": self.root_cause or {},
            "actions": self.actions or {},
            "status": self.status,
            "version": self.version,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<ExecutionDecision {self.decision_type} {self.target_type}/{self.target_id} {self.status}>"
