"""
Policy binding models.

Models:
    - PolicyTemplate: versioned configuration blobs (opaque to the core).
    - UnitPolicy: binds a template to an OrgUnit with an effective date.
      The active binding per unit is the latest ``effective_from``,
      tie-broken by the latest ``created_at``, among rows with active=True.
    - ShiftPolicySnapshot: immutable record of which policy version applied
      to a shift; unique on (shift_id, unit_id, version).
"""

from readiness_gov.models import db
from readiness_gov.models.base import OrgScopedModel, _iso, _utcnow, _uuid

CONFIG_FIELDS = ("weight_config", "threshold_config", "penalty_config", "feasibility_config")


class PolicyTemplate(OrgScopedModel):
    __tablename__ = "policy_templates"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    industry_type = db.Column(db.String(50), nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)
    weight_config = db.Column(db.JSON, nullable=True)
    threshold_config = db.Column(db.JSON, nullable=True)
    penalty_config = db.Column(db.JSON, nullable=True)
    feasibility_config = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def configs(self) -> dict:
        return {name: getattr(self, name) for name in CONFIG_FIELDS}

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "industry_type": self.industry_type,
            "version": self.version,
            **self.configs(),
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<PolicyTemplate {self.industry_type} v{self.version}>"


class UnitPolicy(OrgScopedModel):
    __tablename__ = "unit_policies"
    __table_args__ = (
        db.Index("ix_unit_policies_active", "unit_id", "active", "effective_from"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    unit_id = db.Column(
        db.String(36),
        db.ForeignKey("org_units.id", ondelete="CASCADE"),
        nullable=False,
    )
    template_id = db.Column(
        db.String(36),
        db.ForeignKey("policy_templates.id", ondelete="CASCADE"),
        nullable=False,
    )
    active = db.Column(db.Boolean, nullable=False, default=True)
    effective_from = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    template = db.relationship("PolicyTemplate", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "unit_id": self.unit_id,
            "template_id": self.template_id,
            "active": self.active,
            "effective_from": _iso(self.effective_from),
            "created_at": _iso(self.created_at),
        }


class ShiftPolicySnapshot(db.Model):
    """Write-once record of the ruleset that governed a shift."""

    __tablename__ = "shift_policy_snapshots"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "unit_id", "version", name="uq_shift_policy_snapshot"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    shift_id = db.Column(
        db.String(36),
        db.ForeignKey("shifts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    unit_id = db.Column(db.String(36), nullable=False)
    industry_type = db.Column(db.String(50), nullable=False)
    version = db.Column(db.Integer, nullable=False)
    config_hash = db.Column(db.String(64), nullable=False, comment="sha256 of the four config blobs")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "unit_id": self.unit_id,
            "industry_type": self.industry_type,
            "version": self.version,
            "config_hash": self.config_hash,
            "created_at": _iso(self.created_at),
        }
