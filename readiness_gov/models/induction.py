"""
Induction / checkpoint gate models.

Models:
    - InductionCheckpoint: a mandatory onboarding step. site_id NULL = org-wide.
    - EmployeeInduction: per-employee-per-site status (RESTRICTED | CLEARED).
    - EmployeeInductionCompletion: one row per (employee, checkpoint) completed.

Business rules:
    - Enrollment (and re-enrollment) sets RESTRICTED and clears cleared_at.
    - RESTRICTED → CLEARED when every active required checkpoint for the site
      has a completion row. CLEARED never reverts on its own.
    - No EmployeeInduction row for a site is reported as CLEARED (legacy).
"""

from readiness_gov.models import db
from readiness_gov.models.base import OrgScopedModel, _iso, _utcnow, _uuid

INDUCTION_RESTRICTED = "RESTRICTED"
INDUCTION_CLEARED = "CLEARED"

VALID_INDUCTION_STATUSES = frozenset({INDUCTION_RESTRICTED, INDUCTION_CLEARED})


class InductionCheckpoint(OrgScopedModel):
    __tablename__ = "induction_checkpoints"
    __table_args__ = (
        db.UniqueConstraint("org_id", "site_id", "code", name="uq_induction_checkpoint_code"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    site_id = db.Column(db.String(36), nullable=True, index=True, comment="NULL = org-wide")
    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    stage = db.Column(db.String(50), nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    revision = db.Column(db.Integer, nullable=False, default=0, comment="Bumped on every is_active change")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "site_id": self.site_id,
            "code": self.code,
            "name": self.name,
            "stage": self.stage,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            "revision": self.revision,
        }

    def __repr__(self):
        return f"<InductionCheckpoint {self.code}>"


class EmployeeInduction(OrgScopedModel):
    __tablename__ = "employee_induction"
    __table_args__ = (
        db.UniqueConstraint("org_id", "site_id", "employee_id", name="uq_employee_induction_site"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    site_id = db.Column(db.String(36), nullable=False)
    employee_id = db.Column(db.String(36), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=INDUCTION_RESTRICTED)
    enrolled_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    cleared_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_by = db.Column(db.String(36), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "site_id": self.site_id,
            "employee_id": self.employee_id,
            "status": self.status,
            "enrolled_at": _iso(self.enrolled_at),
            "cleared_at": _iso(self.cleared_at),
        }

    def __repr__(self):
        return f"<EmployeeInduction {self.employee_id} {self.status}>"


class EmployeeInductionCompletion(OrgScopedModel):
    __tablename__ = "employee_induction_completions"
    __table_args__ = (
        db.UniqueConstraint("employee_id", "checkpoint_id", name="uq_induction_completion"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    site_id = db.Column(db.String(36), nullable=False)
    employee_id = db.Column(db.String(36), nullable=False, index=True)
    checkpoint_id = db.Column(
        db.String(36),
        db.ForeignKey("induction_checkpoints.id", ondelete="CASCADE"),
        nullable=False,
    )
    completed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    completed_by = db.Column(db.String(36), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "checkpoint_id": self.checkpoint_id,
            "completed_at": _iso(self.completed_at),
            "completed_by": self.completed_by,
        }
