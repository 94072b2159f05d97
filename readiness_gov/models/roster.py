"""
Roster models — the slice of the workforce schema that policy binding reads.

Models:
    - OrgUnit: organisational subdivision owning stations.
    - Station: a work position; ``org_unit_id`` NULL is a scope error at bind time.
    - Shift: one (site, date, shift_code[, line]) unit of work.
    - ShiftAssignment: employee ↔ station within a shift.

These tables are owned by the HR/roster CRUD surface; the governance core
only reads them.
"""

from readiness_gov.models import db
from readiness_gov.models.base import OrgScopedModel, _iso, _utcnow, _uuid


class OrgUnit(OrgScopedModel):
    __tablename__ = "org_units"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    site_id = db.Column(db.String(36), nullable=True, index=True)
    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "site_id": self.site_id,
            "code": self.code,
            "name": self.name,
        }

    def __repr__(self):
        return f"<OrgUnit {self.code}>"


class Station(OrgScopedModel):
    __tablename__ = "stations"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    site_id = db.Column(db.String(36), nullable=True, index=True)
    org_unit_id = db.Column(
        db.String(36),
        db.ForeignKey("org_units.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="NULL = not yet assigned to a unit; blocks policy binding",
    )
    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    line = db.Column(db.String(50), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "site_id": self.site_id,
            "org_unit_id": self.org_unit_id,
            "code": self.code,
            "name": self.name,
            "line": self.line,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<Station {self.code}>"


class Shift(OrgScopedModel):
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index("ix_shifts_scope", "org_id", "shift_date", "shift_code"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    site_id = db.Column(db.String(36), nullable=True, index=True)
    shift_date = db.Column(db.Date, nullable=False)
    shift_code = db.Column(db.String(20), nullable=False, comment="Day | Evening | Night | S1 | S2 | S3")
    line = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    assignments = db.relationship(
        "ShiftAssignment", backref="shift", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "site_id": self.site_id,
            "shift_date": _iso(self.shift_date),
            "shift_code": self.shift_code,
            "line": self.line,
        }

    def __repr__(self):
        return f"<Shift {self.shift_date} {self.shift_code}>"


class ShiftAssignment(OrgScopedModel):
    __tablename__ = "shift_assignments"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    shift_id = db.Column(
        db.String(36),
        db.ForeignKey("shifts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    station_id = db.Column(
        db.String(36),
        db.ForeignKey("stations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id = db.Column(db.String(36), nullable=True, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "station_id": self.station_id,
            "employee_id": self.employee_id,
        }
