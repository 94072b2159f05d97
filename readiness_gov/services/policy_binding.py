"""
Policy Binding Resolver — which ruleset governs a shift, or a hard stop.

Every station assigned to a shift must belong to an OrgUnit, and every
such unit must have exactly one active UnitPolicy. The result is a tagged
union that callers must branch on:

    PolicyBinding          ok=True   station→unit, unit→policy maps
    PolicyBindingFailure   ok=False  LEGAL_STOP + UNIT_MISSING / POLICY_MISSING

A failure is never a GO. ``require_policy_binding`` raises ScopeError for
call sites that want an exception instead.

Snapshots: once binding succeeds, ``persist_policy_snapshots`` records a
content hash of each applied policy against the shift. Idempotent on
(shift_id, unit_id, version) and best-effort: a failed snapshot is logged
and never blocks readiness.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from readiness_gov.core.exceptions import LEGAL_STOP, ScopeError
from readiness_gov.models import db
from readiness_gov.models.policy import CONFIG_FIELDS, ShiftPolicySnapshot, UnitPolicy
from readiness_gov.models.roster import ShiftAssignment, Station

logger = logging.getLogger(__name__)

UNIT_MISSING = "UNIT_MISSING"
POLICY_MISSING = "POLICY_MISSING"


# ═════════════════════════════════════════════════════════════════════════════
# Result types
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BoundPolicy:
    """The active template bound to one unit."""
    unit_id: str
    template_id: str
    industry_type: str
    version: int
    configs: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "unit_id": self.unit_id,
            "template_id": self.template_id,
            "industry_type": self.industry_type,
            "version": self.version,
        }


@dataclass(frozen=True)
class PolicyBinding:
    shift_id: str
    policies_by_unit: dict[str, BoundPolicy] = field(default_factory=dict)
    station_to_unit: dict[str, str] = field(default_factory=dict)
    unit_ids: list[str] = field(default_factory=list)
    ok: bool = field(default=True, init=False)

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "shift_id": self.shift_id,
            "unit_ids": list(self.unit_ids),
            "station_to_unit": dict(self.station_to_unit),
            "policies": [p.to_dict() for p in self.policies_by_unit.values()],
        }


@dataclass(frozen=True)
class PolicyBindingFailure:
    shift_id: str
    reason_codes: list[str]
    missing_unit_station_ids: list[str] = field(default_factory=list)
    missing_policy_unit_ids: list[str] = field(default_factory=list)
    ok: bool = field(default=False, init=False)
    legitimacy_status: str = field(default=LEGAL_STOP, init=False)

    def to_error(self) -> ScopeError:
        return ScopeError(
            self.reason_codes,
            missing_unit_station_ids=self.missing_unit_station_ids,
            missing_policy_unit_ids=self.missing_policy_unit_ids,
            shift_id=self.shift_id,
        )

    def to_dict(self) -> dict:
        return {"ok": False, **self.to_error().to_dict()}


# ═════════════════════════════════════════════════════════════════════════════
# Resolution
# ═════════════════════════════════════════════════════════════════════════════

def _stations_in_shift(org_id: str, shift_id: str) -> list[str]:
    rows = (
        db.session.query(ShiftAssignment.station_id)
        .filter(ShiftAssignment.org_id == org_id, ShiftAssignment.shift_id == shift_id)
        .distinct()
        .all()
    )
    return sorted({r.station_id for r in rows if r.station_id})


def _units_for_stations(org_id: str, station_ids: list[str]) -> tuple[dict[str, str], list[str]]:
    rows = (
        db.session.query(Station.id, Station.org_unit_id)
        .filter(Station.org_id == org_id, Station.id.in_(station_ids))
        .all()
    )
    station_to_unit = {r.id: r.org_unit_id for r in rows if r.org_unit_id}
    missing = [sid for sid in station_ids if sid not in station_to_unit]
    return station_to_unit, missing


def active_policies_for_units(unit_ids: list[str]) -> dict[str, BoundPolicy]:
    """Latest active policy per unit: effective_from DESC, then created_at DESC."""
    if not unit_ids:
        return {}
    rows = (
        UnitPolicy.query
        .filter(UnitPolicy.unit_id.in_(unit_ids), UnitPolicy.active.is_(True))
        .order_by(UnitPolicy.effective_from.desc(), UnitPolicy.created_at.desc())
        .all()
    )
    by_unit: dict[str, BoundPolicy] = {}
    for row in rows:
        if row.unit_id in by_unit or row.template is None:
            continue
        by_unit[row.unit_id] = BoundPolicy(
            unit_id=row.unit_id,
            template_id=row.template_id,
            industry_type=row.template.industry_type,
            version=row.template.version,
            configs=row.template.configs(),
        )
    return by_unit


def resolve_policy_binding(org_id: str, shift_id: str) -> PolicyBinding | PolicyBindingFailure:
    """Resolve station → unit → active policy for every station in the shift.

    A shift with no assigned stations binds trivially (empty maps).
    """
    station_ids = _stations_in_shift(org_id, shift_id)
    if not station_ids:
        return PolicyBinding(shift_id=shift_id)

    station_to_unit, missing_unit = _units_for_stations(org_id, station_ids)
    if missing_unit:
        # Partially resolved scopes are not looked up further.
        logger.warning(
            "Policy binding blocked: stations without unit",
            extra={"org_id": org_id, "shift_id": shift_id, "reason_codes": [UNIT_MISSING, POLICY_MISSING]},
        )
        return PolicyBindingFailure(
            shift_id=shift_id,
            reason_codes=[UNIT_MISSING, POLICY_MISSING],
            missing_unit_station_ids=missing_unit,
        )

    unit_ids = sorted(set(station_to_unit.values()))
    policies = active_policies_for_units(unit_ids)
    missing_policy = [uid for uid in unit_ids if uid not in policies]
    if missing_policy:
        logger.warning(
            "Policy binding blocked: units without active policy",
            extra={"org_id": org_id, "shift_id": shift_id, "reason_codes": [POLICY_MISSING]},
        )
        return PolicyBindingFailure(
            shift_id=shift_id,
            reason_codes=[POLICY_MISSING],
            missing_policy_unit_ids=missing_policy,
        )

    return PolicyBinding(
        shift_id=shift_id,
        policies_by_unit=policies,
        station_to_unit=station_to_unit,
        unit_ids=unit_ids,
    )


def require_policy_binding(org_id: str, shift_id: str) -> PolicyBinding:
    """Like resolve_policy_binding, but raises ScopeError on failure."""
    result = resolve_policy_binding(org_id, shift_id)
    if not result.ok:
        raise result.to_error()
    return result


# ═════════════════════════════════════════════════════════════════════════════
# Snapshots
# ═════════════════════════════════════════════════════════════════════════════

def hash_policy_config(configs: dict) -> str:
    """SHA-256 hex of the four config blobs, canonical JSON (sorted keys)."""
    payload = {name: configs.get(name) for name in CONFIG_FIELDS}
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _snapshot_exists(shift_id: str, unit_id: str, version: int) -> bool:
    return ShiftPolicySnapshot.query.filter_by(
        shift_id=shift_id, unit_id=unit_id, version=version,
    ).first() is not None


def persist_policy_snapshots(binding: PolicyBinding) -> int:
    """Write one snapshot per (shift, unit, version) not already stored.

    Each unit commits on its own, so a conflict on one unit does not lose
    the others. Returns the number of new rows. Never raises for storage
    failures.
    """
    if not binding.ok or not binding.policies_by_unit:
        return 0

    written = 0
    for policy in binding.policies_by_unit.values():
        try:
            if _snapshot_exists(binding.shift_id, policy.unit_id, policy.version):
                continue
            db.session.add(ShiftPolicySnapshot(
                shift_id=binding.shift_id,
                unit_id=policy.unit_id,
                industry_type=policy.industry_type,
                version=policy.version,
                config_hash=hash_policy_config(policy.configs),
            ))
            db.session.commit()
        except SQLAlchemyError:
            # A concurrent writer may have inserted the same (shift, unit, version).
            db.session.rollback()
            logger.warning(
                "Policy snapshot write skipped",
                extra={"shift_id": binding.shift_id, "unit_id": policy.unit_id},
                exc_info=True,
            )
            continue
        written += 1
    return written
