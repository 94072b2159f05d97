"""
Execution decision surfaces — the domain entry points on top of the ledger.

    Shift readiness     decision_type = target_type = "shift_readiness"
                        ACKNOWLEDGED | OVERRIDE | ESCALATE | STOP
    Station issue       target_type "station_shift"
                        ACKNOWLEDGED | OVERRIDDEN | DEFERRED | RESOLVED,
                        or a quick action recorded as "acknowledged_station_issue"
    Line shift gap      decision_type "resolve_no_go", target_type "line_shift"

Each call: derive target id → (binding check) → ledger upsert → audit event.
The ledger row and the audit row are separate commit units; both are
idempotent, so a retried request re-converges on one row and one event.
"""

from __future__ import annotations

import logging

from flask import current_app

from readiness_gov.core.exceptions import NotFoundError, ScopeError, ValidationError
from readiness_gov.models.governance import OUTCOME_BLOCKED
from readiness_gov.models.roster import Shift
from readiness_gov.services import decision_ledger, governance_audit
from readiness_gov.services.decision_identity import (
    line_shift_target_id,
    shift_readiness_target_id,
    station_shift_target_id,
)
from readiness_gov.services.policy_binding import require_policy_binding
from readiness_gov.utils.helpers import clean_text, normalize_shift_code, parse_shift_date

logger = logging.getLogger(__name__)

# ── Shift readiness ─────────────────────────────────────────────────────────
SHIFT_READINESS = "shift_readiness"
READINESS_DECISIONS = ("ACKNOWLEDGED", "OVERRIDE", "ESCALATE", "STOP")
# Decisions that assert the shift may run need a resolvable ruleset.
BINDING_REQUIRED_DECISIONS = frozenset({"ACKNOWLEDGED", "OVERRIDE"})
DEFAULT_READINESS_DECISION = "ACKNOWLEDGED"

# ── Station issue ───────────────────────────────────────────────────────────
STATION_SHIFT = "station_shift"
STATION_DECISION_TYPES = ("ACKNOWLEDGED", "OVERRIDDEN", "DEFERRED", "RESOLVED")
STATION_ACTIONS = ("acknowledged", "plan_training", "swap", "escalate")
STATION_ACTION_DECISION_TYPE = "acknowledged_station_issue"
ISSUE_TYPES = ("NO_GO", "WARNING", "GO", "UNSTAFFED", "ILLEGAL")
DEFAULT_ISSUE_TYPE = "NO_GO"

# ── Line shift gap ──────────────────────────────────────────────────────────
LINE_SHIFT = "line_shift"
LINE_DECISION_TYPE = "resolve_no_go"
LINE_ACTIONS = ("swap_operator", "call_in", "accept_risk", "escalate", "acknowledged")
DEFAULT_LINE_ACTION = "accept_risk"


def _note(value) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("note must be a string", details={"note": "invalid"})
    max_len = current_app.config.get("DECISION_NOTE_MAX_LENGTH", 500)
    if len(value) > max_len:
        raise ValidationError(f"note must be at most {max_len} characters", details={"note": "too_long"})
    return value.strip()


def _record_and_audit(*, action, org_id, site_id, actor_user_id, decision_type, target_type,
                      target_id, reason, root_cause, actions, readiness_status=None):
    """Ledger upsert, then one audit event per ledger state.

    The event key is the row id plus its version. A retried request leaves
    the row unchanged, so it lands on the same key and is a duplicate; a
    real change (including a return to an earlier value, or a fresh row
    after a supersede) gets a new key. A retry after a failed audit write
    re-appends the missing event.
    """
    row, created = decision_ledger.record_decision(
        org_id, site_id, decision_type, target_type, target_id,
        reason=reason, root_cause=root_cause, actions=actions, actor_user_id=actor_user_id,
    )
    governance_audit.append_event(
        org_id=org_id,
        site_id=site_id,
        actor_user_id=actor_user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        readiness_status=readiness_status,
        meta={
            "decision_id": row.id,
            "version": row.version,
            "decision_type": decision_type,
            "actions": actions,
        },
        idempotency_key=governance_audit.build_idempotency_key(
            action, org_id, target_id, row.id, f"v{row.version}"),
    )
    return row, created


# ═════════════════════════════════════════════════════════════════════════════
# Shift readiness decision
# ═════════════════════════════════════════════════════════════════════════════

def _readiness_payload(row) -> dict:
    stored = (row.actions or {}).get("decision")
    # Unknown stored values read back as the weakest class.
    decision = stored if stored in READINESS_DECISIONS else DEFAULT_READINESS_DECISION
    return {
        "id": row.id,
        "decision": decision,
        "note": row.reason or "",
        "created_at": row.created_at.isoformat() if row.created_at else "",
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
        "created_by": row.created_by,
    }


def _get_shift(org_id: str, shift_id: str) -> Shift:
    shift = Shift.query_for_org(org_id).filter_by(id=shift_id).first()
    if shift is None:
        raise NotFoundError(resource="Shift", resource_id=shift_id, org_id=org_id)
    return shift


def get_shift_readiness_decision(org_id: str, site_id: str | None, shift_id: str) -> dict | None:
    target_id = shift_readiness_target_id(org_id, site_id, shift_id)
    row = decision_ledger.get_active_decision(org_id, SHIFT_READINESS, SHIFT_READINESS, target_id)
    return _readiness_payload(row) if row else None


def record_shift_readiness_decision(
    org_id: str,
    site_id: str | None,
    shift_id: str,
    decision: str,
    note: str | None = None,
    actor_user_id: str | None = None,
) -> dict:
    """Record ACKNOWLEDGED / OVERRIDE / ESCALATE / STOP for one shift.

    Raises:
        ValidationError: decision outside the enum, note too long.
        NotFoundError: shift not in this org.
        ScopeError: ACKNOWLEDGED / OVERRIDE on a shift whose policy binding fails.
    """
    shift_id = clean_text(shift_id)
    if not shift_id:
        raise ValidationError("shift_id is required", details={"shift_id": "required"})
    value = (clean_text(decision) or "").upper()
    if value not in READINESS_DECISIONS:
        raise ValidationError(
            f"decision must be one of: {', '.join(READINESS_DECISIONS)}",
            details={"decision": decision},
        )
    note = _note(note)
    _get_shift(org_id, shift_id)
    target_id = shift_readiness_target_id(org_id, site_id, shift_id)

    policies = []
    if value in BINDING_REQUIRED_DECISIONS:
        try:
            binding = require_policy_binding(org_id, shift_id)
        except ScopeError as exc:
            governance_audit.append_event_best_effort(
                org_id=org_id,
                site_id=site_id,
                actor_user_id=actor_user_id,
                action="POLICY_BINDING_BLOCKED",
                target_type=SHIFT_READINESS,
                target_id=target_id,
                outcome=OUTCOME_BLOCKED,
                legitimacy_status=exc.legitimacy_status,
                reason_codes=exc.reason_codes,
                meta={"attempted_decision": value, **exc.to_dict()},
                idempotency_key=governance_audit.build_idempotency_key(
                    "POLICY_BINDING_BLOCKED", org_id, target_id, value, ",".join(exc.reason_codes)),
            )
            raise
        policies = [p.to_dict() for p in binding.policies_by_unit.values()]

    row, created = _record_and_audit(
        action="SHIFT_READINESS_DECISION",
        org_id=org_id,
        site_id=site_id,
        actor_user_id=actor_user_id,
        decision_type=SHIFT_READINESS,
        target_type=SHIFT_READINESS,
        target_id=target_id,
        reason=note,
        root_cause={"type": SHIFT_READINESS, "shift_id": shift_id, "policy": policies},
        actions={"decision": value},
    )
    return {"decision": _readiness_payload(row), "target_id": target_id, "created": created}


# ═════════════════════════════════════════════════════════════════════════════
# Station issue decision
# ═════════════════════════════════════════════════════════════════════════════

def normalize_issue_type(value) -> str:
    raw = (clean_text(value) or "").upper()
    return raw if raw in ISSUE_TYPES else DEFAULT_ISSUE_TYPE


def record_station_issue_decision(
    org_id: str,
    site_id: str | None,
    data: dict,
    actor_user_id: str | None = None,
) -> dict:
    """Record a decision about one station's issue on one (date, shift).

    ``data`` keys: date, shift_code, station_id, issue_type, decision_type
    or action, note.
    """
    shift_date = parse_shift_date(data.get("date"))
    shift_code = normalize_shift_code(data.get("shift_code"))
    station_id = clean_text(data.get("station_id"))
    if not station_id:
        raise ValidationError("station_id is required", details={"station_id": "required"})
    issue_type = normalize_issue_type(data.get("issue_type"))
    note = _note(data.get("note"))

    decision_type = (clean_text(data.get("decision_type")) or "").upper()
    action = (clean_text(data.get("action")) or "").lower()
    chosen = None
    if decision_type in STATION_DECISION_TYPES:
        pass
    elif action in STATION_ACTIONS:
        decision_type = STATION_ACTION_DECISION_TYPE
        chosen = action
    else:
        raise ValidationError(
            f"decision_type must be one of {', '.join(STATION_DECISION_TYPES)} "
            f"or action one of {', '.join(STATION_ACTIONS)}",
            details={"decision_type": data.get("decision_type"), "action": data.get("action")},
        )

    target_id = station_shift_target_id(org_id, site_id, shift_date, shift_code, station_id, issue_type)
    root_cause = {
        "type": "station_issue",
        "org_id": org_id,
        "site_id": site_id,
        "station_id": station_id,
        "shift_date": shift_date.isoformat(),
        "shift_code": shift_code,
        "issue_type": issue_type,
        "notes": note,
    }
    actions = {"note": note, "resolved": decision_type == "RESOLVED", "chosen": chosen}

    row, created = _record_and_audit(
        action="STATION_ISSUE_DECISION",
        org_id=org_id,
        site_id=site_id,
        actor_user_id=actor_user_id,
        decision_type=decision_type,
        target_type=STATION_SHIFT,
        target_id=target_id,
        reason=note,
        root_cause=root_cause,
        actions=actions,
        readiness_status=issue_type,
    )
    return {"decision": row.to_dict(), "target_id": target_id, "created": created}


# ═════════════════════════════════════════════════════════════════════════════
# Line shift gap decision
# ═════════════════════════════════════════════════════════════════════════════

def normalize_line_action(value) -> str:
    # Unrecognised actions fall back to accepting the risk (observed behaviour).
    raw = (clean_text(value) or "").lower()
    return raw if raw in LINE_ACTIONS else DEFAULT_LINE_ACTION


def record_line_shift_decision(
    org_id: str,
    site_id: str | None,
    data: dict,
    actor_user_id: str | None = None,
) -> dict:
    """Record how a NO_GO gap on a line for one (date, shift) is being handled."""
    shift_date = parse_shift_date(data.get("date"))
    shift_code = normalize_shift_code(data.get("shift_code"))
    line = clean_text(data.get("line"))
    if not line:
        raise ValidationError("line is required", details={"line": "required"})
    chosen = normalize_line_action(data.get("action"))
    note = _note(data.get("note"))

    target_id = line_shift_target_id(org_id, site_id, shift_date, shift_code, line)
    row, created = _record_and_audit(
        action="LINE_SHIFT_DECISION",
        org_id=org_id,
        site_id=site_id,
        actor_user_id=actor_user_id,
        decision_type=LINE_DECISION_TYPE,
        target_type=LINE_SHIFT,
        target_id=target_id,
        reason=note,
        root_cause={
            "type": LINE_SHIFT,
            "line": line,
            "shift_date": shift_date.isoformat(),
            "shift_code": shift_code,
        },
        actions={"chosen": chosen, "note": note},
    )
    return {"decision": row.to_dict(), "target_id": target_id, "created": created}


# ═════════════════════════════════════════════════════════════════════════════
# Ledger maintenance
# ═════════════════════════════════════════════════════════════════════════════

def supersede(org_id: str, decision_id: str, actor_user_id: str | None = None) -> dict:
    row = decision_ledger.supersede_decision(org_id, decision_id, actor_user_id)
    governance_audit.append_event(
        org_id=org_id,
        site_id=row.site_id,
        actor_user_id=actor_user_id,
        action="DECISION_SUPERSEDE",
        target_type=row.target_type,
        target_id=row.target_id,
        meta={"decision_id": row.id, "decision_type": row.decision_type},
        idempotency_key=governance_audit.build_idempotency_key(
            "DECISION_SUPERSEDE", org_id, row.target_id, row.id),
    )
    return row.to_dict()
