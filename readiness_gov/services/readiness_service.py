"""
Shift readiness orchestration.

    validate scope ─▶ policy binding (every shift in scope) ─▶ snapshots
                 └─ blocked: LEGAL_STOP, no evaluator calls
    ─▶ legal ∥ ops evaluators ─▶ composer

Degraded pillars never default to GO: a failed or unparseable evaluator
marks its pillar ``supported: False`` with a reason code, and the overall
status is None.

No database transaction is held across the evaluator calls: binding and
snapshot writes commit before the fan-out starts.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from flask import current_app

from readiness_gov.core.exceptions import LEGAL_STOP, UpstreamDegradedError
from readiness_gov.integrations.evaluator_gateway import (
    PILLAR_LEGAL,
    PILLAR_OPS,
    EvaluatorScope,
    evaluator_gateway,
)
from readiness_gov.models.roster import Shift
from readiness_gov.services import policy_binding
from readiness_gov.services.readiness_composer import compose, parse_legal_flag, parse_ops_flag
from readiness_gov.utils.helpers import normalize_shift_code, parse_shift_date

logger = logging.getLogger(__name__)

SAMPLE_LIMIT = 10
LEGITIMACY_OK = "OK"

_PILLAR_PREFIX = {PILLAR_LEGAL: "LEGAL", PILLAR_OPS: "OPS"}


def upstream_reason_code(pillar: str, status_code: int | None) -> str:
    prefix = _PILLAR_PREFIX[pillar]
    if status_code in (401, 403):
        return f"{prefix}_UPSTREAM_UNAUTHORIZED"
    if status_code == 404:
        return f"{prefix}_UPSTREAM_NOT_FOUND"
    return f"{prefix}_UPSTREAM_ERROR"


def _invalid(pillar: str, message: str) -> UpstreamDegradedError:
    return UpstreamDegradedError(pillar, f"{_PILLAR_PREFIX[pillar]}_UPSTREAM_INVALID", message)


def parse_pillar(pillar: str, result):
    """Turn an EvaluatorResult into (flag, body) or raise UpstreamDegradedError."""
    if not result.ok:
        raise UpstreamDegradedError(pillar, upstream_reason_code(pillar, result.status_code), result.error)
    body = result.data or {}
    if body.get("ok") is not True:
        raise _invalid(pillar, "evaluator body did not report ok")
    if pillar == PILLAR_LEGAL:
        flag = parse_legal_flag(body.get("readiness_flag"))
    else:
        flag = parse_ops_flag(body.get("ops_readiness_flag"))
    if flag is None:
        raise _invalid(pillar, "evaluator returned an unrecognised flag")
    return flag, body


def _as_int(value) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _rows(body: dict, key: str) -> list[dict]:
    """Object rows of an evaluator list; anything else is skipped."""
    rows = body.get(key)
    if not isinstance(rows, list):
        return []
    return [r for r in rows if isinstance(r, dict)]


def _legal_samples(body: dict) -> list[dict]:
    rows = [r for r in _rows(body, "by_requirement") if _as_int(r.get("blocking_affected_employee_count")) > 0]
    return [
        {
            "requirement_code": r.get("requirement_code"),
            "requirement_name": r.get("requirement_name") or r.get("requirement_code"),
            "blocking_affected_employee_count": _as_int(r.get("blocking_affected_employee_count")),
        }
        for r in rows[:SAMPLE_LIMIT]
    ]


def _ops_samples(body: dict) -> list[dict]:
    rows = [s for s in _rows(body, "by_station") if s.get("status") == "OPS_NO_GO"]
    return [
        {"station_code": s.get("station_code"), "station_name": s.get("station_name") or s.get("station_code")}
        for s in rows[:SAMPLE_LIMIT]
    ]


def _shifts_in_scope(org_id, site_id, shift_date, shift_code) -> list[Shift]:
    q = Shift.query_for_org(org_id).filter(Shift.shift_date == shift_date, Shift.shift_code == shift_code)
    if site_id:
        q = q.filter(Shift.site_id == site_id)
    return q.order_by(Shift.id).all()


def _bind_scope(org_id, shifts):
    """Bind every shift; returns (bindings, first failure or None)."""
    bindings = []
    for shift in shifts:
        result = policy_binding.resolve_policy_binding(org_id, shift.id)
        if not result.ok:
            return bindings, result
        bindings.append(result)
    return bindings, None


def _policy_metadata(bindings) -> list[dict]:
    return [
        {"shift_id": b.shift_id, **p.to_dict()}
        for b in bindings
        for p in b.policies_by_unit.values()
    ]


def get_shift_readiness(org_id: str, site_id: str | None, date, shift_code) -> dict:
    """Composed readiness for one (date, shift_code) scope.

    Returns a payload with ``blocked`` True when policy binding failed
    (callers map that to 409) and ``degraded`` True when a pillar could
    not be evaluated.
    """
    shift_date = parse_shift_date(date)
    shift_code = normalize_shift_code(shift_code)
    base = {"date": shift_date.isoformat(), "shift_code": shift_code, "site_id": site_id}
    log_extra = {"org_id": org_id, "site_id": site_id}

    shifts = _shifts_in_scope(org_id, site_id, shift_date, shift_code)
    bindings, failure = _bind_scope(org_id, shifts)
    if failure is not None:
        scope_error = failure.to_error()
        logger.warning("Readiness blocked by policy binding",
                       extra={**log_extra, "shift_id": failure.shift_id, "reason_codes": failure.reason_codes})
        return {
            "ok": False,
            **base,
            "blocked": True,
            "degraded": False,
            "legitimacy_status": LEGAL_STOP,
            "scope_error": scope_error.to_dict(),
            "policy": [],
            "legal": None,
            "ops": None,
            "overall": {"status": None, "supported": False, "reason_codes": list(failure.reason_codes)},
            "samples": {"legal_blockers": [], "ops_no_go_stations": []},
        }

    for binding in bindings:
        policy_binding.persist_policy_snapshots(binding)

    scope = EvaluatorScope(org_id=org_id, site_id=site_id, date=base["date"], shift_code=shift_code)
    cfg = current_app.config
    timeout = cfg.get("EVALUATOR_TIMEOUT_SECONDS", 10)
    with ThreadPoolExecutor(max_workers=2) as pool:
        legal_future = pool.submit(evaluator_gateway.fetch_legal, scope, cfg.get("LEGAL_EVALUATOR_URL"), timeout)
        ops_future = pool.submit(evaluator_gateway.fetch_ops, scope, cfg.get("OPS_EVALUATOR_URL"), timeout)
        legal_result = legal_future.result()
        ops_result = ops_future.result()

    pillars = {}
    flags = {}
    bodies = {}
    for pillar, result in ((PILLAR_LEGAL, legal_result), (PILLAR_OPS, ops_result)):
        try:
            flag, body = parse_pillar(pillar, result)
        except UpstreamDegradedError as exc:
            logger.warning("Readiness pillar degraded: %s", exc.reason_code, extra=log_extra)
            pillars[pillar] = {"flag": None, "supported": False, "kpis": {}, "reason_code": exc.reason_code}
            continue
        flags[pillar] = flag
        bodies[pillar] = body
        pillars[pillar] = {"flag": flag.value, "supported": True, "kpis": body.get("kpis") or {}}

    payload = {
        "ok": True,
        **base,
        "blocked": False,
        "legitimacy_status": LEGITIMACY_OK,
        "policy": _policy_metadata(bindings),
        "legal": pillars[PILLAR_LEGAL],
        "ops": pillars[PILLAR_OPS],
    }

    if len(flags) < 2:
        payload["degraded"] = True
        payload["overall"] = {
            "status": None,
            "supported": False,
            "reason_codes": [p["reason_code"] for p in pillars.values() if not p["supported"]],
        }
        payload["samples"] = {
            "legal_blockers": _legal_samples(bodies[PILLAR_LEGAL]) if PILLAR_LEGAL in bodies else [],
            "ops_no_go_stations": _ops_samples(bodies[PILLAR_OPS]) if PILLAR_OPS in bodies else [],
        }
        return payload

    composition = compose(flags[PILLAR_LEGAL], flags[PILLAR_OPS])
    payload["degraded"] = False
    payload["overall"] = {
        "status": composition.status.value,
        "supported": True,
        "reason_codes": composition.reason_codes,
    }
    payload["samples"] = {
        "legal_blockers": _legal_samples(bodies[PILLAR_LEGAL]),
        "ops_no_go_stations": _ops_samples(bodies[PILLAR_OPS]),
    }
    logger.info("Readiness composed: %s", composition.status.value,
                extra={**log_extra, "reason_codes": composition.reason_codes})
    return payload
