"""
Execution decision endpoints.

Covers:
  - Shift readiness decision: idempotent upsert, one audit event per distinct submission
  - Binding-required decisions (ACKNOWLEDGED / OVERRIDE) blocked with 409 and a BLOCKED event
  - STOP / ESCALATE recorded without a policy binding
  - Station issue and line shift decisions
  - Listing, superseding and tenant isolation
  - Audit write failure surfaces as AUDIT_WRITE_FAILED
"""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from conftest import OTHER_ORG_ID, SITE_ID, USER_ID, make_shift, make_station
from readiness_gov.models import db
from readiness_gov.models.decision import ExecutionDecision
from readiness_gov.models.governance import GovernanceEvent
from readiness_gov.services import governance_audit
from readiness_gov.services.decision_identity import line_shift_target_id, station_shift_target_id

READINESS_URL = "/api/v1/readiness/decision"


def _post_readiness(client, headers, shift_id, decision, note=None):
    body = {"shift_id": shift_id, "decision": decision}
    if note is not None:
        body["note"] = note
    return client.post(READINESS_URL, json=body, headers=headers)


def _unbound_shift():
    shift = make_shift([make_station(unit=None)])
    db.session.commit()
    return shift


class TestShiftReadinessDecision:

    def test_first_record_is_201(self, client, headers, bound_shift):
        res = _post_readiness(client, headers, bound_shift["shift"].id, "acknowledged", "ok to run")
        assert res.status_code == 201
        body = res.get_json()
        assert body["created"] is True
        assert body["decision"]["decision"] == "ACKNOWLEDGED"
        assert body["decision"]["note"] == "ok to run"
        assert body["decision"]["created_by"] == USER_ID

    def test_repeat_is_idempotent(self, client, headers, bound_shift):
        shift_id = bound_shift["shift"].id
        first = _post_readiness(client, headers, shift_id, "ACKNOWLEDGED", "same")
        second = _post_readiness(client, headers, shift_id, "ACKNOWLEDGED", "same")
        assert second.status_code == 200
        assert second.get_json()["created"] is False
        assert first.get_json()["decision"]["id"] == second.get_json()["decision"]["id"]
        assert ExecutionDecision.query.filter_by(status="active").count() == 1
        assert GovernanceEvent.query.filter_by(action="SHIFT_READINESS_DECISION").count() == 1

    def test_changed_decision_updates_same_row(self, client, headers, bound_shift):
        shift_id = bound_shift["shift"].id
        _post_readiness(client, headers, shift_id, "ACKNOWLEDGED")
        res = _post_readiness(client, headers, shift_id, "ESCALATE", "supervisor called")
        assert res.get_json()["decision"]["decision"] == "ESCALATE"
        assert ExecutionDecision.query.count() == 1
        assert GovernanceEvent.query.filter_by(action="SHIFT_READINESS_DECISION").count() == 2

        _post_readiness(client, headers, shift_id, "ACKNOWLEDGED")
        assert GovernanceEvent.query.filter_by(action="SHIFT_READINESS_DECISION").count() == 3

    def test_policy_snapshot_recorded_in_root_cause(self, client, headers, bound_shift):
        _post_readiness(client, headers, bound_shift["shift"].id, "OVERRIDE")
        row = ExecutionDecision.query.one()
        assert row.root_cause["shift_id"] == bound_shift["shift"].id
        assert row.root_cause["policy"][0]["template_id"] == bound_shift["template"].id

    def test_get_returns_active_decision(self, client, headers, bound_shift):
        shift_id = bound_shift["shift"].id
        res = client.get(f"{READINESS_URL}?shift_id={shift_id}", headers=headers)
        assert res.get_json() == {"ok": True, "decision": None}

        _post_readiness(client, headers, shift_id, "STOP")
        decision = client.get(f"{READINESS_URL}?shift_id={shift_id}", headers=headers).get_json()["decision"]
        assert decision["decision"] == "STOP"

    def test_unknown_stored_decision_reads_as_acknowledged(self, client, headers, bound_shift):
        shift_id = bound_shift["shift"].id
        _post_readiness(client, headers, shift_id, "STOP")
        row = ExecutionDecision.query.one()
        row.actions = {"decision": "LEGACY_GO"}
        db.session.commit()

        decision = client.get(f"{READINESS_URL}?shift_id={shift_id}", headers=headers).get_json()["decision"]
        assert decision["decision"] == "ACKNOWLEDGED"

    @pytest.mark.parametrize("decision", ["ACKNOWLEDGED", "OVERRIDE"])
    def test_binding_failure_blocks(self, client, headers, decision):
        shift = _unbound_shift()
        res = _post_readiness(client, headers, shift.id, decision)
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "SCOPE_POLICY_BINDING"
        assert body["details"]["reason_codes"] == ["UNIT_MISSING", "POLICY_MISSING"]
        assert ExecutionDecision.query.count() == 0
        blocked = GovernanceEvent.query.filter_by(action="POLICY_BINDING_BLOCKED").one()
        assert blocked.outcome == "BLOCKED"
        assert blocked.legitimacy_status == "LEGAL_STOP"

    @pytest.mark.parametrize("decision", ["STOP", "ESCALATE"])
    def test_stop_and_escalate_skip_binding(self, client, headers, decision):
        shift = _unbound_shift()
        res = _post_readiness(client, headers, shift.id, decision)
        assert res.status_code == 201
        assert GovernanceEvent.query.filter_by(action="POLICY_BINDING_BLOCKED").count() == 0

    def test_invalid_decision_is_400(self, client, headers, bound_shift):
        res = _post_readiness(client, headers, bound_shift["shift"].id, "MAYBE")
        assert res.status_code == 400

    def test_note_too_long_is_400(self, client, headers, bound_shift):
        res = _post_readiness(client, headers, bound_shift["shift"].id, "STOP", "x" * 501)
        assert res.status_code == 400

    def test_unknown_shift_is_404(self, client, headers):
        assert _post_readiness(client, headers, "missing", "STOP").status_code == 404

    def test_other_org_shift_is_404(self, client, headers):
        shift = make_shift(org_id=OTHER_ORG_ID)
        db.session.commit()
        assert _post_readiness(client, headers, shift.id, "STOP").status_code == 404

    def test_non_object_body_is_400(self, client, headers):
        res = client.post(READINESS_URL, json=["STOP"], headers=headers)
        assert res.status_code == 400


class TestStationIssueDecision:

    def _body(self, **overrides):
        body = {
            "date": "2026-01-05",
            "shift_code": "night",
            "station_id": "st-7",
            "issue_type": "no_go",
            "decision_type": "ACKNOWLEDGED",
            "note": "known gap",
        }
        body.update(overrides)
        return body

    def test_record_and_repeat(self, client, headers):
        first = client.post("/api/v1/decisions/station-issue", json=self._body(), headers=headers)
        second = client.post("/api/v1/decisions/station-issue", json=self._body(), headers=headers)
        assert first.status_code == 201
        assert second.status_code == 200
        decision = first.get_json()["decision"]
        assert decision["target_type"] == "station_shift"
        assert decision["root_cause"]["shift_code"] == "Night"
        assert decision["root_cause"]["issue_type"] == "NO_GO"
        assert first.get_json()["target_id"] == station_shift_target_id(
            headers["X-Org-Id"], SITE_ID, "2026-01-05", "Night", "st-7", "NO_GO")

    def test_quick_action(self, client, headers):
        body = self._body(decision_type=None, action="swap")
        res = client.post("/api/v1/decisions/station-issue", json=body, headers=headers)
        decision = res.get_json()["decision"]
        assert decision["decision_type"] == "acknowledged_station_issue"
        assert decision["actions"]["chosen"] == "swap"

    def test_resolved_flag(self, client, headers):
        res = client.post("/api/v1/decisions/station-issue",
                          json=self._body(decision_type="resolved"), headers=headers)
        assert res.get_json()["decision"]["actions"]["resolved"] is True

    def test_unknown_issue_type_defaults_to_no_go(self, client, headers):
        res = client.post("/api/v1/decisions/station-issue",
                          json=self._body(issue_type="weird"), headers=headers)
        assert res.get_json()["decision"]["root_cause"]["issue_type"] == "NO_GO"

    def test_neither_decision_nor_action_is_400(self, client, headers):
        res = client.post("/api/v1/decisions/station-issue",
                          json=self._body(decision_type="nope"), headers=headers)
        assert res.status_code == 400

    def test_missing_station_is_400(self, client, headers):
        res = client.post("/api/v1/decisions/station-issue",
                          json=self._body(station_id=""), headers=headers)
        assert res.status_code == 400


class TestLineShiftDecision:

    def test_record(self, client, headers):
        body = {"date": "2026-01-05", "shift_code": "Day", "line": "L1", "action": "call_in"}
        res = client.post("/api/v1/decisions/line-shift", json=body, headers=headers)
        assert res.status_code == 201
        data = res.get_json()
        assert data["decision"]["decision_type"] == "resolve_no_go"
        assert data["decision"]["actions"]["chosen"] == "call_in"
        assert data["target_id"] == line_shift_target_id(headers["X-Org-Id"], SITE_ID, "2026-01-05", "Day", "L1")

    def test_unknown_action_accepts_risk(self, client, headers):
        body = {"date": "2026-01-05", "shift_code": "Day", "line": "L1", "action": "pray"}
        res = client.post("/api/v1/decisions/line-shift", json=body, headers=headers)
        assert res.get_json()["decision"]["actions"]["chosen"] == "accept_risk"

    def test_missing_line_is_400(self, client, headers):
        body = {"date": "2026-01-05", "shift_code": "Day"}
        assert client.post("/api/v1/decisions/line-shift", json=body, headers=headers).status_code == 400

    def test_return_to_earlier_action_is_audited(self, client, headers):
        body = {"date": "2026-01-05", "shift_code": "Day", "line": "L1"}
        for action in ("call_in", "swap_operator", "call_in"):
            res = client.post("/api/v1/decisions/line-shift", json={**body, "action": action}, headers=headers)
        assert res.get_json()["decision"]["version"] == 3
        events = GovernanceEvent.query.filter_by(action="LINE_SHIFT_DECISION").all()
        assert sorted(e.meta["version"] for e in events) == [1, 2, 3]
        assert ExecutionDecision.query.count() == 1

    def test_identical_retry_is_one_event(self, client, headers):
        body = {"date": "2026-01-05", "shift_code": "Day", "line": "L1", "action": "call_in"}
        client.post("/api/v1/decisions/line-shift", json=body, headers=headers)
        res = client.post("/api/v1/decisions/line-shift", json=body, headers=headers)
        assert res.get_json()["decision"]["version"] == 1
        assert GovernanceEvent.query.filter_by(action="LINE_SHIFT_DECISION").count() == 1

    def test_audit_write_failure_is_500_and_retry_recovers(self, client, headers):
        body = {"date": "2026-01-05", "shift_code": "Day", "line": "L1", "action": "call_in"}
        fake_db = MagicMock()
        fake_db.session.commit.side_effect = OperationalError("INSERT", {}, Exception("disk I/O error"))
        with patch.object(governance_audit, "db", fake_db):
            res = client.post("/api/v1/decisions/line-shift", json=body, headers=headers)
        assert res.status_code == 500
        assert res.get_json()["code"] == "AUDIT_WRITE_FAILED"
        assert GovernanceEvent.query.count() == 0

        res = client.post("/api/v1/decisions/line-shift", json=body, headers=headers)
        assert res.status_code == 200
        assert GovernanceEvent.query.filter_by(action="LINE_SHIFT_DECISION").count() == 1


class TestListAndSupersede:

    def _line(self, client, headers, line):
        body = {"date": "2026-01-05", "shift_code": "Day", "line": line}
        return client.post("/api/v1/decisions/line-shift", json=body, headers=headers).get_json()

    def test_list_filters(self, client, headers):
        a = self._line(client, headers, "L1")
        b = self._line(client, headers, "L2")
        self._line(client, headers, "L3")

        res = client.get("/api/v1/decisions?target_type=line_shift", headers=headers)
        assert res.get_json()["total"] == 3

        res = client.get(
            f"/api/v1/decisions?target_id={a['target_id']},{b['target_id']}", headers=headers)
        assert {d["target_id"] for d in res.get_json()["decisions"]} == {a["target_id"], b["target_id"]}

        res = client.get(
            f"/api/v1/decisions?target_id={a['target_id']}&target_id={b['target_id']}", headers=headers)
        assert res.get_json()["total"] == 2

    def test_list_is_org_scoped(self, client, headers):
        self._line(client, headers, "L1")
        other = {**headers, "X-Org-Id": OTHER_ORG_ID}
        assert client.get("/api/v1/decisions", headers=other).get_json()["total"] == 0

    def test_supersede_then_record_again(self, client, headers):
        first = self._line(client, headers, "L1")
        decision_id = first["decision"]["id"]

        res = client.post(f"/api/v1/decisions/{decision_id}/supersede", headers=headers)
        assert res.status_code == 200
        assert res.get_json()["decision"]["status"] == "superseded"
        assert GovernanceEvent.query.filter_by(action="DECISION_SUPERSEDE").count() == 1

        again = self._line(client, headers, "L1")
        assert again["created"] is True
        assert again["decision"]["id"] != decision_id
        events = GovernanceEvent.query.filter_by(action="LINE_SHIFT_DECISION").all()
        assert sorted(e.meta["decision_id"] for e in events) == sorted([decision_id, again["decision"]["id"]])

    def test_supersede_twice_is_409(self, client, headers):
        decision_id = self._line(client, headers, "L1")["decision"]["id"]
        client.post(f"/api/v1/decisions/{decision_id}/supersede", headers=headers)
        res = client.post(f"/api/v1/decisions/{decision_id}/supersede", headers=headers)
        assert res.status_code == 409

    def test_supersede_other_org_is_404(self, client, headers):
        decision_id = self._line(client, headers, "L1")["decision"]["id"]
        other = {**headers, "X-Org-Id": OTHER_ORG_ID}
        res = client.post(f"/api/v1/decisions/{decision_id}/supersede", headers=other)
        assert res.status_code == 404
