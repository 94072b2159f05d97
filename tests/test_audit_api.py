"""Governance event read endpoints — org scoping, filters, single fetch."""

from conftest import ORG_ID, OTHER_ORG_ID, SITE_ID, USER_ID
from readiness_gov.models.governance import GovernanceEvent
from readiness_gov.services import governance_audit


def _event(action="INDUCTION_ENROLL", target_id="emp-1", org_id=ORG_ID, site_id=SITE_ID):
    key = governance_audit.build_idempotency_key(action, org_id, target_id)
    governance_audit.append_event(
        org_id=org_id,
        site_id=site_id,
        actor_user_id=USER_ID,
        action=action,
        target_type="employee_induction",
        target_id=target_id,
        idempotency_key=key,
    )
    return GovernanceEvent.query.filter_by(idempotency_key=key).one()


class TestGovernanceEventsApi:

    def test_list_filters_by_action(self, client, headers):
        _event("INDUCTION_ENROLL", "emp-1")
        _event("INDUCTION_CLEARED", "emp-1")
        res = client.get("/api/v1/governance/events?action=INDUCTION_CLEARED", headers=headers)
        body = res.get_json()
        assert res.status_code == 200
        assert body["total"] == 1
        assert body["events"][0]["action"] == "INDUCTION_CLEARED"

    def test_list_is_org_scoped(self, client, headers):
        _event(org_id=OTHER_ORG_ID)
        res = client.get("/api/v1/governance/events", headers=headers)
        assert res.get_json()["total"] == 0

    def test_get_single(self, client, headers):
        row = _event()
        res = client.get(f"/api/v1/governance/events/{row.id}", headers=headers)
        assert res.status_code == 200
        assert res.get_json()["event"]["actor_user_id"] == USER_ID

    def test_get_other_org_is_404(self, client, headers):
        row = _event(org_id=OTHER_ORG_ID)
        res = client.get(f"/api/v1/governance/events/{row.id}", headers=headers)
        assert res.status_code == 404
