"""
Induction / checkpoint gate.

Covers:
  - Required set = active org-wide + site checkpoints, ordered
  - Enroll → RESTRICTED with all required remaining
  - All-but-one completed stays RESTRICTED; last completion clears in the same call
  - Re-completion and repeated enrollment idempotent, re-enrollment after clearance resets
  - Legacy "no row = CLEARED" and no-site rules
  - Lazy clearance on read after a checkpoint is deactivated
  - Governance events for enrollment and clearance
"""

import pytest

from conftest import ORG_ID, SITE_ID, USER_ID
from readiness_gov.core.exceptions import ConflictError, NotFoundError, ValidationError
from readiness_gov.models.governance import GovernanceEvent
from readiness_gov.models.induction import EmployeeInduction, EmployeeInductionCompletion
from readiness_gov.services import induction_service as svc

EMP = "emp-42"


def _checkpoint(code, site_id=SITE_ID, sort_order=0):
    return svc.create_checkpoint(
        ORG_ID, {"code": code, "name": f"Checkpoint {code}", "sort_order": sort_order},
        site_id=site_id, actor_user_id=USER_ID,
    )


@pytest.fixture()
def checkpoints():
    """Two site checkpoints plus one org-wide checkpoint."""
    return [
        _checkpoint("SAFETY", site_id=None, sort_order=1),
        _checkpoint("PPE", sort_order=2),
        _checkpoint("BADGE", sort_order=2),
    ]


class TestCheckpoints:

    def test_list_orders_by_sort_order_then_code(self, checkpoints):
        codes = [c["code"] for c in svc.list_checkpoints(ORG_ID, SITE_ID)]
        assert codes == ["SAFETY", "BADGE", "PPE"]

    def test_list_without_site_is_org_wide_only(self, checkpoints):
        assert [c["code"] for c in svc.list_checkpoints(ORG_ID, None)] == ["SAFETY"]

    def test_other_site_checkpoints_excluded(self, checkpoints):
        _checkpoint("FORKLIFT", site_id="other-site")
        assert "FORKLIFT" not in [c["code"] for c in svc.list_checkpoints(ORG_ID, SITE_ID)]

    def test_duplicate_code_conflicts(self, checkpoints):
        with pytest.raises(ConflictError):
            _checkpoint("PPE")

    def test_same_code_other_site_allowed(self, checkpoints):
        assert _checkpoint("PPE", site_id="other-site")["code"] == "PPE"

    def test_code_required(self):
        with pytest.raises(ValidationError):
            svc.create_checkpoint(ORG_ID, {"name": "No code"}, site_id=SITE_ID)

    def test_deactivated_checkpoint_not_listed(self, checkpoints):
        svc.set_checkpoint_active(ORG_ID, checkpoints[1]["id"], False, USER_ID)
        assert "PPE" not in [c["code"] for c in svc.list_checkpoints(ORG_ID, SITE_ID)]

    def test_set_active_other_org_not_found(self, checkpoints):
        with pytest.raises(NotFoundError):
            svc.set_checkpoint_active("other-org", checkpoints[0]["id"], False)

    def test_repeated_deactivation_records_one_update(self, checkpoints):
        svc.set_checkpoint_active(ORG_ID, checkpoints[1]["id"], False, USER_ID)
        result = svc.set_checkpoint_active(ORG_ID, checkpoints[1]["id"], False, USER_ID)
        assert result["revision"] == 1
        assert GovernanceEvent.query.filter_by(
            action="INDUCTION_CHECKPOINT_UPDATE", target_id=checkpoints[1]["id"]).count() == 1

    def test_each_toggle_records_its_own_update(self, checkpoints):
        cp_id = checkpoints[1]["id"]
        for active in (False, True, False):
            svc.set_checkpoint_active(ORG_ID, cp_id, active, USER_ID)
        events = GovernanceEvent.query.filter_by(action="INDUCTION_CHECKPOINT_UPDATE", target_id=cp_id).all()
        assert len(events) == 3
        assert sorted(e.meta["revision"] for e in events) == [1, 2, 3]

    def test_setting_unchanged_value_records_nothing(self, checkpoints):
        result = svc.set_checkpoint_active(ORG_ID, checkpoints[1]["id"], True, USER_ID)
        assert result["revision"] == 0
        assert GovernanceEvent.query.filter_by(action="INDUCTION_CHECKPOINT_UPDATE").count() == 0


class TestStateMachine:

    def test_enroll_is_restricted_with_everything_remaining(self, checkpoints):
        result = svc.enroll_employee(ORG_ID, SITE_ID, EMP, USER_ID)
        assert result == {
            "enrolled": True,
            "status": "RESTRICTED",
            "required_count": 3,
            "completed_count": 0,
            "remaining": ["SAFETY", "BADGE", "PPE"],
        }

    def test_all_but_one_stays_restricted(self, checkpoints):
        svc.enroll_employee(ORG_ID, SITE_ID, EMP, USER_ID)
        svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, checkpoints[0]["id"], USER_ID)
        result = svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, checkpoints[1]["id"], USER_ID)
        assert result["status"] == "RESTRICTED"
        assert result["remaining"] == ["BADGE"]
        assert result["completed_count"] == 2

    def test_last_completion_clears_in_same_call(self, checkpoints):
        svc.enroll_employee(ORG_ID, SITE_ID, EMP, USER_ID)
        for cp in checkpoints[:-1]:
            svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, cp["id"], USER_ID)
        result = svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, checkpoints[-1]["id"], USER_ID)
        assert result["status"] == "CLEARED"
        assert result["remaining"] == []
        assert svc.get_induction_status_for_legitimacy(ORG_ID, SITE_ID, EMP) == "CLEARED"
        assert GovernanceEvent.query.filter_by(action="INDUCTION_CLEARED", target_id=EMP).count() == 1

    def test_recompletion_is_idempotent(self, checkpoints):
        svc.enroll_employee(ORG_ID, SITE_ID, EMP, USER_ID)
        svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, checkpoints[0]["id"], USER_ID)
        svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, checkpoints[0]["id"], USER_ID)
        assert EmployeeInductionCompletion.query.filter_by(employee_id=EMP).count() == 1
        assert GovernanceEvent.query.filter_by(action="INDUCTION_CHECKPOINT_COMPLETE").count() == 1

    def test_reenroll_resets_cleared(self, checkpoints):
        svc.enroll_employee(ORG_ID, SITE_ID, EMP, USER_ID)
        for cp in checkpoints:
            svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, cp["id"], USER_ID)
        _checkpoint("NEW_RULE")

        result = svc.enroll_employee(ORG_ID, SITE_ID, EMP, USER_ID)
        assert result["status"] == "RESTRICTED"
        assert result["remaining"] == ["NEW_RULE"]
        assert svc.get_induction_status_for_legitimacy(ORG_ID, SITE_ID, EMP) == "RESTRICTED"
        assert GovernanceEvent.query.filter_by(action="INDUCTION_ENROLL", target_id=EMP).count() == 2

    def test_repeated_enroll_keeps_enrollment_and_one_event(self, checkpoints):
        svc.enroll_employee(ORG_ID, SITE_ID, EMP, USER_ID)
        svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, checkpoints[0]["id"], USER_ID)
        first = EmployeeInduction.query.filter_by(employee_id=EMP).one().enrolled_at

        result = svc.enroll_employee(ORG_ID, SITE_ID, EMP, USER_ID)
        assert result["completed_count"] == 1
        assert EmployeeInduction.query.filter_by(employee_id=EMP).one().enrolled_at == first
        assert GovernanceEvent.query.filter_by(action="INDUCTION_ENROLL", target_id=EMP).count() == 1

    def test_empty_required_set_never_clears(self):
        result = svc.enroll_employee(ORG_ID, SITE_ID, EMP, USER_ID)
        assert result["status"] == "RESTRICTED"
        assert svc.get_employee_induction(ORG_ID, SITE_ID, EMP)["status"] == "RESTRICTED"

    def test_deactivation_is_picked_up_lazily_on_read(self, checkpoints):
        svc.enroll_employee(ORG_ID, SITE_ID, EMP, USER_ID)
        svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, checkpoints[0]["id"], USER_ID)
        svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, checkpoints[1]["id"], USER_ID)
        svc.set_checkpoint_active(ORG_ID, checkpoints[2]["id"], False, USER_ID)

        assert svc.get_induction_status_for_legitimacy(ORG_ID, SITE_ID, EMP) == "RESTRICTED"
        result = svc.get_employee_induction(ORG_ID, SITE_ID, EMP)
        assert result["status"] == "CLEARED"
        assert result["required_count"] == 2

    def test_cleared_does_not_revert_when_requirement_added(self, checkpoints):
        svc.enroll_employee(ORG_ID, SITE_ID, EMP, USER_ID)
        for cp in checkpoints:
            svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, cp["id"], USER_ID)
        _checkpoint("NEW_RULE")
        result = svc.get_employee_induction(ORG_ID, SITE_ID, EMP)
        assert result["status"] == "CLEARED"
        assert result["remaining"] == ["NEW_RULE"]

    def test_complete_requires_enrollment(self, checkpoints):
        with pytest.raises(ValidationError):
            svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, checkpoints[0]["id"], USER_ID)

    def test_complete_rejects_other_site_checkpoint(self, checkpoints):
        foreign = _checkpoint("FORKLIFT", site_id="other-site")
        svc.enroll_employee(ORG_ID, SITE_ID, EMP, USER_ID)
        with pytest.raises(NotFoundError):
            svc.complete_checkpoint(ORG_ID, SITE_ID, EMP, foreign["id"], USER_ID)


class TestLegacyRules:

    def test_never_enrolled_is_cleared_with_zero_counts(self, checkpoints):
        assert svc.get_employee_induction(ORG_ID, SITE_ID, "legacy-emp") == {
            "enrolled": False,
            "status": "CLEARED",
            "required_count": 0,
            "completed_count": 0,
            "remaining": [],
        }
        assert svc.get_induction_status_for_legitimacy(ORG_ID, SITE_ID, "legacy-emp") == "CLEARED"

    @pytest.mark.parametrize("site_id", [None, ""])
    def test_no_site_is_cleared(self, checkpoints, site_id):
        assert svc.get_employee_induction(ORG_ID, site_id, EMP)["status"] == "CLEARED"
        assert svc.get_induction_status_for_legitimacy(ORG_ID, site_id, EMP) == "CLEARED"

    def test_enroll_requires_site(self):
        with pytest.raises(ValidationError):
            svc.enroll_employee(ORG_ID, None, EMP, USER_ID)
