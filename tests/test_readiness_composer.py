"""
Readiness composer — pure (Legal × Ops) → (Overall, reason codes).

Covers:
  - All nine flag combinations
  - Legal veto, determinism, reason-code completeness and order
  - Flag parsing for raw evaluator values
"""

import itertools

import pytest

from readiness_gov.services.readiness_composer import (
    LegalFlag,
    OpsFlag,
    OverallStatus,
    compose,
    compose_overall_status,
    compose_reason_codes,
    parse_legal_flag,
    parse_ops_flag,
)

_EXPECTED = {
    (LegalFlag.GO, OpsFlag.GO): OverallStatus.GO,
    (LegalFlag.GO, OpsFlag.WARNING): OverallStatus.WARNING,
    (LegalFlag.GO, OpsFlag.NO_GO): OverallStatus.NO_GO,
    (LegalFlag.WARNING, OpsFlag.GO): OverallStatus.WARNING,
    (LegalFlag.WARNING, OpsFlag.WARNING): OverallStatus.WARNING,
    (LegalFlag.WARNING, OpsFlag.NO_GO): OverallStatus.NO_GO,
    (LegalFlag.NO_GO, OpsFlag.GO): OverallStatus.NO_GO,
    (LegalFlag.NO_GO, OpsFlag.WARNING): OverallStatus.NO_GO,
    (LegalFlag.NO_GO, OpsFlag.NO_GO): OverallStatus.NO_GO,
}


class TestOverallStatus:

    @pytest.mark.parametrize("legal,ops", list(itertools.product(LegalFlag, OpsFlag)))
    def test_matrix(self, legal, ops):
        assert compose_overall_status(legal, ops) is _EXPECTED[(legal, ops)]

    @pytest.mark.parametrize("ops", list(OpsFlag))
    def test_legal_no_go_vetoes_everything(self, ops):
        assert compose_overall_status(LegalFlag.NO_GO, ops) is OverallStatus.NO_GO

    def test_accepts_raw_string_values(self):
        assert compose_overall_status("LEGAL_WARNING", "OPS_GO") is OverallStatus.WARNING

    def test_repeat_calls_identical(self):
        first = compose(LegalFlag.WARNING, OpsFlag.NO_GO)
        second = compose(LegalFlag.WARNING, OpsFlag.NO_GO)
        assert first == second


class TestReasonCodes:

    def test_all_go_has_no_codes(self):
        assert compose_reason_codes(LegalFlag.GO, OpsFlag.GO) == []

    @pytest.mark.parametrize("legal,ops", list(itertools.product(LegalFlag, OpsFlag)))
    def test_every_non_go_flag_is_attributed(self, legal, ops):
        codes = compose_reason_codes(legal, ops)
        if compose_overall_status(legal, ops) is not OverallStatus.GO:
            assert codes
        if legal is not LegalFlag.GO:
            assert legal.value in codes
        if ops is not OpsFlag.GO:
            assert ops.value in codes
        assert len(codes) == len(set(codes))

    def test_legal_warning_plus_ops_no_go_is_legal_first(self):
        assert compose_reason_codes(LegalFlag.WARNING, OpsFlag.NO_GO) == ["LEGAL_WARNING", "OPS_NO_GO"]

    def test_composition_to_dict(self):
        body = compose(LegalFlag.GO, OpsFlag.WARNING).to_dict()
        assert body == {
            "legal_flag": "LEGAL_GO",
            "ops_flag": "OPS_WARNING",
            "status": "WARNING",
            "reason_codes": ["OPS_WARNING"],
        }


class TestFlagParsing:

    def test_known_values(self):
        assert parse_legal_flag("LEGAL_NO_GO") is LegalFlag.NO_GO
        assert parse_ops_flag("OPS_WARNING") is OpsFlag.WARNING

    @pytest.mark.parametrize("raw", [None, "", "GO", "legal_go", "OPS_GO"])
    def test_unknown_legal_values_are_none(self, raw):
        assert parse_legal_flag(raw) is None

    @pytest.mark.parametrize("raw", [None, "", "NO_GO", "LEGAL_GO"])
    def test_unknown_ops_values_are_none(self, raw):
        assert parse_ops_flag(raw) is None
