"""
Employee legitimacy — may this person work a station at all.

Inputs are already-evaluated compliance item statuses (VALID / WARNING /
ILLEGAL), the induction gate status, and a disciplinary flag. Priority:

    induction RESTRICTED           → RESTRICTED
    disciplinary restriction       → ILLEGAL  [DISCIPLINARY_RESTRICTION]
    any compliance ILLEGAL         → ILLEGAL  [COMPLIANCE_EXPIRED]
    any compliance WARNING         → WARNING  (COMPLIANCE_EXPIRING)
    otherwise                      → GO
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from readiness_gov.core.exceptions import ValidationError
from readiness_gov.models.induction import INDUCTION_RESTRICTED
from readiness_gov.services import induction_service


class LegitimacyStatus(str, Enum):
    GO = "GO"
    WARNING = "WARNING"
    ILLEGAL = "ILLEGAL"
    RESTRICTED = "RESTRICTED"


COMPLIANCE_VALID = "VALID"
COMPLIANCE_WARNING = "WARNING"
COMPLIANCE_ILLEGAL = "ILLEGAL"
_COMPLIANCE_STATUSES = frozenset({COMPLIANCE_VALID, COMPLIANCE_WARNING, COMPLIANCE_ILLEGAL})


@dataclass(frozen=True)
class LegitimacyResult:
    status: LegitimacyStatus
    blockers: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "legitimacy_status": self.status.value,
            "blockers": list(self.blockers),
            "warnings": list(self.warnings),
        }


def evaluate_employee_legitimacy(
    compliance_statuses: list[str],
    induction_status: str,
    disciplinary_restriction: bool = False,
) -> LegitimacyResult:
    if induction_status == INDUCTION_RESTRICTED:
        return LegitimacyResult(LegitimacyStatus.RESTRICTED)
    if disciplinary_restriction:
        return LegitimacyResult(LegitimacyStatus.ILLEGAL, blockers=["DISCIPLINARY_RESTRICTION"])
    if COMPLIANCE_ILLEGAL in compliance_statuses:
        return LegitimacyResult(LegitimacyStatus.ILLEGAL, blockers=["COMPLIANCE_EXPIRED"])
    if COMPLIANCE_WARNING in compliance_statuses:
        return LegitimacyResult(LegitimacyStatus.WARNING, warnings=["COMPLIANCE_EXPIRING"])
    return LegitimacyResult(LegitimacyStatus.GO)


def evaluate_for_employee(
    org_id: str,
    site_id: str | None,
    employee_id: str,
    compliance_statuses=None,
    disciplinary_restriction=False,
) -> dict:
    """Consult the induction gate, then evaluate. Read-only."""
    statuses = []
    for raw in compliance_statuses or []:
        value = str(raw).strip().upper()
        if value not in _COMPLIANCE_STATUSES:
            raise ValidationError(
                f"compliance status must be one of {', '.join(sorted(_COMPLIANCE_STATUSES))}",
                details={"compliance_statuses": raw},
            )
        statuses.append(value)

    induction_status = induction_service.get_induction_status_for_legitimacy(org_id, site_id, employee_id)
    result = evaluate_employee_legitimacy(statuses, induction_status, bool(disciplinary_restriction))
    return {
        "employee_id": employee_id,
        "induction_status": induction_status,
        **result.to_dict(),
        "compliance": {
            "illegal_count": statuses.count(COMPLIANCE_ILLEGAL),
            "warning_count": statuses.count(COMPLIANCE_WARNING),
        },
    }
