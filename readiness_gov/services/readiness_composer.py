"""
Readiness Composer — the single place where "can this shift run" is decided.

Pure and total over (LegalFlag × OpsFlag). No database, no network: the
flags arrive already resolved from the two evaluators.

Rules:
    LEGAL_NO_GO                        → NO_GO   (legal veto is absolute)
    OPS_NO_GO                          → NO_GO
    LEGAL_WARNING or OPS_WARNING       → WARNING
    both GO                            → GO

Reason codes: one per non-GO flag, legal first, then ops.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class LegalFlag(str, Enum):
    GO = "LEGAL_GO"
    WARNING = "LEGAL_WARNING"
    NO_GO = "LEGAL_NO_GO"


class OpsFlag(str, Enum):
    GO = "OPS_GO"
    WARNING = "OPS_WARNING"
    NO_GO = "OPS_NO_GO"


class OverallStatus(str, Enum):
    GO = "GO"
    WARNING = "WARNING"
    NO_GO = "NO_GO"


@dataclass(frozen=True)
class ReadinessComposition:
    legal: LegalFlag
    ops: OpsFlag
    status: OverallStatus
    reason_codes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "legal_flag": self.legal.value,
            "ops_flag": self.ops.value,
            "status": self.status.value,
            "reason_codes": list(self.reason_codes),
        }


def parse_legal_flag(value) -> LegalFlag | None:
    """Return the LegalFlag for a raw evaluator value, or None if unrecognised."""
    try:
        return LegalFlag(value)
    except ValueError:
        return None


def parse_ops_flag(value) -> OpsFlag | None:
    """Return the OpsFlag for a raw evaluator value, or None if unrecognised."""
    try:
        return OpsFlag(value)
    except ValueError:
        return None


def compose_overall_status(legal: LegalFlag, ops: OpsFlag) -> OverallStatus:
    legal = LegalFlag(legal)
    ops = OpsFlag(ops)
    if legal is LegalFlag.NO_GO:
        return OverallStatus.NO_GO
    if ops is OpsFlag.NO_GO:
        return OverallStatus.NO_GO
    if legal is LegalFlag.WARNING or ops is OpsFlag.WARNING:
        return OverallStatus.WARNING
    return OverallStatus.GO


def compose_reason_codes(legal: LegalFlag, ops: OpsFlag) -> list[str]:
    codes = []
    legal = LegalFlag(legal)
    ops = OpsFlag(ops)
    if legal is not LegalFlag.GO:
        codes.append(legal.value)
    if ops is not OpsFlag.GO:
        codes.append(ops.value)
    return codes


def compose(legal: LegalFlag, ops: OpsFlag) -> ReadinessComposition:
    return ReadinessComposition(
        legal=LegalFlag(legal),
        ops=OpsFlag(ops),
        status=compose_overall_status(legal, ops),
        reason_codes=compose_reason_codes(legal, ops),
    )
