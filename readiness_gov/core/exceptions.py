"""
Governance-core exception hierarchy.

Services raise these; the application factory maps them onto HTTP
responses once, so blueprints never translate them by hand.

Usage:
    from readiness_gov.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="ExecutionDecision", resource_id=decision_id)
    raise ValidationError("date must be YYYY-MM-DD", details={"date": raw})
"""

LEGAL_STOP = "LEGAL_STOP"


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the given scope.

    Used for BOTH genuinely missing records AND cross-org access attempts,
    so a 404 never confirms that another org's record exists.

    Args:
        resource: Human-readable model/entity name (e.g. "ExecutionDecision").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        org_id: Optional — the scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        org_id: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.org_id = org_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if org_id is not None:
            msg += f" (org={org_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is malformed or violates a business rule.

    Client-correctable. Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would create a genuine duplicate.

    Not used for retried governance writes, which are idempotent.
    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class ScopeError(Exception):
    """Policy binding could not be resolved for a unit of work.

    A hard stop: "no rules" must never be read as "rules say GO".

    Args:
        reason_codes: UNIT_MISSING and/or POLICY_MISSING.
        missing_unit_station_ids: Stations with no owning unit.
        missing_policy_unit_ids: Units with no active policy.
        shift_id: The shift whose binding failed, when known.
    """

    legitimacy_status = LEGAL_STOP

    def __init__(
        self,
        reason_codes: list[str],
        missing_unit_station_ids: list[str] | None = None,
        missing_policy_unit_ids: list[str] | None = None,
        shift_id: str | None = None,
    ) -> None:
        self.reason_codes = list(reason_codes)
        self.missing_unit_station_ids = list(missing_unit_station_ids or [])
        self.missing_policy_unit_ids = list(missing_policy_unit_ids or [])
        self.shift_id = shift_id
        super().__init__(f"Policy binding failed: {', '.join(self.reason_codes)}")

    def to_dict(self) -> dict:
        return {
            "legitimacy_status": self.legitimacy_status,
            "reason_codes": self.reason_codes,
            "missing_unit_station_ids": self.missing_unit_station_ids,
            "missing_policy_unit_ids": self.missing_policy_unit_ids,
            "shift_id": self.shift_id,
        }


class UpstreamDegradedError(Exception):
    """A compliance evaluator failed or returned an unusable body.

    Args:
        pillar: "legal" or "ops".
        reason_code: e.g. LEGAL_UPSTREAM_UNAUTHORIZED, OPS_UPSTREAM_INVALID.
    """

    def __init__(self, pillar: str, reason_code: str, message: str | None = None) -> None:
        self.pillar = pillar
        self.reason_code = reason_code
        super().__init__(message or f"{pillar} evaluator degraded: {reason_code}")


class AuditWriteError(Exception):
    """A governance event could not be appended.

    Fatal for the enclosing governance mutation: if the audit row cannot be
    written, the action did not happen from the governance point of view.
    """


class InvalidStateError(Exception):
    """The record exists but is not in a state that allows the operation.

    Maps to HTTP 409 (ERR_CONFLICT_STATE).
    """

    def __init__(self, resource: str, state: str, message: str | None = None) -> None:
        self.resource = resource
        self.state = state
        super().__init__(message or f"{resource} is {state}")
