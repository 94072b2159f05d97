"""JSON error envelope for the governance API.

Every error leaves the service in one shape::

    {"ok": false, "error": "<message>", "code": "<E.*>", "details": {...}}

The HTTP status follows from the code, so handlers only pick a code.
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes.

    ERR_* are ordinary request faults. The unprefixed codes name governance
    outcomes a client is expected to act on (fix the policy setup, retry the
    evaluators, alert on a lost audit write).
    """

    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    NOT_FOUND = "ERR_NOT_FOUND"
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    RATE_LIMITED = "ERR_RATE_LIMITED"
    INTERNAL = "ERR_INTERNAL"

    SCOPE_POLICY_BINDING = "SCOPE_POLICY_BINDING"
    UPSTREAM_DEGRADED = "UPSTREAM_DEGRADED"
    AUDIT_WRITE_FAILED = "AUDIT_WRITE_FAILED"


HTTP_STATUS: dict[str, int] = {
    E.VALIDATION_INVALID: 400,
    E.UNAUTHENTICATED: 401,
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
    # Binding failure is a blocking outcome for the requested scope.
    E.SCOPE_POLICY_BINDING: 409,
    E.UPSTREAM_DEGRADED: 502,
    E.AUDIT_WRITE_FAILED: 500,
}


def api_error(code: str, message: str, details: dict | None = None):
    """Build the ``(response, status)`` pair for an error code."""
    body: dict = {"ok": False, "error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), HTTP_STATUS[code]
