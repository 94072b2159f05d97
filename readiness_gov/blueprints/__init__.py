"""
Operational Readiness & Decision Governance
Blueprint registry and shared request helpers.
"""

from flask import g, request

from readiness_gov.core.exceptions import ValidationError


def json_body() -> dict:
    """Return the JSON object body, or raise ValidationError."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def tenant():
    """(org_id, site_id, user_id) from the tenant context middleware."""
    return g.org_id, g.site_id, g.user_id
