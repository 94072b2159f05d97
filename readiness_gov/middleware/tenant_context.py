"""
Tenant Context Middleware — exposes the caller's org / site / user to routes.

Session handling and tenant resolution happen upstream (gateway / auth
proxy). This service consumes the result as three request headers:

    X-Org-Id   → g.org_id   (required on governance routes)
    X-Site-Id  → g.site_id  (optional)
    X-User-Id  → g.user_id  (required on governance routes)

Chain order:
  timing.py  →  tenant_context.py  →  route handler
"""

import logging

from flask import g, request

from readiness_gov.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip tenant context
TENANT_SKIP_PREFIXES = (
    "/api/v1/health",
)


def _header(name):
    value = (request.headers.get(name) or "").strip()
    return value or None


def init_tenant_context(app):
    """Register tenant context middleware as a before_request hook."""

    @app.before_request
    def _tenant_context():
        g.org_id = _header("X-Org-Id")
        g.site_id = _header("X-Site-Id")
        g.user_id = _header("X-User-Id")

        # Only process API requests
        if not request.path.startswith("/api/v1/"):
            return None

        for prefix in TENANT_SKIP_PREFIXES:
            if request.path.startswith(prefix):
                return None

        if request.method == "OPTIONS":
            return None

        if g.org_id is None or g.user_id is None:
            logger.warning(
                "Missing tenant context on %s %s", request.method, request.path,
                extra={"path": request.path, "org_id": g.org_id, "user_id": g.user_id},
            )
            return api_error(E.UNAUTHENTICATED, "Organisation and user context are required")

        return None

    logger.info("Tenant context middleware installed")
