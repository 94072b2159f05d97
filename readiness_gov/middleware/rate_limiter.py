"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in readiness_gov/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from readiness_gov.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

# Governance mutations (decisions, induction writes)
WRITE_LIMIT = "60/minute"
# Readiness fans out to two evaluators per call
READINESS_LIMIT = "120/minute"
# Audit trail browsing
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in ("decision", "induction"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("readiness")
    if bp:
        limiter.limit(READINESS_LIMIT)(bp)

    bp = app.blueprints.get("audit")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    # Health probes are exempt
    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — write: %s, readiness: %s, read: %s",
        WRITE_LIMIT, READINESS_LIMIT, READ_LIMIT,
    )
