"""
Operational Readiness & Decision Governance
Flask Application Factory.

Usage:
    from readiness_gov import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from readiness_gov.config import config
from readiness_gov.models import db
from readiness_gov.middleware.logging_config import configure_logging
from readiness_gov.middleware.timing import init_request_timing
from readiness_gov.middleware.tenant_context import init_tenant_context
from readiness_gov.core.exceptions import (
    AuditWriteError,
    InvalidStateError,
    ConflictError,
    NotFoundError,
    ScopeError,
    UpstreamDegradedError,
    ValidationError,
)
from readiness_gov.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def _register_error_handlers(app):
    """Map the core exception hierarchy onto JSON error responses.

    Blueprints raise; they never hand-map these types themselves.
    """

    @app.errorhandler(ValidationError)
    def _validation(exc):
        return api_error(E.VALIDATION_INVALID, str(exc), details=exc.details)

    @app.errorhandler(NotFoundError)
    def _not_found(exc):
        logger.info("Not found: %s", exc)
        return api_error(E.NOT_FOUND, f"{exc.resource} not found")

    @app.errorhandler(ConflictError)
    def _conflict(exc):
        return api_error(E.CONFLICT_DUPLICATE, str(exc))

    @app.errorhandler(InvalidStateError)
    def _invalid_state(exc):
        return api_error(E.CONFLICT_STATE, str(exc))

    @app.errorhandler(ScopeError)
    def _scope(exc):
        # Fail closed: a scope failure is a blocking outcome, never a GO.
        return api_error(E.SCOPE_POLICY_BINDING, str(exc), details=exc.to_dict())

    @app.errorhandler(UpstreamDegradedError)
    def _upstream(exc):
        return api_error(
            E.UPSTREAM_DEGRADED, str(exc),
            details={"pillar": exc.pillar, "reason_code": exc.reason_code},
        )

    @app.errorhandler(AuditWriteError)
    def _audit(exc):
        logger.error("Audit write failed: %s", exc)
        return api_error(E.AUDIT_WRITE_FAILED, "Governance audit write failed")

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed", details={"path": request.path})

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"limit": str(e.description)})

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    cfg = config[config_name]
    app.config.from_object(cfg() if config_name == "production" else cfg)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing + tenant context ──────────────────────────────────
    init_request_timing(app)
    init_tenant_context(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from readiness_gov.models import decision as _decision_models    # noqa: F401
    from readiness_gov.models import governance as _governance_models  # noqa: F401
    from readiness_gov.models import induction as _induction_models    # noqa: F401
    from readiness_gov.models import policy as _policy_models          # noqa: F401
    from readiness_gov.models import roster as _roster_models          # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from readiness_gov.blueprints.audit_bp import audit_bp
    from readiness_gov.blueprints.decision_bp import decision_bp
    from readiness_gov.blueprints.health_bp import health_bp
    from readiness_gov.blueprints.induction_bp import induction_bp
    from readiness_gov.blueprints.readiness_bp import readiness_bp

    app.register_blueprint(readiness_bp)
    app.register_blueprint(decision_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(induction_bp)
    app.register_blueprint(health_bp)

    _register_error_handlers(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    from readiness_gov.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)

    return app
