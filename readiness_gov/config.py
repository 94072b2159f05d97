"""
Environment configuration for the readiness governance service.

APP_ENV picks one of the classes in ``config``; every setting can be
overridden from the environment. The evaluator settings name the two
external services that produce the Legal and Ops readiness flags.
"""

import os
import secrets

_INSTANCE_DIR = os.path.join(os.path.abspath(os.path.dirname(os.path.dirname(__file__))), "instance")

# Pooled engine options for server databases; SQLite in-memory cannot take them.
_POOL_OPTIONS = {
    "pool_pre_ping": True,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_recycle": 300,
    "pool_timeout": 20,
}


def _database_url(default=None):
    """DATABASE_URL with the legacy ``postgres://`` scheme rewritten for SQLAlchemy 2."""
    raw = os.getenv("DATABASE_URL", "")
    if not raw:
        return default
    return raw.replace("postgres://", "postgresql://", 1)


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = dict(_POOL_OPTIONS)

    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    LEGAL_EVALUATOR_URL = os.getenv("LEGAL_EVALUATOR_URL", "http://localhost:3000/api/compliance/matrix-v2")
    OPS_EVALUATOR_URL = os.getenv("OPS_EVALUATOR_URL", "http://localhost:3000/api/competence/matrix-v2")
    EVALUATOR_TIMEOUT_SECONDS = float(os.getenv("EVALUATOR_TIMEOUT_SECONDS", "10"))

    DECISION_NOTE_MAX_LENGTH = int(os.getenv("DECISION_NOTE_MAX_LENGTH", "500"))


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(f"sqlite:///{os.path.join(_INSTANCE_DIR, 'readiness_gov_dev.db')}")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    LEGAL_EVALUATOR_URL = "http://evaluators.test/legal"
    OPS_EVALUATOR_URL = "http://evaluators.test/ops"


class ProductionConfig(Config):
    """Requires DATABASE_URL and SECRET_KEY; CORS origins must be explicit."""

    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    # 30s statement timeout so a stuck query cannot hold a decision write open
    SQLALCHEMY_ENGINE_OPTIONS = {
        **_POOL_OPTIONS,
        "connect_args": {"options": "-c statement_timeout=30000"},
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
