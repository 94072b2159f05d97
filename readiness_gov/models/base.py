"""
OrgScopedModel — Abstract base class for org-scoped governance tables.

Organisations are resolved outside this service (tenant context is consumed
as a black box), so ``org_id`` is a plain indexed UUID string rather than a
foreign key. This adds:
  - org_id column with index
  - query_for_org(org_id) classmethod
  - shared id / timestamp defaults
"""

import uuid
from datetime import datetime, timezone

from readiness_gov.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class OrgScopedModel(db.Model):
    """Abstract base for org-scoped tables."""
    __abstract__ = True

    org_id = db.Column(db.String(36), nullable=False, index=True)

    @classmethod
    def query_for_org(cls, org_id):
        """Return a query filtered by org_id."""
        return cls.query.filter_by(org_id=org_id)
