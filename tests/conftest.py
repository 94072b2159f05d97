"""
Shared pytest fixtures for the readiness governance test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - headers: Tenant context headers for API calls
    - bound_shift: a shift whose stations all resolve to an active policy
"""

from datetime import date

import pytest

from readiness_gov import create_app
from readiness_gov.models import db as _db
from readiness_gov.models.policy import PolicyTemplate, UnitPolicy
from readiness_gov.models.roster import OrgUnit, Shift, ShiftAssignment, Station

ORG_ID = "11111111-1111-4111-8111-111111111111"
OTHER_ORG_ID = "99999999-9999-4999-8999-999999999999"
SITE_ID = "22222222-2222-4222-8222-222222222222"
USER_ID = "33333333-3333-4333-8333-333333333333"
SHIFT_DATE = date(2026, 1, 5)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def headers():
    """Tenant context as the upstream auth proxy would forward it."""
    return {"X-Org-Id": ORG_ID, "X-Site-Id": SITE_ID, "X-User-Id": USER_ID}


# ── Roster / policy builders ─────────────────────────────────────────────


def make_unit(code="ASSY", org_id=ORG_ID):
    unit = OrgUnit(org_id=org_id, site_id=SITE_ID, code=code, name=f"Unit {code}")
    _db.session.add(unit)
    _db.session.flush()
    return unit


def make_policy(unit, version=1, effective_from=date(2025, 1, 1), active=True, **configs):
    template = PolicyTemplate(
        org_id=unit.org_id,
        industry_type=configs.pop("industry_type", "automotive"),
        version=version,
        weight_config=configs.get("weight_config", {"legal": 0.6, "ops": 0.4}),
        threshold_config=configs.get("threshold_config", {"warning": 0.8}),
        penalty_config=configs.get("penalty_config", {}),
        feasibility_config=configs.get("feasibility_config", {}),
    )
    _db.session.add(template)
    _db.session.flush()
    binding = UnitPolicy(
        org_id=unit.org_id,
        unit_id=unit.id,
        template_id=template.id,
        active=active,
        effective_from=effective_from,
    )
    _db.session.add(binding)
    _db.session.flush()
    return template


def make_station(unit=None, code="ST-01", line="L1", org_id=ORG_ID):
    station = Station(
        org_id=org_id,
        site_id=SITE_ID,
        org_unit_id=unit.id if unit else None,
        code=code,
        name=f"Station {code}",
        line=line,
    )
    _db.session.add(station)
    _db.session.flush()
    return station


def make_shift(stations=(), shift_code="Day", shift_date=SHIFT_DATE, org_id=ORG_ID):
    shift = Shift(org_id=org_id, site_id=SITE_ID, shift_date=shift_date, shift_code=shift_code)
    _db.session.add(shift)
    _db.session.flush()
    for n, station in enumerate(stations):
        _db.session.add(ShiftAssignment(
            org_id=org_id, shift_id=shift.id, station_id=station.id, employee_id=f"emp-{n}",
        ))
    _db.session.flush()
    return shift


@pytest.fixture()
def bound_shift():
    """Day shift with two stations in one unit that has an active policy."""
    unit = make_unit()
    template = make_policy(unit)
    stations = [make_station(unit, "ST-01"), make_station(unit, "ST-02")]
    shift = make_shift(stations)
    _db.session.commit()
    return {"shift": shift, "unit": unit, "template": template, "stations": stations}
