"""
Shared pytest fixtures for the SOPFlow test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_location: factory for Client + Location rows of a given business type
    - location / rank_rent_location / gmb_location: ready-made location ids
    - engine: WorkflowEngine over db.session with a fixed clock
"""

from datetime import datetime, timezone

import pytest

from sopflow import create_app
from sopflow.models import db as _db
from sopflow.models.account import Client, Location
from sopflow.models.enums import BusinessType
from sopflow.services.workflow_engine import WorkflowEngine
from sopflow.services.workflow_store import WorkflowStore

FIXED_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


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


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def make_location():
    """Return a factory creating a committed Client + Location; yields the location id."""

    def _make(business_type=BusinessType.TRADITIONAL, name="Downtown Plumbing"):
        client = Client(name=f"{name} LLC", business_type=business_type)
        _db.session.add(client)
        _db.session.flush()
        location = Location(client_id=client.id, name=name, address="1 Main St")
        _db.session.add(location)
        _db.session.commit()
        return location.id

    return _make


@pytest.fixture()
def location(make_location):
    return make_location(BusinessType.TRADITIONAL, "Traditional Location")


@pytest.fixture()
def rank_rent_location(make_location):
    return make_location(BusinessType.RANK_RENT, "Rank Rent Location")


@pytest.fixture()
def gmb_location(make_location):
    return make_location(BusinessType.GMB_ONLY, "GMB Location")


@pytest.fixture()
def engine():
    """WorkflowEngine bound to the test session, clock pinned to FIXED_NOW."""
    return WorkflowEngine(WorkflowStore(_db.session), clock=lambda: FIXED_NOW)
