"""
Shared pytest fixtures for the Service Assurance Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - standards / professions: active definitions
    - project: Pre-created Project entity (via the API)
    - add_history: factory for back-dated assessment ledger entries
"""

from datetime import datetime, timedelta, timezone

import pytest

from assurance import create_app
from assurance.models import db as _db
from assurance.models.assessment import AssessmentHistory
from assurance.models.definitions import Profession, ServiceStandard

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


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
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def standards():
    """Three active service standards, numbered 1..3."""
    rows = [
        ServiceStandard(number=1, name="Understand users and their needs"),
        ServiceStandard(number=2, name="Solve a whole problem for users"),
        ServiceStandard(number=3, name="Provide a joined up experience across all channels"),
    ]
    _db.session.add_all(rows)
    _db.session.commit()
    return rows


@pytest.fixture()
def professions():
    """Two active professions."""
    rows = [
        Profession(code="delivery", name="Delivery"),
        Profession(code="user-centred-design", name="User Centred Design"),
    ]
    _db.session.add_all(rows)
    _db.session.commit()
    return rows


@pytest.fixture()
def project(client):
    """Create and return a test Project via the API."""
    res = client.post("/api/v1/projects", json={
        "name": "Animal Health Platform",
        "status": "GREEN",
        "commentary": "On track",
        "phase": "Beta",
        "tags": ["Portfolio: Future Farming", "Type: Digital"],
    })
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def now():
    """Fixed reference time for ledger and insight tests."""
    return NOW


@pytest.fixture()
def add_history():
    """Factory: insert an assessment ledger entry ``days_ago`` before NOW."""

    def _add(project_id, standard_id, status, days_ago=0, profession_id=1, archived=False, **changes):
        entry = AssessmentHistory(
            project_id=project_id,
            standard_id=standard_id,
            profession_id=profession_id,
            timestamp=NOW - timedelta(days=days_ago),
            changed_by="Test",
            archived=archived,
        )
        payload = dict(changes)
        if status is not None:
            payload["status"] = {"from": "", "to": status}
        entry.changes = payload
        _db.session.add(entry)
        _db.session.commit()
        return entry

    return _add
