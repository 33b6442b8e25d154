"""
Shared pytest fixtures for the DWM Platform test suite.

Provides:
    - app: Flask application (session-scoped)
    - session: Per-test DB reset (rollback + recreate + tier re-seed, autouse)
    - client: Flask test client (function-scoped)
    - demo_data: Loads the demo workspace into the fresh schema
"""

import pytest

from dwm import create_app
from dwm.models import db as _db
from dwm.services.seed_service import ensure_default_tiers, seed_demo_data


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(autouse=True)
def session(app):
    """Per-test: open app context, start from an empty schema with the three tiers."""
    with app.app_context():
        _db.session.remove()
        _db.drop_all()
        _db.create_all()
        ensure_default_tiers()
        yield
        _db.session.rollback()
        _db.session.remove()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def demo_data():
    """Load the demo roles, departments, SOPs, modules and tasks."""
    return seed_demo_data()
