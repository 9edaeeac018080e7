"""
Shared pytest fixtures for the OGSM Manager test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_component: Direct-insert factory for OGSM components
    - chain: Objective -> Goal -> Strategy -> Measure fixture
"""

import pytest

from ogsm_manager import create_app
from ogsm_manager.models import db as _db
from ogsm_manager.models.ogsm import OGSMComponent


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
def make_component():
    """Insert a component straight into the database, bypassing validation."""

    def _make(component_type="objective", title=None, parent_id=None, order_index=0, **kw):
        component = OGSMComponent(
            component_type=component_type,
            title=title or f"{component_type.title()} {order_index}",
            parent_id=parent_id,
            order_index=order_index,
            **kw,
        )
        _db.session.add(component)
        _db.session.commit()
        return component

    return _make


@pytest.fixture()
def chain(make_component):
    """O -> G -> S -> M, returned as a dict of ids keyed by type."""
    o = make_component("objective", "Grow revenue")
    g = make_component("goal", "Revenue +10%", parent_id=o.id)
    s = make_component("strategy", "Enter new markets", parent_id=g.id)
    m = make_component("measure", "New-market revenue", parent_id=s.id)
    return {"objective": o.id, "goal": g.id, "strategy": s.id, "measure": m.id}
