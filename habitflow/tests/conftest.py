import pytest
from flask_jwt_extended import create_access_token

from habitflow import create_app
from habitflow.core.users.models import User
from habitflow.extensions import db


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API)")
    config.addinivalue_line("markers", "slow: Slow running tests")
    config.addinivalue_line("markers", "smoke: Quick smoke tests for CI")


@pytest.fixture()
def app():
    """
    Create a per-test app backed by a fresh in-memory database.

    The schema is built from model metadata and dropped afterwards, so no state
    leaks between tests.
    """
    app = create_app("testing")
    ctx = app.app_context()
    ctx.push()
    db.create_all()
    try:
        # Seed a default user for FK-dependent tests
        db.session.add(User(email="test@example.com", full_name="Test User"))
        db.session.commit()
        yield app
    finally:
        db.session.remove()
        db.drop_all()
        ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def user(app):
    return User.query.filter_by(email="test@example.com").one()


@pytest.fixture()
def other_user(app):
    other = User(email="other@example.com", full_name="Other User")
    db.session.add(other)
    db.session.commit()
    return other


def _prime_csrf(client) -> str:
    """Insert CSRF token into client session."""
    token = "test-csrf-token"
    with client.session_transaction() as sess:
        sess["_csrf_token"] = token
    return token


@pytest.fixture()
def auth_headers(app, client, user):
    """Bearer + CSRF headers for the seeded user."""
    token = create_access_token(identity=str(user.id))
    return {"Authorization": f"Bearer {token}", "X-CSRF-Token": _prime_csrf(client)}
