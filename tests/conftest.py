"""Shared fixtures: an app on in-memory SQLite with cheap argon2 settings."""

import pytest

from api import create_app
from models.user import Role, Status


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    app.extensions["user_auth"].storage.dispose()


@pytest.fixture
def ctx(app):
    """The wired collaborators (storage, accounts, hasher, codecs, sessions, verifier)."""
    with app.app_context():
        yield app.extensions["user_auth"]


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(ctx):
    def _make(username="alice", password="correct-horse", role=Role.USER, status=Status.ACTIVE, email=None):
        return ctx.accounts.create(
            username=username,
            email=email or f"{username}@example.com",
            password_hash=ctx.hasher.hash(password),
            name=username.title(),
            role=role,
            status=status,
        )

    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice", "correct")


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
