# backend/tests/conftest.py

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from task_api.config import Settings
from task_api.main import create_app

from .helpers import auth_headers, register


@pytest.fixture()
def settings() -> Settings:
    """In-memory database and cheap bcrypt so the suite stays fast."""
    return Settings(
        jwt_secret="test-secret",
        database_url="sqlite://",
        log_level="WARNING",
        bcrypt_rounds=4,
    )


@pytest.fixture()
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db_session(app):
    session = app.state.db.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def alice(client) -> dict:
    register(client, "alice@example.com", name="Alice")
    return auth_headers(client, "alice@example.com")


@pytest.fixture()
def bob(client) -> dict:
    register(client, "bob@example.com", name="Bob")
    return auth_headers(client, "bob@example.com")


@pytest.fixture()
def admin(client) -> dict:
    register(client, "root@example.com", name="Root", role="admin")
    return auth_headers(client, "root@example.com")
