"""Pytest configuration: a throwaway SQLite database and an app client.

Environment is set before anything from ``learntrack`` is imported so the
module-level settings and engine pick up the test database.
"""

import asyncio
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="learntrack-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["REDIS_URL"] = "memory://"
os.environ["ENABLE_METRICS"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_FORMAT"] = "plain"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from learntrack.core.database import drop_db, init_db
from learntrack.core.dependencies import reset_cache
from learntrack.main import create_app
from learntrack.models.profile import Role
from learntrack.realtime.auth_events import reset_auth_bus
from learntrack.realtime.feed import reset_change_feed

import factories


def run(coro):
    """Run a coroutine on a private loop, leaving the current loop alone."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()


async def _reset_db():
    await drop_db()
    await init_db()


@pytest.fixture(autouse=True)
def fresh_state():
    """Empty database and fresh in-process singletons for every test."""
    reset_change_feed()
    reset_auth_bus()
    reset_cache()
    run(_reset_db())
    yield
    reset_change_feed()
    reset_auth_bus()
    reset_cache()


@pytest.fixture
def client():
    """Test client with the app lifespan running."""
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


class Account:
    def __init__(self, user_id: str, email: str, password: str, token: str):
        self.user_id = user_id
        self.email = email
        self.password = password
        self.token = token

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def register(client):
    """Sign up and sign in through the API; returns an Account."""
    counter = {"n": 0}

    def _register(role: Role = Role.LEARNER, full_name: str = None, password: str = "secret123") -> Account:
        counter["n"] += 1
        email = f"user{counter['n']}@example.com"
        response = client.post("/api/auth/signup", json={
            "email": email,
            "password": password,
            "full_name": full_name or f"User {counter['n']}",
            "governorate": "Cairo",
            "membership_number": f"M-{counter['n']:04d}",
        })
        assert response.status_code == 201, response.text
        user_id = response.json()["user_id"]

        if role != Role.LEARNER:
            run(factories.set_role(user_id, role))

        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return Account(user_id, email, password, response.json()["access_token"])

    return _register


@pytest.fixture
def seed():
    """Run a factory coroutine from synchronous tests."""
    def _seed(factory, *args, **kwargs):
        return run(factory(*args, **kwargs))
    return _seed
