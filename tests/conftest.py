"""Shared fixtures: a fake Supabase project, the services on top of it and an API client."""

import os

import pytest

# Settings are read at import time; keep tests independent of a developer's .env
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("ENVIRONMENT", "test")

from roster.database.supabase_client import Store  # noqa: E402
from roster.modules.groups.service import GroupService  # noqa: E402
from roster.modules.memberships.service import MembershipService  # noqa: E402
from tests.fakes import FakeSupabase  # noqa: E402

USER_TOKEN = "token-alice"
USER_ID = "user-alice"
OTHER_TOKEN = "token-bob"
OTHER_ID = "user-bob"


@pytest.fixture
def fake_db():
    """Fake Supabase project with two signed-in users."""
    db = FakeSupabase()
    db.auth.add_user(USER_TOKEN, USER_ID)
    db.auth.add_user(OTHER_TOKEN, OTHER_ID)
    return db


@pytest.fixture
def store(fake_db):
    return Store(fake_db, timeout=1.0, read_retries=3)


@pytest.fixture
def group_service(store):
    return GroupService(store)


@pytest.fixture
def membership_service(store):
    return MembershipService(store)


@pytest.fixture
def client(store):
    """API client wired to the fake store, with rate limiting off."""
    from fastapi.testclient import TestClient

    from roster.core.dependencies import roster_sessions
    from roster.database.supabase_client import get_store
    from roster.main import app, limiter
    from roster.modules.auth.service import clear_auth_cache

    async def _get_store():
        return store

    app.dependency_overrides[get_store] = _get_store
    limiter.enabled = False
    roster_sessions.clear()
    clear_auth_cache()
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        roster_sessions.clear()
        clear_auth_cache()
        limiter.enabled = True


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {USER_TOKEN}"}


@pytest.fixture
def other_headers():
    return {"Authorization": f"Bearer {OTHER_TOKEN}"}
