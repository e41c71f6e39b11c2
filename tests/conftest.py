"""Pytest configuration and fixtures."""
import os

os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from timesheet.database import get_store
from timesheet.main import app
from timesheet.services.aggregator import HoursAggregator
from timesheet.store.memory import InMemoryStore


@pytest.fixture
def store():
    """In-memory store with the aggregator subscribed to entry changes."""
    memory_store = InMemoryStore()
    memory_store.subscribe(HoursAggregator(memory_store).handle_change)
    return memory_store


@pytest_asyncio.fixture
async def app_client(store):
    """
    Async HTTP client against the app, backed by the in-memory store.

    The lifespan is not run, so no MongoDB connection is attempted.
    """
    app.dependency_overrides[get_store] = lambda: store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def login(app_client, store):
    """Register a user (optionally as admin) and return (user_id, headers)."""

    async def _login(email: str, role: str = "user", name: str = "Test User"):
        response = await app_client.post(
            "/auth/register",
            json={"email": email, "password": "password123", "name": name},
        )
        user_id = response.json()["id"]
        if role != "user":
            await store.set_user_role(user_id, role)

        login_response = await app_client.post(
            "/auth/login",
            json={"email": email, "password": "password123"},
        )
        token = login_response.json()["access_token"]
        return user_id, {"Authorization": f"Bearer {token}"}

    return _login
