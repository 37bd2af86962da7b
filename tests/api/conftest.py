"""Fixtures for API tests."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import preferences
from api.main import app
from api.routes import game
from api.session import InMemorySessionStore, set_session_store


@pytest.fixture(autouse=True)
def isolated_state(tmp_path, monkeypatch):
    """Fresh in-memory sessions and a throwaway preferences file for every test."""
    store = InMemorySessionStore()
    set_session_store(store)
    game._tables.clear()
    game._passcodes.clear()
    game._locks.clear()
    monkeypatch.setattr(
        preferences,
        "_preferences_manager",
        preferences.PreferencesManager(str(tmp_path / "prefs.json")),
    )
    yield store
    set_session_store(None)


@pytest_asyncio.fixture
async def client():
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def new_table(client):
    """Factory that opens a table and returns request headers for it."""

    async def _open(**body):
        body.setdefault("players", [{"name": "Ana"}, {"name": "Ben"}, {"name": "Cleo"}])
        response = await client.post("/api/game/new", json=body)
        assert response.status_code == 200, response.text
        return {"X-Session-ID": response.json()["session_id"]}

    return _open
