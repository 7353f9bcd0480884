"""Shared test fixtures for Feedback-Engine."""

import os
from contextlib import asynccontextmanager

import pytest
from httpx import ASGITransport, AsyncClient


DEV_API_KEY = "test-api-key"
DEV_GAME_ID = "test-game"
DASHBOARD_TOKEN = "test-dashboard-token"
DASHBOARD_ACCOUNT_ID = "acct-123"


class FakeClock:
    """Deterministic replacement for time.time()."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def configure(monkeypatch):
    """Build an app from FEEDBACK_* overrides (None removes a variable)."""
    from feedback_engine.common.config import get_settings
    from feedback_engine.deps import reset_singletons

    def _configure(**overrides):
        for name in list(os.environ):
            if name.startswith("FEEDBACK_"):
                monkeypatch.delenv(name)
        env = {
            "DEV_API_KEY": DEV_API_KEY,
            "DEV_GAME_ID": DEV_GAME_ID,
            "RATE_LIMIT_MAX": "1",
            "RATE_LIMIT_WINDOW_MS": "60000",
        }
        env.update(overrides)
        for key, value in env.items():
            if value is not None:
                monkeypatch.setenv(f"FEEDBACK_{key}", str(value))

        # Clear caches and singletons so new env vars take effect
        get_settings.cache_clear()
        reset_singletons()

        from feedback_engine.app import create_app
        return create_app()

    yield _configure
    get_settings.cache_clear()
    reset_singletons()


@asynccontextmanager
async def open_client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from feedback_engine.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


@pytest.fixture
def app(configure):
    """App with no persistent storage, the dev API key and a 1/60s limit."""
    return configure()


@pytest.fixture
async def client(app):
    async with open_client(app) as ac:
        yield ac


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'feedback.db'}"


@pytest.fixture
def dev_headers():
    return {"Authorization": f"Bearer {DEV_API_KEY}"}


@pytest.fixture
def dashboard_headers():
    return {"Authorization": f"Bearer {DASHBOARD_TOKEN}"}


def feedback_payload(**overrides) -> dict:
    payload = {
        "type": "bug_report",
        "identityOption": "anonymous",
        "body": "Something broke in the game.",
        "metadata": {"platform": "roblox"},
    }
    payload.update(overrides)
    return payload
