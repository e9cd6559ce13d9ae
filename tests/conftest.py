"""Shared pytest configuration: loads .env before test collection."""

from __future__ import annotations

from datetime import date

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient

from trantor.api.server import create_app
from trantor.config import Settings
from trantor.services.activity_log import ActivityLog
from trantor.services.notifications import NotificationCenter
from trantor.services.state import build_state
from trantor.services.task_service import TaskService
from trantor.store.memory_store import InMemoryTaskStore

# Load .env so that skip guards like `os.getenv("ANTHROPIC_API_KEY")`
# see the real values (not just shell-exported vars).
load_dotenv()

# Monday
TODAY = date(2026, 3, 16)


@pytest.fixture()
def today() -> date:
    return TODAY


@pytest.fixture()
def settings() -> Settings:
    """Offline settings: in-memory backends, every external key blank."""
    return Settings(
        _env_file=None,
        supabase_url="",
        supabase_key="",
        task_backend="memory",
        auth_backend="memory",
        gemini_api_key="",
        anthropic_api_key="",
        smallest_api_key="",
        default_language="es",
        default_currency="MXN",
    )


@pytest.fixture()
def activity_log() -> ActivityLog:
    return ActivityLog()


@pytest.fixture()
def notifications() -> NotificationCenter:
    return NotificationCenter()


@pytest.fixture()
def task_service(activity_log, notifications) -> TaskService:
    return TaskService(InMemoryTaskStore(), activity_log, notifications)


@pytest.fixture()
def state(settings):
    return build_state(settings)


@pytest.fixture()
def client(state):
    """TestClient wired to an app with injected in-memory state."""
    return TestClient(create_app(state=state))


@pytest.fixture()
def token(client) -> str:
    resp = client.post(
        "/api/auth/signup",
        json={"email": "ada@example.com", "password": "pw-123456", "full_name": "Ada Lovelace"},
    )
    assert resp.status_code == 200
    return resp.json()["session"]["access_token"]


@pytest.fixture()
def auth_headers(token) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
