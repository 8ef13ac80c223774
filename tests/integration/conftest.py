"""Integration test fixtures for the interview capture API.

Provides an async HTTP client and a sync TestClient (for WebSocket) wired
to an isolated session registry with mock STT and repository collaborators.
Every capture the orchestrator creates is a device-free FakeCapture and is
collected in ``captures`` so tests can push audio into it.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from interview_capture.api.app import create_app
from interview_capture.services import orchestrator


@pytest.fixture
def app():
    """Create a fresh FastAPI application instance."""
    return create_app()


@pytest.fixture
def captures():
    return []


@pytest.fixture(autouse=True)
def session_registry(monkeypatch, mock_repository, mock_stt, captures, make_capture):
    """Isolate the orchestrator's module-level state for each test."""

    def build_capture(provider, **kwargs):
        capture = make_capture()
        captures.append(capture)
        return capture

    monkeypatch.setattr(orchestrator, "_sessions", {})
    monkeypatch.setattr(orchestrator, "_repository", mock_repository)
    monkeypatch.setattr(orchestrator, "_stt", mock_stt)
    monkeypatch.setattr(orchestrator, "create_capture", build_capture)


@pytest.fixture
async def async_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def test_client(app):
    """Synchronous TestClient for WebSocket tests."""
    with TestClient(app) as c:
        yield c
