"""
pytest configuration and shared fixtures for the DeepScan API tests.

Key concern: tests must never reach a real vendor API. We achieve this by:
  1. Injecting an httpx.MockTransport into every adapter under test, so
     the adapter's real request-building and parsing code runs but the
     bytes never leave the process.
  2. Wrapping the transport in RecordingTransport so tests can assert on
     the exact number of outbound calls (no retries, no pre-flight leaks).
  3. Swapping the route-level orchestrator via app.dependency_overrides.
"""

import os
from typing import Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DETECTION_VENDOR", "hive")


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it was asked to send."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    @property
    def call_count(self) -> int:
        return len(self.requests)


def json_responder(payload, status_code: int = 200):
    """Handler that answers every request with the same JSON body."""

    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)

    return _handler


@pytest.fixture()
def recording_transport():
    """
    Factory fixture: build a RecordingTransport from a handler or a JSON body.

    Usage:
        transport = recording_transport({"status": "success", ...})
        transport = recording_transport(my_handler)
    """

    def _make(handler_or_payload, status_code: int = 200) -> RecordingTransport:
        if callable(handler_or_payload):
            return RecordingTransport(handler_or_payload)
        return RecordingTransport(json_responder(handler_or_payload, status_code))

    return _make


@pytest.fixture()
async def client():
    """
    HTTPX async test client wired to the FastAPI app.

    Usage:
        async def test_something(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from deepscan.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
