"""Pytest configuration and shared fixtures."""
import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from ollama_chat.app.main import app
from ollama_chat.app.ollama_client import OllamaClient
from ollama_chat.app.router import get_ollama_client
from ollama_chat.app.settings import Settings
from ollama_chat.ui.bridge_client import BridgeUnavailable


class FakeOllama:
    """Stands in for the Ollama server behind an httpx.MockTransport.

    ``routes`` maps "METHOD /path" to a response or to an exception to raise.
    Every request that reaches it is kept in ``requests``.
    """

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.routes.get(f"{request.method} {request.url.path}")
        if outcome is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeBridge:
    """In-memory replacement for BridgeClient."""

    def __init__(self, reply="hello", error=None, models=None, healthy=True):
        self.reply = reply
        self.error = error
        self.listed = models if models is not None else []
        self.healthy = healthy
        self.calls = []
        self.gate = None

    async def chat(self, message, model):
        self.calls.append((message, model))
        # suspend like a real network call would
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply

    async def health(self):
        if not self.healthy:
            raise BridgeUnavailable("GET /health returned 503")
        return {"status": "ok"}

    async def models(self):
        if isinstance(self.listed, Exception):
            raise self.listed
        return self.listed

    def hold(self):
        """Make chat() block until the returned event is set."""
        self.gate = asyncio.Event()
        return self.gate


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def fake_ollama():
    return FakeOllama()


@pytest.fixture
def ollama_client(settings, fake_ollama):
    return OllamaClient(settings, transport=httpx.MockTransport(fake_ollama))


@pytest.fixture
def client(ollama_client):
    app.dependency_overrides[get_ollama_client] = lambda: ollama_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fake_bridge():
    return FakeBridge()
