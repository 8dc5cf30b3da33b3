"""
Shared fixtures and helpers for the nebula_chat test suite.

The chat backend is never contacted: every HTTP exchange goes through
httpx.MockTransport, and streaming bodies are scripted with ScriptedStream
so tests can pause between chunks or observe when the body is released.
"""

import json

import httpx
import pytest

from nebula_chat.config import NebulaConfig
from nebula_chat.storage import MemoryStorage
from nebula_chat.store import ConversationStore
from nebula_chat.transport import NebulaClient

SECRET_KEY = "sk_test_0123456789abcdef"
CLIENT_ID = "client-123"
WALLET = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


# ---------------------------------------------------------------------------
# SSE wire helpers
# ---------------------------------------------------------------------------


def sse(event, data):
    """Encode one SSE frame (event line, data line, blank line) as bytes."""
    payload = data if isinstance(data, str) else json.dumps(data)
    return f"event: {event}\ndata: {payload}\n\n".encode("utf-8")


def delta(text):
    return sse("delta", {"v": text})


def sign_transaction(payload, event="action"):
    """An action frame whose payload arrives as a JSON-encoded string."""
    return sse(event, {"type": "sign_transaction", "data": json.dumps(payload)})


TX_PAYLOAD = {
    "to": "0x000000000000000000000000000000000000dEaD",
    "value": "10000000000000000",
    "data": "0x",
    "chainId": 1,
}


class ScriptedStream(httpx.AsyncByteStream):
    """Response body that yields bytes parts and awaits callable parts."""

    def __init__(self, parts):
        self.parts = list(parts)
        self.closed = False

    async def __aiter__(self):
        for part in self.parts:
            if callable(part):
                await part()
            else:
                yield part

    async def aclose(self):
        self.closed = True


class RecordingHandler:
    """MockTransport handler that records requests and replays a response factory."""

    def __init__(self, respond):
        self.respond = respond
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return self.respond(request)

    @property
    def last_json(self):
        return json.loads(self.requests[-1].content)


def make_client(respond, **config):
    """NebulaClient wired to a RecordingHandler; returns (client, handler)."""
    config.setdefault("secret_key", SECRET_KEY)
    handler = RecordingHandler(respond)
    client = NebulaClient(NebulaConfig(**config), transport=httpx.MockTransport(handler))
    return client, handler


def stream_response(*parts, status_code=200):
    stream = ScriptedStream(parts)
    response = httpx.Response(
        status_code,
        headers={"content-type": "text/event-stream"},
        stream=stream,
    )
    return response, stream


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    """A loaded (READY) conversation store backed by memory."""
    return ConversationStore(storage).load()
