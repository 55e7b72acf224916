"""Shared fixtures for the Study Buddy test suite."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from study_buddy.client import StudyBuddyClient
from study_buddy.config import Settings

# ---------------------------------------------------------------------------
# Helpers for building gateway payloads
# ---------------------------------------------------------------------------


def sse_frame(content: str) -> str:
    """One chat-completion delta as an event-stream line."""
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]}, ensure_ascii=False) + "\n"


def sse_body(*deltas: str, done: bool = True) -> bytes:
    """A complete event stream carrying the given deltas."""
    lines = [": keep-alive\n", "\n"]
    lines.extend(sse_frame(delta) + "\n" for delta in deltas)
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


def completion(content: str) -> dict:
    """A buffered chat-completion response."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }


# ---------------------------------------------------------------------------
# Fake gateway that never touches the network
# ---------------------------------------------------------------------------


class FakeGateway:
    """
    Stands in for the chat gateway, the auth service and the speech service.

    Each attribute is either an httpx.Response, an exception to raise, or a
    callable taking the request. Every request received is recorded.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.chat = httpx.Response(200, json=completion("This is a test answer."))
        self.user = httpx.Response(200, json={"id": "user-123", "email": "learner@example.com"})
        self.transcription = httpx.Response(200, json={"text": "What is a neural network?"})

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/chat/completions"):
            return self._answer(self.chat, request)
        if path.endswith("/auth/v1/user"):
            return self._answer(self.user, request)
        if path.endswith("/audio/transcriptions"):
            return self._answer(self.transcription, request)
        return httpx.Response(404, json={"error": "not found"})

    @staticmethod
    def _answer(response, request):
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        # Fresh copy so one canned response can answer many requests
        return httpx.Response(
            response.status_code,
            headers=response.headers,
            content=response.content,
        )

    def requests_to(self, suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix)]

    def last_chat_payload(self) -> dict:
        return json.loads(self.requests_to("/chat/completions")[-1].content)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings():
    return Settings(
        gateway_api_key="test-gateway-key",
        auth_url="https://auth.example.test",
        auth_api_key="test-anon-key",
        gateway_base_url="https://gateway.example.test/v1",
        model="test-model",
        transcription_base_url="https://speech.example.test/v1",
    )


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def test_client(settings, gateway):
    """
    TestClient for the web app with every upstream service mocked out.

    Upstream clients are built by the injected factory around an
    httpx.MockTransport, so no request ever leaves the process.
    """
    from study_buddy.interfaces.web_app import create_app

    def client_factory():
        return httpx.AsyncClient(transport=httpx.MockTransport(gateway.handle))

    app = create_app(settings, client_factory=client_factory)
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def study_client(test_client):
    """A StudyBuddyClient wired straight into the test app."""
    return StudyBuddyClient(base_url=str(test_client.base_url), http_client=test_client)


def chunked_router(*chunks: bytes, status_code: int = 200):
    """StudyBuddyClient backed by a router that replies with the given byte chunks."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            status_code,
            headers={"content-type": "text/event-stream"},
            content=iter(chunks),
        )

    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return StudyBuddyClient(base_url="http://study-buddy.test", http_client=http_client), seen
