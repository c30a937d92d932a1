"""End-to-end tests of the HTTP API with in-process providers."""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from api.routes import _encode
from chatbot.ChatBot import build_chatbots
from chatbot.config import ChatSettings
from chatbot.exceptions import ContentBlockedError, ProviderError
from chatbot.models import Conversation, ConversationTurn, Role
from chatbot.providers import OpenAIProvider
from chatbot.StreamRelay import StreamRelay

from conftest import FakeProvider


def _events(body: str) -> list[str]:
    return [line[len("data: "):] for line in body.split("\n\n") if line]


class TestChatEndpoint:
    def test_streams_answer_as_sse(self, client):
        """A fresh client with valid credentials gets a complete stream."""
        response = client.post(
            "/api/chat-openai",
            json={"question": "Hola"},
            headers={"X-Forwarded-For": "10.0.0.1"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["connection"] == "keep-alive"
        assert response.text.endswith("data: [DONE]\n\n")

        events = _events(response.text)
        contents = [json.loads(e)["content"] for e in events[:-1]]
        assert "".join(contents) == "Hola, ¿en qué puedo ayudarte?"

    def test_forwards_history_to_provider(self, client, providers):
        history = [{"role": "user", "content": f"m{i}"} for i in range(12)]
        history.append({"role": "assistant", "text": "respuesta"})

        response = client.post(
            "/api/chat-gemini",
            json={"question": " <¿Horarios?> ", "history": history},
        )

        assert response.status_code == 200
        sent = providers["gemini"].conversations[0]
        assert [t.text for t in sent.turns] == [
            *(f"m{i}" for i in range(3, 12)),
            "respuesta",
            "¿Horarios?",
        ]

    def test_rate_limit_exceeded(self, client, settings):
        """The request after ``limit`` in one window is rejected with 429."""
        headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
        for _ in range(settings.openai_rate_limit):
            ok = client.post("/api/chat-openai", json={"question": "Hola"}, headers=headers)
            assert ok.status_code == 200

        response = client.post("/api/chat-openai", json={"question": "Hola"}, headers=headers)

        assert response.status_code == 429
        assert "error" in response.json()
        assert response.headers["x-ratelimit-remaining"] == "0"
        assert int(response.headers["retry-after"]) >= 1

    def test_quotas_are_per_provider_and_client(self, client, settings):
        for _ in range(settings.openai_rate_limit):
            client.post("/api/chat-openai", json={"question": "Hola"})

        assert client.post("/api/chat-openai", json={"question": "Hola"}).status_code == 429
        assert client.post("/api/chat-gemini", json={"question": "Hola"}).status_code == 200
        other = client.post(
            "/api/chat-openai",
            json={"question": "Hola"},
            headers={"X-Real-IP": "198.51.100.2"},
        )
        assert other.status_code == 200

    def test_empty_question(self, client):
        response = client.post("/api/chat-openai", json={"question": ""})

        assert response.status_code == 400
        assert "error" in response.json()

    def test_blank_question_after_sanitizing(self, client):
        response = client.post("/api/chat-openai", json={"question": "   <>  "})

        assert response.status_code == 400
        assert response.json() == {"error": "The question is required."}

    def test_non_string_question(self, client):
        assert client.post("/api/chat-openai", json={"question": 42}).status_code == 400
        assert client.post("/api/chat-openai", json={}).status_code == 400

    def test_invalid_history_role(self, client):
        response = client.post(
            "/api/chat-openai",
            json={"question": "Hola", "history": [{"role": "system", "content": "x"}]},
        )
        assert response.status_code == 400

    def test_get_not_allowed(self, client):
        response = client.get("/api/chat-openai")

        assert response.status_code == 405
        assert "error" in response.json()

    def test_missing_credentials_return_generic_500(self):
        settings = ChatSettings(openai_api_key=None, gemini_api_key=None)
        app = create_app(
            settings=settings,
            providers={"openai": OpenAIProvider(None), "gemini": FakeProvider(api_key=None)},
        )
        with TestClient(app) as client:
            response = client.post("/api/chat-openai", json={"question": "Hola"})

        assert response.status_code == 500
        body = response.json()
        assert body == {"error": "The chat service is not configured correctly."}
        assert "API key" not in response.text

    def test_provider_errors_are_mapped(self, settings):
        providers = {
            "openai": FakeProvider(fail_with=ProviderError(details={"secret": "sk-123"})),
            "gemini": FakeProvider(fail_with=ContentBlockedError()),
        }
        with TestClient(create_app(settings=settings, providers=providers)) as client:
            upstream = client.post("/api/chat-openai", json={"question": "Hola"})
            blocked = client.post("/api/chat-gemini", json={"question": "Hola"})

        assert upstream.status_code == 502
        assert "sk-123" not in upstream.text
        assert blocked.status_code == 400
        assert "error" in blocked.json()

    def test_unexpected_errors_do_not_leak(self, settings):
        providers = {
            "openai": FakeProvider(fail_with=KeyError("internal detail")),
            "gemini": FakeProvider(),
        }
        with TestClient(create_app(settings=settings, providers=providers)) as client:
            response = client.post("/api/chat-openai", json={"question": "Hola"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_security_and_rate_limit_headers(self, client, settings):
        response = client.post("/api/chat-openai", json={"question": "Hola"})

        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["x-ratelimit-limit"] == str(settings.openai_rate_limit)
        assert response.headers["x-ratelimit-remaining"] == str(settings.openai_rate_limit - 1)


class TestStatusEndpoints:
    def test_health_reports_providers(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "providers": {"openai": True, "gemini": True},
        }

    def test_rate_limit_status_does_not_consume(self, client, settings):
        headers = {"X-Forwarded-For": "192.0.2.9"}
        client.post("/api/chat-gemini", json={"question": "Hola"}, headers=headers)

        first = client.get("/api/rate-limit/gemini", headers=headers).json()
        second = client.get("/api/rate-limit/gemini", headers=headers).json()

        assert first["limit"] == settings.gemini_rate_limit
        assert first["remaining"] == settings.gemini_rate_limit - 1
        assert second["remaining"] == first["remaining"]

    def test_rate_limit_status_unknown_provider(self, client):
        response = client.get("/api/rate-limit/claude")

        assert response.status_code == 404
        assert response.json() == {"error": "Unknown provider"}


async def _post_then_disconnect(app, path: str, payload: dict) -> list[dict]:
    """Drive ``app`` over raw ASGI; the client hangs up after the first chunk."""
    body = json.dumps(payload).encode()
    messages: list[dict] = []
    first_chunk_sent = asyncio.Event()
    request_delivered = False

    async def receive():
        nonlocal request_delivered
        if not request_delivered:
            request_delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        await first_chunk_sent.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        messages.append(message)
        if message["type"] == "http.response.body" and message.get("body"):
            first_chunk_sent.set()

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [
            (b"host", b"testserver"),
            (b"content-type", b"application/json"),
            (b"content-length", str(len(body)).encode()),
        ],
        "client": ("203.0.113.5", 50000),
        "server": ("testserver", 80),
    }
    await asyncio.wait_for(app(scope, receive, send), timeout=5)
    return messages


class TestStreamLifecycle:
    @pytest.mark.asyncio
    async def test_closing_the_body_closes_the_provider_stream(self):
        provider = FakeProvider(fragments=["a", "b", "c"])
        conversation = Conversation(
            system_instruction="system",
            turns=[ConversationTurn(role=Role.USER, text="Hola")],
        )
        body = _encode(await StreamRelay(provider).open(conversation))

        first = await anext(body)
        await body.aclose()

        assert first == 'data: {"content": "a"}\n\n'
        assert provider.closed
        assert provider.pulled == 1

    @pytest.mark.asyncio
    async def test_client_disconnect_stops_the_provider(self, settings):
        provider = FakeProvider(fragments=[f"t{i} " for i in range(20)], delay=0.01)
        providers = {"openai": provider, "gemini": FakeProvider()}
        app = create_app(settings=settings, providers=providers)
        app.state.bots = build_chatbots(settings, providers)

        messages = await _post_then_disconnect(app, "/api/chat-openai", {"question": "Hola"})

        start = next(m for m in messages if m["type"] == "http.response.start")
        sent = b"".join(m.get("body", b"") for m in messages if m["type"] == "http.response.body")
        assert start["status"] == 200
        assert sent.startswith(b'data: {"content": "t0 "}')
        assert b"[DONE]" not in sent
        assert provider.closed
        assert provider.pulled < 20

    def test_mid_stream_failure_ends_without_sentinel(self, settings):
        providers = {
            "openai": FakeProvider(
                fragments=["uno", "dos", "tres"],
                fail_with=RuntimeError("connection reset"),
                fail_after=2,
            ),
            "gemini": FakeProvider(),
        }
        app = create_app(settings=settings, providers=providers)
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.post("/api/chat-openai", json={"question": "Hola"})

        assert response.status_code == 200
        assert [json.loads(e)["content"] for e in _events(response.text)] == ["uno", "dos"]
        assert "[DONE]" not in response.text
        assert providers["openai"].closed


class TestAppSetup:
    def test_unhandled_errors_render_as_json(self, settings, providers):
        app = create_app(settings=settings, providers=providers)
        with TestClient(app, raise_server_exceptions=False) as client:
            del app.state.bots["gemini"]
            response = client.post("/api/chat-gemini", json={"question": "Hola"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_cors_origins_are_read_from_dotenv(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("CORS_ORIGINS=https://gatorojolab.com\n")
        monkeypatch.chdir(tmp_path)
        # Registered so the value loaded from .env is removed afterwards.
        monkeypatch.setenv("CORS_ORIGINS", "")
        monkeypatch.delenv("CORS_ORIGINS")

        client = TestClient(create_app())
        preflight = {"Access-Control-Request-Method": "POST"}
        allowed = client.options(
            "/api/chat-openai",
            headers={"Origin": "https://gatorojolab.com", **preflight},
        )
        denied = client.options(
            "/api/chat-openai",
            headers={"Origin": "https://example.com", **preflight},
        )

        assert allowed.headers["access-control-allow-origin"] == "https://gatorojolab.com"
        assert denied.status_code == 400

    def test_malformed_bodies_count_against_the_quota(self, client, settings):
        for _ in range(settings.openai_rate_limit):
            rejected = client.post(
                "/api/chat-openai",
                content=b"{not json",
                headers={"Content-Type": "application/json"},
            )
            assert rejected.status_code == 400
            assert rejected.json()["error"].startswith("Invalid request")

        response = client.post("/api/chat-openai", json={"question": "Hola"})

        assert response.status_code == 429
