"""Shared fixtures: in-process providers and a configured test client."""

import asyncio
from collections.abc import AsyncGenerator

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from chatbot.config import ChatSettings
from chatbot.models import Conversation
from chatbot.providers.base import ChatProvider


class FakeProvider(ChatProvider):
    """Provider that replays canned fragments and records what it was sent.

    Args:
        fragments: Text fragments to yield, in order.
        fail_with: Exception raised before the first fragment.
        fail_after: Raise ``fail_with`` after this many fragments instead.
        delay: Seconds to sleep before each fragment.
    """

    def __init__(
        self,
        fragments=("Hola", ", ", "¿en qué puedo ayudarte?"),
        api_key="test-key",
        name="fake",
        fail_with=None,
        fail_after=None,
        delay=0.0,
    ):
        super().__init__(api_key, model="fake-model")
        self.name = name
        self.fragments = list(fragments)
        self.fail_with = fail_with
        self.fail_after = fail_after
        self.delay = delay
        self.conversations: list[Conversation] = []
        self.pulled = 0
        self.closed = False
        self.client_closed = False

    async def stream(self, conversation: Conversation) -> AsyncGenerator[str, None]:
        self.ensure_configured()
        self.conversations.append(conversation)
        try:
            if self.fail_with is not None and self.fail_after is None:
                raise self.fail_with
            for index, fragment in enumerate(self.fragments):
                if self.fail_with is not None and index == self.fail_after:
                    raise self.fail_with
                if self.delay:
                    await asyncio.sleep(self.delay)
                self.pulled += 1
                yield fragment
        finally:
            self.closed = True

    async def aclose(self) -> None:
        self.client_closed = True


@pytest.fixture
def settings():
    return ChatSettings(
        openai_api_key="test-openai",
        gemini_api_key="test-gemini",
        openai_rate_limit=3,
        gemini_rate_limit=5,
        rate_limit_sweep_seconds=3600,
        provider_timeout_seconds=1.0,
    )


@pytest.fixture
def providers():
    return {
        "openai": FakeProvider(name="openai"),
        "gemini": FakeProvider(name="gemini"),
    }


@pytest.fixture
def client(settings, providers):
    app = create_app(settings=settings, providers=providers)
    with TestClient(app) as test_client:
        yield test_client
