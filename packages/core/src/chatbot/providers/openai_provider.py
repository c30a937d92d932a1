"""OpenAI chat-completions adapter."""

import logging
from collections.abc import AsyncGenerator

import openai
from openai import AsyncOpenAI

from chatbot.exceptions import (
    ChatBotError,
    ContentBlockedError,
    ProviderError,
    ProviderTimeoutError,
)
from chatbot.models import Conversation
from chatbot.providers.base import MAX_OUTPUT_TOKENS, TEMPERATURE, TOP_P, ChatProvider

logger = logging.getLogger(__name__)


def to_openai_messages(conversation: Conversation) -> list[dict]:
    """Encode a conversation as chat-completion messages.

    The system instruction becomes a leading ``system`` message.
    """
    messages = [{"role": "system", "content": conversation.system_instruction}]
    messages += [
        {"role": turn.role.value, "content": turn.text}
        for turn in conversation.turns
    ]
    return messages


def map_openai_error(exc: openai.APIError) -> ChatBotError:
    """Translate an SDK error into the relay's error taxonomy."""
    details = {"provider": "openai", "error": type(exc).__name__}

    if isinstance(exc, openai.APITimeoutError):
        return ProviderTimeoutError(details=details)
    if getattr(exc, "code", None) == "content_filter":
        return ContentBlockedError(details=details)
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        logger.error("OpenAI rejected the API key: %s", exc)
        return ProviderError(details={**details, "reason": "auth"})
    if isinstance(exc, openai.RateLimitError):
        logger.warning("OpenAI quota exceeded: %s", exc)
        return ProviderError(
            "The assistant has reached its usage limit. Please try again later.",
            details={**details, "reason": "quota"},
        )

    logger.error("OpenAI request failed: %s", exc)
    return ProviderError(details=details)


class OpenAIProvider(ChatProvider):
    """Streams chat completions from the OpenAI API."""

    name = "openai"

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o-mini",
        client: AsyncOpenAI | None = None,
    ) -> None:
        super().__init__(api_key, model)
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def stream(self, conversation: Conversation) -> AsyncGenerator[str, None]:
        self.ensure_configured()

        try:
            response = await self._get_client().chat.completions.create(
                model=self.model,
                messages=to_openai_messages(conversation),
                temperature=TEMPERATURE,
                top_p=TOP_P,
                max_tokens=MAX_OUTPUT_TOKENS,
                stream=True,
            )
        except openai.APIError as exc:
            raise map_openai_error(exc) from exc

        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                if choice.delta and choice.delta.content:
                    yield choice.delta.content
                if choice.finish_reason == "content_filter":
                    raise ContentBlockedError(
                        details={"provider": self.name, "finish_reason": "content_filter"}
                    )
        except openai.APIError as exc:
            raise map_openai_error(exc) from exc
        finally:
            await response.close()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
