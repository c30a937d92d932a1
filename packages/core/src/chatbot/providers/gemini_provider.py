"""Google Gemini adapter built on the google-genai SDK."""

import logging
from collections.abc import AsyncGenerator

from google import genai
from google.genai import errors
from google.genai import types

from chatbot.exceptions import ChatBotError, ContentBlockedError, ProviderError
from chatbot.models import Conversation, Role
from chatbot.providers.base import (
    MAX_OUTPUT_TOKENS,
    TEMPERATURE,
    TOP_K,
    TOP_P,
    ChatProvider,
)

logger = logging.getLogger(__name__)

SAFETY_SETTINGS = [
    types.SafetySetting(
        category=category,
        threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    )
    for category in (
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    )
]


def to_gemini_contents(conversation: Conversation) -> list[types.Content]:
    """Encode the turns as Gemini contents; assistant turns use role ``model``."""
    return [
        types.Content(
            role="model" if turn.role == Role.ASSISTANT else "user",
            parts=[types.Part(text=turn.text)],
        )
        for turn in conversation.turns
    ]


def build_config(conversation: Conversation) -> types.GenerateContentConfig:
    """Generation config carrying the system instruction out of band."""
    return types.GenerateContentConfig(
        system_instruction=conversation.system_instruction,
        temperature=TEMPERATURE,
        top_p=TOP_P,
        top_k=TOP_K,
        max_output_tokens=MAX_OUTPUT_TOKENS,
        safety_settings=SAFETY_SETTINGS,
    )


def map_gemini_error(exc: errors.APIError) -> ChatBotError:
    """Translate an SDK error into the relay's error taxonomy."""
    details = {"provider": "gemini", "code": exc.code, "status": exc.status}
    message = exc.message or ""

    if "SAFETY" in message:
        return ContentBlockedError(details=details)
    if exc.code == 429 or exc.status == "RESOURCE_EXHAUSTED":
        logger.warning("Gemini quota exceeded: %s", message)
        return ProviderError(
            "The assistant has reached its usage limit. Please try again later.",
            details={**details, "reason": "quota"},
        )
    if exc.code in (401, 403) or "API key" in message or "API_KEY_INVALID" in message:
        logger.error("Gemini rejected the API key: %s", message)
        return ProviderError(details={**details, "reason": "auth"})

    logger.error("Gemini request failed: %s", exc)
    return ProviderError(details=details)


def _blocked_reason(chunk: types.GenerateContentResponse) -> str | None:
    feedback = chunk.prompt_feedback
    if feedback is not None and feedback.block_reason:
        return str(feedback.block_reason)
    if chunk.candidates:
        finish_reason = chunk.candidates[0].finish_reason
        if finish_reason == types.FinishReason.SAFETY:
            return str(finish_reason)
    return None


class GeminiProvider(ChatProvider):
    """Streams completions from the Gemini API."""

    name = "gemini"

    def __init__(
        self,
        api_key: str | None,
        model: str = "gemini-2.0-flash",
        client: genai.Client | None = None,
    ) -> None:
        super().__init__(api_key, model)
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def stream(self, conversation: Conversation) -> AsyncGenerator[str, None]:
        self.ensure_configured()

        try:
            response = await self._get_client().aio.models.generate_content_stream(
                model=self.model,
                contents=to_gemini_contents(conversation),
                config=build_config(conversation),
            )
        except errors.APIError as exc:
            raise map_gemini_error(exc) from exc

        try:
            async for chunk in response:
                if chunk.text:
                    yield chunk.text
                reason = _blocked_reason(chunk)
                if reason:
                    raise ContentBlockedError(
                        details={"provider": self.name, "reason": reason}
                    )
        except errors.APIError as exc:
            raise map_gemini_error(exc) from exc
        finally:
            await response.aclose()
