"""Chat assistant for one provider: quota, conversation assembly and relay."""

import logging
from collections.abc import AsyncIterator, Iterable

from chatbot.config import ChatSettings
from chatbot.conversation import MAX_HISTORY_TURNS, build_conversation
from chatbot.exceptions import ValidationError
from chatbot.models import ConversationTurn, StreamFrame
from chatbot.prompts import get_system_prompt
from chatbot.providers import GeminiProvider, OpenAIProvider
from chatbot.providers.base import ChatProvider
from chatbot.RateLimiter import RateLimiter
from chatbot.sanitizer import sanitize_input
from chatbot.StreamRelay import DisconnectCheck, StreamRelay

logger = logging.getLogger(__name__)


class ChatBot:
    """Conversational assistant backed by a single streaming provider.

    Each instance owns its rate limiter, so quotas are counted per provider.
    """

    def __init__(
        self,
        provider: ChatProvider,
        rate_limiter: RateLimiter,
        system_instruction: str,
        first_chunk_timeout: float = 10.0,
        max_history: int = MAX_HISTORY_TURNS,
    ) -> None:
        """Initialize the chatbot.

        Args:
            provider: Adapter for the LLM provider.
            rate_limiter: Quota store for this provider's endpoint.
            system_instruction: Fixed preamble rendered at startup.
            first_chunk_timeout: Seconds to wait for the first fragment.
            max_history: Prior turns forwarded with each message.
        """
        self.provider = provider
        self.rate_limiter = rate_limiter
        self.system_instruction = system_instruction
        self.max_history = max_history
        self._relay = StreamRelay(provider, first_chunk_timeout=first_chunk_timeout)

    @property
    def name(self) -> str:
        return self.provider.name

    async def open_stream(
        self,
        question: str,
        history: Iterable[ConversationTurn] = (),
        is_disconnected: DisconnectCheck | None = None,
    ) -> AsyncIterator[StreamFrame]:
        """Sanitize ``question``, build the conversation and start the relay.

        The rate limit is not checked here; callers decide when a request
        counts against the quota.

        Raises:
            ValidationError: The question is empty after sanitizing.
            ChatBotError: Any failure before the stream starts.
        """
        text = sanitize_input(question)
        if not text:
            raise ValidationError("The question is required.")

        logger.debug("[%s] Question: %r", self.name, text[:80])

        conversation = build_conversation(
            self.system_instruction,
            history,
            text,
            max_turns=self.max_history,
        )
        return await self._relay.open(conversation, is_disconnected=is_disconnected)

    async def aclose(self) -> None:
        await self.provider.aclose()


def build_chatbots(
    settings: ChatSettings,
    providers: dict[str, ChatProvider] | None = None,
) -> dict[str, ChatBot]:
    """Create one ChatBot per provider, each with its own rate limiter.

    Args:
        settings: Runtime configuration.
        providers: Adapters to use instead of the real OpenAI and Gemini
            clients, keyed by provider name.

    Returns:
        Chatbots keyed by provider name.
    """
    if providers is None:
        providers = {
            "openai": OpenAIProvider(settings.openai_api_key, settings.openai_model),
            "gemini": GeminiProvider(settings.gemini_api_key, settings.gemini_model),
        }
    limits = {
        "openai": settings.openai_rate_limit,
        "gemini": settings.gemini_rate_limit,
    }
    system_instruction = get_system_prompt()

    bots: dict[str, ChatBot] = {}
    for name, provider in providers.items():
        if not provider.is_configured:
            logger.warning("No API key configured for %s; its endpoint will fail", name)
        bots[name] = ChatBot(
            provider,
            RateLimiter(
                limit=limits.get(name, settings.openai_rate_limit),
                window_seconds=settings.rate_limit_window_seconds,
            ),
            system_instruction,
            first_chunk_timeout=settings.provider_timeout_seconds,
        )
    return bots
