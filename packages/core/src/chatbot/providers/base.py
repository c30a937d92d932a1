"""Common interface for streaming LLM providers."""

from collections.abc import AsyncGenerator

from chatbot.exceptions import ConfigurationError
from chatbot.models import Conversation

# Generation parameters shared by every deployment.
TEMPERATURE = 0.7
TOP_P = 0.9
TOP_K = 40
MAX_OUTPUT_TOKENS = 500


class ChatProvider:
    """A provider that streams a completion as text fragments.

    Subclasses implement ``stream`` as an async generator.  Closing the
    generator must release the underlying provider stream.
    """

    name: str = "provider"

    def __init__(self, api_key: str | None, model: str) -> None:
        self._api_key = api_key
        self.model = model

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def ensure_configured(self) -> None:
        """Raise ConfigurationError if the provider has no credentials."""
        if not self.is_configured:
            raise ConfigurationError(
                details={"provider": self.name, "reason": "missing API key"}
            )

    def stream(self, conversation: Conversation) -> AsyncGenerator[str, None]:
        """Yield text fragments in the order the provider produces them.

        Raises:
            ProviderError: The provider rejected or failed the call.
            ContentBlockedError: Safety filters rejected the content.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release any client held by the provider."""
