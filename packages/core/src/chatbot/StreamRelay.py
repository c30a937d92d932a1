"""Relay of a provider's token stream as Server-Sent Events frames.

``open`` does everything that can still fail with a proper HTTP status:
it checks credentials, starts the provider call and waits (bounded) for the
first fragment.  Only then does it hand back the frame iterator, so errors
past that point can only end the stream abnormally.
"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable

from chatbot.exceptions import ProviderTimeoutError
from chatbot.models import Conversation, StreamFrame
from chatbot.providers.base import ChatProvider

logger = logging.getLogger(__name__)

DisconnectCheck = Callable[[], Awaitable[bool]]


class StreamRelay:
    """Forwards one provider's fragments to the caller, frame by frame."""

    def __init__(self, provider: ChatProvider, first_chunk_timeout: float = 10.0) -> None:
        """Initialize the relay.

        Args:
            provider: Adapter used for every relayed conversation.
            first_chunk_timeout: Seconds to wait for the provider's first
                fragment before giving up.
        """
        self._provider = provider
        self._first_chunk_timeout = first_chunk_timeout

    @property
    def provider(self) -> ChatProvider:
        return self._provider

    async def open(
        self,
        conversation: Conversation,
        is_disconnected: DisconnectCheck | None = None,
    ) -> AsyncIterator[StreamFrame]:
        """Start relaying ``conversation``.

        Args:
            conversation: The built conversation to send.
            is_disconnected: Polled before each frame; when it returns True
                the relay stops pulling from the provider.

        Returns:
            An async iterator of frames ending with the sentinel frame.

        Raises:
            ConfigurationError: The provider has no credentials.
            ProviderError: The provider rejected the call or timed out.
            ContentBlockedError: The provider's safety filters rejected it.
        """
        self._provider.ensure_configured()

        upstream = self._provider.stream(conversation)
        try:
            async with asyncio.timeout(self._first_chunk_timeout):
                first = await anext(upstream, None)
        except TimeoutError as exc:
            await upstream.aclose()
            logger.warning(
                "%s gave no answer within %.1fs",
                self._provider.name,
                self._first_chunk_timeout,
            )
            raise ProviderTimeoutError(
                details={"provider": self._provider.name}
            ) from exc
        except Exception:
            await upstream.aclose()
            raise

        return self._frames(upstream, first, is_disconnected)

    async def _frames(
        self,
        upstream: AsyncGenerator[str, None],
        first: str | None,
        is_disconnected: DisconnectCheck | None,
    ) -> AsyncGenerator[StreamFrame, None]:
        started = time.perf_counter()
        sent = 0
        fragment = first
        try:
            while fragment is not None:
                if is_disconnected is not None and await is_disconnected():
                    logger.info(
                        "Client disconnected after %d fragments, stopping %s stream",
                        sent,
                        self._provider.name,
                    )
                    return
                yield StreamFrame(content=fragment)
                sent += 1
                fragment = await anext(upstream, None)

            yield StreamFrame.done()
            logger.info(
                "%s response completed: %d fragments in %.0fms",
                self._provider.name,
                sent,
                (time.perf_counter() - started) * 1000,
            )
        except asyncio.CancelledError:
            logger.info("%s stream cancelled after %d fragments", self._provider.name, sent)
            raise
        except Exception:
            logger.exception(
                "%s stream aborted after %d fragments", self._provider.name, sent
            )
            raise
        finally:
            await upstream.aclose()
