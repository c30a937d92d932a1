"""Per-client rate limiting for the chat endpoints."""

import logging
import math
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from fastapi import Request

from chatbot.ChatBot import ChatBot
from chatbot.exceptions import QuotaExceededError
from chatbot.RateLimiter import RateLimiter

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def client_key(request: Request) -> str:
    """Return the caller's IP from the forwarding headers.

    Clients without a resolvable IP all share the ``"unknown"`` bucket.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip", "").strip()
    return real_ip or UNKNOWN_CLIENT


def reset_time(limiter: RateLimiter, key: str) -> str:
    """Return an ISO-8601 timestamp for when ``key``'s window resets."""
    return datetime.fromtimestamp(
        limiter.reset_at(key), tz=timezone.utc
    ).isoformat()


def rate_limit_headers(limiter: RateLimiter, key: str) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(limiter.limit),
        "X-RateLimit-Remaining": str(limiter.remaining(key)),
        "X-RateLimit-Reset": reset_time(limiter, key),
    }


def get_bot(request: Request, provider: str) -> ChatBot:
    """Retrieve a provider's ChatBot from app state."""
    return request.app.state.bots[provider]


def rate_limit(provider: str) -> Callable[[Request], Awaitable[str]]:
    """Build a dependency enforcing ``provider``'s per-client quota.

    The dependency records the request and raises QuotaExceededError (429)
    once the caller has exhausted the window.

    Returns:
        A dependency resolving to the caller's client key.
    """

    async def _rate_limit(request: Request) -> str:
        key = client_key(request)
        limiter = get_bot(request, provider).rate_limiter

        logger.info("[%s] New request from %s", provider, key)

        if not limiter.check(key):
            logger.warning("[%s] Rate limit exceeded for %s", provider, key)
            retry_after = max(1, math.ceil(limiter.seconds_until_reset(key)))
            raise QuotaExceededError(
                retry_after=retry_after,
                headers=rate_limit_headers(limiter, key),
            )

        return key

    return _rate_limit
