"""Per-client fixed-window rate limiter.

Each key gets a window of ``window_seconds`` that opens on its first request.
Up to ``limit`` requests are admitted inside the window; the first request
after the window ends opens a fresh one.  State is process-local.
"""

import logging
import threading
import time
from collections.abc import Callable

from chatbot.models import RateLimitEntry

logger = logging.getLogger(__name__)


class RateLimiter:
    """In-memory quota store keyed by client identifier.

    One instance is created per provider at application startup and handed
    to the ``ChatBot`` that owns it.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Requests admitted per key and window.
            window_seconds: Length of a window.
            clock: Returns the current time in epoch seconds.
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def check(self, key: str) -> bool:
        """Record a request for ``key`` and return whether it is admitted."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)

            if entry is None or now >= entry.window_end:
                self._entries[key] = RateLimitEntry(
                    key=key,
                    count=1,
                    window_end=now + self.window_seconds,
                )
                return True

            if entry.count < self.limit:
                entry.count += 1
                return True

            return False

    def get_entry(self, key: str) -> RateLimitEntry | None:
        """Return the live window for ``key``, or None if it has none."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._clock() >= entry.window_end:
                return None
            return RateLimitEntry(entry.key, entry.count, entry.window_end)

    def remaining(self, key: str) -> int:
        """Return how many requests ``key`` may still make in its window."""
        entry = self.get_entry(key)
        if entry is None:
            return self.limit
        return max(0, self.limit - entry.count)

    def reset_at(self, key: str) -> float:
        """Return the epoch time at which ``key``'s window resets."""
        entry = self.get_entry(key)
        if entry is None:
            return self._clock()
        return entry.window_end

    def seconds_until_reset(self, key: str) -> float:
        return max(0.0, self.reset_at(key) - self._clock())

    def sweep(self) -> int:
        """Drop every expired window and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [
                key for key, entry in self._entries.items()
                if now >= entry.window_end
            ]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug("Evicted %d expired rate-limit entries", len(expired))
        return len(expired)
