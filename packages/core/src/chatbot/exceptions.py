"""Exception hierarchy for the chat relay.

Every error carries the HTTP status the API layer should answer with and a
message that is safe to show to the caller.  Anything sensitive belongs in
``details``, which is only ever logged.
"""

from typing import Any


class ChatBotError(Exception):
    """Base exception for the chat relay."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ChatBotError):
    """The request payload is malformed or missing required fields."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, status_code=400, details=details)


class QuotaExceededError(ChatBotError):
    """The caller has used up its requests for the current window."""

    def __init__(
        self,
        message: str = "Too many requests. Please wait a minute and try again.",
        retry_after: int = 60,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.retry_after = retry_after
        self.headers = {"Retry-After": str(retry_after), **(headers or {})}
        super().__init__(message, status_code=429)


class ConfigurationError(ChatBotError):
    """The server is missing configuration, e.g. provider credentials."""

    def __init__(self, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            "The chat service is not configured correctly.",
            status_code=500,
            details=details,
        )


class ProviderError(ChatBotError):
    """The upstream LLM provider rejected or failed the request."""

    def __init__(
        self,
        message: str = "The assistant is temporarily unavailable. Please try again later.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, status_code=502, details=details)


class ProviderTimeoutError(ProviderError):
    """The provider did not start answering within the allowed time."""

    def __init__(self, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            "The assistant took too long to answer. Please try again.",
            details=details,
        )


class ContentBlockedError(ChatBotError):
    """The provider's safety filters rejected the content."""

    def __init__(self, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            "Your message was blocked by the content filters. Please rephrase it.",
            status_code=400,
            details=details,
        )
