"""Data models for conversations, quota windows and stream frames."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar


class Role(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    """A single message within a conversation.

    Attributes:
        role: Who wrote the turn.
        text: Sanitized message text (at most 500 characters).
    """

    role: Role
    text: str


@dataclass
class Conversation:
    """Everything sent to a provider for one completion.

    The system instruction is kept apart from the turns; each provider
    adapter decides how to encode it on the wire.

    Attributes:
        system_instruction: Fixed preamble describing the assistant.
        turns: Chronological turns, the last one being the new user message.
    """

    system_instruction: str
    turns: list[ConversationTurn] = field(default_factory=list)

    @property
    def last_turn(self) -> ConversationTurn | None:
        return self.turns[-1] if self.turns else None


@dataclass
class RateLimitEntry:
    """One client's quota window.

    Attributes:
        key: Client identifier (derived from forwarded IP headers).
        count: Requests admitted in the current window.
        window_end: Epoch seconds at which the window resets.
    """

    key: str
    count: int
    window_end: float


@dataclass(frozen=True)
class StreamFrame:
    """One Server-Sent Events frame sent to the chat widget.

    A frame without content is the terminal sentinel.
    """

    DONE_TOKEN: ClassVar[str] = "[DONE]"

    content: str | None = None

    @classmethod
    def done(cls) -> "StreamFrame":
        return cls()

    @property
    def is_done(self) -> bool:
        return self.content is None

    def encode(self) -> str:
        """Encode as an SSE ``data:`` line followed by a blank line."""
        if self.is_done:
            payload = self.DONE_TOKEN
        else:
            payload = json.dumps({"content": self.content}, ensure_ascii=False)
        return f"data: {payload}\n\n"
