"""Pydantic request/response models for the API."""

from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, StrictStr

from chatbot.models import ConversationTurn, Role


class HistoryTurn(BaseModel):
    """A prior message sent back by the chat widget."""

    role: Literal["user", "assistant"]
    content: StrictStr = Field(validation_alias=AliasChoices("content", "text"))

    def to_turn(self) -> ConversationTurn:
        return ConversationTurn(role=Role(self.role), text=self.content)


class ChatRequest(BaseModel):
    """Body for the chat endpoints."""

    question: StrictStr = Field(min_length=1)
    history: list[HistoryTurn] = Field(default_factory=list)

    def history_turns(self) -> list[ConversationTurn]:
        return [turn.to_turn() for turn in self.history]


class ErrorResponse(BaseModel):
    """JSON body of every error response."""

    error: str


class RateLimitStatus(BaseModel):
    """Current rate-limit status for the calling client."""

    limit: int
    remaining: int
    reset: str


class HealthStatus(BaseModel):
    """Health-check body with per-provider credential status."""

    status: str
    providers: dict[str, bool]
