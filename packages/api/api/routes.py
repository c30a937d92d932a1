"""API route definitions."""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import aclosing

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import StreamingResponse
from pydantic import ValidationError as PydanticValidationError

from api.rate_limit import client_key, get_bot, rate_limit, rate_limit_headers, reset_time
from api.schemas import ChatRequest, ErrorResponse, HealthStatus, RateLimitStatus
from chatbot.exceptions import ChatBotError
from chatbot.models import StreamFrame

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
}

_CHAT_REQUEST_BODY = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": ChatRequest.model_json_schema()}},
    }
}


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthStatus)
async def health_check(request: Request):
    """Basic liveness check, also reporting which providers have credentials."""
    return HealthStatus(
        status="ok",
        providers={
            name: bot.provider.is_configured
            for name, bot in request.app.state.bots.items()
        },
    )


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


async def _encode(frames: AsyncGenerator[StreamFrame, None]) -> AsyncIterator[str]:
    # Closing the response body must also close the relay and its upstream.
    async with aclosing(frames):
        async for frame in frames:
            yield frame.encode()


async def chat_request(request: Request) -> ChatRequest:
    """Parse the chat body; declared after the rate limit so it runs second."""
    try:
        return ChatRequest.model_validate_json(await request.body())
    except PydanticValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc


async def _chat_stream(
    provider: str,
    body: ChatRequest,
    request: Request,
    key: str,
) -> StreamingResponse:
    """Open the provider relay and wrap it in an SSE response."""
    bot = get_bot(request, provider)
    try:
        frames = await bot.open_stream(
            body.question,
            body.history_turns(),
            is_disconnected=request.is_disconnected,
        )
    except ChatBotError:
        raise
    except Exception as exc:
        logger.exception("[%s] Unexpected error opening the stream", provider)
        raise ChatBotError("Internal server error") from exc

    return StreamingResponse(
        _encode(frames),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
            **rate_limit_headers(bot.rate_limiter, key),
        },
    )


@router.post(
    "/api/chat-openai", responses=_ERROR_RESPONSES, openapi_extra=_CHAT_REQUEST_BODY
)
async def chat_openai(
    request: Request,
    key: str = Depends(rate_limit("openai")),
    body: ChatRequest = Depends(chat_request),
):
    """Stream an OpenAI answer as Server-Sent Events.

    Each event is ``data: {"content": ...}``; the stream ends with
    ``data: [DONE]``.  This endpoint is rate-limited per client IP.
    """
    return await _chat_stream("openai", body, request, key)


@router.post(
    "/api/chat-gemini", responses=_ERROR_RESPONSES, openapi_extra=_CHAT_REQUEST_BODY
)
async def chat_gemini(
    request: Request,
    key: str = Depends(rate_limit("gemini")),
    body: ChatRequest = Depends(chat_request),
):
    """Stream a Gemini answer as Server-Sent Events.

    Same protocol and limits as the OpenAI endpoint.
    """
    return await _chat_stream("gemini", body, request, key)


# ---------------------------------------------------------------------------
# Rate-limit status
# ---------------------------------------------------------------------------


@router.get("/api/rate-limit/{provider}", response_model=RateLimitStatus)
async def get_rate_limit_status(provider: str, request: Request):
    """Return the caller's quota for ``provider`` without consuming it."""
    if provider not in request.app.state.bots:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Unknown provider",
        )

    limiter = get_bot(request, provider).rate_limiter
    key = client_key(request)
    return RateLimitStatus(
        limit=limiter.limit,
        remaining=limiter.remaining(key),
        reset=reset_time(limiter, key),
    )
