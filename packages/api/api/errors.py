"""Conversion of errors into ``{"error": ...}`` JSON responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chatbot.exceptions import ChatBotError, QuotaExceededError

logger = logging.getLogger(__name__)


async def chatbot_error_handler(request: Request, exc: ChatBotError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s on %s: %s %s",
            type(exc).__name__,
            request.url.path,
            exc.message,
            exc.details,
        )
    elif exc.details:
        logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.details)

    headers = exc.headers if isinstance(exc, QuotaExceededError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=headers,
    )


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request-validation failures as 400 with the first problem."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = " ".join(part for part in (field, first.get("msg", "")) if part)
        message = f"Invalid request: {detail}" if detail else "Invalid request"
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ChatBotError, chatbot_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
