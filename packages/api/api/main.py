"""FastAPI application entry point."""

import asyncio
import contextlib
import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from api.errors import register_error_handlers
from api.logging_config import configure_logging
from api.routes import router
from chatbot.ChatBot import ChatBot, build_chatbots
from chatbot.config import ChatSettings
from chatbot.providers.base import ChatProvider

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


class SecurityHeadersMiddleware:
    """Add ``SECURITY_HEADERS`` to every HTTP response, streamed ones included."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for header, value in SECURITY_HEADERS.items():
                    headers.setdefault(header, value)
            await send(message)

        await self.app(scope, receive, send_with_headers)


def load_environment() -> None:
    """Load a `.env` file found from the working directory upwards."""
    load_dotenv(find_dotenv(usecwd=True))


async def _sweep_rate_limits(bots: dict[str, ChatBot], interval: float) -> None:
    """Periodically evict expired rate-limit windows."""
    while True:
        await asyncio.sleep(interval)
        for name, bot in bots.items():
            evicted = bot.rate_limiter.sweep()
            if evicted:
                logger.debug("[%s] Swept %d rate-limit entries", name, evicted)


def create_app(
    settings: ChatSettings | None = None,
    providers: dict[str, ChatProvider] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Configuration to use; read from the environment at
            startup when omitted.
        providers: Provider adapters keyed by name, replacing the real
            OpenAI and Gemini clients.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Set up and tear down application-wide resources."""
        load_environment()
        config = settings or ChatSettings.from_env()
        configure_logging(config.log_level)

        bots = build_chatbots(config, providers)
        app.state.bots = bots
        logger.info("Chat relay started with providers: %s", ", ".join(bots))

        sweeper = asyncio.create_task(
            _sweep_rate_limits(bots, config.rate_limit_sweep_seconds)
        )

        yield

        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        for bot in bots.values():
            await bot.aclose()
        logger.info("Chat relay stopped")

    app = FastAPI(
        title="Gato Rojo Lab Chat API",
        version="0.1.0",
        lifespan=lifespan,
    )

    if settings is None:
        load_environment()
        origins = ChatSettings.from_env().cors_origins
    else:
        origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["POST", "GET"],
        allow_headers=["Content-Type"],
        expose_headers=[
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )

    app.add_middleware(SecurityHeadersMiddleware)

    register_error_handlers(app)
    app.include_router(router)
    return app


app = create_app()


def serve() -> None:
    """Start the uvicorn server using environment configuration."""
    load_environment()
    host = os.environ.get("API_HOST", "0.0.0.0")
    port = int(os.environ.get("API_PORT", "3000"))
    uvicorn.run("api.main:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    serve()
