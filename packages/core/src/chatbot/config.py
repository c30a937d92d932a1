"""Runtime configuration read from the environment."""

import os
from dataclasses import dataclass, field


def _get_int(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


def _get_float(name: str, default: float) -> float:
    return float(os.environ.get(name, str(default)))


def _get_optional(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


@dataclass
class ChatSettings:
    """Settings shared by the API server and the CLI.

    Provider credentials are optional here: a missing key only fails the
    requests that need it, so the other provider keeps serving.
    """

    openai_api_key: str | None = None
    gemini_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    gemini_model: str = "gemini-2.0-flash"

    openai_rate_limit: int = 10
    gemini_rate_limit: int = 15
    rate_limit_window_seconds: float = 60.0
    rate_limit_sweep_seconds: float = 300.0

    provider_timeout_seconds: float = 10.0

    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ChatSettings":
        """Build settings from environment variables (call after load_dotenv)."""
        origins = os.environ.get("CORS_ORIGINS", "*")
        return cls(
            openai_api_key=_get_optional("OPENAI_API_KEY"),
            gemini_api_key=_get_optional("GEMINI_API_KEY"),
            openai_model=os.environ.get("OPENAI_MODEL", cls.openai_model),
            gemini_model=os.environ.get("GEMINI_MODEL", cls.gemini_model),
            openai_rate_limit=_get_int("OPENAI_RATE_LIMIT", cls.openai_rate_limit),
            gemini_rate_limit=_get_int("GEMINI_RATE_LIMIT", cls.gemini_rate_limit),
            rate_limit_window_seconds=_get_float(
                "RATE_LIMIT_WINDOW_SECONDS", cls.rate_limit_window_seconds
            ),
            rate_limit_sweep_seconds=_get_float(
                "RATE_LIMIT_SWEEP_SECONDS", cls.rate_limit_sweep_seconds
            ),
            provider_timeout_seconds=_get_float(
                "PROVIDER_TIMEOUT_SECONDS", cls.provider_timeout_seconds
            ),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.environ.get("LOG_LEVEL", cls.log_level).upper(),
        )
