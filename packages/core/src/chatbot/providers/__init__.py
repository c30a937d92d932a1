"""Streaming LLM provider adapters."""

from chatbot.providers.base import ChatProvider
from chatbot.providers.gemini_provider import GeminiProvider
from chatbot.providers.openai_provider import OpenAIProvider

__all__ = ["ChatProvider", "GeminiProvider", "OpenAIProvider"]
