"""Select the configured LLM provider client."""

from __future__ import annotations

from cura.config import SUPPORTED_PROVIDERS, LlmSettings
from cura.errors import LlmConfigurationError
from cura.llm.anthropic_client import AnthropicClient
from cura.llm.base import LlmClient
from cura.llm.echo_client import EchoClient
from cura.llm.gemini_client import GeminiClient


def build_llm_client(settings: LlmSettings) -> LlmClient:
    """Build the client for `settings.provider`."""

    if settings.provider == "anthropic":
        return AnthropicClient(
            api_key=settings.anthropic_api_key,
            model=settings.anthropic_model,
            max_tokens=settings.max_tokens,
            timeout_seconds=settings.request_timeout_seconds,
            max_retries=settings.max_retries,
        )
    if settings.provider == "gemini":
        return GeminiClient(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            max_tokens=settings.max_tokens,
            timeout_seconds=settings.request_timeout_seconds,
            max_retries=settings.max_retries,
        )
    if settings.provider == "echo":
        return EchoClient(response=settings.echo_response)
    raise LlmConfigurationError(
        f"Unsupported AI provider: {settings.provider!r}. "
        f"Expected one of: {', '.join(SUPPORTED_PROVIDERS)}.",
    )
