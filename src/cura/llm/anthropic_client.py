"""Anthropic Messages API client over httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from cura.errors import LlmConfigurationError, LlmRequestError
from cura.llm.base import CompletionOptions, LlmCompletion

logger = logging.getLogger(__name__)

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicClient:
    """Send prompts (optionally with PDF documents) to Claude models."""

    provider = "anthropic"

    def __init__(  # noqa: PLR0913
        self,
        *,
        api_key: str | None,
        model: str,
        max_tokens: int = 4_000,
        timeout_seconds: float = 120.0,
        max_retries: int = 2,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise LlmConfigurationError("ANTHROPIC_API_KEY is not configured")
        self.model = model
        self.max_tokens = max_tokens
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            headers={
                "x-api-key": api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
            transport=transport or httpx.HTTPTransport(retries=max_retries),
        )

    def close(self) -> None:
        self._client.close()

    def complete(self, prompt: str, options: CompletionOptions | None = None) -> LlmCompletion:
        options = options or CompletionOptions()
        model = options.model or self.model
        content: list[dict[str, Any]] = [
            {
                "type": "document",
                "source": {
                    "type": "base64",
                    "media_type": document.media_type,
                    "data": document.base64_data,
                },
            }
            for document in options.documents
        ]
        content.append({"type": "text", "text": prompt})
        body: dict[str, Any] = {
            "model": model,
            "max_tokens": options.max_tokens or self.max_tokens,
            "messages": [{"role": "user", "content": content}],
        }
        if options.temperature is not None:
            body["temperature"] = options.temperature

        try:
            response = self._client.post(ANTHROPIC_API_URL, json=body)
        except httpx.TimeoutException as error:
            logger.warning("Timeout calling Anthropic model %s", model)
            raise LlmRequestError(f"Anthropic request timed out: {error}") from error
        except httpx.HTTPError as error:
            logger.warning("HTTP error calling Anthropic model %s: %s", model, error)
            raise LlmRequestError(f"Anthropic request failed: {error}") from error

        if not response.is_success:
            raise LlmRequestError(
                f"Anthropic API error: HTTP {response.status_code}: {response.text[:300]}",
            )
        payload = response.json()
        blocks = payload.get("content") or []
        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        return LlmCompletion(text=text, provider=self.provider, model=payload.get("model", model))
