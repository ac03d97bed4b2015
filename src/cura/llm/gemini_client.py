"""Google Gemini generateContent client over httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from cura.errors import LlmConfigurationError, LlmRequestError
from cura.llm.base import CompletionOptions, LlmCompletion

logger = logging.getLogger(__name__)

GEMINI_API_ROOT = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiClient:
    """Send prompts (optionally with inline documents) to Gemini models."""

    provider = "gemini"

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
            raise LlmConfigurationError("GOOGLE_AI_API_KEY is not configured")
        self.model = model
        self.max_tokens = max_tokens
        self._client = httpx.Client(
            headers={"x-goog-api-key": api_key},
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            transport=transport or httpx.HTTPTransport(retries=max_retries),
        )

    def close(self) -> None:
        self._client.close()

    def complete(self, prompt: str, options: CompletionOptions | None = None) -> LlmCompletion:
        options = options or CompletionOptions()
        model = options.model or self.model
        parts: list[dict[str, Any]] = [
            {"inline_data": {"mime_type": document.media_type, "data": document.base64_data}}
            for document in options.documents
        ]
        parts.append({"text": prompt})
        generation_config: dict[str, Any] = {
            "maxOutputTokens": options.max_tokens or self.max_tokens,
        }
        if options.temperature is not None:
            generation_config["temperature"] = options.temperature

        try:
            response = self._client.post(
                f"{GEMINI_API_ROOT}/{model}:generateContent",
                json={
                    "contents": [{"role": "user", "parts": parts}],
                    "generationConfig": generation_config,
                },
            )
        except httpx.TimeoutException as error:
            logger.warning("Timeout calling Gemini model %s", model)
            raise LlmRequestError(f"Gemini request timed out: {error}") from error
        except httpx.HTTPError as error:
            logger.warning("HTTP error calling Gemini model %s: %s", model, error)
            raise LlmRequestError(f"Gemini request failed: {error}") from error

        if not response.is_success:
            raise LlmRequestError(
                f"Gemini API error: HTTP {response.status_code}: {response.text[:300]}",
            )
        payload = response.json()
        candidates = payload.get("candidates") or []
        if not candidates:
            raise LlmRequestError("Gemini returned no candidates")
        content = candidates[0].get("content") or {}
        text = "".join(
            part.get("text", "") for part in content.get("parts") or [] if isinstance(part, dict)
        )
        return LlmCompletion(text=text, provider=self.provider, model=model)
