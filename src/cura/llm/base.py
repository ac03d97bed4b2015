"""LLM completion interface shared by provider clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(slots=True)
class DocumentPart:
    """Binary document (for example an uploaded resume PDF) sent with the prompt."""

    media_type: str
    base64_data: str


@dataclass(slots=True)
class CompletionOptions:
    """Per-call overrides for a completion request."""

    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    documents: tuple[DocumentPart, ...] = field(default_factory=tuple)


@dataclass(slots=True)
class LlmCompletion:
    """Text returned by a provider."""

    text: str
    provider: str
    model: str


class LlmClient(Protocol):
    """Protocol implemented by provider clients."""

    provider: str

    def complete(self, prompt: str, options: CompletionOptions | None = None) -> LlmCompletion:
        """Send one user prompt and return the text reply."""

    def close(self) -> None:
        """Release HTTP resources."""
