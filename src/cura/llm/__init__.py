"""LLM provider clients behind a single `complete(prompt, options)` capability."""

from cura.llm.base import CompletionOptions, DocumentPart, LlmClient, LlmCompletion
from cura.llm.factory import build_llm_client

__all__ = [
    "CompletionOptions",
    "DocumentPart",
    "LlmClient",
    "LlmCompletion",
    "build_llm_client",
]
