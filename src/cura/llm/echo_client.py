"""Deterministic offline client that replies with a configured response."""

from __future__ import annotations

from cura.llm.base import CompletionOptions, LlmCompletion


class EchoClient:
    """Return a canned reply for every prompt and remember what was asked."""

    provider = "echo"

    def __init__(self, *, response: str = "{}", model: str = "echo") -> None:
        self.response = response
        self.model = model
        self.prompts: list[str] = []

    def close(self) -> None:
        return None

    def complete(self, prompt: str, options: CompletionOptions | None = None) -> LlmCompletion:
        self.prompts.append(prompt)
        model = options.model if options is not None and options.model else self.model
        return LlmCompletion(text=self.response, provider=self.provider, model=model)
