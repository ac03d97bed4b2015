"""Exception hierarchy shared by the queue, LLM, and suggestion layers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cura.queue.rate_limit import RateLimitResult


class CuraError(Exception):
    """Base class for expected, user-facing failures."""


class PersistenceUnavailableError(CuraError):
    """Task storage cannot be reached; the queue switches to degraded mode."""


class SchemaNotProvisionedError(PersistenceUnavailableError):
    """Task tables are missing and the migration has to be run first."""


class NotAuthenticatedError(CuraError):
    """Storage was used without a user identity."""


class TaskNotFoundError(CuraError):
    """No task with the given id exists for the current user."""


class TaskStateError(CuraError):
    """Task is not in a status that allows the requested transition."""


class RateLimitExceededError(CuraError):
    """Monthly usage bucket for an API type is exhausted."""

    def __init__(self, result: RateLimitResult) -> None:
        super().__init__(result.describe())
        self.result = result


class ProcessingError(CuraError):
    """Processing step failed or returned an unusable payload."""


class LlmError(CuraError):
    """LLM provider call failed."""


class LlmConfigurationError(LlmError):
    """LLM provider is not configured (unknown provider or missing API key)."""


class LlmRequestError(LlmError):
    """LLM provider request failed on the network or returned an error status."""


class SuggestionError(CuraError):
    """Suggestion could not be loaded or found."""


class SuggestionTargetError(SuggestionError):
    """Suggestion location does not exist in the current resume draft."""


class ResumeFormatError(SuggestionError):
    """Structured resume document does not have the expected sections and fields."""
