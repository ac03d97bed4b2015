"""Runtime configuration for the task queue, LLM providers, and review sessions."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

SUPPORTED_PROVIDERS: tuple[str, ...] = ("anthropic", "gemini", "echo")


@dataclass(slots=True)
class QueueSettings:
    """Polling and dispatch settings for the task queue manager."""

    poll_interval_seconds: float = 3.0
    max_concurrent_tasks: int = 8
    sqlite_busy_timeout_ms: int = 5_000


@dataclass(slots=True)
class RateLimitSettings:
    """Monthly call limits per API type."""

    ai_calls_per_month: int = 30
    pdf_imports_per_month: int = 100

    def limits(self) -> dict[str, int]:
        """Limit per API type as consumed by the rate limiter."""

        return {
            "ai_analyze": self.ai_calls_per_month,
            "ai_build": self.ai_calls_per_month,
            "pdf_import": self.pdf_imports_per_month,
        }


@dataclass(slots=True)
class BuildSettings:
    """Defaults for curated resume builds when a task carries no preferences."""

    max_experiences: int = 3
    max_projects: int = 2
    max_bullets_per_experience: int = 3
    max_bullets_per_project: int = 3


@dataclass(slots=True)
class LlmSettings:
    """LLM provider selection and request policy."""

    provider: str = "anthropic"
    anthropic_api_key: str | None = None
    gemini_api_key: str | None = None
    anthropic_model: str = "claude-sonnet-4-20250514"
    gemini_model: str = "gemini-2.0-flash"
    max_tokens: int = 4_000
    request_timeout_seconds: float = 120.0
    max_retries: int = 2
    echo_response: str = "{}"


@dataclass(slots=True)
class UserContextSettings:
    """User context settings."""

    user_id: str = "default_user"
    user_name: str = "Default User"


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".cura.db")
    profile_path: Path = Path("profile.json")
    session_path: Path = Path(".cura_session.json")
    verbose: bool = False
    queue: QueueSettings = field(default_factory=QueueSettings)
    rate_limits: RateLimitSettings = field(default_factory=RateLimitSettings)
    build: BuildSettings = field(default_factory=BuildSettings)
    llm: LlmSettings = field(default_factory=LlmSettings)
    user_context: UserContextSettings = field(default_factory=UserContextSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("CURA_DB_PATH", ".cura.db")),
            profile_path=Path(os.getenv("CURA_PROFILE_PATH", "profile.json")),
            session_path=Path(os.getenv("CURA_SESSION_PATH", ".cura_session.json")),
            verbose=_env_bool("CURA_VERBOSE", default=False),
            queue=QueueSettings(
                poll_interval_seconds=float(os.getenv("CURA_POLL_INTERVAL_SECONDS", "3.0")),
                max_concurrent_tasks=int(os.getenv("CURA_MAX_CONCURRENT_TASKS", "8")),
                sqlite_busy_timeout_ms=int(os.getenv("CURA_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            ),
            rate_limits=RateLimitSettings(
                ai_calls_per_month=int(os.getenv("CURA_RATE_LIMIT_AI_CALLS", "30")),
                pdf_imports_per_month=int(os.getenv("CURA_RATE_LIMIT_PDF_IMPORT", "100")),
            ),
            build=BuildSettings(
                max_experiences=int(os.getenv("CURA_BUILD_MAX_EXPERIENCES", "3")),
                max_projects=int(os.getenv("CURA_BUILD_MAX_PROJECTS", "2")),
                max_bullets_per_experience=int(
                    os.getenv("CURA_BUILD_MAX_BULLETS_PER_EXPERIENCE", "3"),
                ),
                max_bullets_per_project=int(
                    os.getenv("CURA_BUILD_MAX_BULLETS_PER_PROJECT", "3"),
                ),
            ),
            llm=LlmSettings(
                provider=os.getenv("CURA_AI_PROVIDER", "anthropic").strip().lower(),
                anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
                gemini_api_key=os.getenv("GOOGLE_AI_API_KEY") or None,
                anthropic_model=os.getenv("CURA_ANTHROPIC_MODEL", "claude-sonnet-4-20250514"),
                gemini_model=os.getenv("CURA_GEMINI_MODEL", "gemini-2.0-flash"),
                max_tokens=int(os.getenv("CURA_LLM_MAX_TOKENS", "4000")),
                request_timeout_seconds=float(
                    os.getenv("CURA_LLM_REQUEST_TIMEOUT_SECONDS", "120.0"),
                ),
                max_retries=int(os.getenv("CURA_LLM_MAX_RETRIES", "2")),
                echo_response=os.getenv("CURA_ECHO_RESPONSE", "{}"),
            ),
            user_context=UserContextSettings(
                user_id=os.getenv("CURA_USER_ID", "default_user"),
                user_name=os.getenv("CURA_USER_NAME", "Default User"),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for values the queue cannot run with."""

        if self.queue.poll_interval_seconds <= 0:
            raise ValueError("CURA_POLL_INTERVAL_SECONDS must be > 0.")
        if self.queue.max_concurrent_tasks < 1:
            raise ValueError("CURA_MAX_CONCURRENT_TASKS must be >= 1.")
        for api_type, limit in self.rate_limits.limits().items():
            if limit <= 0:
                raise ValueError(f"Rate limit for {api_type} must be a positive integer.")
        if self.llm.provider not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unsupported CURA_AI_PROVIDER: {self.llm.provider!r}. "
                f"Expected one of: {', '.join(SUPPORTED_PROVIDERS)}.",
            )
        if self.llm.request_timeout_seconds <= 0:
            raise ValueError("CURA_LLM_REQUEST_TIMEOUT_SECONDS must be > 0.")
        if not self.user_context.user_id.strip():
            raise ValueError("CURA_USER_ID must not be empty.")


def _env_bool(name: str, default: bool) -> bool:
    """Parse a boolean environment flag."""

    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
