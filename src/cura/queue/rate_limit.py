"""Monthly per-user call limits for AI and import APIs."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date

from sqlalchemy import update as sa_update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from cura.storage.common import storage_errors, to_db_datetime, utc_now
from cura.storage.sqlmodel_models import ApiRateLimit

API_TYPES: tuple[str, ...] = ("ai_analyze", "ai_build", "pdf_import")

_TABLE = "api_rate_limits"


@dataclass(slots=True)
class RateLimitResult:
    """Outcome of a limiter check, with quota metadata for the caller."""

    allowed: bool
    current_count: int
    limit: int
    remaining: int
    reset_date: date

    def describe(self) -> str:
        if self.allowed:
            return (
                f"{self.current_count}/{self.limit} calls used this month. "
                f"Resets on {self.reset_date.isoformat()}."
            )
        return (
            "AI usage limit reached for this month. "
            f"{self.remaining} calls remaining. Resets on {self.reset_date.isoformat()}."
        )


class RateLimiter:
    """Calendar-month usage buckets stored next to the task queue."""

    def __init__(self, engine: Engine, *, limits: Mapping[str, int]) -> None:
        self.engine = engine
        self.limits = dict(limits)

    def check_and_increment(
        self,
        *,
        user_id: str,
        api_type: str,
        max_calls: int | None = None,
        today: date | None = None,
    ) -> RateLimitResult:
        """Count one call against the bucket unless it is already exhausted."""

        limit = self._resolve_limit(api_type=api_type, max_calls=max_calls)
        period_start = _period_start(today or utc_now().date())
        now = to_db_datetime(utc_now())
        with storage_errors(_TABLE), Session(self.engine) as session:
            session.exec(
                sqlite_insert(ApiRateLimit)
                .values(
                    user_id=user_id,
                    api_type=api_type,
                    period_start=period_start,
                    call_count=0,
                    updated_at=now,
                )
                .on_conflict_do_nothing(
                    index_elements=["user_id", "api_type", "period_start"],
                ),
            )
            result = session.exec(
                sa_update(ApiRateLimit)
                .where(
                    col(ApiRateLimit.user_id) == user_id,
                    col(ApiRateLimit.api_type) == api_type,
                    col(ApiRateLimit.period_start) == period_start,
                    col(ApiRateLimit.call_count) < limit,
                )
                .values(
                    call_count=col(ApiRateLimit.call_count) + 1,
                    updated_at=now,
                ),
            )
            allowed = result.rowcount == 1
            current = self._current_count(
                session=session,
                user_id=user_id,
                api_type=api_type,
                period_start=period_start,
            )
            session.commit()

        return _result(
            allowed=allowed,
            current_count=current,
            limit=limit,
            period_start=period_start,
        )

    def get_usage(
        self,
        *,
        user_id: str,
        api_type: str,
        today: date | None = None,
    ) -> RateLimitResult:
        """Read the current bucket without counting a call."""

        limit = self._resolve_limit(api_type=api_type, max_calls=None)
        period_start = _period_start(today or utc_now().date())
        with storage_errors(_TABLE), Session(self.engine) as session:
            current = self._current_count(
                session=session,
                user_id=user_id,
                api_type=api_type,
                period_start=period_start,
            )
        return _result(
            allowed=current < limit,
            current_count=current,
            limit=limit,
            period_start=period_start,
        )

    def _resolve_limit(self, *, api_type: str, max_calls: int | None) -> int:
        if api_type not in API_TYPES:
            raise ValueError(
                f"Invalid API type: {api_type!r}. Expected one of: {', '.join(API_TYPES)}.",
            )
        if max_calls is not None:
            return max_calls
        return self.limits[api_type]

    @staticmethod
    def _current_count(
        *,
        session: Session,
        user_id: str,
        api_type: str,
        period_start: date,
    ) -> int:
        count = session.exec(
            select(ApiRateLimit.call_count).where(
                ApiRateLimit.user_id == user_id,
                ApiRateLimit.api_type == api_type,
                ApiRateLimit.period_start == period_start,
            ),
        ).one_or_none()
        return int(count or 0)


def _period_start(today: date) -> date:
    return today.replace(day=1)


def _next_period_start(period_start: date) -> date:
    if period_start.month == 12:
        return date(period_start.year + 1, 1, 1)
    return date(period_start.year, period_start.month + 1, 1)


def _result(
    *,
    allowed: bool,
    current_count: int,
    limit: int,
    period_start: date,
) -> RateLimitResult:
    return RateLimitResult(
        allowed=allowed,
        current_count=current_count,
        limit=limit,
        remaining=max(0, limit - current_count),
        reset_date=_next_period_start(period_start),
    )
