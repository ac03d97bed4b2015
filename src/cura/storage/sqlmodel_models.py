"""SQLModel tables for users, the AI task queue, and API rate limits."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlmodel import Field, SQLModel

DEFAULT_USER_ID = "default_user"


class AppUser(SQLModel, table=True):
    __tablename__ = "users"  # type: ignore[bad-override]

    user_id: str = Field(primary_key=True)
    display_name: str = Field(index=True)
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class AiTask(SQLModel, table=True):
    __tablename__ = "ai_tasks"  # type: ignore[bad-override]
    __table_args__ = (
        Index("idx_ai_tasks_scope_status_time", "user_id", "status", "created_at"),
    )

    task_id: str = Field(primary_key=True)
    user_id: str = Field(
        default=DEFAULT_USER_ID,
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            server_default=DEFAULT_USER_ID,
            index=True,
        ),
    )
    mode: str = Field(index=True)
    job_title: str
    company: str
    job_description: str = Field(sa_column=Column(Text, nullable=False))
    resume_data_json: str | None = Field(default=None, sa_column=Column(Text))
    preferences_json: str | None = Field(default=None, sa_column=Column(Text))
    status: str = Field(index=True)
    result_json: str | None = Field(default=None, sa_column=Column(Text))
    error: str | None = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    completed_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))


class AiTaskEvent(SQLModel, table=True):
    __tablename__ = "ai_task_events"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_ai_task_events_task_time", "task_id", "created_at"),)

    id: int | None = Field(default=None, primary_key=True)
    task_id: str = Field(
        sa_column=Column(
            ForeignKey("ai_tasks.task_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    user_id: str = Field(
        default=DEFAULT_USER_ID,
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            server_default=DEFAULT_USER_ID,
            index=True,
        ),
    )
    event_type: str = Field(index=True)
    status_from: str | None = None
    status_to: str | None = None
    details_json: str | None = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class ApiRateLimit(SQLModel, table=True):
    __tablename__ = "api_rate_limits"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "api_type",
            "period_start",
            name="uq_api_rate_limits_bucket",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    api_type: str
    period_start: date = Field(sa_column=Column(Date, nullable=False))
    call_count: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, server_default="0"),
    )
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
