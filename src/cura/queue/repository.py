"""Persistent task repository backing the AI task queue."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlmodel import Session, col, select

from cura.errors import NotAuthenticatedError, TaskNotFoundError, TaskStateError
from cura.queue.models import (
    BuildPreferences,
    TaskCreate,
    TaskDetails,
    TaskEventView,
    TaskMode,
    TaskStatus,
    TaskView,
)
from cura.storage.alembic_runner import schema_revision, upgrade_head
from cura.storage.common import (
    build_sqlite_engine,
    storage_errors,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from cura.storage.sqlmodel_models import DEFAULT_USER_ID, AiTask, AiTaskEvent, AppUser

_TABLE = "ai_tasks"


class TaskRepository:
    """Task persistence facade backed by SQLModel + SQLite, scoped to one user."""

    def __init__(
        self,
        db_path: Path,
        *,
        user_id: str = DEFAULT_USER_ID,
        user_name: str = "Default User",
        sqlite_busy_timeout_ms: int = 5_000,
    ) -> None:
        if not user_id or not user_id.strip():
            raise NotAuthenticatedError("Not authenticated: a user id is required.")
        self.db_path = db_path
        self.user_id = user_id
        self.user_name = user_name
        self.engine = build_sqlite_engine(
            db_path=db_path,
            busy_timeout_ms=sqlite_busy_timeout_ms,
        )

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations and ensure actor context exists."""

        upgrade_head(self.db_path)
        with Session(self.engine) as session:
            self._ensure_actor_context(session)
            session.commit()

    def schema_revision(self) -> str | None:
        """Applied migration revision, or None for an unmigrated database."""

        return schema_revision(self.engine)

    def _ensure_actor_context(self, session: Session) -> None:
        user = session.exec(
            select(AppUser).where(AppUser.user_id == self.user_id),
        ).one_or_none()
        if user is not None:
            return
        session.add(
            AppUser(
                user_id=self.user_id,
                display_name=self.user_name,
                created_at=utc_now(),
            ),
        )
        session.flush()

    def create_task(self, payload: TaskCreate) -> TaskView:
        """Persist a new pending task."""

        now = utc_now()
        task_id = payload.task_id or str(uuid4())
        with storage_errors(_TABLE), Session(self.engine) as session:
            self._ensure_actor_context(session)
            row = AiTask(
                task_id=task_id,
                user_id=self.user_id,
                mode=payload.mode.value,
                job_title=payload.job_title,
                company=payload.company,
                job_description=payload.job_description,
                resume_data_json=_dump_json(payload.resume_data),
                preferences_json=_dump_json(
                    payload.preferences.to_payload() if payload.preferences else None,
                ),
                status=TaskStatus.PENDING.value,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            self._add_event(
                session=session,
                task_id=task_id,
                event_type="created",
                status_from=None,
                status_to=TaskStatus.PENDING,
                details={"mode": payload.mode.value, "job_title": payload.job_title},
            )
            session.commit()
            session.refresh(row)
            return _to_task_view(row)

    def list_tasks(
        self,
        *,
        status: TaskStatus | None = None,
        limit: int | None = None,
    ) -> list[TaskView]:
        """List the user's tasks newest first, optionally filtered by status."""

        with storage_errors(_TABLE), Session(self.engine) as session:
            statement = (
                select(AiTask)
                .where(AiTask.user_id == self.user_id)
                .order_by(col(AiTask.created_at).desc())
            )
            if status is not None:
                statement = statement.where(AiTask.status == status.value)
            if limit is not None:
                statement = statement.limit(limit)
            rows = session.exec(statement).all()
        return [_to_task_view(row) for row in rows]

    def get_task(self, *, task_id: str) -> TaskView | None:
        with storage_errors(_TABLE), Session(self.engine) as session:
            row = session.exec(
                select(AiTask).where(
                    AiTask.task_id == task_id,
                    AiTask.user_id == self.user_id,
                ),
            ).one_or_none()
        return _to_task_view(row) if row is not None else None

    def mark_running(self, *, task_id: str) -> bool:
        """Claim a pending task; False when it is no longer pending or was deleted."""

        return self._transition(
            task_id=task_id,
            status_from=TaskStatus.PENDING,
            status_to=TaskStatus.RUNNING,
            event_type="started",
            values={},
            details={},
        )

    def complete_task(self, *, task_id: str, result: dict[str, Any]) -> bool:
        """Mark a running task as completed with its result payload."""

        now = utc_now()
        return self._transition(
            task_id=task_id,
            status_from=TaskStatus.RUNNING,
            status_to=TaskStatus.COMPLETED,
            event_type="completed",
            values={
                "result_json": _dump_json(result),
                "error": None,
                "completed_at": to_db_datetime(now),
            },
            details={},
            now=now,
        )

    def fail_task(self, *, task_id: str, error: str) -> bool:
        """Mark a running task as failed with a human-readable reason."""

        return self._transition(
            task_id=task_id,
            status_from=TaskStatus.RUNNING,
            status_to=TaskStatus.FAILED,
            event_type="failed",
            values={"error": error},
            details={"error": error},
        )

    def retry_task(self, *, task_id: str) -> TaskView:
        """Re-queue a failed task, clearing its error."""

        with storage_errors(_TABLE), Session(self.engine) as session:
            row = self._get_task_row(session=session, task_id=task_id)
            previous = TaskStatus(row.status)
            if previous is not TaskStatus.FAILED:
                raise TaskStateError(
                    f"Only failed tasks can be retried, got {row.status} (task_id={task_id}).",
                )
        updated = self._transition(
            task_id=task_id,
            status_from=TaskStatus.FAILED,
            status_to=TaskStatus.PENDING,
            event_type="retried",
            values={"error": None, "result_json": None, "completed_at": None},
            details={},
        )
        if not updated:
            raise TaskStateError(
                f"Task state changed concurrently while retrying (task_id={task_id}).",
            )
        task = self.get_task(task_id=task_id)
        if task is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return task

    def delete_task(self, *, task_id: str) -> bool:
        """Delete a task in any status; False when it did not exist."""

        with storage_errors(_TABLE), Session(self.engine) as session:
            result = session.exec(
                sa_delete(AiTask).where(
                    col(AiTask.task_id) == task_id,
                    col(AiTask.user_id) == self.user_id,
                ),
            )
            session.commit()
            return result.rowcount == 1

    def get_task_details(self, *, task_id: str) -> TaskDetails | None:
        """Return task details with event stream."""

        with storage_errors(_TABLE), Session(self.engine) as session:
            task = session.exec(
                select(AiTask).where(
                    AiTask.task_id == task_id,
                    AiTask.user_id == self.user_id,
                ),
            ).one_or_none()
            if task is None:
                return None

            event_rows = session.exec(
                select(AiTaskEvent)
                .where(
                    AiTaskEvent.task_id == task_id,
                    AiTaskEvent.user_id == self.user_id,
                )
                .order_by(col(AiTaskEvent.created_at).asc(), col(AiTaskEvent.id).asc()),
            ).all()

        events: list[TaskEventView] = []
        for row in event_rows:
            details = {}
            if row.details_json:
                parsed = json.loads(row.details_json)
                if isinstance(parsed, dict):
                    details = parsed
            events.append(
                TaskEventView(
                    event_id=row.id or 0,
                    task_id=row.task_id,
                    event_type=row.event_type,
                    status_from=(
                        TaskStatus(row.status_from) if row.status_from is not None else None
                    ),
                    status_to=TaskStatus(row.status_to) if row.status_to is not None else None,
                    created_at=to_utc_aware_datetime(row.created_at),
                    details=details,
                ),
            )

        return TaskDetails(task=_to_task_view(task), events=events)

    def _transition(  # noqa: PLR0913
        self,
        *,
        task_id: str,
        status_from: TaskStatus,
        status_to: TaskStatus,
        event_type: str,
        values: dict[str, Any],
        details: dict[str, object],
        now: datetime | None = None,
    ) -> bool:
        now = now or utc_now()
        with storage_errors(_TABLE), Session(self.engine) as session:
            result = session.exec(
                sa_update(AiTask)
                .where(
                    col(AiTask.task_id) == task_id,
                    col(AiTask.user_id) == self.user_id,
                    col(AiTask.status) == status_from.value,
                )
                .values(
                    status=status_to.value,
                    updated_at=to_db_datetime(now),
                    **values,
                ),
            )
            if result.rowcount != 1:
                session.rollback()
                return False
            self._add_event(
                session=session,
                task_id=task_id,
                event_type=event_type,
                status_from=status_from,
                status_to=status_to,
                details=details,
            )
            session.commit()
            return True

    def _get_task_row(self, *, session: Session, task_id: str) -> AiTask:
        row = session.exec(
            select(AiTask).where(
                AiTask.task_id == task_id,
                AiTask.user_id == self.user_id,
            ),
        ).one_or_none()
        if row is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return row

    def _add_event(  # noqa: PLR0913
        self,
        *,
        session: Session,
        task_id: str,
        event_type: str,
        status_from: TaskStatus | None,
        status_to: TaskStatus | None,
        details: dict[str, object],
    ) -> None:
        session.add(
            AiTaskEvent(
                task_id=task_id,
                user_id=self.user_id,
                event_type=event_type,
                status_from=status_from.value if status_from is not None else None,
                status_to=status_to.value if status_to is not None else None,
                details_json=json.dumps(details, ensure_ascii=False, sort_keys=True)
                if details
                else None,
                created_at=utc_now(),
            ),
        )


def _dump_json(value: dict[str, Any] | None) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def _load_json(raw: str | None) -> dict[str, Any] | None:
    if not raw:
        return None
    parsed = json.loads(raw)
    return parsed if isinstance(parsed, dict) else None


def _to_task_view(row: AiTask) -> TaskView:
    preferences = _load_json(row.preferences_json)
    return TaskView(
        task_id=row.task_id,
        user_id=row.user_id,
        mode=TaskMode(row.mode),
        job_title=row.job_title,
        company=row.company,
        job_description=row.job_description,
        resume_data=_load_json(row.resume_data_json),
        preferences=BuildPreferences.from_payload(preferences) if preferences else None,
        status=TaskStatus(row.status),
        result=_load_json(row.result_json),
        error=row.error,
        created_at=to_utc_aware_datetime(row.created_at),
        updated_at=to_utc_aware_datetime(row.updated_at),
        completed_at=(
            to_utc_aware_datetime(row.completed_at) if row.completed_at is not None else None
        ),
    )
