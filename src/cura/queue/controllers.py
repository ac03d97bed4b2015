"""Controllers for task queue CLI commands."""

from __future__ import annotations

import base64
import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cura.config import Settings
from cura.llm import build_llm_client
from cura.queue.manager import TaskQueueManager
from cura.queue.models import BuildPreferences, TaskMode, TaskStatus, TaskView
from cura.queue.processing import TaskProcessor, build_processors
from cura.queue.rate_limit import API_TYPES, RateLimiter
from cura.queue.repository import TaskRepository
from cura.suggestions.resume import Resume

_DOCUMENT_MEDIA_TYPES = {".pdf": "application/pdf"}


@dataclass(slots=True)
class DbMigrateCommand:
    """CLI input for schema migration."""

    db_path: Path | None


@dataclass(slots=True)
class TaskAddCommand:
    """CLI input for queueing a task."""

    db_path: Path | None
    mode: str
    job_description: str
    job_title: str | None
    company: str | None
    resume_path: Path | None
    max_experiences: int | None = None
    max_projects: int | None = None
    max_bullets_per_experience: int | None = None
    max_bullets_per_project: int | None = None


@dataclass(slots=True)
class TaskListCommand:
    """CLI input for task listing."""

    db_path: Path | None
    status: str | None
    limit: int | None


@dataclass(slots=True)
class TaskInspectCommand:
    """CLI input for task inspection."""

    db_path: Path | None
    task_id: str
    show_result: bool = False


@dataclass(slots=True)
class TaskMutateCommand:
    """CLI input for retry/remove operations."""

    db_path: Path | None
    task_id: str


@dataclass(slots=True)
class TaskClearCompletedCommand:
    """CLI input for deleting completed tasks."""

    db_path: Path | None


@dataclass(slots=True)
class TaskRunCommand:
    """CLI input for queue polling."""

    db_path: Path | None
    once: bool
    max_polls: int | None


@dataclass(slots=True)
class UsageCommand:
    """CLI input for the monthly usage report."""

    db_path: Path | None


class TaskCliController:
    """Coordinates queue mutation, polling, and inspection CLI operations."""

    def migrate(self, command: DbMigrateCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _repository(settings) as repository:
            repository.init_schema()
            revision = repository.schema_revision()
        return [f"Database ready: {settings.db_path} (revision {revision})"]

    def add_task(self, command: TaskAddCommand) -> list[str]:
        mode = TaskMode(command.mode.strip().lower())
        if not command.job_description.strip():
            raise ValueError("Job description is required.")
        if mode is TaskMode.ANALYZE and command.resume_path is None:
            raise ValueError("Analyze tasks need a resume (--resume).")

        resume_data = _read_resume(command.resume_path) if command.resume_path else None
        preferences = BuildPreferences(
            max_experiences=command.max_experiences,
            max_projects=command.max_projects,
            max_bullets_per_experience=command.max_bullets_per_experience,
            max_bullets_per_project=command.max_bullets_per_project,
        )
        settings = _settings(command.db_path)
        with _queue_manager(settings) as manager:
            manager.load_tasks()
            task_id = manager.add_task(
                mode=mode,
                job_description=command.job_description,
                job_title=command.job_title,
                company=command.company,
                resume_data=resume_data,
                preferences=preferences if preferences.to_payload() else None,
            )
            task = next(task for task in manager.list_tasks() if task.task_id == task_id)
        return [
            "Task queued: "
            f"task_id={task.task_id} mode={task.mode.value} status={task.status.value}",
            f"Title: {task.job_title}",
            f"Company: {task.company}",
        ]

    def list_tasks(self, command: TaskListCommand) -> list[str]:
        settings = _settings(command.db_path)
        status_filter = _parse_status(command.status)
        with _repository(settings) as repository:
            tasks = repository.list_tasks(status=status_filter, limit=command.limit)

        lines = [f"Tasks: {len(tasks)}"]
        lines.extend(f"  {_task_line(task)}" for task in tasks)
        return lines

    def inspect_task(self, command: TaskInspectCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _repository(settings) as repository:
            details = repository.get_task_details(task_id=command.task_id)
        if details is None:
            return [f"Task not found: {command.task_id}"]

        task = details.task
        preferences = json.dumps(task.preferences.to_payload()) if task.preferences else "-"
        lines = [
            f"Task: {task.task_id}",
            f"Mode: {task.mode.value}",
            f"Title: {task.job_title}",
            f"Company: {task.company}",
            f"Status: {task.status.value}",
            f"Created: {task.created_at.isoformat()}",
            f"Completed: {task.completed_at.isoformat() if task.completed_at else '-'}",
            f"Error: {task.error or '-'}",
            f"Preferences: {preferences}",
            f"Events: {len(details.events)}",
        ]
        for event in details.events:
            lines.append(
                f"  {event.created_at.isoformat()} {event.event_type} "
                f"{event.status_from.value if event.status_from else '-'} -> "
                f"{event.status_to.value if event.status_to else '-'}",
            )
        if command.show_result and task.result is not None:
            lines.append("Result:")
            lines.extend(json.dumps(task.result, ensure_ascii=False, indent=2).splitlines())
        return lines

    def task_status(self, command: TaskMutateCommand) -> TaskStatus | None:
        settings = _settings(command.db_path)
        with _repository(settings) as repository:
            task = repository.get_task(task_id=command.task_id)
        return task.status if task is not None else None

    def retry_task(self, command: TaskMutateCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _queue_manager(settings) as manager:
            manager.retry_task(command.task_id)
        return [f"Task re-queued: {command.task_id}"]

    def remove_task(self, command: TaskMutateCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _queue_manager(settings) as manager:
            deleted = manager.remove_task(command.task_id)
        if not deleted:
            return [f"Task not found: {command.task_id}"]
        return [f"Task removed: {command.task_id}"]

    def clear_completed(self, command: TaskClearCompletedCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _queue_manager(settings) as manager:
            manager.load_tasks()
            removed = manager.clear_completed_tasks()
        return [f"Completed tasks removed: {removed}"]

    def run(self, command: TaskRunCommand) -> list[str]:
        settings = _settings(command.db_path)
        llm = build_llm_client(settings.llm)
        try:
            processors = build_processors(
                llm,
                profile_path=settings.profile_path,
                build_defaults=settings.build,
            )
            with _queue_manager(settings, processors=processors) as manager:
                max_polls = 1 if command.once else command.max_polls
                summary = manager.run_polling(max_polls=max_polls)
                tasks = manager.load_tasks()
                storage_error = manager.last_storage_error
        finally:
            llm.close()

        lines = [
            "Queue summary: "
            f"polls={summary.polls} dispatched={summary.dispatched} "
            f"completed={summary.completed} failed={summary.failed}",
        ]
        if summary.degraded:
            lines.append(f"Queue stopped: {storage_error or 'task storage unavailable'}")
            return lines
        lines.extend(f"  {_task_line(task)}" for task in tasks)
        return lines

    def usage(self, command: UsageCommand) -> list[str]:
        settings = _settings(command.db_path)
        with _repository(settings) as repository:
            limiter = RateLimiter(repository.engine, limits=settings.rate_limits.limits())
            results = [
                (
                    api_type,
                    limiter.get_usage(user_id=repository.user_id, api_type=api_type),
                )
                for api_type in API_TYPES
            ]
        lines = [f"Usage for {settings.user_context.user_id}:"]
        for api_type, result in results:
            lines.append(
                f"  {api_type}: {result.current_count}/{result.limit} "
                f"remaining={result.remaining} resets={result.reset_date.isoformat()}",
            )
        return lines


def _settings(db_path: Path | None) -> Settings:
    settings = Settings.from_env(db_path=db_path)
    settings.validate()
    return settings


def _parse_status(value: str | None) -> TaskStatus | None:
    if value is None:
        return None
    return TaskStatus(value.strip().lower())


def _task_line(task: TaskView) -> str:
    line = (
        f"{task.task_id} mode={task.mode.value} status={task.status.value} "
        f"title={task.job_title!r} company={task.company!r} "
        f"created={task.created_at.isoformat()}"
    )
    if task.error:
        line += f" error={task.error!r}"
    return line


def _read_resume(path: Path) -> dict[str, Any]:
    """Task resume payload: uploaded document as base64, anything else as text content.

    A JSON object must have the resume document shape; it is checked here so a
    malformed file never reaches the LLM.
    """

    media_type = _DOCUMENT_MEDIA_TYPES.get(path.suffix.lower())
    if media_type is not None:
        return {
            "base64Data": base64.b64encode(path.read_bytes()).decode("ascii"),
            "mediaType": media_type,
            "fileName": path.name,
        }
    content = path.read_text("utf-8")
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        Resume.from_dict(parsed)
    return {"content": content, "fileName": path.name}


@contextmanager
def _repository(settings: Settings) -> Iterator[TaskRepository]:
    repository = TaskRepository(
        db_path=settings.db_path,
        user_id=settings.user_context.user_id,
        user_name=settings.user_context.user_name,
        sqlite_busy_timeout_ms=settings.queue.sqlite_busy_timeout_ms,
    )
    try:
        yield repository
    finally:
        repository.close()


@contextmanager
def _queue_manager(
    settings: Settings,
    *,
    processors: dict[TaskMode, TaskProcessor] | None = None,
) -> Iterator[TaskQueueManager]:
    with _repository(settings) as repository:
        manager = TaskQueueManager(
            repository=repository,
            rate_limiter=RateLimiter(repository.engine, limits=settings.rate_limits.limits()),
            processors=processors or {},
            poll_interval_seconds=settings.queue.poll_interval_seconds,
            max_concurrent_tasks=settings.queue.max_concurrent_tasks,
        )
        with manager:
            yield manager
