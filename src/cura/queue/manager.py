"""Task queue manager: polls persisted tasks and drives pending ones to completion."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Iterator, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from cura.errors import (
    CuraError,
    PersistenceUnavailableError,
    ProcessingError,
    RateLimitExceededError,
)
from cura.queue.models import (
    API_TYPE_BY_MODE,
    DEFAULT_COMPANY,
    BuildPreferences,
    TaskCreate,
    TaskInput,
    TaskMode,
    TaskStatus,
    TaskView,
    next_default_title,
)
from cura.queue.processing import TaskProcessor
from cura.queue.rate_limit import RateLimiter
from cura.queue.repository import TaskRepository

logger = logging.getLogger(__name__)

DEGRADED_MESSAGE = "Database not available. Please run the migration first."


@dataclass(slots=True)
class QueueRunSummary:
    """Aggregate polling counters for CLI reporting."""

    polls: int = 0
    dispatched: int = 0
    completed: int = 0
    failed: int = 0
    degraded: bool = False


class TaskQueueManager:
    """Owns the task snapshot, the in-flight set, and the dispatch pool.

    Every pending task seen by a reconciliation pass is dispatched at most once
    at a time per manager; the conditional `pending -> running` claim in the
    repository makes a second manager skip tasks the first one already took.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        repository: TaskRepository,
        rate_limiter: RateLimiter,
        processors: Mapping[TaskMode, TaskProcessor],
        poll_interval_seconds: float = 3.0,
        max_concurrent_tasks: int = 8,
    ) -> None:
        self.repository = repository
        self.rate_limiter = rate_limiter
        self.processors = dict(processors)
        self.poll_interval_seconds = poll_interval_seconds
        self.db_available = True
        self.last_storage_error: str | None = None
        self._tasks: list[TaskView] = []
        self._in_flight: set[str] = set()
        self._futures: set[Future[None]] = set()
        self._completed = 0
        self._failed = 0
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_concurrent_tasks,
            thread_name_prefix="cura-task",
        )

    def __enter__(self) -> TaskQueueManager:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def close(self) -> None:
        """Wait for running dispatches and release the worker pool."""

        self._executor.shutdown(wait=True)

    def list_tasks(self) -> list[TaskView]:
        """Last known task set, newest first."""

        with self._lock:
            return list(self._tasks)

    def in_flight(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._in_flight)

    def load_tasks(self) -> list[TaskView]:
        """Fetch the task list; storage failure switches the manager to degraded mode."""

        if not self.db_available:
            return []
        try:
            tasks = self.repository.list_tasks()
        except PersistenceUnavailableError as error:
            logger.warning("Task storage unavailable, polling stopped: %s", error)
            self.db_available = False
            self.last_storage_error = str(error)
            with self._lock:
                self._tasks = []
            return []
        with self._lock:
            self._tasks = list(tasks)
        return tasks

    def refresh(self) -> int:
        """Reload tasks and dispatch pending ones; returns the number dispatched."""

        tasks = self.load_tasks()
        if not self.db_available:
            return 0
        return self.reconcile(tasks)

    def reconcile(self, tasks: list[TaskView]) -> int:
        """Dispatch every pending task that is not already in flight."""

        dispatched = 0
        for task in tasks:
            if task.status is not TaskStatus.PENDING:
                continue
            with self._lock:
                if task.task_id in self._in_flight:
                    continue
                self._in_flight.add(task.task_id)
                future = self._executor.submit(self._dispatch, task)
                self._futures.add(future)
            future.add_done_callback(self._forget)
            dispatched += 1
            logger.debug("Dispatched task %s (%s)", task.task_id, task.mode.value)
        return dispatched

    def add_task(  # noqa: PLR0913
        self,
        *,
        mode: TaskMode,
        job_description: str,
        job_title: str | None = None,
        company: str | None = None,
        resume_data: dict[str, Any] | None = None,
        preferences: BuildPreferences | None = None,
    ) -> str:
        """Persist a pending task and return its id without processing it."""

        if not self.db_available:
            message = DEGRADED_MESSAGE
            if self.last_storage_error:
                message = f"{message} {self.last_storage_error}"
            raise PersistenceUnavailableError(message)
        if not job_description.strip():
            raise ValueError("Job description is required")

        title = (job_title or "").strip()
        if not title:
            title = next_default_title([task.job_title for task in self.list_tasks()])
        task = self.repository.create_task(
            TaskCreate(
                mode=mode,
                job_title=title,
                company=(company or "").strip() or DEFAULT_COMPANY,
                job_description=job_description,
                resume_data=resume_data,
                preferences=preferences,
            ),
        )
        with self._lock:
            self._tasks.insert(0, task)
        logger.info("Queued %s task %s (%s)", mode.value, task.task_id, title)
        return task.task_id

    def retry_task(self, task_id: str) -> TaskView:
        """Move a failed task back to pending; the next pass dispatches it again."""

        task = self.repository.retry_task(task_id=task_id)
        self._replace(task)
        logger.info("Task %s re-queued", task_id)
        return task

    def remove_task(self, task_id: str) -> bool:
        """Delete a task in any status; an in-flight dispatch keeps running."""

        deleted = self.repository.delete_task(task_id=task_id)
        with self._lock:
            self._tasks = [task for task in self._tasks if task.task_id != task_id]
            running = task_id in self._in_flight
        if deleted and running:
            logger.info("Task %s removed while in flight; its result will be dropped", task_id)
        return deleted

    def clear_completed_tasks(self) -> int:
        """Delete every known completed task; returns how many were deleted."""

        completed = [task for task in self.list_tasks() if task.status is TaskStatus.COMPLETED]
        removed = 0
        for task in completed:
            if self.remove_task(task.task_id):
                removed += 1
        return removed

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no dispatch is in flight; False when the timeout expired first."""

        with self._lock:
            futures = list(self._futures)
        if not futures:
            return True
        _, not_done = wait(futures, timeout=timeout)
        return not not_done

    def run_polling(
        self,
        *,
        max_polls: int | None = None,
        stop_event: threading.Event | None = None,
    ) -> QueueRunSummary:
        """Refresh on the poll interval until stopped, degraded, or `max_polls` reached."""

        stop_event = stop_event or threading.Event()
        summary = QueueRunSummary()
        completed_before, failed_before = self._outcome_counts()
        with _stop_on_signals(stop_event):
            while not stop_event.is_set():
                summary.dispatched += self.refresh()
                if not self.db_available:
                    summary.degraded = True
                    break
                summary.polls += 1
                if max_polls is not None and summary.polls >= max_polls:
                    break
                stop_event.wait(self.poll_interval_seconds)
            self.wait_idle()

        completed_after, failed_after = self._outcome_counts()
        summary.completed = completed_after - completed_before
        summary.failed = failed_after - failed_before
        return summary

    def _dispatch(self, task: TaskView) -> None:
        try:
            self._run_task(task)
        finally:
            with self._lock:
                self._in_flight.discard(task.task_id)

    def _run_task(self, task: TaskView) -> None:
        try:
            claimed = self.repository.mark_running(task_id=task.task_id)
        except (CuraError, SQLAlchemyError) as error:
            logger.warning("Failed to update task %s status: %s", task.task_id, error)
            return
        if not claimed:
            logger.debug("Task %s is no longer pending, skipping", task.task_id)
            return

        try:
            self._check_rate_limit(task)
            processor = self.processors.get(task.mode)
            if processor is None:
                raise ProcessingError(f"No processor configured for mode {task.mode.value}")
            result = processor.process(TaskInput.from_task(task))
        except CuraError as error:
            logger.info("Task %s failed: %s", task.task_id, error)
            self._record_failure(task, str(error))
            return
        except Exception as error:  # noqa: BLE001
            logger.exception("Task processing error for %s", task.task_id)
            self._record_failure(task, str(error) or "Unknown error")
            return

        self._record_success(task, result)

    def _check_rate_limit(self, task: TaskView) -> None:
        api_type = API_TYPE_BY_MODE[task.mode]
        try:
            outcome = self.rate_limiter.check_and_increment(
                user_id=self.repository.user_id,
                api_type=api_type,
            )
        except PersistenceUnavailableError as error:
            raise ProcessingError("Rate limit check failed") from error
        if not outcome.allowed:
            raise RateLimitExceededError(outcome)

    def _record_success(self, task: TaskView, result: dict[str, Any]) -> None:
        try:
            written = self.repository.complete_task(task_id=task.task_id, result=result)
        except (CuraError, SQLAlchemyError) as error:
            logger.warning("Failed to store result of task %s: %s", task.task_id, error)
            self._record_failure(task, str(error))
            return
        if not written:
            logger.debug("Task %s was removed while running; result dropped", task.task_id)
            return
        with self._lock:
            self._completed += 1
        logger.info("Task %s completed", task.task_id)

    def _record_failure(self, task: TaskView, message: str) -> None:
        try:
            written = self.repository.fail_task(task_id=task.task_id, error=message)
        except (CuraError, SQLAlchemyError) as error:
            logger.warning("Failed to mark task %s as failed: %s", task.task_id, error)
            return
        if not written:
            logger.debug("Task %s was removed while running; failure dropped", task.task_id)
            return
        with self._lock:
            self._failed += 1

    def _replace(self, updated: TaskView) -> None:
        with self._lock:
            self._tasks = [
                updated if task.task_id == updated.task_id else task for task in self._tasks
            ]

    def _forget(self, future: Future[None]) -> None:
        with self._lock:
            self._futures.discard(future)

    def _outcome_counts(self) -> tuple[int, int]:
        with self._lock:
            return self._completed, self._failed


@contextmanager
def _stop_on_signals(stop_event: threading.Event) -> Iterator[None]:
    """Set `stop_event` on SIGINT/SIGTERM while polling in the main thread."""

    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, _: object | None) -> None:
        logger.info("Received %s, stopping after in-flight tasks", signal.Signals(signum).name)
        stop_event.set()

    original_sigint = signal.signal(signal.SIGINT, _handler)
    original_sigterm = signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)
