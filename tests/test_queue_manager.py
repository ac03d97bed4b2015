from __future__ import annotations

import threading
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import allure
import pytest

from cura.errors import PersistenceUnavailableError, ProcessingError
from cura.queue.manager import DEGRADED_MESSAGE, TaskQueueManager
from cura.queue.models import TaskInput, TaskMode, TaskStatus
from cura.queue.rate_limit import RateLimiter
from cura.queue.repository import TaskRepository

pytestmark = [
    allure.epic("Task Queue"),
    allure.feature("Reconciliation"),
]

JOB = "Senior Backend Engineer at Acme. Python, PostgreSQL, Kubernetes."


class RecordingProcessor:
    """Returns a fixed payload and records every task id it processed."""

    def __init__(self, result: dict[str, Any] | None = None) -> None:
        self.result = result or {"resume": {"version": "1.0"}}
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def process(self, task: TaskInput) -> dict[str, Any]:
        with self._lock:
            self.calls.append(task.task_id)
        return self.result


class BlockingProcessor(RecordingProcessor):
    """Waits for `release` before returning, so tests can act mid-dispatch."""

    def __init__(self) -> None:
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def process(self, task: TaskInput) -> dict[str, Any]:
        self.started.set()
        assert self.release.wait(timeout=10)
        return super().process(task)


class FailingProcessor:
    def __init__(self, error: Exception) -> None:
        self.error = error

    def process(self, task: TaskInput) -> dict[str, Any]:
        raise self.error


@pytest.fixture()
def make_manager(
    repository: TaskRepository,
    rate_limiter: RateLimiter,
) -> Iterator[Any]:
    managers: list[TaskQueueManager] = []

    def _make(processors: dict[TaskMode, Any], **kwargs: Any) -> TaskQueueManager:
        manager = TaskQueueManager(
            repository=kwargs.pop("repository", repository),
            rate_limiter=kwargs.pop("rate_limiter", rate_limiter),
            processors=processors,
            poll_interval_seconds=0.01,
            **kwargs,
        )
        managers.append(manager)
        return manager

    yield _make
    for manager in managers:
        manager.close()


def _status(repository: TaskRepository, task_id: str) -> TaskStatus:
    task = repository.get_task(task_id=task_id)
    assert task is not None
    return task.status


def test_build_task_runs_to_completion(
    make_manager: Any,
    repository: TaskRepository,
) -> None:
    processor = RecordingProcessor({"resume": {"version": "1.0", "experience": []}})
    manager = make_manager({TaskMode.BUILD: processor})
    manager.load_tasks()

    task_id = manager.add_task(mode=TaskMode.BUILD, job_description=JOB)

    queued = repository.get_task(task_id=task_id)
    assert queued is not None
    assert queued.status is TaskStatus.PENDING
    assert queued.job_title == "Task 1"
    assert queued.company == "No Company"
    assert processor.calls == []

    assert manager.refresh() == 1
    assert manager.wait_idle(timeout=10)

    done = repository.get_task(task_id=task_id)
    assert done is not None
    assert done.status is TaskStatus.COMPLETED
    assert done.result == {"resume": {"version": "1.0", "experience": []}}
    assert done.completed_at is not None
    assert processor.calls == [task_id]
    assert manager.in_flight() == frozenset()


def test_rate_limited_task_fails_without_touching_sibling(
    make_manager: Any,
    repository: TaskRepository,
    rate_limiter: RateLimiter,
) -> None:
    limiter = RateLimiter(
        repository.engine,
        limits={"ai_analyze": 1, "ai_build": 30, "pdf_import": 100},
    )
    limiter.check_and_increment(user_id=repository.user_id, api_type="ai_analyze")
    processor = RecordingProcessor()
    manager = make_manager(
        {TaskMode.ANALYZE: processor, TaskMode.BUILD: processor},
        rate_limiter=limiter,
    )
    manager.load_tasks()
    limited = manager.add_task(
        mode=TaskMode.ANALYZE,
        job_description=JOB,
        resume_data={"content": "{}"},
    )
    sibling = manager.add_task(mode=TaskMode.BUILD, job_description=JOB)

    assert manager.refresh() == 2
    assert manager.wait_idle(timeout=10)

    failed = repository.get_task(task_id=limited)
    assert failed is not None
    assert failed.status is TaskStatus.FAILED
    assert failed.error is not None
    assert "usage limit" in failed.error
    assert _status(repository, sibling) is TaskStatus.COMPLETED
    assert processor.calls == [sibling]
    usage = rate_limiter.get_usage(user_id=repository.user_id, api_type="ai_build")
    assert usage.current_count == 1


def test_retried_task_is_dispatched_again(make_manager: Any, repository: TaskRepository) -> None:
    failing = make_manager(
        {TaskMode.BUILD: FailingProcessor(ProcessingError("Failed to parse AI response"))},
    )
    failing.load_tasks()
    task_id = failing.add_task(mode=TaskMode.BUILD, job_description=JOB)
    failing.refresh()
    failing.wait_idle(timeout=10)
    assert _status(repository, task_id) is TaskStatus.FAILED

    processor = RecordingProcessor()
    manager = make_manager({TaskMode.BUILD: processor})
    manager.load_tasks()
    retried = manager.retry_task(task_id)

    assert retried.status is TaskStatus.PENDING
    assert retried.error is None
    assert manager.refresh() == 1
    assert manager.wait_idle(timeout=10)
    assert _status(repository, task_id) is TaskStatus.COMPLETED
    assert processor.calls == [task_id]


def test_pending_task_is_not_dispatched_twice_while_in_flight(make_manager: Any) -> None:
    processor = BlockingProcessor()
    manager = make_manager({TaskMode.BUILD: processor})
    manager.load_tasks()
    task_id = manager.add_task(mode=TaskMode.BUILD, job_description=JOB)
    stale_snapshot = manager.list_tasks()

    assert manager.reconcile(stale_snapshot) == 1
    assert processor.started.wait(timeout=10)
    assert manager.reconcile(stale_snapshot) == 0
    assert manager.refresh() == 0
    assert manager.in_flight() == frozenset({task_id})

    processor.release.set()
    assert manager.wait_idle(timeout=10)
    assert processor.calls == [task_id]


def test_lost_claim_is_skipped_silently(make_manager: Any, repository: TaskRepository) -> None:
    processor = RecordingProcessor()
    manager = make_manager({TaskMode.BUILD: processor})
    manager.load_tasks()
    task_id = manager.add_task(mode=TaskMode.BUILD, job_description=JOB)
    stale_snapshot = manager.list_tasks()
    assert repository.mark_running(task_id=task_id) is True

    assert manager.reconcile(stale_snapshot) == 1
    assert manager.wait_idle(timeout=10)

    assert processor.calls == []
    assert _status(repository, task_id) is TaskStatus.RUNNING


def test_processing_failures_are_isolated_per_task(
    make_manager: Any,
    repository: TaskRepository,
) -> None:
    processor = RecordingProcessor()
    manager = make_manager(
        {
            TaskMode.ANALYZE: FailingProcessor(RuntimeError("provider exploded")),
            TaskMode.BUILD: processor,
        },
    )
    manager.load_tasks()
    broken = manager.add_task(
        mode=TaskMode.ANALYZE,
        job_description=JOB,
        resume_data={"content": "{}"},
    )
    healthy = manager.add_task(mode=TaskMode.BUILD, job_description=JOB)

    summary = manager.run_polling(max_polls=1)

    assert summary.polls == 1
    assert summary.dispatched == 2
    assert summary.completed == 1
    assert summary.failed == 1
    assert summary.degraded is False
    failed = repository.get_task(task_id=broken)
    assert failed is not None
    assert failed.error == "provider exploded"
    assert _status(repository, healthy) is TaskStatus.COMPLETED


def test_missing_processor_fails_task(make_manager: Any, repository: TaskRepository) -> None:
    manager = make_manager({})
    manager.load_tasks()
    task_id = manager.add_task(mode=TaskMode.BUILD, job_description=JOB)

    manager.refresh()
    manager.wait_idle(timeout=10)

    task = repository.get_task(task_id=task_id)
    assert task is not None
    assert task.status is TaskStatus.FAILED
    assert task.error == "No processor configured for mode build"


def test_default_titles_continue_after_highest_number(make_manager: Any) -> None:
    manager = make_manager({})
    manager.load_tasks()
    manager.add_task(mode=TaskMode.BUILD, job_description=JOB, job_title="Task 1")
    manager.add_task(mode=TaskMode.BUILD, job_description=JOB, job_title="Task 3")
    manager.add_task(mode=TaskMode.BUILD, job_description=JOB, job_title="Staff Engineer")

    task_id = manager.add_task(mode=TaskMode.BUILD, job_description=JOB, company="  Acme  ")

    task = next(task for task in manager.list_tasks() if task.task_id == task_id)
    assert task.job_title == "Task 4"
    assert task.company == "Acme"
    assert manager.list_tasks()[0].task_id == task_id


def test_blank_job_description_is_rejected(make_manager: Any, repository: TaskRepository) -> None:
    manager = make_manager({})
    manager.load_tasks()

    with pytest.raises(ValueError, match="Job description is required"):
        manager.add_task(mode=TaskMode.BUILD, job_description="   ")
    assert repository.list_tasks() == []


def test_removing_running_task_drops_its_result(
    make_manager: Any,
    repository: TaskRepository,
) -> None:
    processor = BlockingProcessor()
    manager = make_manager({TaskMode.BUILD: processor})
    manager.load_tasks()
    task_id = manager.add_task(mode=TaskMode.BUILD, job_description=JOB)
    manager.refresh()
    assert processor.started.wait(timeout=10)

    assert manager.remove_task(task_id) is True
    processor.release.set()
    assert manager.wait_idle(timeout=10)

    assert repository.get_task(task_id=task_id) is None
    assert manager.list_tasks() == []
    assert manager.remove_task(task_id) is False


def test_clear_completed_keeps_other_statuses(
    make_manager: Any,
    repository: TaskRepository,
) -> None:
    manager = make_manager({TaskMode.BUILD: RecordingProcessor()})
    manager.load_tasks()
    done = manager.add_task(mode=TaskMode.BUILD, job_description=JOB)
    manager.refresh()
    manager.wait_idle(timeout=10)
    pending = manager.add_task(mode=TaskMode.BUILD, job_description=JOB)
    manager.load_tasks()

    assert manager.clear_completed_tasks() == 1

    assert repository.get_task(task_id=done) is None
    assert _status(repository, pending) is TaskStatus.PENDING


def test_missing_schema_switches_to_degraded_mode(make_manager: Any, tmp_path: Path) -> None:
    bare = TaskRepository(tmp_path / "bare.db")
    try:
        manager = make_manager(
            {TaskMode.BUILD: RecordingProcessor()},
            repository=bare,
            rate_limiter=RateLimiter(bare.engine, limits={"ai_build": 1}),
        )

        assert manager.load_tasks() == []
        assert manager.db_available is False
        assert manager.last_storage_error is not None
        assert "cura db migrate" in manager.last_storage_error
        with pytest.raises(PersistenceUnavailableError, match=DEGRADED_MESSAGE) as raised:
            manager.add_task(mode=TaskMode.BUILD, job_description=JOB)
        assert "cura db migrate" in str(raised.value)

        summary = manager.run_polling(max_polls=3)
        assert summary.degraded is True
        assert summary.polls == 0
        assert summary.dispatched == 0
    finally:
        bare.close()


def test_corrupt_database_file_switches_to_degraded_mode(
    make_manager: Any,
    tmp_path: Path,
) -> None:
    db_path = tmp_path / "corrupt.db"
    db_path.write_bytes(b"this is not a sqlite database\n" * 256)
    corrupt = TaskRepository(db_path)
    try:
        manager = make_manager(
            {TaskMode.BUILD: RecordingProcessor()},
            repository=corrupt,
            rate_limiter=RateLimiter(corrupt.engine, limits={"ai_build": 1}),
        )

        summary = manager.run_polling(max_polls=3)

        assert summary.degraded is True
        assert summary.polls == 0
        assert manager.db_available is False
        assert manager.last_storage_error is not None
        assert "Storage is unavailable" in manager.last_storage_error
        with pytest.raises(PersistenceUnavailableError, match=DEGRADED_MESSAGE):
            manager.add_task(mode=TaskMode.BUILD, job_description=JOB)
    finally:
        corrupt.close()


def test_polling_stops_on_event(make_manager: Any) -> None:
    manager = make_manager({})
    stop_event = threading.Event()
    stop_event.set()

    summary = manager.run_polling(stop_event=stop_event)

    assert summary.polls == 0
    assert summary.degraded is False


def test_rate_limit_counts_one_call_per_dispatch(
    make_manager: Any,
    repository: TaskRepository,
    rate_limiter: RateLimiter,
) -> None:
    manager = make_manager({TaskMode.BUILD: RecordingProcessor()})
    manager.load_tasks()
    for _ in range(3):
        manager.add_task(mode=TaskMode.BUILD, job_description=JOB)

    manager.run_polling(max_polls=1)

    usage = rate_limiter.get_usage(user_id=repository.user_id, api_type="ai_build")
    assert usage.current_count == 3
