"""Domain models for the AI task queue."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class TaskMode(str, Enum):
    """Kind of AI work a task performs."""

    ANALYZE = "analyze"
    BUILD = "build"


class TaskStatus(str, Enum):
    """Durable task lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


API_TYPE_BY_MODE: dict[TaskMode, str] = {
    TaskMode.ANALYZE: "ai_analyze",
    TaskMode.BUILD: "ai_build",
}

DEFAULT_COMPANY = "No Company"

_DEFAULT_TITLE_PATTERN = re.compile(r"^Task (\d+)$")


@dataclass(slots=True)
class BuildPreferences:
    """Tuning knobs for curated resume builds; unset values fall back to settings."""

    max_experiences: int | None = None
    max_projects: int | None = None
    max_bullets_per_experience: int | None = None
    max_bullets_per_project: int | None = None

    def to_payload(self) -> dict[str, int]:
        payload = {
            "maxExperiences": self.max_experiences,
            "maxProjects": self.max_projects,
            "maxBulletsPerExperience": self.max_bullets_per_experience,
            "maxBulletsPerProject": self.max_bullets_per_project,
        }
        return {key: value for key, value in payload.items() if value is not None}

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> BuildPreferences:
        payload = payload or {}
        return cls(
            max_experiences=_optional_int(payload.get("maxExperiences")),
            max_projects=_optional_int(payload.get("maxProjects")),
            max_bullets_per_experience=_optional_int(payload.get("maxBulletsPerExperience")),
            max_bullets_per_project=_optional_int(payload.get("maxBulletsPerProject")),
        )


@dataclass(slots=True)
class TaskCreate:
    """Input payload for creating a pending task."""

    mode: TaskMode
    job_title: str
    company: str
    job_description: str
    resume_data: dict[str, Any] | None = None
    preferences: BuildPreferences | None = None
    task_id: str | None = None


@dataclass(slots=True)
class TaskView:
    """Readable task view for the queue manager and CLI."""

    task_id: str
    user_id: str
    mode: TaskMode
    job_title: str
    company: str
    job_description: str
    resume_data: dict[str, Any] | None
    preferences: BuildPreferences | None
    status: TaskStatus
    result: dict[str, Any] | None
    error: str | None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None


@dataclass(slots=True)
class TaskEventView:
    """Task event entry for the status audit trail."""

    event_id: int
    task_id: str
    event_type: str
    status_from: TaskStatus | None
    status_to: TaskStatus | None
    created_at: datetime
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class TaskDetails:
    """Task details with event stream."""

    task: TaskView
    events: list[TaskEventView]


@dataclass(slots=True)
class TaskInput:
    """What a processing collaborator receives for one dispatch."""

    task_id: str
    mode: TaskMode
    job_description: str
    resume_data: dict[str, Any] | None
    preferences: BuildPreferences | None

    @classmethod
    def from_task(cls, task: TaskView) -> TaskInput:
        return cls(
            task_id=task.task_id,
            mode=task.mode,
            job_description=task.job_description,
            resume_data=task.resume_data,
            preferences=task.preferences,
        )


def next_default_title(titles: list[str]) -> str:
    """Return "Task N" with N one past the highest "Task <digits>" title.

    Only titles matching the exact pattern count; a manually typed "Task 2" can
    therefore collide with a generated one.
    """

    numbers = [
        int(match.group(1))
        for match in (_DEFAULT_TITLE_PATTERN.match(title) for title in titles)
        if match is not None
    ]
    numbers = [number for number in numbers if number > 0]
    return f"Task {max(numbers) + 1 if numbers else 1}"


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)
