"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from cura.queue.rate_limit import RateLimiter
from cura.queue.repository import TaskRepository


@pytest.fixture()
def repository(tmp_path: Path) -> Iterator[TaskRepository]:
    """Migrated task repository for the default user."""
    repository = TaskRepository(tmp_path / "cura.db")
    repository.init_schema()
    yield repository
    repository.close()


@pytest.fixture()
def rate_limiter(repository: TaskRepository) -> RateLimiter:
    return RateLimiter(
        repository.engine,
        limits={"ai_analyze": 30, "ai_build": 30, "pdf_import": 100},
    )


@pytest.fixture()
def resume_payload() -> dict[str, Any]:
    return {
        "version": "1.0",
        "basics": {
            "name": "Ada Example",
            "title": "Backend Engineer",
            "location": "Berlin",
            "contact": {"email": "ada@example.com", "phone": "", "links": []},
            "summary": "Backend engineer focused on data platforms.",
        },
        "experience": [
            {
                "company": "Acme",
                "role": "Engineer",
                "location": "Remote",
                "start": "2021",
                "end": "Present",
                "bullets": ["Built billing APIs", "Ran on-call rotation"],
            },
        ],
        "education": [
            {
                "institution": "TU Berlin",
                "degree": "BSc Computer Science",
                "location": "Berlin",
                "start": "2014",
                "end": "2018",
            },
        ],
        "skills": [
            {"name": "Languages", "skills": ["Python", "Go"]},
            {"name": "Developer Tools", "skills": ["Docker"]},
        ],
        "projects": [
            {"name": "feedcat", "link": "https://example.com", "bullets": ["RSS reader in Go"]},
        ],
    }


@pytest.fixture()
def profile_path(tmp_path: Path) -> Path:
    """Master profile with one archived experience."""
    path = tmp_path / "profile.json"
    path.write_text(
        json.dumps(
            {
                "basics": {
                    "fullName": "Ada Example",
                    "email": "ada@example.com",
                    "phone": "+49 30 1234",
                    "location": "Berlin",
                    "links": ["https://example.com/ada"],
                },
                "experiences": [
                    {
                        "id": "exp-acme",
                        "company": "Acme",
                        "role": "Engineer",
                        "location": "Remote",
                        "startDate": "2021-01",
                        "endDate": None,
                        "bullets": ["Built billing APIs", "Ran on-call rotation"],
                    },
                    {
                        "id": "exp-old",
                        "company": "Oldco",
                        "role": "Intern",
                        "startDate": "2018-06",
                        "endDate": "2018-09",
                        "bullets": ["Fixed bugs"],
                        "isArchived": True,
                    },
                ],
                "education": [
                    {
                        "id": "edu-tu",
                        "institution": "TU Berlin",
                        "degree": "BSc Computer Science",
                        "startDate": "2014",
                        "endDate": "2018",
                    },
                ],
                "projects": [
                    {
                        "id": "proj-feedcat",
                        "name": "feedcat",
                        "link": "https://example.com/feedcat",
                        "bullets": ["RSS reader in Go"],
                    },
                ],
                "skillCategories": [
                    {"id": "skill-lang", "name": "Languages", "skills": ["Python", "Go"]},
                    {"id": "skill-tools", "name": "Developer Tools", "skills": ["Docker"]},
                ],
            },
        ),
        "utf-8",
    )
    return path


@pytest.fixture()
def build_selection() -> dict[str, Any]:
    """LLM selection reply matching `profile_path`."""
    return {
        "selectedExperiences": ["exp-acme"],
        "selectedEducation": ["edu-tu"],
        "selectedProjects": ["proj-feedcat"],
        "selectedSkillCategories": ["skill-lang"],
        "tailoredContent": {
            "experiences": {
                "exp-acme": {
                    "bullets": [
                        "Built billing APIs",
                        "Led on-call rotation for 12 services",
                        "Cut p95 latency by 40%",
                    ],
                },
            },
            "projects": {
                "proj-feedcat": {"bullets": ["RSS reader in Go with full-text search"]},
            },
        },
        "reasoning": "Backend focus matches the role.",
    }
