"""Master career profile read by curated resume builds."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cura.errors import ProcessingError


@dataclass(slots=True)
class ProfileBasics:
    full_name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    links: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ProfileExperience:
    id: str
    company: str
    role: str
    location: str = ""
    start_date: str = ""
    end_date: str | None = None
    bullets: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ProfileEducation:
    id: str
    institution: str
    degree: str
    location: str = ""
    start_date: str = ""
    end_date: str = ""


@dataclass(slots=True)
class ProfileProject:
    id: str
    name: str
    link: str = ""
    bullets: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ProfileSkillCategory:
    id: str
    name: str
    skills: list[str] = field(default_factory=list)


@dataclass(slots=True)
class MasterProfile:
    """Everything a build may select from; archived items are already excluded."""

    basics: ProfileBasics = field(default_factory=ProfileBasics)
    experiences: list[ProfileExperience] = field(default_factory=list)
    education: list[ProfileEducation] = field(default_factory=list)
    projects: list[ProfileProject] = field(default_factory=list)
    skill_categories: list[ProfileSkillCategory] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> MasterProfile:
        basics = payload.get("basics") or payload.get("profile") or {}
        return cls(
            basics=ProfileBasics(
                full_name=str(basics.get("fullName") or basics.get("name") or ""),
                email=str(basics.get("email") or ""),
                phone=str(basics.get("phone") or ""),
                location=str(basics.get("location") or ""),
                links=[str(link) for link in basics.get("links") or []],
            ),
            experiences=[
                ProfileExperience(
                    id=str(item["id"]),
                    company=str(item.get("company") or ""),
                    role=str(item.get("role") or ""),
                    location=str(item.get("location") or ""),
                    start_date=str(item.get("startDate") or ""),
                    end_date=item.get("endDate") or None,
                    bullets=[str(bullet) for bullet in item.get("bullets") or []],
                )
                for item in _active(payload.get("experiences"))
            ],
            education=[
                ProfileEducation(
                    id=str(item["id"]),
                    institution=str(item.get("institution") or ""),
                    degree=str(item.get("degree") or ""),
                    location=str(item.get("location") or ""),
                    start_date=str(item.get("startDate") or ""),
                    end_date=str(item.get("endDate") or ""),
                )
                for item in _active(payload.get("education"))
            ],
            projects=[
                ProfileProject(
                    id=str(item["id"]),
                    name=str(item.get("name") or ""),
                    link=str(item.get("link") or ""),
                    bullets=[str(bullet) for bullet in item.get("bullets") or []],
                )
                for item in _active(payload.get("projects"))
            ],
            skill_categories=[
                ProfileSkillCategory(
                    id=str(item["id"]),
                    name=str(item.get("name") or ""),
                    skills=[str(skill) for skill in item.get("skills") or []],
                )
                for item in payload.get("skillCategories") or []
            ],
        )


def load_master_profile(path: Path) -> MasterProfile:
    """Read the profile JSON file."""

    if not path.exists():
        raise ProcessingError(f"Failed to fetch profile data: {path} does not exist")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as error:
        raise ProcessingError(f"Failed to fetch profile data: {error}") from error
    if not isinstance(payload, dict):
        raise ProcessingError("Failed to fetch profile data: expected a JSON object")
    try:
        return MasterProfile.from_dict(payload)
    except KeyError as error:
        raise ProcessingError(f"Profile item is missing field {error}") from error


def _active(items: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    return [item for item in items or [] if not item.get("isArchived")]
