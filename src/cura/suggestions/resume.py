"""Resume document value object edited by suggestion review."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from cura.errors import ResumeFormatError

RESUME_VERSION = "1.0"


@dataclass(slots=True)
class Contact:
    email: str = ""
    phone: str = ""
    links: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Basics:
    name: str = ""
    title: str = ""
    location: str = ""
    contact: Contact = field(default_factory=Contact)
    summary: str = ""


@dataclass(slots=True)
class ExperienceItem:
    company: str = ""
    role: str = ""
    location: str = ""
    start: str = ""
    end: str = ""
    bullets: list[str] = field(default_factory=list)


@dataclass(slots=True)
class EducationItem:
    institution: str = ""
    degree: str = ""
    location: str = ""
    start: str = ""
    end: str = ""


@dataclass(slots=True)
class SkillCategory:
    name: str = ""
    skills: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ProjectItem:
    name: str = ""
    link: str = ""
    bullets: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Resume:
    """Plain nested resume document, serialized with the processing payload keys."""

    version: str = RESUME_VERSION
    basics: Basics = field(default_factory=Basics)
    experience: list[ExperienceItem] = field(default_factory=list)
    education: list[EducationItem] = field(default_factory=list)
    skills: list[SkillCategory] = field(default_factory=list)
    projects: list[ProjectItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> Resume:
        """Build a resume from its payload; raises `ResumeFormatError` on a wrong shape."""

        payload = _mapping(payload, "resume")
        basics = _mapping(payload.get("basics"), "basics")
        contact = _mapping(basics.get("contact"), "basics.contact")
        return cls(
            version=str(payload.get("version") or RESUME_VERSION),
            basics=Basics(
                name=_text(basics.get("name")),
                title=_text(basics.get("title")),
                location=_text(basics.get("location")),
                contact=Contact(
                    email=_text(contact.get("email")),
                    phone=_text(contact.get("phone")),
                    links=_texts(contact.get("links"), "basics.contact.links"),
                ),
                summary=_text(basics.get("summary")),
            ),
            experience=[
                ExperienceItem(
                    company=_text(item.get("company")),
                    role=_text(item.get("role")),
                    location=_text(item.get("location")),
                    start=_text(item.get("start")),
                    end=_text(item.get("end")),
                    bullets=_texts(item.get("bullets"), f"experience[{index}].bullets"),
                )
                for index, item in enumerate(_items(payload.get("experience"), "experience"))
            ],
            education=[
                EducationItem(
                    institution=_text(item.get("institution")),
                    degree=_text(item.get("degree")),
                    location=_text(item.get("location")),
                    start=_text(item.get("start")),
                    end=_text(item.get("end")),
                )
                for item in _items(payload.get("education"), "education")
            ],
            skills=[
                SkillCategory(
                    name=_text(item.get("name")),
                    skills=_texts(item.get("skills"), f"skills[{index}].skills"),
                )
                for index, item in enumerate(_items(payload.get("skills"), "skills"))
            ],
            projects=[
                ProjectItem(
                    name=_text(item.get("name")),
                    link=_text(item.get("link")),
                    bullets=_texts(item.get("bullets"), f"projects[{index}].bullets"),
                )
                for index, item in enumerate(_items(payload.get("projects"), "projects"))
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "basics": {
                "name": self.basics.name,
                "title": self.basics.title,
                "location": self.basics.location,
                "contact": {
                    "email": self.basics.contact.email,
                    "phone": self.basics.contact.phone,
                    "links": list(self.basics.contact.links),
                },
                "summary": self.basics.summary,
            },
            "experience": [
                {
                    "company": item.company,
                    "role": item.role,
                    "location": item.location,
                    "start": item.start,
                    "end": item.end,
                    "bullets": list(item.bullets),
                }
                for item in self.experience
            ],
            "education": [
                {
                    "institution": item.institution,
                    "degree": item.degree,
                    "location": item.location,
                    "start": item.start,
                    "end": item.end,
                }
                for item in self.education
            ],
            "skills": [{"name": item.name, "skills": list(item.skills)} for item in self.skills],
            "projects": [
                {"name": item.name, "link": item.link, "bullets": list(item.bullets)}
                for item in self.projects
            ],
        }


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _texts(values: Any, where: str) -> list[str]:
    if values is None:
        return []
    if not isinstance(values, list):
        raise ResumeFormatError(f"Resume field {where} must be a list of strings.")
    return [str(value) for value in values]


def _mapping(value: Any, where: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ResumeFormatError(f"Resume field {where} must be an object.")
    return value


def _items(values: Any, where: str) -> list[dict[str, Any]]:
    if values is None:
        return []
    if not isinstance(values, list):
        raise ResumeFormatError(f"Resume section {where} must be a list.")
    for index, item in enumerate(values):
        if not isinstance(item, dict):
            raise ResumeFormatError(f"Resume entry {where}[{index}] must be an object.")
    return values
