"""Inline suggestion value objects."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SuggestionType(str, Enum):
    ADD = "add"
    MODIFY = "modify"
    REMOVE = "remove"
    REORDER = "reorder"


class SuggestionStatus(str, Enum):
    PENDING = "pending"
    APPLIED = "applied"
    REJECTED = "rejected"


class HighlightColor(str, Enum):
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    PURPLE = "purple"


SECTIONS: tuple[str, ...] = ("basics", "experience", "education", "project", "skills", "summary")

_SECTION_ALIASES = {
    "projects": "project",
    "experiences": "experience",
}


def normalize_section(raw: str | None) -> str:
    """Lowercase a section name and collapse plural aliases."""

    section = (raw or "").strip().lower()
    return _SECTION_ALIASES.get(section, section)


@dataclass(slots=True)
class InlineSuggestion:
    """One reviewable edit anchored at `(section, section_index, field, bullet_index)`."""

    id: str
    type: SuggestionType
    section: str
    section_index: int | None
    field: str
    original_text: str
    suggested_text: str
    title: str
    description: str
    reasoning: str = ""
    status: SuggestionStatus = SuggestionStatus.PENDING
    highlight_color: HighlightColor = HighlightColor.BLUE
    bullet_index: int | None = None

    @property
    def is_addition(self) -> bool:
        return not self.original_text

    @property
    def is_pending(self) -> bool:
        return self.status is SuggestionStatus.PENDING

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "section": self.section,
            "sectionIndex": self.section_index,
            "field": self.field,
            "originalText": self.original_text,
            "suggestedText": self.suggested_text,
            "title": self.title,
            "description": self.description,
            "reasoning": self.reasoning,
            "status": self.status.value,
            "highlightColor": self.highlight_color.value,
        }
        if self.bullet_index is not None:
            payload["bulletIndex"] = self.bullet_index
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> InlineSuggestion:
        return cls(
            id=str(payload["id"]),
            type=SuggestionType(payload.get("type") or SuggestionType.MODIFY.value),
            section=normalize_section(payload.get("section")),
            section_index=payload.get("sectionIndex"),
            field=str(payload.get("field") or ""),
            original_text=str(payload.get("originalText") or ""),
            suggested_text=str(payload.get("suggestedText") or ""),
            title=str(payload.get("title") or ""),
            description=str(payload.get("description") or ""),
            reasoning=str(payload.get("reasoning") or ""),
            status=SuggestionStatus(payload.get("status") or SuggestionStatus.PENDING.value),
            highlight_color=HighlightColor(
                payload.get("highlightColor") or HighlightColor.BLUE.value,
            ),
            bullet_index=payload.get("bulletIndex"),
        )
