"""Place pending suggestions on the live resume for review rendering."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from cura.suggestions.models import InlineSuggestion, SuggestionStatus
from cura.suggestions.resume import Resume


@dataclass(slots=True)
class Placement:
    """A pending suggestion anchored to a rendered resume element."""

    suggestion: InlineSuggestion
    section: str
    section_index: int
    position: int | None
    live_text: str


@dataclass(slots=True)
class ReviewPlan:
    """Placed suggestions plus the pending ones that no element matched."""

    placements: list[Placement] = field(default_factory=list)
    unmatched: list[InlineSuggestion] = field(default_factory=list)
    pending_count: int = 0
    applied_count: int = 0
    rejected_count: int = 0


def find_bullet_match(
    pending: Iterable[InlineSuggestion],
    *,
    section: str,
    section_index: int,
    bullet_index: int,
    text: str,
) -> InlineSuggestion | None:
    """Suggestion at this bullet whose original text matches exactly, then trimmed."""

    candidates = [
        suggestion
        for suggestion in pending
        if suggestion.section == section
        and suggestion.section_index == section_index
        and suggestion.bullet_index == bullet_index
    ]
    for suggestion in candidates:
        if suggestion.original_text == text:
            return suggestion
    stripped = text.strip()
    for suggestion in candidates:
        if suggestion.original_text.strip() == stripped:
            return suggestion
    return None


def find_skill_match(
    pending: Iterable[InlineSuggestion],
    *,
    section_index: int,
    skill_index: int,
    skill: str,
) -> InlineSuggestion | None:
    for suggestion in pending:
        if (
            suggestion.section == "skills"
            and suggestion.section_index == section_index
            and suggestion.bullet_index == skill_index
            and suggestion.original_text == skill
        ):
            return suggestion
    return None


def find_skill_additions(
    pending: Iterable[InlineSuggestion],
    *,
    section_index: int,
) -> list[InlineSuggestion]:
    return [
        suggestion
        for suggestion in pending
        if suggestion.section == "skills"
        and suggestion.section_index == section_index
        and suggestion.is_addition
    ]


def build_review_plan(resume: Resume, suggestions: list[InlineSuggestion]) -> ReviewPlan:
    """Walk bullets and skills; pending suggestions left over are unmatched."""

    pending = [suggestion for suggestion in suggestions if suggestion.is_pending]
    plan = ReviewPlan(
        pending_count=len(pending),
        applied_count=sum(1 for item in suggestions if item.status is SuggestionStatus.APPLIED),
        rejected_count=sum(1 for item in suggestions if item.status is SuggestionStatus.REJECTED),
    )
    placed: set[str] = set()

    for section, items in (("experience", resume.experience), ("project", resume.projects)):
        for section_index, item in enumerate(items):
            for bullet_index, bullet in enumerate(item.bullets):
                match = find_bullet_match(
                    pending,
                    section=section,
                    section_index=section_index,
                    bullet_index=bullet_index,
                    text=bullet,
                )
                if match is None or match.id in placed:
                    continue
                placed.add(match.id)
                plan.placements.append(
                    Placement(
                        suggestion=match,
                        section=section,
                        section_index=section_index,
                        position=bullet_index,
                        live_text=bullet,
                    ),
                )

    for section_index, category in enumerate(resume.skills):
        for skill_index, skill in enumerate(category.skills):
            match = find_skill_match(
                pending,
                section_index=section_index,
                skill_index=skill_index,
                skill=skill,
            )
            if match is None or match.id in placed:
                continue
            placed.add(match.id)
            plan.placements.append(
                Placement(
                    suggestion=match,
                    section="skills",
                    section_index=section_index,
                    position=skill_index,
                    live_text=skill,
                ),
            )
        for addition in find_skill_additions(pending, section_index=section_index):
            if addition.id in placed:
                continue
            placed.add(addition.id)
            plan.placements.append(
                Placement(
                    suggestion=addition,
                    section="skills",
                    section_index=section_index,
                    position=None,
                    live_text="",
                ),
            )

    plan.unmatched = [suggestion for suggestion in pending if suggestion.id not in placed]
    return plan
