"""Processing collaborators that turn a task input into a mode-specific result."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from cura.config import BuildSettings
from cura.errors import ProcessingError
from cura.llm.base import CompletionOptions, DocumentPart, LlmClient
from cura.queue.models import BuildPreferences, TaskInput, TaskMode
from cura.queue.output_parser import parse_json_object
from cura.queue.profile import MasterProfile, load_master_profile
from cura.queue.prompts import build_analyze_prompt, build_curated_prompt
from cura.suggestions.models import HighlightColor, InlineSuggestion, SuggestionType
from cura.suggestions.resume import (
    Basics,
    Contact,
    EducationItem,
    ExperienceItem,
    ProjectItem,
    Resume,
    SkillCategory,
)

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_MEDIA_TYPE = "application/pdf"


class TaskProcessor(Protocol):
    """Run one task input to a JSON-serializable result."""

    def process(self, task: TaskInput) -> dict[str, Any]:
        """Return the result payload or raise `CuraError`."""


class AnalyzeProcessor:
    """Compare a resume with a job description and propose exact text changes."""

    def __init__(self, llm: LlmClient) -> None:
        self.llm = llm

    def process(self, task: TaskInput) -> dict[str, Any]:
        if not task.job_description.strip():
            raise ProcessingError("Job description is required")
        if not task.resume_data:
            raise ProcessingError("Resume is required")

        resume_content, skill_categories, documents = _resume_representation(task.resume_data)
        prompt = build_analyze_prompt(
            job_description=task.job_description,
            resume_content=resume_content,
            skill_categories=skill_categories,
            has_document=bool(documents),
        )
        completion = self.llm.complete(prompt, CompletionOptions(documents=documents))
        analysis = parse_json_object(completion.text)
        if analysis is None:
            logger.warning(
                "Unparsable analyze reply for task %s (%d chars)",
                task.task_id,
                len(completion.text),
            )
            raise ProcessingError("Failed to parse AI response")

        changes = analysis.get("changes")
        return {
            "matchScore": _match_score(analysis.get("matchScore")),
            "overallFit": str(analysis.get("overallFit") or ""),
            "keywordAnalysis": analysis.get("keywordAnalysis") or {},
            "keyRequirements": list(analysis.get("keyRequirements") or []),
            "changes": [change for change in changes or [] if isinstance(change, dict)],
        }


class BuildProcessor:
    """Select profile items for a job and propose tailored bullets as suggestions."""

    def __init__(
        self,
        llm: LlmClient,
        *,
        profile_path: Path,
        defaults: BuildSettings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.llm = llm
        self.profile_path = profile_path
        self.defaults = defaults or BuildSettings()
        self.clock = clock

    def process(self, task: TaskInput) -> dict[str, Any]:
        if not task.job_description.strip():
            raise ProcessingError("Job description is required")

        limits = self._resolve_limits(task.preferences)
        profile = load_master_profile(self.profile_path)
        logger.debug(
            "Profile data counts: experiences=%d education=%d projects=%d skills=%d",
            len(profile.experiences),
            len(profile.education),
            len(profile.projects),
            len(profile.skill_categories),
        )
        prompt = build_curated_prompt(
            job_description=task.job_description,
            profile=profile,
            max_experiences=limits.max_experiences,
            max_projects=limits.max_projects,
            max_bullets_per_experience=limits.max_bullets_per_experience,
            max_bullets_per_project=limits.max_bullets_per_project,
        )
        completion = self.llm.complete(prompt)
        selection = parse_json_object(completion.text)
        if selection is None:
            logger.warning("Unparsable build reply for task %s", task.task_id)
            raise ProcessingError("Failed to parse AI response")
        return self._assemble(profile=profile, selection=selection)

    def _resolve_limits(self, preferences: BuildPreferences | None) -> BuildSettings:
        preferences = preferences or BuildPreferences()
        return BuildSettings(
            max_experiences=preferences.max_experiences or self.defaults.max_experiences,
            max_projects=preferences.max_projects or self.defaults.max_projects,
            max_bullets_per_experience=(
                preferences.max_bullets_per_experience
                or self.defaults.max_bullets_per_experience
            ),
            max_bullets_per_project=(
                preferences.max_bullets_per_project or self.defaults.max_bullets_per_project
            ),
        )

    def _assemble(self, *, profile: MasterProfile, selection: dict[str, Any]) -> dict[str, Any]:
        selected_experiences = _selected_ids(selection, "selectedExperiences")
        selected_education = _selected_ids(selection, "selectedEducation")
        selected_projects = _selected_ids(selection, "selectedProjects")
        selected_skills = _selected_ids(selection, "selectedSkillCategories")

        experiences = [item for item in profile.experiences if item.id in selected_experiences]
        education = [item for item in profile.education if item.id in selected_education]
        projects = [item for item in profile.projects if item.id in selected_projects]
        skill_categories = [
            item for item in profile.skill_categories if item.id in selected_skills
        ]

        resume = Resume(
            basics=Basics(
                name=profile.basics.full_name,
                location=profile.basics.location,
                contact=Contact(
                    email=profile.basics.email,
                    phone=profile.basics.phone,
                    links=list(profile.basics.links),
                ),
            ),
            experience=[
                ExperienceItem(
                    company=item.company,
                    role=item.role,
                    location=item.location,
                    start=item.start_date,
                    end=item.end_date or "Present",
                    bullets=list(item.bullets),
                )
                for item in experiences
            ],
            education=[
                EducationItem(
                    institution=item.institution,
                    degree=item.degree,
                    location=item.location,
                    start=item.start_date,
                    end=item.end_date,
                )
                for item in education
            ],
            skills=[
                SkillCategory(name=item.name, skills=list(item.skills))
                for item in skill_categories
            ],
            projects=[
                ProjectItem(name=item.name, link=item.link, bullets=list(item.bullets))
                for item in projects
            ],
        )

        tailored = selection.get("tailoredContent")
        tailored = tailored if isinstance(tailored, dict) else {}
        now_ms = int(self.clock() * 1000)
        suggestions: list[InlineSuggestion] = []
        for index, experience in enumerate(experiences):
            suggestions.extend(
                _bullet_suggestions(
                    id_prefix=f"exp-{index}",
                    section="experience",
                    section_index=index,
                    original=experience.bullets,
                    tailored=_tailored_bullets(tailored.get("experiences"), experience.id),
                    title="Improve bullet point",
                    reasoning="Tailored to highlight job-relevant achievements and keywords",
                    color=HighlightColor.BLUE,
                    now_ms=now_ms,
                ),
            )
        for index, project in enumerate(projects):
            suggestions.extend(
                _bullet_suggestions(
                    id_prefix=f"proj-{index}",
                    section="project",
                    section_index=index,
                    original=project.bullets,
                    tailored=_tailored_bullets(tailored.get("projects"), project.id),
                    title="Improve project bullet",
                    reasoning="Tailored to emphasize relevant technical skills and impact",
                    color=HighlightColor.PURPLE,
                    now_ms=now_ms,
                ),
            )

        return {
            "resume": resume.to_dict(),
            "selections": {
                "experiences": selected_experiences,
                "education": selected_education,
                "projects": selected_projects,
                "skillCategories": selected_skills,
            },
            "reasoning": str(selection.get("reasoning") or ""),
            "inlineSuggestions": [suggestion.to_payload() for suggestion in suggestions],
        }


def build_processors(
    llm: LlmClient,
    *,
    profile_path: Path,
    build_defaults: BuildSettings,
) -> dict[TaskMode, TaskProcessor]:
    """Processor per task mode, sharing one LLM client."""

    return {
        TaskMode.ANALYZE: AnalyzeProcessor(llm),
        TaskMode.BUILD: BuildProcessor(llm, profile_path=profile_path, defaults=build_defaults),
    }


def _resume_representation(
    resume_data: dict[str, Any],
) -> tuple[str | None, list[dict[str, Any]], tuple[DocumentPart, ...]]:
    """Split task resume input into prompt text, skill categories and documents."""

    if resume_data.get("base64Data"):
        document = DocumentPart(
            media_type=str(resume_data.get("mediaType") or DEFAULT_DOCUMENT_MEDIA_TYPE),
            base64_data=str(resume_data["base64Data"]),
        )
        return None, [], (document,)

    content = resume_data.get("content")
    if isinstance(content, str):
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError:
            return content, [], ()
        skills = parsed.get("skills") if isinstance(parsed, dict) else None
        return content, _skill_categories(skills), ()

    return (
        json.dumps(resume_data, ensure_ascii=False, indent=2),
        _skill_categories(resume_data.get("skills")),
        (),
    )


def _skill_categories(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, dict)]


def _match_score(raw: Any) -> int:
    try:
        score = int(raw)
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, score))


def _selected_ids(selection: dict[str, Any], key: str) -> list[str]:
    values = selection.get(key)
    if not isinstance(values, list):
        return []
    return list(dict.fromkeys(str(value) for value in values))


def _tailored_bullets(section: Any, item_id: str) -> list[str]:
    if not isinstance(section, dict):
        return []
    entry = section.get(item_id)
    if not isinstance(entry, dict):
        return []
    return [str(bullet) for bullet in entry.get("bullets") or []]


def _bullet_suggestions(  # noqa: PLR0913
    *,
    id_prefix: str,
    section: str,
    section_index: int,
    original: list[str],
    tailored: list[str],
    title: str,
    reasoning: str,
    color: HighlightColor,
    now_ms: int,
) -> list[InlineSuggestion]:
    suggestions: list[InlineSuggestion] = []
    for bullet_index, suggested in enumerate(tailored):
        current = original[bullet_index] if bullet_index < len(original) else ""
        if current == suggested:
            continue
        suggestions.append(
            InlineSuggestion(
                id=f"{id_prefix}-bullet-{bullet_index}-{now_ms}",
                type=SuggestionType.MODIFY if current else SuggestionType.ADD,
                section=section,
                section_index=section_index,
                field="bullets",
                bullet_index=bullet_index,
                original_text=current,
                suggested_text=suggested,
                title=title,
                description="AI-optimized for job relevance",
                reasoning=reasoning,
                highlight_color=color,
            ),
        )
    return suggestions
