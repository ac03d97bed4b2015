"""Controllers for suggestion review CLI commands."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from cura.config import Settings
from cura.errors import TaskNotFoundError
from cura.queue.repository import TaskRepository
from cura.suggestions.matching import build_review_plan
from cura.suggestions.models import InlineSuggestion
from cura.suggestions.session import ResumeSession
from cura.suggestions.store import SessionStore


@dataclass(slots=True)
class SuggestionLoadCommand:
    """CLI input for loading a completed task into the review session."""

    db_path: Path | None
    session_path: Path | None
    task_id: str


@dataclass(slots=True)
class SuggestionSessionCommand:
    """CLI input for commands that only touch the review session."""

    session_path: Path | None


@dataclass(slots=True)
class SuggestionDecisionCommand:
    """CLI input for approving or declining one suggestion."""

    session_path: Path | None
    suggestion_id: str


class SuggestionCliController:
    """Coordinates loading, reviewing, and resolving inline suggestions."""

    def load(self, command: SuggestionLoadCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        repository = TaskRepository(
            db_path=settings.db_path,
            user_id=settings.user_context.user_id,
            user_name=settings.user_context.user_name,
            sqlite_busy_timeout_ms=settings.queue.sqlite_busy_timeout_ms,
        )
        try:
            task = repository.get_task(task_id=command.task_id)
        finally:
            repository.close()
        if task is None:
            raise TaskNotFoundError(f"Task not found: {command.task_id}")

        store = _store(settings, command.session_path)
        session = store.load()
        suggestions = session.load_task_result(task)
        store.save(session)
        return [
            f"Loaded {len(suggestions)} suggestions from {task.mode.value} task {task.task_id}",
            *_review_lines(session),
        ]

    def list_suggestions(self, command: SuggestionSessionCommand) -> list[str]:
        session = _store(Settings.from_env(), command.session_path).load()
        if not session.suggestions:
            return ["No suggestions under review."]
        return _review_lines(session)

    def apply(self, command: SuggestionDecisionCommand) -> list[str]:
        return self._decide(command, approve=True)

    def reject(self, command: SuggestionDecisionCommand) -> list[str]:
        return self._decide(command, approve=False)

    def clear(self, command: SuggestionSessionCommand) -> list[str]:
        store = _store(Settings.from_env(), command.session_path)
        session = store.load()
        session.clear_all()
        store.save(session)
        return ["Suggestions cleared."]

    def show_resume(self, command: SuggestionSessionCommand) -> list[str]:
        session = _store(Settings.from_env(), command.session_path).load()
        return json.dumps(session.resume.to_dict(), ensure_ascii=False, indent=2).splitlines()

    def _decide(self, command: SuggestionDecisionCommand, *, approve: bool) -> list[str]:
        store = _store(Settings.from_env(), command.session_path)
        session = store.load()
        if approve:
            changed = session.apply_suggestion(command.suggestion_id)
            verb = "applied"
        else:
            changed = session.reject_suggestion(command.suggestion_id)
            verb = "rejected"

        if not changed:
            status = session.get(command.suggestion_id).status.value
            lines = [f"Suggestion {command.suggestion_id} already {status}; nothing changed."]
        else:
            lines = [f"Suggestion {verb}: {command.suggestion_id}"]
        if session.finish_review_if_complete():
            lines.append("Review complete. Suggestions cleared.")
        store.save(session)
        return lines


def _store(settings: Settings, session_path: Path | None) -> SessionStore:
    return SessionStore(session_path or settings.session_path)


def _review_lines(session: ResumeSession) -> list[str]:
    plan = build_review_plan(session.resume, session.suggestions)
    lines = [
        f"Pending: {plan.pending_count} applied: {plan.applied_count} "
        f"rejected: {plan.rejected_count}",
    ]
    for placement in plan.placements:
        where = f"{placement.section}[{placement.section_index}]"
        if placement.position is not None:
            where += f"[{placement.position}]"
        lines.extend(_suggestion_lines(placement.suggestion, where=where))
    if plan.unmatched:
        lines.append(f"Additional changes ({len(plan.unmatched)}):")
        for suggestion in plan.unmatched:
            where = f"{suggestion.section} (index {suggestion.section_index})"
            if suggestion.bullet_index is not None:
                where += f" bullet {suggestion.bullet_index}"
            lines.extend(_suggestion_lines(suggestion, where=where))
    return lines


def _suggestion_lines(suggestion: InlineSuggestion, *, where: str) -> list[str]:
    lines = [f"  {suggestion.id} {where} {suggestion.title}"]
    if suggestion.is_addition:
        lines.append(f"    + {suggestion.suggested_text}")
    else:
        lines.append(f"    - {suggestion.original_text}")
        lines.append(f"    + {suggestion.suggested_text}")
    if suggestion.reasoning:
        lines.append(f"    why: {suggestion.reasoning}")
    return lines
