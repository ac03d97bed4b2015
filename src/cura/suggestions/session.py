"""Resume draft plus the inline suggestions under review."""

from __future__ import annotations

import copy
import json
import logging
import time
from collections.abc import Callable, Iterable
from typing import Any

from cura.errors import SuggestionError
from cura.queue.models import TaskMode, TaskStatus, TaskView
from cura.suggestions.editing import apply_edit
from cura.suggestions.models import (
    HighlightColor,
    InlineSuggestion,
    SuggestionStatus,
    SuggestionType,
    normalize_section,
)
from cura.suggestions.resume import Resume

logger = logging.getLogger(__name__)


class ResumeSession:
    """Explicit review state: one resume draft and its suggestion list.

    Every mutation goes through this object; independent sessions never share
    state.
    """

    def __init__(
        self,
        resume: Resume | None = None,
        suggestions: Iterable[InlineSuggestion] = (),
        *,
        show_suggestions: bool | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.resume = resume or Resume()
        self.suggestions = list(suggestions)
        self.show_suggestions = (
            bool(self.suggestions) if show_suggestions is None else show_suggestions
        )
        self.review_finished = False
        self.clock = clock

    def load_suggestions(self, raw_changes: Iterable[dict[str, Any]]) -> list[InlineSuggestion]:
        """Replace the suggestion list with suggestions built from analyze changes."""

        now_ms = int(self.clock() * 1000)
        suggestions = [
            _suggestion_from_change(change, index=index, now_ms=now_ms)
            for index, change in enumerate(raw_changes)
            if isinstance(change, dict)
        ]
        self._start_review(suggestions)
        return list(suggestions)

    def load_build_result(self, result: dict[str, Any]) -> list[InlineSuggestion]:
        """Replace the draft with a curated resume and load its ready-made suggestions."""

        self.resume = Resume.from_dict(result.get("resume"))
        suggestions = [
            InlineSuggestion.from_payload(payload)
            for payload in result.get("inlineSuggestions") or []
            if isinstance(payload, dict)
        ]
        self._start_review(suggestions)
        return list(suggestions)

    def load_task_result(self, task: TaskView) -> list[InlineSuggestion]:
        """Load a completed task's result according to its mode."""

        if task.status is not TaskStatus.COMPLETED or task.result is None:
            raise SuggestionError(
                f"Task {task.task_id} has no result to review (status={task.status.value}).",
            )
        if task.mode is TaskMode.BUILD:
            return self.load_build_result(task.result)

        resume = _resume_from_task_input(task.resume_data)
        if resume is not None:
            self.resume = resume
        return self.load_suggestions(task.result.get("changes") or [])

    def get(self, suggestion_id: str) -> InlineSuggestion:
        for suggestion in self.suggestions:
            if suggestion.id == suggestion_id:
                return suggestion
        raise SuggestionError(f"Suggestion not found: {suggestion_id}")

    def pending(self) -> list[InlineSuggestion]:
        return [suggestion for suggestion in self.suggestions if suggestion.is_pending]

    def apply_suggestion(self, suggestion_id: str) -> bool:
        """Apply a pending suggestion to the draft; False when it was already decided.

        The edit is made on a copy and committed together with the status flip,
        so a failed location leaves both the draft and the status untouched.
        """

        suggestion = self.get(suggestion_id)
        if not suggestion.is_pending:
            return False
        draft = copy.deepcopy(self.resume)
        apply_edit(draft, suggestion)
        self.resume = draft
        suggestion.status = SuggestionStatus.APPLIED
        logger.debug("Applied suggestion %s", suggestion_id)
        return True

    def reject_suggestion(self, suggestion_id: str) -> bool:
        suggestion = self.get(suggestion_id)
        if not suggestion.is_pending:
            return False
        suggestion.status = SuggestionStatus.REJECTED
        return True

    def clear_all(self) -> None:
        self.suggestions = []
        self.show_suggestions = False

    @property
    def review_complete(self) -> bool:
        """Suggestions exist and every one of them has been applied or rejected."""

        return bool(self.suggestions) and not self.pending()

    def finish_review_if_complete(self) -> bool:
        """Leave review mode once per review; True only on the call that did it."""

        if self.review_finished or not self.review_complete:
            return False
        self.review_finished = True
        self.clear_all()
        return True

    def _start_review(self, suggestions: list[InlineSuggestion]) -> None:
        self.suggestions = suggestions
        self.show_suggestions = bool(suggestions)
        self.review_finished = False


def _suggestion_from_change(
    change: dict[str, Any],
    *,
    index: int,
    now_ms: int,
) -> InlineSuggestion:
    section = normalize_section(change.get("section"))
    field = str(change.get("field") or "")
    original = str(change.get("currentText") or "").strip()
    reason = str(change.get("reason") or "")
    keywords = [str(keyword) for keyword in change.get("keywordsAdded") or []]
    description = reason
    if keywords:
        keyword_line = f"Keywords: {', '.join(keywords)}"
        description = f"{reason} {keyword_line}" if reason else keyword_line
    return InlineSuggestion(
        id=f"change-{index}-{now_ms}",
        type=SuggestionType.MODIFY if original else SuggestionType.ADD,
        section=section,
        section_index=change.get("sectionIndex"),
        field=field,
        bullet_index=change.get("bulletIndex"),
        original_text=original,
        suggested_text=str(change.get("suggestedText") or "").strip(),
        title=f"{section.capitalize()} - {field}",
        description=description,
        reasoning=reason,
        status=SuggestionStatus.PENDING,
        highlight_color=HighlightColor.BLUE,
    )


def _resume_from_task_input(resume_data: dict[str, Any] | None) -> Resume | None:
    """Resume document an analyze task was run against, when it is structured."""

    if not resume_data or resume_data.get("base64Data"):
        return None
    content = resume_data.get("content")
    if isinstance(content, str):
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError:
            return None
        return Resume.from_dict(parsed) if isinstance(parsed, dict) else None
    if "basics" in resume_data or "experience" in resume_data:
        return Resume.from_dict(resume_data)
    return None
