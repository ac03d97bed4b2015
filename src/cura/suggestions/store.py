"""JSON file holding the review session between CLI invocations."""

from __future__ import annotations

import json
from pathlib import Path

from cura.errors import SuggestionError
from cura.suggestions.models import InlineSuggestion
from cura.suggestions.resume import Resume
from cura.suggestions.session import ResumeSession

SESSION_FORMAT_VERSION = 1


class SessionStore:
    """Persist a `ResumeSession` draft and its suggestions to one file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> ResumeSession:
        """Read the saved session; a missing file yields an empty session."""

        if not self.path.exists():
            return ResumeSession()
        try:
            payload = json.loads(self.path.read_text("utf-8"))
        except json.JSONDecodeError as error:
            raise SuggestionError(
                f"Session file {self.path} is not valid JSON: {error}",
            ) from error
        if not isinstance(payload, dict):
            raise SuggestionError(f"Session file {self.path} must contain a JSON object.")

        session = ResumeSession(
            Resume.from_dict(payload.get("resume")),
            [
                InlineSuggestion.from_payload(item)
                for item in payload.get("inlineSuggestions") or []
                if isinstance(item, dict)
            ],
            show_suggestions=bool(payload.get("showSuggestions")),
        )
        session.review_finished = bool(payload.get("reviewFinished"))
        return session

    def save(self, session: ResumeSession) -> None:
        """Write a sibling temp file, then swap it in over the previous session."""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "version": SESSION_FORMAT_VERSION,
            "resume": session.resume.to_dict(),
            "inlineSuggestions": [suggestion.to_payload() for suggestion in session.suggestions],
            "showSuggestions": session.show_suggestions,
            "reviewFinished": session.review_finished,
        }
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), "utf-8")
            tmp_path.replace(self.path)
        finally:
            tmp_path.unlink(missing_ok=True)
