"""Locate a suggestion's target inside a resume and apply the edit in place."""

from __future__ import annotations

import re
from dataclasses import fields
from typing import Any

from cura.errors import SuggestionTargetError
from cura.suggestions.models import InlineSuggestion, SuggestionType
from cura.suggestions.resume import Resume

_INDEXED_FIELD = re.compile(r"^(\w+)\[(\d+)\]$")
_CONTACT_FIELDS = frozenset({"email", "phone", "links"})


def parse_field(raw: str) -> tuple[str, int | None]:
    """Split `"bullets[2]"` into `("bullets", 2)`; plain names carry no index."""

    match = _INDEXED_FIELD.match(raw.strip())
    if match is None:
        return raw.strip(), None
    return match.group(1), int(match.group(2))


def apply_edit(resume: Resume, suggestion: InlineSuggestion) -> None:
    """Mutate `resume` according to `suggestion`.

    Raises `SuggestionTargetError` when the location does not exist; callers
    that need atomicity apply the edit to a copy.
    """

    if suggestion.type is SuggestionType.REORDER:
        raise SuggestionTargetError(
            f"Reorder suggestions cannot be applied inline (id={suggestion.id}).",
        )

    field_name, field_index = parse_field(suggestion.field)
    target, field_name = _resolve_target(resume, suggestion, field_name)
    if field_name not in {item.name for item in fields(target)}:
        raise SuggestionTargetError(
            f"Unknown field {suggestion.field!r} in section {suggestion.section!r}.",
        )

    value = getattr(target, field_name)
    if isinstance(value, list):
        index = suggestion.bullet_index if suggestion.bullet_index is not None else field_index
        _edit_list(value, suggestion, index)
        return
    if isinstance(value, str):
        remove = suggestion.type is SuggestionType.REMOVE
        setattr(target, field_name, "" if remove else suggestion.suggested_text)
        return
    raise SuggestionTargetError(
        f"Field {suggestion.field!r} in section {suggestion.section!r} is not editable text.",
    )


def _resolve_target(
    resume: Resume,
    suggestion: InlineSuggestion,
    field_name: str,
) -> tuple[Any, str]:
    section = suggestion.section
    if section == "summary":
        return resume.basics, "summary"
    if section == "basics":
        if field_name in _CONTACT_FIELDS:
            return resume.basics.contact, field_name
        return resume.basics, field_name
    if section == "experience":
        return _item(resume.experience, suggestion), field_name
    if section == "education":
        return _item(resume.education, suggestion), field_name
    if section == "project":
        return _item(resume.projects, suggestion), field_name
    if section == "skills":
        return _item(resume.skills, suggestion), field_name or "skills"
    raise SuggestionTargetError(f"Unknown section {section!r} (id={suggestion.id}).")


def _item(items: list[Any], suggestion: InlineSuggestion) -> Any:
    index = suggestion.section_index
    if not isinstance(index, int) or not 0 <= index < len(items):
        raise SuggestionTargetError(
            f"{suggestion.section} entry {index!r} does not exist (id={suggestion.id}).",
        )
    return items[index]


def _edit_list(values: list[str], suggestion: InlineSuggestion, index: int | None) -> None:
    if suggestion.is_addition and suggestion.type is not SuggestionType.REMOVE:
        values.append(suggestion.suggested_text)
        return

    if index is None:
        wanted = suggestion.original_text.strip()
        index = next(
            (position for position, value in enumerate(values) if value.strip() == wanted),
            None,
        )
        if index is None:
            raise SuggestionTargetError(
                f"Original text not found in {suggestion.section}.{suggestion.field} "
                f"(id={suggestion.id}).",
            )
    elif not 0 <= index < len(values):
        raise SuggestionTargetError(
            f"Index {index} is out of range for {suggestion.section}.{suggestion.field} "
            f"(id={suggestion.id}).",
        )

    if suggestion.type is SuggestionType.REMOVE:
        del values[index]
    else:
        values[index] = suggestion.suggested_text
