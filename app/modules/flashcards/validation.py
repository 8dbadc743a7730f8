"""Shared validation rules for folders, cards and generation requests.

Every entry point (API routes, the database service, the orchestrator, the
client library and the CLI) calls these functions; none keeps its own copy of
the rules. Each validator returns ``None`` when the input is acceptable or a
``FieldError`` describing the first rule it breaks.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from app.modules.flashcards.errors import FieldValidationError

FOLDER_NAME_MIN = 2
FOLDER_NAME_MAX = 50
DESCRIPTION_MAX = 200
SOURCE_TEXT_MIN = 10
SOURCE_TEXT_MAX = 50_000
CARD_COUNT_MIN = 1
CARD_COUNT_MAX = 20

INVALID_NAME_CHARS = re.compile(r'[<>:"/\\|?*]')


@dataclass(frozen=True)
class FieldError:
    field: str
    code: str
    message: str

    def to_exception(self) -> FieldValidationError:
        return FieldValidationError(self.field, self.code, self.message)


def require_valid(error: Optional[FieldError]) -> None:
    """Raise the matching ``FieldValidationError`` when ``error`` is set."""
    if error is not None:
        raise error.to_exception()


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_folder_name(name: Any) -> Optional[FieldError]:
    value = _clean(name)
    if not value:
        return FieldError("name", "required", "Folder name is required")
    # Forbidden characters are reported before length
    if INVALID_NAME_CHARS.search(value):
        return FieldError("name", "invalid_chars", "Folder name contains invalid characters")
    if len(value) < FOLDER_NAME_MIN:
        return FieldError(
            "name",
            "too_short",
            f"Folder name must be at least {FOLDER_NAME_MIN} characters long",
        )
    if len(value) > FOLDER_NAME_MAX:
        return FieldError(
            "name",
            "too_long",
            f"Folder name must be {FOLDER_NAME_MAX} characters or less",
        )
    return None


def validate_description(text: Any) -> Optional[FieldError]:
    if text is None:
        return None
    if len(_clean(text)) > DESCRIPTION_MAX:
        return FieldError(
            "description",
            "too_long",
            f"Description must be {DESCRIPTION_MAX} characters or less",
        )
    return None


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_generation_request(text: Any, count: Any) -> Optional[FieldError]:
    value = _clean(text)
    if not value:
        return FieldError("text", "required", "Text is required for card generation")
    if len(value) < SOURCE_TEXT_MIN:
        return FieldError(
            "text",
            "too_short",
            f"Text must be at least {SOURCE_TEXT_MIN} characters long",
        )
    if len(value) > SOURCE_TEXT_MAX:
        return FieldError(
            "text",
            "too_long",
            f"Text is too long (maximum {SOURCE_TEXT_MAX:,} characters)",
        )
    if not _is_integer(count) or not CARD_COUNT_MIN <= count <= CARD_COUNT_MAX:
        return FieldError(
            "count",
            "invalid_count",
            f"Card count must be between {CARD_COUNT_MIN} and {CARD_COUNT_MAX}",
        )
    return None


def validate_card(question: Any, answer: Any) -> Optional[FieldError]:
    if not _clean(question):
        return FieldError("question", "empty_question", "Question is empty")
    if not _clean(answer):
        return FieldError("answer", "empty_answer", "Answer is empty")
    return None


__all__ = [
    "FieldError",
    "require_valid",
    "validate_folder_name",
    "validate_description",
    "validate_generation_request",
    "validate_card",
    "FOLDER_NAME_MIN",
    "FOLDER_NAME_MAX",
    "DESCRIPTION_MAX",
    "SOURCE_TEXT_MIN",
    "SOURCE_TEXT_MAX",
    "CARD_COUNT_MIN",
    "CARD_COUNT_MAX",
]
