"""Recover structured curriculum content from raw model output."""

from __future__ import annotations

import json
import logging
from typing import Any

from .errors import ContentError
from .models import Curriculum, Lesson

logger = logging.getLogger(__name__)


def extract_json(text: str | None) -> str:
    """Return the span from the first `{` to the last `}` inclusive.

    Models tend to wrap JSON in prose or Markdown fences; everything outside the
    outermost braces is discarded.
    """
    if text is None or not text.strip():
        raise ContentError("no JSON object found", "")

    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last <= first:
        logger.error("No JSON object in model output: %s", text)
        raise ContentError("no JSON object found", text)
    return text[first : last + 1]


def parse_curriculum(text: str) -> Curriculum:
    """Parse a JSON object string into a curriculum."""
    try:
        raw = json.loads(text)
        return curriculum_from_dict(raw)
    except (ValueError, TypeError, RecursionError) as exc:
        logger.error("Curriculum parsing failed.\nInput JSON: %s\nError: %s", text, exc)
        raise ContentError("malformed content", text) from exc


def curriculum_from_dict(raw: Any) -> Curriculum:
    """Build a curriculum from decoded JSON."""
    if not isinstance(raw, dict):
        raise ValueError("Curriculum root must be a JSON object.")
    raw_lessons = raw.get("lessons")
    if raw_lessons is None:
        raw_lessons = []
    if not isinstance(raw_lessons, list):
        raise ValueError("'lessons' must be a JSON array.")
    return Curriculum(
        name=_text(raw.get("moduleName")),
        lessons=[_lesson_from_dict(item) for item in raw_lessons],
    )


def _lesson_from_dict(raw: Any) -> Lesson:
    if not isinstance(raw, dict):
        raise ValueError(f"Lesson entry must be a JSON object, got {type(raw).__name__}.")
    return Lesson(
        title=_text(raw.get("title")),
        concept=_text(raw.get("concept")),
        command=_text(raw.get("command")),
        example_output=_text(raw.get("example_output")),
        practice_command=_text(raw.get("practiceCommand")),
        hint=_text(raw.get("hint")),
    )


def _text(value: object) -> str:
    """Coerce an optional JSON scalar to text; `null` becomes empty."""
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ValueError(f"Expected a string, got {type(value).__name__}.")
    return str(value)
