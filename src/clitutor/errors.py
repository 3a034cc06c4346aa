"""Error taxonomy and tagged operation outcomes."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

EXCERPT_LIMIT = 500


class ErrorKind(Enum):
    """Failure categories surfaced to the caller of a tutor operation."""

    VALIDATION = "validation"
    STATE = "state"
    TRANSPORT = "transport"
    PROVIDER = "provider"
    CONTENT = "content"


class TutorError(Exception):
    """Base class for every failure a tutor operation can report."""

    kind: ErrorKind


class ValidationError(TutorError):
    """Unknown technology or module key."""

    kind = ErrorKind.VALIDATION


class StateError(TutorError):
    """Operation is not valid for the current session state."""

    kind = ErrorKind.STATE


class TransportError(TutorError):
    """Network-level failure talking to the provider (refused, reset, timeout)."""

    kind = ErrorKind.TRANSPORT


class ProviderError(TutorError):
    """Provider answered with a non-2xx HTTP status."""

    kind = ErrorKind.PROVIDER

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Provider returned HTTP {status_code}: {_excerpt(body)}")
        self.status_code = status_code
        self.body = body


class ContentError(TutorError):
    """Model response could not be turned into usable content."""

    kind = ErrorKind.CONTENT

    def __init__(self, message: str, excerpt: str = "") -> None:
        if excerpt:
            super().__init__(f"{message}: {_excerpt(excerpt)}")
        else:
            super().__init__(message)
        self.excerpt = excerpt


@dataclass(frozen=True)
class Outcome:
    """Result of one operation: either a value or a tagged error."""

    value: Any = None
    error: TutorError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return None if self.error is None else self.error.kind


def attempt(operation: Callable[..., Any], *args: Any) -> Outcome:
    """Run `operation` and capture tutor failures as a failed outcome.

    Only `TutorError` is captured; anything else is a bug and propagates.
    """
    try:
        return Outcome(value=operation(*args))
    except TutorError as exc:
        return Outcome(error=exc)


def _excerpt(text: str) -> str:
    if len(text) <= EXCERPT_LIMIT:
        return text
    return text[:EXCERPT_LIMIT] + "..."
