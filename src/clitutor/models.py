"""Core domain models for generated lessons and saved progress."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Lesson:
    """One generated teaching unit."""

    title: str
    concept: str
    command: str
    example_output: str
    practice_command: str = ""
    hint: str = ""


@dataclass(frozen=True)
class Curriculum:
    """Named, ordered sequence of lessons for one module."""

    name: str
    lessons: tuple[Lesson, ...] = ()

    def __post_init__(self) -> None:
        # Accept any iterable (or None) and store an immutable tuple.
        object.__setattr__(self, "lessons", tuple(self.lessons) if self.lessons is not None else ())

    def extended(self, extra: Iterable[Lesson]) -> Curriculum:
        """Return a copy with `extra` appended after the existing lessons."""
        return Curriculum(self.name, (*self.lessons, *extra))


@dataclass(frozen=True)
class Progress:
    """Persisted cursor into a module."""

    technology: str
    module_key: str
    lesson_index: int = 0

    def moved_to(self, lesson_index: int) -> Progress:
        """Return the same cursor pointing at another lesson index."""
        return Progress(technology=self.technology, module_key=self.module_key, lesson_index=lesson_index)
