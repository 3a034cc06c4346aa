"""Application service: the learner's session and every operation on it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .client import ContentClient
from .errors import ContentError, StateError, TutorError, ValidationError
from .models import Curriculum, Lesson, Progress
from .progress import ProgressStore
from .prompts import STRATEGIES, PromptStrategy, list_technologies, resolve_strategy

logger = logging.getLogger(__name__)

MAX_TOKENS_MODULE = 5000
MAX_TOKENS_EXTENSION = 4000
MAX_TOKENS_TEXT = 2500

NO_SESSION_STATUS = "No tutorial in progress. Use 'start' to begin."


@dataclass(frozen=True)
class Session:
    """Curriculum, cursor and prompt strategy; always set together."""

    curriculum: Curriculum
    progress: Progress
    strategy: PromptStrategy

    @property
    def lesson_count(self) -> int:
        return len(self.curriculum.lessons)

    @property
    def index(self) -> int:
        return self.progress.lesson_index

    @property
    def complete(self) -> bool:
        return self.index >= self.lesson_count

    def current_lesson(self) -> Lesson | None:
        if self.complete:
            return None
        return self.curriculum.lessons[self.index]


@dataclass(frozen=True)
class TechnologyInfo:
    """Registry entry for the module listing."""

    key: str
    name: str
    modules: dict[str, str]


class TutorService:
    """Coordinates prompt building, content generation and progress persistence.

    The session moves between three derived states: Empty (no session), Active
    (index < lesson count) and Complete (index == lesson count). Every change of
    index is written to the progress store immediately.
    """

    def __init__(
        self,
        client: ContentClient,
        progress: ProgressStore,
        strategies: dict[str, PromptStrategy] | None = None,
    ) -> None:
        self.client = client
        self.progress = progress
        self.strategies = STRATEGIES if strategies is None else strategies
        self.session: Session | None = None

    def start_module(self, technology: str, module_key: str) -> Curriculum:
        """Generate a fresh module and replace any current session with it."""
        logger.info("Starting new module: technology=%s, key=%s", technology, module_key)
        tech_key, strategy = self._resolve(technology)
        self._require_module(strategy, module_key)

        curriculum = self._generate_module(strategy, module_key)
        session = Session(
            curriculum=curriculum,
            progress=Progress(technology=tech_key, module_key=module_key, lesson_index=0),
            strategy=strategy,
        )
        self.session = session
        self.progress.save(session.progress)
        return curriculum

    def resume(self) -> bool:
        """Rebuild the saved session, regenerating its lessons.

        Any failure leaves the session empty; nothing is written back.
        """
        saved = self.progress.load()
        if saved is None:
            return False

        logger.info("Resuming previous session for %s", saved.technology)
        try:
            _, strategy = self._resolve(saved.technology)
            self._require_module(strategy, saved.module_key)
            curriculum = self._generate_module(strategy, saved.module_key)
        except TutorError as exc:
            logger.warning("Failed to resume session, starting fresh: %s", exc)
            self.session = None
            return False

        index = min(saved.lesson_index, len(curriculum.lessons))
        self.session = Session(curriculum=curriculum, progress=saved.moved_to(index), strategy=strategy)
        return True

    def current_lesson(self) -> Lesson | None:
        if self.session is None:
            return None
        return self.session.current_lesson()

    def next_lesson(self) -> Lesson | None:
        """Advance one lesson; stepping past the last lesson completes the module."""
        if self.session is None or self.session.complete:
            return None
        return self._move_to(self.session.index + 1)

    def previous_lesson(self) -> Lesson | None:
        if self.session is None or self.session.index <= 0:
            return None
        return self._move_to(self.session.index - 1)

    def go_to_lesson(self, lesson_number: int) -> Lesson | None:
        """Jump to a 1-based lesson number; out-of-range numbers change nothing."""
        target = lesson_number - 1
        if self.session is None or not 0 <= target < self.session.lesson_count:
            return None
        return self._move_to(target)

    def is_module_complete(self) -> bool:
        return self.session is not None and self.session.complete

    def append_more_lessons(self) -> int:
        """Generate follow-up lessons for a completed module.

        The index is left unchanged. Since it equalled the old lesson count, it
        now points at the first new lesson and the module is Active again.
        Returns the number of lessons added.
        """
        session = self.session
        if session is None or not session.complete:
            raise StateError("Finish current lessons first.")
        if session.lesson_count == 0:
            raise StateError("No active module to extend.")

        module_key = session.progress.module_key
        logger.info("Generating extension lessons for %s", module_key)
        prompt = session.strategy.build_more_lessons_prompt(module_key, session.curriculum.lessons)
        extension = self.client.generate_curriculum(prompt, MAX_TOKENS_EXTENSION)
        if not extension.lessons:
            raise ContentError("the provider returned no new lessons")

        self.session = replace(session, curriculum=session.curriculum.extended(extension.lessons))
        self.progress.save(self.session.progress)
        return len(extension.lessons)

    def answer_question(self, question: str) -> str:
        if self.session is None:
            raise StateError("Cannot answer question without context. Please start a module first.")
        prompt = self.session.strategy.build_question_prompt(question)
        return self.client.generate_text(prompt, MAX_TOKENS_TEXT)

    def generate_summary(self) -> str:
        session = self.session
        if session is None or not session.complete:
            raise StateError("A summary can only be generated after completing all lessons in the module.")

        module_key = session.progress.module_key
        logger.info("Generating summary for module: %s", module_key)
        module_name = session.strategy.available_modules().get(module_key, module_key)
        prompt = session.strategy.build_summary_prompt(module_name, session.curriculum.lessons)
        return self.client.generate_text(prompt, MAX_TOKENS_TEXT)

    def status(self) -> str:
        session = self.session
        if session is None:
            return NO_SESSION_STATUS
        tech_name = session.strategy.technology_name()
        module_key = session.progress.module_key
        total = session.lesson_count
        if session.complete:
            return f"You have completed all {total} lessons of the '{module_key}' module for {tech_name}!"
        return f"Technology: {tech_name} | Module: '{module_key}' | Lesson {session.index + 1} of {total}."

    def lessons(self) -> tuple[Lesson, ...]:
        if self.session is None:
            return ()
        return self.session.curriculum.lessons

    def available_modules(self) -> dict[str, str]:
        """Modules of the active technology."""
        if self.session is None:
            return {}
        return self.session.strategy.available_modules()

    def technologies(self) -> list[TechnologyInfo]:
        return [
            TechnologyInfo(key=key, name=strategy.technology_name(), modules=strategy.available_modules())
            for key, strategy in list_technologies(self.strategies)
        ]

    def check_practice(self, command: str) -> bool:
        """Compare typed input with the current lesson's practice command."""
        lesson = self.current_lesson()
        if lesson is None or not lesson.practice_command.strip():
            raise StateError("There is no active practice exercise.")
        return command.strip() == lesson.practice_command.strip()

    def reset(self) -> None:
        """Forget the session and delete saved progress."""
        self.session = None
        self.progress.clear()

    def close(self) -> None:
        self.client.close()

    def _move_to(self, index: int) -> Lesson | None:
        assert self.session is not None
        self.session = replace(self.session, progress=self.session.progress.moved_to(index))
        self.progress.save(self.session.progress)
        return self.session.current_lesson()

    def _resolve(self, technology: str) -> tuple[str, PromptStrategy]:
        strategy = resolve_strategy(technology, self.strategies)
        return technology.strip().lower(), strategy

    def _require_module(self, strategy: PromptStrategy, module_key: str) -> None:
        if module_key not in strategy.available_modules():
            raise ValidationError(f"Unknown module key '{module_key}' for {strategy.technology_name()}")

    def _generate_module(self, strategy: PromptStrategy, module_key: str) -> Curriculum:
        prompt = strategy.build_initial_module_prompt(module_key)
        curriculum = self.client.generate_curriculum(prompt, MAX_TOKENS_MODULE)
        if not curriculum.lessons:
            raise ContentError("the provider returned a module without lessons")
        return curriculum
