import json
from pathlib import Path

from clitutor.errors import ContentError, ErrorKind, ProviderError, StateError, TransportError, ValidationError
from clitutor.models import Curriculum, Lesson, Progress
from clitutor.progress import ProgressStore
from clitutor.prompts import STRATEGIES
from clitutor.service import (
    MAX_TOKENS_EXTENSION,
    MAX_TOKENS_MODULE,
    MAX_TOKENS_TEXT,
    NO_SESSION_STATUS,
    TutorService,
)

LESSON_1 = Lesson(
    title="Init", concept="Create a repo", command="git init", example_output="", practice_command="git init"
)
LESSON_2 = Lesson(title="Status", concept="Inspect", command="git status", example_output="", hint="Just run it")
LESSON_3 = Lesson(title="Stash", concept="Shelve work", command="git stash", example_output="")


class FakeClient:
    def __init__(self, curricula: list[Curriculum] | None = None, text: str = "answer") -> None:
        self.curricula = list(curricula or [Curriculum(name="Git Basics", lessons=[LESSON_1, LESSON_2])])
        self.text = text
        self.error: Exception | None = None
        self.curriculum_calls: list[tuple[str, int]] = []
        self.text_calls: list[tuple[str, int]] = []
        self.closed = False

    def generate_curriculum(self, prompt: str, max_tokens: int) -> Curriculum:
        self.curriculum_calls.append((prompt, max_tokens))
        if self.error is not None:
            raise self.error
        return self.curricula.pop(0)

    def generate_text(self, prompt: str, max_tokens: int) -> str:
        self.text_calls.append((prompt, max_tokens))
        if self.error is not None:
            raise self.error
        return self.text

    def close(self) -> None:
        self.closed = True


def _service(tmp_path: Path, client: FakeClient | None = None) -> TutorService:
    return TutorService(client=client or FakeClient(), progress=ProgressStore(tmp_path / "progress.json"))


def _saved(tmp_path: Path) -> dict[str, object]:
    return json.loads((tmp_path / "progress.json").read_text(encoding="utf-8"))


def test_fresh_service_is_empty(tmp_path: Path) -> None:
    service = _service(tmp_path)
    assert service.session is None
    assert service.current_lesson() is None
    assert service.next_lesson() is None
    assert service.previous_lesson() is None
    assert service.go_to_lesson(1) is None
    assert service.is_module_complete() is False
    assert service.status() == NO_SESSION_STATUS
    assert service.lessons() == ()
    assert service.available_modules() == {}
    assert not (tmp_path / "progress.json").exists()


def test_start_module_sets_index_zero_and_persists(tmp_path: Path) -> None:
    client = FakeClient()
    service = _service(tmp_path, client)

    curriculum = service.start_module("git", "basics")

    assert curriculum.name == "Git Basics"
    assert service.current_lesson() == LESSON_1
    assert service.session is not None
    assert service.session.progress == Progress(technology="git", module_key="basics", lesson_index=0)
    assert _saved(tmp_path) == {"technology": "git", "moduleKey": "basics", "lessonIndex": 0}
    prompt, max_tokens = client.curriculum_calls[0]
    assert max_tokens == MAX_TOKENS_MODULE
    assert "the absolute basics of Git" in prompt


def test_start_module_normalizes_technology_case(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.start_module("GIT", "basics")
    assert _saved(tmp_path)["technology"] == "git"


def test_start_module_for_every_registered_pair(tmp_path: Path) -> None:
    for tech_key, strategy in STRATEGIES.items():
        for module_key in strategy.available_modules():
            client = FakeClient([Curriculum(name=module_key, lessons=[LESSON_1])])
            service = _service(tmp_path, client)
            service.start_module(tech_key, module_key)
            assert service.session is not None
            assert service.session.index == 0
            assert len(service.lessons()) > 0


def test_start_module_unknown_technology(tmp_path: Path) -> None:
    client = FakeClient()
    service = _service(tmp_path, client)
    try:
        service.start_module("cobol", "basics")
        raise AssertionError("Expected ValidationError.")
    except ValidationError as exc:
        assert "cobol" in str(exc)
    assert client.curriculum_calls == []
    assert service.session is None


def test_start_module_unknown_module_key(tmp_path: Path) -> None:
    client = FakeClient()
    service = _service(tmp_path, client)
    try:
        service.start_module("git", "quantum-physics")
        raise AssertionError("Expected ValidationError.")
    except ValidationError as exc:
        assert exc.kind is ErrorKind.VALIDATION
        assert "quantum-physics" in str(exc)
    assert client.curriculum_calls == []


def test_failed_start_keeps_previous_session(tmp_path: Path) -> None:
    client = FakeClient()
    service = _service(tmp_path, client)
    service.start_module("git", "basics")
    service.next_lesson()
    before = service.session

    client.error = ProviderError(503, "busy")
    try:
        service.start_module("docker", "images")
        raise AssertionError("Expected ProviderError.")
    except ProviderError:
        pass
    assert service.session is before
    assert _saved(tmp_path)["lessonIndex"] == 1


def test_start_module_rejects_empty_curriculum(tmp_path: Path) -> None:
    service = _service(tmp_path, FakeClient([Curriculum(name="Empty", lessons=[])]))
    try:
        service.start_module("git", "basics")
        raise AssertionError("Expected ContentError.")
    except ContentError:
        pass
    assert service.session is None


def test_navigation_flow(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.start_module("git", "basics")

    assert service.current_lesson() == LESSON_1
    assert service.is_module_complete() is False

    assert service.next_lesson() == LESSON_2
    assert _saved(tmp_path)["lessonIndex"] == 1

    assert service.next_lesson() is None
    assert service.is_module_complete() is True
    assert service.current_lesson() is None
    assert _saved(tmp_path)["lessonIndex"] == 2

    assert service.previous_lesson() == LESSON_2
    assert service.previous_lesson() == LESSON_1
    assert service.previous_lesson() is None
    assert service.session is not None
    assert service.session.index == 0


def test_next_lesson_is_idempotent_once_complete(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.start_module("git", "basics")
    indexes = []
    for _ in range(5):
        service.next_lesson()
        assert service.session is not None
        indexes.append(service.session.index)
    assert indexes == [1, 2, 2, 2, 2]
    assert indexes == sorted(indexes)


def test_go_to_lesson_in_range(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.start_module("git", "basics")

    assert service.go_to_lesson(2) == LESSON_2
    assert service.session is not None
    assert service.session.index == 1
    assert _saved(tmp_path)["lessonIndex"] == 1
    assert service.go_to_lesson(1) == LESSON_1


def test_go_to_lesson_out_of_range_changes_nothing(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.start_module("git", "basics")
    service.next_lesson()

    for number in [0, 3, -1, 99]:
        assert service.go_to_lesson(number) is None
        assert service.session is not None
        assert service.session.index == 1
    assert _saved(tmp_path)["lessonIndex"] == 1


def test_go_to_lesson_can_leave_complete_state(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.start_module("git", "basics")
    service.go_to_lesson(2)
    service.next_lesson()
    assert service.is_module_complete() is True

    assert service.go_to_lesson(1) == LESSON_1
    assert service.is_module_complete() is False


def test_append_more_lessons_requires_completion(tmp_path: Path) -> None:
    client = FakeClient()
    service = _service(tmp_path, client)
    for setup in [lambda: None, lambda: service.start_module("git", "basics")]:
        setup()
        try:
            service.append_more_lessons()
            raise AssertionError("Expected StateError.")
        except StateError as exc:
            assert exc.kind is ErrorKind.STATE
    assert len(client.curriculum_calls) == 1


def test_append_more_lessons_extends_without_moving_index(tmp_path: Path) -> None:
    client = FakeClient(
        [
            Curriculum(name="Git Basics", lessons=[LESSON_1, LESSON_2]),
            Curriculum(name="ignored", lessons=[LESSON_3]),
        ]
    )
    service = _service(tmp_path, client)
    service.start_module("git", "basics")
    service.next_lesson()
    service.next_lesson()
    assert service.is_module_complete() is True

    added = service.append_more_lessons()

    assert added == 1
    assert service.is_module_complete() is False
    assert service.lessons() == (LESSON_1, LESSON_2, LESSON_3)
    assert service.session is not None
    assert service.session.curriculum.name == "Git Basics"
    assert service.session.index == 2
    assert service.current_lesson() == LESSON_3
    assert _saved(tmp_path)["lessonIndex"] == 2

    prompt, max_tokens = client.curriculum_calls[1]
    assert max_tokens == MAX_TOKENS_EXTENSION
    assert "`git init`, `git status`" in prompt


def test_append_more_lessons_failure_keeps_state(tmp_path: Path) -> None:
    client = FakeClient()
    service = _service(tmp_path, client)
    service.start_module("git", "basics")
    service.go_to_lesson(2)
    service.next_lesson()

    client.error = TransportError("connection reset")
    try:
        service.append_more_lessons()
        raise AssertionError("Expected TransportError.")
    except TransportError:
        pass
    assert service.is_module_complete() is True
    assert len(service.lessons()) == 2


def test_append_more_lessons_rejects_empty_extension(tmp_path: Path) -> None:
    client = FakeClient(
        [Curriculum(name="Git Basics", lessons=[LESSON_1]), Curriculum(name="More", lessons=[])]
    )
    service = _service(tmp_path, client)
    service.start_module("git", "basics")
    service.next_lesson()
    try:
        service.append_more_lessons()
        raise AssertionError("Expected ContentError.")
    except ContentError:
        pass
    assert service.is_module_complete() is True


def test_answer_question_requires_session(tmp_path: Path) -> None:
    client = FakeClient(text="Git commit answer")
    service = _service(tmp_path, client)
    try:
        service.answer_question("How do I commit?")
        raise AssertionError("Expected StateError.")
    except StateError:
        pass

    service.start_module("git", "basics")
    assert service.answer_question("How do I commit?") == "Git commit answer"
    prompt, max_tokens = client.text_calls[0]
    assert "How do I commit?" in prompt
    assert max_tokens == MAX_TOKENS_TEXT
    assert service.session is not None
    assert service.session.index == 0


def test_summary_before_completion_fails(tmp_path: Path) -> None:
    service = _service(tmp_path)
    for setup in [lambda: None, lambda: service.start_module("git", "basics")]:
        setup()
        try:
            service.generate_summary()
            raise AssertionError("Expected StateError.")
        except StateError as exc:
            assert "after completing" in str(exc)


def test_summary_after_completion_uses_module_title(tmp_path: Path) -> None:
    client = FakeClient(text="## Summary")
    service = _service(tmp_path, client)
    service.start_module("git", "basics")
    service.next_lesson()
    service.next_lesson()

    assert service.generate_summary() == "## Summary"
    prompt, _ = client.text_calls[0]
    assert '"Git Basics: The First Steps"' in prompt
    assert "Init, Status" in prompt
    assert service.is_module_complete() is True


def test_status_messages(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.start_module("git", "basics")
    assert service.status() == "Technology: Git | Module: 'basics' | Lesson 1 of 2."
    service.next_lesson()
    service.next_lesson()
    assert service.status() == "You have completed all 2 lessons of the 'basics' module for Git!"


def test_persistence_failure_does_not_block_navigation(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    service = TutorService(client=FakeClient(), progress=ProgressStore(blocker / "progress.json"))

    service.start_module("git", "basics")
    assert service.next_lesson() == LESSON_2
    assert service.go_to_lesson(1) == LESSON_1


def test_resume_restores_saved_session(tmp_path: Path) -> None:
    ProgressStore(tmp_path / "progress.json").save(Progress(technology="git", module_key="basics", lesson_index=1))
    client = FakeClient()
    service = _service(tmp_path, client)

    assert service.resume() is True
    assert service.current_lesson() == LESSON_2
    assert service.available_modules()["basics"] == "Git Basics: The First Steps"
    assert client.curriculum_calls[0][1] == MAX_TOKENS_MODULE


def test_resume_clamps_index_to_regenerated_length(tmp_path: Path) -> None:
    ProgressStore(tmp_path / "progress.json").save(Progress(technology="git", module_key="basics", lesson_index=30))
    service = _service(tmp_path)

    assert service.resume() is True
    assert service.session is not None
    assert service.session.index == 2
    assert service.is_module_complete() is True


def test_resume_without_saved_progress(tmp_path: Path) -> None:
    client = FakeClient()
    service = _service(tmp_path, client)
    assert service.resume() is False
    assert client.curriculum_calls == []


def test_resume_failures_start_empty(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.json")
    cases = [
        (Progress(technology="cobol", module_key="basics", lesson_index=0), None),
        (Progress(technology="git", module_key="gone", lesson_index=0), None),
        (Progress(technology="git", module_key="basics", lesson_index=0), TransportError("offline")),
    ]
    for progress, error in cases:
        store.save(progress)
        client = FakeClient()
        client.error = error
        service = _service(tmp_path, client)
        assert service.resume() is False
        assert service.session is None
        assert store.load() == progress


def test_check_practice(tmp_path: Path) -> None:
    service = _service(tmp_path)
    try:
        service.check_practice("git init")
        raise AssertionError("Expected StateError.")
    except StateError:
        pass

    service.start_module("git", "basics")
    assert service.check_practice("  git init ") is True
    assert service.check_practice("git status") is False

    service.next_lesson()
    try:
        service.check_practice("git status")
        raise AssertionError("Expected StateError for lesson without practice command.")
    except StateError:
        pass


def test_technologies_listing(tmp_path: Path) -> None:
    infos = _service(tmp_path).technologies()
    assert [info.key for info in infos] == ["docker", "git", "kubernetes", "linux"]
    git = infos[1]
    assert git.name == "Git"
    assert "branching" in git.modules


def test_reset_and_close(tmp_path: Path) -> None:
    client = FakeClient()
    service = _service(tmp_path, client)
    service.start_module("git", "basics")
    service.reset()
    assert service.session is None
    assert not (tmp_path / "progress.json").exists()
    service.close()
    assert client.closed is True
