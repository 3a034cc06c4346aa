"""CLI entrypoint for the interactive command tutor."""

from __future__ import annotations

import argparse
import logging
import re
import shlex
from collections.abc import Callable
from pathlib import Path

from . import __version__
from .client import ContentClient
from .config import load_settings
from .errors import ErrorKind, Outcome, attempt
from .models import Lesson
from .progress import ProgressStore
from .service import TutorService

InputFn = Callable[[str], str]
PrintFn = Callable[[str], None]
QUIT_COMMANDS = {"quit", "exit", "q"}

HELP_LINES = (
    "list                      Show technologies and modules",
    "start <tech> <module>     Generate and start a module",
    "next | prev | goto <n>    Move between lessons",
    "toc                       Table of contents for the module",
    "practice <command>        Check your answer (alias: p)",
    "hint | skip               Help with the current exercise",
    "more                      Add lessons after finishing a module",
    "ask <question>            Ask the tutor anything",
    "summary                   Study guide for a finished module",
    "status | reset | version  Session housekeeping",
    "quit                      Leave the tutor",
)

ERROR_PREFIXES = {
    ErrorKind.VALIDATION: "Invalid input",
    ErrorKind.STATE: "Not now",
    ErrorKind.TRANSPORT: "Could not reach the tutor service",
    ErrorKind.PROVIDER: "The tutor service returned an error",
    ErrorKind.CONTENT: "The tutor service returned unusable content",
}


def _service(progress_file: Path | None = None) -> TutorService:
    """Create the service from environment settings."""
    settings = load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.WARNING))
    store = ProgressStore(progress_file if progress_file is not None else settings.progress_path)
    return TutorService(client=ContentClient.from_settings(settings), progress=store)


def run(argv: list[str] | None = None) -> int:
    """Run the CLI application."""
    parser = argparse.ArgumentParser(prog="clitutor", description="AI-generated command-line lessons")
    parser.add_argument("command", nargs="?", default="play", choices=["play"])
    parser.add_argument("--progress-file", type=Path, default=None, help="Where to keep lesson progress")
    args = parser.parse_args(argv)
    return play_shell(service=_service(args.progress_file))


def play_shell(input_fn: InputFn = input, print_fn: PrintFn = print, service: TutorService | None = None) -> int:
    """Run the command loop until the user quits or input ends."""
    if service is None:
        service = _service()
    try:
        print_fn(f"clitutor {__version__}. Type 'help' for commands.")
        if service.resume():
            print_fn(service.status())
            _show_current(service, print_fn)
        while True:
            try:
                line = input_fn("tutor> ").strip()
            except EOFError:
                return 0
            if not line:
                continue
            # Handlers get the rest of the line verbatim.
            parts = line.split(maxsplit=1)
            command, rest = parts[0].lower(), parts[1] if len(parts) > 1 else ""
            if command in QUIT_COMMANDS:
                return 0
            handler = COMMANDS.get(command)
            if handler is None:
                print_fn(f"Unknown command '{command}'. Type 'help' for commands.")
                continue
            handler(service, rest, print_fn)
    finally:
        service.close()


def _cmd_help(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    for line in HELP_LINES:
        print_fn(line)


def _cmd_list(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    print_fn("\n=== Available Technologies ===")
    for tech in service.technologies():
        print_fn(f"\n{tech.name} (start {tech.key} <module>)")
        width = max(len(key) for key in tech.modules)
        for key, title in sorted(tech.modules.items()):
            print_fn(f"  {key:<{width}}  {title}")


def _cmd_start(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    args = _split_args(rest)
    if len(args) != 2:
        print_fn("Usage: start <technology> <module>")
        return
    print_fn("Generating your module... this may take a moment.")
    outcome = attempt(service.start_module, args[0], args[1])
    if _report(outcome, print_fn):
        print_fn(f"\nStarted '{outcome.value.name}' with {len(outcome.value.lessons)} lessons.")
        _show_current(service, print_fn)


def _cmd_next(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    if service.session is None:
        print_fn(service.status())
        return
    lesson = service.next_lesson()
    if lesson is None:
        print_fn("Module complete! Use 'summary' for a study guide or 'more' for extra lessons.")
        return
    _show_lesson(service, lesson, print_fn)


def _cmd_prev(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    lesson = service.previous_lesson()
    if lesson is None:
        print_fn("You are already at the first lesson.")
        return
    _show_lesson(service, lesson, print_fn)


def _cmd_goto(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    args = _split_args(rest)
    if len(args) != 1 or not args[0].isdigit():
        print_fn("Usage: goto <lesson number>")
        return
    lesson = service.go_to_lesson(int(args[0]))
    if lesson is None:
        print_fn(f"Invalid lesson number. Choose 1-{len(service.lessons())}.")
        return
    _show_lesson(service, lesson, print_fn)


def _cmd_toc(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    session = service.session
    if session is None:
        print_fn(service.status())
        return
    lessons = session.curriculum.lessons
    print_fn(f"\n=== {session.curriculum.name} ===")
    width = len(str(len(lessons)))
    for number, lesson in enumerate(lessons, start=1):
        marker = ">" if number - 1 == session.index else " "
        print_fn(f"{marker} {number:>{width}}. {lesson.title}")


def _cmd_practice(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    outcome = attempt(service.check_practice, rest)
    if not _report(outcome, print_fn):
        return
    if outcome.value:
        print_fn("Correct! Well done.")
        _cmd_next(service, "", print_fn)
    else:
        print_fn("Not quite. Please try again. Type 'hint' if you're stuck.")


def _cmd_hint(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    lesson = _practice_lesson(service)
    if lesson is None:
        print_fn("There is no active practice exercise.")
    elif not lesson.hint.strip():
        print_fn("Sorry, no hint is available for this lesson.")
    else:
        print_fn(f"Hint: {lesson.hint}")


def _cmd_skip(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    if _practice_lesson(service) is not None:
        print_fn("Skipping exercise...")
    _cmd_next(service, "", print_fn)


def _cmd_more(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    print_fn("Generating more advanced lessons... this may take a moment.")
    outcome = attempt(service.append_more_lessons)
    if _report(outcome, print_fn):
        print_fn(f"\n{outcome.value} new lessons have been added.")
        _show_current(service, print_fn)


def _cmd_ask(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    if not rest.strip():
        print_fn("Please provide a question after the 'ask' command.")
        return
    print_fn("Asking the tutor...")
    outcome = attempt(service.answer_question, rest.strip())
    if _report(outcome, print_fn):
        _print_section("TUTOR'S RESPONSE", outcome.value, print_fn)


def _cmd_summary(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    outcome = attempt(service.generate_summary)
    if _report(outcome, print_fn):
        _print_section("MODULE SUMMARY", outcome.value, print_fn)


def _cmd_status(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    print_fn(service.status())


def _cmd_reset(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    service.reset()
    print_fn("Progress cleared.")


def _cmd_version(service: TutorService, rest: str, print_fn: PrintFn) -> None:
    print_fn(f"clitutor version {__version__}")


CommandFn = Callable[[TutorService, str, PrintFn], None]
COMMANDS: dict[str, CommandFn] = {
    "help": _cmd_help,
    "list": _cmd_list,
    "start": _cmd_start,
    "next": _cmd_next,
    "prev": _cmd_prev,
    "goto": _cmd_goto,
    "toc": _cmd_toc,
    "practice": _cmd_practice,
    "p": _cmd_practice,
    "hint": _cmd_hint,
    "skip": _cmd_skip,
    "more": _cmd_more,
    "ask": _cmd_ask,
    "summary": _cmd_summary,
    "status": _cmd_status,
    "reset": _cmd_reset,
    "version": _cmd_version,
}


def _report(outcome: Outcome, print_fn: PrintFn) -> bool:
    """Print a failed outcome; return whether it succeeded."""
    if outcome.ok:
        return True
    assert outcome.kind is not None
    print_fn(f"{ERROR_PREFIXES[outcome.kind]}: {outcome.error}")
    return False


def _split_args(rest: str) -> list[str]:
    try:
        return shlex.split(rest)
    except ValueError:
        return rest.split()


def _practice_lesson(service: TutorService) -> Lesson | None:
    """Current lesson, when it carries a practice exercise."""
    lesson = service.current_lesson()
    if lesson is None or not lesson.practice_command.strip():
        return None
    return lesson


def _show_current(service: TutorService, print_fn: PrintFn) -> None:
    lesson = service.current_lesson()
    if lesson is not None:
        _show_lesson(service, lesson, print_fn)


def _show_lesson(service: TutorService, lesson: Lesson, print_fn: PrintFn) -> None:
    """Print one lesson as plain text."""
    tags = service.session.strategy.markup_tags() if service.session is not None else ()
    print_fn(f"\n--- {service.status()} ---")
    print_fn(f"\n{lesson.title}")
    print_fn(f"\n{lesson.concept}")
    print_fn(f"\nCommand: {lesson.command}")
    if lesson.example_output:
        print_fn("\nExample output:")
        print_fn(strip_markup(lesson.example_output, tags))
    if lesson.practice_command:
        print_fn("\nYour turn! Type 'practice <command>' to try it, or 'skip' to move on.")
    else:
        print_fn("\nType 'next' to continue.")


def _print_section(title: str, body: str, print_fn: PrintFn) -> None:
    print_fn(f"\n=== {title} ===")
    print_fn(body)
    print_fn("=" * (len(title) + 8))


def strip_markup(text: str, tags: tuple[str, ...]) -> str:
    """Remove the semantic markup tags (and only those) from example output."""
    if not tags:
        return text
    pattern = "|".join(re.escape(tag) for tag in tags)
    return re.sub(rf"</?(?:{pattern})>", "", text)


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
