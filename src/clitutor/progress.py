"""JSON-file persistence for the learner's position in a module."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .models import Progress

logger = logging.getLogger(__name__)


class ProgressStore:
    """Best-effort storage for a single progress record.

    Read and write failures are logged and absorbed so that a disk problem never
    blocks navigation; callers see `None` from `load` and `False` from `save`.
    """

    def __init__(self, path: Path | str) -> None:
        """Bind the store to one file; nothing is touched until the first call."""
        self.path = Path(path)

    def load(self) -> Progress | None:
        """Return saved progress, or None when absent or unreadable."""
        try:
            raw: object = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, RecursionError) as exc:
            logger.warning("Could not read progress from %s: %s", self.path, exc)
            return None

        progress = _progress_from_dict(raw)
        if progress is None:
            logger.warning("Ignoring malformed progress record in %s", self.path)
        return progress

    def save(self, progress: Progress) -> bool:
        """Overwrite the file with `progress`; return whether the write succeeded."""
        payload = {
            "technology": progress.technology,
            "moduleKey": progress.module_key,
            "lessonIndex": progress.lesson_index,
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to save progress to %s: %s", self.path, exc)
            return False
        return True

    def clear(self) -> None:
        """Remove the saved record if present."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to remove progress file %s: %s", self.path, exc)


def _progress_from_dict(raw: object) -> Progress | None:
    if not isinstance(raw, dict):
        return None
    technology = raw.get("technology")
    module_key = raw.get("moduleKey")
    index = raw.get("lessonIndex")
    if not isinstance(technology, str) or not isinstance(module_key, str):
        return None
    # bool is an int subclass
    if not isinstance(index, int) or isinstance(index, bool) or index < 0:
        return None
    return Progress(technology=technology, module_key=module_key, lesson_index=index)
