"""Runtime settings read from the environment (and an optional `.env` file)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.fireworks.ai/inference/v1/chat/completions"
DEFAULT_MODEL = "accounts/fireworks/models/qwen3-coder-30b-a3b-instruct"
DEFAULT_TIMEOUT_SECONDS = 60.0
PROGRESS_FILENAME = ".clitutor-progress.json"


@dataclass(frozen=True)
class Settings:
    """Provider endpoint, credentials, and local paths."""

    api_url: str
    api_key: str
    model: str
    timeout_seconds: float
    progress_path: Path
    log_level: str


def load_settings(env_file: Path | str | None = None) -> Settings:
    """Load settings, letting real environment variables win over `.env` values."""
    load_dotenv(dotenv_path=env_file if env_file is not None else Path.cwd() / ".env", override=False)

    progress_raw = os.getenv("CLITUTOR_PROGRESS_FILE", "").strip()
    progress_path = Path(progress_raw).expanduser() if progress_raw else Path.home() / PROGRESS_FILENAME

    return Settings(
        api_url=os.getenv("CLITUTOR_API_URL", DEFAULT_API_URL).strip() or DEFAULT_API_URL,
        api_key=os.getenv("CLITUTOR_API_KEY", "").strip(),
        model=os.getenv("CLITUTOR_MODEL", DEFAULT_MODEL).strip() or DEFAULT_MODEL,
        timeout_seconds=_timeout_from_env(os.getenv("CLITUTOR_TIMEOUT")),
        progress_path=progress_path,
        log_level=os.getenv("CLITUTOR_LOG_LEVEL", "WARNING").strip().upper() or "WARNING",
    )


def _timeout_from_env(raw: str | None) -> float:
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid CLITUTOR_TIMEOUT %r", raw)
        return DEFAULT_TIMEOUT_SECONDS
    if value <= 0:
        logger.warning("Ignoring non-positive CLITUTOR_TIMEOUT %r", raw)
        return DEFAULT_TIMEOUT_SECONDS
    return value
