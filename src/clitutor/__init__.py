"""clitutor package."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

__all__ = ["__version__"]

# src/clitutor/__init__.py -> checkout root
_PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def _resolve_version() -> str:
    """Prefer the checkout's pyproject.toml, then installed metadata."""
    try:
        with _PYPROJECT.open("rb") as handle:
            return str(tomllib.load(handle)["project"]["version"])
    except (OSError, tomllib.TOMLDecodeError, KeyError):
        pass
    try:
        return version("clitutor")
    except PackageNotFoundError:
        return "0+unknown"


__version__ = _resolve_version()
