"""Support `python -m clitutor`."""

from __future__ import annotations

from .main import main_entry


def main() -> None:
    """Start the tutor shell."""
    main_entry()


if __name__ == "__main__":  # pragma: no cover
    main()
