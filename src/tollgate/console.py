"""Single-line user-facing messages on stderr."""

from __future__ import annotations

import sys
from typing import TextIO

PREFIX = "[tollgate]"


def emit(severity: str, message: str, *, stream: TextIO | None = None) -> None:
    print(f"{PREFIX} {severity}: {message}", file=stream or sys.stderr)


def warn(message: str) -> None:
    emit("WARN", message)


def error(message: str) -> None:
    emit("ERROR", message)


__all__ = ["PREFIX", "emit", "error", "warn"]
