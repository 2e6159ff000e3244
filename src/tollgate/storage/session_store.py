"""Persistence of the single active tracking session."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from .files import write_atomically
from .models import TrackedSession

logger = logging.getLogger(__name__)

SESSION_FILENAME = "session.json"
TRACKING_LOG_FILENAME = "tracking.log"


class SessionStore:
    """Reads and writes ``session.json`` under the state root.

    A missing file means "no active session" and is not an error. Read and
    write failures are logged to the debug channel and never raised.
    """

    def __init__(self, state_root: Path) -> None:
        self._root = Path(state_root)
        self._session_path = self._root / SESSION_FILENAME

    @property
    def session_path(self) -> Path:
        return self._session_path

    @property
    def log_path(self) -> Path:
        return self._root / TRACKING_LOG_FILENAME

    def load(self) -> TrackedSession | None:
        try:
            text = self._session_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Failed to read session %s: %s", self._session_path, exc)
            return None

        try:
            return TrackedSession.model_validate_json(text)
        except ValidationError as exc:
            logger.debug("Discarding unreadable session %s: %s", self._session_path, exc)
            return None

    def save(self, session: TrackedSession | None) -> None:
        """Persist ``session``; ``None`` removes any stored session."""

        if session is None:
            self.clear()
            return
        try:
            write_atomically(self._session_path, session.model_dump_json(by_alias=True, indent=2))
        except OSError as exc:
            logger.debug("Failed to persist session %s: %s", self._session_path, exc)

    def clear(self) -> None:
        try:
            self._session_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.debug("Failed to delete session %s: %s", self._session_path, exc)


__all__ = ["SESSION_FILENAME", "SessionStore", "TRACKING_LOG_FILENAME"]
