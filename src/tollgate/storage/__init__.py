"""Storage abstractions for tollgate."""

from .files import write_atomically
from .models import SessionSnapshot, TrackedSession
from .session_store import SESSION_FILENAME, TRACKING_LOG_FILENAME, SessionStore

__all__ = [
    "SESSION_FILENAME",
    "SessionSnapshot",
    "SessionStore",
    "TRACKING_LOG_FILENAME",
    "TrackedSession",
    "write_atomically",
]
