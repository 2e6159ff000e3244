"""Elapsed-time tracking per branch, persisted between invocations."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from ..config import Config
from ..git.branches import extract_task
from ..invocation import Invocation
from ..storage.models import SessionSnapshot, TrackedSession
from ..storage.session_store import SessionStore
from ..trackers.base import TaskTracker
from .base import GitInterceptor

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionTrackingInterceptor(GitInterceptor):
    """Rotates the active session on branch change or after an idle gap.

    The hook runs after every pipelined command, whatever its exit code, and
    never alters that exit code.
    """

    name = "session-tracking"

    def __init__(
        self,
        clock: Clock | None = None,
        store_factory: Callable[[Config], SessionStore] | None = None,
    ) -> None:
        self._clock = clock or _utc_now
        self._store_factory = store_factory or (lambda config: SessionStore(config.state_root))

    def after(
        self,
        invocation: Invocation,
        exit_code: int,
        config: Config,
        tracker: TaskTracker,
    ) -> int | None:
        store = self._store_factory(config)
        if not config.tracking_enabled:
            store.clear()
            return None

        branch = invocation.current_branch()
        if branch is None:
            return None

        now = self._clock()
        task = extract_task(branch, config.branch_pattern)
        active = store.load()
        if active is None:
            store.save(_new_session(branch, task, now))
            return None

        interval = timedelta(milliseconds=config.session_tracking_interval_ms)
        branch_changed = active.branch != branch
        timed_out = now - active.last_activity_time >= interval
        if branch_changed or timed_out:
            self._close(active, now, tracker)
            store.save(_new_session(branch, task, now))
        else:
            store.save(active.with_activity(now, task))
        return None

    def _close(self, session: TrackedSession, end: datetime, tracker: TaskTracker) -> None:
        duration = session.duration_ms(end)
        if duration <= 0:
            logger.debug("Dropping empty session for %s", session.branch)
            return
        snapshot = SessionSnapshot(
            branch=session.branch,
            task=session.task,
            start_time=session.start_time,
            end_time=end,
            duration_ms=duration,
        )
        logger.debug(
            "Closing session for %s",
            session.branch,
            extra={"task": session.task, "duration_ms": duration},
        )
        try:
            tracker.track_session(snapshot)
        except Exception as exc:  # tracking must never fail the git command
            logger.debug("Session report for %s failed: %s", session.branch, exc)


def _new_session(branch: str, task: str | None, now: datetime) -> TrackedSession:
    return TrackedSession(branch=branch, task=task, start_time=now, last_activity_time=now)


__all__ = ["Clock", "SessionTrackingInterceptor"]
