"""Front door to a tracker backend: normalization plus failure containment."""

from __future__ import annotations

import logging

from ..models import (
    OperationFailed,
    SubtaskResult,
    TaskDetailsResult,
    TaskFound,
    TaskLookupFailed,
    TaskLookupResult,
    TransitionResult,
)
from ..normalization import StatusNormalizer
from ..storage.models import SessionSnapshot
from .base import TaskTracker

logger = logging.getLogger(__name__)


class TrackerClient:
    """Wraps a backend so found statuses are normalized and errors never escape."""

    def __init__(self, adapter: TaskTracker, normalizer: StatusNormalizer | None = None) -> None:
        self._adapter = adapter
        self._normalizer = normalizer or StatusNormalizer.identity()

    @property
    def adapter(self) -> TaskTracker:
        return self._adapter

    def __enter__(self) -> "TrackerClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get_task_status(self, task_id: str) -> TaskLookupResult:
        try:
            result = self._adapter.get_task_status(task_id)
        except Exception as exc:  # backend bugs must not break git
            logger.debug("Task lookup raised for %s: %s", task_id, exc)
            return TaskLookupFailed(str(exc) or exc.__class__.__name__)
        if isinstance(result, TaskFound):
            return TaskFound(self._normalizer.to_internal(result.status))
        return result

    def track_session(self, snapshot: SessionSnapshot) -> None:
        try:
            self._adapter.track_session(snapshot)
        except Exception as exc:
            logger.debug("Session tracking failed for %s: %s", snapshot.branch, exc)

    def create_subtask(self, parent_id: str, title: str | None = None) -> SubtaskResult:
        try:
            return self._adapter.create_subtask(parent_id, title)
        except Exception as exc:
            return OperationFailed(str(exc) or exc.__class__.__name__)

    def transition_task(self, task_id: str, target_status: str) -> TransitionResult:
        try:
            return self._adapter.transition_task(task_id, target_status)
        except Exception as exc:
            return OperationFailed(str(exc) or exc.__class__.__name__)

    def get_task_details(self, task_id: str) -> TaskDetailsResult:
        try:
            return self._adapter.get_task_details(task_id)
        except Exception as exc:
            return OperationFailed(str(exc) or exc.__class__.__name__)

    def close(self) -> None:
        try:
            self._adapter.close()
        except Exception as exc:  # pragma: no cover - best effort
            logger.debug("Closing tracker adapter failed: %s", exc)


__all__ = ["TrackerClient"]
