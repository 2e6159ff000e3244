"""The task tracker contract the policies depend on."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..models import SubtaskResult, TaskDetailsResult, TaskLookupResult, TransitionResult
from ..storage.models import SessionSnapshot


@runtime_checkable
class TaskTracker(Protocol):
    """Minimal task tracker API used by the interceptors and workflow commands.

    Implementations report failures through the result types and never raise
    for backend or network problems.
    """

    def get_task_status(self, task_id: str) -> TaskLookupResult:
        ...

    def track_session(self, snapshot: SessionSnapshot) -> None:
        ...

    def create_subtask(self, parent_id: str, title: str | None = None) -> SubtaskResult:
        ...

    def transition_task(self, task_id: str, target_status: str) -> TransitionResult:
        ...

    def get_task_details(self, task_id: str) -> TaskDetailsResult:
        ...

    def close(self) -> None:
        ...


__all__ = ["TaskTracker"]
