"""Task tracker data types shared by policies and backends."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Union


class InternalStatus(str, Enum):
    """Canonical status vocabulary. Compare by identity, never by position."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    BLOCKED = "BLOCKED"
    DONE = "DONE"


@dataclass(frozen=True, slots=True)
class TaskStatus:
    """A status as reported by a tracker plus its normalized internal value."""

    provider: str
    key: str
    raw: str | None
    internal: InternalStatus | None = None

    def with_internal(self, internal: InternalStatus | None) -> "TaskStatus":
        return replace(self, internal=internal)

    @property
    def display(self) -> str:
        if self.raw:
            return self.raw
        if self.internal is not None:
            return self.internal.value
        return "UNKNOWN"


@dataclass(frozen=True, slots=True)
class TaskFound:
    status: TaskStatus


@dataclass(frozen=True, slots=True)
class TaskNotFound:
    pass


@dataclass(frozen=True, slots=True)
class TaskLookupFailed:
    message: str


TaskLookupResult = Union[TaskFound, TaskNotFound, TaskLookupFailed]


@dataclass(frozen=True, slots=True)
class OperationFailed:
    """Failure branch shared by subtask, transition and details results."""

    message: str


@dataclass(frozen=True, slots=True)
class SubtaskCreated:
    subtask_key: str


@dataclass(frozen=True, slots=True)
class TransitionSucceeded:
    pass


@dataclass(frozen=True, slots=True)
class TaskDetails:
    key: str
    summary: str
    description: str
    parent_key: str | None = None


SubtaskResult = Union[SubtaskCreated, OperationFailed]
TransitionResult = Union[TransitionSucceeded, OperationFailed]
TaskDetailsResult = Union[TaskDetails, OperationFailed]


__all__ = [
    "InternalStatus",
    "OperationFailed",
    "SubtaskCreated",
    "SubtaskResult",
    "TaskDetails",
    "TaskDetailsResult",
    "TaskFound",
    "TaskLookupFailed",
    "TaskLookupResult",
    "TaskNotFound",
    "TaskStatus",
    "TransitionResult",
    "TransitionSucceeded",
]
