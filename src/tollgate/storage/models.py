"""Data models for persisted session tracking."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class TrackedSession(BaseModel):
    """The single live tracking session, persisted as ``session.json``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    branch: str
    task: str | None = None
    start_time: datetime
    last_activity_time: datetime

    @field_validator("start_time", "last_activity_time")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def with_activity(self, now: datetime, task: str | None = None) -> "TrackedSession":
        """Advance ``last_activity_time``; backfill ``task`` if it was unknown."""

        return self.model_copy(
            update={"last_activity_time": now, "task": self.task or task}
        )

    def duration_ms(self, end: datetime) -> int:
        """Milliseconds from start to ``end``; negative values mean clock skew."""

        return int((end - self.start_time).total_seconds() * 1000)


class SessionSnapshot(BaseModel):
    """Immutable record of a closed session, handed to the tracker."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    branch: str
    task: str | None = None
    start_time: datetime
    end_time: datetime
    duration_ms: int


__all__ = ["SessionSnapshot", "TrackedSession"]
