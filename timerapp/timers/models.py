"""Timer data models and persisted snapshot schemas."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator


class TimerStatus(str, Enum):
    """Timer status"""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


def new_id() -> str:
    """Generate a globally unique entity id."""
    return uuid4().hex


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds (the persisted timestamp format)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(milliseconds=1)


# Numbers above this are treated as milliseconds rather than seconds
_MS_THRESHOLD = 2e10


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored timestamp.

    Accepts epoch milliseconds, epoch seconds, ISO-8601 text or a datetime.

    Returns:
        Timezone-aware UTC datetime, or None if the value can't be parsed
    """
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            if abs(value) > _MS_THRESHOLD:
                return EPOCH + timedelta(milliseconds=value)
            return EPOCH + timedelta(seconds=value)
        except (OverflowError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return parse_timestamp(float(text))
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class TimerSnapshot(BaseModel):
    """Persisted and exported shape of a timer."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    duration: int = Field(gt=0)  # seconds
    category: str
    remaining_time: int = Field(alias="remainingTime", ge=0)
    status: TimerStatus = TimerStatus.IDLE
    is_halfway_alert_enabled: bool = Field(False, alias="isHalfwayAlertEnabled")
    halfway_alert_triggered: bool = Field(False, alias="halfwayAlertTriggered")
    completion_acknowledged: bool = Field(False, alias="completionAcknowledged")
    created_at: datetime = Field(alias="createdAt")

    @model_validator(mode="after")
    def _check_remaining(self) -> "TimerSnapshot":
        if self.remaining_time > self.duration:
            raise ValueError("remainingTime cannot exceed duration")
        if self.status == TimerStatus.COMPLETED and self.remaining_time != 0:
            raise ValueError("completed timers must have no remaining time")
        return self

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> int:
        return to_epoch_ms(value)

    def to_json(self) -> dict:
        """Plain JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class TimerLogSnapshot(BaseModel):
    """Persisted shape of a timer log entry."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    timer_name: str = Field(alias="timerName", min_length=1)
    completed_at: datetime = Field(alias="completedAt")
    duration: int = Field(0, ge=0)

    @field_serializer("completed_at")
    def _serialize_completed_at(self, value: datetime) -> int:
        return to_epoch_ms(value)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class TimerLog:
    """A completed timer run."""
    id: str
    timer_name: str  # snapshot of the name at completion time
    completed_at: datetime
    duration: int

    @classmethod
    def from_snapshot(cls, snapshot: TimerLogSnapshot) -> "TimerLog":
        return cls(
            id=snapshot.id,
            timer_name=snapshot.timer_name,
            completed_at=snapshot.completed_at,
            duration=snapshot.duration,
        )

    def to_snapshot(self) -> TimerLogSnapshot:
        return TimerLogSnapshot(
            id=self.id,
            timer_name=self.timer_name,
            completed_at=self.completed_at,
            duration=self.duration,
        )
