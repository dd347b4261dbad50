"""HTTP API models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..timers.models import TimerLog, TimerStatus
from ..timers.timer import Timer


def _not_blank(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class TimerCreate(BaseModel):
    """Request body for creating a timer."""

    name: str = Field(..., min_length=1)
    duration: int = Field(..., gt=0)  # seconds
    category: str = Field(..., min_length=1)
    is_halfway_alert_enabled: bool = False

    _strip = field_validator("name", "category")(_not_blank)


class TimerUpdate(BaseModel):
    """Request body for editing a timer. Omitted fields are left alone."""

    name: Optional[str] = Field(None, min_length=1)
    duration: Optional[int] = Field(None, gt=0)
    category: Optional[str] = Field(None, min_length=1)

    _strip = field_validator("name", "category")(_not_blank)


class HalfwayAlertUpdate(BaseModel):
    enabled: bool


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)


class TimerResponse(BaseModel):
    """A timer as shown to clients."""

    id: str
    name: str
    duration: int
    category: str
    remaining_time: int
    status: TimerStatus
    is_halfway_alert_enabled: bool
    halfway_alert_triggered: bool
    completion_acknowledged: bool
    created_at: datetime
    progress: float
    formatted_remaining_time: str

    @classmethod
    def from_timer(cls, timer: Timer) -> "TimerResponse":
        return cls(
            id=timer.id,
            name=timer.name,
            duration=timer.duration,
            category=timer.category,
            remaining_time=timer.remaining_time,
            status=timer.status,
            is_halfway_alert_enabled=timer.is_halfway_alert_enabled,
            halfway_alert_triggered=timer.halfway_alert_triggered,
            completion_acknowledged=timer.completion_acknowledged,
            created_at=timer.created_at,
            progress=timer.progress,
            formatted_remaining_time=timer.formatted_remaining_time,
        )


class TimerLogResponse(BaseModel):
    id: str
    timer_name: str
    completed_at: datetime
    duration: int

    @classmethod
    def from_log(cls, log: TimerLog) -> "TimerLogResponse":
        return cls(
            id=log.id,
            timer_name=log.timer_name,
            completed_at=log.completed_at,
            duration=log.duration,
        )


class CategoryActionResponse(BaseModel):
    category: str
    action: str
    affected: int


class ImportResponse(BaseModel):
    imported: int
    message: str
