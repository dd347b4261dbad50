"""Validation of stored and imported timer records."""

import logging
import math
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from pydantic import ValidationError

from .models import (
    TimerLogSnapshot,
    TimerSnapshot,
    TimerStatus,
    new_id,
    now_utc,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

DEFAULT_DURATION = 60

T = TypeVar("T")


@dataclass(frozen=True)
class RecordPolicy:
    """Defaults and strictness for one validation boundary."""
    default_name: str
    default_category: str
    # Reject records with an unusable duration instead of defaulting it
    reject_invalid_duration: bool


HYDRATION_POLICY = RecordPolicy(
    default_name="Unnamed Loaded Timer",
    default_category="Uncategorized",
    reject_invalid_duration=True,
)

IMPORT_POLICY = RecordPolicy(
    default_name="Imported Timer",
    default_category="Imported",
    reject_invalid_duration=False,
)


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    """Either a valid record or the reason it was rejected."""
    record: Optional[T] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def _coerce_text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value)
    return text if text.strip() else default


def _coerce_id(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return new_id()
    text = str(value).strip()
    return text or new_id()


def _coerce_seconds(value: Any) -> Optional[int]:
    """
    Convert a duration to whole seconds.

    Returns:
        Positive integer seconds, or None if the value isn't usable
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    seconds = int(value)
    return seconds if seconds > 0 else None


def _describe(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
        for err in error.errors()
    )


def validate_timer_record(
    raw: Any, policy: RecordPolicy
) -> ValidationResult[TimerSnapshot]:
    """
    Turn an untrusted timer record into a fresh, idle timer snapshot.

    Runtime state never survives validation: the result is always idle with
    the full duration remaining and no halfway or acknowledgement flags.

    Args:
        raw: Record read from storage or an import file
        policy: Defaults and strictness for the boundary

    Returns:
        ValidationResult holding the snapshot or the rejection reason
    """
    if not isinstance(raw, dict):
        return ValidationResult(reason=f"expected an object, got {type(raw).__name__}")

    raw_duration = raw.get("duration")
    if raw_duration is None:
        duration = DEFAULT_DURATION
    else:
        duration = _coerce_seconds(raw_duration)
        if duration is None:
            if policy.reject_invalid_duration:
                return ValidationResult(reason=f"invalid duration: {raw_duration!r}")
            duration = DEFAULT_DURATION

    created_at = parse_timestamp(raw.get("createdAt")) or now_utc()

    try:
        snapshot = TimerSnapshot(
            id=_coerce_id(raw.get("id")),
            name=_coerce_text(raw.get("name"), policy.default_name),
            duration=duration,
            category=_coerce_text(raw.get("category"), policy.default_category),
            # Run state, acknowledgement included, does not survive a reload.
            remaining_time=duration,
            status=TimerStatus.IDLE,
            is_halfway_alert_enabled=bool(raw.get("isHalfwayAlertEnabled")),
            halfway_alert_triggered=False,
            completion_acknowledged=False,
            created_at=created_at,
        )
    except ValidationError as e:
        return ValidationResult(reason=_describe(e))

    return ValidationResult(record=snapshot)


def validate_log_record(raw: Any) -> ValidationResult[TimerLogSnapshot]:
    """Turn an untrusted log record into a log snapshot."""
    if not isinstance(raw, dict):
        return ValidationResult(reason=f"expected an object, got {type(raw).__name__}")

    duration = _coerce_seconds(raw.get("duration")) or 0

    try:
        snapshot = TimerLogSnapshot(
            id=_coerce_id(raw.get("id")),
            timer_name=_coerce_text(raw.get("timerName"), "Unknown Logged Timer"),
            completed_at=parse_timestamp(raw.get("completedAt")) or now_utc(),
            duration=duration,
        )
    except ValidationError as e:
        return ValidationResult(reason=_describe(e))

    return ValidationResult(record=snapshot)


def validate_categories(raw: Any) -> list[str]:
    """Keep the non-blank category names from a stored list, trimmed and deduplicated."""
    if not isinstance(raw, list):
        return []

    categories: list[str] = []
    for value in raw:
        if not isinstance(value, str):
            logger.warning(f"Skipping non-text category: {value!r}")
            continue
        name = value.strip()
        if name and name not in categories:
            categories.append(name)
    return categories
