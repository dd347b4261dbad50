"""Timer entity - a single named countdown."""

import logging
from datetime import datetime
from typing import Callable, Optional, Protocol

from .models import TimerSnapshot, TimerStatus, new_id, now_utc

logger = logging.getLogger(__name__)


class Handle(Protocol):
    def cancel(self) -> None: ...


class Ticker(Protocol):
    def every(self, callback: Callable[[], None]) -> Handle: ...


class Timer:
    """
    A countdown timer.

    State machine: idle -> running <-> paused -> completed -> (reset) idle.
    Transition methods never raise; calls that don't apply to the current
    status are ignored.

    While running, the timer owns exactly one countdown handle from its
    ticker, which calls `tick()` once per second.
    """

    def __init__(
        self,
        name: str,
        duration: int,
        category: str,
        ticker: Ticker,
        *,
        timer_id: Optional[str] = None,
        is_halfway_alert_enabled: bool = False,
        created_at: Optional[datetime] = None,
    ):
        self.id = timer_id or new_id()
        self.name = name
        self.duration = duration  # seconds
        self.category = category
        self.remaining_time = duration
        self.status = TimerStatus.IDLE
        self.is_halfway_alert_enabled = is_halfway_alert_enabled
        self.halfway_alert_triggered = False
        self.completion_acknowledged = False
        self.created_at = created_at or now_utc()

        self._ticker = ticker
        self._handle: Optional[Handle] = None
        self._destroyed = False
        self._on_change: Optional[Callable[["Timer"], None]] = None

    @classmethod
    def from_snapshot(cls, snapshot: TimerSnapshot, ticker: Ticker) -> "Timer":
        """Build an idle timer from a validated snapshot."""
        timer = cls(
            name=snapshot.name,
            duration=snapshot.duration,
            category=snapshot.category,
            ticker=ticker,
            timer_id=snapshot.id,
            is_halfway_alert_enabled=snapshot.is_halfway_alert_enabled,
            created_at=snapshot.created_at,
        )
        timer.completion_acknowledged = snapshot.completion_acknowledged
        return timer

    def to_snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(
            id=self.id,
            name=self.name,
            duration=self.duration,
            category=self.category,
            remaining_time=self.remaining_time,
            status=self.status,
            is_halfway_alert_enabled=self.is_halfway_alert_enabled,
            halfway_alert_triggered=self.halfway_alert_triggered,
            completion_acknowledged=self.completion_acknowledged,
            created_at=self.created_at,
        )

    def set_change_listener(self, listener: Optional[Callable[["Timer"], None]]):
        """Install the callback run after every state change (one per timer)."""
        self._on_change = listener

    def _changed(self):
        if self._on_change is not None:
            self._on_change(self)

    def _cancel_countdown(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def has_countdown(self) -> bool:
        return self._handle is not None

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    # Lifecycle

    def start(self):
        """Start or resume the countdown."""
        if self._destroyed:
            logger.warning(f"Ignoring start of destroyed timer {self.id}")
            return
        if self.status in (TimerStatus.RUNNING, TimerStatus.COMPLETED):
            return

        self._cancel_countdown()
        try:
            handle = self._ticker.every(self.tick)
        except RuntimeError as e:
            logger.warning(f"Could not start timer '{self.name}': {e}")
            return

        if self.status == TimerStatus.IDLE:
            self.remaining_time = self.duration
            self.halfway_alert_triggered = False

        self.status = TimerStatus.RUNNING
        self._handle = handle
        logger.debug(f"Timer '{self.name}' running ({self.remaining_time}s left)")
        self._changed()

    def pause(self):
        if self.status != TimerStatus.RUNNING:
            return
        self.status = TimerStatus.PAUSED
        self._cancel_countdown()
        self._changed()

    def reset(self):
        """Return to idle with the full duration remaining. Valid from any state."""
        self._cancel_countdown()
        self.status = TimerStatus.IDLE
        self.remaining_time = self.duration
        self.halfway_alert_triggered = False
        self.completion_acknowledged = False
        self._changed()

    def tick(self):
        """Advance the countdown by one second."""
        if self.status != TimerStatus.RUNNING:
            return

        if self.remaining_time <= 0:
            self.complete()
            return

        self.remaining_time -= 1
        if (
            self.is_halfway_alert_enabled
            and not self.halfway_alert_triggered
            and self.remaining_time > 0
            and self.remaining_time * 2 <= self.duration
        ):
            self.halfway_alert_triggered = True
            logger.debug(f"Timer '{self.name}' passed halfway")

        if self.remaining_time == 0:
            self.complete()
        else:
            self._changed()

    def complete(self):
        """Finish the run. Repeated calls have no effect."""
        self._cancel_countdown()
        if self.status == TimerStatus.COMPLETED:
            return
        self.status = TimerStatus.COMPLETED
        self.remaining_time = 0
        self.completion_acknowledged = False
        logger.info(f"Timer '{self.name}' completed")
        self._changed()

    def acknowledge_completion(self):
        if self.status != TimerStatus.COMPLETED:
            return
        self.completion_acknowledged = True
        self._changed()

    def toggle_halfway_alert(self, enabled: bool):
        self.is_halfway_alert_enabled = enabled
        if not enabled:
            # A stale trigger must not fire after the alert is re-enabled
            self.halfway_alert_triggered = False
        self._changed()

    def destroy(self):
        """Cancel the countdown for good. Called before removal from the store."""
        self._cancel_countdown()
        self._destroyed = True
        self._on_change = None

    # Edits

    def set_name(self, name: str):
        self.name = name
        self._changed()

    def set_category(self, category: str):
        self.category = category
        self._changed()

    def set_duration(self, seconds: int):
        if seconds <= 0:
            return
        self.duration = seconds
        if self.status == TimerStatus.IDLE:
            self.remaining_time = seconds
        elif self.status != TimerStatus.COMPLETED:
            self.remaining_time = min(self.remaining_time, seconds)
        self._changed()

    # Views

    @property
    def progress(self) -> float:
        """Fraction of the duration that has elapsed (0.0 - 1.0)."""
        if self.duration == 0:
            return 0.0
        return (self.duration - self.remaining_time) / self.duration

    @property
    def formatted_remaining_time(self) -> str:
        minutes, seconds = divmod(self.remaining_time, 60)
        return f"{minutes:02d}:{seconds:02d}"

    def __repr__(self) -> str:
        return (
            f"Timer(id={self.id!r}, name={self.name!r}, status={self.status.value}, "
            f"remaining={self.remaining_time}/{self.duration})"
        )
