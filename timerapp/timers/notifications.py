"""Completion and halfway notifications."""

import logging
from typing import Callable, Optional

from .models import TimerStatus
from .store import StoreEvent, TimerStore
from .timer import Timer

logger = logging.getLogger(__name__)


class NotificationBridge:
    """
    Turns timer state changes into one-shot notifications.

    A timer that newly enters `completed` gets one log entry and one
    `on_complete` call. A running timer whose halfway flag is set gets one
    `on_halfway` call, and won't get another until the flag is cleared by
    start, reset or disabling the alert.
    """

    def __init__(
        self,
        store: TimerStore,
        on_complete: Optional[Callable[[Timer], None]] = None,
        on_halfway: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self.on_complete = on_complete
        self.on_halfway = on_halfway

        self._completed_ids: set[str] = set()
        self._halfway_notified: set[str] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None

    def attach(self):
        """Start observing the store. Timers already completed don't fire."""
        if self._unsubscribe is not None:
            return
        self._completed_ids = self._current_completed_ids()
        self._unsubscribe = self.store.subscribe(self._on_store_event)

    def detach(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _current_completed_ids(self) -> set[str]:
        return {
            timer.id
            for timer in self.store.timers
            if timer.status == TimerStatus.COMPLETED and timer.remaining_time == 0
        }

    def _on_store_event(self, event: StoreEvent):
        if event.kind == "log_added":
            return
        self._check_completions()
        self._check_halfway()

    def _check_completions(self):
        current = self._current_completed_ids()
        newly_completed = current - self._completed_ids
        self._completed_ids = current

        for timer in self.store.timers:
            if timer.id not in newly_completed:
                continue
            logger.info(f"Timer '{timer.name}' newly completed")
            self.store.add_timer_log(timer)
            if self.on_complete is not None:
                try:
                    self.on_complete(timer)
                except Exception:
                    logger.exception(f"Completion callback failed for '{timer.name}'")

    def _check_halfway(self):
        live_ids = set()
        for timer in self.store.timers:
            live_ids.add(timer.id)

            if not timer.halfway_alert_triggered:
                self._halfway_notified.discard(timer.id)
                continue

            if (
                timer.is_halfway_alert_enabled
                and timer.status == TimerStatus.RUNNING
                and timer.remaining_time > 0
                and timer.id not in self._halfway_notified
            ):
                self._halfway_notified.add(timer.id)
                logger.info(f"Timer '{timer.name}' reached halfway")
                if self.on_halfway is not None:
                    try:
                        self.on_halfway(timer.name)
                    except Exception:
                        logger.exception(f"Halfway callback failed for '{timer.name}'")

        self._halfway_notified &= live_ids
