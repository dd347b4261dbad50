"""Timer store - owns timers, timer logs and categories."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from ..config import Settings, settings as default_settings
from ..storage.gateway import StorageGateway
from .models import TimerLog, TimerStatus, new_id, now_utc
from .ticker import AsyncioTicker
from .timer import Ticker, Timer
from .validation import (
    HYDRATION_POLICY,
    IMPORT_POLICY,
    validate_categories,
    validate_log_record,
    validate_timer_record,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreEvent:
    """Emitted to subscribers after each store mutation."""
    kind: str  # timer_added, timer_removed, timer_changed, timers_imported, ...
    timer: Optional[Timer] = None


StoreListener = Callable[[StoreEvent], None]


class TimerStore:
    """
    Owns the timer collection, the completion log and the category set.

    The store is the only writer to persisted state. Commands update memory
    and return immediately; the matching storage write runs in the
    background and its failure is logged, never raised.

    Lifecycle: construct, `await load_stored_data()`, use, `await close()`.
    """

    def __init__(
        self,
        storage: StorageGateway,
        ticker: Optional[Ticker] = None,
        config: Optional[Settings] = None,
    ):
        self.storage = storage
        self.config = config or default_settings
        self.ticker = ticker or AsyncioTicker(self.config.tick_interval)

        self.timers: list[Timer] = []
        self.timer_logs: list[TimerLog] = []  # newest first
        self.available_categories: list[str] = list(self.config.default_categories)
        self.is_loaded = False

        self._listeners: list[StoreListener] = []
        self._pending_writes: set[asyncio.Task] = set()
        self._write_locks: dict[str, asyncio.Lock] = {}

    # Observers

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """
        Register a listener for store events.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: str, timer: Optional[Timer] = None):
        event = StoreEvent(kind=kind, timer=timer)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Store listener failed on {kind}")

    def _on_timer_changed(self, timer: Timer):
        self._emit("timer_changed", timer)

    def _adopt(self, timer: Timer) -> Timer:
        timer.set_change_listener(self._on_timer_changed)
        return timer

    # Timers

    def get_timer(self, timer_id: str) -> Optional[Timer]:
        for timer in self.timers:
            if timer.id == timer_id:
                return timer
        return None

    def add_timer(
        self,
        name: str,
        duration: int,
        category: str,
        is_halfway_alert_enabled: bool = False,
    ) -> Timer:
        """Create an idle timer. Name and duration are validated by the caller."""
        timer = self._adopt(
            Timer(
                name=name,
                duration=duration,
                category=category,
                ticker=self.ticker,
                timer_id=self._unique_id(),
                is_halfway_alert_enabled=is_halfway_alert_enabled,
            )
        )
        self.timers.append(timer)
        logger.info(f"Added timer '{name}' ({duration}s, {category})")
        self.save_timers()
        self._emit("timer_added", timer)
        return timer

    def remove_timer(self, timer: Timer):
        """Cancel the timer's countdown and drop it from the collection."""
        if timer not in self.timers:
            return
        timer.destroy()
        self.timers.remove(timer)
        logger.info(f"Removed timer '{timer.name}'")
        self.save_timers()
        self._emit("timer_removed", timer)

    def update_timer(
        self,
        timer: Timer,
        name: Optional[str] = None,
        duration: Optional[int] = None,
        category: Optional[str] = None,
    ):
        if name is not None:
            timer.set_name(name)
        if duration is not None:
            timer.set_duration(duration)
        if category is not None:
            timer.set_category(category)
        self.save_timers()

    def acknowledge_completion(self, timer: Timer):
        timer.acknowledge_completion()
        self.save_timers()

    def toggle_halfway_alert(self, timer: Timer, enabled: bool):
        timer.toggle_halfway_alert(enabled)
        self.save_timers()

    def _unique_id(self) -> str:
        existing = {timer.id for timer in self.timers}
        timer_id = new_id()
        while timer_id in existing:
            timer_id = new_id()
        return timer_id

    # Logs

    def add_timer_log(self, timer: Timer) -> TimerLog:
        """Record a completed run of `timer`. Called once per completion."""
        log = TimerLog(
            id=new_id(),
            timer_name=timer.name,
            completed_at=now_utc(),
            duration=timer.duration,
        )
        self.timer_logs.insert(0, log)
        logger.info(f"Logged completion of '{timer.name}'")
        self.save_timer_logs()
        self._emit("log_added", timer)
        return log

    # Categories

    def add_new_category(self, name: str) -> bool:
        """
        Add a category to the known set.

        Returns:
            True if the category was added
        """
        category = (name or "").strip()
        if not category or category in self.available_categories:
            return False
        self.available_categories.append(category)
        logger.info(f"Added category '{category}'")
        self.save_available_categories()
        self._emit("categories_changed")
        return True

    def _category_timers(self, category: str) -> list[Timer]:
        return [timer for timer in self.timers if timer.category == category]

    def start_category_timers(self, category: str) -> int:
        """Start every non-completed, non-running timer in the category."""
        logger.info(f"Starting timers for category: {category}")
        started = 0
        for timer in self._category_timers(category):
            if timer.status in (TimerStatus.RUNNING, TimerStatus.COMPLETED):
                continue
            timer.start()
            if timer.status == TimerStatus.RUNNING:
                started += 1
        return started

    def pause_category_timers(self, category: str) -> int:
        logger.info(f"Pausing timers for category: {category}")
        paused = 0
        for timer in self._category_timers(category):
            if timer.status != TimerStatus.RUNNING:
                continue
            timer.pause()
            paused += 1
        return paused

    def reset_category_timers(self, category: str) -> int:
        logger.info(f"Resetting timers for category: {category}")
        timers = self._category_timers(category)
        for timer in timers:
            timer.reset()
        self.save_timers()
        return len(timers)

    # Import / export

    def add_imported_timers(self, snapshots: Iterable[Any]) -> int:
        """
        Add timers from exported snapshots.

        Each record is validated and forced to idle with its full duration.
        Records whose id is already taken are skipped, as are records that
        fail validation.

        Returns:
            Number of timers added
        """
        taken_ids = {timer.id for timer in self.timers}
        added: list[Timer] = []

        for raw in snapshots:
            result = validate_timer_record(raw, IMPORT_POLICY)
            if not result.ok:
                logger.warning(f"Skipping invalid imported timer: {result.reason}")
                continue

            snapshot = result.record
            if snapshot.id in taken_ids:
                logger.info(f"Skipping imported timer '{snapshot.name}': id {snapshot.id} exists")
                continue

            try:
                timer = self._adopt(Timer.from_snapshot(snapshot, self.ticker))
            except Exception as e:
                logger.warning(f"Failed to create timer from imported snapshot: {e}")
                continue

            self.timers.append(timer)
            taken_ids.add(timer.id)
            added.append(timer)

        if added:
            self.save_timers()
            self._emit("timers_imported")
        logger.info(f"Imported {len(added)} new timers")
        return len(added)

    def export_timers(self) -> list[dict]:
        """JSON-ready snapshots of every timer, in collection order."""
        return [timer.to_snapshot().to_json() for timer in self.timers]

    # Loading

    async def load_stored_data(self):
        """
        Replace in-memory state with what storage holds.

        Timers always come back idle with their full duration. Records that
        fail validation are dropped. If anything goes wrong while loading,
        the store falls back to empty timers and logs and the default
        categories.
        """
        try:
            raw_timers = await self.storage.load(self.config.timers_key)
            timers = self._hydrate_timers(raw_timers)

            raw_logs = await self.storage.load(self.config.timer_logs_key)
            logs = self._hydrate_logs(raw_logs)

            raw_categories = await self.storage.load(self.config.categories_key)
            categories = list(self.config.default_categories)
            for category in validate_categories(raw_categories):
                if category not in categories:
                    categories.append(category)
        except Exception as e:
            logger.error(f"Failed to load stored data, starting empty: {e}")
            timers, logs = [], []
            categories = list(self.config.default_categories)

        for timer in self.timers:
            timer.destroy()
        self.timers = [self._adopt(timer) for timer in timers]
        self.timer_logs = logs
        self.available_categories = categories
        self.is_loaded = True

        logger.info(
            f"Loaded {len(self.timers)} timers, {len(self.timer_logs)} logs, "
            f"{len(self.available_categories)} categories"
        )
        self._emit("timers_loaded")

    def _hydrate_timers(self, raw: Any) -> list[Timer]:
        if not isinstance(raw, list):
            if raw is not None:
                logger.warning("Stored timers are not a list, ignoring")
            return []

        timers: list[Timer] = []
        seen_ids: set[str] = set()
        for record in raw:
            result = validate_timer_record(record, HYDRATION_POLICY)
            if not result.ok:
                logger.warning(f"Dropping stored timer: {result.reason}")
                continue
            if result.record.id in seen_ids:
                logger.warning(f"Dropping stored timer with duplicate id {result.record.id}")
                continue
            seen_ids.add(result.record.id)
            timers.append(Timer.from_snapshot(result.record, self.ticker))
        return timers

    def _hydrate_logs(self, raw: Any) -> list[TimerLog]:
        if not isinstance(raw, list):
            return []

        logs: list[TimerLog] = []
        for record in raw:
            result = validate_log_record(record)
            if not result.ok:
                logger.warning(f"Dropping stored log: {result.reason}")
                continue
            logs.append(TimerLog.from_snapshot(result.record))
        logs.sort(key=lambda log: log.completed_at, reverse=True)
        return logs

    # Saving

    def save_timers(self):
        self._write(self.config.timers_key, self.export_timers())

    def save_timer_logs(self):
        self._write(
            self.config.timer_logs_key,
            [log.to_snapshot().to_json() for log in self.timer_logs],
        )

    def save_available_categories(self):
        self._write(self.config.categories_key, list(self.available_categories))

    def _write(self, key: str, value: Any):
        """Write a snapshot in the background."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, skipped saving '{key}'")
            return

        task = loop.create_task(self._write_in_order(key, value))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _write_in_order(self, key: str, value: Any):
        lock = self._write_locks.setdefault(key, asyncio.Lock())
        async with lock:
            try:
                await self.storage.save(key, value)
            except Exception as e:
                logger.error(f"Failed to save '{key}': {e}")

    async def flush(self):
        """Wait for background writes issued so far."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    async def close(self):
        """Stop all countdowns and wait for pending writes."""
        for timer in self.timers:
            timer.destroy()
        await self.flush()
        logger.info("Timer store closed")

    # Views

    @property
    def timers_by_category(self) -> dict[str, list[Timer]]:
        grouped: dict[str, list[Timer]] = {}
        for timer in self.timers:
            grouped.setdefault(timer.category, []).append(timer)
        return grouped

    @property
    def categories(self) -> list[str]:
        """Known categories plus any used by a timer, sorted."""
        names = set(self.available_categories)
        names.update(timer.category for timer in self.timers)
        return sorted(names)

    @property
    def sorted_timer_logs(self) -> list[TimerLog]:
        return sorted(self.timer_logs, key=lambda log: log.completed_at, reverse=True)
