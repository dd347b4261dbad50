"""Shared pytest fixtures."""

from typing import Callable

import pytest

from timerapp.config import Settings
from timerapp.storage.gateway import MemoryStorage
from timerapp.timers.store import TimerStore


class ManualHandle:
    def __init__(self, ticker: "ManualTicker", callback: Callable[[], None]):
        self.ticker = ticker
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualTicker:
    """Ticker driven by the test instead of the clock."""

    def __init__(self):
        self.handles: list[ManualHandle] = []

    def every(self, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> list[ManualHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: int = 1):
        """Deliver one tick per second to every live handle."""
        for _ in range(seconds):
            for handle in list(self.handles):
                if not handle.cancelled:
                    handle.callback()


@pytest.fixture
def ticker():
    return ManualTicker()


@pytest.fixture
def config(tmp_path):
    return Settings(
        storage_backend="memory",
        storage_path=str(tmp_path / "timers.db"),
        export_dir=str(tmp_path / "exports"),
        tick_interval=1.0,
    )


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage, ticker, config):
    return TimerStore(storage, ticker=ticker, config=config)
