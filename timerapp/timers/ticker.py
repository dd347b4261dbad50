"""Recurring countdown callbacks on the asyncio event loop."""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CountdownHandle:
    """
    A cancellable recurring callback.

    Fires every `interval` seconds against fixed deadlines so ticks don't
    drift when a callback runs late.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        interval: float,
        callback: Callable[[], None],
    ):
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._deadline = loop.time() + interval
        self._scheduled: Optional[asyncio.TimerHandle] = loop.call_at(
            self._deadline, self._fire
        )

    @property
    def cancelled(self) -> bool:
        return self._scheduled is None

    def cancel(self):
        """Stop future callbacks. Safe to call more than once."""
        if self._scheduled is not None:
            self._scheduled.cancel()
            self._scheduled = None

    def _fire(self):
        if self._scheduled is None:
            return

        # Schedule the next tick before running the callback, so a callback
        # that cancels this handle also cancels the pending tick.
        self._deadline += self._interval
        self._scheduled = self._loop.call_at(self._deadline, self._fire)
        try:
            self._callback()
        except Exception:
            logger.exception("Countdown callback failed")


class AsyncioTicker:
    """Creates countdown handles on the running event loop."""

    def __init__(self, interval: float = 1.0):
        self.interval = interval

    def every(self, callback: Callable[[], None]) -> CountdownHandle:
        """Call `callback` once per interval until the returned handle is cancelled."""
        loop = asyncio.get_running_loop()
        return CountdownHandle(loop, self.interval, callback)
