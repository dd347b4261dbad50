"""Fan-out of notification events to connected clients."""

import asyncio
import logging
from datetime import datetime, timezone

from ..timers.timer import Timer

logger = logging.getLogger(__name__)


class EventHub:
    """Queues notification events for each connected subscriber."""

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._queues: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    def connect(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._queues.add(queue)
        logger.info(f"Event subscriber connected ({len(self._queues)} total)")
        return queue

    def disconnect(self, queue: asyncio.Queue):
        self._queues.discard(queue)
        logger.info(f"Event subscriber disconnected ({len(self._queues)} total)")

    def publish(self, event: dict):
        event = {**event, "timestamp": datetime.now(timezone.utc).isoformat()}
        for queue in list(self._queues):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Dropping {event['type']} event for slow subscriber")

    # Notification bridge callbacks

    def timer_completed(self, timer: Timer):
        self.publish(
            {
                "type": "completed",
                "timer_id": timer.id,
                "timer_name": timer.name,
                "category": timer.category,
            }
        )

    def timer_halfway(self, timer_name: str):
        self.publish({"type": "halfway", "timer_name": timer_name})
