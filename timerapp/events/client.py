"""WebSocket client for the timer event stream."""

import asyncio
import json
import logging
from typing import AsyncIterator, Optional

import websockets

logger = logging.getLogger(__name__)


class EventClient:
    """Receives completion and halfway events from a running timer service."""

    def __init__(self, base_url: str):
        """
        Initialize event client.

        Args:
            base_url: Timer service URL (e.g., http://localhost:8000)
        """
        self.base_url = base_url
        self.ws_url = self._convert_to_ws_url(base_url)
        self.websocket: Optional[websockets.WebSocketClientProtocol] = None

    def _convert_to_ws_url(self, http_url: str) -> str:
        """Convert HTTP URL to WebSocket URL."""
        ws_url = http_url.replace("http://", "ws://").replace("https://", "wss://")
        if not ws_url.endswith("/"):
            ws_url += "/"
        return ws_url + "ws/events"

    async def connect(self):
        logger.info(f"Connecting to {self.ws_url}")
        self.websocket = await websockets.connect(self.ws_url)
        logger.info("✓ Connected to timer events")

    async def disconnect(self):
        if self.websocket:
            await self.websocket.close()
            self.websocket = None
            logger.info("Disconnected from timer events")

    async def events(self) -> AsyncIterator[dict]:
        """
        Yield decoded events until the server closes the connection.

        Messages that aren't JSON objects are skipped.
        """
        if not self.websocket:
            raise Exception("Not connected to timer service")

        async for message in self.websocket:
            try:
                event = json.loads(message)
            except ValueError:
                logger.warning(f"Ignoring non-JSON message: {message!r}")
                continue
            if not isinstance(event, dict):
                logger.warning(f"Ignoring unexpected message: {event!r}")
                continue
            yield event


def describe_event(event: dict) -> str:
    """One-line, human readable description of an event."""
    if event.get("type") == "completed":
        return f"Timer \"{event.get('timer_name')}\" finished ({event.get('category')})"
    if event.get("type") == "halfway":
        return f"Timer \"{event.get('timer_name')}\" has reached its halfway mark"
    return f"Unknown event: {event}"


async def watch_events():
    """Print events from the timer service until interrupted."""
    import os
    from dotenv import load_dotenv

    load_dotenv()

    base_url = os.getenv("TIMERAPP_URL", "http://localhost:8000")
    client = EventClient(base_url)

    try:
        await client.connect()
        async for event in client.events():
            print(describe_event(event))
    finally:
        await client.disconnect()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(watch_events())
