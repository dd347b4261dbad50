"""Tests for the event stream client helpers and hub."""

import asyncio

import pytest

from timerapp.events.client import EventClient, describe_event
from timerapp.events.hub import EventHub
from timerapp.main import stream_events


@pytest.mark.parametrize(
    "base_url,expected",
    [
        ("http://localhost:8000", "ws://localhost:8000/ws/events"),
        ("https://timers.example.com/", "wss://timers.example.com/ws/events"),
    ],
)
def test_ws_url(base_url, expected):
    assert EventClient(base_url).ws_url == expected


def test_describe_event():
    assert describe_event({"type": "halfway", "timer_name": "Tea"}) == (
        'Timer "Tea" has reached its halfway mark'
    )
    assert describe_event(
        {"type": "completed", "timer_name": "Tea", "category": "Break"}
    ) == 'Timer "Tea" finished (Break)'


@pytest.mark.asyncio
async def test_events_requires_connection():
    with pytest.raises(Exception, match="Not connected"):
        async for _ in EventClient("http://localhost:8000").events():
            pass


@pytest.mark.asyncio
async def test_hub_fans_out_and_drops_when_full():
    hub = EventHub(max_queue_size=1)
    first = hub.connect()
    second = hub.connect()

    hub.timer_halfway("Tea")
    hub.timer_halfway("Nap")

    assert hub.subscriber_count == 2
    for queue in (first, second):
        event = queue.get_nowait()
        assert event["type"] == "halfway"
        assert event["timer_name"] == "Tea"
        assert "timestamp" in event
        with pytest.raises(asyncio.QueueEmpty):
            queue.get_nowait()

    hub.disconnect(first)
    assert hub.subscriber_count == 1


class FakeWebSocket:
    """Accepted socket whose client stays silent until `close()`."""

    def __init__(self):
        self.sent = []
        self._closed = asyncio.Event()

    def close(self):
        self._closed.set()

    async def receive(self):
        await self._closed.wait()
        return {"type": "websocket.disconnect", "code": 1000}

    async def send_json(self, data):
        self.sent.append(data)


@pytest.mark.asyncio
async def test_stream_unsubscribes_as_soon_as_client_disconnects():
    hub = EventHub()
    websocket = FakeWebSocket()
    stream = asyncio.create_task(stream_events(websocket, hub))
    await asyncio.sleep(0.01)
    assert hub.subscriber_count == 1

    hub.timer_halfway("Tea")
    await asyncio.sleep(0.01)
    assert [event["type"] for event in websocket.sent] == ["halfway"]

    websocket.close()
    await asyncio.wait_for(stream, timeout=1)

    assert hub.subscriber_count == 0
