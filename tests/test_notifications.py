"""Tests for edge-triggered completion and halfway notifications."""

import pytest

from timerapp.timers.notifications import NotificationBridge


@pytest.fixture
def fired():
    return {"completed": [], "halfway": []}


@pytest.fixture
def bridge(store, fired):
    bridge = NotificationBridge(
        store,
        on_complete=lambda timer: fired["completed"].append(timer.name),
        on_halfway=lambda name: fired["halfway"].append(name),
    )
    bridge.attach()
    return bridge


class TestCompletion:
    @pytest.mark.asyncio
    async def test_completion_logs_and_fires_once(self, store, ticker, bridge, fired):
        tea = store.add_timer("Tea", 3, "Break")
        tea.start()

        ticker.advance(10)
        tea.acknowledge_completion()
        tea.complete()

        assert fired["completed"] == ["Tea"]
        assert [log.timer_name for log in store.timer_logs] == ["Tea"]

    @pytest.mark.asyncio
    async def test_each_run_is_logged(self, store, ticker, bridge, fired):
        tea = store.add_timer("Tea", 2, "Break")
        for _ in range(3):
            tea.start()
            ticker.advance(2)
            tea.reset()

        assert fired["completed"] == ["Tea", "Tea", "Tea"]
        assert len(store.timer_logs) == 3

    @pytest.mark.asyncio
    async def test_concurrent_timers_complete_independently(self, store, ticker, bridge, fired):
        short = store.add_timer("Short", 2, "Work")
        long = store.add_timer("Long", 4, "Work")
        store.start_category_timers("Work")

        ticker.advance(2)
        assert fired["completed"] == ["Short"]

        ticker.advance(2)
        assert fired["completed"] == ["Short", "Long"]
        assert [log.timer_name for log in store.sorted_timer_logs] == ["Long", "Short"]

    @pytest.mark.asyncio
    async def test_already_completed_timers_do_not_fire_on_attach(self, store, ticker, fired):
        tea = store.add_timer("Tea", 1, "Break")
        tea.start()
        ticker.advance(1)

        bridge = NotificationBridge(store, on_complete=lambda t: fired["completed"].append(t.name))
        bridge.attach()
        store.add_timer("Other", 5, "Break")

        assert fired["completed"] == []

    @pytest.mark.asyncio
    async def test_detach_stops_notifications(self, store, ticker, bridge, fired):
        tea = store.add_timer("Tea", 1, "Break")
        bridge.detach()

        tea.start()
        ticker.advance(1)

        assert fired["completed"] == []
        assert store.timer_logs == []

    @pytest.mark.asyncio
    async def test_callback_errors_are_contained(self, store, ticker):
        def broken(timer):
            raise RuntimeError("ui gone")

        NotificationBridge(store, on_complete=broken).attach()
        tea = store.add_timer("Tea", 1, "Break")
        tea.start()
        ticker.advance(1)

        assert len(store.timer_logs) == 1


class TestHalfway:
    @pytest.mark.asyncio
    async def test_fires_once_per_run(self, store, ticker, bridge, fired):
        tea = store.add_timer("Tea", 10, "Break", True)
        tea.start()

        ticker.advance(4)
        assert fired["halfway"] == []

        ticker.advance(4)
        assert fired["halfway"] == ["Tea"]

        tea.reset()
        tea.start()
        ticker.advance(5)
        assert fired["halfway"] == ["Tea", "Tea"]

    @pytest.mark.asyncio
    async def test_pause_and_resume_does_not_refire(self, store, ticker, bridge, fired):
        tea = store.add_timer("Tea", 10, "Break", True)
        tea.start()
        ticker.advance(6)
        tea.pause()
        tea.start()
        ticker.advance(1)

        assert fired["halfway"] == ["Tea"]

    @pytest.mark.asyncio
    async def test_toggle_off_and_on_rearms(self, store, ticker, bridge, fired):
        tea = store.add_timer("Tea", 20, "Break", True)
        tea.start()
        ticker.advance(10)

        store.toggle_halfway_alert(tea, False)
        store.toggle_halfway_alert(tea, True)
        ticker.advance(1)

        assert fired["halfway"] == ["Tea", "Tea"]

    @pytest.mark.asyncio
    async def test_disabled_alert_never_fires(self, store, ticker, bridge, fired):
        tea = store.add_timer("Tea", 10, "Break")
        tea.start()
        ticker.advance(10)

        assert fired["halfway"] == []
        assert fired["completed"] == ["Tea"]
