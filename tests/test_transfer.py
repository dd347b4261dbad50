"""Tests for timer export and import files."""

import json

import pytest

from timerapp.storage.gateway import MemoryStorage
from timerapp.timers.models import TimerStatus
from timerapp.timers.store import TimerStore
from timerapp.timers.transfer import (
    TransferError,
    export_timers_to_file,
    import_timers_from_file,
    import_timers_from_text,
)


@pytest.mark.asyncio
async def test_export_then_import_into_fresh_store(store, ticker, tmp_path):
    tea = store.add_timer("Tea", 10, "Break", True)
    tea.start()
    ticker.advance(3)
    store.add_timer("Focus", 1500, "Work")

    path = export_timers_to_file(store, tmp_path / "exports")

    assert path.name.startswith("timer_configs_") and path.suffix == ".json"
    exported = json.loads(path.read_text(encoding="utf-8"))
    assert [t["name"] for t in exported] == ["Tea", "Focus"]
    assert exported[0]["status"] == "running"

    other = TimerStore(MemoryStorage(), ticker=ticker, config=store.config)
    assert import_timers_from_file(other, path) == 2
    assert all(t.status == TimerStatus.IDLE for t in other.timers)
    assert other.timers[0].remaining_time == 10
    assert other.timers[0].is_halfway_alert_enabled is True


@pytest.mark.asyncio
async def test_reimport_into_same_store_adds_nothing(store, tmp_path):
    store.add_timer("Tea", 10, "Break")
    path = export_timers_to_file(store, tmp_path)

    assert import_timers_from_file(store, path) == 0
    assert len(store.timers) == 1


@pytest.mark.parametrize("text", ["{not json", '{"name": "Tea"}', '"timers"'])
def test_invalid_files_are_rejected(store, text):
    with pytest.raises(TransferError):
        import_timers_from_text(store, text)
    assert store.timers == []


def test_missing_file(store, tmp_path):
    with pytest.raises(TransferError):
        import_timers_from_file(store, tmp_path / "nope.json")
