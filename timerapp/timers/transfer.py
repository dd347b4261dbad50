"""Export and import of timer configurations as JSON files."""

import json
import logging
import time
from pathlib import Path
from typing import Union

from .store import TimerStore

logger = logging.getLogger(__name__)


class TransferError(Exception):
    """Raised when an import file can't be used."""


def export_timers_to_file(store: TimerStore, directory: Union[str, Path]) -> Path:
    """
    Write all timers to a shareable JSON file.

    Args:
        store: Store to export from
        directory: Directory for the export file (created if missing)

    Returns:
        Path of the written file
    """
    export_dir = Path(directory)
    export_dir.mkdir(parents=True, exist_ok=True)

    path = export_dir / f"timer_configs_{int(time.time() * 1000)}.json"
    path.write_text(json.dumps(store.export_timers(), indent=2), encoding="utf-8")

    logger.info(f"Exported {len(store.timers)} timers to {path}")
    return path


def import_timers_from_text(store: TimerStore, text: str) -> int:
    """
    Import timers from the contents of an export file.

    Returns:
        Number of timers added

    Raises:
        TransferError: If the text isn't a JSON array
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        raise TransferError(f"Invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise TransferError("Invalid file format: expected a JSON array of timers")

    return store.add_imported_timers(data)


def import_timers_from_file(store: TimerStore, path: Union[str, Path]) -> int:
    """Import timers from an export file on disk."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TransferError(f"Could not read {path}: {e}") from e

    count = import_timers_from_text(store, text)
    logger.info(f"Imported {count} timers from {path}")
    return count
