"""Key-value persistence for timer state."""

import asyncio
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 150


class StorageError(Exception):
    """Raised when a storage read or write fails."""


def _preview(text: str) -> str:
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


def _encode(key: str, value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise StorageError(f"Value for key '{key}' is not serializable: {e}") from e


def _decode(key: str, text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as e:
        raise StorageError(f"Stored data for key '{key}' is corrupt: {e}") from e


class StorageGateway:
    """
    Async key-value store over serialized JSON blobs.

    Implementations raise StorageError on any failure. Loading a key that
    was never saved returns None.
    """

    async def load(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    async def save(self, key: str, value: Any) -> None:
        raise NotImplementedError

    async def remove(self, key: str) -> None:
        raise NotImplementedError

    async def clear(self) -> None:
        raise NotImplementedError


class SQLiteStorage(StorageGateway):
    """SQLite-backed key-value storage."""

    def __init__(self, db_path: str = "data/timers.db"):
        """Initialize database."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Create the key-value table if it doesn't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()
        logger.info(f"Storage initialized at {self.db_path}")

    def _read(self, key: str) -> Optional[str]:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def _write(self, key: str, text: str):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, text, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()

    def _delete(self, key: Optional[str]):
        with sqlite3.connect(self.db_path) as conn:
            if key is None:
                conn.execute("DELETE FROM kv_store")
            else:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()

    async def load(self, key: str) -> Optional[Any]:
        """Load and decode the value stored under key."""
        try:
            text = await asyncio.to_thread(self._read, key)
        except sqlite3.Error as e:
            logger.error(f"Failed to load key '{key}': {e}")
            raise StorageError(f"Failed to load key '{key}': {e}") from e

        if text is None:
            logger.debug(f"Load '{key}': no data found")
            return None

        logger.debug(f"Load '{key}': {_preview(text)}")
        return _decode(key, text)

    async def save(self, key: str, value: Any) -> None:
        """Serialize value and store it under key, replacing any previous value."""
        text = _encode(key, value)
        try:
            await asyncio.to_thread(self._write, key, text)
        except sqlite3.Error as e:
            logger.error(f"Failed to save key '{key}': {e}")
            raise StorageError(f"Failed to save key '{key}': {e}") from e
        logger.debug(f"Saved '{key}': {_preview(text)}")

    async def remove(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._delete, key)
        except sqlite3.Error as e:
            logger.error(f"Failed to remove key '{key}': {e}")
            raise StorageError(f"Failed to remove key '{key}': {e}") from e
        logger.debug(f"Removed '{key}'")

    async def clear(self) -> None:
        try:
            await asyncio.to_thread(self._delete, None)
        except sqlite3.Error as e:
            logger.error(f"Failed to clear storage: {e}")
            raise StorageError(f"Failed to clear storage: {e}") from e
        logger.info("Storage cleared")


class MemoryStorage(StorageGateway):
    """In-process storage that keeps serialized JSON in a dict."""

    def __init__(self):
        self.data: dict[str, str] = {}

    async def load(self, key: str) -> Optional[Any]:
        text = self.data.get(key)
        if text is None:
            return None
        return _decode(key, text)

    async def save(self, key: str, value: Any) -> None:
        self.data[key] = _encode(key, value)

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)

    async def clear(self) -> None:
        self.data.clear()


def create_storage(backend: str, db_path: str) -> StorageGateway:
    """Build the storage gateway named by the configured backend."""
    if backend == "memory":
        logger.info("Using in-memory storage")
        return MemoryStorage()
    if backend == "sqlite":
        return SQLiteStorage(db_path)
    raise ValueError(f"Unknown storage backend: {backend}")
