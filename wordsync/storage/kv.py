"""Key-value persistence substrate.

An asynchronous, string-keyed store of opaque string values. The cache store,
the pending-action queue and the feedback outbox all sit on top of one
instance; none of them know which backend they are using.

Backends:
- MemoryKeyValueStore: process-local dict, for tests and throwaway sessions
- SQLiteKeyValueStore: single-table SQLite file, for on-device persistence
"""

import asyncio
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from wordsync.errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Asynchronous string key-value store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value for ``key`` or None when absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove ``key``. Removing a missing key is not an error."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every key."""

    @abstractmethod
    async def keys(self) -> List[str]:
        """All keys currently stored."""

    async def multi_get(self, keys: Iterable[str]) -> List[Tuple[str, Optional[str]]]:
        """Fetch several keys, preserving request order."""
        return [(key, await self.get(key)) for key in keys]

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            await self.remove(key)

    async def close(self) -> None:
        pass


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store. State lives as long as the instance."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key!r} must be a string, got {type(value).__name__}")
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def clear(self) -> None:
        self._data.clear()

    async def keys(self) -> List[str]:
        return list(self._data.keys())


class SQLiteKeyValueStore(KeyValueStore):
    """SQLite-backed store.

    Each call opens a short-lived connection on a worker thread so the event
    loop never blocks on disk I/O. All ``sqlite3.Error``s surface as
    ``StorageError``.

    Args:
        db_path: Database file. Parent directories are created on first use.
    """

    _SCHEMA = """CREATE TABLE IF NOT EXISTS kv_store (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )"""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path).expanduser()
        self._initialized = False

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            if not self._initialized:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open {self.db_path}: {e}") from e
        try:
            if not self._initialized:
                conn.execute(self._SCHEMA)
                conn.commit()
                self._initialized = True
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"SQLite error on {self.db_path}: {e}") from e
        finally:
            conn.close()

    def _get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def _set(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)", (key, value)
            )

    def _remove_many(self, keys: List[str]) -> None:
        if not keys:
            return
        with self._connect() as conn:
            conn.executemany("DELETE FROM kv_store WHERE key = ?", [(k,) for k in keys])

    def _clear(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM kv_store")

    def _keys(self) -> List[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [row[0] for row in rows]

    def _multi_get(self, keys: List[str]) -> List[Tuple[str, Optional[str]]]:
        if not keys:
            return []
        with self._connect() as conn:
            placeholders = ",".join("?" * len(keys))
            rows = conn.execute(
                f"SELECT key, value FROM kv_store WHERE key IN ({placeholders})", keys
            ).fetchall()
        found = dict(rows)
        return [(key, found.get(key)) for key in keys]

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._get, key)

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key!r} must be a string, got {type(value).__name__}")
        await asyncio.to_thread(self._set, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._remove_many, [key])

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear)

    async def keys(self) -> List[str]:
        return await asyncio.to_thread(self._keys)

    async def multi_get(self, keys: Iterable[str]) -> List[Tuple[str, Optional[str]]]:
        return await asyncio.to_thread(self._multi_get, list(keys))

    async def multi_remove(self, keys: Iterable[str]) -> None:
        await asyncio.to_thread(self._remove_many, list(keys))
