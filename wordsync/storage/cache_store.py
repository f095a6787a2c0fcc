"""Local cache store.

Owns the single serialized ``LocalCache`` blob and the last-sync marker.
Pure data access: merge logic lives in the sync engine, and nothing here
talks to the remote service.

The blob carries a ``schema_version``. Older layouts are brought forward by
the functions in ``MIGRATIONS``, one per version bump, both when reading
(in memory) and in ``initialize`` (persisted).
"""

import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from wordsync.errors import StorageError
from wordsync.types import CACHE_SCHEMA_VERSION, LocalCache, utc_now

from .kv import KeyValueStore

logger = logging.getLogger(__name__)

CACHE_KEY = "ws_cache"
LAST_SYNC_KEY = "ws_last_sync"

# Written by older app builds that kept challenges in their own records.
LEGACY_KEYS = ("ws_challenges", "ws_challenges_sync", "ws_challenges_last_sync")


def _migrate_v0_to_v1(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Flat word-bank cache -> unified cache with embedded challenges."""
    if not isinstance(raw.get("challenges"), list):
        raw["challenges"] = []
    return raw


# from_version -> function producing from_version + 1
MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    0: _migrate_v0_to_v1,
}


def migrate_cache_dict(raw: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """Bring a raw cache dict up to ``CACHE_SCHEMA_VERSION``.

    Returns:
        (migrated dict, whether anything changed)
    """
    version = raw.get("schema_version", 0)
    if not isinstance(version, int) or isinstance(version, bool) or version < 0:
        version = 0

    changed = False
    while version < CACHE_SCHEMA_VERSION:
        migration = MIGRATIONS[version]
        raw = migration(raw)
        version += 1
        raw["schema_version"] = version
        changed = True
        logger.info(f"Migrated cache to schema version {version}")

    return raw, changed


class LocalCacheStore:
    """Read/write access to the persisted ``LocalCache`` and last-sync marker.

    Args:
        kv: The key-value substrate.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    async def _load_raw(self) -> Tuple[Optional[str], Optional[Any]]:
        """Fetch and decode the blob. Raises StorageError on substrate failure."""
        text = await self.kv.get(CACHE_KEY)
        if text is None:
            return None, None
        try:
            return text, json.loads(text)
        except (TypeError, ValueError) as e:
            logger.warning(f"Cache record is not valid JSON, treating as empty: {e}")
            return text, None

    async def initialize(self) -> None:
        """Ensure a cache record exists and is at the current schema version.

        Writes an empty cache when there is none (or it is unreadable) and
        migrates older layouts in place. Existing themes, bank and versions
        are never discarded. Writes nothing when the record is already
        current, so repeated calls are no-ops.
        """
        try:
            text, raw = await self._load_raw()
        except StorageError as e:
            logger.error(f"Failed to initialize cache: {e}")
            return

        if text is None or not isinstance(raw, dict):
            if text is not None:
                logger.warning("Replacing unreadable cache record with an empty cache")
            try:
                await self.write(LocalCache())
                logger.info("Initialized empty word sets cache")
            except StorageError:
                pass
            return

        migrated, changed = migrate_cache_dict(raw)
        if not changed:
            return
        try:
            await self.kv.set(CACHE_KEY, json.dumps(migrated))
        except StorageError as e:
            logger.error(f"Failed to persist migrated cache: {e}")

    async def read(self) -> LocalCache:
        """Current cache. Never raises; any failure reads as an empty cache."""
        try:
            _, raw = await self._load_raw()
        except StorageError as e:
            logger.error(f"Failed to load cache: {e}")
            return LocalCache()

        if not isinstance(raw, dict):
            return LocalCache()

        migrated, _ = migrate_cache_dict(raw)
        return LocalCache.from_dict(migrated)

    async def write(self, cache: LocalCache) -> None:
        """Persist the whole cache as one blob, replacing what was there.

        Raises:
            StorageError: If the substrate rejects the write.
        """
        cache.schema_version = CACHE_SCHEMA_VERSION
        try:
            await self.kv.set(CACHE_KEY, json.dumps(cache.to_dict()))
        except StorageError as e:
            logger.error(f"Failed to save cache: {e}")
            raise
        logger.debug("Cache saved")

    async def is_empty(self) -> bool:
        return (await self.read()).is_empty

    async def get_last_sync(self) -> Optional[str]:
        """ISO timestamp of the last completed pull, or None."""
        try:
            return await self.kv.get(LAST_SYNC_KEY)
        except StorageError as e:
            logger.error(f"Failed to get last sync time: {e}")
            return None

    async def set_last_sync(self, timestamp: Optional[str] = None) -> str:
        """Stamp the last-sync marker. Raises StorageError on failure."""
        timestamp = timestamp or utc_now()
        await self.kv.set(LAST_SYNC_KEY, timestamp)
        return timestamp

    async def clear(self) -> None:
        """Remove the cache, the marker and any legacy challenge records."""
        await self.kv.multi_remove([CACHE_KEY, LAST_SYNC_KEY, *LEGACY_KEYS])
        logger.info("Word sets cache cleared")
