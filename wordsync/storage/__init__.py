"""Local persistence for wordsync.

Everything that survives a restart lives in one ``KeyValueStore``:
- the ``LocalCache`` blob and last-sync marker (``LocalCacheStore``)
- the pending-action queue (``PendingActionQueue``)
- the feedback outbox (``wordsync.feedback.FeedbackOutbox``)
"""

from .cache_store import CACHE_KEY, LAST_SYNC_KEY, LEGACY_KEYS, LocalCacheStore, migrate_cache_dict
from .kv import KeyValueStore, MemoryKeyValueStore, SQLiteKeyValueStore
from .queue import PENDING_KEY, PendingActionQueue, PersistentQueue

__all__ = [
    "CACHE_KEY",
    "LAST_SYNC_KEY",
    "LEGACY_KEYS",
    "PENDING_KEY",
    "KeyValueStore",
    "LocalCacheStore",
    "MemoryKeyValueStore",
    "PendingActionQueue",
    "PersistentQueue",
    "SQLiteKeyValueStore",
    "migrate_cache_dict",
]
