"""
wordsync - offline-tolerant sync and cache for versioned word sets.

Keeps a local copy of stage themes and dated challenges consistent with a
remote Supabase table, queueing edits made while offline.
"""

from .core import WordSync
from .errors import RemoteError, StorageError, WordListValidationError, WordSyncError
from .types import ContentItem, ContentKind, LocalCache, SaveOutcome, SaveStatus, SyncResult

try:
    from importlib.metadata import version

    __version__ = version("wordsync")
except Exception:
    __version__ = "0.0.0"

__all__ = [
    "ContentItem",
    "ContentKind",
    "LocalCache",
    "RemoteError",
    "SaveOutcome",
    "SaveStatus",
    "StorageError",
    "SyncResult",
    "WordListValidationError",
    "WordSync",
    "WordSyncError",
]
