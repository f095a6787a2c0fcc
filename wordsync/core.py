"""
wordsync core - the content access facade.

``WordSync`` is constructed once per process with a key-value store and a
remote content service, and handed to whatever needs word sets: gameplay
reads through it, the level designer saves and deletes through it.

    ws = WordSync(SQLiteKeyValueStore(path), remote)
    await ws.initialize_cache()
    await ws.sync()
    cache = await ws.get_playable_cache()

Saves and deletes go to the remote service first. When that fails the change
is queued and reported as ``SaveStatus.QUEUED``; the next ``sync()`` replays
it. Network trouble never raises out of this class.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from wordsync.config import Settings, get_settings
from wordsync.errors import StorageError
from wordsync.fallback import playable_cache
from wordsync.feedback import FeedbackOutbox, FeedbackRecord
from wordsync.logging_config import log_delete, log_save
from wordsync.remote import (
    OfflineContentService,
    RemoteContentService,
    create_supabase_service,
)
from wordsync.storage import (
    KeyValueStore,
    LocalCacheStore,
    PendingActionQueue,
    SQLiteKeyValueStore,
)
from wordsync.sync_engine import SyncEngine
from wordsync.types import (
    ChallengeEntry,
    ContentKind,
    LocalCache,
    PendingAction,
    PendingIntent,
    SaveOutcome,
    SaveStatus,
    SyncResult,
)
from wordsync.validation import validate_active_window, validate_words

logger = logging.getLogger(__name__)

KindLike = Union[ContentKind, str]


class WordSync:
    """Offline-tolerant access to synced word sets.

    Args:
        kv: Key-value store for the cache, queue and feedback outbox.
        remote: Remote content service.
        strict_validation: Validate word lists and challenge windows before
            saving. Off by default; editing surfaces are expected to validate.
        events_dir: Data directory for the sync-events audit log. None
            disables the audit log.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        remote: RemoteContentService,
        *,
        strict_validation: bool = False,
        events_dir: Optional[Path] = None,
    ):
        self.kv = kv
        self.remote = remote
        self.strict_validation = strict_validation
        self.events_dir = events_dir
        self.cache_store = LocalCacheStore(kv)
        self.queue = PendingActionQueue(kv)
        self.engine = SyncEngine(self.cache_store, self.queue, remote, events_dir=events_dir)
        self.feedback = FeedbackOutbox(kv, remote)

    @classmethod
    async def from_settings(cls, settings: Optional[Settings] = None) -> "WordSync":
        """SQLite-backed instance talking to the configured Supabase project.

        Without Supabase credentials the instance works offline only: edits
        queue and syncs leave the cache untouched.
        """
        settings = settings or get_settings()
        if settings.has_remote:
            remote: RemoteContentService = await create_supabase_service(settings)
        else:
            logger.warning("Supabase is not configured; running offline")
            remote = OfflineContentService()
        return cls(
            SQLiteKeyValueStore(settings.db_path),
            remote,
            strict_validation=settings.strict_validation,
            events_dir=settings.data_dir,
        )

    async def close(self) -> None:
        await self.kv.close()

    # === Reads ===

    async def initialize_cache(self) -> None:
        """Create or migrate the cache record. Safe on every start."""
        await self.cache_store.initialize()

    async def get_cache(self) -> LocalCache:
        return await self.cache_store.read()

    async def is_cache_empty(self) -> bool:
        return await self.cache_store.is_empty()

    async def get_challenges_cache(self) -> List[ChallengeEntry]:
        return (await self.cache_store.read()).challenges

    async def get_active_challenges(
        self, today: Union[date, str, None] = None
    ) -> List[ChallengeEntry]:
        """Cached challenges whose window contains ``today`` (default: UTC today).

        Challenges without a complete window are always included.
        """
        return [c for c in await self.get_challenges_cache() if c.is_active(today)]

    async def get_playable_cache(self) -> LocalCache:
        """The cache, or the bundled fallback bank when it has no stages.

        The fallback is never persisted.
        """
        return playable_cache(await self.cache_store.read())

    async def get_last_sync_time(self) -> Optional[str]:
        return await self.cache_store.get_last_sync()

    async def get_pending_count(self) -> int:
        return await self.queue.count()

    async def get_pending_actions(self) -> List[PendingAction]:
        return await self.queue.items()

    async def status(self) -> Dict[str, Any]:
        """Summary of local state for diagnostics."""
        cache = await self.cache_store.read()
        return {
            "themes": len(cache.themes),
            "challenges": len(cache.challenges),
            "empty": cache.is_empty,
            "pending": await self.queue.count(),
            "pending_feedback": await self.feedback.count(),
            "last_sync": await self.cache_store.get_last_sync(),
        }

    # === Writes ===

    async def save_theme(
        self,
        name: str,
        words: Sequence[str],
        kind: KindLike = ContentKind.STAGE,
        active_from: Optional[str] = None,
        active_to: Optional[str] = None,
    ) -> SaveOutcome:
        """Save a stage or challenge at the next version.

        Args:
            name: Theme (stage) or challenge name.
            words: The word list. Accepted as given unless strict validation
                is on.
            kind: ``ContentKind.STAGE`` or ``ContentKind.CHALLENGE``.
            active_from: Challenge window start (ISO date); ignored for stages.
            active_to: Challenge window end (ISO date); ignored for stages.

        Returns:
            SaveOutcome: ``SYNCED`` with the new version, ``QUEUED`` when the
            remote call failed and the save will be replayed, or one of the
            local-failure statuses.

        Raises:
            WordListValidationError: Only with strict validation on.
        """
        kind = ContentKind(kind)
        words = list(words)
        if self.strict_validation:
            words = validate_words(words)
            if kind == ContentKind.CHALLENGE:
                active_from, active_to = validate_active_window(active_from, active_to)

        logger.info(f"Saving {kind.value.lower()}: {name}")
        try:
            outcome = await self.engine.commit_save(name, words, kind, active_from, active_to)
        except StorageError as e:
            result = SaveOutcome(
                status=SaveStatus.LOCAL_WRITE_FAILED,
                name=name,
                kind=kind,
                message=f"Saved {name} but the local cache could not be updated: {e}",
            )
            self._log_save(result)
            return result

        if outcome.ok:
            version = outcome.value.version
            logger.info(f"Successfully saved {kind.value.lower()} {name} v{version}")
            result = SaveOutcome(
                status=SaveStatus.SYNCED,
                name=name,
                kind=kind,
                version=version,
                message=f"Saved {name} v{version}",
            )
            self._log_save(result)
            return result

        action = PendingAction(
            intent=PendingIntent.SAVE,
            name=name,
            kind=kind,
            words=words,
            active_from=active_from if kind == ContentKind.CHALLENGE else None,
            active_to=active_to if kind == ContentKind.CHALLENGE else None,
        )
        result = await self._queue(
            action, "Changes saved locally and will sync when online."
        )
        self._log_save(result)
        return result

    async def delete_theme(self, name: str, kind: KindLike) -> SaveOutcome:
        """Delete a stage or challenge.

        Returns:
            SaveOutcome: ``SYNCED`` when removed remotely and locally,
            ``QUEUED`` when the remote call failed and the delete will be
            replayed, or one of the local-failure statuses.
        """
        kind = ContentKind(kind)
        logger.info(f"Deleting {kind.value.lower()}: {name}")
        try:
            outcome = await self.engine.commit_delete(name, kind)
        except StorageError as e:
            result = SaveOutcome(
                status=SaveStatus.LOCAL_WRITE_FAILED,
                name=name,
                kind=kind,
                message=f"Deleted {name} but the local cache could not be updated: {e}",
            )
            self._log_delete(result)
            return result

        if outcome.ok:
            logger.info(f"Successfully deleted {kind.value.lower()} {name}")
            result = SaveOutcome(
                status=SaveStatus.SYNCED,
                name=name,
                kind=kind,
                message=f"Deleted {kind.value.lower()} {name}",
            )
        else:
            action = PendingAction(intent=PendingIntent.DELETE, name=name, kind=kind)
            result = await self._queue(action, "Deletion queued and will sync when online.")
        self._log_delete(result)
        return result

    async def _queue(self, action: PendingAction, notice: str) -> SaveOutcome:
        try:
            await self.queue.enqueue(action)
        except StorageError as e:
            logger.error(f"Failed to queue pending action for {action.name}: {e}")
            return SaveOutcome(
                status=SaveStatus.FAILED,
                name=action.name,
                kind=action.kind,
                message=f"Could not reach the server or store the change locally: {e}",
            )
        logger.info(f"Queued pending action: {action.intent.value} {action.name}")
        return SaveOutcome(
            status=SaveStatus.QUEUED, name=action.name, kind=action.kind, message=notice
        )

    def _log_save(self, result: SaveOutcome) -> None:
        if self.events_dir is not None:
            log_save(
                result.name,
                result.kind.value,
                result.version,
                result.status.value,
                data_dir=self.events_dir,
            )

    def _log_delete(self, result: SaveOutcome) -> None:
        if self.events_dir is not None:
            log_delete(
                result.name, result.kind.value, result.status.value, data_dir=self.events_dir
            )

    # === Sync ===

    async def sync(self) -> SyncResult:
        """Flush queued edits, then pull and merge every remote word set."""
        return await self.engine.sync()

    async def sync_word_sets(self) -> SyncResult:
        """Alias of ``sync()``; stages and challenges share one pass."""
        return await self.sync()

    async def sync_challenges(self) -> SyncResult:
        """Alias of ``sync()``; stages and challenges share one pass."""
        return await self.sync()

    # === Feedback ===

    async def submit_feedback(self, record: FeedbackRecord) -> bool:
        """Send feedback now or queue it. Returns True if it was sent."""
        try:
            return await self.feedback.submit(record)
        except StorageError as e:
            logger.error(f"Feedback could not be sent or queued: {e}")
            return False

    async def submit_pending_feedback(self) -> int:
        return await self.feedback.submit_pending()

    # === Maintenance ===

    async def clear_word_sets_cache(self) -> None:
        """Drop the cache, last-sync marker, pending queue and legacy records.

        Raises:
            StorageError: If the store rejects the removal.
        """
        await self.cache_store.clear()
        await self.queue.clear()
