"""Reconciliation engine for wordsync.

SyncEngine runs the flush -> pull -> persist pass that brings the local
cache into agreement with the remote word-set table, and owns the two
commit primitives (save, delete) shared by the facade and queue replay.

Merge rules for a pull:
- Stage items replace the cached entry only when the remote version is
  strictly greater than the cached one (missing counts as 0). Local
  versions are never downgraded.
- Stage themes cached locally but absent remotely are purged from
  ``themes``, ``bank`` and ``versions``.
- The challenge list is replaced wholesale by the remote Challenge items.
- An empty remote result merges and purges nothing.

No expected failure escapes ``sync()``: a failed fetch leaves the cache and
the last-sync marker untouched, a failed replay leaves its action queued.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from wordsync.errors import RemoteError, StorageError
from wordsync.logging_config import log_sync
from wordsync.remote import RemoteContentService
from wordsync.storage.cache_store import LocalCacheStore
from wordsync.storage.queue import PendingActionQueue
from wordsync.types import (
    ChallengeEntry,
    ContentItem,
    ContentKind,
    LocalCache,
    PendingAction,
    PendingIntent,
    RemoteOutcome,
    SyncResult,
    utc_now,
)

logger = logging.getLogger(__name__)


# === Local Application ===


def apply_save(cache: LocalCache, item: ContentItem) -> None:
    """Apply a committed save to the cache in place."""
    if item.kind == ContentKind.STAGE:
        cache.put_stage(item.name, item.words, item.version)
    else:
        cache.put_challenge(ChallengeEntry.from_item(item))


def apply_delete(cache: LocalCache, name: str, kind: ContentKind) -> bool:
    """Apply a committed delete to the cache in place. Returns True if anything was removed."""
    if kind == ContentKind.STAGE:
        return cache.drop_stage(name)
    return cache.drop_challenge(name)


def merge_remote_items(cache: LocalCache, items: List[ContentItem]) -> Tuple[int, int, bool]:
    """Merge a full remote listing into ``cache`` in place.

    Args:
        cache: Cache snapshot to update.
        items: Every remote item, any order. Must not be empty; callers skip
            the merge for an empty listing.

    Returns:
        (stage items updated, stage themes purged, whether the challenge
        list changed)
    """
    stage_items = [i for i in items if i.kind == ContentKind.STAGE]

    pulled = 0
    for item in stage_items:
        current = cache.versions.get(item.name, 0)
        if item.version > current:
            cache.put_stage(item.name, item.words, item.version)
            pulled += 1
            logger.info(f"Updated stage {item.name} to version {item.version}")

    remote_names = {i.name for i in stage_items}
    stale = [t for t in cache.themes if t not in remote_names]
    # bank/versions can only hold strays if the stored blob was hand-edited
    stale += [k for k in list(cache.bank) + list(cache.versions) if k not in remote_names]
    removed = 0
    for theme in dict.fromkeys(stale):
        if cache.drop_stage(theme):
            removed += 1
            logger.info(f"Removed deleted stage theme: {theme}")

    challenges = [ChallengeEntry.from_item(i) for i in items if i.kind == ContentKind.CHALLENGE]
    changed = [c.to_dict() for c in challenges] != [c.to_dict() for c in cache.challenges]
    cache.challenges = challenges

    return pulled, removed, changed


class SyncEngine:
    """Flush/pull/persist reconciliation over one cache, queue and remote.

    Concurrent ``sync()`` calls on the same engine share a single in-flight
    pass instead of starting a second one.

    Args:
        cache_store: Local cache persistence.
        queue: Pending-action queue.
        remote: Remote content service.
        events_dir: Data directory for the sync-events log; None disables it.
    """

    def __init__(
        self,
        cache_store: LocalCacheStore,
        queue: PendingActionQueue,
        remote: RemoteContentService,
        events_dir: Optional[Path] = None,
    ):
        self.cache_store = cache_store
        self.queue = queue
        self.remote = remote
        self.events_dir = events_dir
        self._inflight: Optional["asyncio.Future[SyncResult]"] = None

    # === Remote Calls ===

    async def _call_remote(
        self, operation: str, fn: Callable[..., Awaitable[Any]], *args: Any
    ) -> RemoteOutcome:
        """Run one remote call and fold any failure into a ``RemoteOutcome``."""
        try:
            value = await fn(*args)
        except RemoteError as e:
            logger.warning(f"Remote {operation} failed: {e}")
            return RemoteOutcome.failure(str(e))
        except Exception as e:
            # Misbehaving service implementations are treated like an outage.
            logger.error(f"Remote {operation} raised unexpectedly: {e}", exc_info=True)
            return RemoteOutcome.failure(f"{operation} failed: {e}")
        return RemoteOutcome.success(value)

    # === Commit Primitives ===

    async def commit_save(
        self,
        name: str,
        words: List[str],
        kind: ContentKind,
        active_from: Optional[str] = None,
        active_to: Optional[str] = None,
    ) -> RemoteOutcome:
        """Upsert ``(name, kind)`` at the next version and, on success, update the cache.

        The version is recomputed from the cache at call time.

        Returns:
            RemoteOutcome whose value is the committed ``ContentItem``.

        Raises:
            StorageError: If the remote commit succeeded but the cache write
                failed.
        """
        cache = await self.cache_store.read()
        item = ContentItem(
            name=name,
            kind=kind,
            words=list(words),
            version=cache.version_of(name, kind) + 1,
            active_from=active_from if kind == ContentKind.CHALLENGE else None,
            active_to=active_to if kind == ContentKind.CHALLENGE else None,
            updated_at=utc_now(),
        )
        outcome = await self._call_remote("upsert", self.remote.upsert_item, item)
        if not outcome.ok:
            return outcome

        apply_save(cache, item)
        await self.cache_store.write(cache)
        return RemoteOutcome.success(item)

    async def commit_delete(self, name: str, kind: ContentKind) -> RemoteOutcome:
        """Delete ``(name, kind)`` remotely and, on success, from the cache.

        Raises:
            StorageError: If the remote delete succeeded but the cache write
                failed.
        """
        outcome = await self._call_remote("delete", self.remote.delete_item, name, kind)
        if not outcome.ok:
            return outcome

        cache = await self.cache_store.read()
        if apply_delete(cache, name, kind):
            await self.cache_store.write(cache)
        return outcome

    async def _replay(self, action: PendingAction, result: SyncResult) -> bool:
        try:
            if action.intent == PendingIntent.SAVE:
                outcome = await self.commit_save(
                    action.name,
                    action.words or [],
                    action.kind,
                    action.active_from,
                    action.active_to,
                )
            else:
                outcome = await self.commit_delete(action.name, action.kind)
        except StorageError as e:
            # The remote side is committed; the pull phase repairs the cache.
            result.errors.append(
                f"Replayed {action.intent.value} {action.name} but cache write failed: {e}"
            )
            return True

        if outcome.ok:
            logger.info(f"Flushed {action.intent.value} for {action.kind.value} {action.name}")
        return outcome.ok

    # === Sync ===

    async def sync(self) -> SyncResult:
        """Run (or join) a reconciliation pass."""
        task = self._inflight
        if task is None or task.done():
            task = asyncio.ensure_future(self._run_pass())
            self._inflight = task
        else:
            logger.debug("Sync already in progress, joining it")
        return await asyncio.shield(task)

    async def flush(self, result: Optional[SyncResult] = None) -> SyncResult:
        """Replay every queued action once (the first phase of ``sync()``)."""
        result = result or SyncResult()
        try:
            flushed, remaining = await self.queue.drain(lambda a: self._replay(a, result))
        except StorageError as e:
            logger.error(f"Failed to flush pending actions: {e}")
            result.errors.append(f"Failed to flush pending actions: {e}")
            flushed, remaining = 0, await self.queue.count()
        result.flushed = flushed
        result.still_pending = remaining
        if self.events_dir is not None and (flushed or remaining):
            log_sync("push", flushed, errors=remaining, data_dir=self.events_dir)
        return result

    async def pull(self, result: Optional[SyncResult] = None) -> SyncResult:
        """Fetch every remote item and merge it into the cache."""
        result = result or SyncResult()

        fetched = await self._call_remote("fetch", self.remote.fetch_items)
        if not fetched.ok:
            logger.error("Failed to fetch word sets - keeping cache unchanged")
            result.errors.append(fetched.error or "fetch failed")
            if self.events_dir is not None:
                log_sync("pull", 0, errors=1, data_dir=self.events_dir)
            return result

        items: List[ContentItem] = fetched.value or []
        cache = await self.cache_store.read()

        if items:
            pulled, removed, challenges_changed = merge_remote_items(cache, items)
            result.pulled = pulled
            result.removed = removed
            if pulled or removed or challenges_changed:
                try:
                    await self.cache_store.write(cache)
                    result.cache_written = True
                    logger.info("Cache updated with new word sets and challenges")
                except StorageError as e:
                    result.errors.append(f"Failed to save merged cache: {e}")
        else:
            logger.info("No word sets found remotely; cache left as is")

        result.challenges = len(cache.challenges)
        result.fetched = True

        try:
            await self.cache_store.set_last_sync()
        except StorageError as e:
            logger.error(f"Failed to stamp last sync time: {e}")
            result.errors.append(f"Failed to stamp last sync time: {e}")

        if self.events_dir is not None:
            log_sync(
                "pull",
                result.pulled + result.removed,
                errors=len(result.errors),
                data_dir=self.events_dir,
            )
        return result

    async def _run_pass(self) -> SyncResult:
        logger.info("Starting word sets sync")
        result = SyncResult()
        await self.flush(result)
        await self.pull(result)
        logger.info(
            f"Sync complete: flushed={result.flushed}, pending={result.still_pending}, "
            f"pulled={result.pulled}, removed={result.removed}, fetched={result.fetched}"
        )
        return result
