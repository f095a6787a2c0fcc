"""Persistent queues of work waiting on the remote service.

A queue is one JSON list under one key, rewritten whole on every change.
Volume is expected to stay tiny (admin edits, the odd feedback message),
so there is no size cap and no eviction.

``drain`` is the only way entries leave a queue other than ``clear``: each
entry is offered once, in insertion order, to a replay coroutine; exactly
the entries whose replay succeeded are removed afterwards. A failed entry
does not stop later entries from being attempted, and keeps its relative
position for the next drain.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from wordsync.errors import StorageError
from wordsync.types import PendingAction

from .kv import KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

PENDING_KEY = "ws_pending"


class PersistentQueue(Generic[T]):
    """Ordered, append-only queue persisted under ``key``.

    Subclasses provide ``_encode``/``_decode`` for their item type.
    """

    key: str = ""

    def __init__(self, kv: KeyValueStore, key: Optional[str] = None):
        self.kv = kv
        if key:
            self.key = key

    def _encode(self, item: T) -> Dict[str, Any]:
        raise NotImplementedError

    def _decode(self, data: Any) -> Optional[T]:
        raise NotImplementedError

    async def _load(self) -> List[Any]:
        """Raw entries. Corrupt records read as empty; StorageError propagates."""
        text = await self.kv.get(self.key)
        if not text:
            return []
        try:
            entries = json.loads(text)
        except (TypeError, ValueError) as e:
            logger.warning(f"Queue {self.key} is not valid JSON, treating as empty: {e}")
            return []
        if not isinstance(entries, list):
            logger.warning(f"Queue {self.key} is not a list, treating as empty")
            return []
        return entries

    async def _save(self, entries: List[Any]) -> None:
        if entries:
            await self.kv.set(self.key, json.dumps(entries))
        else:
            await self.kv.remove(self.key)

    async def enqueue(self, item: T) -> int:
        """Append ``item``. Returns the new queue length.

        Raises:
            StorageError: If the queue cannot be read or written.
        """
        entries = await self._load()
        entries.append(self._encode(item))
        await self._save(entries)
        return len(entries)

    async def items(self) -> List[T]:
        """Decoded entries in queue order; unreadable entries are skipped."""
        try:
            entries = await self._load()
        except StorageError as e:
            logger.error(f"Failed to read queue {self.key}: {e}")
            return []
        decoded = [self._decode(e) for e in entries]
        return [item for item in decoded if item is not None]

    async def count(self) -> int:
        try:
            return len(await self._load())
        except StorageError as e:
            logger.error(f"Failed to count queue {self.key}: {e}")
            return 0

    async def clear(self) -> None:
        await self.kv.remove(self.key)

    async def drain(self, replay_fn: Callable[[T], Awaitable[bool]]) -> Tuple[int, int]:
        """Offer every entry to ``replay_fn`` once and drop the ones that succeeded.

        ``replay_fn`` returns True on success. Returning False or raising
        leaves the entry queued. Entries that cannot be decoded at all are
        dropped, since no replay could ever succeed for them.

        Entries enqueued while the drain was awaiting replays are kept after
        the survivors.

        Returns:
            (number removed as replayed, number still queued)

        Raises:
            StorageError: If the queue cannot be read or rewritten.
        """
        snapshot = await self._load()
        if not snapshot:
            return 0, 0

        logger.info(f"Draining {len(snapshot)} entries from {self.key}")
        done = set()
        for index, raw in enumerate(snapshot):
            item = self._decode(raw)
            if item is None:
                logger.warning(f"Dropping unreadable entry {index} from {self.key}: {raw!r}")
                done.add(index)
                continue
            try:
                ok = await replay_fn(item)
            except Exception as e:
                logger.error(f"Replay of {self.key}[{index}] raised: {e}", exc_info=True)
                ok = False
            if ok:
                done.add(index)

        remaining = [entry for i, entry in enumerate(snapshot) if i not in done]
        if done:
            latest = await self._load()
            if latest[: len(snapshot)] == snapshot:
                remaining.extend(latest[len(snapshot) :])
            else:
                logger.warning(f"Queue {self.key} changed underneath a drain; keeping drain view")
            await self._save(remaining)

        replayed = len(done)
        logger.info(f"Drained {replayed} entries from {self.key}, {len(remaining)} remaining")
        return replayed, len(remaining)


class PendingActionQueue(PersistentQueue[PendingAction]):
    """Saves and deletes that could not be committed remotely."""

    key = PENDING_KEY

    def _encode(self, item: PendingAction) -> Dict[str, Any]:
        return item.to_dict()

    def _decode(self, data: Any) -> Optional[PendingAction]:
        return PendingAction.from_dict(data)
