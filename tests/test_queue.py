"""Tests for the persistent pending-action queue."""

import json

import pytest

from wordsync.errors import StorageError
from wordsync.storage import PENDING_KEY, MemoryKeyValueStore, PendingActionQueue
from wordsync.types import ContentKind, PendingAction, PendingIntent

from conftest import ANIMAL_WORDS, FailingKeyValueStore


def _save(name, kind=ContentKind.STAGE):
    return PendingAction(PendingIntent.SAVE, name, kind, list(ANIMAL_WORDS))


def _delete(name, kind=ContentKind.STAGE):
    return PendingAction(PendingIntent.DELETE, name, kind)


class TestEnqueue:
    @pytest.mark.asyncio
    async def test_appends_in_order(self, kv):
        queue = PendingActionQueue(kv)
        assert await queue.enqueue(_save("A")) == 1
        assert await queue.enqueue(_delete("B")) == 2
        assert [a.name for a in await queue.items()] == ["A", "B"]
        assert await queue.count() == 2

    @pytest.mark.asyncio
    async def test_empty_queue_has_no_record(self, kv):
        queue = PendingActionQueue(kv)
        assert await queue.count() == 0
        assert PENDING_KEY not in await kv.keys()

    @pytest.mark.asyncio
    async def test_write_failure_raises(self):
        kv = FailingKeyValueStore()
        kv.fail_writes = True
        with pytest.raises(StorageError):
            await PendingActionQueue(kv).enqueue(_save("A"))

    @pytest.mark.asyncio
    async def test_corrupt_record_reads_empty(self):
        kv = MemoryKeyValueStore({PENDING_KEY: "[{oops"})
        queue = PendingActionQueue(kv)
        assert await queue.items() == []
        await queue.enqueue(_save("A"))
        assert await queue.count() == 1

    @pytest.mark.asyncio
    async def test_clear(self, kv):
        queue = PendingActionQueue(kv)
        await queue.enqueue(_save("A"))
        await queue.clear()
        assert await queue.count() == 0


class TestDrain:
    @pytest.mark.asyncio
    async def test_replays_in_insertion_order(self, kv):
        queue = PendingActionQueue(kv)
        for name in ("A", "B", "C"):
            await queue.enqueue(_save(name))

        seen = []

        async def replay(action):
            seen.append(action.name)
            return True

        assert await queue.drain(replay) == (3, 0)
        assert seen == ["A", "B", "C"]
        assert PENDING_KEY not in await kv.keys()

    @pytest.mark.asyncio
    async def test_failures_stay_in_relative_order(self, kv):
        """A failed entry does not block later ones and keeps its position."""
        queue = PendingActionQueue(kv)
        for name in ("A", "B", "C", "D"):
            await queue.enqueue(_save(name))

        async def replay(action):
            return action.name in ("B", "D")

        assert await queue.drain(replay) == (2, 2)
        assert [a.name for a in await queue.items()] == ["A", "C"]

    @pytest.mark.asyncio
    async def test_raising_replay_counts_as_failure(self, kv):
        queue = PendingActionQueue(kv)
        await queue.enqueue(_save("A"))
        await queue.enqueue(_save("B"))

        async def replay(action):
            if action.name == "A":
                raise RuntimeError("boom")
            return True

        assert await queue.drain(replay) == (1, 1)
        assert [a.name for a in await queue.items()] == ["A"]

    @pytest.mark.asyncio
    async def test_drops_unreadable_entries(self):
        raw = [
            {"intent": "save", "name": "Broken", "kind": "Stage"},
            _delete("Animals").to_dict(),
        ]
        kv = MemoryKeyValueStore({PENDING_KEY: json.dumps(raw)})
        queue = PendingActionQueue(kv)

        async def replay(action):
            return False

        assert await queue.drain(replay) == (1, 1)
        assert [a.name for a in await queue.items()] == ["Animals"]

    @pytest.mark.asyncio
    async def test_keeps_entries_enqueued_during_drain(self, kv):
        queue = PendingActionQueue(kv)
        await queue.enqueue(_save("A"))

        async def replay(action):
            await queue.enqueue(_save("Late"))
            return True

        assert await queue.drain(replay) == (1, 1)
        assert [a.name for a in await queue.items()] == ["Late"]

    @pytest.mark.asyncio
    async def test_empty_queue(self, kv):
        async def replay(action):
            raise AssertionError("should not be called")

        assert await PendingActionQueue(kv).drain(replay) == (0, 0)

    @pytest.mark.asyncio
    async def test_nothing_replayed_leaves_record_untouched(self, kv):
        queue = PendingActionQueue(kv)
        await queue.enqueue(_save("A"))
        before = kv._data[PENDING_KEY]

        async def replay(action):
            return False

        assert await queue.drain(replay) == (0, 1)
        assert kv._data[PENDING_KEY] == before
