"""Tests for the feedback outbox."""

import json

import pytest

from wordsync.feedback import FEEDBACK_KEY, FeedbackOutbox, FeedbackRecord
from wordsync.storage import MemoryKeyValueStore

from conftest import FailingKeyValueStore


def _record(message="Level 4 is too hard", **kwargs):
    return FeedbackRecord(name="sam", category="difficulty", message=message, **kwargs)


class TestFeedbackRecord:
    def test_to_remote_drops_timestamp(self):
        payload = _record(stage=2, level=4, points=120, device="ios", app_ver="1.2.0").to_remote()
        assert "timestamp" not in payload
        assert payload == {
            "name": "sam",
            "category": "difficulty",
            "message": "Level 4 is too hard",
            "stage": 2,
            "level": 4,
            "points": 120,
            "device": "ios",
            "app_ver": "1.2.0",
        }

    def test_from_dict_requires_category_and_message(self):
        assert FeedbackRecord.from_dict({"name": "sam", "message": "hi"}) is None
        assert FeedbackRecord.from_dict({"category": "bug", "message": "hi", "stage": "x"}) is None
        record = FeedbackRecord.from_dict({"category": "bug", "message": "hi", "stage": "3"})
        assert record.stage == 3
        assert record.name == ""


class TestFeedbackOutbox:
    @pytest.mark.asyncio
    async def test_submit_online(self, kv, remote):
        outbox = FeedbackOutbox(kv, remote)
        assert await outbox.submit(_record()) is True
        assert remote.feedback[0]["category"] == "difficulty"
        assert await outbox.count() == 0

    @pytest.mark.asyncio
    async def test_submit_offline_queues(self, kv, remote):
        remote.go_offline()
        outbox = FeedbackOutbox(kv, remote)
        assert await outbox.submit(_record()) is False
        assert await outbox.count() == 1
        stored = json.loads(kv._data[FEEDBACK_KEY])
        assert stored[0]["message"] == "Level 4 is too hard"
        assert stored[0]["timestamp"]

    @pytest.mark.asyncio
    async def test_submit_pending_in_order(self, kv, remote):
        remote.go_offline()
        outbox = FeedbackOutbox(kv, remote)
        await outbox.submit(_record("first"))
        await outbox.submit(_record("second"))

        remote.go_online()
        assert await outbox.submit_pending() == 2
        assert [f["message"] for f in remote.feedback] == ["first", "second"]
        assert FEEDBACK_KEY not in kv._data

    @pytest.mark.asyncio
    async def test_submit_pending_still_offline(self, kv, remote):
        remote.go_offline()
        outbox = FeedbackOutbox(kv, remote)
        await outbox.submit(_record())
        assert await outbox.submit_pending() == 0
        assert await outbox.count() == 1

    @pytest.mark.asyncio
    async def test_submit_pending_storage_failure(self, remote):
        kv = FailingKeyValueStore({FEEDBACK_KEY: json.dumps([_record().__dict__])})
        kv.fail_reads = True
        assert await FeedbackOutbox(kv, remote).submit_pending() == 0

    @pytest.mark.asyncio
    async def test_clear(self, remote):
        kv = MemoryKeyValueStore({FEEDBACK_KEY: "[]"})
        outbox = FeedbackOutbox(kv, remote)
        await outbox.clear()
        assert FEEDBACK_KEY not in kv._data

    @pytest.mark.asyncio
    async def test_unexpected_remote_exception_queues(self, kv, remote):
        async def reset(payload):
            raise ConnectionError("socket reset")

        remote.insert_feedback = reset
        outbox = FeedbackOutbox(kv, remote)
        assert await outbox.submit(_record()) is False
        assert await outbox.count() == 1
