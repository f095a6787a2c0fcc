"""Feedback outbox.

Player feedback is inserted into the remote feedback table when possible
and otherwise parked in the ``pending_feedback`` queue, which is drained
with the same at-least-once primitive as pending word-set edits.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from wordsync.errors import RemoteError, StorageError
from wordsync.remote import RemoteContentService
from wordsync.storage.kv import KeyValueStore
from wordsync.storage.queue import PersistentQueue
from wordsync.types import utc_now

logger = logging.getLogger(__name__)

FEEDBACK_KEY = "pending_feedback"


@dataclass
class FeedbackRecord:
    """One feedback submission. ``timestamp`` stays local and is not sent."""

    name: str
    category: str
    message: str
    stage: int = 0
    level: int = 0
    points: int = 0
    device: str = ""
    app_ver: str = ""
    timestamp: str = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["FeedbackRecord"]:
        if not isinstance(data, dict):
            return None
        try:
            return cls(
                name=str(data.get("name", "")),
                category=str(data["category"]),
                message=str(data["message"]),
                stage=int(data.get("stage", 0)),
                level=int(data.get("level", 0)),
                points=int(data.get("points", 0)),
                device=str(data.get("device", "")),
                app_ver=str(data.get("app_ver", "")),
                timestamp=str(data.get("timestamp") or utc_now()),
            )
        except (KeyError, TypeError, ValueError):
            return None

    def to_remote(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload.pop("timestamp")
        return payload


class FeedbackQueue(PersistentQueue[FeedbackRecord]):
    key = FEEDBACK_KEY

    def _encode(self, item: FeedbackRecord) -> Dict[str, Any]:
        return asdict(item)

    def _decode(self, data: Any) -> Optional[FeedbackRecord]:
        return FeedbackRecord.from_dict(data)


class FeedbackOutbox:
    """Submit feedback now, or keep it until the remote service is reachable.

    Args:
        kv: Key-value substrate holding the outbox.
        remote: Remote service with a feedback table.
    """

    def __init__(self, kv: KeyValueStore, remote: RemoteContentService):
        self.queue = FeedbackQueue(kv)
        self.remote = remote

    async def _send(self, record: FeedbackRecord) -> bool:
        try:
            await self.remote.insert_feedback(record.to_remote())
        except RemoteError as e:
            logger.warning(f"Failed to submit feedback: {e}")
            return False
        except Exception as e:
            # Misbehaving service implementations are treated like an outage.
            logger.error(f"Feedback submission raised unexpectedly: {e}", exc_info=True)
            return False
        return True

    async def submit(self, record: FeedbackRecord) -> bool:
        """Send ``record``; queue it on failure.

        Returns:
            True if it reached the remote service, False if it was queued.

        Raises:
            StorageError: If it could not be sent and could not be queued either.
        """
        if await self._send(record):
            logger.info("Feedback submitted")
            return True
        await self.queue.enqueue(record)
        logger.info("Feedback queued for later submission")
        return False

    async def submit_pending(self) -> int:
        """Retry every queued submission once. Returns how many went through."""
        try:
            sent, remaining = await self.queue.drain(self._send)
        except StorageError as e:
            logger.error(f"Error processing pending feedback: {e}")
            return 0
        if sent:
            logger.info(f"{sent} feedback items submitted, {remaining} still pending")
        return sent

    async def count(self) -> int:
        return await self.queue.count()

    async def clear(self) -> None:
        await self.queue.clear()
        logger.info("Cleared all pending feedback")
