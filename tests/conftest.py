"""
Pytest fixtures and test configuration for wordsync tests.
"""

import copy
from typing import Any, Dict, List, Optional, Set, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

from wordsync.core import WordSync
from wordsync.errors import RemoteError, StorageError
from wordsync.remote import RemoteContentService
from wordsync.storage import MemoryKeyValueStore
from wordsync.types import ContentItem, ContentKind, utc_now

ANIMAL_WORDS = [
    "cat", "dog", "lion", "bear", "wolf", "tiger", "zebra", "shark",
    "snake", "whale", "camel", "mouse", "panda", "rhino", "eagle",
]  # fmt: skip

JUNGLE_WORDS = [
    "vine", "parrot", "monkey", "jaguar", "canopy", "liana", "sloth", "toucan",
    "orchid", "gorilla", "python", "tapir", "ocelot", "gecko", "fern",
]  # fmt: skip

SPACE_WORDS = [
    "star", "moon", "mars", "venus", "earth", "orbit", "nova", "comet",
    "galaxy", "rocket", "planet", "cosmos", "asteroid", "neptune", "uranus",
]  # fmt: skip

ALL_OPERATIONS = {"fetch", "upsert", "delete", "insert_feedback"}


class FakeRemoteService(RemoteContentService):
    """In-memory word_sets/feedback tables with switchable failures.

    ``fail`` holds operation names that raise ``RemoteError``; use
    ``go_offline()``/``go_online()`` to flip everything at once.
    """

    def __init__(self):
        self.items: Dict[Tuple[str, ContentKind], ContentItem] = {}
        self.feedback: List[Dict[str, Any]] = []
        self.fail: Set[str] = set()
        self.calls: List[str] = []

    def _check(self, operation: str):
        self.calls.append(operation)
        if operation in self.fail:
            raise RemoteError(operation, "service unavailable")

    def go_offline(self):
        self.fail = set(ALL_OPERATIONS)

    def go_online(self):
        self.fail = set()

    def put(
        self,
        name: str,
        words: List[str],
        kind: ContentKind = ContentKind.STAGE,
        version: int = 1,
        active_from: Optional[str] = None,
        active_to: Optional[str] = None,
    ) -> ContentItem:
        """Seed a row directly, bypassing call tracking."""
        item = ContentItem(
            name=name,
            kind=kind,
            words=list(words),
            version=version,
            active_from=active_from,
            active_to=active_to,
            updated_at=utc_now(),
        )
        self.items[(name, kind)] = item
        return item

    def get(self, name: str, kind: ContentKind = ContentKind.STAGE) -> Optional[ContentItem]:
        return self.items.get((name, kind))

    async def fetch_items(self) -> List[ContentItem]:
        self._check("fetch")
        items = sorted(self.items.values(), key=lambda i: i.updated_at or "", reverse=True)
        return copy.deepcopy(items)

    async def upsert_item(self, item: ContentItem) -> None:
        self._check("upsert")
        self.items[(item.name, item.kind)] = copy.deepcopy(item)

    async def delete_item(self, name: str, kind: ContentKind) -> None:
        self._check("delete")
        self.items.pop((name, ContentKind(kind)), None)

    async def insert_feedback(self, record: Dict[str, Any]) -> None:
        self._check("insert_feedback")
        self.feedback.append(dict(record))


class FailingKeyValueStore(MemoryKeyValueStore):
    """Memory store whose writes (and optionally reads) can be made to fail."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_writes = False
        self.fail_reads = False
        self.fail_keys: Optional[Set[str]] = None

    def _should_fail(self, key: str) -> bool:
        return self.fail_keys is None or key in self.fail_keys

    async def get(self, key):
        if self.fail_reads and self._should_fail(key):
            raise StorageError("disk read error")
        return await super().get(key)

    async def set(self, key, value):
        if self.fail_writes and self._should_fail(key):
            raise StorageError("disk full")
        await super().set(key, value)


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def remote():
    return FakeRemoteService()


@pytest.fixture
def ws(kv, remote):
    """WordSync over an in-memory store and fake remote, no event log."""
    return WordSync(kv, remote)


@pytest.fixture
def mock_supabase_client():
    """Mock async Supabase client recording the query chain.

    ``client.table(name)`` returns the same builder for every call; every
    chained method returns the builder and ``execute`` is an AsyncMock whose
    return value carries ``.data``.
    """
    client = MagicMock()
    builder = MagicMock()
    for method in ("select", "order", "upsert", "delete", "insert", "eq"):
        getattr(builder, method).return_value = builder
    response = MagicMock()
    response.data = []
    builder.execute = AsyncMock(return_value=response)
    client.table.return_value = builder
    return client, builder, response
