"""Remote content service.

The source of truth for word sets is a Supabase table; user feedback goes to
a second table. ``RemoteContentService`` is the boundary the sync engine and
facade program against, and ``SupabaseContentService`` is the production
implementation over the async Supabase client.

Every failure (API error, transport error, timeout, malformed row) is raised
as ``RemoteError`` so callers have exactly one exception to handle.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, Dict, List, Optional

from wordsync.errors import RemoteError
from wordsync.types import VALID_KIND_VALUES, ContentItem, ContentKind

if TYPE_CHECKING:
    from supabase import AsyncClient

    from wordsync.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_WORD_SETS_TABLE = "word_sets"
DEFAULT_FEEDBACK_TABLE = "feedback"


class RemoteContentService(ABC):
    """Query/upsert/delete over word sets, plus feedback inserts."""

    @abstractmethod
    async def fetch_items(self) -> List[ContentItem]:
        """All word sets of every kind, newest ``updated_at`` first."""

    @abstractmethod
    async def upsert_item(self, item: ContentItem) -> None:
        """Insert or replace the word set keyed by ``(item.name, item.kind)``."""

    @abstractmethod
    async def delete_item(self, name: str, kind: ContentKind) -> None:
        """Delete the word set keyed by ``(name, kind)``."""

    @abstractmethod
    async def insert_feedback(self, record: Dict[str, Any]) -> None:
        """Store one feedback record."""


def parse_rows(rows: Optional[List[Dict[str, Any]]]) -> List[ContentItem]:
    """Turn raw word-set rows into ``ContentItem``s.

    Rows of an unknown kind are skipped. Any other malformed row fails the
    whole fetch: silently dropping a Stage row would make the sync engine
    treat that theme as deleted.

    Raises:
        RemoteError: If a Stage or Challenge row cannot be parsed.
    """
    items = []
    for row in rows or []:
        if not isinstance(row, dict):
            raise RemoteError("fetch", f"unexpected row {row!r}")
        if row.get("kind") not in VALID_KIND_VALUES:
            logger.debug(f"Skipping word set of unknown kind: {row.get('kind')!r}")
            continue
        try:
            items.append(ContentItem.from_row(row))
        except ValueError as e:
            raise RemoteError("fetch", f"malformed word set row: {e}") from e
    return items


class OfflineContentService(RemoteContentService):
    """Stand-in used when no remote is configured: every call fails.

    Saves and deletes therefore queue, and syncs keep the cache as is, until
    the process is restarted with credentials.
    """

    reason = "no remote service configured"

    async def fetch_items(self) -> List[ContentItem]:
        raise RemoteError("fetch", self.reason)

    async def upsert_item(self, item: ContentItem) -> None:
        raise RemoteError("upsert", self.reason)

    async def delete_item(self, name: str, kind: ContentKind) -> None:
        raise RemoteError("delete", self.reason)

    async def insert_feedback(self, record: Dict[str, Any]) -> None:
        raise RemoteError("insert_feedback", self.reason)


class SupabaseContentService(RemoteContentService):
    """Word sets and feedback stored in Supabase tables.

    Args:
        client: An async Supabase client.
        word_sets_table: Table holding word sets (``theme``, ``kind``, ``words``,
            ``version``, ``active_from``, ``active_to``, ``updated_at``), with a
            unique constraint on ``(theme, kind)``.
        feedback_table: Table receiving feedback records.
        timeout: Seconds before a call is abandoned and reported as failed.
    """

    def __init__(
        self,
        client: "AsyncClient",
        word_sets_table: str = DEFAULT_WORD_SETS_TABLE,
        feedback_table: str = DEFAULT_FEEDBACK_TABLE,
        timeout: float = 10.0,
    ):
        self.client = client
        self.word_sets_table = word_sets_table
        self.feedback_table = feedback_table
        self.timeout = timeout

    async def _run(self, operation: str, call: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise RemoteError(operation, f"timed out after {self.timeout}s") from None
        except RemoteError:
            raise
        except Exception as e:
            raise RemoteError(operation, str(e)) from e

    async def fetch_items(self) -> List[ContentItem]:
        query = (
            self.client.table(self.word_sets_table)
            .select("*")
            .order("updated_at", desc=True)
        )
        response = await self._run("fetch", query.execute())
        return parse_rows(response.data)

    async def upsert_item(self, item: ContentItem) -> None:
        query = self.client.table(self.word_sets_table).upsert(
            item.to_row(), on_conflict="theme,kind"
        )
        await self._run("upsert", query.execute())

    async def delete_item(self, name: str, kind: ContentKind) -> None:
        query = (
            self.client.table(self.word_sets_table)
            .delete()
            .eq("theme", name)
            .eq("kind", ContentKind(kind).value)
        )
        await self._run("delete", query.execute())

    async def insert_feedback(self, record: Dict[str, Any]) -> None:
        query = self.client.table(self.feedback_table).insert([record])
        await self._run("insert_feedback", query.execute())


async def create_supabase_service(settings: "Settings") -> SupabaseContentService:
    """Build a ``SupabaseContentService`` from settings.

    Raises:
        ValueError: If the Supabase URL or key is not configured.
    """
    if not settings.has_remote:
        raise ValueError("Both WORDSYNC_SUPABASE_URL and WORDSYNC_SUPABASE_KEY must be set")

    from supabase import acreate_client

    client = await acreate_client(settings.supabase_url, settings.supabase_key)
    return SupabaseContentService(
        client,
        word_sets_table=settings.word_sets_table,
        feedback_table=settings.feedback_table,
        timeout=settings.remote_timeout,
    )
