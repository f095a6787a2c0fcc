"""Tests for the remote content services."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from wordsync.config import Settings
from wordsync.errors import RemoteError
from wordsync.remote import (
    OfflineContentService,
    SupabaseContentService,
    create_supabase_service,
    parse_rows,
)
from wordsync.types import ContentItem, ContentKind

from conftest import ANIMAL_WORDS


class TestParseRows:
    def test_parses_both_kinds(self):
        items = parse_rows(
            [
                {"theme": "animals", "kind": "Stage", "words": ANIMAL_WORDS, "version": 2},
                {
                    "theme": "Weekly",
                    "kind": "Challenge",
                    "words": ["cat"],
                    "version": 1,
                    "active_from": "2024-01-01",
                    "active_to": "2024-01-07",
                },
            ]
        )
        assert [(i.name, i.kind, i.version) for i in items] == [
            ("animals", ContentKind.STAGE, 2),
            ("Weekly", ContentKind.CHALLENGE, 1),
        ]

    def test_skips_unknown_kinds(self):
        items = parse_rows([{"theme": "x", "kind": "Bonus", "words": []}])
        assert items == []

    def test_none_is_empty(self):
        assert parse_rows(None) == []

    def test_malformed_stage_row_fails_fetch(self):
        with pytest.raises(RemoteError, match="fetch failed"):
            parse_rows([{"theme": "animals", "kind": "Stage", "words": None}])

    def test_non_dict_row_fails_fetch(self):
        with pytest.raises(RemoteError):
            parse_rows(["animals"])


class TestOfflineContentService:
    @pytest.mark.asyncio
    async def test_every_call_fails(self):
        service = OfflineContentService()
        item = ContentItem("animals", ContentKind.STAGE, ANIMAL_WORDS)
        for call in (
            service.fetch_items(),
            service.upsert_item(item),
            service.delete_item("animals", ContentKind.STAGE),
            service.insert_feedback({"message": "hi"}),
        ):
            with pytest.raises(RemoteError, match="no remote service configured"):
                await call


class TestSupabaseContentService:
    @pytest.mark.asyncio
    async def test_fetch_items(self, mock_supabase_client):
        client, builder, response = mock_supabase_client
        response.data = [{"theme": "animals", "kind": "Stage", "words": ANIMAL_WORDS, "version": 1}]
        service = SupabaseContentService(client)

        items = await service.fetch_items()
        client.table.assert_called_with("word_sets")
        builder.select.assert_called_with("*")
        builder.order.assert_called_with("updated_at", desc=True)
        assert items[0].name == "animals"

    @pytest.mark.asyncio
    async def test_upsert_keys_on_theme_and_kind(self, mock_supabase_client):
        client, builder, _ = mock_supabase_client
        service = SupabaseContentService(client)
        item = ContentItem(
            "Weekly", ContentKind.CHALLENGE, ["cat"], 3, "2024-01-01", "2024-01-07"
        )

        await service.upsert_item(item)
        row = builder.upsert.call_args.args[0]
        assert builder.upsert.call_args.kwargs == {"on_conflict": "theme,kind"}
        assert row["theme"] == "Weekly"
        assert row["kind"] == "Challenge"
        assert row["version"] == 3
        assert row["active_to"] == "2024-01-07"

    @pytest.mark.asyncio
    async def test_delete_filters_on_theme_and_kind(self, mock_supabase_client):
        client, builder, _ = mock_supabase_client
        service = SupabaseContentService(client)

        await service.delete_item("animals", ContentKind.STAGE)
        builder.delete.assert_called_once()
        assert [c.args for c in builder.eq.call_args_list] == [
            ("theme", "animals"),
            ("kind", "Stage"),
        ]

    @pytest.mark.asyncio
    async def test_insert_feedback_uses_feedback_table(self, mock_supabase_client):
        client, builder, _ = mock_supabase_client
        service = SupabaseContentService(client, feedback_table="player_feedback")

        await service.insert_feedback({"message": "hi"})
        client.table.assert_called_with("player_feedback")
        builder.insert.assert_called_with([{"message": "hi"}])

    @pytest.mark.asyncio
    async def test_api_error_becomes_remote_error(self, mock_supabase_client):
        client, builder, _ = mock_supabase_client
        builder.execute.side_effect = ConnectionError("network down")
        service = SupabaseContentService(client)

        with pytest.raises(RemoteError, match="upsert failed: network down"):
            await service.upsert_item(ContentItem("animals", ContentKind.STAGE, ANIMAL_WORDS))

    @pytest.mark.asyncio
    async def test_timeout_becomes_remote_error(self, mock_supabase_client):
        client, builder, _ = mock_supabase_client

        async def hang(*args, **kwargs):
            await asyncio.sleep(10)

        builder.execute.side_effect = hang
        service = SupabaseContentService(client, timeout=0.01)

        with pytest.raises(RemoteError, match="timed out"):
            await service.fetch_items()


class TestCreateSupabaseService:
    @pytest.mark.asyncio
    async def test_requires_credentials(self, tmp_path):
        settings = Settings(data_dir=tmp_path, supabase_url=None, supabase_key=None)
        with pytest.raises(ValueError):
            await create_supabase_service(settings)

    @pytest.mark.asyncio
    async def test_builds_from_settings(self, tmp_path, mock_supabase_client):
        client, _, _ = mock_supabase_client
        settings = Settings(
            data_dir=tmp_path,
            supabase_url="https://example.supabase.co/",
            supabase_key="anon-key",
            word_sets_table="sets",
            remote_timeout=2.5,
        )
        with patch("supabase.acreate_client", AsyncMock(return_value=client)) as factory:
            service = await create_supabase_service(settings)

        factory.assert_awaited_once_with("https://example.supabase.co", "anon-key")
        assert service.client is client
        assert service.word_sets_table == "sets"
        assert service.timeout == 2.5
