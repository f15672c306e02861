"""Integration tests for the derived stats materializer."""

import pytest

from app.config.constants import EVENT_TOKEN_PURCHASED, EVENT_TRANSFER_SINGLE
from app.repositories import (
    AuthorStatsRepository,
    BlockRepository,
    EventRepository,
    NftRepository,
    TokenStatsRepository,
)
from app.services.event_sync import normalize_log
from app.services.stats_materializer import StatsMaterializerService
from tests.factories import AUTHOR, BUYER, purchase_log, transfer_log

OTHER_AUTHOR = "0x2222222222222222222222222222222222222222"


async def store_logs(session_maker, sources, logs_by_type):
    by_type = {source.event_type: source for source in sources}
    rows = [
        normalize_log(by_type[event_type], log)
        for event_type, logs in logs_by_type.items()
        for log in logs
    ]
    async with session_maker() as session:
        await EventRepository(session).insert_ignore_duplicates(rows)
        await session.commit()


async def store_nft(session_maker, token_id, author):
    async with session_maker() as session:
        await NftRepository(session).upsert({
            "token_id": token_id,
            "uri": "data:,{}",
            "author": author,
            "content": "text",
            "content_type": "text/plain",
        })
        await session.commit()


async def cache_block(session_maker, block_number, timestamp):
    async with session_maker() as session:
        await BlockRepository(session).insert_ignore_existing(block_number, timestamp)
        await session.commit()


async def token_rows(session_maker):
    async with session_maker() as session:
        return [row.to_dict() for row in await TokenStatsRepository(session).list_all()]


async def author(session_maker, address):
    async with session_maker() as session:
        return await AuthorStatsRepository(session).get_by_id(address)


@pytest.fixture
def materializer(session_maker):
    return StatsMaterializerService(session_maker)


class TestTokenStats:
    """Tests for recompute_token_stats."""

    @pytest.mark.asyncio
    async def test_mint_transfers_and_last_sale(self, session_maker, sources, materializer):
        await store_logs(session_maker, sources, {
            EVENT_TRANSFER_SINGLE: [
                transfer_log(1, 100),
                transfer_log(1, 120, sender=AUTHOR, recipient=BUYER),
                transfer_log(2, 130),
            ],
            EVENT_TOKEN_PURCHASED: [
                purchase_log(1, 120, price=5 * 10**17, log_index=1),
                purchase_log(1, 140, price=10**30),
            ],
        })

        assert await materializer.recompute_token_stats() == 2

        rows = {row["token_id"]: row for row in await token_rows(session_maker)}
        assert rows[1]["mint_block"] == 100
        assert rows[1]["transfer_count"] == 2
        assert rows[1]["last_sale_price"] == str(10**30)
        assert rows[1]["last_sale_block"] == 140
        assert rows[2]["transfer_count"] == 1
        assert rows[2]["last_sale_price"] is None

    @pytest.mark.asyncio
    async def test_unminted_tokens_skipped(self, session_maker, sources, materializer):
        """Tokens without a zero-origin transfer get no row."""
        await store_logs(session_maker, sources, {
            EVENT_TRANSFER_SINGLE: [transfer_log(3, 100, sender=AUTHOR, recipient=BUYER)],
        })

        assert await materializer.recompute_token_stats() == 0
        assert await token_rows(session_maker) == []

    @pytest.mark.asyncio
    async def test_recompute_is_stable(self, session_maker, sources, materializer):
        await store_logs(session_maker, sources, {
            EVENT_TRANSFER_SINGLE: [transfer_log(1, 100), transfer_log(2, 110)],
            EVENT_TOKEN_PURCHASED: [purchase_log(2, 150, price=42)],
        })

        await materializer.recompute_token_stats()
        first = await token_rows(session_maker)
        await materializer.recompute_token_stats()
        second = await token_rows(session_maker)

        assert first == second

    @pytest.mark.asyncio
    async def test_market_columns_untouched(self, session_maker, sources, materializer):
        await store_logs(session_maker, sources, {EVENT_TRANSFER_SINGLE: [transfer_log(1, 100)]})
        await materializer.recompute_token_stats()
        async with session_maker() as session:
            await TokenStatsRepository(session).upsert_market_stats(
                1, {"floor_price": "7", "listed_count": "2", "total_supply": "10"}
            )
            await session.commit()

        await materializer.recompute_token_stats()

        row = (await token_rows(session_maker))[0]
        assert row["floor_price"] == "7"
        assert row["listed_count"] == "2"
        assert row["transfer_count"] == 1


class TestAuthorStats:
    """Tests for recompute_author_stats."""

    @pytest.mark.asyncio
    async def test_counts_and_first_mint(self, session_maker, sources, materializer):
        await store_logs(session_maker, sources, {
            EVENT_TRANSFER_SINGLE: [transfer_log(1, 100), transfer_log(2, 90), transfer_log(3, 300, recipient=OTHER_AUTHOR)],
        })
        await store_nft(session_maker, 1, AUTHOR)
        await store_nft(session_maker, 2, AUTHOR.upper().replace("0X", "0x"))
        await store_nft(session_maker, 3, OTHER_AUTHOR)

        assert await materializer.recompute_author_stats() == 2

        row = await author(session_maker, AUTHOR)
        assert row.total_minted == 2
        assert row.first_mint_block == 90
        other = await author(session_maker, OTHER_AUTHOR)
        assert other.first_mint_block == 300

    @pytest.mark.asyncio
    async def test_first_mint_block_preserved(self, session_maker, sources, materializer):
        """An existing first_mint_block survives a recompute that finds none."""
        await store_nft(session_maker, 1, AUTHOR)
        async with session_maker() as session:
            await AuthorStatsRepository(session).upsert_many(
                [{"address": AUTHOR, "total_minted": 1, "first_mint_block": 55}]
            )
            await session.commit()
        await store_nft(session_maker, 2, AUTHOR)

        await materializer.recompute_author_stats()

        row = await author(session_maker, AUTHOR)
        assert row.total_minted == 2
        assert row.first_mint_block == 55

    @pytest.mark.asyncio
    async def test_first_mint_block_not_overwritten_by_earlier_value(
        self, session_maker, sources, materializer
    ):
        await store_nft(session_maker, 1, AUTHOR)
        async with session_maker() as session:
            await AuthorStatsRepository(session).upsert_many(
                [{"address": AUTHOR, "total_minted": 1, "first_mint_block": 500}]
            )
            await session.commit()
        await store_logs(session_maker, sources, {EVENT_TRANSFER_SINGLE: [transfer_log(1, 100)]})

        await materializer.recompute_author_stats()

        assert (await author(session_maker, AUTHOR)).first_mint_block == 500

    @pytest.mark.asyncio
    async def test_clear(self, session_maker, sources, materializer):
        await store_logs(session_maker, sources, {EVENT_TRANSFER_SINGLE: [transfer_log(1, 100)]})
        await store_nft(session_maker, 1, AUTHOR)
        await materializer.recompute_all()

        await materializer.clear()

        assert await token_rows(session_maker) == []
        assert await author(session_maker, AUTHOR) is None


class TestMintTimestamps:
    """Timestamps are copied from the block cache."""

    @pytest.mark.asyncio
    async def test_filled_from_cached_blocks(self, session_maker, sources, materializer):
        await store_logs(session_maker, sources, {
            EVENT_TRANSFER_SINGLE: [transfer_log(1, 100), transfer_log(2, 200)],
        })
        await store_nft(session_maker, 1, AUTHOR)
        await cache_block(session_maker, 100, 1_700_000_100)

        await materializer.recompute_all()

        rows = {row["token_id"]: row for row in await token_rows(session_maker)}
        assert rows[1]["mint_timestamp"] == 1_700_000_100
        assert rows[2]["mint_timestamp"] is None
        assert (await author(session_maker, AUTHOR)).first_mint_timestamp == 1_700_000_100

    @pytest.mark.asyncio
    async def test_filled_once_block_is_cached(self, session_maker, sources, materializer):
        await store_logs(session_maker, sources, {EVENT_TRANSFER_SINGLE: [transfer_log(1, 100)]})
        await store_nft(session_maker, 1, AUTHOR)
        await materializer.recompute_all()

        await cache_block(session_maker, 100, 1_700_000_100)
        await materializer.recompute_all()

        assert (await token_rows(session_maker))[0]["mint_timestamp"] == 1_700_000_100
        assert (await author(session_maker, AUTHOR)).first_mint_timestamp == 1_700_000_100
