"""Integration tests for the marketplace listing sync."""

import pytest

from app.config.constants import EVENT_TOKEN_PURCHASED, ZERO_ADDRESS
from app.repositories import EventRepository, NftRepository, TokenStatsRepository
from app.services.event_sync import normalize_log
from app.services.listing_sync_service import MarketplaceListingSyncService
from app.utils.exceptions import ChainReadError
from tests.factories import AUTHOR, CONTENT_ADDRESS, MARKETPLACE_ADDRESS, purchase_log

ROYALTY_RECEIVER = "0x3333333333333333333333333333333333333333"


def chain_state(listings_by_token, failing=()):
    """side_effect for read_contract serving per-token contract state."""
    async def read_contract(address, abi, function, *args):
        token_id = args[0]
        if token_id in failing:
            raise ChainReadError("rate limited")
        listings = listings_by_token.get(token_id, [])
        if function == "totalSupply":
            return 10
        if function == "listingCount":
            return len(listings)
        if function == "royaltyInfo":
            assert args[1] == 10000
            return (ROYALTY_RECEIVER, 500)
        if function == "listings":
            return listings[args[1]]
        raise AssertionError(f"unexpected call {function}")
    return read_contract


async def cache_tokens(session_maker, token_ids):
    async with session_maker() as session:
        repo = NftRepository(session)
        for token_id in token_ids:
            await repo.upsert({"token_id": token_id, "uri": "data:,{}", "author": AUTHOR, "content": "x"})
        await session.commit()


async def stats(session_maker, token_id):
    async with session_maker() as session:
        row = await TokenStatsRepository(session).get_by_id(token_id)
        return row.to_dict() if row else None


def make_service(session_maker, chain, **kwargs):
    return MarketplaceListingSyncService(
        session_maker=session_maker,
        chain=chain,
        content_address=CONTENT_ADDRESS,
        marketplace_address=MARKETPLACE_ADDRESS,
        batch_delay=0,
        **kwargs,
    )


class TestListingSync:
    """Tests for sync_listings."""

    @pytest.mark.asyncio
    async def test_market_columns(self, session_maker, mock_chain, sources):
        await cache_tokens(session_maker, [1])
        mock_chain.read_contract.side_effect = chain_state({
            1: [(10**18, AUTHOR, 2), (5 * 10**17, ZERO_ADDRESS, 0)],
        })
        purchases = next(s for s in sources if s.event_type == EVENT_TOKEN_PURCHASED)
        async with session_maker() as session:
            await EventRepository(session).insert_ignore_duplicates([
                normalize_log(purchases, purchase_log(1, 100, price=10**18, amount=2)),
                normalize_log(purchases, purchase_log(1, 200, price=3, amount=1)),
            ])
            await session.commit()

        result = await make_service(session_maker, mock_chain).sync_listings()

        assert result == {"synced": 1}
        row = await stats(session_maker, 1)
        assert row["floor_price"] == str(10**18)
        assert row["listed_count"] == "2"
        assert row["total_supply"] == "10"
        assert row["total_volume"] == str(2 * 10**18 + 3)
        assert row["royalty_recipient"] == ROYALTY_RECEIVER
        assert row["royalty_bps"] == 500

    @pytest.mark.asyncio
    async def test_no_active_listing(self, session_maker, mock_chain):
        await cache_tokens(session_maker, [1])
        mock_chain.read_contract.side_effect = chain_state({1: [(1, ZERO_ADDRESS, 0)]})

        await make_service(session_maker, mock_chain).sync_listings()

        row = await stats(session_maker, 1)
        assert row["floor_price"] is None
        assert row["listed_count"] == "0"
        assert row["total_volume"] == "0"

    @pytest.mark.asyncio
    async def test_listing_read_cap(self, session_maker, mock_chain):
        await cache_tokens(session_maker, [1])
        listings = [(100 - i, AUTHOR, 1) for i in range(15)]
        mock_chain.read_contract.side_effect = chain_state({1: listings})

        await make_service(session_maker, mock_chain, listing_read_limit=10).sync_listings()

        row = await stats(session_maker, 1)
        assert row["listed_count"] == "10"
        assert row["floor_price"] == "91"

    @pytest.mark.asyncio
    async def test_failed_token_skipped(self, session_maker, mock_chain):
        """One token's read failure does not abort the batch."""
        await cache_tokens(session_maker, [1, 2, 3])
        mock_chain.read_contract.side_effect = chain_state(
            {1: [(5, AUTHOR, 1)], 3: [(7, AUTHOR, 1)]}, failing={2}
        )

        result = await make_service(session_maker, mock_chain, batch_size=2).sync_listings()

        assert result == {"synced": 2}
        assert await stats(session_maker, 2) is None
        assert (await stats(session_maker, 3))["floor_price"] == "7"

    @pytest.mark.asyncio
    async def test_preserves_event_columns(self, session_maker, mock_chain):
        await cache_tokens(session_maker, [1])
        async with session_maker() as session:
            await TokenStatsRepository(session).upsert_event_stats([{
                "token_id": 1,
                "mint_block": 100,
                "transfer_count": 4,
                "last_sale_price": "9",
                "last_sale_block": 150,
            }])
            await session.commit()
        mock_chain.read_contract.side_effect = chain_state({})

        await make_service(session_maker, mock_chain).sync_listings()

        row = await stats(session_maker, 1)
        assert row["mint_block"] == 100
        assert row["transfer_count"] == 4
        assert row["last_sale_price"] == "9"
