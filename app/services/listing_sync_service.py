"""
Marketplace Listing Sync Service.

Refreshes market columns of TokenStats from live contract state:
total supply, floor price, listed amount, royalty configuration, plus
total volume from persisted purchase events.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.constants import (
    CONTENT_ABI,
    MARKETPLACE_ABI,
    ROYALTY_BPS_DENOMINATOR,
    ZERO_ADDRESS,
)
from app.models.chain_event import ChainEvent
from app.repositories.event_repository import EventRepository
from app.repositories.nft_repository import NftRepository
from app.repositories.token_stats_repository import TokenStatsRepository
from app.services.chain_client import ChainClient
from app.utils.exceptions import is_transient_upstream


@dataclass(frozen=True)
class Listing:
    """One marketplace listing slot."""

    price: int
    seller: str
    amount: int

    @property
    def is_active(self) -> bool:
        """Active iff the seller is set and units remain."""
        return self.seller.lower() != ZERO_ADDRESS and self.amount > 0

    @classmethod
    def from_tuple(cls, raw: Sequence[Any]) -> "Listing":
        """Build from the contract's (price, seller, amount) tuple."""
        price, seller, amount = raw
        return cls(price=int(price), seller=str(seller), amount=int(amount))


def summarize_listings(listings: list[Listing]) -> tuple[int | None, int]:
    """
    Compute floor price and listed amount.

    Args:
        listings: Listings read from the contract

    Returns:
        Tuple of (floor price or None if nothing is active, listed amount)
    """
    active = [listing for listing in listings if listing.is_active]
    if not active:
        return None, 0
    return min(listing.price for listing in active), sum(listing.amount for listing in active)


def total_volume(purchases: list[ChainEvent]) -> int:
    """Sum of price x amount over purchase events."""
    return sum(
        int(event.data.get("_price", 0)) * int(event.data.get("_amount", 0))
        for event in purchases
    )


class MarketplaceListingSyncService:
    """
    Polls marketplace and content contracts for every cached token.

    Tokens are processed in fixed-size batches with a pause between
    batches to stay under RPC rate limits. A token that fails is logged
    and skipped.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        chain: ChainClient,
        content_address: str,
        marketplace_address: str,
        batch_size: int = 5,
        batch_delay: float = 0.5,
        listing_read_limit: int = 10,
    ):
        """
        Initialize listing sync.

        Args:
            session_maker: Session factory
            chain: Chain client
            content_address: Content contract address
            marketplace_address: Marketplace contract address
            batch_size: Tokens per batch
            batch_delay: Seconds between batches
            listing_read_limit: Max listings read per token
        """
        self.session_maker = session_maker
        self.chain = chain
        self.content_address = content_address
        self.marketplace_address = marketplace_address
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.listing_read_limit = listing_read_limit

    async def sync_listings(self) -> dict[str, int]:
        """
        Refresh market stats for every cached token.

        Returns:
            Dict with number of tokens synced
        """
        async with self.session_maker() as session:
            token_ids = await NftRepository(session).get_cached_token_ids()

        synced = 0
        for start in range(0, len(token_ids), self.batch_size):
            if start > 0 and self.batch_delay:
                await asyncio.sleep(self.batch_delay)

            batch = token_ids[start:start + self.batch_size]
            results = await asyncio.gather(
                *(self._sync_token(token_id) for token_id in batch)
            )
            synced += sum(1 for ok in results if ok)

        logger.info(f"[Listings] Synced {synced}/{len(token_ids)} tokens")
        return {"synced": synced}

    async def _sync_token(self, token_id: int) -> bool:
        try:
            values = await self.read_market_state(token_id)
            async with self.session_maker() as session:
                purchases = await EventRepository(session).get_purchases_for_token(token_id)
                values["total_volume"] = str(total_volume(purchases))
                await TokenStatsRepository(session).upsert_market_stats(token_id, values)
                await session.commit()
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if is_transient_upstream(e):
                logger.warning(f"[Listings] Token {token_id} skipped: {e}")
            else:
                logger.exception(f"[Listings] Token {token_id} failed: {e}")
            return False

    async def read_market_state(self, token_id: int) -> dict[str, Any]:
        """
        Read supply, listings and royalty info for one token.

        Args:
            token_id: Token ID

        Returns:
            Dict of market columns except total_volume
        """
        supply, listing_count, royalty = await asyncio.gather(
            self.chain.read_contract(
                self.content_address, CONTENT_ABI, "totalSupply", token_id
            ),
            self.chain.read_contract(
                self.marketplace_address, MARKETPLACE_ABI, "listingCount", token_id
            ),
            self.chain.read_contract(
                self.content_address, CONTENT_ABI, "royaltyInfo",
                token_id, ROYALTY_BPS_DENOMINATOR,
            ),
        )

        listings: list[Listing] = []
        for index in range(min(int(listing_count), self.listing_read_limit)):
            raw = await self.chain.read_contract(
                self.marketplace_address, MARKETPLACE_ABI, "listings", token_id, index
            )
            listings.append(Listing.from_tuple(raw))

        floor_price, listed_count = summarize_listings(listings)
        recipient, royalty_amount = royalty

        return {
            "total_supply": str(int(supply)),
            "floor_price": str(floor_price) if floor_price is not None else None,
            "listed_count": str(listed_count),
            "royalty_recipient": str(recipient).lower(),
            "royalty_bps": int(royalty_amount),
        }
