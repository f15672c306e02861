"""
Event Sync Sources.

The contract events tracked by the indexer and where each one keeps
its token id.
"""

from dataclasses import dataclass

from app.config.constants import (
    CONTENT_ABI,
    EVENT_TOKEN_DELISTED,
    EVENT_TOKEN_LISTED,
    EVENT_TOKEN_PURCHASED,
    EVENT_TRANSFER_SINGLE,
    MARKETPLACE_ABI,
)


@dataclass(frozen=True)
class EventSource:
    """One event type on one contract."""

    event_type: str
    address: str
    abi: list[dict]
    token_arg: str

    def __hash__(self) -> int:
        return hash((self.event_type, self.address))


def build_event_sources(
    content_address: str,
    marketplace_address: str,
) -> list[EventSource]:
    """
    Build the tracked event list.

    Args:
        content_address: Content (ERC-1155) contract address
        marketplace_address: Marketplace contract address

    Returns:
        Sources in fetch order
    """
    return [
        EventSource(EVENT_TRANSFER_SINGLE, content_address, CONTENT_ABI, "id"),
        EventSource(EVENT_TOKEN_LISTED, marketplace_address, MARKETPLACE_ABI, "_tokenId"),
        EventSource(EVENT_TOKEN_DELISTED, marketplace_address, MARKETPLACE_ABI, "_tokenId"),
        EventSource(EVENT_TOKEN_PURCHASED, marketplace_address, MARKETPLACE_ABI, "_tokenId"),
    ]
