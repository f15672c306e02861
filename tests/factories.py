"""Builders for decoded logs and test addresses."""

from typing import Any

from app.config.constants import ZERO_ADDRESS

CONTENT_ADDRESS = "0x5541ff300e9b01176b953ea3153006e36d4ba273"
MARKETPLACE_ADDRESS = "0xbd5c4612084ea90847deb475529ac74b3521498d"

AUTHOR = "0x742d35cc6634c0532925a3b844bc9e7595f0beb0"
BUYER = "0x1111111111111111111111111111111111111111"


def make_log(
    args: dict[str, Any],
    block: int,
    log_index: int = 0,
    tx: str | None = None,
) -> dict[str, Any]:
    """Build a decoded log the way web3 returns it."""
    return {
        "args": args,
        "transactionHash": bytes.fromhex((tx or f"{block:064x}")[-64:]),
        "logIndex": log_index,
        "blockNumber": block,
    }


def transfer_log(
    token_id: int,
    block: int,
    sender: str = ZERO_ADDRESS,
    recipient: str = AUTHOR,
    log_index: int = 0,
) -> dict[str, Any]:
    """Build a TransferSingle log (a mint by default)."""
    return make_log(
        {
            "operator": recipient,
            "from": sender,
            "to": recipient,
            "id": token_id,
            "value": 1,
        },
        block,
        log_index,
    )


def purchase_log(
    token_id: int,
    block: int,
    price: int,
    amount: int = 1,
    log_index: int = 0,
) -> dict[str, Any]:
    """Build a TokenPurchased log."""
    return make_log(
        {
            "_tokenId": token_id,
            "_buyer": BUYER,
            "_seller": AUTHOR,
            "_listingId": 0,
            "_amount": amount,
            "_price": price,
        },
        block,
        log_index,
    )


def logs_by_event(mapping: dict[str, list[dict[str, Any]]]):
    """
    side_effect for get_event_logs returning logs per event name,
    filtered to the requested block range.
    """
    async def get_event_logs(address, abi, event_name, from_block, to_block):
        return [
            log for log in mapping.get(event_name, [])
            if from_block <= log["blockNumber"] <= to_block
        ]
    return get_event_logs
