"""
Event Sync Normalization.

Converts decoded web3 logs into rows for the events table.
"""

from typing import Any

from web3 import Web3

from app.services.event_sync.sources import EventSource


def to_hex(value: Any) -> str:
    """Render a hash as a 0x-prefixed lowercase hex string."""
    if isinstance(value, str):
        value = value.lower()
        return value if value.startswith("0x") else f"0x{value}"
    return Web3.to_hex(value)


def to_storable(value: Any) -> Any:
    """
    Convert an event argument into a JSON-safe value.

    Integers become decimal strings so uint256 values survive JSON
    storage without precision loss.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    return value


def normalize_log(source: EventSource, log: Any) -> dict[str, Any]:
    """
    Normalize a decoded log.

    Args:
        source: Source the log was fetched from
        log: Decoded log (AttributeDict or mapping)

    Returns:
        Dict with tx_hash, log_index, block_number, event_type,
        token_id and data

    Raises:
        KeyError: If the log lacks a required field
    """
    args = dict(log["args"])
    return {
        "tx_hash": to_hex(log["transactionHash"]),
        "log_index": int(log["logIndex"]),
        "block_number": int(log["blockNumber"]),
        "event_type": source.event_type,
        "token_id": int(args[source.token_arg]),
        "data": {key: to_storable(value) for key, value in args.items()},
    }


def to_notification(row: dict[str, Any]) -> dict[str, Any]:
    """Shape a normalized row as a newEvents entry."""
    return {
        "type": row["event_type"],
        "tokenId": row["token_id"],
        "blockNumber": row["block_number"],
        "transactionId": row["tx_hash"],
    }
