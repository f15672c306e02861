"""
Exception handling utilities.

Defines the indexer's exception types and the categories used to decide
whether a failure is isolated to its unit of work or aborts the caller.
"""

import asyncio

import aiohttp
from web3.exceptions import Web3Exception


class IndexerError(Exception):
    """Base class for indexer errors."""
    pass


class ChainReadError(IndexerError):
    """Raised when a read against the chain RPC endpoint fails."""
    pass


class PersistenceError(IndexerError):
    """Raised when a datastore write fails."""
    pass


class ContentValidationError(IndexerError):
    """Raised when token content or metadata is malformed."""

    def __init__(self, token_id: int, problems: list[str]) -> None:
        self.token_id = token_id
        self.problems = problems
        super().__init__(
            f"Validation failed for token {token_id}: {', '.join(problems)}"
        )


class RenderError(IndexerError):
    """Raised when the render capability fails for a job."""
    pass


# Exception categories based on handling strategy

# Isolated to one unit of work (one event type, one token), then skipped
TRANSIENT_UPSTREAM = (
    ChainReadError,
    Web3Exception,
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ConnectionError,
)


def is_transient_upstream(exc: BaseException) -> bool:
    """
    Check if exception is a transient upstream failure.

    Args:
        exc: Exception to check

    Returns:
        True if the failure should only skip its own unit of work
    """
    return isinstance(exc, TRANSIENT_UPSTREAM)
