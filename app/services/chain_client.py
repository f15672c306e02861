"""
Chain client.

Read-only access to the EVM chain: current block height, contract view
functions and event logs. Blocking web3 calls run in a bounded thread
pool so the event loop is never blocked.
"""

import asyncio
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from loguru import logger
from web3 import Web3
from web3.contract import Contract

from app.utils.exceptions import ChainReadError


class ChainClient:
    """
    Async facade over a synchronous Web3 instance.

    Handles:
    - Thread pool execution of sync Web3 calls
    - Per-call timeout
    - Wrapping every failure in ChainReadError
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        timeout: float = 30.0,
        max_workers: int = 8,
        w3: Web3 | None = None,
    ) -> None:
        """
        Initialize chain client.

        Args:
            rpc_url: JSON-RPC HTTP endpoint (ignored when w3 is given)
            timeout: Timeout for a single call in seconds
            max_workers: Maximum thread pool workers
            w3: Preconfigured Web3 instance
        """
        if w3 is None:
            if not rpc_url:
                raise ValueError("rpc_url or w3 is required")
            w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self.w3 = w3
        self.timeout = timeout
        self._contracts: dict[tuple[str, int], Contract] = {}
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="web3"
        )

    def _contract(self, address: str, abi: list[dict]) -> Contract:
        key = (address.lower(), id(abi))
        contract = self._contracts.get(key)
        if contract is None:
            contract = self.w3.eth.contract(
                address=Web3.to_checksum_address(address),
                abi=abi,
            )
            self._contracts[key] = contract
        return contract

    async def _run(self, sync_func: Callable[[], Any], operation_name: str) -> Any:
        """
        Run a blocking call in the pool with a timeout.

        Raises:
            ChainReadError: On timeout or any RPC failure
        """
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(self._executor, sync_func),
                timeout=self.timeout,
            )
        except asyncio.CancelledError:
            raise
        except TimeoutError as e:
            logger.error(f"[Chain] {operation_name} timed out after {self.timeout}s")
            raise ChainReadError(f"{operation_name} timed out") from e
        except Exception as e:
            raise ChainReadError(f"{operation_name} failed: {e}") from e

    async def get_block_number(self) -> int:
        """Get the current chain head."""
        return int(await self._run(lambda: self.w3.eth.block_number, "getBlockNumber"))

    async def get_block_timestamp(self, block_number: int) -> int:
        """Get the unix timestamp of a block."""
        block = await self._run(
            lambda: self.w3.eth.get_block(block_number),
            f"getBlock {block_number}",
        )
        return int(block["timestamp"])

    async def read_contract(
        self,
        address: str,
        abi: list[dict],
        function: str,
        *args: Any,
    ) -> Any:
        """
        Call a contract view function.

        Args:
            address: Contract address
            abi: Contract ABI
            function: Function name
            *args: Function arguments

        Returns:
            Decoded return value (tuple for multiple outputs)
        """
        contract = self._contract(address, abi)
        fn = getattr(contract.functions, function)
        return await self._run(lambda: fn(*args).call(), f"{function}({', '.join(map(str, args))})")

    async def get_event_logs(
        self,
        address: str,
        abi: list[dict],
        event_name: str,
        from_block: int,
        to_block: int,
    ) -> list[Any]:
        """
        Fetch decoded event logs for a block range (inclusive).

        Args:
            address: Contract address
            abi: Contract ABI containing the event
            event_name: Event name
            from_block: First block
            to_block: Last block

        Returns:
            Decoded logs with args, transactionHash, logIndex, blockNumber
        """
        contract = self._contract(address, abi)
        event = getattr(contract.events, event_name)
        return list(await self._run(
            lambda: event.get_logs(from_block=from_block, to_block=to_block),
            f"getLogs {event_name} {from_block}-{to_block}",
        ))

    def cleanup(self) -> None:
        """Clean up thread pool executor."""
        if self._executor:
            self._executor.shutdown(wait=True)
