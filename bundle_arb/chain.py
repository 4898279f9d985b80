"""
Chain provider adapter.

Wraps a synchronous web3 instance and runs each RPC call in the default
thread pool so block iterations never block the event loop. Also hosts the
block subscription producer that feeds the reactor's queue.
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Dict, Optional, Union

from web3 import Web3

from .exceptions import ChainConnectionError

logger = logging.getLogger(__name__)

BlockIdentifier = Union[int, str]


class ChainProvider:
    """Async facade over the handful of RPC methods the searcher needs."""

    def __init__(self, web3: Web3):
        self.web3 = web3

    @classmethod
    def connect(cls, rpc_url: str, timeout: float = 20.0) -> "ChainProvider":
        """
        Build an HTTP web3 connection and check it is reachable.

        Raises:
            ChainConnectionError: If the endpoint does not answer
        """
        web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        if not web3.is_connected():
            raise ChainConnectionError(
                f"Failed to connect to RPC at {rpc_url}", endpoint=rpc_url
            )
        return cls(web3)

    async def _call(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    async def get_block_number(self) -> int:
        return await self._call(lambda: self.web3.eth.block_number)

    async def get_block(
        self, block_identifier: BlockIdentifier, full_transactions: bool = False
    ) -> Dict[str, Any]:
        return await self._call(
            self.web3.eth.get_block, block_identifier, full_transactions
        )

    async def get_transaction_count(
        self, address: str, block_identifier: BlockIdentifier = "latest"
    ) -> int:
        return await self._call(
            self.web3.eth.get_transaction_count, address, block_identifier
        )

    async def estimate_gas(self, transaction: Dict[str, Any]) -> int:
        return await self._call(self.web3.eth.estimate_gas, transaction)

    async def watch_blocks(
        self,
        queue: "asyncio.Queue[int]",
        stop_event: asyncio.Event,
        poll_interval: float = 1.0,
        start_block: Optional[int] = None,
    ) -> None:
        """
        Push every new block number onto `queue` until `stop_event` is set.

        Block numbers are emitted in increasing order. When several blocks
        were produced between two polls, each intermediate number is emitted
        as well. RPC errors are logged and retried on the next poll.
        """
        last_seen = start_block
        while not stop_event.is_set():
            try:
                latest = await self.get_block_number()
            except Exception as e:
                logger.warning(f"Block number poll failed: {e}")
            else:
                if last_seen is None:
                    await queue.put(latest)
                    last_seen = latest
                elif latest > last_seen:
                    for block_number in range(last_seen + 1, latest + 1):
                        await queue.put(block_number)
                    last_seen = latest

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=poll_interval)
            except asyncio.TimeoutError:
                pass

    async def wait_for_block(
        self,
        block_number: int,
        poll_interval: float = 1.0,
        timeout: Optional[float] = None,
    ) -> int:
        """
        Wait until the chain head reaches `block_number`.

        Returns:
            The observed head block number

        Raises:
            asyncio.TimeoutError: If `timeout` elapses first
        """

        async def _poll() -> int:
            while True:
                try:
                    head = await self.get_block_number()
                except Exception as e:
                    logger.debug(f"Head poll failed while waiting for {block_number}: {e}")
                else:
                    if head >= block_number:
                        return head
                await asyncio.sleep(poll_interval)

        if timeout is None:
            return await _poll()
        return await asyncio.wait_for(_poll(), timeout=timeout)
