"""
Block reactor: turns the block number stream into bundle attempts.

A producer task polls the chain and pushes block numbers onto a queue. The
consumer pops them and starts one iteration task per block, so a bundle that
is still waiting for its target block never delays the next block. The
number of iterations alive at once is capped by max_in_flight (0 = no cap);
a block that waited for a free slot is dropped if a newer block is queued.
"""

import asyncio
import logging
from typing import Dict, Optional, Set

from .chain import ChainProvider
from .config import BotConfig
from .pipeline import BundlePipeline
from .transaction import TransactionBuilder
from .types import BaseTransaction, FeeParameters, PricedTransaction

logger = logging.getLogger(__name__)


class BlockReactor:
    """Drives one pipeline run per observed block until a bundle lands."""

    def __init__(
        self,
        chain: ChainProvider,
        builder: TransactionBuilder,
        pipeline: BundlePipeline,
        base_tx: BaseTransaction,
        config: BotConfig,
    ):
        self.chain = chain
        self.builder = builder
        self.pipeline = pipeline
        self.base_tx = base_tx
        self.config = config

        self._stop = asyncio.Event()
        self._semaphore: Optional[asyncio.Semaphore] = (
            asyncio.Semaphore(config.max_in_flight) if config.max_in_flight > 0 else None
        )
        self._tasks: Set[asyncio.Task] = set()
        self.included_block: Optional[int] = None

        self.stats: Dict[str, int] = {
            "blocks_seen": 0,
            "iterations_started": 0,
            "iterations_failed": 0,
            "blocks_skipped": 0,
        }

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def stop(self) -> None:
        """Ask the reactor to stop consuming blocks."""
        self._stop.set()

    def fee_parameters(self, base_fee: int) -> FeeParameters:
        return FeeParameters(
            base_fee=int(base_fee),
            priority_fee=self.config.priority_fee,
            horizon_blocks=self.config.blocks_in_the_future,
        )

    async def price_block(self, block_number: int) -> Optional[PricedTransaction]:
        """Read the block's base fee and price the template for it."""
        block = await self.chain.get_block(block_number)
        base_fee = block.get("baseFeePerGas")
        if base_fee is None:
            logger.warning(f"Block {block_number} has no baseFeePerGas, skipping")
            return None
        return self.builder.price_for_block(self.base_tx, self.fee_parameters(base_fee))

    async def process_block(self, block_number: int) -> bool:
        """
        Run one iteration for an observed block.

        The bundle always targets block_number + 1; blocks_in_the_future only
        widens the fee ceiling.

        Returns:
            True if the bundle was included and the reactor should stop
        """
        logger.info(f"============= blockNumber is {block_number} =============")
        priced_tx = await self.price_block(block_number)
        if priced_tx is None:
            return False
        logger.debug(
            f"Block {block_number}: maxFeePerGas={priced_tx.max_fee_per_gas} "
            f"maxPriorityFeePerGas={priced_tx.max_priority_fee_per_gas}"
        )
        return await self.pipeline.run(priced_tx, block_number + 1)

    async def _iteration(self, block_number: int) -> None:
        try:
            done = await self.process_block(block_number)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.stats["iterations_failed"] += 1
            logger.error(f"Block {block_number} iteration failed: {e}", exc_info=True)
        else:
            if done:
                self._finish(block_number + 1)
        finally:
            if self._semaphore is not None:
                self._semaphore.release()

    def _finish(self, included_block: int) -> None:
        """Record inclusion once and cancel every other iteration."""
        if self.included_block is not None:
            return
        self.included_block = included_block
        self._stop.set()

        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current:
                task.cancel()

    async def _next_block(self, queue: "asyncio.Queue[int]") -> Optional[int]:
        """Wait for the next block number, or None once stop is requested."""
        get_task = asyncio.ensure_future(queue.get())
        stop_task = asyncio.ensure_future(self._stop.wait())
        try:
            await asyncio.wait(
                {get_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            stop_task.cancel()
            if not get_task.done():
                get_task.cancel()

        if self._stop.is_set():
            return None
        return get_task.result()

    async def run(self) -> Optional[int]:
        """
        Consume blocks until a bundle is included or stop() is called.

        Returns:
            The block the bundle was included in, or None if stopped
        """
        queue: "asyncio.Queue[int]" = asyncio.Queue()
        producer = asyncio.create_task(
            self.chain.watch_blocks(
                queue, self._stop, self.config.block_poll_interval_sec
            )
        )
        logger.info("Listening for new blocks...")

        try:
            while not self._stop.is_set():
                block_number = await self._next_block(queue)
                if block_number is None:
                    break
                self.stats["blocks_seen"] += 1

                if self._semaphore is not None:
                    waited = self._semaphore.locked()
                    await self._semaphore.acquire()
                    if self._stop.is_set():
                        self._semaphore.release()
                        break
                    # A queued newer block means block_number + 1 is already mined
                    if waited and not queue.empty():
                        self._semaphore.release()
                        self.stats["blocks_skipped"] += 1
                        logger.info(
                            f"Skipping block {block_number}: target {block_number + 1} "
                            "was mined while waiting for a free iteration slot"
                        )
                        continue

                task = asyncio.create_task(self._iteration(block_number))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
                self.stats["iterations_started"] += 1
        finally:
            self._stop.set()
            producer.cancel()
            for task in list(self._tasks):
                task.cancel()
            await asyncio.gather(producer, *self._tasks, return_exceptions=True)

        logger.info(f"Reactor stopped: {self.stats}")
        return self.included_block
