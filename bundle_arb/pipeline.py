"""
Per-block bundle pipeline: sign, simulate, submit, wait, branch on outcome.

A simulation that errors or reverts is never submitted. Relay submission
errors propagate to the caller (the reactor's iteration boundary). The
outcome handler is the only place that decides the searcher is done.
"""

import logging
from typing import Any, Dict

from eth_account.signers.local import LocalAccount

from .config import BotConfig
from .exceptions import SigningError
from .fees import effective_gas_price, scale_to_decimal
from .relay import FlashbotsRelay
from .types import BundleEntry, BundleResolution, PricedTransaction, SimulationResult

logger = logging.getLogger(__name__)


class BundlePipeline:
    """Runs one bundle attempt for one target block."""

    def __init__(self, relay: FlashbotsRelay, config: BotConfig, searcher: LocalAccount):
        self.relay = relay
        self.config = config
        self.searcher = searcher

    async def run(self, priced_tx: PricedTransaction, target_block: int) -> bool:
        """
        Attempt to land `priced_tx` in `target_block`.

        Returns:
            True when the bundle was included and the searcher should stop.
            False when the attempt was abandoned before submission (signing
            failure, failed simulation, profit gate) or the bundle missed.

        Raises:
            RelayError: If the relay rejects the submission
            SimulationError: If the relay returns no simulation results
        """
        try:
            signed_bundle = await self.relay.sign_bundle(
                [BundleEntry(signer=self.searcher, transaction=priced_tx)]
            )
        except SigningError as e:
            logger.error(f"Bundle signing failed, skipping block {target_block}: {e}")
            return False

        simulation = await self.relay.simulate(signed_bundle, target_block)
        if simulation.error is not None or simulation.first_revert_index is not None:
            logger.warning(
                f"Simulation failed for block {target_block}: "
                f"{simulation_summary(simulation)}"
            )
            return False

        if not self._is_profitable(simulation, target_block):
            return False

        submission = await self.relay.send_raw_bundle(signed_bundle, target_block)
        logger.info(
            f"Bundle {submission.bundle_hash} submitted for block {target_block}, waiting"
        )

        resolution = await submission.wait()
        logger.info(f"Wait Response: {resolution!r}")

        return await handle_resolution(
            resolution, self.relay, submission.bundle_hash, target_block
        )

    def _is_profitable(self, simulation: SimulationResult, target_block: int) -> bool:
        """Log simulated proposer payment and apply the optional minimum."""
        gas_price = effective_gas_price(
            simulation.coinbase_diff, simulation.total_gas_used
        )
        logger.info(
            f"Simulation ok, profit sent to miner: "
            f"{scale_to_decimal(simulation.coinbase_diff)}, "
            f"effective gas price: {scale_to_decimal(gas_price, 9)} GWEI"
        )

        target_payment = self.config.opportunity.coinbase_payment_wei
        if target_payment and simulation.coinbase_diff < target_payment:
            logger.warning(
                f"Simulated coinbase payment {scale_to_decimal(simulation.coinbase_diff)} ETH "
                f"is below target {scale_to_decimal(target_payment)} ETH"
            )

        minimum = self.config.min_coinbase_diff_wei
        if minimum and simulation.coinbase_diff < minimum:
            logger.info(
                f"Skipping block {target_block}: coinbase diff "
                f"{simulation.coinbase_diff} wei < minimum {minimum} wei"
            )
            return False
        return True


async def handle_resolution(
    resolution: Any,
    relay: FlashbotsRelay,
    bundle_hash: str,
    target_block: int,
) -> bool:
    """
    Act on a bundle resolution.

    Returns:
        True only for BUNDLE_INCLUDED, meaning the searcher should stop
    """
    if resolution == BundleResolution.BUNDLE_INCLUDED:
        logger.info(f"Bundle included in block {target_block}, successfully done!")
        return True

    if resolution in (
        BundleResolution.BLOCK_PASSED_WITHOUT_INCLUSION,
        BundleResolution.ACCOUNT_NONCE_TOO_HIGH,
    ):
        logger.info(
            f"Bundle not included in block {target_block} "
            f"({BundleResolution(resolution).name})"
        )
        stats = await collect_stats(relay, bundle_hash, target_block)
        logger.info(f"Relay stats: {stats}")
        return False

    logger.warning(f"Unrecognized bundle resolution {resolution!r} for block {target_block}")
    return False


async def collect_stats(
    relay: FlashbotsRelay, bundle_hash: str, block_number: int
) -> Dict[str, Any]:
    """Fetch bundle and user stats; failures are reported inline, not raised."""
    stats: Dict[str, Any] = {}
    try:
        stats["bundleStats"] = await relay.get_bundle_stats(bundle_hash, block_number)
    except Exception as e:
        logger.warning(f"Failed to fetch bundle stats: {e}")
        stats["bundleStats"] = None
    try:
        stats["userStats"] = await relay.get_user_stats(block_number)
    except Exception as e:
        logger.warning(f"Failed to fetch user stats: {e}")
        stats["userStats"] = None
    return stats


def simulation_summary(simulation: SimulationResult) -> Dict[str, Any]:
    """Loggable view of a failed simulation."""
    summary: Dict[str, Any] = {
        "bundle_hash": simulation.bundle_hash,
        "error": simulation.error,
        "first_revert_index": simulation.first_revert_index,
    }
    if simulation.first_revert_index is not None:
        failed = simulation.results[simulation.first_revert_index]
        summary["revert"] = failed.get("revert") or failed.get("error")
        summary["tx_hash"] = failed.get("txHash")
    return summary
