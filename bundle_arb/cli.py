"""
Command line entry point for the bundle searcher.

Start-up order: environment and config, signing accounts, chain connection,
flashloan template and gas estimate, relay session, block reactor. Any
failure before the reactor starts exits with status 1. The process exits
with status 0 once a bundle has been included.

Usage:
  export PRIVATE_KEY="0x..."
  export ETHEREUM_RPC_URL="https://..."
  python run_bundle_arb.py --config configs/bundle_arb.yaml

Environment Variables:
  PRIVATE_KEY: Searcher key that signs the arbitrage transaction (required)
  FLASHBOTS_RELAY_SIGNING_KEY: Relay reputation key (random if unset)
  ETHEREUM_RPC_URL: Chain RPC endpoint (unless rpc_url is in the config)
  BUNDLE_EXECUTOR_ADDRESS: Flash loan contract (unless set in the config)
"""

import argparse
import asyncio
import logging
import sys
from decimal import Decimal
from typing import List, Optional

from dotenv import load_dotenv

from . import logging_config
from .chain import ChainProvider
from .config import BotConfig, BotContext, describe, load_accounts, load_config
from .exceptions import ChainConnectionError, ConfigurationError, EstimationError
from .fees import ETHER
from .pipeline import BundlePipeline
from .reactor import BlockReactor
from .relay import FlashbotsRelay
from .transaction import TransactionBuilder

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Flash loan bundle searcher",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to searcher config YAML file (default: built-in route + environment)",
    )
    parser.add_argument(
        "--relay-url",
        type=str,
        default=None,
        help="Override the relay endpoint",
    )
    parser.add_argument(
        "--max-in-flight",
        type=int,
        default=None,
        help="Max concurrent block iterations, 0 for no limit",
    )
    parser.add_argument(
        "--min-profit-eth",
        type=float,
        default=None,
        help="Skip bundles whose simulated coinbase payment is below this (ETH)",
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    verbosity.add_argument("--quiet", "-q", action="store_true", help="Warnings only")

    return parser.parse_args(argv)


def apply_overrides(config: BotConfig, args: argparse.Namespace) -> BotConfig:
    """Apply command line overrides on top of the loaded config."""
    if args.relay_url:
        config.relay_url = args.relay_url
    if args.max_in_flight is not None:
        if args.max_in_flight < 0:
            raise ConfigurationError("--max-in-flight must be >= 0")
        config.max_in_flight = args.max_in_flight
    if args.min_profit_eth is not None:
        if args.min_profit_eth < 0:
            raise ConfigurationError("--min-profit-eth must be >= 0")
        config.min_coinbase_diff_wei = int(Decimal(str(args.min_profit_eth)) * ETHER)
    return config


async def run_searcher(context: BotContext, chain: ChainProvider) -> int:
    """
    Build and size the flashloan call, then react to blocks until inclusion.

    Returns:
        Process exit status
    """
    config = context.config
    logger.info(f"Searcher Wallet Address: {context.searcher.address}")
    logger.info(f"Flashbots Relay Signing Wallet Address: {context.relay_signer.address}")
    logger.info(f"Config: {describe(config)}")

    builder = TransactionBuilder(chain, config)
    base_tx = builder.build_base_transaction(config.opportunity)
    try:
        base_tx = await builder.estimate_and_size(base_tx, context.searcher.address)
    except EstimationError as e:
        logger.error(f"{e}")
        return 1

    async with FlashbotsRelay(
        chain,
        context.relay_signer,
        config.relay_url,
        timeout_sec=config.relay_timeout_sec,
        poll_interval=config.block_poll_interval_sec,
    ) as relay:
        logger.info(f"Relay client ready: {config.relay_url}")
        pipeline = BundlePipeline(relay, config, context.searcher)
        reactor = BlockReactor(chain, builder, pipeline, base_tx, config)
        included_block = await reactor.run()

    if included_block is not None:
        logger.info(f"Arbitrage bundle landed in block {included_block}")
    else:
        logger.info("Reactor stopped without inclusion")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    if args.verbose:
        logging_config.setup_debug()
    elif args.quiet:
        logging_config.setup_minimal()
    else:
        logging_config.setup()

    load_dotenv()

    try:
        config = apply_overrides(load_config(args.config), args)
        context = load_accounts(config)
        logger.info("Connecting to RPC...")
        chain = ChainProvider.connect(config.rpc_url, config.rpc_timeout_sec)
    except (ConfigurationError, ChainConnectionError) as e:
        logger.error(f"{e}")
        sys.exit(1)

    try:
        status = asyncio.run(run_searcher(context, chain))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
        status = 0

    sys.exit(status)


if __name__ == "__main__":
    main()
