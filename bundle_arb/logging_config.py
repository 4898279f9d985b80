"""
Logging setup for the searcher process.

Usage:
    from bundle_arb import logging_config
    logging_config.setup()
"""

import logging
import sys

NOISY_LOGGERS = ("web3", "urllib3", "aiohttp.access", "asyncio")


def setup(level=logging.INFO):
    """
    Install a single stdout handler on the root logger.

    - Lines read `HH:MM:SS | LEVEL | logger | message`
    - RPC and HTTP client chatter stays at WARNING so block banners are readable
    """
    root = logging.getLogger()
    root.setLevel(level)

    # Re-running setup must not stack handlers
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root.addHandler(console)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("bundle_arb").setLevel(level)


def setup_minimal():
    """Warnings and errors only: failed simulations, relay errors, bad blocks."""
    setup(level=logging.WARNING)


def setup_debug():
    """
    Debug output for the searcher, including per-block fee values and web3's
    own request logging.
    """
    setup(level=logging.DEBUG)
    logging.getLogger("web3").setLevel(logging.DEBUG)
