"""
Flash loan bundle searcher.

Reacts to every new block by pricing a flash loan arbitrage call for the
next block, simulating it as a private bundle through a Flashbots-compatible
relay and submitting it when the simulation is clean.
"""

from .version import __version__

PROJECT_NAME = "bundle-arb"
VERSION = __version__

# Export main components for easier imports
from .fees import max_base_fee_after, scale_to_decimal
from .pipeline import BundlePipeline, handle_resolution
from .reactor import BlockReactor
from .transaction import TransactionBuilder
from .types import (
    BundleResolution,
    FeeParameters,
    PricedTransaction,
    SimulationResult,
)

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "BlockReactor",
    "BundlePipeline",
    "BundleResolution",
    "FeeParameters",
    "PricedTransaction",
    "SimulationResult",
    "TransactionBuilder",
    "handle_resolution",
    "max_base_fee_after",
    "scale_to_decimal",
]
