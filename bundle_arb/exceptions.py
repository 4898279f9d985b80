"""
Exception hierarchy for the bundle arbitrage searcher.

Start-up errors (configuration, chain connection, gas estimation) abort the
process before the block loop begins. Errors raised inside a block iteration
are caught at the iteration boundary by the reactor.
"""

from typing import Any, Dict, Optional


class BundleArbError(Exception):
    """Base exception for all bundle searcher errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(BundleArbError):
    """Raised when required configuration is missing or invalid."""

    pass


class ChainConnectionError(BundleArbError):
    """Raised when the chain RPC endpoint cannot be reached."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint


class EstimationError(BundleArbError):
    """Raised when the pre-flight gas estimate fails or returns nothing."""

    def __init__(
        self,
        message: str,
        sender: Optional[str] = None,
        transaction: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.sender = sender
        self.transaction = transaction


class SigningError(BundleArbError):
    """Raised when a bundle cannot be signed."""

    pass


class SimulationError(BundleArbError):
    """Raised when a relay simulation response cannot be interpreted."""

    pass


class RelayError(BundleArbError):
    """Raised when the relay rejects a request or cannot be reached."""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        endpoint: Optional[str] = None,
        code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.method = method
        self.endpoint = endpoint
        self.code = code
