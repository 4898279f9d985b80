"""
Configuration loading and validation for the bundle searcher.

Settings come from an optional YAML file; secrets (signing keys, RPC URL)
come from environment variables so they never live in the config file.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import yaml
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from .exceptions import ConfigurationError
from .fees import ETHER, GWEI
from .types import Opportunity
from .utils import short_hex

logger = logging.getLogger(__name__)

DEFAULT_RELAY_URL = "https://relay.flashbots.net"
DEFAULT_BUNDLE_EXECUTOR_ADDRESS = "0x35ad48E5c15d5c2786CdE9b56C6483C85C4dd34D"

DEFAULT_OPPORTUNITY = {
    "token1": "0x92B30dF9b169FAC44c86983B2aAAa465FDC2CDB8",
    "token2": "0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984",
    "borrow_amount": 10 * ETHER,
    "router1": "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
    "router2": "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
    "coinbase_payment_wei": ETHER // 100,
}


class ConfigError(ConfigurationError):
    """Raised when config is invalid or missing required fields."""

    pass


class BotConfig:
    """
    Parsed and validated searcher configuration.

    Attributes:
        rpc_url: HTTP(S) RPC endpoint of the chain provider
        chain_id: Chain id written into every transaction
        relay_url: Flashbots-compatible relay endpoint
        contract_address: Deployed bundle executor (flash loan) contract
        private_key_env: Env var holding the searcher's private key
        relay_signing_key_env: Env var holding the relay reputation key
        priority_fee: Constant maxPriorityFeePerGas in wei
        blocks_in_the_future: Base fee horizon used for maxFeePerGas
        legacy_gas_price: Placeholder gas price for the pre-flight estimate (wei)
        initial_gas_limit: Placeholder gas limit for the pre-flight estimate
        large_estimate_threshold: Estimates above this are logged as suspicious
        gas_limit_multiplier: Outgoing gas limit = estimate * multiplier
        block_poll_interval_sec: Seconds between block number polls
        rpc_timeout_sec: HTTP timeout for chain RPC calls
        relay_timeout_sec: HTTP timeout for relay calls
        max_in_flight: Max concurrent block iterations (0 = unbounded)
        min_coinbase_diff_wei: Skip submission below this simulated payment (0 = off)
        opportunity: Flash loan route parameters
    """

    def __init__(
        self,
        config_dict: Optional[Dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Parse and validate config from dictionary.

        Args:
            config_dict: Loaded YAML config (may be empty)
            environ: Environment mapping, defaults to os.environ

        Raises:
            ConfigError: If required fields missing or invalid
        """
        config_dict = dict(config_dict or {})
        env = os.environ if environ is None else environ

        # Network
        self.rpc_url_env: str = config_dict.get("rpc_url_env", "ETHEREUM_RPC_URL")
        self.rpc_url: str = config_dict.get("rpc_url") or env.get(self.rpc_url_env, "")
        if not self.rpc_url:
            raise ConfigError(
                f"RPC URL environment variable {self.rpc_url_env} not set and no rpc_url in config"
            )
        self.chain_id: int = self._get_int(config_dict, "chain_id", 1, minimum=1)
        self.relay_url: str = config_dict.get("relay_url", DEFAULT_RELAY_URL)
        if not self.relay_url.startswith(("http://", "https://")):
            raise ConfigError(f"relay_url must be an http(s) URL, got '{self.relay_url}'")

        self.contract_address: str = self._checksum(
            "contract_address",
            config_dict.get("contract_address")
            or env.get("BUNDLE_EXECUTOR_ADDRESS")
            or DEFAULT_BUNDLE_EXECUTOR_ADDRESS,
        )

        # Signing keys (names only, values are read by load_accounts)
        self.private_key_env: str = config_dict.get("private_key_env", "PRIVATE_KEY")
        self.relay_signing_key_env: str = config_dict.get(
            "relay_signing_key_env", "FLASHBOTS_RELAY_SIGNING_KEY"
        )

        # Gas / fee settings
        self.priority_fee: int = self._gwei(config_dict, "priority_fee_gwei", 3)
        self.blocks_in_the_future: int = self._get_int(
            config_dict, "blocks_in_the_future", 2, minimum=0
        )
        self.legacy_gas_price: int = self._gwei(config_dict, "legacy_gas_price_gwei", 12)
        self.initial_gas_limit: int = self._get_int(
            config_dict, "initial_gas_limit", 1_000_000, minimum=21_000
        )
        self.large_estimate_threshold: int = self._get_int(
            config_dict, "large_estimate_threshold", 1_400_000, minimum=0
        )
        self.gas_limit_multiplier: int = self._get_int(
            config_dict, "gas_limit_multiplier", 2, minimum=1
        )

        # Loop settings
        self.block_poll_interval_sec: float = self._get_float(
            config_dict, "block_poll_interval_sec", 1.0
        )
        self.rpc_timeout_sec: float = self._get_float(config_dict, "rpc_timeout_sec", 20.0)
        self.relay_timeout_sec: float = self._get_float(
            config_dict, "relay_timeout_sec", 10.0
        )
        self.max_in_flight: int = self._get_int(config_dict, "max_in_flight", 3, minimum=0)

        # Submission policy
        self.min_coinbase_diff_wei: int = self._get_int(
            config_dict, "min_coinbase_diff_wei", 0, minimum=0
        )

        self.opportunity: Opportunity = self._parse_opportunity(
            config_dict.get("opportunity", {})
        )

    @staticmethod
    def _get_int(d: Dict, key: str, default: int, minimum: Optional[int] = None) -> int:
        """Get integer config field with type and range validation."""
        val = d.get(key, default)
        if isinstance(val, bool) or not isinstance(val, (int, str)):
            raise ConfigError(
                f"Config field '{key}' must be int, got {type(val).__name__}"
            )
        try:
            parsed = int(val)
        except ValueError as e:
            raise ConfigError(f"Config field '{key}' must be int, got '{val}'") from e
        if minimum is not None and parsed < minimum:
            raise ConfigError(f"Config field '{key}' must be >= {minimum}, got {parsed}")
        return parsed

    @staticmethod
    def _get_float(d: Dict, key: str, default: float) -> float:
        """Get positive float config field."""
        val = d.get(key, default)
        try:
            parsed = float(val)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Config field '{key}' must be a number, got '{val}'") from e
        if parsed <= 0:
            raise ConfigError(f"Config field '{key}' must be > 0, got {parsed}")
        return parsed

    @classmethod
    def _gwei(cls, d: Dict, key: str, default: float) -> int:
        """Read a gwei amount and return it in wei."""
        val = d.get(key, default)
        try:
            gwei = float(val)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Config field '{key}' must be a number, got '{val}'") from e
        if gwei < 0:
            raise ConfigError(f"Config field '{key}' must be >= 0, got {gwei}")
        return int(round(gwei * GWEI))

    @staticmethod
    def _checksum(key: str, address: Any) -> str:
        """Validate an address field and return its checksum form."""
        if not isinstance(address, str) or not Web3.is_address(address):
            raise ConfigError(f"Config field '{key}' is not a valid address: {address}")
        return Web3.to_checksum_address(address)

    @classmethod
    def _parse_opportunity(cls, opportunity_raw: Dict[str, Any]) -> Opportunity:
        """Parse the flash loan route, falling back to the built-in route."""
        if not isinstance(opportunity_raw, dict):
            raise ConfigError("opportunity config must be a dict")

        merged = dict(DEFAULT_OPPORTUNITY)
        merged.update(opportunity_raw)

        return Opportunity(
            token1=cls._checksum("opportunity.token1", merged["token1"]),
            token2=cls._checksum("opportunity.token2", merged["token2"]),
            borrow_amount=cls._get_int(merged, "borrow_amount", 0, minimum=1),
            router1=cls._checksum("opportunity.router1", merged["router1"]),
            router2=cls._checksum("opportunity.router2", merged["router2"]),
            coinbase_payment_wei=cls._get_int(
                merged, "coinbase_payment_wei", 0, minimum=0
            ),
        )


@dataclass(frozen=True)
class BotContext:
    """
    Process-wide, read-only state built once at start-up.

    Attributes:
        config: Validated configuration
        searcher: Account that signs the arbitrage transaction
        relay_signer: Account that signs relay requests (reputation identity)
    """

    config: BotConfig
    searcher: LocalAccount
    relay_signer: LocalAccount


def load_accounts(
    config: BotConfig, environ: Optional[Mapping[str, str]] = None
) -> BotContext:
    """
    Load the searcher and relay signing accounts from the environment.

    A missing relay signing key is replaced by a random one; the relay then
    sees a fresh identity with no reputation.

    Raises:
        ConfigurationError: If the searcher key is missing or malformed
    """
    env = os.environ if environ is None else environ

    private_key = env.get(config.private_key_env, "")
    if not private_key:
        raise ConfigurationError(
            f"Must provide {config.private_key_env} environment variable"
        )
    try:
        searcher = Account.from_key(private_key)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(
            f"Invalid private key in {config.private_key_env}: {e}"
        ) from e

    relay_key = env.get(config.relay_signing_key_env, "")
    if relay_key:
        try:
            relay_signer = Account.from_key(relay_key)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(
                f"Invalid relay signing key in {config.relay_signing_key_env}: {e}"
            ) from e
    else:
        logger.warning(
            f"{config.relay_signing_key_env} not set, using a random relay signing key; "
            "this searcher will not build relay reputation"
        )
        relay_signer = Account.create()

    return BotContext(config=config, searcher=searcher, relay_signer=relay_signer)


def load_config(
    config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> BotConfig:
    """
    Load and validate config from YAML file.

    Args:
        config_path: Path to config YAML file (None = defaults + environment)
        environ: Environment mapping, defaults to os.environ

    Returns:
        Validated BotConfig instance

    Raises:
        ConfigError: If config invalid or file not found
    """
    if config_path is None:
        return BotConfig({}, environ)

    if not os.path.exists(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML: {e}") from e

    if config_dict is None:
        config_dict = {}
    if not isinstance(config_dict, dict):
        raise ConfigError("Config file must contain a YAML dictionary")

    return BotConfig(config_dict, environ)


def describe(config: BotConfig) -> Dict[str, Any]:
    """Loggable summary of the configuration (no secrets)."""
    return {
        "chain_id": config.chain_id,
        "relay_url": config.relay_url,
        "contract": short_hex(config.contract_address),
        "priority_fee_gwei": config.priority_fee / GWEI,
        "blocks_in_the_future": config.blocks_in_the_future,
        "max_in_flight": config.max_in_flight,
        "min_coinbase_diff_wei": config.min_coinbase_diff_wei,
    }
