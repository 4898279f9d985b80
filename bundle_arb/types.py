"""
Core data types for the bundle pipeline.
"""

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any, Dict, List, Optional

from eth_account.signers.local import LocalAccount

EIP1559_TX_TYPE = 2


class BundleResolution(IntEnum):
    """
    Final state of a submitted bundle for its target block.

    Values follow the relay provider convention (0 = included).
    """

    BUNDLE_INCLUDED = 0
    BLOCK_PASSED_WITHOUT_INCLUSION = 1
    ACCOUNT_NONCE_TOO_HIGH = 2


@dataclass(frozen=True)
class FeeParameters:
    """
    Fee inputs for one block.

    Attributes:
        base_fee: Base fee per gas of the observed block (wei)
        priority_fee: Constant tip per gas paid to the proposer (wei)
        horizon_blocks: How many blocks of base fee growth to price for
    """

    base_fee: int
    priority_fee: int
    horizon_blocks: int


@dataclass(frozen=True)
class Opportunity:
    """
    Hard-coded flash loan route handed to the arbitrage contract.

    Attributes:
        token1: Token borrowed by the flash loan
        token2: Intermediate token of the round trip
        borrow_amount: Flash loan size in token1 base units
        router1: Router used for the first swap
        router2: Router used for the second swap
        coinbase_payment_wei: Payment to the block proposer the route is expected to make
    """

    token1: str
    token2: str
    borrow_amount: int
    router1: str
    router2: str
    coinbase_payment_wei: int = 0


@dataclass(frozen=True)
class BaseTransaction:
    """
    Unpriced flashloan call, built once and reused for every block.

    gas_price and the initial gas_limit only serve the pre-flight estimate.
    """

    to: str
    data: str
    gas_price: int
    gas_limit: int

    def to_estimate_params(self, sender: str) -> Dict[str, Any]:
        """Transaction dict for eth_estimateGas as if sent from `sender`."""
        return {
            "from": sender,
            "to": self.to,
            "data": self.data,
            "gasPrice": self.gas_price,
            "gas": self.gas_limit,
        }

    def with_gas_limit(self, gas_limit: int) -> "BaseTransaction":
        return replace(self, gas_limit=gas_limit)


@dataclass(frozen=True)
class PricedTransaction:
    """EIP-1559 transaction priced for one block."""

    to: str
    data: str
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    gas_limit: int
    chain_id: int
    type: int = EIP1559_TX_TYPE

    def to_tx_params(self, nonce: int) -> Dict[str, Any]:
        """Transaction dict accepted by eth_account's sign_transaction."""
        return {
            "to": self.to,
            "data": self.data,
            "value": 0,
            "type": self.type,
            "maxFeePerGas": self.max_fee_per_gas,
            "maxPriorityFeePerGas": self.max_priority_fee_per_gas,
            "gas": self.gas_limit,
            "chainId": self.chain_id,
            "nonce": nonce,
        }


@dataclass(frozen=True)
class BundleEntry:
    """One transaction of a bundle together with the account that signs it."""

    signer: LocalAccount
    transaction: PricedTransaction


@dataclass(frozen=True)
class SignedBundleTransaction:
    signer_address: str
    nonce: int
    tx_hash: str
    raw_transaction: str


@dataclass(frozen=True)
class SignedBundle:
    """Ordered, signed bundle ready for simulation and submission."""

    transactions: List[SignedBundleTransaction]

    @property
    def raw_transactions(self) -> List[str]:
        return [tx.raw_transaction for tx in self.transactions]

    @property
    def tx_hashes(self) -> List[str]:
        return [tx.tx_hash for tx in self.transactions]


@dataclass
class SimulationResult:
    """
    Relay simulation of a bundle against a target block.

    Attributes:
        succeeded: True when there is no top-level error and no reverted entry
        first_revert_index: Index of the first entry that reverted, if any
        coinbase_diff: Net wei transferred to the block proposer
        total_gas_used: Gas used by the whole bundle
        bundle_hash: Relay identifier of the bundle
        results: Per-transaction simulation entries as returned by the relay
        error: Top-level error message, if the relay returned one
        raw: Full relay payload, kept for diagnostics
    """

    succeeded: bool
    first_revert_index: Optional[int] = None
    coinbase_diff: int = 0
    total_gas_used: int = 0
    bundle_hash: str = ""
    results: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)
