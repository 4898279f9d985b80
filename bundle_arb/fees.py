"""
EIP-1559 fee model.

All on-chain quantities are plain Python ints (arbitrary precision), so the
256-bit range never overflows. Floats appear only in scale_to_decimal, which
is for log output and must never feed back into a transaction.
"""

from .types import FeeParameters

GWEI = 10**9
ETHER = 10**18

# A block's base fee can move by at most 1/8 (12.5%) relative to its parent
BASE_FEE_NUMERATOR = 1125
BASE_FEE_DENOMINATOR = 1000


def max_base_fee_after(base_fee: int, blocks_ahead: int) -> int:
    """
    Upper bound of the base fee `blocks_ahead` blocks from now.

    Each step applies the maximum 12.5% increase and adds 1 wei so integer
    truncation can never leave the ceiling below the protocol maximum.

    Examples:
        >>> max_base_fee_after(100, 0)
        100
        >>> max_base_fee_after(100, 2)
        128
    """
    if base_fee < 0:
        raise ValueError(f"base_fee must be non-negative, got {base_fee}")
    if blocks_ahead < 0:
        raise ValueError(f"blocks_ahead must be non-negative, got {blocks_ahead}")

    max_fee = int(base_fee)
    for _ in range(blocks_ahead):
        max_fee = max_fee * BASE_FEE_NUMERATOR // BASE_FEE_DENOMINATOR + 1
    return max_fee


def max_fee_per_gas(fee_parameters: FeeParameters) -> int:
    """maxFeePerGas for a block: priority fee on top of the projected base fee ceiling."""
    return fee_parameters.priority_fee + max_base_fee_after(
        fee_parameters.base_fee, fee_parameters.horizon_blocks
    )


def scale_to_decimal(value: int, base: int = 18) -> float:
    """
    Convert a fixed-point amount scaled by 10**base to a float, truncated to 4 decimals.

    Examples:
        >>> scale_to_decimal(12345, 4)
        1.2345
        >>> scale_to_decimal(10**16)
        0.01
    """
    divisor = 10**base
    return (int(value) * 10000 // divisor) / 10000


def effective_gas_price(coinbase_diff: int, total_gas_used: int) -> int:
    """Wei paid to the block proposer per unit of gas (0 if no gas was used)."""
    if total_gas_used <= 0:
        return 0
    return coinbase_diff // total_gas_used
