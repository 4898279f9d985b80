"""
Unit tests for the EIP-1559 fee model.

Tests cover:
- Base fee ceiling projection
- maxFeePerGas composition
- Fixed-point formatting for logs
- Property-based bounds on the projection
"""

import unittest
from fractions import Fraction

import pytest
from hypothesis import given
from hypothesis import strategies as st

from bundle_arb.fees import (
    ETHER,
    GWEI,
    effective_gas_price,
    max_base_fee_after,
    max_fee_per_gas,
    scale_to_decimal,
)
from bundle_arb.types import FeeParameters


class TestMaxBaseFee(unittest.TestCase):
    """Test the projected base fee ceiling."""

    def test_zero_horizon_is_identity(self):
        self.assertEqual(max_base_fee_after(100, 0), 100)

    def test_two_blocks_ahead(self):
        """100 -> 113 -> 128 (12.5% growth plus one wei per step)."""
        self.assertEqual(max_base_fee_after(100, 1), 113)
        self.assertEqual(max_base_fee_after(100, 2), 128)

    def test_zero_base_fee_still_grows(self):
        self.assertEqual(max_base_fee_after(0, 3), 3)

    def test_realistic_base_fee(self):
        base_fee = 30 * GWEI
        expected = base_fee
        for _ in range(2):
            expected = expected * 1125 // 1000 + 1
        self.assertEqual(max_base_fee_after(base_fee, 2), expected)

    def test_negative_inputs_rejected(self):
        with self.assertRaises(ValueError):
            max_base_fee_after(-1, 2)
        with self.assertRaises(ValueError):
            max_base_fee_after(100, -1)

    def test_huge_values_do_not_overflow(self):
        base_fee = 2**255
        result = max_base_fee_after(base_fee, 5)
        self.assertGreater(result, base_fee)


class TestMaxFeePerGas(unittest.TestCase):
    """Test maxFeePerGas = priority fee + projected base fee."""

    def test_scenario_from_small_base_fee(self):
        params = FeeParameters(base_fee=100, priority_fee=3 * GWEI, horizon_blocks=2)
        self.assertEqual(max_fee_per_gas(params), 3 * GWEI + 128)

    def test_always_at_least_base_plus_priority(self):
        params = FeeParameters(base_fee=25 * GWEI, priority_fee=3 * GWEI, horizon_blocks=2)
        self.assertGreaterEqual(max_fee_per_gas(params), 28 * GWEI)

    def test_changes_with_base_fee(self):
        low = FeeParameters(base_fee=10 * GWEI, priority_fee=3 * GWEI, horizon_blocks=2)
        high = FeeParameters(base_fee=11 * GWEI, priority_fee=3 * GWEI, horizon_blocks=2)
        self.assertLess(max_fee_per_gas(low), max_fee_per_gas(high))


class TestScaleToDecimal(unittest.TestCase):
    """Test fixed-point to float conversion used in logs."""

    def test_four_decimal_base(self):
        self.assertEqual(scale_to_decimal(12345, 4), 1.2345)

    def test_ether_amounts(self):
        self.assertEqual(scale_to_decimal(ETHER // 100), 0.01)
        self.assertEqual(scale_to_decimal(ETHER), 1.0)

    def test_truncates_beyond_four_decimals(self):
        self.assertEqual(scale_to_decimal(123456789, 8), 1.2345)

    def test_gwei_base(self):
        self.assertEqual(scale_to_decimal(3 * GWEI, 9), 3.0)

    def test_zero(self):
        self.assertEqual(scale_to_decimal(0), 0.0)


class TestEffectiveGasPrice(unittest.TestCase):
    def test_division(self):
        self.assertEqual(effective_gas_price(ETHER // 100, 200_000), 50 * GWEI)

    def test_no_gas_used(self):
        self.assertEqual(effective_gas_price(ETHER, 0), 0)


@given(
    base_fee=st.integers(min_value=0, max_value=10**15),
    horizon=st.integers(min_value=0, max_value=20),
)
def test_projection_bounds_protocol_growth(base_fee, horizon):
    """Ceiling is at least base_fee * 1.125**horizon."""
    projected = max_base_fee_after(base_fee, horizon)
    assert Fraction(projected) >= Fraction(base_fee) * Fraction(9, 8) ** horizon


@given(
    base_fee=st.integers(min_value=0, max_value=10**15),
    horizon=st.integers(min_value=0, max_value=19),
)
def test_projection_monotonic_in_horizon(base_fee, horizon):
    assert max_base_fee_after(base_fee, horizon + 1) > max_base_fee_after(base_fee, horizon)


@given(
    base_fee=st.integers(min_value=0, max_value=10**15),
    bump=st.integers(min_value=1, max_value=10**12),
    horizon=st.integers(min_value=0, max_value=10),
)
def test_projection_monotonic_in_base_fee(base_fee, bump, horizon):
    assert max_base_fee_after(base_fee + bump, horizon) >= max_base_fee_after(base_fee, horizon)


@pytest.mark.parametrize("value,base,expected", [(5, 0, 5.0), (19999, 4, 1.9999), (1, 4, 0.0001)])
def test_scale_to_decimal_table(value, base, expected):
    assert scale_to_decimal(value, base) == expected
