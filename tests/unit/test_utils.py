"""Unit tests for bundle_arb.utils."""

import pytest
from hexbytes import HexBytes

from bundle_arb.utils import parse_quantity, short_hex, to_hex_str


class TestShortHex:
    def test_address(self):
        assert short_hex("0x35ad48E5c15d5c2786CdE9b56C6483C85C4dd34D") == "0x35ad...d34D"

    def test_short_values_unchanged(self):
        assert short_hex("0x1234") == "0x1234"
        assert short_hex("") == ""


class TestToHexStr:
    def test_bytes(self):
        assert to_hex_str(b"\x01\x02") == "0x0102"

    def test_hexbytes(self):
        assert to_hex_str(HexBytes("0xabcd")) == "0xabcd"

    def test_string_gets_prefix(self):
        assert to_hex_str("abcd") == "0xabcd"
        assert to_hex_str("0xabcd") == "0xabcd"


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, 0),
        (42, 42),
        ("18615100000000", 18615100000000),
        ("0x5b8d80", 6000000),
        ("", 0),
    ],
)
def test_parse_quantity(value, expected):
    assert parse_quantity(value) == expected


def test_parse_quantity_rejects_garbage():
    with pytest.raises(ValueError):
        parse_quantity("not a number")
