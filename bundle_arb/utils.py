"""
Small helpers shared by the bundle searcher modules.
"""

from typing import Any, Union

from hexbytes import HexBytes
from web3 import Web3


def short_hex(value: str, head: int = 6, tail: int = 4) -> str:
    """Shorten a hex string (address, hash, key) for log output."""
    if not value or len(value) <= head + tail + 3:
        return value
    return f"{value[:head]}...{value[-tail:]}"


def to_hex_str(value: Union[bytes, HexBytes, str]) -> str:
    """Render bytes as a 0x-prefixed hex string (hexbytes>=1.0 drops the prefix)."""
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    return Web3.to_hex(value)


def parse_quantity(value: Any) -> int:
    """
    Parse an integer quantity from a JSON-RPC payload.

    Relays return some quantities as decimal strings ("18615100000000") and
    others as hex strings ("0x5b8d80") or plain integers.
    """
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.startswith(("0x", "0X")):
        return int(text, 16)
    if text == "":
        return 0
    return int(text)
