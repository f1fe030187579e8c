"""Hex and integer helpers shared by the codec, RPC client and drivers."""

from typing import Optional, Union


def parse_int(n: Union[int, str]) -> int:
    return n if isinstance(n, int) else int(n, 0)


def strip_hex_prefix(value: str) -> str:
    return value[2:] if value[:2] in ("0x", "0X") else value


def add_hex_prefix(value: str) -> str:
    return value if value[:2] in ("0x", "0X") else "0x" + value


def to_quantity(value: Union[int, str]) -> str:
    """Encode an integer as a JSON-RPC quantity (``0x``-prefixed, no leading zeros)."""
    return hex(parse_int(value))


def from_quantity(value: Optional[str]) -> Optional[int]:
    """Decode a JSON-RPC quantity; ``None`` and ``"0x"`` pass through as None and 0."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    digits = strip_hex_prefix(value)
    return int(digits, 16) if digits else 0
