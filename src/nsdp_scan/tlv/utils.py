"""
Low-level helpers for TLV identifiers.

Identifiers are 16-bit unsigned integers. On the command line and in state
files they are written as hex ("0c00", "0x0C00"); in reports as "0x0C00".
"""

import re

TLV_MIN = 0x0000
TLV_MAX = 0xFFFF

_HEX_TLV = re.compile(r"^(0[xX])?([0-9a-fA-F]{1,4})$")


def parse_tlv_hex(text: str) -> int:
    """
    Parse a TLV identifier written in hex.

    Accepts 1 to 4 hex digits with an optional "0x" prefix, e.g. "c00",
    "0C00" or "0x0c00".

    Args:
        text: Hex string.

    Returns:
        Identifier in range 0x0000-0xFFFF.

    Raises:
        ValueError: If text is not a 16-bit hex value.
    """
    match = _HEX_TLV.match(text.strip())
    if not match:
        raise ValueError(f"Invalid TLV hex value: {text!r} (expected 1-4 hex digits)")
    return int(match.group(2), 16)


def is_valid_tlv(value: int) -> bool:
    """True if value fits the 16-bit identifier space."""
    return TLV_MIN <= value <= TLV_MAX


def format_tlv(tlv: int) -> str:
    """Format an identifier as 0xHHHH (uppercase digits)."""
    return f"0x{tlv:04X}"
