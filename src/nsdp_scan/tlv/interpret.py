"""
Heuristic interpretation of raw TLV values.

Unknown TLVs come back as opaque bytes. This module proposes readings based
on length and content only (string, unsigned integers, IPv4, MAC). Several
readings may apply to one value; they are advisory and never disambiguated.
"""

PRINTABLE_MIN = 32
PRINTABLE_MAX = 126

INTERPRETATION_SEPARATOR = " | "


def is_printable_ascii(data: bytes) -> bool:
    """True if data is non-empty and every byte is printable ASCII (32-126)."""
    return len(data) > 0 and all(PRINTABLE_MIN <= b <= PRINTABLE_MAX for b in data)


def interpret(data: bytes) -> list[str]:
    """
    Propose human-readable readings of a TLV value.

    Pure function: the same bytes always give the same list.

    Args:
        data: Raw value bytes.

    Returns:
        Candidate readings, possibly empty. Order: string first, then the
        length-based readings.

    Example:
        interpret(b"\\xc0\\xa8\\x01\\x64") -> ["Uint32: 3232235876", "IP: 192.168.1.100"]
    """
    readings: list[str] = []
    if is_printable_ascii(data):
        readings.append(f'String: "{data.decode("ascii")}"')

    length = len(data)
    if length == 1:
        readings.append(f"Uint8: {data[0]}")
    elif length == 2:
        readings.append(f"Uint16: {int.from_bytes(data, 'big')}")
    elif length == 4:
        readings.append(f"Uint32: {int.from_bytes(data, 'big')}")
        readings.append("IP: " + ".".join(str(b) for b in data))
    elif length == 6:
        readings.append("MAC: " + ":".join(f"{b:02x}" for b in data))

    return readings


def format_interpretation(data: bytes) -> str:
    """Join all readings of data with " | ". Empty string if there are none."""
    return INTERPRETATION_SEPARATOR.join(interpret(data))
