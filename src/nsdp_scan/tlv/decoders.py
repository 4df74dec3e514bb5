"""
Semantic decoders for known TLVs.

Each decoder takes the raw value of a TLV and returns a readable string, or
None when the value does not have the expected shape. Decoders are looked up
by name from the catalog config (see DECODER_REGISTRY); the scanner itself
never calls them.
"""

import struct
from typing import Callable, Optional

Decoder = Callable[[bytes], Optional[str]]

PORT_STATUS = {
    0x00: "Down",
    0x01: "Up (10 Mbps Half-Duplex)",
    0x02: "Up (10 Mbps Full-Duplex)",
    0x03: "Up (100 Mbps Half-Duplex)",
    0x04: "Up (100 Mbps Full-Duplex)",
    0x05: "Up (1000 Mbps)",
    0xFF: "Up (10 Gbps)",
}

VLAN_ENGINE = {
    0x00: "Disabled",
    0x01: "Basic Port Based",
    0x02: "Advanced Port Based",
    0x03: "Basic 802.1Q",
    0x04: "Advanced 802.1Q",
}

QOS_ENGINE = {
    0x01: "Port Based",
    0x02: "802.1p",
}

QOS_PRIORITY = {
    0x01: "High",
    0x02: "Medium",
    0x03: "Normal",
    0x04: "Low",
}

# 0x03 is reported by some firmware for "enabled"
ENABLED_DISABLED = {
    0x00: "Disabled",
    0x01: "Enabled",
    0x03: "Enabled",
}

RATE_LIMIT = {
    0: "No Limit",
    1: "512 Kbps",
    2: "1 Mbps",
    3: "2 Mbps",
    4: "4 Mbps",
    5: "8 Mbps",
    6: "16 Mbps",
    7: "32 Mbps",
    8: "64 Mbps",
    9: "128 Mbps",
    10: "256 Mbps",
    11: "512 Mbps",
}


def _lookup(table: dict[int, str], code: int, unknown: str = "Unknown") -> str:
    if code in table:
        return table[code]
    return f"{unknown} (0x{code:02x})"


def decode_string(data: bytes) -> Optional[str]:
    """NUL-terminated ASCII text."""
    text = data.split(b"\x00", 1)[0]
    try:
        decoded = text.decode("ascii")
    except UnicodeDecodeError:
        return None
    return decoded if decoded.isprintable() and decoded else None


def decode_uint8(data: bytes) -> Optional[str]:
    if len(data) != 1:
        return None
    return str(data[0])


def decode_uint16(data: bytes) -> Optional[str]:
    if len(data) != 2:
        return None
    return str(struct.unpack(">H", data)[0])


def decode_ipv4(data: bytes) -> Optional[str]:
    if len(data) != 4:
        return None
    return ".".join(str(b) for b in data)


def decode_mac(data: bytes) -> Optional[str]:
    if len(data) != 6:
        return None
    return ":".join(f"{b:02x}" for b in data)


def decode_port_status(data: bytes) -> Optional[str]:
    """Port link status: 3 bytes per port (port id, speed code, unused)."""
    if not data or len(data) % 3:
        return None
    return "; ".join(
        f"Port {data[i]}: {_lookup(PORT_STATUS, data[i + 1], 'Unknown Status')}"
        for i in range(0, len(data), 3)
    )


def decode_port_statistics(data: bytes) -> Optional[str]:
    """Port counters: port id followed by big-endian 64-bit RX, TX and CRC error counts."""
    if len(data) != 49:
        return None
    rx_bytes, tx_bytes, crc_errors = struct.unpack_from(">QQQ", data, 1)
    return f"Port {data[0]}: RX {rx_bytes} bytes, TX {tx_bytes} bytes, CRC errors {crc_errors}"


def decode_vlan_engine(data: bytes) -> Optional[str]:
    if len(data) != 1:
        return None
    return _lookup(VLAN_ENGINE, data[0], "Unknown Mode")


def decode_qos_engine(data: bytes) -> Optional[str]:
    if len(data) != 1:
        return None
    return _lookup(QOS_ENGINE, data[0], "Unknown Mode")


def decode_qos_priority(data: bytes) -> Optional[str]:
    """Per-port priority: port id, priority code."""
    if len(data) != 2:
        return None
    return f"Port {data[0]}: {_lookup(QOS_PRIORITY, data[1])}"


def decode_enabled_disabled(data: bytes) -> Optional[str]:
    if len(data) != 1:
        return None
    return _lookup(ENABLED_DISABLED, data[0])


def decode_rate_limit(data: bytes) -> Optional[str]:
    """Per-port rate limit: port id, padding, 16-bit limit code in the last two bytes."""
    if len(data) < 3:
        return None
    limit = struct.unpack(">H", data[-2:])[0]
    label = RATE_LIMIT.get(limit, f"Unknown ({limit})")
    return f"Port {data[0]}: {label}"


def decode_igmp_snooping(data: bytes) -> Optional[str]:
    """Status byte at offset 1, VLAN id in bytes 2-3."""
    if len(data) != 4:
        return None
    vlan_id = struct.unpack(">H", data[2:4])[0]
    return f"{_lookup(ENABLED_DISABLED, data[1])} (VLAN {vlan_id})"


def decode_port_mirroring(data: bytes) -> Optional[str]:
    """Destination port in byte 0; all-zero header means mirroring is off."""
    if len(data) < 4:
        return None
    if not any(data[:4]):
        return "Disabled"
    return f"Enabled (Destination Port: {data[0]})"


DECODER_REGISTRY: dict[str, Decoder] = {
    "string": decode_string,
    "uint8": decode_uint8,
    "uint16": decode_uint16,
    "ipv4": decode_ipv4,
    "mac": decode_mac,
    "port_status": decode_port_status,
    "port_statistics": decode_port_statistics,
    "vlan_engine": decode_vlan_engine,
    "qos_engine": decode_qos_engine,
    "qos_priority": decode_qos_priority,
    "enabled_disabled": decode_enabled_disabled,
    "rate_limit": decode_rate_limit,
    "igmp_snooping": decode_igmp_snooping,
    "port_mirroring": decode_port_mirroring,
}
