"""
NSDP wire format: packet header, TLV entries and end marker.

A packet is a fixed 32-byte header followed by TLV entries and a
0xFFFF/0x0000 end marker. All multi-byte integers are big-endian.

Read requests carry TLVs with empty values; the device answers with the same
tags filled in. Unknown tags are kept as plain integers so the scanner can
probe the whole 16-bit space.
"""

import logging
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Union

from .errors import MalformedPacketError

logger = logging.getLogger(__name__)

NSDP_SIGNATURE = b"NSDP"
NSDP_VERSION = 0x01

CLIENT_PORT = 63321
SERVER_PORT = 63322

HEADER_FORMAT = ">BBH4s6s6sHH4s4s"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
TLV_HEADER_FORMAT = ">HH"
TLV_HEADER_SIZE = struct.calcsize(TLV_HEADER_FORMAT)

BROADCAST_MAC = b"\x00" * 6


class Op(IntEnum):
    """Operation code in header byte 1."""

    READ_REQUEST = 0x01
    READ_RESPONSE = 0x02
    WRITE_REQUEST = 0x03
    WRITE_RESPONSE = 0x04


class Tag(IntEnum):
    """Well-known TLV tags used outside the scan itself."""

    START_OF_MARK = 0x0000
    MODEL = 0x0001
    HOSTNAME = 0x0003
    MAC = 0x0004
    LOCATION = 0x0005
    IP_ADDRESS = 0x0006
    NETMASK = 0x0007
    GATEWAY = 0x0008
    DHCP_MODE = 0x000B
    FIRMWARE_VERSION = 0x000D
    PORT_COUNT = 0x6000
    END_OF_MARK = 0xFFFF


@dataclass(frozen=True)
class TLVEntry:
    """One Type-Length-Value entry. Empty value means "read" in requests."""

    tag: int
    value: bytes = b""

    def encode(self) -> bytes:
        """Encode as 4-byte tag/length header followed by the value."""
        return struct.pack(TLV_HEADER_FORMAT, int(self.tag), len(self.value)) + self.value


def decode_tlvs(data: bytes) -> list[TLVEntry]:
    """
    Decode TLV entries until the end marker or the end of the buffer.

    Args:
        data: Packet body (everything after the 32-byte header).

    Returns:
        TLV entries in packet order, end marker excluded.

    Raises:
        MalformedPacketError: If a header or value is truncated.
    """
    entries: list[TLVEntry] = []
    offset = 0
    while offset < len(data):
        if len(data) - offset < TLV_HEADER_SIZE:
            raise MalformedPacketError(
                f"Truncated TLV header at offset {offset} ({len(data) - offset} bytes left)"
            )
        tag, length = struct.unpack_from(TLV_HEADER_FORMAT, data, offset)
        offset += TLV_HEADER_SIZE
        if tag == Tag.END_OF_MARK:
            break
        if len(data) - offset < length:
            raise MalformedPacketError(
                f"TLV 0x{tag:04X} declares {length} bytes, only {len(data) - offset} available"
            )
        entries.append(TLVEntry(tag=tag, value=data[offset:offset + length]))
        offset += length
    return entries


@dataclass
class NSDPPacket:
    """An NSDP packet: header fields plus TLV entries."""

    op: Op
    client_mac: bytes
    server_mac: bytes = BROADCAST_MAC
    sequence: int = 0
    result: int = 0
    tlvs: list[TLVEntry] = field(default_factory=list)

    def add_tlv(self, tag: Union[Tag, int], value: bytes = b"") -> None:
        """Append a TLV entry (empty value for read requests)."""
        self.tlvs.append(TLVEntry(tag=int(tag), value=value))

    def get(self, tag: Union[Tag, int]) -> Optional[bytes]:
        """Return the value of the first entry with this tag, or None."""
        for tlv in self.tlvs:
            if tlv.tag == int(tag):
                return tlv.value
        return None

    def encode(self) -> bytes:
        """Encode header, TLV body and end marker."""
        header = struct.pack(
            HEADER_FORMAT,
            NSDP_VERSION,
            int(self.op),
            self.result,
            b"\x00" * 4,
            self.client_mac,
            self.server_mac,
            0,
            self.sequence,
            NSDP_SIGNATURE,
            b"\x00" * 4,
        )
        body = b"".join(tlv.encode() for tlv in self.tlvs)
        return header + body + struct.pack(TLV_HEADER_FORMAT, Tag.END_OF_MARK, 0)

    @classmethod
    def decode(cls, data: bytes) -> "NSDPPacket":
        """
        Decode a datagram into a packet.

        Args:
            data: Raw datagram bytes.

        Returns:
            Decoded packet.

        Raises:
            MalformedPacketError: On short data, bad signature, unknown op code
                or truncated TLVs.
        """
        if len(data) < HEADER_SIZE:
            raise MalformedPacketError(
                f"Packet too short: {len(data)} bytes (need at least {HEADER_SIZE})"
            )
        (
            _version,
            op_raw,
            result,
            _reserved_1,
            client_mac,
            server_mac,
            _reserved_2,
            sequence,
            signature,
            _reserved_3,
        ) = struct.unpack_from(HEADER_FORMAT, data, 0)

        if signature != NSDP_SIGNATURE:
            raise MalformedPacketError(f"Invalid signature {signature!r}")
        try:
            op = Op(op_raw)
        except ValueError as e:
            raise MalformedPacketError(f"Unknown op code 0x{op_raw:02x}") from e

        return cls(
            op=op,
            client_mac=client_mac,
            server_mac=server_mac,
            sequence=sequence,
            result=result,
            tlvs=decode_tlvs(data[HEADER_SIZE:]),
        )


def build_read_request(
    client_mac: bytes,
    tags: list[int],
    sequence: int,
    server_mac: bytes = BROADCAST_MAC,
) -> NSDPPacket:
    """Build a read request asking for each tag with an empty value."""
    packet = NSDPPacket(
        op=Op.READ_REQUEST,
        client_mac=client_mac,
        server_mac=server_mac,
        sequence=sequence,
    )
    for tag in tags:
        packet.add_tlv(tag)
    return packet


def mac_to_str(mac: bytes) -> str:
    """Format a 6-byte MAC as lowercase colon-separated hex."""
    return ":".join(f"{b:02x}" for b in mac)


def mac_from_str(mac: str) -> bytes:
    """
    Parse "aa:bb:cc:dd:ee:ff" (or dash separated) into 6 bytes.

    Raises:
        ValueError: If the text is not a 6-octet MAC address.
    """
    octets = bytes.fromhex(mac.replace(":", "").replace("-", ""))
    if len(octets) != 6:
        raise ValueError(f"Invalid MAC address: {mac!r}")
    return octets
