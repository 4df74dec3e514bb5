"""
NSDP transport: asyncio UDP connection, discovery and single-TLV reads.

All traffic goes to the broadcast address on the server port; devices are
addressed by putting their MAC into the request header. Binding to the
client port (63321) and to a specific interface usually needs root or
CAP_NET_RAW on Linux.
"""

import asyncio
import logging
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .errors import (
    MalformedPacketError,
    NSDPConfigError,
    NSDPResponseError,
    NSDPTimeoutError,
    NSDPTransportError,
    TLVNotInResponseError,
)
from .protocol import (
    BROADCAST_MAC,
    CLIENT_PORT,
    SERVER_PORT,
    NSDPPacket,
    Op,
    Tag,
    build_read_request,
    mac_from_str,
    mac_to_str,
)

logger = logging.getLogger(__name__)

BROADCAST_ADDRESS = "255.255.255.255"

# Identity tags requested by the discovery broadcast
DISCOVERY_TAGS: list[int] = [Tag.MODEL, Tag.HOSTNAME, Tag.MAC, Tag.IP_ADDRESS]


@dataclass(frozen=True)
class DiscoveredDevice:
    """A device that answered the discovery broadcast."""

    mac: str
    name: Optional[str] = None
    model: Optional[str] = None
    ip: Optional[str] = None

    @property
    def mac_bytes(self) -> bytes:
        return mac_from_str(self.mac)


def decode_text(value: Optional[bytes]) -> Optional[str]:
    """Decode a NUL-padded ASCII TLV value. Returns None for empty values."""
    if not value:
        return None
    text = value.split(b"\x00", 1)[0].decode("ascii", errors="replace").strip()
    return text or None


def get_interface_mac(interface: str) -> bytes:
    """
    Read the MAC address of a network interface from sysfs.

    Args:
        interface: Interface name (e.g. "eth0").

    Returns:
        6-byte MAC address.

    Raises:
        NSDPConfigError: If the interface does not exist or has no usable MAC.
    """
    mac_path = Path(f"/sys/class/net/{interface}/address")
    try:
        mac_str = mac_path.read_text().strip()
    except OSError as e:
        raise NSDPConfigError(f"Cannot read MAC of interface {interface!r}: {e}") from e
    try:
        return mac_from_str(mac_str)
    except ValueError as e:
        raise NSDPConfigError(f"Invalid MAC for interface {interface!r}: {mac_str!r}") from e


class _DatagramQueueProtocol(asyncio.DatagramProtocol):
    """Pushes received datagrams (and socket errors) onto a queue."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[Union[bytes, Exception]] = asyncio.Queue()

    def datagram_received(self, data: bytes, addr: tuple) -> None:
        self.queue.put_nowait(data)

    def error_received(self, exc: Exception) -> None:
        logger.debug(f"Socket error received: {exc}")
        self.queue.put_nowait(exc)


class NSDPConnection:
    """
    One UDP endpoint bound to the NSDP client port on an interface.

    Transactions are serialized with a lock: the protocol matches responses
    by sequence number only, so two requests in flight would race for the
    same socket.
    """

    def __init__(
        self,
        interface: str,
        client_mac: bytes,
        transport: asyncio.DatagramTransport,
        protocol: _DatagramQueueProtocol,
    ):
        self.interface = interface
        self.client_mac = client_mac
        self._transport: Optional[asyncio.DatagramTransport] = transport
        self._protocol = protocol
        self._sequence = 0
        self._lock = asyncio.Lock()

    def next_sequence(self) -> int:
        """Return the next sequence number (wraps at 0xFFFF)."""
        seq = self._sequence
        self._sequence = (self._sequence + 1) & 0xFFFF
        return seq

    def _drain(self) -> None:
        """Drop datagrams left over from earlier, timed-out transactions."""
        while not self._protocol.queue.empty():
            self._protocol.queue.get_nowait()

    def _send(self, packet: NSDPPacket) -> None:
        if self._transport is None:
            raise NSDPTransportError("Connection is closed")
        try:
            self._transport.sendto(packet.encode(), (BROADCAST_ADDRESS, SERVER_PORT))
        except OSError as e:
            raise NSDPTransportError(f"Send failed: {e}") from e

    async def _receive(self, deadline: float) -> Optional[NSDPPacket]:
        """Wait for the next decodable datagram. Returns None on malformed data."""
        loop = asyncio.get_running_loop()
        remaining = deadline - loop.time()
        if remaining <= 0:
            raise NSDPTimeoutError("No response before timeout")
        try:
            item = await asyncio.wait_for(self._protocol.queue.get(), remaining)
        except asyncio.TimeoutError as e:
            raise NSDPTimeoutError("No response before timeout") from e
        if isinstance(item, Exception):
            raise NSDPTransportError(f"Receive failed: {item}") from item
        try:
            return NSDPPacket.decode(item)
        except MalformedPacketError as e:
            logger.debug(f"Ignoring malformed datagram: {e}")
            return None

    @staticmethod
    def _matches(
        request: NSDPPacket,
        response: NSDPPacket,
        target_mac: Optional[bytes],
    ) -> bool:
        if response.op != Op.READ_RESPONSE or response.sequence != request.sequence:
            return False
        return target_mac is None or response.server_mac == target_mac

    async def transact(
        self,
        packet: NSDPPacket,
        timeout: float,
        target_mac: Optional[bytes] = None,
    ) -> NSDPPacket:
        """
        Send a request and wait for its response.

        Args:
            packet: Request packet (sequence already assigned).
            timeout: Seconds to wait for the matching response.
            target_mac: If set, only a response from this device matches.

        Returns:
            The matching READ_RESPONSE packet.

        Raises:
            NSDPTimeoutError: No matching response before the timeout.
            NSDPTransportError: Socket failure.
        """
        async with self._lock:
            self._drain()
            self._send(packet)
            deadline = asyncio.get_running_loop().time() + timeout
            while True:
                response = await self._receive(deadline)
                if response is not None and self._matches(packet, response, target_mac):
                    return response

    async def collect(self, packet: NSDPPacket, timeout: float) -> list[NSDPPacket]:
        """Send a request and gather every matching response until the timeout."""
        responses: list[NSDPPacket] = []
        async with self._lock:
            self._drain()
            self._send(packet)
            deadline = asyncio.get_running_loop().time() + timeout
            while True:
                try:
                    response = await self._receive(deadline)
                except NSDPTimeoutError:
                    break
                if response is not None and self._matches(packet, response, None):
                    responses.append(response)
        return responses

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self._transport is not None:
            self._transport.close()
            self._transport = None

    async def __aenter__(self) -> "NSDPConnection":
        return self

    async def __aexit__(self, *args: object) -> None:
        self.close()


def _create_socket(interface: str) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "SO_BINDTODEVICE"):
            sock.setsockopt(
                socket.SOL_SOCKET,
                socket.SO_BINDTODEVICE,
                interface.encode() + b"\0",
            )
        sock.bind(("", CLIENT_PORT))
        sock.setblocking(False)
    except OSError:
        sock.close()
        raise
    return sock


async def open_connection(interface: str) -> NSDPConnection:
    """
    Open an NSDP connection on a network interface.

    Args:
        interface: Interface name (e.g. "eth0").

    Returns:
        Connected NSDPConnection. Close it (or use ``async with``) when done.

    Raises:
        NSDPConfigError: Unknown interface, or binding the socket failed
            (typically missing privileges).
    """
    client_mac = get_interface_mac(interface)
    try:
        sock = _create_socket(interface)
    except OSError as e:
        raise NSDPConfigError(
            f"Cannot bind NSDP socket on {interface!r} port {CLIENT_PORT}: {e}"
        ) from e

    loop = asyncio.get_running_loop()
    transport, protocol = await loop.create_datagram_endpoint(
        _DatagramQueueProtocol, sock=sock
    )
    logger.debug(f"Opened NSDP connection on {interface} ({mac_to_str(client_mac)})")
    return NSDPConnection(interface, client_mac, transport, protocol)


def parse_discovery_response(packet: NSDPPacket) -> DiscoveredDevice:
    """Build a DiscoveredDevice from a discovery response."""
    mac_value = packet.get(Tag.MAC)
    mac = mac_value if mac_value and len(mac_value) == 6 else packet.server_mac
    ip_value = packet.get(Tag.IP_ADDRESS)
    ip = socket.inet_ntoa(ip_value) if ip_value and len(ip_value) == 4 else None
    return DiscoveredDevice(
        mac=mac_to_str(mac),
        name=decode_text(packet.get(Tag.HOSTNAME)),
        model=decode_text(packet.get(Tag.MODEL)),
        ip=ip,
    )


async def discover(connection: NSDPConnection, timeout: float) -> list[DiscoveredDevice]:
    """
    Broadcast an identity read and return every device that answered.

    Args:
        connection: Open NSDP connection.
        timeout: Seconds to wait for responses.

    Returns:
        Devices in order of first response, deduplicated by MAC.
    """
    request = build_read_request(
        connection.client_mac, DISCOVERY_TAGS, connection.next_sequence()
    )
    responses = await connection.collect(request, timeout)

    devices: list[DiscoveredDevice] = []
    seen: set[str] = set()
    for response in responses:
        device = parse_discovery_response(response)
        if device.mac in seen or device.mac == mac_to_str(BROADCAST_MAC):
            continue
        seen.add(device.mac)
        devices.append(device)
    logger.info(f"Discovery on {connection.interface} found {len(devices)} device(s)")
    return devices


async def query_tlv(
    connection: NSDPConnection,
    device_mac: bytes,
    tlv: int,
    timeout: float,
) -> bytes:
    """
    Read a single TLV from one device.

    Args:
        connection: Open NSDP connection.
        device_mac: 6-byte MAC of the target device.
        tlv: TLV identifier (0x0000-0xFFFF), sent with an empty value.
        timeout: Seconds to wait for the response.

    Returns:
        Raw value bytes (possibly empty).

    Raises:
        NSDPTimeoutError: No response.
        NSDPResponseError: Device reported a non-zero result code.
        TLVNotInResponseError: Response did not carry the TLV.
        NSDPTransportError: Socket failure.
    """
    request = build_read_request(
        connection.client_mac, [tlv], connection.next_sequence(), server_mac=device_mac
    )
    response = await connection.transact(request, timeout, target_mac=device_mac)
    if response.result != 0:
        raise NSDPResponseError(response.result)
    value = response.get(tlv)
    if value is None:
        raise TLVNotInResponseError(tlv)
    return value
