"""Unit tests for the NSDP UDP transport.

Real NSDP needs broadcast and root privileges, so the datagram transport is
replaced by a fake that answers synchronously.
"""

from typing import Callable, Optional
from unittest.mock import patch

import pytest

from nsdp_scan.nsdp import api as nsdp_api
from nsdp_scan.nsdp.api import (
    DiscoveredDevice,
    NSDPConnection,
    _DatagramQueueProtocol,
    decode_text,
    get_interface_mac,
    parse_discovery_response,
)
from nsdp_scan.nsdp.errors import (
    NSDPConfigError,
    NSDPResponseError,
    NSDPTimeoutError,
    TLVNotInResponseError,
)
from nsdp_scan.nsdp.protocol import NSDPPacket, Op, Tag

CLIENT_MAC = b"\xaa\xbb\xcc\xdd\xee\xff"
SWITCH_MAC = b"\x00\x09\x5b\x11\x22\x33"
OTHER_MAC = b"\x00\x09\x5b\x44\x55\x66"

Responder = Callable[[NSDPPacket], list[bytes]]


class FakeTransport:
    """Datagram transport that feeds responder output back into the protocol."""

    def __init__(self, protocol: _DatagramQueueProtocol, responder: Responder) -> None:
        self.protocol = protocol
        self.responder = responder
        self.sent: list[NSDPPacket] = []
        self.closed = False

    def sendto(self, data: bytes, addr: tuple) -> None:
        request = NSDPPacket.decode(data)
        self.sent.append(request)
        for datagram in self.responder(request):
            self.protocol.datagram_received(datagram, ("192.168.0.239", 63322))

    def close(self) -> None:
        self.closed = True


def make_connection(responder: Responder) -> tuple[NSDPConnection, FakeTransport]:
    protocol = _DatagramQueueProtocol()
    transport = FakeTransport(protocol, responder)
    return NSDPConnection("eth0", CLIENT_MAC, transport, protocol), transport  # type: ignore[arg-type]


def response_for(
    request: NSDPPacket,
    tlvs: dict[int, bytes],
    server_mac: bytes = SWITCH_MAC,
    result: int = 0,
    sequence: Optional[int] = None,
) -> bytes:
    packet = NSDPPacket(
        op=Op.READ_RESPONSE,
        client_mac=request.client_mac,
        server_mac=server_mac,
        sequence=request.sequence if sequence is None else sequence,
        result=result,
    )
    for tag, value in tlvs.items():
        packet.add_tlv(tag, value)
    return packet.encode()


class TestHelpers:
    """Tests for module-level helpers."""

    def test_decode_text_strips_nul_padding(self) -> None:
        assert decode_text(b"GS108Ev3\x00\x00\x00") == "GS108Ev3"
        assert decode_text(b"") is None
        assert decode_text(None) is None

    @patch("nsdp_scan.nsdp.api.Path.read_text")
    def test_get_interface_mac(self, mock_read_text) -> None:  # noqa: ANN001
        mock_read_text.return_value = "aa:bb:cc:dd:ee:ff\n"
        assert get_interface_mac("eth0") == CLIENT_MAC

    @patch("nsdp_scan.nsdp.api.Path.read_text")
    def test_get_interface_mac_missing_interface(self, mock_read_text) -> None:  # noqa: ANN001
        mock_read_text.side_effect = FileNotFoundError("no such interface")
        with pytest.raises(NSDPConfigError, match="eth9"):
            get_interface_mac("eth9")

    @patch("nsdp_scan.nsdp.api.Path.read_text")
    def test_get_interface_mac_invalid_address(self, mock_read_text) -> None:  # noqa: ANN001
        mock_read_text.return_value = "aa:bb:cc\n"
        with pytest.raises(NSDPConfigError, match="Invalid MAC"):
            get_interface_mac("eth0")

    def test_parse_discovery_response(self) -> None:
        packet = NSDPPacket(op=Op.READ_RESPONSE, client_mac=CLIENT_MAC, server_mac=SWITCH_MAC)
        packet.add_tlv(Tag.MODEL, b"GS108Ev3")
        packet.add_tlv(Tag.HOSTNAME, b"office")
        packet.add_tlv(Tag.MAC, SWITCH_MAC)
        packet.add_tlv(Tag.IP_ADDRESS, b"\xc0\xa8\x00\xef")
        device = parse_discovery_response(packet)
        assert device == DiscoveredDevice(
            mac="00:09:5b:11:22:33", name="office", model="GS108Ev3", ip="192.168.0.239"
        )
        assert device.mac_bytes == SWITCH_MAC


class TestQueryTlv:
    """Tests for query_tlv over a fake connection."""

    @pytest.mark.asyncio
    async def test_returns_value(self) -> None:
        """The requested TLV value is returned and the request targets the device."""
        conn, transport = make_connection(
            lambda req: [response_for(req, {0x0C00: b"\x01\x05\x00"})]
        )
        value = await nsdp_api.query_tlv(conn, SWITCH_MAC, 0x0C00, timeout=1.0)
        assert value == b"\x01\x05\x00"
        request = transport.sent[0]
        assert request.op == Op.READ_REQUEST
        assert request.server_mac == SWITCH_MAC
        assert request.tlvs[0].tag == 0x0C00
        assert request.tlvs[0].value == b""

    @pytest.mark.asyncio
    async def test_empty_value_is_returned(self) -> None:
        conn, _ = make_connection(lambda req: [response_for(req, {0x7400: b""})])
        assert await nsdp_api.query_tlv(conn, SWITCH_MAC, 0x7400, timeout=1.0) == b""

    @pytest.mark.asyncio
    async def test_missing_tlv_raises(self) -> None:
        conn, _ = make_connection(lambda req: [response_for(req, {})])
        with pytest.raises(TLVNotInResponseError):
            await nsdp_api.query_tlv(conn, SWITCH_MAC, 0x1234, timeout=1.0)

    @pytest.mark.asyncio
    async def test_error_result_raises(self) -> None:
        conn, _ = make_connection(lambda req: [response_for(req, {}, result=0x0700)])
        with pytest.raises(NSDPResponseError) as exc_info:
            await nsdp_api.query_tlv(conn, SWITCH_MAC, 0x1234, timeout=1.0)
        assert exc_info.value.result == 0x0700

    @pytest.mark.asyncio
    async def test_ignores_other_devices_and_stale_sequences(self) -> None:
        """Responses from another MAC, with another sequence or malformed are skipped."""
        conn, _ = make_connection(
            lambda req: [
                response_for(req, {0x6000: b"\x10"}, server_mac=OTHER_MAC),
                response_for(req, {0x6000: b"\x18"}, sequence=req.sequence + 1),
                b"garbage",
                response_for(req, {0x6000: b"\x08"}),
            ]
        )
        assert await nsdp_api.query_tlv(conn, SWITCH_MAC, 0x6000, timeout=1.0) == b"\x08"

    @pytest.mark.asyncio
    async def test_no_response_times_out(self) -> None:
        conn, _ = make_connection(lambda req: [])
        with pytest.raises(NSDPTimeoutError):
            await nsdp_api.query_tlv(conn, SWITCH_MAC, 0x6000, timeout=0.01)

    @pytest.mark.asyncio
    async def test_sequence_increments_per_request(self) -> None:
        conn, transport = make_connection(lambda req: [response_for(req, {0x6000: b"\x08"})])
        await nsdp_api.query_tlv(conn, SWITCH_MAC, 0x6000, timeout=1.0)
        await nsdp_api.query_tlv(conn, SWITCH_MAC, 0x6000, timeout=1.0)
        assert [p.sequence for p in transport.sent] == [0, 1]


class TestDiscover:
    """Tests for discover over a fake connection."""

    @pytest.mark.asyncio
    async def test_collects_and_deduplicates(self) -> None:
        """Every answering device is returned once, in order of first response."""

        def responder(req: NSDPPacket) -> list[bytes]:
            first = response_for(req, {Tag.MODEL: b"GS108Ev3", Tag.MAC: SWITCH_MAC})
            second = response_for(
                req, {Tag.MODEL: b"GS305E", Tag.MAC: OTHER_MAC}, server_mac=OTHER_MAC
            )
            return [first, second, first]

        conn, transport = make_connection(responder)
        devices = await nsdp_api.discover(conn, timeout=0.05)
        assert [d.mac for d in devices] == ["00:09:5b:11:22:33", "00:09:5b:44:55:66"]
        assert devices[1].model == "GS305E"
        assert transport.sent[0].server_mac == b"\x00" * 6

    @pytest.mark.asyncio
    async def test_no_devices(self) -> None:
        conn, _ = make_connection(lambda req: [])
        assert await nsdp_api.discover(conn, timeout=0.01) == []

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        conn, transport = make_connection(lambda req: [])
        async with conn:
            pass
        conn.close()
        assert transport.closed is True
