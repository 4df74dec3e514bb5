"""
Exception hierarchy for NSDP transactions.

Every failure of a single request/response exchange derives from NSDPError so
the scanner can treat them uniformly as "no data". NSDPConfigError is kept
separate: it means the transport could not be set up at all.
"""


class NSDPError(Exception):
    """Base class for a failed NSDP transaction."""


class NSDPTimeoutError(NSDPError):
    """Raised when no matching response arrived before the timeout."""


class NSDPTransportError(NSDPError):
    """Raised when the datagram could not be sent or the socket failed."""


class MalformedPacketError(NSDPError):
    """Raised when a datagram cannot be decoded as an NSDP packet."""


class NSDPResponseError(NSDPError):
    """Raised when the device answers with a non-zero result code."""

    def __init__(self, result: int, message: str | None = None) -> None:
        self.result = result
        super().__init__(message or f"Device returned result code 0x{result:04x}")


class TLVNotInResponseError(NSDPError):
    """Raised when a response does not carry the requested TLV."""

    def __init__(self, tlv: int) -> None:
        self.tlv = tlv
        super().__init__(f"TLV 0x{tlv:04X} not in response")


class NSDPConfigError(Exception):
    """Raised when the network interface cannot be used for NSDP."""
