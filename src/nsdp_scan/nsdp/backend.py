"""
Device backend abstraction: Protocol and implementations (UDP, YAML).

The scanner depends only on DeviceBackend. Transport is chosen at construction:
UdpDeviceBackend(connection, device) talks to a real switch,
YamlDeviceBackend(state) answers from a simulator state file.

query_tlv raises NSDPError subclasses on failure; get_name/get_model are
best-effort and return None instead of raising.
"""

import logging
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from ..tlv.utils import format_tlv
from . import api as nsdp_api
from .api import DiscoveredDevice, NSDPConnection, decode_text
from .errors import NSDPError
from .protocol import Tag
from .simulator import SimulatorDeviceState, load_state

logger = logging.getLogger(__name__)


@runtime_checkable
class DeviceBackend(Protocol):
    """Protocol for reading TLVs from one device."""

    @property
    def mac(self) -> str:
        """Device MAC address (lowercase, colon separated)."""
        ...

    @property
    def ip(self) -> Optional[str]:
        """Device IPv4 address as announced, or None if unknown."""
        ...

    async def query_tlv(self, tlv: int, timeout: float) -> bytes:
        """Read one TLV. Returns raw value bytes; raises NSDPError on failure."""
        ...

    async def get_name(self, timeout: float) -> Optional[str]:
        """Device name, or None if it could not be read."""
        ...

    async def get_model(self, timeout: float) -> Optional[str]:
        """Device model, or None if it could not be read."""
        ...


async def _read_text_tag(backend: DeviceBackend, tag: Tag, timeout: float) -> Optional[str]:
    try:
        return decode_text(await backend.query_tlv(tag, timeout))
    except NSDPError as e:
        logger.debug(f"Could not read {tag.name} from {backend.mac}: {e}")
        return None


class UdpDeviceBackend:
    """Backend that reads TLVs from a switch over an NSDPConnection."""

    def __init__(self, connection: NSDPConnection, device: DiscoveredDevice):
        """
        Initialize UDP backend.

        Args:
            connection: Open NSDP connection (shared, transactions are serialized)
            device: Target device as returned by discover()
        """
        self._connection = connection
        self._device = device
        self._device_mac = device.mac_bytes

    @property
    def mac(self) -> str:
        return self._device.mac

    @property
    def ip(self) -> Optional[str]:
        return self._device.ip

    async def query_tlv(self, tlv: int, timeout: float) -> bytes:
        """Read one TLV from the switch."""
        logger.debug(f"Querying {format_tlv(tlv)} from {self.mac}")
        return await nsdp_api.query_tlv(self._connection, self._device_mac, tlv, timeout)

    # Fall back to what the device announced during discovery
    async def get_name(self, timeout: float) -> Optional[str]:
        return await _read_text_tag(self, Tag.HOSTNAME, timeout) or self._device.name

    async def get_model(self, timeout: float) -> Optional[str]:
        return await _read_text_tag(self, Tag.MODEL, timeout) or self._device.model


class YamlDeviceBackend:
    """Backend that answers from a simulator state. Delegates to simulator module."""

    def __init__(self, state: SimulatorDeviceState):
        self._state = state

    @classmethod
    async def from_file(cls, state_file: Path) -> "YamlDeviceBackend":
        """Load the state file and return a backend for it."""
        return cls(await load_state(state_file))

    @property
    def mac(self) -> str:
        return self._state.mac

    @property
    def ip(self) -> Optional[str]:
        return self._state.ip

    async def query_tlv(self, tlv: int, timeout: float) -> bytes:
        """Read one TLV from the simulated device."""
        value = self._state.read(tlv)
        logger.debug(f"[SIMULATOR] READ {format_tlv(tlv)}: {value.hex() or '(empty)'}")
        return value

    async def get_name(self, timeout: float) -> Optional[str]:
        return self._state.name

    async def get_model(self, timeout: float) -> Optional[str]:
        return self._state.model
