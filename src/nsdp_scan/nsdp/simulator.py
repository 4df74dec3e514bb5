"""
Simulated NSDP device backed by a YAML state file.

Used for offline development and tests, without a switch on the network.
The state file describes the device identity and the TLVs it answers:

    mac: "00:09:5b:11:22:33"
    name: "office-switch"
    model: "GS108Ev3"
    ip: "192.168.0.239"
    tlvs:
      "0c00": "010500"   # answers with 3 bytes
      "6000": "08"
      "7400": ""         # answers, but with an empty value
      "7800": null       # never answers (simulated timeout)

TLVs not listed raise TLVNotInResponseError, like a device that ignores
unknown tags.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import yaml

from ..tlv.utils import format_tlv, parse_tlv_hex
from .errors import NSDPTimeoutError, TLVNotInResponseError

logger = logging.getLogger(__name__)

DEFAULT_SIMULATOR_MAC = "00:00:00:00:00:00"


class SimulatorStateError(Exception):
    """Raised when the simulator state file is unreadable or malformed."""


class SimulatorDeviceState:
    """Device state parsed from a YAML file."""

    def __init__(
        self,
        mac: str = DEFAULT_SIMULATOR_MAC,
        name: Optional[str] = None,
        model: Optional[str] = None,
        tlvs: Optional[Dict[int, Optional[bytes]]] = None,
        ip: Optional[str] = None,
    ):
        self.mac = mac
        self.name = name
        self.model = model
        self.ip = ip
        self.tlvs: Dict[int, Optional[bytes]] = tlvs or {}

    @classmethod
    def from_dict(cls, raw: Any) -> "SimulatorDeviceState":
        """
        Build state from the parsed YAML document.

        Raises:
            SimulatorStateError: If the document shape or a TLV entry is invalid.
        """
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise SimulatorStateError(
                f"State root must be a mapping, got {type(raw).__name__}"
            )

        entries = raw.get("tlvs") or {}
        if not isinstance(entries, dict):
            raise SimulatorStateError(
                f"'tlvs' must be a mapping, got {type(entries).__name__}"
            )

        tlvs: Dict[int, Optional[bytes]] = {}
        for key, value in entries.items():
            try:
                tlv = parse_tlv_hex(str(key))
                tlvs[tlv] = None if value is None else bytes.fromhex(str(value))
            except ValueError as e:
                raise SimulatorStateError(f"Invalid TLV entry {key!r}: {e}") from e

        return cls(
            mac=str(raw.get("mac", DEFAULT_SIMULATOR_MAC)).lower(),
            name=raw.get("name"),
            model=raw.get("model"),
            ip=raw.get("ip"),
            tlvs=tlvs,
        )

    def read(self, tlv: int) -> bytes:
        """
        Answer a read of one TLV the way a device would.

        Raises:
            NSDPTimeoutError: Entry is null.
            TLVNotInResponseError: Entry is missing.
        """
        if tlv not in self.tlvs:
            raise TLVNotInResponseError(tlv)
        value = self.tlvs[tlv]
        if value is None:
            raise NSDPTimeoutError(f"Simulated timeout for {format_tlv(tlv)}")
        return value


async def load_state(state_file: Path) -> SimulatorDeviceState:
    """
    Load simulator state from a YAML file.

    Args:
        state_file: Path to the state file.

    Returns:
        Parsed device state.

    Raises:
        SimulatorStateError: If the file cannot be read or parsed.
    """
    try:
        async with aiofiles.open(state_file, "r", encoding="utf-8") as f:
            content = await f.read()
    except OSError as e:
        raise SimulatorStateError(f"Cannot read simulator state {state_file}: {e}") from e

    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SimulatorStateError(f"Invalid YAML in {state_file}: {e}") from e

    state = SimulatorDeviceState.from_dict(raw)
    logger.debug(
        f"[SIMULATOR] Loaded {state_file}: {state.mac}, {len(state.tlvs)} TLV(s)"
    )
    return state
