"""
NSDP transport: wire codec, UDP connection, device backends and simulator.
"""

from .backend import DeviceBackend, UdpDeviceBackend, YamlDeviceBackend
from .errors import NSDPConfigError, NSDPError

__all__ = [
    "DeviceBackend",
    "NSDPConfigError",
    "NSDPError",
    "UdpDeviceBackend",
    "YamlDeviceBackend",
]
