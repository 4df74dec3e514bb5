"""Shared pytest fixtures for nsdp-tlv-scan tests."""

from pathlib import Path

import pytest

from mock_backend import MockDeviceBackend


@pytest.fixture
def device_mac() -> str:
    """MAC address used by simulated devices."""
    return "00:09:5b:11:22:33"


@pytest.fixture
def mock_backend(device_mac: str) -> MockDeviceBackend:
    """Backend answering 0x0C00 and 0x6000 with one byte each."""
    return MockDeviceBackend(
        {0x0C00: b"\x01", 0x6000: b"\x08"},
        mac=device_mac,
        name="office-switch",
        model="GS108Ev3",
    )


@pytest.fixture
def state_file(tmp_path: Path, device_mac: str) -> Path:
    """YAML simulator state file with a handful of TLVs."""
    path = tmp_path / "device.yaml"
    path.write_text(
        f'mac: "{device_mac}"\n'
        'name: "office-switch"\n'
        'model: "GS108Ev3"\n'
        'ip: "192.168.0.239"\n'
        "tlvs:\n"
        '  "0c00": "010500"\n'
        '  "6000": "08"\n'
        '  "7400": ""\n'
        '  "7800": null\n',
        encoding="utf-8",
    )
    return path
