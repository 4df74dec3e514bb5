"""Unit tests for nsdp.simulator (state file loading)."""

from pathlib import Path

import pytest

from nsdp_scan.nsdp.simulator import (
    DEFAULT_SIMULATOR_MAC,
    SimulatorDeviceState,
    SimulatorStateError,
    load_state,
)


class TestLoadState:
    """Tests for load_state."""

    @pytest.mark.asyncio
    async def test_parses_tlvs(self, state_file: Path) -> None:
        state = await load_state(state_file)
        assert state.tlvs[0x0C00] == b"\x01\x05\x00"
        assert state.tlvs[0x7400] == b""
        assert state.tlvs[0x7800] is None

    @pytest.mark.asyncio
    async def test_unquoted_keys(self, tmp_path: Path) -> None:
        """Unquoted numeric keys are still read as hex identifiers."""
        path = tmp_path / "state.yaml"
        path.write_text('tlvs:\n  6000: "08"\n')
        state = await load_state(path)
        assert state.tlvs == {0x6000: b"\x08"}
        assert state.mac == DEFAULT_SIMULATOR_MAC

    @pytest.mark.asyncio
    async def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "state.yaml"
        path.write_text("")
        state = await load_state(path)
        assert state.tlvs == {}

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SimulatorStateError, match="Cannot read"):
            await load_state(tmp_path / "missing.yaml")

    @pytest.mark.asyncio
    async def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "state.yaml"
        path.write_text("tlvs: [unclosed\n")
        with pytest.raises(SimulatorStateError, match="Invalid YAML"):
            await load_state(path)


class TestSimulatorDeviceState:
    """Tests for SimulatorDeviceState.from_dict."""

    def test_invalid_hex_value(self) -> None:
        with pytest.raises(SimulatorStateError, match="Invalid TLV entry"):
            SimulatorDeviceState.from_dict({"tlvs": {"0c00": "zz"}})

    def test_root_must_be_mapping(self) -> None:
        with pytest.raises(SimulatorStateError, match="must be a mapping"):
            SimulatorDeviceState.from_dict(["0c00"])
