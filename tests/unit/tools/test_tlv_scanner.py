"""Tests for the tlv_scanner CLI against the YAML simulator."""

from pathlib import Path

import pytest

from nsdp_scan.tools import tlv_scanner
from nsdp_scan.tools.tlv_scanner import ConsoleObserver, _main_async
from nsdp_scan.scanner.models import Batch, Finding
from nsdp_scan.nsdp.errors import NSDPTimeoutError


class TestMainAsync:
    """End-to-end runs of _main_async in YAML mode."""

    @pytest.mark.asyncio
    async def test_scan_prints_findings(
        self, state_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = await _main_async(
            ["--yaml", str(state_file), "--start", "0BFE", "--end", "0C05", "--batch", "3", "--delay", "0"]
        )
        out = capsys.readouterr().out
        assert code == 0
        assert "Device MAC: 00:09:5b:11:22:33" in out
        assert "Device Name: office-switch" in out
        assert "Device IP: 192.168.0.239" in out
        assert "Scanning batch 1: 0x0BFE to 0x0C00..." in out
        assert "Scanning batch 3: 0x0C04 to 0x0C05..." in out
        assert "Total TLVs tested: 8" in out
        assert "Valid TLVs found: 1" in out
        assert "0x0C00 ( 3072):   3 bytes - 010500" in out

    @pytest.mark.asyncio
    async def test_empty_and_timeout_entries_are_not_findings(
        self, state_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = await _main_async(
            ["--yaml", str(state_file), "--start", "6000", "--end", "7800", "--delay", "0"]
        )
        out = capsys.readouterr().out
        assert code == 0
        assert "Valid TLVs found: 1" in out
        assert "0x6000 (24576):   1 bytes - 08" in out
        assert "0x7400" not in out.split("=== Valid TLVs ===")[1]

    @pytest.mark.asyncio
    async def test_writes_output_file(
        self, state_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        output = tmp_path / "results.txt"
        code = await _main_async(
            [
                "--yaml", str(state_file),
                "--start", "0C00", "--end", "0C00",
                "--delay", "0",
                "-o", str(output),
            ]
        )
        assert code == 0
        assert f"Results saved to: {output}" in capsys.readouterr().out
        text = output.read_text(encoding="utf-8")
        assert text.startswith("NSDP TLV Discovery Results\n")
        assert "Device Model: GS108Ev3" in text
        assert "TLV: 0x0C00 (3072)" in text
        assert "Hex Data: 010500" in text

    @pytest.mark.asyncio
    async def test_unwritable_output_is_reported(
        self, state_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        output = tmp_path / "missing" / "results.txt"
        code = await _main_async(
            ["--yaml", str(state_file), "--start", "0C00", "--end", "0C00", "-o", str(output)]
        )
        assert code == 0
        assert "Error creating output file" in capsys.readouterr().out

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "bounds,message",
        [
            (["--start", "XYZ"], "Invalid start hex value"),
            (["--end", "10000"], "Invalid end hex value"),
            (["--start", "0C05", "--end", "0C00"], "must be <= end value"),
        ],
    )
    async def test_invalid_range(
        self,
        state_file: Path,
        capsys: pytest.CaptureFixture[str],
        bounds: list[str],
        message: str,
    ) -> None:
        code = await _main_async(["--yaml", str(state_file), *bounds])
        assert code == 1
        assert message in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_range_error_message_is_plain(
        self, state_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = await _main_async(["--yaml", str(state_file), "--start", "FFFF", "--end", "0000"])
        assert code == 1
        assert capsys.readouterr().err == "Error: Start value (0xFFFF) must be <= end value (0x0000)\n"

    @pytest.mark.asyncio
    async def test_missing_device_source(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert await _main_async([]) == 1
        assert "Specify --interface" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_bad_state_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = await _main_async(["--yaml", str(tmp_path / "missing.yaml")])
        assert code == 1
        assert "Cannot read simulator state" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_no_devices(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
        class EmptyContext:
            async def __aenter__(self) -> list:
                return []

            async def __aexit__(self, *exc_info: object) -> None:
                return None

        monkeypatch.setattr(tlv_scanner, "devices_context", lambda args, timeout: EmptyContext())
        assert await _main_async(["-i", "eth0"]) == 1
        assert "No NSDP devices found" in capsys.readouterr().out


class TestConsoleObserver:
    """Tests for ConsoleObserver output."""

    def test_batch_progress(self, capsys: pytest.CaptureFixture[str]) -> None:
        observer = ConsoleObserver()
        batch = Batch(1, 0x0000, 0x0063)
        observer.batch_started(batch)
        observer.finding(Finding(0x0001, b"\x01"))
        observer.batch_complete(batch, [Finding(0x0001, b"\x01")])
        assert capsys.readouterr().out == "Scanning batch 1: 0x0000 to 0x0063... Found 1 valid TLVs\n"

    def test_verbose_samples_failures(self, capsys: pytest.CaptureFixture[str]) -> None:
        observer = ConsoleObserver(verbose=True)
        observer.probe_failed(0x03E7, NSDPTimeoutError("timeout"))
        observer.probe_failed(0x03E8, NSDPTimeoutError("timeout"))
        observer.finding(Finding(0x0C00, b"\x01"))
        out = capsys.readouterr().out
        assert "0x03E7" not in out
        assert "  0x03E8: Error - timeout" in out
        assert "  0x0C00: SUCCESS - 1 bytes: 01" in out
