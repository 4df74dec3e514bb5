"""
Scan result reporting: console summary and flat-text report files.

Interpretations are recomputed from the raw bytes every time a result is
rendered; nothing derived is stored on findings. The catalog of known TLVs is
optional and only adds labels.
"""

import logging
from datetime import timedelta, timezone
from pathlib import Path
from typing import Mapping, Optional

import aiofiles

from ..tlv.catalog import EMPTY_CATALOG, TLVDefinition
from ..tlv.interpret import format_interpretation
from ..tlv.utils import format_tlv
from .models import Finding, ScanResult

logger = logging.getLogger(__name__)

REPORT_TITLE = "NSDP TLV Discovery Results"
SCAN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S UTC"

Catalog = Mapping[int, TLVDefinition]


def format_success_rate(valid: int, tested: int) -> str:
    """Percentage with two decimals, e.g. "3.00%". "0.00%" if nothing was tested."""
    rate = valid / tested * 100 if tested else 0.0
    return f"{rate:.2f}%"


def format_duration(duration: timedelta) -> str:
    """
    Format a duration compactly: "850ms", "12.34s", "5m3.20s", "1h2m3.00s".

    The value is rounded once to the precision shown, so it never prints
    past a unit boundary (59.999s is "1m0.00s").
    """
    total = duration.total_seconds()
    millis = round(total * 1000)
    if millis < 1000:
        return f"{millis}ms"
    minutes, centis = divmod(round(total * 100), 6000)
    seconds = centis / 100
    if minutes < 1:
        return f"{seconds:.2f}s"
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds:.2f}s"
    return f"{minutes}m{seconds:.2f}s"


def _describe(finding: Finding, catalog: Catalog) -> Optional[str]:
    definition = catalog.get(finding.tlv)
    return definition.describe(finding.raw) if definition else None


def format_finding(finding: Finding, catalog: Catalog = EMPTY_CATALOG) -> list[str]:
    """Console lines for one finding: summary row plus optional detail rows."""
    indent = " " * 19
    lines = [f"{format_tlv(finding.tlv)} ({finding.tlv:5d}): {finding.length:3d} bytes - {finding.hex}"]
    interpretation = format_interpretation(finding.raw)
    if interpretation:
        lines.append(f"{indent}Interpretation: {interpretation}")
    known = _describe(finding, catalog)
    if known:
        lines.append(f"{indent}Known as: {known}")
    return lines


def format_scan_result(result: ScanResult, catalog: Optional[Catalog] = None) -> str:
    """
    Format scan result as human-readable console output.

    Args:
        result: Finalized scan result.
        catalog: Known TLVs used to label findings (optional).

    Returns:
        Summary block followed by one entry per finding.
    """
    catalog = catalog if catalog is not None else EMPTY_CATALOG
    lines: list[str] = [
        "=== Scan Results ===",
        f"Total TLVs tested: {result.total_tested}",
        f"Valid TLVs found: {result.total_valid}",
        f"Success rate: {format_success_rate(result.total_valid, result.total_tested)}",
        f"Scan duration: {format_duration(result.duration)}",
    ]

    if result.findings:
        lines.append("")
        lines.append("=== Valid TLVs ===")
        for finding in result.findings:
            lines.extend(format_finding(finding, catalog))

    return "\n".join(lines)


def serialize_scan_result(result: ScanResult, catalog: Optional[Catalog] = None) -> str:
    """
    Serialize scan result to the flat-text report format.

    Device name and model lines are omitted when unknown.

    Args:
        result: Finalized scan result.
        catalog: Known TLVs used to label findings (optional).

    Returns:
        Report text, newline terminated.
    """
    catalog = catalog if catalog is not None else EMPTY_CATALOG
    scanned_at = result.scanned_at.astimezone(timezone.utc).strftime(SCAN_DATE_FORMAT)
    lines: list[str] = [
        REPORT_TITLE,
        "=" * len(REPORT_TITLE),
        f"Scan Date: {scanned_at}",
        f"Device MAC: {result.device.mac}",
    ]
    if result.device.name:
        lines.append(f"Device Name: {result.device.name}")
    if result.device.model:
        lines.append(f"Device Model: {result.device.model}")
    lines.extend(
        [
            f"Scan Range: {result.scan_range}",
            f"Total TLVs Tested: {result.total_tested}",
            f"Valid TLVs Found: {result.total_valid}",
            f"Success Rate: {format_success_rate(result.total_valid, result.total_tested)}",
            f"Scan Duration: {format_duration(result.duration)}",
            "",
            "Valid TLVs:",
            "-----------",
        ]
    )

    for finding in result.findings:
        lines.append(f"TLV: {format_tlv(finding.tlv)} ({finding.tlv})")
        lines.append(f"Length: {finding.length} bytes")
        lines.append(f"Hex Data: {finding.hex}")
        interpretation = format_interpretation(finding.raw)
        if interpretation:
            lines.append(f"Interpretation: {interpretation}")
        known = _describe(finding, catalog)
        if known:
            lines.append(f"Parameter: {known}")
        lines.append("")

    return "\n".join(lines) + "\n"


async def write_scan_result(
    path: Path,
    result: ScanResult,
    catalog: Optional[Catalog] = None,
) -> bool:
    """
    Write scan result to a text file.

    A failed write is logged and reported through the return value; the scan
    that produced the result is never affected.

    Args:
        path: Output file path.
        result: Finalized scan result.
        catalog: Known TLVs used to label findings (optional).

    Returns:
        True if the file was written.
    """
    content = serialize_scan_result(result, catalog)
    try:
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(content)
    except OSError as e:
        logger.error(f"Error creating output file {path}: {e}")
        return False
    logger.info(f"Results saved to {path}")
    return True


def output_path_for_device(base: Path, index: int, device_count: int) -> Path:
    """
    Output file for the index-th device (1-based) of a run.

    Single-device runs use base unchanged. Otherwise "_device<index>" goes
    before the extension, or at the end when there is none:
    results.txt -> results_device2.txt, results -> results_device2.
    """
    if device_count <= 1:
        return base
    if base.suffix:
        return base.with_name(f"{base.stem}_device{index}{base.suffix}")
    return base.with_name(f"{base.name}_device{index}")
