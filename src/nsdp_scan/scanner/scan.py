"""
TLV space scanner: batch scheduling, per-identifier probing and aggregation.

The scanner walks a range of TLV identifiers in ascending order, split into
fixed-size batches with a pacing delay between them, and issues one read per
identifier. Only identifiers that answer with a non-empty value become
findings; errors and empty answers are treated as "not supported".

Exactly one transaction is outstanding at a time; batches are separated by
a fixed delay.
"""

import asyncio
import logging
import time
from datetime import timedelta
from typing import Iterator, Optional

from ..nsdp.backend import DeviceBackend
from ..nsdp.errors import NSDPError
from ..tlv.utils import format_tlv
from .models import Batch, DeviceIdentity, Finding, ScanRange, ScanResult
from .observer import LoggingObserver, ScanObserver

logger = logging.getLogger(__name__)


def iter_batches(scan_range: ScanRange, batch_size: int) -> Iterator[Batch]:
    """
    Split a range into contiguous batches in ascending order.

    The last batch is clipped at scan_range.end, so batches partition the range
    exactly.

    Args:
        scan_range: Range to split.
        batch_size: Maximum identifiers per batch (>= 1).

    Raises:
        ValueError: If batch_size < 1.
    """
    if batch_size < 1:
        raise ValueError(f"Batch size must be >= 1, got {batch_size}")

    cursor = scan_range.start
    index = 1
    while cursor <= scan_range.end:
        batch_end = min(cursor + batch_size - 1, scan_range.end)
        yield Batch(index=index, start=cursor, end=batch_end)
        cursor = batch_end + 1
        index += 1


async def read_identity(backend: DeviceBackend, timeout: float) -> DeviceIdentity:
    """Read device name and model, best-effort (None on failure). IP comes from the backend."""
    name = await backend.get_name(timeout)
    model = await backend.get_model(timeout)
    return DeviceIdentity(mac=backend.mac, name=name, model=model, ip=backend.ip)


async def probe_batch(
    backend: DeviceBackend,
    batch: Batch,
    timeout: float,
    observer: Optional[ScanObserver] = None,
) -> list[Finding]:
    """
    Read every identifier of a batch, one at a time, in ascending order.

    Failed transactions and empty values are skipped; there are no retries.

    Args:
        backend: Device to probe.
        batch: Identifiers to probe.
        timeout: Per-transaction timeout in seconds.
        observer: Receives finding/probe_failed notifications.

    Returns:
        Findings in ascending identifier order.
    """
    findings: list[Finding] = []
    for tlv in batch.identifiers:
        try:
            value = await backend.query_tlv(tlv, timeout)
        except NSDPError as e:
            if observer is not None:
                observer.probe_failed(tlv, e)
            continue

        if not value:
            logger.debug(f"{format_tlv(tlv)}: empty response, skipped")
            continue

        finding = Finding(tlv=tlv, raw=bytes(value))
        findings.append(finding)
        if observer is not None:
            observer.finding(finding)
    return findings


def finalize(result: ScanResult, started: float) -> ScanResult:
    """
    Sort findings by identifier and stamp the scan duration.

    Args:
        result: Result being built by run_scan.
        started: time.monotonic() value taken when the scan started.

    Returns:
        The same result, finalized.
    """
    result.findings.sort(key=lambda f: f.tlv)
    result.duration = timedelta(seconds=time.monotonic() - started)
    return result


async def run_scan(
    backend: DeviceBackend,
    scan_range: ScanRange,
    *,
    batch_size: int,
    delay: float,
    timeout: float,
    observer: Optional[ScanObserver] = None,
    identity: Optional[DeviceIdentity] = None,
) -> ScanResult:
    """
    Scan a range of TLV identifiers on one device.

    Args:
        backend: Device to scan. Must not be used by anything else meanwhile.
        scan_range: Identifiers to probe.
        batch_size: Identifiers per batch (>= 1).
        delay: Seconds to wait between batches (>= 0).
        timeout: Per-transaction timeout in seconds.
        observer: Progress observer (defaults to logging).
        identity: Known device identity; read from the device if None.

    Returns:
        Finalized ScanResult with findings sorted by identifier.

    Raises:
        ValueError: If batch_size < 1 or delay < 0.
    """
    if batch_size < 1:
        raise ValueError(f"Batch size must be >= 1, got {batch_size}")
    if delay < 0:
        raise ValueError(f"Delay must be >= 0, got {delay}")
    if observer is None:
        observer = LoggingObserver()

    if identity is None:
        identity = await read_identity(backend, timeout)

    started = time.monotonic()
    result = ScanResult(device=identity, scan_range=scan_range)
    logger.info(
        f"Scanning {identity.mac}: {scan_range} ({scan_range.count} TLVs, batch size {batch_size})"
    )

    for batch in iter_batches(scan_range, batch_size):
        observer.batch_started(batch)
        batch_findings = await probe_batch(backend, batch, timeout, observer)
        result.findings.extend(batch_findings)
        observer.batch_complete(batch, batch_findings)

        if batch.end < scan_range.end and delay > 0:
            await asyncio.sleep(delay)

    finalize(result, started)
    logger.info(
        f"Scan of {identity.mac} complete: {result.total_valid} of {result.total_tested} TLVs valid"
    )
    return result
