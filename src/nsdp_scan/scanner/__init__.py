"""TLV space scanner: batching, probing, aggregation and reporting."""

from .config import ScanConfig, ScanConfigError
from .models import Batch, DeviceIdentity, Finding, ScanRange, ScanResult
from .report import (
    format_scan_result,
    output_path_for_device,
    serialize_scan_result,
    write_scan_result,
)
from .scan import iter_batches, probe_batch, read_identity, run_scan

__all__ = [
    "Batch",
    "DeviceIdentity",
    "Finding",
    "ScanConfig",
    "ScanConfigError",
    "ScanRange",
    "ScanResult",
    "format_scan_result",
    "iter_batches",
    "output_path_for_device",
    "probe_batch",
    "read_identity",
    "run_scan",
    "serialize_scan_result",
    "write_scan_result",
]
