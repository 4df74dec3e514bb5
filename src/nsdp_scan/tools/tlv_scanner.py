"""
TLV space scanner CLI for reverse-engineering NSDP devices.

Discovers devices on an interface (or loads a simulated one from YAML), then
probes a range of TLV identifiers on each device in paced batches and prints
every identifier that answered with data. Results can be saved to a text file.
"""

import argparse
import asyncio
import logging
import sys
from typing import Mapping

from ..nsdp.errors import NSDPConfigError, NSDPError
from ..nsdp.simulator import SimulatorStateError
from ..scanner.config import ScanConfig, ScanConfigError
from ..scanner.models import Batch, Finding
from ..scanner.report import (
    format_scan_result,
    output_path_for_device,
    write_scan_result,
)
from ..scanner.scan import read_identity, run_scan
from ..tlv.catalog import EMPTY_CATALOG, CatalogConfigError, TLVDefinition, load_catalog
from ..tlv.utils import format_tlv
from .cli_common import add_device_arguments, add_scan_arguments, devices_context

logger = logging.getLogger(__name__)

# In verbose mode, failures are echoed only for every N-th identifier
VERBOSE_FAILURE_STRIDE = 1000


class ConsoleObserver:
    """Prints one progress line per batch; findings and sampled failures when verbose."""

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose

    def batch_started(self, batch: Batch) -> None:
        print(
            f"Scanning batch {batch.index}: {format_tlv(batch.start)} to {format_tlv(batch.end)}...",
            end="" if not self.verbose else "\n",
            flush=True,
        )

    def batch_complete(self, batch: Batch, findings: list[Finding]) -> None:
        print(f" Found {len(findings)} valid TLVs", flush=True)

    def finding(self, finding: Finding) -> None:
        if self.verbose:
            print(f"  {format_tlv(finding.tlv)}: SUCCESS - {finding.length} bytes: {finding.hex}")

    def probe_failed(self, tlv: int, error: NSDPError) -> None:
        if self.verbose and tlv % VERBOSE_FAILURE_STRIDE == 0:
            print(f"  {format_tlv(tlv)}: Error - {error}")


def _load_catalog() -> Mapping[int, TLVDefinition]:
    try:
        return load_catalog()
    except CatalogConfigError as e:
        logger.warning(f"Known TLV catalog unavailable, reporting without labels: {e}")
        return EMPTY_CATALOG


def _print_banner(config: ScanConfig, source: str) -> None:
    scan_range = config.scan_range
    print("=== NSDP TLV Discovery Tool ===")
    print(f"Source: {source}")
    print(f"Timeout: {config.timeout}s")
    print(f"Scanning range: {scan_range} ({scan_range.count} TLVs)")
    print(f"Batch size: {config.batch_size}")
    print(f"Delay between batches: {config.delay}s")
    print()


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Probe the NSDP TLV identifier space of Netgear switches."
    )
    add_device_arguments(parser)
    add_scan_arguments(parser)
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        metavar="FILE",
        help="Write results to file (one file per device when several are found)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print every finding and sampled failures, enable debug logging",
    )
    return parser.parse_args(argv)


async def _main_async(argv: list[str] | None = None) -> int:
    """Async main logic. Returns exit code."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ScanConfig.from_args(args)
    except ScanConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    cm = devices_context(args, config.effective_discovery_timeout)
    if not cm:
        return 1

    catalog = _load_catalog()
    _print_banner(config, args.interface or args.yaml_path)
    observer = ConsoleObserver(verbose=config.verbose)

    try:
        async with cm as backends:
            if not backends:
                print("No NSDP devices found")
                return 1
            print(f"Found {len(backends)} device(s)\n")

            for index, backend in enumerate(backends, start=1):
                print(f"=== Device {index} ===")
                identity = await read_identity(backend, config.timeout)
                print(f"Device MAC: {identity.mac}")
                if identity.name:
                    print(f"Device Name: {identity.name}")
                if identity.model:
                    print(f"Device Model: {identity.model}")
                if identity.ip:
                    print(f"Device IP: {identity.ip}")
                print()

                result = await run_scan(
                    backend,
                    config.scan_range,
                    batch_size=config.batch_size,
                    delay=config.delay,
                    timeout=config.timeout,
                    observer=observer,
                    identity=identity,
                )
                print(format_scan_result(result, catalog))

                if config.output:
                    out_path = output_path_for_device(config.output, index, len(backends))
                    if await write_scan_result(out_path, result, catalog):
                        print(f"Results saved to: {out_path}")
                    else:
                        print(f"Error creating output file: {out_path}")
                print()
    except (NSDPConfigError, SimulatorStateError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


def main() -> None:
    """CLI entry point."""
    exit_code = asyncio.run(_main_async())
    raise SystemExit(exit_code)
