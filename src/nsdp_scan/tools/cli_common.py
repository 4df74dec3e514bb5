"""
Shared CLI argument parsing and backend creation for the scanner tools.

Handles --interface/--yaml validation, device discovery, backend
instantiation and cleanup of the UDP connection.
"""

import argparse
import logging
import sys
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from ..nsdp import api as nsdp_api
from ..nsdp.backend import DeviceBackend, UdpDeviceBackend, YamlDeviceBackend
from ..scanner.config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_DELAY,
    DEFAULT_TIMEOUT,
    parse_duration,
)

logger = logging.getLogger(__name__)


def _duration_arg(text: str) -> float:
    try:
        return parse_duration(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def add_device_arguments(parser: argparse.ArgumentParser) -> None:
    """
    Add --interface and --yaml arguments to the parser.

    Args:
        parser: ArgumentParser to add arguments to.
    """
    parser.add_argument(
        "-i",
        "--interface",
        type=str,
        help="Network mode: interface to discover and scan devices on (e.g. eth0)",
    )
    parser.add_argument(
        "--yaml",
        dest="yaml_path",
        type=str,
        metavar="PATH",
        help="YAML mode: path to simulated device state file (for offline/dev)",
    )


def add_scan_arguments(parser: argparse.ArgumentParser) -> None:
    """
    Add range, batching and timing arguments to the parser.

    Args:
        parser: ArgumentParser to add arguments to.
    """
    parser.add_argument(
        "--start",
        default="0000",
        metavar="HEX",
        help="Starting TLV hex value (default: 0000)",
    )
    parser.add_argument(
        "--end",
        default="FFFF",
        metavar="HEX",
        help="Ending TLV hex value (default: FFFF)",
    )
    parser.add_argument(
        "--batch",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        metavar="N",
        help=f"Number of TLVs to test per batch (default: {DEFAULT_BATCH_SIZE})",
    )
    parser.add_argument(
        "--delay",
        type=_duration_arg,
        default=DEFAULT_DELAY,
        metavar="DURATION",
        help="Delay between batches, e.g. 0.1, 100ms, 2s (default: 100ms)",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=_duration_arg,
        default=DEFAULT_TIMEOUT,
        metavar="DURATION",
        help="Query timeout per TLV, e.g. 10, 500ms (default: 10s)",
    )
    parser.add_argument(
        "--discovery-timeout",
        type=_duration_arg,
        default=None,
        metavar="DURATION",
        help="How long to wait for discovery responses (default: query timeout)",
    )


def _validate_device_args(args: argparse.Namespace) -> bool:
    """Validate interface/yaml args. Print error to stderr and return False on failure."""
    if args.interface and args.yaml_path:
        print("Error: Use either --interface or --yaml, not both.", file=sys.stderr)
        return False
    if not args.interface and not args.yaml_path:
        print(
            "Error: Specify --interface for network mode or --yaml for YAML (offline) mode.",
            file=sys.stderr,
        )
        return False
    return True


@asynccontextmanager
async def _network_devices_context(
    args: argparse.Namespace, discovery_timeout: float
) -> AsyncIterator[list[DeviceBackend]]:
    """Open the UDP connection, discover devices, close the connection on exit."""
    async with await nsdp_api.open_connection(args.interface) as connection:
        devices = await nsdp_api.discover(connection, discovery_timeout)
        yield [UdpDeviceBackend(connection, device) for device in devices]


@asynccontextmanager
async def _yaml_devices_context(args: argparse.Namespace) -> AsyncIterator[list[DeviceBackend]]:
    """Single simulated device from the YAML state file. Nothing to clean up."""
    yaml_path = Path(args.yaml_path)
    if not yaml_path.is_absolute():
        yaml_path = Path.cwd() / yaml_path
    yield [await YamlDeviceBackend.from_file(yaml_path.resolve())]


def devices_context(
    args: argparse.Namespace,
    discovery_timeout: float,
) -> AbstractAsyncContextManager[list[DeviceBackend]] | None:
    """
    Validate interface/yaml args and return async context manager yielding device backends.

    Args:
        args: Parsed arguments with interface and yaml_path attributes.
        discovery_timeout: Seconds to wait for discovery responses (network mode).

    Returns:
        Async context manager on success. Use: async with devices_context(args, t) as backends.
        None on validation failure (error printed to stderr).

    Note:
        Entering the context raises NSDPConfigError when the interface cannot be
        used, and SimulatorStateError when the YAML state file is invalid.
    """
    if not _validate_device_args(args):
        return None

    if args.yaml_path:
        return _yaml_devices_context(args)
    return _network_devices_context(args, discovery_timeout)
