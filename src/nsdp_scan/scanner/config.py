"""
Scan configuration: validated settings for one scan run.

ScanConfig is a pydantic model so that CLI input and programmatic callers go
through the same checks (hex bounds, start <= end, batch size, delays).
Validation failures are raised as ScanConfigError.
"""

import argparse
import re
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from ..tlv.utils import TLV_MAX, TLV_MIN, format_tlv, parse_tlv_hex
from .models import ScanRange

DEFAULT_TIMEOUT = 10.0
DEFAULT_BATCH_SIZE = 100
DEFAULT_DELAY = 0.1

_DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m)?\s*$")
_DURATION_SCALE = {"ms": 0.001, "s": 1.0, "m": 60.0, None: 1.0}


class ScanConfigError(Exception):
    """Raised when scan settings are invalid. Fatal before scanning starts."""


def parse_duration(text: str) -> float:
    """
    Parse a duration in seconds. Accepts "10", "2.5", "100ms", "10s" or "1m".

    Raises:
        ValueError: If the text is not a non-negative duration.
    """
    match = _DURATION.match(text)
    if not match:
        raise ValueError(f"Invalid duration: {text!r}")
    return float(match.group(1)) * _DURATION_SCALE[match.group(2)]


def _describe_error(err: Any) -> str:
    msg = err["msg"].removeprefix("Value error, ")
    location = ".".join(str(p) for p in err["loc"])
    return f"{location}: {msg}" if location else msg


class ScanConfig(BaseModel):
    """Settings for one scan run."""

    start: int = Field(TLV_MIN, ge=TLV_MIN, le=TLV_MAX)
    end: int = Field(TLV_MAX, ge=TLV_MIN, le=TLV_MAX)
    batch_size: int = Field(DEFAULT_BATCH_SIZE, ge=1)
    delay: float = Field(DEFAULT_DELAY, ge=0)
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    discovery_timeout: Optional[float] = Field(None, gt=0)
    output: Optional[Path] = None
    verbose: bool = False

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_range(self) -> "ScanConfig":
        if self.start > self.end:
            raise ValueError(
                f"Start value ({format_tlv(self.start)}) must be <= end value ({format_tlv(self.end)})"
            )
        return self

    @property
    def scan_range(self) -> ScanRange:
        return ScanRange(self.start, self.end)

    @property
    def effective_discovery_timeout(self) -> float:
        return self.discovery_timeout if self.discovery_timeout is not None else self.timeout

    @classmethod
    def build(cls, **values: Any) -> "ScanConfig":
        """Validate values, raising ScanConfigError instead of ValidationError."""
        try:
            return cls(**values)
        except ValidationError as e:
            raise ScanConfigError("; ".join(_describe_error(err) for err in e.errors())) from e

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ScanConfig":
        """
        Build config from parsed CLI arguments.

        Args:
            args: Namespace with start, end (hex strings), batch, delay, timeout,
                discovery_timeout, output and verbose.

        Raises:
            ScanConfigError: On invalid hex bounds or any failed check.
        """
        try:
            start = parse_tlv_hex(args.start)
        except ValueError as e:
            raise ScanConfigError(f"Invalid start hex value: {e}") from e
        try:
            end = parse_tlv_hex(args.end)
        except ValueError as e:
            raise ScanConfigError(f"Invalid end hex value: {e}") from e

        return cls.build(
            start=start,
            end=end,
            batch_size=args.batch,
            delay=args.delay,
            timeout=args.timeout,
            discovery_timeout=args.discovery_timeout,
            output=Path(args.output) if args.output else None,
            verbose=args.verbose,
        )
