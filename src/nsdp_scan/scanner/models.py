"""
Data model of a TLV scan: ranges, batches, findings and the scan result.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..tlv.utils import TLV_MAX, TLV_MIN, format_tlv, is_valid_tlv


@dataclass(frozen=True)
class ScanRange:
    """Inclusive range of TLV identifiers."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if not (is_valid_tlv(self.start) and is_valid_tlv(self.end)):
            raise ValueError(
                f"Scan range bounds must be within {format_tlv(TLV_MIN)}-{format_tlv(TLV_MAX)}, "
                f"got {self.start}-{self.end}"
            )
        if self.start > self.end:
            raise ValueError(
                f"Start {format_tlv(self.start)} must be <= end {format_tlv(self.end)}"
            )

    @property
    def count(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        return f"{format_tlv(self.start)} to {format_tlv(self.end)}"


@dataclass(frozen=True)
class Batch:
    """A contiguous slice of a ScanRange probed as one pacing unit. Index is 1-based."""

    index: int
    start: int
    end: int

    @property
    def identifiers(self) -> range:
        return range(self.start, self.end + 1)

    def __len__(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class Finding:
    """A TLV that answered with a non-empty value."""

    tlv: int
    raw: bytes

    @property
    def length(self) -> int:
        return len(self.raw)

    @property
    def hex(self) -> str:
        return self.raw.hex()


@dataclass(frozen=True)
class DeviceIdentity:
    """Device identity. name and model are None when the lookup failed, ip when unknown."""

    mac: str
    name: Optional[str] = None
    model: Optional[str] = None
    ip: Optional[str] = None


@dataclass
class ScanResult:
    """Result of scanning one device."""

    device: DeviceIdentity
    scan_range: ScanRange
    findings: list[Finding] = field(default_factory=list)
    duration: timedelta = timedelta(0)
    scanned_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_tested(self) -> int:
        return self.scan_range.count

    @property
    def total_valid(self) -> int:
        return len(self.findings)

    @property
    def success_rate(self) -> float:
        """Valid findings as a percentage of tested identifiers."""
        if self.total_tested == 0:
            return 0.0
        return self.total_valid / self.total_tested * 100
