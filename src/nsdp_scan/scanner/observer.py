"""
Scan progress observers.

run_scan reports batch and per-identifier events through ScanObserver; the
default LoggingObserver sends them to the module logger.
"""

import logging
from typing import Protocol

from ..nsdp.errors import NSDPError
from ..tlv.utils import format_tlv
from .models import Batch, Finding

logger = logging.getLogger(__name__)


class ScanObserver(Protocol):
    """Observer for scan progress.

    The scanner reports liveness through this interface so long scans can drive
    console output or plain logging. Implementations must be fast and must not raise.
    """

    def batch_started(self, batch: Batch) -> None:
        """A batch is about to be probed."""

    def batch_complete(self, batch: Batch, findings: list[Finding]) -> None:
        """A batch finished; findings are the ones from this batch only."""

    def finding(self, finding: Finding) -> None:
        """An identifier answered with data."""

    def probe_failed(self, tlv: int, error: NSDPError) -> None:
        """A single transaction failed (expected for most identifiers)."""


class LoggingObserver:
    """Default observer: progress to the module logger."""

    def batch_started(self, batch: Batch) -> None:
        logger.debug(
            "Scanning batch %d: %s to %s", batch.index, format_tlv(batch.start), format_tlv(batch.end)
        )

    def batch_complete(self, batch: Batch, findings: list[Finding]) -> None:
        logger.info(
            "Batch %d: %s to %s, found %d valid TLVs",
            batch.index,
            format_tlv(batch.start),
            format_tlv(batch.end),
            len(findings),
        )

    def finding(self, finding: Finding) -> None:
        logger.debug("%s: %d bytes - %s", format_tlv(finding.tlv), finding.length, finding.hex)

    def probe_failed(self, tlv: int, error: NSDPError) -> None:
        logger.debug("%s: %s", format_tlv(tlv), error)
