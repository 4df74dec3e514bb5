"""Command-line tools for TLV space discovery."""

from .tlv_scanner import ConsoleObserver, main

__all__ = [
    "ConsoleObserver",
    "main",
]
