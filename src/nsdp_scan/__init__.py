"""
TLV space discovery for Netgear switches speaking NSDP.

Probes the 16-bit TLV identifier space of a device in paced batches and
reports every identifier that answers with data.
"""

__version__ = "0.1.0"
