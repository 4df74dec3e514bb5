"""
TLV package: identifier helpers, value interpreter and known-TLV catalog.
"""

from .catalog import TLVDefinition, load_catalog
from .interpret import format_interpretation, interpret
from .utils import TLV_MAX, TLV_MIN, format_tlv, parse_tlv_hex

__all__ = [
    "TLVDefinition",
    "TLV_MAX",
    "TLV_MIN",
    "format_interpretation",
    "format_tlv",
    "interpret",
    "load_catalog",
    "parse_tlv_hex",
]
