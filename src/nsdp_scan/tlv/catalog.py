"""
Catalog of known TLV identifiers: a label and an optional semantic decoder.

The catalog is configuration data loaded from YAML (package configs/ directory)
via load_catalog(name). It is only used to annotate reports; the scanner works
the same with an empty catalog.
"""

import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .decoders import DECODER_REGISTRY, Decoder
from .utils import parse_tlv_hex

logger = logging.getLogger(__name__)

DEFAULT_CATALOG = "known_tlvs"


class CatalogConfigError(Exception):
    """Raised when catalog YAML config is invalid or incomplete."""


@dataclass(frozen=True)
class TLVDefinition:
    """A known TLV: its identifier, label and decoder (if its layout is known)."""

    tlv: int
    name: str
    decode_function: Optional[Decoder] = None

    def describe(self, data: bytes) -> str:
        """Label plus decoded value when the decoder accepts the data."""
        if self.decode_function is not None:
            decoded = self.decode_function(data)
            if decoded is not None:
                return f"{self.name}: {decoded}"
        return self.name


EMPTY_CATALOG: Mapping[int, TLVDefinition] = MappingProxyType({})


# --- Pydantic schema for YAML validation ---


class TLVSpec(BaseModel):
    """Schema for a single catalog entry in YAML config."""

    name: str = Field(..., min_length=1)
    decode: Optional[str] = None


def _parse_entry(key: Any, raw: Any) -> TLVDefinition:
    try:
        tlv = parse_tlv_hex(str(key))
    except ValueError as e:
        raise CatalogConfigError(f"Invalid TLV key {key!r}: {e}.") from e

    try:
        spec = TLVSpec.model_validate(raw)
    except ValidationError as e:
        raise CatalogConfigError(f"Invalid entry for TLV {key!r}: {e}.") from e

    decode_fn: Optional[Decoder] = None
    if spec.decode is not None:
        if spec.decode not in DECODER_REGISTRY:
            raise CatalogConfigError(
                f"Unknown decoder {spec.decode!r} for TLV {key!r}. "
                f"Known: {list(DECODER_REGISTRY.keys())}."
            )
        decode_fn = DECODER_REGISTRY[spec.decode]
    return TLVDefinition(tlv=tlv, name=spec.name, decode_function=decode_fn)


def load_catalog(
    name: str = DEFAULT_CATALOG,
    config_dir: Optional[Path] = None,
) -> Mapping[int, TLVDefinition]:
    """Load the known-TLV catalog from YAML config by name.

    Args:
        name: Config file name without extension (e.g. 'known_tlvs').
        config_dir: Optional directory for config files (used in tests). If None, loads from package configs/.

    Returns:
        Read-only mapping of TLV identifier to TLVDefinition.

    Raises:
        CatalogConfigError: If config is invalid or not found.
    """
    if config_dir is not None:
        config_path = config_dir / f"{name}.yaml"
        if not config_path.exists():
            logger.error("Catalog file not found: %s", config_path)
            raise CatalogConfigError(f"Catalog {name!r} not found at {config_path}.")
        content = config_path.read_text()
    else:
        try:
            content = (resources.files("nsdp_scan") / "configs" / f"{name}.yaml").read_text()
        except FileNotFoundError as e:
            logger.error("Catalog not found: %s", e)
            raise CatalogConfigError(f"Catalog {name!r} not found in package configs.") from e

    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as e:
        logger.error("Invalid YAML in catalog %s: %s", name, e)
        raise CatalogConfigError(f"Invalid YAML in catalog {name!r}: {e}.") from e

    if raw is None:
        return EMPTY_CATALOG
    if not isinstance(raw, dict):
        raise CatalogConfigError(
            f"Catalog {name!r} root must be a mapping, got {type(raw).__name__}."
        )

    entries: dict[int, TLVDefinition] = {}
    for key, entry in raw.items():
        definition = _parse_entry(key, entry)
        if definition.tlv in entries:
            raise CatalogConfigError(f"Duplicate TLV {key!r} in catalog {name!r}.")
        entries[definition.tlv] = definition

    logger.debug("Loaded catalog %s with %d entries", name, len(entries))
    return MappingProxyType(entries)
