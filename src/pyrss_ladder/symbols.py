"""Symbol table (MEM DATABASE) and processor metadata extraction."""

import logging
import re

from .address import normalize_address
from .decompress import DecodedPayload
from .types import Symbol

logger = logging.getLogger(__name__)

# Zero-padded symbol-database addresses: B0003:002/02, T0004:007.DN
_PADDED_ADDRESS = re.compile(r"^[BNTCIOFSR]\d{4}:\d{3}(/\d{2})?(\.[A-Z]+)?$")
_IDENTIFIER = re.compile(r"^[A-Z][A-Z0-9_]*$", re.IGNORECASE)
_PRINTABLE = re.compile(r"^[\x20-\x7E]+$")
_PROJECT_NAME = re.compile(r"([A-Z][A-Z0-9_]{3,15})(?=[^A-Z0-9_]|$)", re.IGNORECASE)

_MICROLOGIX_MARKERS = ("MicroLogix", "1761", "1762", "1763", "1766")

MAX_DESCRIPTION_PARTS = 4
DEFAULT_PROJECT_NAME = "RSLogix 500 Project"
SOFTWARE_VERSION = "RSLogix 500"


def _token(data: bytes, pos: int, min_len: int, max_len: int) -> str | None:
    if pos >= len(data):
        return None
    length = data[pos]
    if not min_len <= length <= max_len or pos + 1 + length > len(data):
        return None
    return data[pos + 1 : pos + 1 + length].decode("latin-1")


def extract_symbols(payload: DecodedPayload | None) -> dict[str, Symbol]:
    """
    Scan a decompressed MEM DATABASE payload for ``[len][address][len][name][len][desc]...``
    records. Returns symbols keyed by normalized address; a later record for the same
    address replaces an earlier one.
    """
    symbols: dict[str, Symbol] = {}
    if payload is None:
        return symbols
    data = payload.data

    for i in range(len(data)):
        address = _token(data, i, 8, 20)
        if address is None or not _PADDED_ADDRESS.match(address):
            continue
        name_at = i + 1 + len(address)
        name = _token(data, name_at, 2, 30)
        if name is None or not _IDENTIFIER.match(name):
            continue

        parts: list[str] = []
        pos = name_at + 1 + len(name)
        while len(parts) < MAX_DESCRIPTION_PARTS:
            part = _token(data, pos, 1, 30)
            if part is None or not _PRINTABLE.match(part):
                break
            parts.append(part)
            pos += 1 + len(part)

        normalized = normalize_address(address)
        symbols[normalized] = Symbol(address=normalized, name=name, description=" ".join(parts).strip())

    logger.debug("Extracted %d symbols", len(symbols))
    return symbols


def detect_processor_type(*texts: str) -> str:
    """MicroLogix when any text names the family or a 1761/1762/1763/1766 catalog number."""
    for text in texts:
        if any(marker in text for marker in _MICROLOGIX_MARKERS):
            return "MicroLogix"
    return "SLC 500"


def extract_project_name(payload: DecodedPayload | None) -> str:
    """First identifier of 4-16 characters in the PROCESSOR stream."""
    if payload is None:
        return DEFAULT_PROJECT_NAME
    match = _PROJECT_NAME.search(payload.text)
    return match.group(1) if match else DEFAULT_PROJECT_NAME
