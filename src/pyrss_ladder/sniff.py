"""Classify an uploaded buffer by its leading bytes so callers can route it to a parser."""

import logging

from .types import FileFormat

logger = logging.getLogger(__name__)

# OLE2 compound document magic
COMPOUND_MAGIC = bytes.fromhex("D0CF11E0A1B11AE1")
ZIP_MAGIC = b"PK"

_XML_PROBE = 100
_BOMS = (b"\xef\xbb\xbf", b"\xff\xfe", b"\xfe\xff")


def _looks_like_xml(head: bytes) -> bool:
    for bom in _BOMS:
        if head.startswith(bom):
            head = head[len(bom):]
            break
    # UTF-16 prologs carry NULs between characters
    text = head.decode("latin-1").replace("\x00", "").lstrip()
    return "<?xml" in text


def sniff_format(buffer: bytes | None) -> FileFormat:
    """
    Return the FileFormat for ``buffer`` from its signature.

    Never raises: None, empty or truncated input is UNKNOWN.
    """
    if not buffer:
        return FileFormat.UNKNOWN
    if buffer[: len(COMPOUND_MAGIC)] == COMPOUND_MAGIC:
        return FileFormat.CONTAINER_BINARY
    if buffer[: len(ZIP_MAGIC)] == ZIP_MAGIC:
        return FileFormat.ZIP_LIKE
    if _looks_like_xml(bytes(buffer[:_XML_PROBE])):
        return FileFormat.XML_LIKE
    logger.debug("Unrecognized signature: %s", bytes(buffer[:8]).hex())
    return FileFormat.UNKNOWN
