"""Stream header parsing and zlib inflation of compound-document streams."""

import logging
import struct
import zlib
from dataclasses import dataclass
from functools import cached_property

from .errors import StreamDecompressionFailed

logger = logging.getLogger(__name__)

HEADER_SIZE = 16
ZLIB_MAGIC = 0x78

_HEADER = struct.Struct("<IIII")


@dataclass(frozen=True)
class StreamHeader:
    """``[version][header_size][compressed_size][uncompressed_size]``, four little-endian u32."""

    version: int
    header_size: int
    compressed_size: int
    uncompressed_size: int

    @classmethod
    def parse(cls, data: bytes) -> "StreamHeader | None":
        if len(data) < HEADER_SIZE:
            return None
        return cls(*_HEADER.unpack_from(data, 0))


@dataclass(frozen=True)
class DecodedPayload:
    """
    Decompressed stream bytes plus a Latin-1 text projection.

    Latin-1 maps every byte to one code point, so text offsets equal byte offsets.
    The projection only speeds up marker searches; decisions read ``data``.
    """

    data: bytes
    path: str = ""
    compressed: bool = False

    @cached_property
    def text(self) -> str:
        return self.data.decode("latin-1")

    def find_all(self, marker: bytes, start: int = 0, end: int | None = None) -> list[int]:
        """Every offset of ``marker`` in ``data[start:end]``, ascending; overlapping hits included."""
        needle = marker.decode("latin-1")
        stop = len(self.data) if end is None else end
        found = []
        pos = self.text.find(needle, start, stop)
        while pos != -1:
            found.append(pos)
            pos = self.text.find(needle, pos + 1, stop)
        return found

    def __contains__(self, marker: bytes) -> bool:
        return marker.decode("latin-1") in self.text

    def __len__(self) -> int:
        return len(self.data)


def _inflate(data: bytes, path: str) -> bytes:
    try:
        return zlib.decompress(data)
    except zlib.error as e:
        raise StreamDecompressionFailed(path, f"Could not decompress stream {path!r}: {e}", cause=e) from e


def decompress_stream(data: bytes, path: str = "") -> DecodedPayload:
    """
    Decode one stream.

    - Zlib magic right after the 16-byte header: strip the header and inflate the rest.
    - Zlib magic at offset 0: inflate the whole stream.
    - Otherwise pass the bytes through unchanged.

    Raises StreamDecompressionFailed when inflation fails.
    """
    if len(data) > HEADER_SIZE and data[HEADER_SIZE] == ZLIB_MAGIC:
        header = StreamHeader.parse(data)
        out = _inflate(data[HEADER_SIZE:], path)
        if header is not None and header.uncompressed_size and header.uncompressed_size != len(out):
            logger.debug(
                "Stream %s: header says %d bytes, inflated %d", path, header.uncompressed_size, len(out)
            )
        logger.debug("Stream %s: %d -> %d bytes (headered zlib)", path, len(data), len(out))
        return DecodedPayload(out, path=path, compressed=True)

    if data and data[0] == ZLIB_MAGIC:
        out = _inflate(data, path)
        logger.debug("Stream %s: %d -> %d bytes (bare zlib)", path, len(data), len(out))
        return DecodedPayload(out, path=path, compressed=True)

    return DecodedPayload(bytes(data), path=path, compressed=False)
