"""Compound-document boundary: list and read every stream of an OLE2 container with olefile."""

import io
import logging
from dataclasses import dataclass

import olefile

from .errors import NotACompoundDocumentError
from .sniff import COMPOUND_MAGIC

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompoundStream:
    """One stream of the container; ``path`` joins storage names with '/' (``PROGRAM FILES/ObjectData``)."""

    path: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def read_compound_streams(buffer: bytes) -> list[CompoundStream]:
    """
    Open ``buffer`` as an OLE2 compound document and return every stream in directory order.

    Raises NotACompoundDocumentError when the signature is missing or olefile rejects the structure.
    """
    if buffer[: len(COMPOUND_MAGIC)] != COMPOUND_MAGIC:
        raise NotACompoundDocumentError()

    try:
        ole = olefile.OleFileIO(io.BytesIO(buffer))
    except (OSError, ValueError) as e:
        raise NotACompoundDocumentError(f"Corrupt compound document: {e}", cause=e) from e

    streams: list[CompoundStream] = []
    try:
        for entry in ole.listdir(streams=True, storages=False):
            path = "/".join(entry)
            data = ole.openstream(entry).read()
            streams.append(CompoundStream(path=path, data=data))
            logger.debug("Stream %s: %d bytes", path, len(data))
    finally:
        ole.close()

    logger.debug("Compound document holds %d streams", len(streams))
    return streams


def find_stream(streams: list[CompoundStream], path: str) -> CompoundStream | None:
    """Case-insensitive exact path lookup."""
    wanted = path.lower()
    for stream in streams:
        if stream.path.lower() == wanted:
            return stream
    return None
