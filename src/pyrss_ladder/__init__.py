"""pyrss-ladder: extract ladder logic, tags and data-table values from RSLogix 500 .RSS files."""

__version__ = "0.1.0"

from .address import describe_address, normalize_address, parse_address
from .container import CompoundStream, read_compound_streams
from .decoder import DecodeResult, LadderDecoder
from .errors import (
    InvalidAddressToken,
    NoLadderLogicFound,
    NotACompoundDocumentError,
    PyRSSLadderError,
    StreamDecompressionFailed,
    UnknownProfileError,
)
from .parser import parse_rss
from .profile import FormatProfile, get_default_profile
from .sniff import sniff_format
from .types import AddressToken, FileFormat, Instruction, Project, Routine, Rung, Tag

__all__ = [
    "__version__",
    "parse_rss",
    "sniff_format",
    "read_compound_streams",
    "CompoundStream",
    "LadderDecoder",
    "DecodeResult",
    "FormatProfile",
    "get_default_profile",
    "parse_address",
    "normalize_address",
    "describe_address",
    "PyRSSLadderError",
    "NotACompoundDocumentError",
    "NoLadderLogicFound",
    "StreamDecompressionFailed",
    "InvalidAddressToken",
    "UnknownProfileError",
    "AddressToken",
    "FileFormat",
    "Instruction",
    "Project",
    "Routine",
    "Rung",
    "Tag",
]
