"""Initial data-table values from the DATA FILES stream (N, F, L words; T/C presets and accumulators; R controls)."""

import logging
import math
import struct

from .address import DEFAULT_FILE_NUMBERS
from .decompress import DecodedPayload
from .profile import FormatProfile
from .types import AddressToken, RegisterValue

logger = logging.getLogger(__name__)

# Header: 03 80 [type] ... [count:u16 @ +10] [words:u16 @ +12], data at +16
HEADER_SIZE = 16
_COUNT_OFFSET = 10
_WORDS_OFFSET = 12
MAX_ELEMENTS = 10_000

# T, C and R elements: control word, then two value words
_STRUCT_STRIDE = 6

# Exponent field of a plausible float stored in a two-word integer element
_FLOAT_EXPONENT_RANGE = range(0x67, 0x9F)
_FLOAT_LIMIT = 1e10

_UNUSED = (0, -1)

_STRUCT_FIELDS: dict[str, tuple[str, str]] = {
    "T": ("PRE", "ACC"),
    "C": ("PRE", "ACC"),
    "R": ("LEN", "POS"),
}


def initial_file_numbers() -> dict[str, int]:
    """Fresh per-type file-number counters seeded with the default file numbers."""
    return dict(DEFAULT_FILE_NUMBERS)


def _int16(data: bytes, pos: int) -> int:
    return struct.unpack_from("<h", data, pos)[0]


def _integer_value(data: bytes, pos: int, words: int) -> int | float:
    """
    A wide integer element whose 32-bit pattern has a plausible float exponent
    is read as a float; otherwise the first word is a signed 16-bit integer.
    """
    if words >= 2 and pos + 4 <= len(data):
        raw = struct.unpack_from("<I", data, pos)[0]
        if (raw >> 23) & 0xFF in _FLOAT_EXPONENT_RANGE:
            return struct.unpack_from("<f", data, pos)[0]
    return _int16(data, pos)


def _element_values(prefix: str, data: bytes, start: int, count: int, words: int):
    """Yield (element, subfield, value) for one data file."""
    if prefix in _STRUCT_FIELDS:
        first, second = _STRUCT_FIELDS[prefix]
        for element in range(count):
            pos = start + element * _STRUCT_STRIDE
            if pos + _STRUCT_STRIDE > len(data):
                break
            yield element, first, _int16(data, pos + 2)
            yield element, second, _int16(data, pos + 4)
        return

    stride = 2 * words
    for element in range(count):
        pos = start + element * stride
        if prefix == "N":
            if pos + 2 > len(data):
                break
            value = _integer_value(data, pos, words)
            if value not in _UNUSED:
                yield element, None, value
        elif prefix == "F":
            if pos + 4 > len(data):
                break
            fvalue = struct.unpack_from("<f", data, pos)[0]
            if math.isfinite(fvalue) and abs(fvalue) < _FLOAT_LIMIT:
                yield element, None, fvalue
        elif prefix == "L":
            if pos + 4 > len(data):
                break
            lvalue = struct.unpack_from("<i", data, pos)[0]
            if lvalue not in _UNUSED:
                yield element, None, lvalue


def _data_length(prefix: str, count: int, words: int) -> int:
    if prefix in _STRUCT_FIELDS:
        return count * _STRUCT_STRIDE
    return count * words * 2


def extract_register_values(
    payload: DecodedPayload | None,
    profile: FormatProfile,
    file_numbers: dict[str, int] | None = None,
) -> tuple[RegisterValue, ...]:
    """
    Scan a decompressed DATA FILES payload for data-file records and return their values.

    File numbers are assigned in order of appearance per type from ``file_numbers``
    (seeded by ``initial_file_numbers()`` when omitted); a counter advances only for
    accepted headers. Headers with zero or more than 10000 elements, or zero words
    per element, are false positives and skipped.
    """
    if payload is None:
        return ()
    counters = initial_file_numbers() if file_numbers is None else file_numbers
    data = payload.data
    marker = profile.data_file_marker
    values: list[RegisterValue] = []

    pos = 0
    while True:
        pos = payload.text.find(marker.decode("latin-1"), pos)
        if pos == -1 or pos + HEADER_SIZE > len(data):
            break
        prefix = profile.data_file_types.get(data[pos + len(marker)])
        if prefix is None:
            pos += 1
            continue
        count = struct.unpack_from("<H", data, pos + _COUNT_OFFSET)[0]
        words = struct.unpack_from("<H", data, pos + _WORDS_OFFSET)[0]
        if count == 0 or count > MAX_ELEMENTS or words == 0:
            pos += 1
            continue

        # a rejected header holds no data and does not consume a file number
        file_number = counters.get(prefix, 0)
        counters[prefix] = file_number + 1
        start = pos + HEADER_SIZE
        found = 0
        for element, subfield, value in _element_values(prefix, data, start, count, words):
            address = AddressToken(prefix=prefix, file_number=file_number, element=element, subfield=subfield)
            values.append(RegisterValue(address=address, value=value))
            found += 1
        if found:
            logger.debug("Data file %s%d: %d values from %d elements", prefix, file_number, found, count)
        pos = max(pos + 1, min(len(data), start + _data_length(prefix, count, words)))

    logger.info("Extracted %d register values", len(values))
    return tuple(values)
