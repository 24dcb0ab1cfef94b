"""Parse, validate and normalize SLC 500 data-table addresses (B3:0/15, T4:0.DN, I:1/3)."""

import re

from .errors import InvalidAddressToken
from .types import AddressToken, TagDataType

# Prefix + optional file number + ':' + element + optional /bit + optional .SUBFIELD
_ADDRESS_PATTERN = re.compile(r"^([A-Z]{1,2})(\d*):(\d+)(?:/(\d+))?(?:\.([A-Z]+))?$")

# Symbol-database form with zero padding: B0003:002/02
_PADDED_PATTERN = re.compile(r"^([A-Z]+)0*(\d+):0*(\d+)(?:/0*(\d+))?(\.[A-Z]+)?$", re.IGNORECASE)

# prefix -> (file type name, description)
FILE_TYPES: dict[str, tuple[str, str]] = {
    "O": ("Output", "Physical outputs"),
    "I": ("Input", "Physical inputs"),
    "S": ("Status", "Processor status"),
    "B": ("Binary", "Bit storage"),
    "T": ("Timer", "Timer storage"),
    "C": ("Counter", "Counter storage"),
    "R": ("Control", "Control structures"),
    "N": ("Integer", "Integer storage"),
    "F": ("Float", "Floating point"),
    "ST": ("String", "String storage"),
    "A": ("ASCII", "ASCII data"),
    "D": ("BCD", "Binary coded decimal"),
    "L": ("Long", "Long integer (32-bit)"),
    "MG": ("Message", "Message control"),
    "PD": ("PID", "PID control"),
    "SC": ("SFC", "Sequential function chart"),
    "U": ("Subroutine", "Ladder file reference"),
}

# Default file number when the address omits it (I:0/3 means I1:0/3)
DEFAULT_FILE_NUMBERS: dict[str, int] = {
    "O": 0, "I": 1, "S": 2, "B": 3, "T": 4, "C": 5, "R": 6, "N": 7, "F": 8, "L": 9,
}

SUBFIELDS: dict[str, str] = {
    "DN": "Done",
    "TT": "Timer Timing",
    "EN": "Enable",
    "PRE": "Preset",
    "ACC": "Accumulated",
    "OV": "Overflow",
    "UN": "Underflow",
    "CU": "Count Up",
    "CD": "Count Down",
    "ER": "Error",
    "FD": "Found",
    "IN": "Inhibit",
    "LEN": "Length",
    "POS": "Position",
}

_TAG_TYPES: dict[str, TagDataType] = {
    "B": TagDataType.BOOL,
    "I": TagDataType.BOOL,
    "O": TagDataType.BOOL,
    "T": TagDataType.TIMER,
    "C": TagDataType.COUNTER,
    "N": TagDataType.INT,
    "F": TagDataType.REAL,
    "ST": TagDataType.STRING,
    "L": TagDataType.DINT,
    "R": TagDataType.CONTROL,
}


def parse_address(raw: str) -> AddressToken:
    """
    Parse an address string into an AddressToken.

    - Prefix must be one of FILE_TYPES (closed set).
    - A missing file number takes the per-type default (I:0/3 -> file 1).
    - Subfields are uppercased; bits and numbers are plain integers.

    Raises InvalidAddressToken for anything else.
    """
    s = raw.strip().upper()
    if not s:
        raise InvalidAddressToken(raw, "Address cannot be empty")

    m = _ADDRESS_PATTERN.match(s)
    if not m:
        raise InvalidAddressToken(raw, f"Malformed address: {raw!r}")

    prefix, file_str, element_str, bit_str, subfield = m.groups()
    if prefix not in FILE_TYPES:
        raise InvalidAddressToken(raw, f"Unknown file type {prefix!r} in {raw!r}")

    if file_str:
        file_number = int(file_str)
        explicit_file = True
    else:
        file_number = DEFAULT_FILE_NUMBERS.get(prefix, 0)
        explicit_file = False

    # File numbers are 0-255 and elements 0-999 on SLC 500 processors
    if file_number > 255:
        raise InvalidAddressToken(raw, f"File number out of range 0-255: {file_number}")
    element = int(element_str)
    if element > 999:
        raise InvalidAddressToken(raw, f"Element out of range 0-999: {element}")

    return AddressToken(
        prefix=prefix,
        file_number=file_number,
        element=element,
        bit=int(bit_str) if bit_str is not None else None,
        subfield=subfield,
        explicit_file=explicit_file,
    )


def is_address(raw: str) -> bool:
    """True when ``raw`` parses as an address."""
    try:
        parse_address(raw)
    except InvalidAddressToken:
        return False
    return True


def normalize_address(raw: str) -> str:
    """
    Normalize an address to canonical text.

    - Strip zero padding used by the symbol database: B0003:002/02 -> B3:2/2.
    - Uppercase; I:0/3 keeps its short form.
    Unparseable input is returned uppercased.
    """
    s = raw.strip()
    m = _PADDED_PATTERN.match(s)
    if m:
        prefix, file_str, element_str, bit_str, subfield = m.groups()
        text = f"{prefix.upper()}{int(file_str)}:{int(element_str)}"
        if bit_str is not None:
            text += f"/{int(bit_str)}"
        if subfield:
            text += subfield.upper()
        return text
    try:
        return str(parse_address(s))
    except InvalidAddressToken:
        return s.upper()


def tag_data_type(address: AddressToken) -> TagDataType:
    """Tag data type for an address, from its file-type prefix (INT when unlisted)."""
    return _TAG_TYPES.get(address.prefix, TagDataType.INT)


def describe_address(address: AddressToken) -> str:
    """Human-readable form, e.g. ``Timer 4:0 (Done)`` or ``Binary 3:2, Bit 5``."""
    type_name = FILE_TYPES[address.prefix][0]
    text = f"{type_name} {address.file_number}:{address.element}"
    if address.bit is not None:
        text += f", Bit {address.bit}"
    if address.subfield:
        text += f" ({SUBFIELDS.get(address.subfield, address.subfield)})"
    return text
