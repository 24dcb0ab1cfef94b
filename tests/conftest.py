"""Shared fixtures: a byte-level builder for synthetic RSLogix 500 payloads."""

import struct
import zlib

import pytest

from pyrss_ladder.container import CompoundStream
from pyrss_ladder.decompress import DecodedPayload
from pyrss_ladder.profile import FormatProfile

RUNG_MARKER = b"\x07\x80\x09\x80"


class PayloadBuilder:
    """Build instruction records, structural markers and compressed streams."""

    @staticmethod
    def token(text: str) -> bytes:
        raw = text.encode("latin-1")
        return bytes([len(raw)]) + raw

    @classmethod
    def instruction(cls, opcode: int, address: str, params: tuple[str, ...] = (), context: int = 0x01) -> bytes:
        """``[opcode] 0B 80 [context] 00 [len] address`` followed by length-prefixed params."""
        raw = address.encode("latin-1")
        record = bytes([opcode, 0x0B, 0x80, context, 0x00, len(raw)]) + raw
        return record + b"".join(cls.token(p) for p in params)

    @staticmethod
    def rung() -> bytes:
        # Padded so consecutive markers are never closer than the duplicate spacing
        return RUNG_MARKER + b"\x00" * 32

    @staticmethod
    def ladder_file(name: str, kind: int = 0x45) -> bytes:
        return b"\x03\x80" + bytes([kind]) + b"\x00\x01\x00" + name.encode("latin-1") + b"\x00"

    @staticmethod
    def branch_leg() -> bytes:
        return b"CBranchLeg\x00"

    @staticmethod
    def branch_close() -> bytes:
        return b"CBranch\x00"

    @staticmethod
    def data_file(type_code: int, count: int, words: int, body: bytes) -> bytes:
        """16-byte data-file header (count at +10, words at +12) followed by ``body``."""
        header = b"\x03\x80" + bytes([type_code]) + b"\x00" * 7 + struct.pack("<HH", count, words) + b"\x00\x00"
        return header + body

    @staticmethod
    def headered(payload: bytes, version: int = 2) -> bytes:
        """Stream with the 16-byte size header and zlib data at offset 16."""
        compressed = zlib.compress(payload)
        return struct.pack("<IIII", version, 16, len(compressed), len(payload)) + compressed

    @staticmethod
    def stream(path: str, data: bytes) -> CompoundStream:
        return CompoundStream(path=path, data=data)

    @staticmethod
    def reader(streams: list[CompoundStream]):
        """Stand-in for read_compound_streams that ignores the buffer."""
        return lambda buffer: list(streams)

    @staticmethod
    def payload(data: bytes) -> DecodedPayload:
        return DecodedPayload(data)


@pytest.fixture
def builder() -> type[PayloadBuilder]:
    return PayloadBuilder


@pytest.fixture
def profile() -> FormatProfile:
    return FormatProfile()


@pytest.fixture
def ladder_program(builder) -> bytes:
    """Two rungs in a MAIN ladder file: a contact, a timer and two coils."""
    return (
        builder.ladder_file("MAIN")
        + builder.rung()
        + builder.instruction(0x00, "B3:0/0")
        + builder.instruction(0x00, "T4:0", ("0.01", "300", "0"), context=0x04)
        + builder.instruction(0x03, "O:0/0")
        + builder.rung()
        + builder.instruction(0x00, "I:1/0")
        + builder.instruction(0x03, "O:0/1")
    )


@pytest.fixture
def project_streams(builder, ladder_program) -> list[CompoundStream]:
    """Program, symbol, data-file and processor streams of a small project."""
    symbols = builder.token("B0003:000/00") + builder.token("START") + builder.token("Start") + b"\x00"
    data_files = builder.data_file(0x08, 1, 1, struct.pack("<h", 42))
    return [
        builder.stream("PROGRAM FILES/ObjectData", builder.headered(ladder_program)),
        builder.stream("MEM DATABASE/ObjectData", builder.headered(symbols)),
        builder.stream("DATA FILES/ObjectData", builder.headered(data_files)),
        builder.stream("PROCESSOR/ObjectData", b"\x00\x01LANLOGIX\x00MicroLogix 1100\x00"),
    ]
