"""Tests for program stream location."""

import logging

import pytest

from pyrss_ladder.errors import NoLadderLogicFound
from pyrss_ladder.locator import locate_program_stream
from pyrss_ladder.types import StreamTier


@pytest.fixture
def program(builder) -> bytes:
    """Uncompressed ladder payload over the content-sniffing size floor."""
    return (
        builder.rung()
        + builder.instruction(0x00, "B3:0/0")
        + builder.instruction(0x03, "O:0/0")
        + b"\x00" * 64
    )


class TestByName:
    def test_exact_stream_preferred(self, builder, profile, program) -> None:
        streams = [
            builder.stream("PROGRAM FILES/Backup", builder.headered(program)),
            builder.stream("PROGRAM FILES/ObjectData", builder.headered(program)),
        ]
        found = locate_program_stream(streams, profile)
        assert found.path == "PROGRAM FILES/ObjectData"
        assert found.tier == StreamTier.EXACT_NAME
        assert found.decompressed
        assert found.payload.data == program

    def test_keyword_match(self, builder, profile, program) -> None:
        streams = [builder.stream("Program Files/Backup", builder.headered(program))]
        found = locate_program_stream(streams, profile)
        assert found.tier == StreamTier.KEYWORD

    def test_online_image_excluded(self, builder, profile, program) -> None:
        streams = [
            builder.stream("ONLINEIMAGE/PROGRAM FILES/ObjectData", builder.headered(program)),
            builder.stream("PROGRAM FILES/Backup", builder.headered(program)),
        ]
        found = locate_program_stream(streams, profile)
        assert found.path == "PROGRAM FILES/Backup"

    def test_corrupt_stream_skipped(self, builder, profile, program, caplog) -> None:
        corrupt = b"\x00" * 16 + b"\x78\x9cgarbage!!"
        streams = [
            builder.stream("PROGRAM FILES/ObjectData", corrupt),
            builder.stream("PROGRAM FILES/Backup", builder.headered(program)),
        ]
        with caplog.at_level(logging.WARNING, logger="pyrss_ladder.locator"):
            found = locate_program_stream(streams, profile)
        assert found.path == "PROGRAM FILES/Backup"
        assert "Skipping stream PROGRAM FILES/ObjectData" in caplog.text


class TestByContent:
    def test_markers_in_unnamed_stream(self, builder, profile, program) -> None:
        streams = [
            builder.stream("PROGRAM FILES/ObjectData", b"\x00" * 200),
            builder.stream("STORAGE/Blob", program),
        ]
        found = locate_program_stream(streams, profile)
        assert found.path == "STORAGE/Blob"
        assert found.tier == StreamTier.CONTENT_SNIFFED
        assert not found.decompressed

    def test_small_streams_ignored(self, builder, profile) -> None:
        tiny = builder.rung() + builder.instruction(0x00, "B3:0/0")
        with pytest.raises(NoLadderLogicFound):
            locate_program_stream([builder.stream("STORAGE/Blob", tiny)], profile)

    def test_instruction_marker_only_uses_raw_bytes(self, builder, profile) -> None:
        records = b"".join(builder.instruction(0x00, f"B3:0/{i}") for i in range(10))
        data = b"\x78" + b"\x00" * 20 + records
        found = locate_program_stream([builder.stream("STORAGE/Blob", data)], profile)
        assert found.tier == StreamTier.CONTENT_SNIFFED
        assert found.payload.data == data
        assert not found.decompressed


class TestNotFound:
    def test_streams_tried_reported(self, builder, profile) -> None:
        streams = [
            builder.stream("PROGRAM FILES/ObjectData", b"\x00" * 10),
            builder.stream("Big", b"\x00" * 200),
            builder.stream("small", b"x"),
        ]
        with pytest.raises(NoLadderLogicFound) as exc_info:
            locate_program_stream(streams, profile)
        assert exc_info.value.tried == ["PROGRAM FILES/ObjectData", "Big"]

    def test_no_streams(self, profile) -> None:
        with pytest.raises(NoLadderLogicFound):
            locate_program_stream([], profile)
