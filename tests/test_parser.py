"""End-to-end tests for parse_rss with synthetic compound streams."""

import logging

import pytest

from pyrss_ladder import parse_rss
from pyrss_ladder.errors import NoLadderLogicFound, NotACompoundDocumentError, UnknownProfileError
from pyrss_ladder.profile import FormatProfile
from pyrss_ladder.types import TimerValue


class TestParseRss:
    def test_project_metadata(self, builder, project_streams) -> None:
        project = parse_rss(b"", reader=builder.reader(project_streams))
        assert project.name == "LANLOGIX"
        assert project.processor_type == "MicroLogix"
        assert project.software_version == "RSLogix 500"
        assert project.source_stream == "PROGRAM FILES/ObjectData"
        (program,) = project.programs
        assert program.name == "LANLOGIX"
        assert program.main_routine_name == "MAIN"

    def test_rungs(self, builder, project_streams) -> None:
        project = parse_rss(b"", reader=builder.reader(project_streams))
        (routine,) = project.programs[0].routines
        assert project.rung_count == 2
        assert [r.text for r in routine.rungs] == [
            "XIC(B3:0/0) TON(T4:0,0.01,300,0) OTE(O:0/0)",
            "XIC(I:1/0) OTE(O:0/1)",
        ]

    def test_tags_timers_and_registers(self, builder, project_streams) -> None:
        project = parse_rss(b"", reader=builder.reader(project_streams))
        tags = {t.address: t for t in project.tags}
        assert tags["B3:0/0"].name == "START"
        assert tags["O:0/1"].name == "O:0/1"
        assert project.timers == (TimerValue("T4:0", 0.01, 300, 0),)
        assert [(str(v.address), v.value) for v in project.register_values] == [("N7:0", 42)]
        assert project.diagnostics == ()

    def test_deterministic(self, builder, project_streams) -> None:
        first = parse_rss(b"", reader=builder.reader(project_streams))
        second = parse_rss(b"", reader=builder.reader(project_streams))
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_profile_instance(self, builder, project_streams) -> None:
        project = parse_rss(b"", profile=FormatProfile(), reader=builder.reader(project_streams))
        assert project.rung_count == 2

    def test_program_stream_only(self, builder, ladder_program) -> None:
        streams = [builder.stream("PROGRAM FILES/ObjectData", builder.headered(ladder_program))]
        project = parse_rss(b"", reader=builder.reader(streams))
        assert project.name == "RSLogix 500 Project"
        assert project.processor_type == "SLC 500"
        assert project.register_values == ()

    def test_zero_rungs_is_valid(self, builder) -> None:
        streams = [builder.stream("PROGRAM FILES/ObjectData", builder.ladder_file("MAIN"))]
        project = parse_rss(b"", reader=builder.reader(streams))
        assert project.rung_count == 0
        assert project.tags == ()
        assert project.programs[0].routines[0].name == "MAIN"

    def test_diagnostics_logged(self, builder, caplog) -> None:
        data = builder.rung() + builder.instruction(0x00, "T4:1", ("0.01",)) + b"\x00" * 8
        streams = [builder.stream("PROGRAM FILES/ObjectData", data)]
        with caplog.at_level(logging.WARNING, logger="pyrss_ladder.parser"):
            project = parse_rss(b"", reader=builder.reader(streams))
        assert len(project.diagnostics) == 1
        assert "1 decoder diagnostics" in caplog.text


class TestParseErrors:
    def test_not_a_compound_document(self) -> None:
        with pytest.raises(NotACompoundDocumentError):
            parse_rss(b"<?xml version='1.0'?><project/>")

    def test_no_ladder_logic(self, builder) -> None:
        streams = [builder.stream("MEM DATABASE/ObjectData", b"\x00" * 16)]
        with pytest.raises(NoLadderLogicFound):
            parse_rss(b"", reader=builder.reader(streams))

    def test_unknown_profile(self, builder, project_streams) -> None:
        with pytest.raises(UnknownProfileError):
            parse_rss(b"", profile="plc5", reader=builder.reader(project_streams))
