"""Tests for routine/rung assembly and derived tags."""

import pytest

from pyrss_ladder.assembler import assemble_routines, collect_counter_values, derive_tags
from pyrss_ladder.decoder import LadderDecoder
from pyrss_ladder.types import AddressToken, CounterValue, RegisterValue, Symbol, TagDataType


@pytest.fixture
def assemble(builder, profile):
    def _assemble(data: bytes):
        result = LadderDecoder(profile).decode(builder.payload(data))
        return assemble_routines(result, profile)

    return _assemble


def xic(builder, address: str) -> bytes:
    return builder.instruction(0x00, address)


def ote(builder, address: str) -> bytes:
    return builder.instruction(0x03, address)


# ============================================================================
# Rungs
# ============================================================================


class TestRungsByMarker:
    def test_each_marker_starts_a_rung(self, builder, assemble) -> None:
        data = (
            builder.rung()
            + xic(builder, "B3:0/0")
            + ote(builder, "O:0/0")
            + builder.rung()
            + builder.rung()
            + xic(builder, "B3:0/1")
            + ote(builder, "O:0/1")
        )
        (routine,) = assemble(data)
        assert routine.name == "MAIN"
        assert [r.number for r in routine.rungs] == [0, 1, 2]
        assert [len(r.instructions) for r in routine.rungs] == [2, 0, 2]
        assert routine.rungs[0].text == "XIC(B3:0/0) OTE(O:0/0)"
        assert routine.rungs[1].text == ""

    def test_instructions_before_first_marker(self, builder, assemble) -> None:
        data = xic(builder, "B3:0/0") + builder.rung() + ote(builder, "O:0/0")
        (routine,) = assemble(data)
        assert [r.text for r in routine.rungs] == ["XIC(B3:0/0)", "OTE(O:0/0)"]

    def test_branch_rendering(self, builder, assemble) -> None:
        data = (
            builder.rung()
            + xic(builder, "B3:0/0")
            + builder.branch_leg()
            + xic(builder, "I:1/0")
            + builder.branch_leg()
            + xic(builder, "B3:0/1")
            + builder.branch_close()
            + ote(builder, "O:0/0")
        )
        (routine,) = assemble(data)
        assert routine.rungs[0].text == "XIC(B3:0/0) [Branch: XIC(I:1/0) | XIC(B3:0/1)] OTE(O:0/0)"

    def test_consecutive_branches_render_separately(self, builder, assemble) -> None:
        def branch(a: str, b: str) -> bytes:
            return builder.branch_leg() + xic(builder, a) + builder.branch_leg() + xic(builder, b) + builder.branch_close()

        data = builder.rung() + branch("I:1/0", "I:1/1") + branch("B3:0/0", "B3:0/1") + ote(builder, "O:0/0")
        (routine,) = assemble(data)
        assert routine.rungs[0].text == (
            "[Branch: XIC(I:1/0) | XIC(I:1/1)] [Branch: XIC(B3:0/0) | XIC(B3:0/1)] OTE(O:0/0)"
        )


class TestRungsByOutput:
    """Without rung markers, a rung ends on an output once it is long enough."""

    def test_output_heuristic(self, builder, assemble) -> None:
        data = (
            xic(builder, "B3:0/0")
            + ote(builder, "O:0/0")
            + xic(builder, "B3:0/1")
            + xic(builder, "B3:0/2")
            + ote(builder, "O:0/1")
            + xic(builder, "B3:0/3")
            + ote(builder, "O:0/2")
        )
        (routine,) = assemble(data)
        assert [len(r.instructions) for r in routine.rungs] == [5, 2]

    def test_no_instructions(self, assemble) -> None:
        (routine,) = assemble(b"\x00" * 32)
        assert routine.rungs == ()


class TestRoutines:
    def test_one_routine_per_ladder_file(self, builder, assemble) -> None:
        data = (
            xic(builder, "B3:0/9")
            + builder.ladder_file("MAIN")
            + builder.rung()
            + xic(builder, "B3:0/0")
            + ote(builder, "O:0/0")
            + builder.ladder_file("PUMPS")
            + builder.rung()
            + xic(builder, "B3:0/2")
            + ote(builder, "O:0/2")
        )
        main, pumps = assemble(data)
        assert (main.name, pumps.name) == ("MAIN", "PUMPS")
        assert [r.text for r in main.rungs] == ["XIC(B3:0/9)", "XIC(B3:0/0) OTE(O:0/0)"]
        assert [r.text for r in pumps.rungs] == ["XIC(B3:0/2) OTE(O:0/2)"]


# ============================================================================
# Tags
# ============================================================================


class TestDeriveTags:
    @pytest.fixture
    def routines(self, builder, assemble):
        data = (
            builder.rung()
            + xic(builder, "B3:0/0")
            + xic(builder, "I:1/0")
            + builder.instruction(0x00, "T4:0", ("0.01", "300", "0"))
            + builder.token("N7:5")
            + builder.instruction(0x09, "N7:0")
            + ote(builder, "O:0/0")
            + xic(builder, "B3:0/0")
        )
        return assemble(data)

    def test_distinct_addresses_in_first_use_order(self, routines) -> None:
        tags = derive_tags(routines)
        assert [t.address for t in tags] == ["B3:0/0", "I:1/0", "T4:0", "N7:5", "N7:0", "O:0/0"]
        assert [t.data_type for t in tags] == [
            TagDataType.BOOL,
            TagDataType.BOOL,
            TagDataType.TIMER,
            TagDataType.INT,
            TagDataType.INT,
            TagDataType.BOOL,
        ]

    def test_unnamed_tag_describes_file_type(self, routines) -> None:
        timer = derive_tags(routines)[2]
        assert timer.name == "T4:0"
        assert timer.description == "Timer - Timer storage"
        assert timer.symbol is None
        assert "aliasFor" not in timer.to_dict()

    def test_symbol_names_tag(self, routines) -> None:
        symbols = {
            "B3:0/0": Symbol("B3:0/0", "START", "Start button"),
            "I1:1/0": Symbol("I1:1/0", "ESTOP", ""),
        }
        start, estop = derive_tags(routines, symbols)[:2]
        assert (start.name, start.description, start.symbol) == ("START", "Start button", "START")
        assert start.to_dict()["aliasFor"] == "B3:0/0"
        assert (estop.name, estop.description) == ("ESTOP", "ESTOP")

    def test_implicit_and_explicit_file_number_share_a_tag(self, builder, assemble) -> None:
        data = builder.rung() + xic(builder, "I:1/0") + ote(builder, "I1:1/0")
        symbols = {"I1:1/0": Symbol("I1:1/0", "START", "")}
        (tag,) = derive_tags(assemble(data), symbols)
        assert (tag.name, tag.address) == ("START", "I:1/0")

    def test_register_value(self, routines) -> None:
        values = (RegisterValue(AddressToken("N", 7, 5), 120),)
        tags = {t.address: t for t in derive_tags(routines, register_values=values)}
        assert tags["N7:5"].value == 120
        assert tags["N7:5"].to_dict()["value"] == "120"
        assert tags["N7:0"].value is None


class TestCounterValues:
    def test_last_instruction_per_element_wins(self, builder, profile) -> None:
        data = (
            builder.instruction(0x00, "C5:0", ("100", "7"))
            + builder.instruction(0x00, "C5:1", ("20",))
            + builder.instruction(0x1C, "C5:0", ("50", "3"))
        )
        result = LadderDecoder(profile).decode(builder.payload(data))
        assert collect_counter_values(result.tokens) == (
            CounterValue("C5:0", 50, 3),
            CounterValue("C5:1", 20, 0),
        )
