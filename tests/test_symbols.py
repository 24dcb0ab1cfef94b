"""Tests for the symbol database and processor metadata."""

from pyrss_ladder.symbols import (
    DEFAULT_PROJECT_NAME,
    detect_processor_type,
    extract_project_name,
    extract_symbols,
)
from pyrss_ladder.types import Symbol


class TestExtractSymbols:
    def test_symbol_with_description(self, builder) -> None:
        record = (
            b"\x00\x00"
            + builder.token("B0003:002/02")
            + builder.token("START_PB")
            + builder.token("Start")
            + builder.token("push button")
            + b"\x00"
        )
        symbols = extract_symbols(builder.payload(record))
        assert symbols == {"B3:2/2": Symbol("B3:2/2", "START_PB", "Start push button")}

    def test_symbol_without_description(self, builder) -> None:
        record = builder.token("T0004:007.DN") + builder.token("PUMP_DONE") + b"\x00"
        symbols = extract_symbols(builder.payload(record))
        assert symbols["T4:7.DN"] == Symbol("T4:7.DN", "PUMP_DONE", "")

    def test_name_must_be_identifier(self, builder) -> None:
        record = builder.token("N0007:000") + builder.token("not a name") + b"\x00"
        assert extract_symbols(builder.payload(record)) == {}

    def test_later_record_wins(self, builder) -> None:
        first = builder.token("N0007:001") + builder.token("OLD_NAME") + b"\x00"
        second = builder.token("N0007:001") + builder.token("NEW_NAME") + b"\x00"
        symbols = extract_symbols(builder.payload(first + second))
        assert symbols["N7:1"].name == "NEW_NAME"

    def test_missing_stream(self) -> None:
        assert extract_symbols(None) == {}


class TestProcessorMetadata:
    def test_project_name(self, builder) -> None:
        payload = builder.payload(b"\x00\x01\x02LANLOGIX\x00\x00SLC 5/04\x00")
        assert extract_project_name(payload) == "LANLOGIX"

    def test_default_project_name(self, builder) -> None:
        assert extract_project_name(None) == DEFAULT_PROJECT_NAME
        assert extract_project_name(builder.payload(b"\x00\x01ab\x00")) == DEFAULT_PROJECT_NAME

    def test_micrologix_by_name(self) -> None:
        assert detect_processor_type("xx MicroLogix 1100 xx") == "MicroLogix"

    def test_micrologix_by_catalog_number(self) -> None:
        assert detect_processor_type("", "1763-L16BWA") == "MicroLogix"

    def test_slc_default(self) -> None:
        assert detect_processor_type("1747-L542") == "SLC 500"
        assert detect_processor_type() == "SLC 500"
