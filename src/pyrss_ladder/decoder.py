"""
Binary ladder decoder: turn a decompressed PROGRAM FILES payload into instruction tokens.

Instruction records are laid out as::

    [opcode] 0B 80 [context] 00 [len] [address ASCII] [len] [param] ...

Timer records carry ``[len]"0.01" [len]"300" [len]"0"`` (time base, preset,
accumulator) after the address, counters ``[len]"100" [len]"0"``.
Rung starts are ``07 80 09 80``; ladder files are ``03 80 xx 00 01 00 NAME``.
Each parallel leg starts at ``CBranchLeg``; a plain ``CBranch`` ends the branch.
"""

import logging
import re
from dataclasses import dataclass, field

from .address import parse_address
from .decompress import DecodedPayload
from .errors import InvalidAddressToken
from .profile import FormatProfile
from .types import (
    INSTRUCTION_CATEGORIES,
    INSTRUCTION_VARIANTS,
    AddressToken,
    BranchNode,
    Diagnostic,
    DiagnosticKind,
    Instruction,
    InstructionCategory,
    NumericParameter,
    Operand,
)

logger = logging.getLogger(__name__)

_NUMERIC = re.compile(r"^-?\d+(?:\.\d*)?$")
_OPERAND_CHARS = re.compile(r"^[0-9A-Za-z.:/\-\[\]#]+$")
_NAME_TAIL = re.compile(r"[^A-Z0-9_ ]+$", re.IGNORECASE)
_ROUTINE_NAME = re.compile(r"^[A-Z][A-Z0-9_ ]*$", re.IGNORECASE)

_MAX_NUMERIC_LEN = 10
_MAX_OPERAND_LEN = 20
_MAX_NAME_LEN = 24

# T/C status bits that are always examined, never driven, by a coil record
_STATUS_BITS = frozenset({"DN", "TT", "EN", "CU", "CD", "OV", "UN"})

_NUMERIC_ARITY: dict[InstructionCategory, tuple[str, tuple[str, ...]]] = {
    InstructionCategory.TIMER: ("timer", ("time_base", "preset", "accumulator")),
    InstructionCategory.COUNTER: ("counter", ("preset", "accumulator")),
    InstructionCategory.SEQUENCER: ("sequencer", ("length", "position")),
}


@dataclass(frozen=True)
class LadderFile:
    """A ladder file (routine) record: name and the offset of its marker."""

    name: str
    offset: int


@dataclass(frozen=True)
class DecodeResult:
    tokens: tuple[Instruction, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    rung_offsets: tuple[int, ...] = ()
    ladder_files: tuple[LadderFile, ...] = ()


@dataclass
class _BranchFrame:
    level: int
    leg: int


@dataclass
class _BranchTracker:
    """
    Branch state for one decode pass.

    A leg marker with no branch open starts a branch at level 1 on leg 0; each
    further leg marker is a sibling leg; the branch marker closes the branch.
    Legs are numbered per rung, so they stay distinct across branches; only the
    first instruction of a branch is marked as starting it.
    """

    diagnostics: list[Diagnostic]
    current: _BranchFrame | None = None
    next_leg: dict[int, int] = field(default_factory=dict)
    starting: bool = False

    def _allocate(self, level: int) -> int:
        leg = self.next_leg.get(level, 0)
        self.next_leg[level] = leg + 1
        return leg

    def _ambiguous(self, offset: int, message: str) -> None:
        self.diagnostics.append(Diagnostic(DiagnosticKind.AMBIGUOUS_BRANCH_STRUCTURE, offset, message))
        logger.warning("Ambiguous branch structure at offset %d: %s", offset, message)
        self.current = None
        self.starting = False

    def leg(self, offset: int) -> None:
        if self.current is None:
            self.current = _BranchFrame(level=1, leg=self._allocate(1))
            self.starting = True
        else:
            self.current.leg = self._allocate(self.current.level)

    def close(self, offset: int) -> None:
        if self.current is None:
            self._ambiguous(offset, "branch close with no open branch")
            return
        self.current = None
        self.starting = False

    def rung_boundary(self, offset: int) -> None:
        if self.current is not None:
            self._ambiguous(offset, "branch still open at rung boundary")
        self.next_leg.clear()
        self.starting = False

    def place(self) -> BranchNode | None:
        """Branch position for the next instruction; None on the main line."""
        if self.current is None:
            return None
        node = BranchNode(level=self.current.level, leg=self.current.leg, starts_branch=self.starting)
        self.starting = False
        return node


def _read_length_prefixed(data: bytes, pos: int, max_len: int) -> tuple[str, int] | None:
    """Return (text, end) for a ``[len][ascii]`` token at ``pos``, or None."""
    if pos >= len(data):
        return None
    length = data[pos]
    end = pos + 1 + length
    if length < 1 or length > max_len or end > len(data):
        return None
    return data[pos + 1 : end].decode("latin-1"), end


def _as_operand(text: str, offset: int) -> Operand | None:
    if _NUMERIC.match(text):
        return NumericParameter(text, offset)
    try:
        return parse_address(text)
    except InvalidAddressToken:
        return None


def _is_metadata_zero(operand: Operand) -> bool:
    return isinstance(operand, NumericParameter) and operand.text == "0"


def resolve_mnemonic(mnemonic: str, address: AddressToken) -> str:
    """
    Apply address-shape overrides to an opcode-table mnemonic.

    - Whole T element: a timer (TON unless the opcode names a timer).
    - Whole C element: a counter (CTU unless CTD).
    - T/C status bit on anything but an input instruction: XIC.
    """
    category = INSTRUCTION_CATEGORIES[mnemonic]
    whole_element = address.subfield is None and address.bit is None
    if address.prefix == "T" and whole_element:
        return mnemonic if category is InstructionCategory.TIMER else "TON"
    if address.prefix == "C" and whole_element:
        return mnemonic if category is InstructionCategory.COUNTER else "CTU"
    if address.prefix in ("T", "C") and address.subfield in _STATUS_BITS:
        if category is not InstructionCategory.INPUT:
            return "XIC"
    return mnemonic


class LadderDecoder:
    """
    Decode instruction tokens, rung boundaries, ladder files and branches from a payload.

    A decoder holds only its profile; every ``decode`` call is independent.
    """

    def __init__(self, profile: FormatProfile) -> None:
        self.profile = profile

    # --- structural markers ---

    def find_rung_offsets(self, payload: DecodedPayload) -> list[int]:
        """Rung marker offsets; a marker within the minimum spacing of the previous one is a duplicate."""
        raw = payload.find_all(self.profile.rung_marker)
        spacing = self.profile.rung_marker_min_spacing
        return [pos for i, pos in enumerate(raw) if i == 0 or pos - raw[i - 1] > spacing]

    def find_ladder_files(self, payload: DecodedPayload) -> list[LadderFile]:
        """Ladder file records ``03 80 xx 00 01 00 NAME``; first occurrence of each name wins."""
        data = payload.data
        marker = self.profile.ladder_file_marker
        tail = self.profile.ladder_file_tail
        name_start_delta = len(marker) + 1 + len(tail)
        files: list[LadderFile] = []
        seen: set[str] = set()
        for pos in payload.find_all(marker):
            tail_at = pos + len(marker) + 1
            if data[tail_at : tail_at + len(tail)] != tail:
                continue
            start = pos + name_start_delta
            end = start
            while end < len(data) and end < start + _MAX_NAME_LEN and 0x20 <= data[end] <= 0x7E:
                end += 1
            name = _NAME_TAIL.sub("", data[start:end].decode("latin-1").strip()).strip()
            if len(name) < 2 or not _ROUTINE_NAME.match(name) or name in self.profile.reserved_names:
                continue
            if name in seen:
                continue
            seen.add(name)
            files.append(LadderFile(name=name, offset=pos))
        return files

    def _find_branch_events(self, payload: DecodedPayload) -> list[tuple[int, str]]:
        # Longer markers first: the close marker is a prefix of the leg marker
        markers = sorted(
            (("leg", self.profile.branch_leg), ("close", self.profile.branch_close)),
            key=lambda item: -len(item[1]),
        )
        claimed: dict[int, str] = {}
        for kind, marker in markers:
            for pos in payload.find_all(marker):
                claimed.setdefault(pos, kind)
        return sorted(claimed.items())

    # --- parameters and operands ---

    def _numeric_run(self, data: bytes, start: int, window: int, arity: int) -> list[NumericParameter]:
        """Consecutive length-prefixed numbers right after ``start``; a malformed token ends the run."""
        params: list[NumericParameter] = []
        pos = start
        while len(params) < arity:
            token = _read_length_prefixed(data, pos, _MAX_NUMERIC_LEN)
            if token is None:
                break
            text, end = token
            if end > start + window or not _NUMERIC.match(text):
                break
            params.append(NumericParameter(text, pos + 1))
            pos = end
        return params

    def _move_source(self, data: bytes, record_start: int) -> Operand | None:
        """Nearest length-prefixed number or address ending before the record; numbers win ties."""
        window = self.profile.window("move_source")
        best: Operand | None = None
        best_distance = window + 1
        for pos in range(max(0, record_start - window), record_start):
            token = _read_length_prefixed(data, pos, _MAX_OPERAND_LEN)
            if token is None:
                continue
            text, end = token
            if end > record_start:
                continue
            operand = _as_operand(text, pos + 1)
            if operand is None:
                continue
            distance = record_start - end
            numeric = isinstance(operand, NumericParameter)
            if distance < best_distance or (
                distance == best_distance and numeric and not isinstance(best, NumericParameter)
            ):
                best, best_distance = operand, distance
        return best

    def _forward_operands(self, data: bytes, start: int, stop: int) -> list[Operand]:
        """Significant operands after a destination, up to ``stop``; metadata zeros are dropped."""
        limit = min(stop, start + self.profile.window("operand_scan"), len(data))
        found: list[Operand] = []
        pos = start
        while pos < limit and len(found) < 2:
            token = _read_length_prefixed(data, pos, _MAX_OPERAND_LEN)
            if token is None or token[1] > limit or not _OPERAND_CHARS.match(token[0]):
                pos += 1
                continue
            text, end = token
            operand = _as_operand(text, pos + 1)
            if operand is not None and not _is_metadata_zero(operand):
                found.append(operand)
            pos = end
        return found

    # --- main pass ---

    def _instruction_records(self, payload: DecodedPayload) -> list[tuple[int, str, AddressToken, int]]:
        """(record start, table mnemonic, address, address end) for every well-formed record."""
        data = payload.data
        prefix = self.profile.instruction_prefix
        separator = self.profile.instruction_separator
        records = []
        cursor = 0
        for pos in payload.find_all(prefix):
            start = pos - 1
            if start < cursor or pos + 4 >= len(data):
                continue
            if data[pos + len(prefix) + 1] != separator:
                continue
            mnemonic = self.profile.mnemonic_for(data[start])
            if mnemonic is None:
                continue
            token = _read_length_prefixed(data, pos + len(prefix) + 2, _MAX_OPERAND_LEN)
            if token is None:
                continue
            text, end = token
            try:
                address = parse_address(text)
            except InvalidAddressToken as e:
                logger.debug("Skipping record at %d: %s", start, e)
                continue
            records.append((start, mnemonic, address, end))
            cursor = end
        return records

    def _build(
        self,
        data: bytes,
        record: tuple[int, str, AddressToken, int],
        next_start: int,
        branch: BranchNode | None,
        diagnostics: list[Diagnostic],
    ) -> Instruction:
        start, table_mnemonic, address, end = record
        mnemonic = resolve_mnemonic(table_mnemonic, address)
        category = INSTRUCTION_CATEGORIES[mnemonic]
        cls = INSTRUCTION_VARIANTS[category]
        kwargs: dict = {"mnemonic": mnemonic, "address": address, "offset": start, "branch": branch}

        if category in _NUMERIC_ARITY:
            window_name, names = _NUMERIC_ARITY[category]
            params = self._numeric_run(data, end, self.profile.window(window_name), len(names))
            kwargs.update(zip(names, params))
            if len(params) < len(names):
                message = f"{mnemonic}({address}): read {len(params)} of {len(names)} numeric parameters"
                diagnostics.append(Diagnostic(DiagnosticKind.INCOMPLETE_NUMERIC_PARAMETERS, start, message))
                logger.debug(message)
        elif category is InstructionCategory.MOVE:
            kwargs["source"] = self._move_source(data, start)
        elif category is InstructionCategory.MATH:
            operands = self._forward_operands(data, end, next_start)
            if operands:
                kwargs["source_a"] = operands[0]
                kwargs["source_b"] = operands[1] if len(operands) > 1 else operands[0]
        elif category is InstructionCategory.COMPARE:
            operands = self._forward_operands(data, end, next_start)
            if operands:
                kwargs["source_a"] = operands[0]

        return cls(**kwargs)

    def decode(self, payload: DecodedPayload) -> DecodeResult:
        """Scan ``payload`` once and return tokens, diagnostics and structure offsets in byte order."""
        data = payload.data
        rung_offsets = self.find_rung_offsets(payload)
        ladder_files = self.find_ladder_files(payload)
        records = self._instruction_records(payload)

        # Boundaries sort before branch events at the same offset, records last
        events: list[tuple[int, int, str]] = [(pos, 0, "boundary") for pos in rung_offsets]
        events += [(f.offset, 0, "boundary") for f in ladder_files]
        events += [(pos, 1, kind) for pos, kind in self._find_branch_events(payload)]
        events += [(rec[0], 2, "record") for rec in records]
        events.sort(key=lambda e: (e[0], e[1]))

        diagnostics: list[Diagnostic] = []
        branches = _BranchTracker(diagnostics)
        tokens: list[Instruction] = []
        record_index = 0
        for offset, _, kind in events:
            if kind == "boundary":
                branches.rung_boundary(offset)
            elif kind == "leg":
                branches.leg(offset)
            elif kind == "close":
                branches.close(offset)
            else:
                record = records[record_index]
                next_start = records[record_index + 1][0] if record_index + 1 < len(records) else len(data)
                record_index += 1
                tokens.append(self._build(data, record, next_start, branches.place(), diagnostics))

        logger.debug(
            "Decoded %d instructions, %d rung markers, %d ladder files, %d diagnostics",
            len(tokens),
            len(rung_offsets),
            len(ladder_files),
            len(diagnostics),
        )
        return DecodeResult(
            tokens=tuple(tokens),
            diagnostics=tuple(diagnostics),
            rung_offsets=tuple(rung_offsets),
            ladder_files=tuple(ladder_files),
        )
