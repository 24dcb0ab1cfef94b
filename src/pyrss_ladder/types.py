"""Core data model: formats, instruction variants, rungs, routines, tags and the project tree."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union


class FileFormat(str, Enum):
    """Leading-byte classification used to route uploads to a parser."""

    CONTAINER_BINARY = "container-binary"
    ZIP_LIKE = "zip-like"
    XML_LIKE = "xml-like"
    UNKNOWN = "unknown"


class StreamTier(str, Enum):
    """Confidence tier of a candidate stream, highest first."""

    EXACT_NAME = "exact-name"
    KEYWORD = "keyword"
    CONTENT_SNIFFED = "content-sniffed"


class InstructionCategory(str, Enum):
    """Instruction families; each maps to one instruction variant class."""

    INPUT = "input"
    OUTPUT = "output"
    TIMER = "timer"
    COUNTER = "counter"
    MATH = "math"
    MOVE = "move"
    COMPARE = "compare"
    PROGRAM_CONTROL = "program_control"
    SEQUENCER = "sequencer"


class TagDataType(str, Enum):
    """Tag data types inferred from the data-file prefix."""

    BOOL = "BOOL"
    TIMER = "TIMER"
    COUNTER = "COUNTER"
    INT = "INT"
    REAL = "REAL"
    STRING = "STRING"
    DINT = "DINT"
    CONTROL = "CONTROL"


class DiagnosticKind(str, Enum):
    """Non-fatal findings recorded during decoding."""

    AMBIGUOUS_BRANCH_STRUCTURE = "AmbiguousBranchStructure"
    INCOMPLETE_NUMERIC_PARAMETERS = "IncompleteNumericParameters"


_CATEGORY_MEMBERS: dict[InstructionCategory, tuple[str, ...]] = {
    InstructionCategory.INPUT: ("XIC", "XIO", "ONS", "OSR", "OSF"),
    InstructionCategory.OUTPUT: ("OTE", "OTL", "OTU", "RES", "MSG", "PID"),
    InstructionCategory.TIMER: ("TON", "TOF", "RTO"),
    InstructionCategory.COUNTER: ("CTU", "CTD"),
    InstructionCategory.MATH: (
        "ADD", "SUB", "MUL", "DIV", "AND", "OR", "XOR", "NOT", "NEG", "CLR",
        "ABS", "SQR", "CPT", "DDV", "FRD", "TOD", "DCD", "ENC",
    ),
    InstructionCategory.MOVE: ("MOV", "MVM", "COP", "FLL"),
    InstructionCategory.COMPARE: ("EQU", "NEQ", "LES", "LEQ", "GRT", "GEQ", "LIM", "MEQ"),
    InstructionCategory.PROGRAM_CONTROL: ("JMP", "LBL", "JSR", "SBR", "RET", "MCR"),
    InstructionCategory.SEQUENCER: ("SQO", "SQI", "SQC", "SQL", "BSL", "BSR", "FFL", "FFU", "LFL", "LFU"),
}

# Closed instruction code table: mnemonic -> category
INSTRUCTION_CATEGORIES: dict[str, InstructionCategory] = {
    mnemonic: category for category, members in _CATEGORY_MEMBERS.items() for mnemonic in members
}

# Instructions that terminate a rung when no rung markers are available
OUTPUT_CLASS: frozenset[str] = frozenset(
    {
        "OTE", "OTL", "OTU", "RES", "TON", "TOF", "RTO", "CTU", "CTD",
        "MOV", "MVM", "COP", "FLL", "ADD", "SUB", "MUL", "DIV", "CPT",
        "JSR", "JMP", "RET", "SQO", "SQL", "BSL", "BSR", "FFL", "FFU",
        "LFL", "LFU", "MSG", "PID",
    }
)


@dataclass(frozen=True)
class AddressToken:
    """Parsed data-table address such as ``T4:0.DN`` or ``I:1/3``."""

    prefix: str
    file_number: int
    element: int
    bit: int | None = None
    subfield: str | None = None
    explicit_file: bool = True

    def __post_init__(self) -> None:
        if self.file_number < 0 or self.element < 0:
            raise ValueError(f"file number and element must be >= 0, got {self.file_number}:{self.element}")
        if self.bit is not None and self.bit < 0:
            raise ValueError(f"bit must be >= 0, got {self.bit}")

    @property
    def element_address(self) -> str:
        """Address of the whole element, without bit or subfield (``T4:0``)."""
        return f"{self.prefix}{self.file_number}:{self.element}"

    def __str__(self) -> str:
        file_part = str(self.file_number) if self.explicit_file else ""
        text = f"{self.prefix}{file_part}:{self.element}"
        if self.bit is not None:
            text += f"/{self.bit}"
        if self.subfield:
            text += f".{self.subfield}"
        return text


@dataclass(frozen=True)
class NumericParameter:
    """Length-prefixed ASCII number read from the payload, kept verbatim."""

    text: str
    offset: int

    @property
    def value(self) -> int | float:
        if "." in self.text:
            return float(self.text)
        return int(self.text)

    def __str__(self) -> str:
        return self.text


Operand = Union[AddressToken, NumericParameter]


@dataclass(frozen=True)
class BranchNode:
    """Position of an instruction inside parallel branches (level 0 is the main line)."""

    level: int
    leg: int
    starts_branch: bool = False

    def __post_init__(self) -> None:
        if self.level < 0 or self.leg < 0:
            raise ValueError(f"branch level and leg must be >= 0, got {self.level}/{self.leg}")


@dataclass(frozen=True)
class Instruction:
    """One recognized instruction occurrence (the destination/primary operand is ``address``)."""

    category: ClassVar[InstructionCategory]
    arity: ClassVar[int] = 0

    mnemonic: str
    address: AddressToken
    offset: int
    branch: BranchNode | None = None

    @property
    def parameters(self) -> tuple[NumericParameter, ...]:
        return ()

    @property
    def complete(self) -> bool:
        """True when every numeric parameter this instruction carries was read."""
        return len(self.parameters) == self.arity

    def operands(self) -> list[str]:
        return [str(self.address)]

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.mnemonic, "operands": self.operands()}
        if self.branch is not None:
            out["branchLevel"] = self.branch.level
            out["branchLeg"] = self.branch.leg
            out["branchStart"] = self.branch.starts_branch
        return out


@dataclass(frozen=True)
class ContactInstruction(Instruction):
    category: ClassVar[InstructionCategory] = InstructionCategory.INPUT


@dataclass(frozen=True)
class CoilInstruction(Instruction):
    category: ClassVar[InstructionCategory] = InstructionCategory.OUTPUT


@dataclass(frozen=True)
class TimerInstruction(Instruction):
    category: ClassVar[InstructionCategory] = InstructionCategory.TIMER
    arity: ClassVar[int] = 3

    time_base: NumericParameter | None = None
    preset: NumericParameter | None = None
    accumulator: NumericParameter | None = None

    @property
    def parameters(self) -> tuple[NumericParameter, ...]:
        return tuple(p for p in (self.time_base, self.preset, self.accumulator) if p is not None)

    def operands(self) -> list[str]:
        return [str(self.address)] + [p.text for p in self.parameters]


@dataclass(frozen=True)
class CounterInstruction(Instruction):
    category: ClassVar[InstructionCategory] = InstructionCategory.COUNTER
    arity: ClassVar[int] = 2

    preset: NumericParameter | None = None
    accumulator: NumericParameter | None = None

    @property
    def parameters(self) -> tuple[NumericParameter, ...]:
        return tuple(p for p in (self.preset, self.accumulator) if p is not None)

    def operands(self) -> list[str]:
        return [str(self.address)] + [p.text for p in self.parameters]


@dataclass(frozen=True)
class SequencerInstruction(Instruction):
    category: ClassVar[InstructionCategory] = InstructionCategory.SEQUENCER
    arity: ClassVar[int] = 2

    length: NumericParameter | None = None
    position: NumericParameter | None = None

    @property
    def parameters(self) -> tuple[NumericParameter, ...]:
        return tuple(p for p in (self.length, self.position) if p is not None)

    def operands(self) -> list[str]:
        return [str(self.address)] + [p.text for p in self.parameters]


@dataclass(frozen=True)
class MoveInstruction(Instruction):
    """MOV-class: ``address`` is the destination."""

    category: ClassVar[InstructionCategory] = InstructionCategory.MOVE

    source: Operand | None = None

    def operands(self) -> list[str]:
        if self.source is None:
            return [str(self.address)]
        return [str(self.source), str(self.address)]


@dataclass(frozen=True)
class MathInstruction(Instruction):
    """ADD-class: ``address`` is the destination."""

    category: ClassVar[InstructionCategory] = InstructionCategory.MATH

    source_a: Operand | None = None
    source_b: Operand | None = None

    def operands(self) -> list[str]:
        sources = [str(s) for s in (self.source_a, self.source_b) if s is not None]
        return sources + [str(self.address)]


@dataclass(frozen=True)
class CompareInstruction(Instruction):
    category: ClassVar[InstructionCategory] = InstructionCategory.COMPARE

    source_a: Operand | None = None

    def operands(self) -> list[str]:
        if self.source_a is None:
            return [str(self.address)]
        return [str(self.source_a), str(self.address)]


@dataclass(frozen=True)
class ProgramControlInstruction(Instruction):
    category: ClassVar[InstructionCategory] = InstructionCategory.PROGRAM_CONTROL


INSTRUCTION_VARIANTS: dict[InstructionCategory, type[Instruction]] = {
    cls.category: cls
    for cls in (
        ContactInstruction,
        CoilInstruction,
        TimerInstruction,
        CounterInstruction,
        MathInstruction,
        MoveInstruction,
        CompareInstruction,
        ProgramControlInstruction,
        SequencerInstruction,
    )
}


@dataclass(frozen=True)
class Diagnostic:
    """Non-fatal decoder finding attached to the parse result."""

    kind: DiagnosticKind
    offset: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "offset": self.offset, "message": self.message}


def _format_instruction(inst: Instruction) -> str:
    return f"{inst.mnemonic}({','.join(inst.operands())})"


def _format_branch(legs: dict[tuple[int, int], list[Instruction]]) -> str:
    leg_text = [" ".join(_format_instruction(i) for i in legs[key]) for key in sorted(legs)]
    return f"[Branch: {' | '.join(leg_text)}]"


@dataclass(frozen=True)
class Rung:
    """One row of ladder logic; instruction order is byte order."""

    number: int
    instructions: tuple[Instruction, ...] = ()
    comment: str | None = None

    def __post_init__(self) -> None:
        if self.number < 0:
            raise ValueError(f"rung number must be >= 0, got {self.number}")

    @property
    def text(self) -> str:
        """
        Mnemonic rendering; branched instructions are grouped by leg:
        ``XIC(B3:0/0) [Branch: XIC(I:1/0) | XIC(B3:0/1)] OTE(O:0/0)``.
        """
        parts: list[str] = []
        legs: dict[tuple[int, int], list[Instruction]] = {}
        for inst in self.instructions:
            branch = inst.branch
            if branch is not None and branch.starts_branch and legs:
                # back-to-back branches with no main-line instruction between
                parts.append(_format_branch(legs))
                legs = {}
            if branch is not None:
                legs.setdefault((inst.branch.level, inst.branch.leg), []).append(inst)
                continue
            if legs:
                parts.append(_format_branch(legs))
                legs = {}
            parts.append(_format_instruction(inst))
        if legs:
            parts.append(_format_branch(legs))
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "number": self.number,
            "rawText": self.text,
            "instructions": [i.to_dict() for i in self.instructions],
        }
        if self.comment is not None:
            out["comment"] = self.comment
        return out


@dataclass(frozen=True)
class Routine:
    name: str
    rungs: tuple[Rung, ...] = ()
    type: str = "Ladder"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type, "rungs": [r.to_dict() for r in self.rungs]}


@dataclass(frozen=True)
class Program:
    name: str
    routines: tuple[Routine, ...] = ()
    main_routine_name: str = "MAIN"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "mainRoutineName": self.main_routine_name,
            "routines": [r.to_dict() for r in self.routines],
        }


@dataclass(frozen=True)
class Symbol:
    """Address-to-name entry from the project's symbol database."""

    address: str
    name: str
    description: str = ""


@dataclass(frozen=True)
class RegisterValue:
    """Initial data-table value read from the DATA FILES stream."""

    address: AddressToken
    value: int | float

    def to_dict(self) -> dict[str, Any]:
        return {"address": str(self.address), "value": self.value}


@dataclass(frozen=True)
class Tag:
    name: str
    data_type: TagDataType
    address: str
    description: str | None = None
    value: int | float | None = None
    symbol: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "dataType": self.data_type.value, "scope": "controller"}
        if self.symbol is not None:
            out["aliasFor"] = self.address
        if self.description:
            out["description"] = self.description
        if self.value is not None:
            out["value"] = str(self.value)
        return out


@dataclass(frozen=True)
class TimerValue:
    """Programmed timer parameters; time base in seconds."""

    address: str
    time_base: float
    preset: int
    accumulator: int

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address, "timeBase": self.time_base, "preset": self.preset, "accum": self.accumulator}


@dataclass(frozen=True)
class CounterValue:
    address: str
    preset: int
    accumulator: int

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address, "preset": self.preset, "accum": self.accumulator}


@dataclass(frozen=True)
class Project:
    """Immutable result of one parse call."""

    name: str
    processor_type: str
    software_version: str
    tags: tuple[Tag, ...] = ()
    programs: tuple[Program, ...] = ()
    register_values: tuple[RegisterValue, ...] = ()
    timers: tuple[TimerValue, ...] = ()
    counters: tuple[CounterValue, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    source_stream: str | None = None

    @property
    def rung_count(self) -> int:
        return sum(len(r.rungs) for p in self.programs for r in p.routines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "processorType": self.processor_type,
            "softwareVersion": self.software_version,
            "tags": [t.to_dict() for t in self.tags],
            "programs": [p.to_dict() for p in self.programs],
            "registerValues": [v.to_dict() for v in self.register_values],
            "timerProgramValues": [t.to_dict() for t in self.timers],
            "counterProgramValues": [c.to_dict() for c in self.counters],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
