"""Group decoded instructions into routines and rungs; derive tags and programmed timer/counter values."""

import logging
from dataclasses import replace

from .address import FILE_TYPES, tag_data_type
from .decoder import DecodeResult
from .profile import FormatProfile
from .types import (
    OUTPUT_CLASS,
    AddressToken,
    CompareInstruction,
    CounterInstruction,
    CounterValue,
    Instruction,
    MathInstruction,
    MoveInstruction,
    RegisterValue,
    Routine,
    Rung,
    Symbol,
    Tag,
    TimerInstruction,
    TimerValue,
)

logger = logging.getLogger(__name__)

DEFAULT_ROUTINE = "MAIN"


def _rungs_by_marker(tokens: list[Instruction], markers: list[int]) -> list[list[Instruction]]:
    """Each marker starts a rung, even an empty one; the area before the first marker counts only if used."""
    groups: list[list[Instruction]] = [[] for _ in range(len(markers) + 1)]
    index = 0
    for token in tokens:
        while index < len(markers) and token.offset >= markers[index]:
            index += 1
        groups[index].append(token)
    if not groups[0]:
        groups.pop(0)
    return groups


def _rungs_by_output(tokens: list[Instruction], min_size: int) -> list[list[Instruction]]:
    """Close a rung once it holds ``min_size`` instructions and the last one drives an output."""
    groups: list[list[Instruction]] = []
    current: list[Instruction] = []
    for token in tokens:
        current.append(token)
        if len(current) >= min_size and token.mnemonic in OUTPUT_CLASS:
            groups.append(current)
            current = []
    if current:
        groups.append(current)
    return groups


def _within(offset: int, start: int, end: int | None) -> bool:
    return offset >= start and (end is None or offset < end)


def assemble_routines(result: DecodeResult, profile: FormatProfile) -> tuple[Routine, ...]:
    """
    Build routines from ladder-file records (one ``MAIN`` routine when there are none)
    and split each into rungs numbered from 0.

    Rung markers delimit rungs when the routine has any; otherwise instructions are
    grouped heuristically, ending a rung on an output-class instruction.
    """
    if result.ladder_files:
        names = [f.name for f in result.ladder_files]
        starts = [0] + [f.offset for f in result.ladder_files[1:]]
    else:
        names = [DEFAULT_ROUTINE]
        starts = [0]
    bounds = list(zip(starts, starts[1:] + [None]))

    routines = []
    for name, (start, end) in zip(names, bounds):
        tokens = [t for t in result.tokens if _within(t.offset, start, end)]
        markers = [m for m in result.rung_offsets if _within(m, start, end)]
        if markers:
            groups = _rungs_by_marker(tokens, markers)
        else:
            groups = _rungs_by_output(tokens, profile.fallback_min_rung_size)
        rungs = tuple(Rung(number=n, instructions=tuple(g)) for n, g in enumerate(groups))
        logger.debug(
            "Routine %s: %d rungs (%s)", name, len(rungs), "markers" if markers else "output heuristic"
        )
        routines.append(Routine(name=name, rungs=rungs))
    return tuple(routines)


def _addresses(inst: Instruction) -> list[AddressToken]:
    """Every address an instruction touches, sources first."""
    sources: list = []
    if isinstance(inst, MoveInstruction):
        sources = [inst.source]
    elif isinstance(inst, MathInstruction):
        sources = [inst.source_a, inst.source_b]
    elif isinstance(inst, CompareInstruction):
        sources = [inst.source_a]
    found = [s for s in sources if isinstance(s, AddressToken)]
    return found + [inst.address]


def _tag_key(address: AddressToken) -> str:
    # I:1/0 and I1:1/0 name the same element
    return str(replace(address, explicit_file=True))


def derive_tags(
    routines: tuple[Routine, ...],
    symbols: dict[str, Symbol] | None = None,
    register_values: tuple[RegisterValue, ...] = (),
) -> tuple[Tag, ...]:
    """
    One tag per distinct address referenced in any rung, in order of first use.

    A symbol supplies the tag name and description (the address becomes the alias);
    a register value with the same address supplies the initial value.
    """
    symbols = symbols or {}
    values = {_tag_key(v.address): v.value for v in register_values}
    tags: dict[str, Tag] = {}
    for routine in routines:
        for rung in routine.rungs:
            for inst in rung.instructions:
                for address in _addresses(inst):
                    key = _tag_key(address)
                    if key in tags:
                        continue
                    shown = str(address)
                    symbol = symbols.get(shown) or symbols.get(key)
                    type_name, type_desc = FILE_TYPES[address.prefix]
                    if symbol is not None:
                        name, description = symbol.name, symbol.description or symbol.name
                    else:
                        name, description = shown, f"{type_name} - {type_desc}"
                    tags[key] = Tag(
                        name=name,
                        data_type=tag_data_type(address),
                        address=shown,
                        description=description,
                        value=values.get(key),
                        symbol=symbol.name if symbol is not None else None,
                    )
    return tuple(tags.values())


def collect_timer_values(tokens: tuple[Instruction, ...]) -> tuple[TimerValue, ...]:
    """Programmed timer parameters keyed by element; timers without a preset are skipped."""
    timers: dict[str, TimerValue] = {}
    for inst in tokens:
        if not isinstance(inst, TimerInstruction) or inst.preset is None:
            continue
        time_base = 1.0
        if inst.time_base is not None and float(inst.time_base.value) > 0:
            time_base = float(inst.time_base.value)
        accumulator = int(inst.accumulator.value) if inst.accumulator is not None else 0
        key = inst.address.element_address
        timers[key] = TimerValue(key, time_base, int(inst.preset.value), accumulator)
    return tuple(timers.values())


def collect_counter_values(tokens: tuple[Instruction, ...]) -> tuple[CounterValue, ...]:
    counters: dict[str, CounterValue] = {}
    for inst in tokens:
        if not isinstance(inst, CounterInstruction) or inst.preset is None:
            continue
        accumulator = int(inst.accumulator.value) if inst.accumulator is not None else 0
        key = inst.address.element_address
        counters[key] = CounterValue(key, int(inst.preset.value), accumulator)
    return tuple(counters.values())
