"""Single entry point: RSLogix 500 project bytes to an immutable Project tree."""

import logging
from collections.abc import Callable

from .assembler import assemble_routines, collect_counter_values, collect_timer_values, derive_tags
from .container import CompoundStream, find_stream, read_compound_streams
from .decoder import LadderDecoder
from .decompress import DecodedPayload, decompress_stream
from .errors import StreamDecompressionFailed
from .locator import locate_program_stream
from .profile import FormatProfile
from .registers import extract_register_values, initial_file_numbers
from .symbols import SOFTWARE_VERSION, detect_processor_type, extract_project_name, extract_symbols
from .types import Program, Project

logger = logging.getLogger(__name__)

DATA_FILES_KEYWORD = "DATA FILES"
SYMBOL_STREAM = "MEM DATABASE/ObjectData"
PROCESSOR_KEYWORD = "PROCESSOR"
_EXCLUDED = ("ONLINEIMAGE", "EXTENSIONAL")

StreamReader = Callable[[bytes], list[CompoundStream]]


def _auxiliary(streams: list[CompoundStream], keyword: str) -> CompoundStream | None:
    """First stream whose path names ``keyword``, skipping online images and extensional copies."""
    for stream in streams:
        path = stream.path.upper()
        if keyword in path and not any(x in path for x in _EXCLUDED):
            return stream
    return None


def _decode_optional(stream: CompoundStream | None) -> DecodedPayload | None:
    if stream is None:
        return None
    try:
        return decompress_stream(stream.data, stream.path)
    except StreamDecompressionFailed as e:
        logger.warning("Ignoring stream %s: %s", stream.path, e)
        return None


def parse_rss(
    buffer: bytes,
    *,
    profile: str | FormatProfile = "slc500",
    reader: StreamReader = read_compound_streams,
) -> Project:
    """
    Parse an RSLogix 500 ``.RSS`` buffer.

    The buffer is never mutated and no state outlives the call: two parses of the
    same bytes produce equal projects.

    Raises NotACompoundDocumentError for non-container input and NoLadderLogicFound
    when no stream carries ladder markers. A project with zero rungs is a valid result.
    """
    fmt = profile if isinstance(profile, FormatProfile) else FormatProfile(profile)
    streams = reader(buffer)
    logger.debug("Read %d streams", len(streams))

    program = locate_program_stream(streams, fmt)
    result = LadderDecoder(fmt).decode(program.payload)

    symbols = extract_symbols(_decode_optional(find_stream(streams, SYMBOL_STREAM)))
    register_values = extract_register_values(
        _decode_optional(_auxiliary(streams, DATA_FILES_KEYWORD)), fmt, initial_file_numbers()
    )
    processor = _decode_optional(_auxiliary(streams, PROCESSOR_KEYWORD))

    routines = assemble_routines(result, fmt)
    name = extract_project_name(processor)
    texts = [program.payload.text] + ([processor.text] if processor is not None else [])

    project = Project(
        name=name,
        processor_type=detect_processor_type(*texts),
        software_version=SOFTWARE_VERSION,
        tags=derive_tags(routines, symbols, register_values),
        programs=(Program(name=name, routines=routines, main_routine_name=routines[0].name),),
        register_values=register_values,
        timers=collect_timer_values(result.tokens),
        counters=collect_counter_values(result.tokens),
        diagnostics=result.diagnostics,
        source_stream=program.path,
    )
    if result.diagnostics:
        logger.warning("%d decoder diagnostics for %s", len(result.diagnostics), program.path)
    logger.info(
        "Parsed %s from %s: %d routines, %d rungs, %d tags",
        name,
        program.path,
        len(routines),
        project.rung_count,
        len(project.tags),
    )
    return project
