"""Pick the compound stream that carries ladder logic: exact name, keyword, then content sniffing."""

import logging
from dataclasses import dataclass

from .container import CompoundStream
from .decompress import DecodedPayload, decompress_stream
from .errors import NoLadderLogicFound, StreamDecompressionFailed
from .profile import FormatProfile
from .types import StreamTier

logger = logging.getLogger(__name__)

PROGRAM_STREAM = "PROGRAM FILES/ObjectData"
_PROGRAM_KEYWORD = "program"
_EXCLUDED_KEYWORD = "ONLINEIMAGE"
_MIN_CONTENT_SIZE = 100


@dataclass(frozen=True)
class CandidateStream:
    """A stream accepted by the locator, with the tier of the strategy that accepted it."""

    path: str
    payload: DecodedPayload
    tier: StreamTier

    @property
    def decompressed(self) -> bool:
        return self.payload.compressed


def _structural_markers(profile: FormatProfile) -> tuple[bytes, ...]:
    return (profile.instruction_prefix, profile.rung_marker, profile.ladder_file_marker)


def _has_any_marker(payload: DecodedPayload, profile: FormatProfile) -> bool:
    return any(marker in payload for marker in _structural_markers(profile))


def _has_ladder_markers(payload: DecodedPayload, profile: FormatProfile) -> bool:
    if profile.instruction_prefix not in payload:
        return False
    return profile.rung_marker in payload or profile.ladder_file_marker in payload


def _by_name(streams: list[CompoundStream]) -> list[CompoundStream]:
    """Keyword matches with the exact program stream first; online images are excluded."""
    matches = [
        s
        for s in streams
        if _PROGRAM_KEYWORD in s.path.lower() and _EXCLUDED_KEYWORD not in s.path.upper()
    ]
    exact = [s for s in matches if s.path.lower() == PROGRAM_STREAM.lower()]
    return exact + [s for s in matches if s not in exact]


def _try_decompress(stream: CompoundStream) -> DecodedPayload | None:
    try:
        return decompress_stream(stream.data, stream.path)
    except StreamDecompressionFailed as e:
        logger.warning("Skipping stream %s: %s", stream.path, e)
        return None


def locate_program_stream(streams: list[CompoundStream], profile: FormatProfile) -> CandidateStream:
    """
    Return the first stream that decodes to ladder logic.

    1. Name: path contains "program" (not ONLINEIMAGE); the exact PROGRAM FILES stream is
       tried first. Must decompress and hold at least one structural marker.
    2. Content: streams over 100 bytes holding the instruction marker plus a rung or
       ladder-file marker.
    3. Minimal: the instruction marker alone; raw bytes are used when inflation fails.

    Raises NoLadderLogicFound when every strategy fails.
    """
    tried: list[str] = []

    for stream in _by_name(streams):
        tried.append(stream.path)
        payload = _try_decompress(stream)
        if payload is not None and _has_any_marker(payload, profile):
            tier = StreamTier.EXACT_NAME if stream.path.lower() == PROGRAM_STREAM.lower() else StreamTier.KEYWORD
            logger.info("Program stream %s (%s, %d bytes)", stream.path, tier.value, len(payload))
            return CandidateStream(stream.path, payload, tier)

    sized = [s for s in streams if s.size > _MIN_CONTENT_SIZE]
    decoded: dict[str, DecodedPayload | None] = {}
    for stream in sized:
        payload = _try_decompress(stream)
        decoded[stream.path] = payload
        if stream.path not in tried:
            tried.append(stream.path)
        if payload is not None and _has_ladder_markers(payload, profile):
            logger.info("Program stream %s found by content (%d bytes)", stream.path, len(payload))
            return CandidateStream(stream.path, payload, StreamTier.CONTENT_SNIFFED)

    for stream in sized:
        payload = decoded[stream.path]
        if payload is None:
            payload = DecodedPayload(stream.data, path=stream.path, compressed=False)
        if profile.instruction_prefix in payload:
            logger.info("Program stream %s found by instruction marker only", stream.path)
            return CandidateStream(stream.path, payload, StreamTier.CONTENT_SNIFFED)

    raise NoLadderLogicFound(
        f"No ladder logic found in {len(streams)} streams", tried=tried
    )
