"""FormatProfile: load packaged format constants via importlib.resources, profile selection, opcode lookup."""

import json
import logging
from importlib import resources
from typing import Any

from .errors import UnknownProfileError
from .types import INSTRUCTION_CATEGORIES

logger = logging.getLogger(__name__)

_PROFILE_RESOURCE: dict[str, str] = {
    "slc500": "pyrss_ladder.data.slc500",
}

_WINDOW_NAMES = ("timer", "counter", "sequencer", "move_source", "operand_scan")


def _parse_code(raw: Any) -> int:
    """Accept 5, "5", "0x05"; codes are single bytes."""
    code = int(raw, 0) if isinstance(raw, str) else int(raw)
    if not 0 <= code <= 0xFF:
        raise ValueError(f"Opcode out of byte range: {raw!r}")
    return code


def _parse_opcode(raw: dict[str, Any]) -> tuple[int, str]:
    """Build (code, mnemonic) from a JSON entry; mnemonic must be in the closed instruction table."""
    code = _parse_code(raw["code"])
    mnemonic = str(raw["mnemonic"]).upper()
    if mnemonic not in INSTRUCTION_CATEGORIES:
        raise ValueError(f"Unknown mnemonic {mnemonic!r} for opcode 0x{code:02X}")
    return code, mnemonic


def _hex_bytes(value: str) -> bytes:
    return bytes.fromhex(value)


def _family_opcodes(family: dict[str, Any], explicit: dict[int, str]) -> dict[int, str]:
    """
    Fill every byte without an explicit entry from the low-bit family rule:
    ``mnemonics[code & mask]`` (XIC, XIO, OTL, OTE for mask 0x03).
    """
    mask = _parse_code(family["mask"])
    mnemonics = [str(m).upper() for m in family["mnemonics"]]
    if len(mnemonics) != mask + 1:
        raise ValueError(f"Opcode family needs {mask + 1} mnemonics, got {len(mnemonics)}")
    for mnemonic in mnemonics:
        if mnemonic not in INSTRUCTION_CATEGORIES:
            raise ValueError(f"Unknown mnemonic {mnemonic!r} in opcode family")
    return {code: mnemonics[code & mask] for code in range(0x100) if code not in explicit}


def _load_resource(profile: str) -> dict[str, Any]:
    resource_name = _PROFILE_RESOURCE.get(profile)
    if not resource_name:
        raise UnknownProfileError(profile)

    # pyrss_ladder.data.slc500 -> pyrss_ladder.data / slc500.json
    pkg, name = resource_name.rsplit(".", 1)
    json_name = f"{name}.json"
    try:
        with resources.files(pkg).joinpath(json_name).open("r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Profile resource not found: {pkg}/{json_name}") from None


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Override top-level keys; nested dicts (markers, windows) are merged one level deep."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = {**base[key], **value}
        else:
            merged[key] = value
    return merged


class FormatProfile:
    """
    Fixture-validated constants for one file-format family: the opcode table,
    structural markers, lookahead windows and data-file type codes.

    Loaded from packaged JSON (default slc500). ``profile_override`` replaces
    individual sections; an ``opcodes`` list in the override replaces the explicit
    entries, and ``opcode_family`` fills every other byte (None leaves them unknown).
    """

    def __init__(self, profile: str = "slc500", profile_override: dict[str, Any] | None = None) -> None:
        self._profile = profile.lower()
        data = _load_resource(self._profile)
        if profile_override is not None:
            data = _merge(data, profile_override)

        self._opcodes: dict[int, str] = {}
        for entry in data.get("opcodes", []):
            if not isinstance(entry, dict):
                continue
            code, mnemonic = _parse_opcode(entry)
            if code in self._opcodes:
                raise ValueError(f"Duplicate opcode in profile: 0x{code:02X}")
            self._opcodes[code] = mnemonic
        self._explicit = len(self._opcodes)
        family = data.get("opcode_family")
        if family:
            self._opcodes.update(_family_opcodes(family, self._opcodes))

        markers = data["markers"]
        self.instruction_prefix = _hex_bytes(markers["instruction_prefix"])
        self.instruction_separator = _hex_bytes(markers["instruction_separator"])[0]
        self.rung_marker = _hex_bytes(markers["rung"])
        self.ladder_file_marker = _hex_bytes(markers["ladder_file"])
        self.ladder_file_tail = _hex_bytes(markers["ladder_file_tail"])
        self.data_file_marker = _hex_bytes(markers["data_file"])
        self.branch_leg = markers["branch_leg"].encode("latin-1")
        self.branch_close = markers["branch_close"].encode("latin-1")

        self.reserved_names = frozenset(data.get("reserved_names", []))

        windows = data["windows"]
        missing = [w for w in _WINDOW_NAMES if w not in windows]
        if missing:
            raise ValueError(f"Profile {self._profile!r} is missing windows: {', '.join(missing)}")
        self._windows = {name: int(windows[name]) for name in _WINDOW_NAMES}

        self.rung_marker_min_spacing = int(data.get("rung_marker_min_spacing", 30))
        self.fallback_min_rung_size = int(data.get("fallback_min_rung_size", 5))
        self.data_file_types: dict[int, str] = {
            _parse_code(code): prefix for code, prefix in data.get("data_file_types", {}).items()
        }

        logger.debug("FormatProfile loaded for %s: %d explicit opcodes", self._profile, self._explicit)

    def mnemonic_for(self, code: int) -> str | None:
        """Mnemonic for an opcode byte, or None when the byte is not in the table."""
        return self._opcodes.get(code)

    def window(self, name: str) -> int:
        """Lookahead window in bytes: timer, counter, sequencer, move_source or operand_scan."""
        return self._windows[name]

    def __contains__(self, code: object) -> bool:
        return code in self._opcodes

    def __len__(self) -> int:
        return len(self._opcodes)

    @property
    def profile(self) -> str:
        return self._profile


def get_default_profile(profile: str = "slc500") -> FormatProfile:
    """Load and return the packaged FormatProfile for the given name (default slc500)."""
    return FormatProfile(profile=profile)
