#!/usr/bin/env python3
"""Example: parse an RSLogix 500 .RSS file and print its rungs, timers and symbols."""

import sys
from pathlib import Path

from pyrss_ladder import parse_rss, sniff_format
from pyrss_ladder.errors import NoLadderLogicFound, NotACompoundDocumentError
from pyrss_ladder.types import FileFormat


def main() -> None:
    path = Path(sys.argv[1] if len(sys.argv) > 1 else "LANLOGIX.RSS")  # change to your project
    buffer = path.read_bytes()

    # Only OLE compound documents carry binary ladder logic
    fmt = sniff_format(buffer)
    if fmt != FileFormat.CONTAINER_BINARY:
        print(f"{path} is {fmt.value}, not an .RSS project", file=sys.stderr)
        sys.exit(1)

    try:
        project = parse_rss(buffer)
    except NotACompoundDocumentError as e:
        print(f"Corrupt project: {e}", file=sys.stderr)
        sys.exit(1)
    except NoLadderLogicFound as e:
        print(f"No ladder logic: {e} (tried {', '.join(e.tried)})", file=sys.stderr)
        sys.exit(1)

    print(f"{project.name} ({project.processor_type}), {project.rung_count} rungs")
    for routine in project.programs[0].routines:
        print(f"[{routine.name}]")
        for rung in routine.rungs:
            print(f"  {rung.number:4d}: {rung.text}")

    # Programmed timer values
    for t in project.timers:
        print(f"{t.address}: {t.preset * t.time_base:.2f}s")

    # Named tags only
    for tag in project.tags:
        if tag.symbol:
            print(f"{tag.symbol} -> {tag.address}  {tag.description or ''}")


if __name__ == "__main__":
    main()
