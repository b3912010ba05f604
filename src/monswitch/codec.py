"""Layout records: the ``config`` file format and the apply clauses.

Each managed output is one line::

    HDMI-1,primary,1920x1080,0x0,normal,0
    DP-1,noprimary,2560x1440,1920x0,left,1

Fields are output name, primary flag, mode, position, rotation and the
output-sequence index.  Records keep the order they were saved in; xrandr
assigns CRTCs in argument order, so decoding never reorders them.
"""

from __future__ import annotations

import re
from typing import Iterable

from .errors import CorruptProfile
from .models import Clause, LayoutRecord, OutputState, Rotation, disable_clause

_GEOMETRY_RE = re.compile(r"^-?\d+x-?\d+$")
_PRIMARY = {"primary": True, "noprimary": False}


def format_record(record: LayoutRecord) -> str:
    return ",".join([
        record.output,
        "primary" if record.primary else "noprimary",
        record.mode,
        record.position,
        record.rotation.value,
        str(record.index),
    ])


def parse_record(line: str) -> LayoutRecord:
    fields = [f.strip() for f in line.strip().split(",")]
    if len(fields) != 6:
        raise CorruptProfile(f"Expected 6 fields in layout line: {line!r}")
    output, primary, mode, position, rotation, index = fields
    if not output or primary not in _PRIMARY:
        raise CorruptProfile(f"Bad output or primary flag in layout line: {line!r}")
    if not _GEOMETRY_RE.match(mode) or not _GEOMETRY_RE.match(position):
        raise CorruptProfile(f"Bad mode or position in layout line: {line!r}")
    try:
        rot = Rotation(rotation)
        idx = int(index)
    except ValueError:
        raise CorruptProfile(f"Bad rotation or index in layout line: {line!r}") from None
    return LayoutRecord(
        output=output,
        primary=_PRIMARY[primary],
        mode=mode,
        position=position,
        rotation=rot,
        index=idx,
    )


def dump_layout(records: Iterable[LayoutRecord]) -> str:
    return "".join(format_record(r) + "\n" for r in records)


def parse_layout(text: str) -> list[LayoutRecord]:
    return [parse_record(line) for line in text.splitlines() if line.strip()]


def encode_layout(outputs: list[OutputState]) -> list[LayoutRecord]:
    """Record every active output, indexed by its position among active outputs."""
    active = [o for o in outputs if o.active]
    return [
        LayoutRecord(
            output=o.name,
            primary=o.primary,
            mode=o.mode,
            position=o.position,
            rotation=o.rotation,
            index=i,
        )
        for i, o in enumerate(active)
    ]


def outputs_to_disable(records: list[LayoutRecord], connected: list[str]) -> list[str]:
    """Connected outputs the layout does not mention, in backend order."""
    managed = {r.output for r in records}
    return [name for name in connected if name not in managed]


def decode_layout(records: list[LayoutRecord], connected: list[str]) -> list[Clause]:
    """Build the apply clauses: the stored outputs, then every other connected output off."""
    clauses = [r.to_xrandr_args() for r in records]
    clauses.extend(disable_clause(name) for name in outputs_to_disable(records, connected))
    return clauses
