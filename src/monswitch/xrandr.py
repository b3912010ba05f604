"""Display backend: query and apply output layouts through the xrandr command."""

from __future__ import annotations

import logging
import os
import re
import subprocess

from .errors import BackendFailure
from .models import Clause, OutputState, Rotation

log = logging.getLogger(__name__)

# Output header line of `xrandr --query`, e.g.
#   HDMI-1 connected primary 1080x1920+1920+0 left (normal left inverted right x axis y axis) 527mm x 296mm
#   DP-2 connected (normal left inverted right x axis y axis)
#   VGA-1 disconnected (normal left inverted right x axis y axis)
_OUTPUT_RE = re.compile(r"""(?x)
    ^(?P<name>\S+)\s+
    (?P<state>connected|disconnected|unknown\ connection)
    (?P<primary>\s+primary)?
    (?:\s+
        (?P<width>\d+)x(?P<height>\d+)\+(?P<x>-?\d+)\+(?P<y>-?\d+)
        (?:\s+\(0x[0-9a-fA-F]+\))?
        (?:\s+(?P<rotate>normal|left|inverted|right)\b)?
    )?
""")


def parse_query(text: str) -> list[OutputState]:
    """Parse ``xrandr --query`` output into outputs, in xrandr's order."""
    outputs = []
    for line in text.splitlines():
        if not line or line[0].isspace():
            continue
        match = _OUTPUT_RE.match(line)
        if match is None:
            continue
        active = match.group("width") is not None
        outputs.append(OutputState(
            name=match.group("name"),
            connected=match.group("state") == "connected",
            primary=match.group("primary") is not None,
            width=int(match.group("width")) if active else 0,
            height=int(match.group("height")) if active else 0,
            x=int(match.group("x")) if active else 0,
            y=int(match.group("y")) if active else 0,
            rotation=Rotation(match.group("rotate") or "normal"),
            active=active,
        ))
    return outputs


class XrandrBackend:
    """Query and apply layouts with the ``xrandr`` command-line tool."""

    def __init__(self, command: str = "xrandr", display: str | None = None) -> None:
        self._command = command
        self._environ = dict(os.environ)
        if display:
            self._environ["DISPLAY"] = display

    def _run(self, *args: str) -> str:
        argv = [self._command, *args]
        log.debug("%s", " ".join(argv))
        try:
            proc = subprocess.run(argv, capture_output=True, env=self._environ)
        except OSError as e:
            raise BackendFailure(f"Cannot run {self._command}: {e}") from e
        if proc.returncode != 0:
            err = proc.stderr.decode("utf-8", errors="replace").strip()
            raise BackendFailure(
                f"{self._command} exited with status {proc.returncode}: {err}"
            )
        return proc.stdout.decode("utf-8", errors="replace")

    def query(self) -> list[OutputState]:
        """Return every output xrandr knows about, in its enumeration order."""
        outputs = parse_query(self._run("--query"))
        if not outputs:
            raise BackendFailure(f"{self._command} reported no outputs")
        return outputs

    def apply(self, clauses: list[Clause]) -> None:
        """Apply all clauses in a single xrandr invocation."""
        args = [arg for clause in clauses for arg in clause]
        log.info("Applying: %s %s", self._command, " ".join(args))
        self._run(*args)
