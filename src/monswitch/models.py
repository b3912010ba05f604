"""Data models: LayoutRecord, Profile, ProfileStatus, SwitchContext."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable


# A fingerprint is the sorted tuple of monitor identities.
Fingerprint = tuple[str, ...]

# One group of xrandr arguments, e.g. ["--output", "DP-1", "--off"].
Clause = list[str]

NONE_PROFILE = "none"

PROFILE_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def make_fingerprint(identities: Iterable[str]) -> Fingerprint:
    """Return the canonical (sorted) fingerprint for a set of identities."""
    return tuple(sorted(identities))


def is_valid_profile_name(name: str) -> bool:
    return bool(name) and PROFILE_NAME_RE.match(name) is not None


# ── Enums ────────────────────────────────────────────────────────────────

class Rotation(Enum):
    NORMAL = "normal"
    LEFT = "left"
    INVERTED = "inverted"
    RIGHT = "right"

    @property
    def is_rotated(self) -> bool:
        """True if width/height are swapped (90° or 270°)."""
        return self in (Rotation.LEFT, Rotation.RIGHT)


class MonitorSet(Enum):
    CONNECTED = "connected"
    ENABLED = "enabled"


class HookPhase(Enum):
    PRE = "preswitch"
    POST = "postswitch"


# ── LayoutRecord ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LayoutRecord:
    output: str                 # e.g. "DP-1", "HDMI-1"
    primary: bool = False
    mode: str = "1920x1080"     # unrotated mode, WxH
    position: str = "0x0"       # XxY
    rotation: Rotation = Rotation.NORMAL
    index: int = 0              # position among the active outputs at save time

    def to_xrandr_args(self) -> Clause:
        """Generate the xrandr arguments configuring this output."""
        return [
            "--output", self.output,
            "--primary" if self.primary else "--noprimary",
            "--mode", self.mode,
            "--pos", self.position,
            "--rotate", self.rotation.value,
            "--crtc", str(self.index),
        ]


def disable_clause(output: str) -> Clause:
    return ["--output", output, "--off"]


@dataclass
class OutputState:
    """One output as reported by the display backend."""

    name: str
    connected: bool = False
    primary: bool = False
    width: int = 0
    height: int = 0
    x: int = 0
    y: int = 0
    rotation: Rotation = Rotation.NORMAL
    active: bool = False

    @property
    def mode(self) -> str:
        """Mode size before rotation; the reported geometry is rotated."""
        w, h = self.width, self.height
        if self.rotation.is_rotated:
            w, h = h, w
        return f"{w}x{h}"

    @property
    def position(self) -> str:
        return f"{self.x}x{self.y}"


# ── Profile ──────────────────────────────────────────────────────────────

@dataclass
class Profile:
    name: str
    fingerprint: Fingerprint = ()
    layout: list[LayoutRecord] = field(default_factory=list)
    preswitch: Path | None = None
    postswitch: Path | None = None

    @property
    def outputs(self) -> list[str]:
        return [r.output for r in self.layout]

    def hook(self, phase: HookPhase) -> Path | None:
        return self.preswitch if phase is HookPhase.PRE else self.postswitch


@dataclass(frozen=True)
class ProfileStatus:
    name: str
    active: bool = False
    available: bool = False

    @property
    def label(self) -> str:
        if self.active:
            return "active"
        if self.available:
            return "available"
        return ""


# ── SwitchContext ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SwitchContext:
    """What a hook is told about the switch it runs around."""

    phase: HookPhase
    previous: str | None = None
    current: str | None = None
    next: str | None = None

    @classmethod
    def before(cls, current: str | None, target: str) -> SwitchContext:
        return cls(HookPhase.PRE, current=current, next=target)

    @classmethod
    def after(cls, previous: str | None, target: str) -> SwitchContext:
        return cls(HookPhase.POST, previous=previous, current=target)

    def environ(self) -> dict[str, str]:
        """Environment bindings handed to the hook process."""
        if self.phase is HookPhase.PRE:
            return {
                "CURRENT_PROFILE": self.current or NONE_PROFILE,
                "NEXT_PROFILE": self.next or NONE_PROFILE,
            }
        return {
            "PREVIOUS_PROFILE": self.previous or NONE_PROFILE,
            "CURRENT_PROFILE": self.current or NONE_PROFILE,
        }
