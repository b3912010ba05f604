"""Pre/post switch hooks.

A hook is any callable taking a :class:`SwitchContext`; it signals failure by
raising.  Scripts on disk are wrapped in :class:`ScriptHook`.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .errors import HookFailure
from .models import HookPhase, Profile, SwitchContext
from .utils import is_executable

log = logging.getLogger(__name__)

Hook = Callable[[SwitchContext], None]


class ScriptHook:
    """Run an executable with the switch context in its environment."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def __repr__(self) -> str:
        return f"ScriptHook({str(self.path)!r})"

    def __call__(self, ctx: SwitchContext) -> None:
        env = os.environ.copy()
        env.update(ctx.environ())
        log.info("Running %s hook %s", ctx.phase.value, self.path)
        try:
            returncode = subprocess.call([str(self.path)], env=env)
        except OSError as e:
            log.error("Cannot execute %s: %s", self.path, e)
            raise HookFailure(str(self.path), 127) from e
        if returncode != 0:
            raise HookFailure(str(self.path), returncode)


@dataclass
class HookSet:
    """Global hooks, used when a profile has no hook of its own."""

    preswitch: Hook | None = None
    postswitch: Hook | None = None

    @classmethod
    def from_directory(cls, directory: Path) -> HookSet:
        found: dict[str, Hook] = {}
        for phase in HookPhase:
            path = directory / phase.value
            if is_executable(path):
                found[phase.value] = ScriptHook(path)
        return cls(**found)

    def get(self, phase: HookPhase) -> Hook | None:
        return self.preswitch if phase is HookPhase.PRE else self.postswitch

    def resolve(self, profile: Profile, phase: HookPhase) -> Hook | None:
        """The profile's own hook, else the global one, else None."""
        path = profile.hook(phase)
        if path is not None:
            return ScriptHook(path)
        return self.get(phase)
