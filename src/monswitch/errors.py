"""Error taxonomy. Every error ends the current invocation with exit code 1."""

from __future__ import annotations


class MonswitchError(Exception):
    """Base class for all failures reported to the user."""

    exit_code = 1


class InvalidProfileName(MonswitchError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f"Invalid profile name {name!r}: use letters, digits, '_' and '-' only"
        )
        self.name = name


class ProfileNotFound(MonswitchError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No such profile: {name}")
        self.name = name


class CorruptProfile(MonswitchError):
    """A profile directory lacks its fingerprint or layout, or cannot be parsed."""


class MonitorUnavailable(MonswitchError):
    def __init__(self, name: str, missing: list[str]) -> None:
        lines = "\n".join(f"  {identity}" for identity in missing)
        super().__init__(
            f"Profile {name} requires monitors that are not connected:\n{lines}"
        )
        self.name = name
        self.missing = missing


class NoAutoMatch(MonswitchError):
    def __init__(self) -> None:
        super().__init__("No profile matches the connected monitors")


class NoMonitors(MonswitchError):
    """Nothing to save: no enabled monitor with identity data, or no active output."""


class HookFailure(MonswitchError):
    def __init__(self, hook: str, returncode: int) -> None:
        super().__init__(f"Hook {hook} exited with status {returncode}")
        self.hook = hook
        self.returncode = returncode


class BackendFailure(MonswitchError):
    """The display backend could not be queried or refused the new layout."""
