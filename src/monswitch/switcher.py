"""Switch orchestration: validate, run hooks, and apply a stored profile."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Protocol

from .codec import decode_layout, encode_layout
from .errors import InvalidProfileName, MonitorUnavailable, NoAutoMatch, NoMonitors
from .hooks import HookSet
from .identity import FingerprintExtractor
from .models import (
    Clause,
    Fingerprint,
    MonitorSet,
    OutputState,
    Profile,
    ProfileStatus,
    SwitchContext,
    is_valid_profile_name,
)
from .profile_manager import ProfileMatcher, ProfileStore, missing_from

log = logging.getLogger(__name__)


class Backend(Protocol):
    def query(self) -> list[OutputState]: ...

    def apply(self, clauses: list[Clause]) -> None: ...


class SwitchState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    PRE_HOOK = "pre-hook"
    APPLYING = "applying"
    POST_HOOK = "post-hook"
    DONE = "done"
    FAILED = "failed"


class SwitchController:
    """Loads, saves and auto-selects profiles against the live hardware.

    A switch runs VALIDATING, PRE_HOOK, APPLYING, POST_HOOK and ends in DONE.
    Only validation can end in FAILED; it runs before any hook or apply, so a
    failed validation leaves the displays untouched.  Hook and backend errors
    propagate as they are, without rolling anything back.
    """

    def __init__(
        self,
        store: ProfileStore,
        extractor: FingerprintExtractor,
        backend: Backend,
        hooks: HookSet | None = None,
    ) -> None:
        self._store = store
        self._matcher = ProfileMatcher(store)
        self._extractor = extractor
        self._backend = backend
        self._hooks = hooks or HookSet()
        self.state = SwitchState.IDLE

    @property
    def store(self) -> ProfileStore:
        return self._store

    @property
    def matcher(self) -> ProfileMatcher:
        return self._matcher

    def _enter(self, state: SwitchState) -> None:
        log.debug("Switch state: %s -> %s", self.state.value, state.value)
        self.state = state

    def _run_hook(self, profile: Profile, ctx: SwitchContext) -> None:
        hook = self._hooks.resolve(profile, ctx.phase)
        if hook is None:
            log.debug("No %s hook for %s", ctx.phase.value, profile.name)
            return
        hook(ctx)

    def fingerprint(self, monitor_set: MonitorSet) -> Fingerprint:
        return self._extractor.fingerprint(monitor_set)

    def active_profile(self) -> str | None:
        """The profile whose fingerprint equals the enabled monitors, if any."""
        return self._matcher.match(self.fingerprint(MonitorSet.ENABLED))

    def load(self, name: str) -> Profile:
        self.state = SwitchState.IDLE
        profile = self._store.load(name)

        self._enter(SwitchState.VALIDATING)
        connected = self.fingerprint(MonitorSet.CONNECTED)
        missing = missing_from(connected, profile.fingerprint)
        if missing:
            self._enter(SwitchState.FAILED)
            raise MonitorUnavailable(name, missing)

        self._enter(SwitchState.PRE_HOOK)
        self._run_hook(profile, SwitchContext.before(self.active_profile(), name))

        self._enter(SwitchState.APPLYING)
        outputs = self._backend.query()
        clauses = decode_layout(profile.layout, [o.name for o in outputs if o.connected])
        log.info("Loading profile %s", name)
        self._backend.apply(clauses)

        self._enter(SwitchState.POST_HOOK)
        self._run_hook(profile, SwitchContext.after(self.active_profile(), name))

        self._enter(SwitchState.DONE)
        return profile

    def auto(self) -> str:
        """Load the profile whose fingerprint equals the connected monitors."""
        connected = self.fingerprint(MonitorSet.CONNECTED)
        name = self._matcher.match(connected)
        if name is None:
            raise NoAutoMatch()
        log.info("Detected profile %s", name)
        self.load(name)
        return name

    def capture(self, name: str) -> Path:
        """Save the enabled monitors and the live layout as profile *name*."""
        if not is_valid_profile_name(name):
            raise InvalidProfileName(name)
        fingerprint = self.fingerprint(MonitorSet.ENABLED)
        if not fingerprint:
            raise NoMonitors("No enabled monitor with readable EDID; nothing to save")
        layout = encode_layout(self._backend.query())
        if not layout:
            raise NoMonitors("The display backend reports no active output; nothing to save")
        return self._store.save(name, fingerprint, layout)

    def statuses(self) -> list[ProfileStatus]:
        return self._store.list_profiles(
            enabled=self.fingerprint(MonitorSet.ENABLED),
            connected=self.fingerprint(MonitorSet.CONNECTED),
        )
