"""Hotplug watcher: listen for DRM udev events and load the matching profile."""

from __future__ import annotations

import contextlib
import logging
import time
from typing import Callable, ContextManager

import pyudev

from .errors import MonswitchError
from .models import MonitorSet
from .switcher import SwitchController

log = logging.getLogger(__name__)

DEBOUNCE_S = 0.5    # Quiet period that ends an event burst
UDEV_SETTLE_S = 5   # Hold off re-applying right after an apply (the modeset itself triggers DRM events)

HOTPLUG_ACTIONS = ("change", "add", "remove")


def drm_monitor(context: pyudev.Context | None = None) -> pyudev.Monitor:
    monitor = pyudev.Monitor.from_netlink(context or pyudev.Context())
    monitor.filter_by(subsystem="drm")
    return monitor


class HotplugWatcher:
    """Runs ``auto`` whenever the set of connected monitors changes."""

    def __init__(
        self,
        controller: SwitchController,
        monitor: pyudev.Monitor | None = None,
        clock: Callable[[], float] = time.monotonic,
        lock: Callable[[], ContextManager[None]] = contextlib.nullcontext,
    ) -> None:
        self._controller = controller
        self._lock = lock
        self._monitor = monitor
        self._clock = clock
        self._last_apply_time: float | None = None
        self._last_applied: str | None = None

    def apply_best_profile(self, *, force: bool = False) -> str | None:
        """Load the profile matching the connected monitors.

        Unless *force* is set, a profile that was the last one applied is not
        applied again.
        """
        controller = self._controller
        try:
            target = controller.matcher.match(controller.fingerprint(MonitorSet.CONNECTED))
            if target is None:
                log.info("No matching profile found")
                return None
            if not force and target == self._last_applied:
                log.info("Profile %s already applied, skipping", target)
                return None
            with self._lock():
                controller.load(target)
            self._last_applied = target
            self._last_apply_time = self._clock()
            return target
        except MonswitchError as e:
            log.error("Failed to apply profile: %s", e)
        return None

    def _settle_remaining(self) -> float:
        if self._last_apply_time is None:
            return 0.0
        return UDEV_SETTLE_S - (self._clock() - self._last_apply_time)

    def _drain(self, monitor: pyudev.Monitor, timeout: float = DEBOUNCE_S) -> None:
        """Swallow events until none arrives for *timeout* seconds."""
        while monitor.poll(timeout=timeout) is not None:
            pass

    def run(self) -> None:
        monitor = self._monitor or drm_monitor()
        monitor.start()
        log.info("Watching DRM events")
        self.apply_best_profile(force=True)
        while True:
            device = monitor.poll()
            if device is None or device.action not in HOTPLUG_ACTIONS:
                continue
            log.info("udev DRM event: %s %s", device.action, device.device_path)
            self._drain(monitor)
            remaining = self._settle_remaining()
            if remaining > 0:
                log.debug("udev settle: %.1fs remaining, deferring", remaining)
                self._drain(monitor, remaining)
            self.apply_best_profile()
