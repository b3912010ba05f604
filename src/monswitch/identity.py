"""Monitor identities (EDID) and monitor-set fingerprints."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import pyudev

from .models import Fingerprint, MonitorSet, make_fingerprint
from .utils import EDID_DECODER_ENV

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Connector:
    """A DRM connector, e.g. ``/sys/class/drm/card0-HDMI-A-1``."""

    name: str
    edid_path: Path
    enabled: bool = False
    card: str = ""

    @property
    def key(self) -> str:
        """Unique sysfs name; the same port name can exist on several cards."""
        return f"{self.card}-{self.name}" if self.card else self.name


def _attribute(device: pyudev.Device, key: str) -> str:
    try:
        return device.attributes.asstring(key).strip()
    except (KeyError, UnicodeDecodeError):
        return ""


def drm_connectors(context: pyudev.Context | None = None) -> list[Connector]:
    """List the DRM connectors that expose an ``edid`` attribute."""
    context = context or pyudev.Context()
    connectors = []
    for device in context.list_devices(subsystem="drm"):
        card, sep, output = device.sys_name.partition("-")
        if not sep:
            continue
        edid_path = Path(device.sys_path) / "edid"
        if not edid_path.exists():
            continue
        connectors.append(Connector(
            name=output,
            edid_path=edid_path,
            enabled=_attribute(device, "enabled") == "enabled",
            card=card,
        ))
    connectors.sort(key=lambda c: (c.name, c.card))
    return connectors


def normalize(text: str) -> str:
    """Collapse whitespace runs so identities compare as single lines."""
    return " ".join(text.split())


def hex_decoder(raw: bytes) -> str:
    return raw.hex()


class CommandDecoder:
    """Decode EDID by piping the raw bytes into an external command."""

    def __init__(self, command: str) -> None:
        self.command = command
        self._argv = shlex.split(command)

    def __call__(self, raw: bytes) -> str | None:
        if not self._argv or shutil.which(self._argv[0]) is None:
            log.warning("EDID decoder %r not found, no identity available", self.command)
            return None
        proc = subprocess.run(self._argv, input=raw, capture_output=True)
        if proc.returncode != 0:
            log.debug("EDID decoder %r exited with %d", self.command, proc.returncode)
            return None
        return proc.stdout.decode("utf-8", errors="replace")


def decoder_from_settings(settings: dict) -> Callable[[bytes], str | None]:
    """Pick the decoder: ``$MONSWITCH_EDID_DECODER`` > settings > hex dump."""
    command = os.environ.get(EDID_DECODER_ENV) or settings.get("edid_decoder")
    if command:
        return CommandDecoder(command)
    return hex_decoder


class IdentityReader:
    """Turn one connector's EDID into a canonical identity string."""

    def __init__(self, decoder: Callable[[bytes], str | None] | None = None) -> None:
        self._decoder = decoder or hex_decoder

    def read(self, connector: Connector) -> str | None:
        try:
            raw = connector.edid_path.read_bytes()
        except OSError:
            return None
        if not raw:
            return None
        text = self._decoder(raw)
        if not text:
            return None
        return normalize(text) or None


class FingerprintExtractor:
    """Build order-independent fingerprints of the connected or enabled monitors."""

    def __init__(
        self,
        reader: IdentityReader | None = None,
        connectors: Callable[[], list[Connector]] = drm_connectors,
    ) -> None:
        self._reader = reader or IdentityReader()
        self._connectors = connectors

    def identities(self, monitor_set: MonitorSet) -> dict[str, str]:
        """Map connector key (``cardN-OUTPUT``) to identity for the selected monitors."""
        found = {}
        for connector in self._connectors():
            if monitor_set is MonitorSet.ENABLED and not connector.enabled:
                continue
            identity = self._reader.read(connector)
            if identity is None:
                continue
            found[connector.key] = identity
        return found

    def fingerprint(self, monitor_set: MonitorSet) -> Fingerprint:
        fp = make_fingerprint(self.identities(monitor_set).values())
        log.debug("%s fingerprint: %s", monitor_set.value, fp)
        return fp
