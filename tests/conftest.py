"""Shared fakes: connectors backed by EDID files in tmp_path and an in-memory backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from monswitch.errors import BackendFailure
from monswitch.hooks import HookSet
from monswitch.identity import Connector, FingerprintExtractor, IdentityReader
from monswitch.models import OutputState, Rotation
from monswitch.profile_manager import ProfileStore
from monswitch.switcher import SwitchController


def text_decoder(raw: bytes) -> str:
    return raw.decode()


@dataclass
class Port:
    name: str
    identity: str | None = None
    enabled: bool = False
    width: int = 1920
    height: int = 1080
    x: int = 0
    y: int = 0
    primary: bool = False


class FakeHardware:
    """A set of output ports; a port with an identity has a monitor plugged in."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self.ports: dict[str, Port] = {}

    def port(self, name: str) -> Port:
        return self.ports.setdefault(name, Port(name))

    def plug(self, name: str, identity: str, enabled: bool = True, **geometry) -> Port:
        port = self.port(name)
        port.identity = identity
        port.enabled = enabled
        for key, value in geometry.items():
            setattr(port, key, value)
        return port

    def unplug(self, name: str) -> None:
        port = self.port(name)
        port.identity = None
        port.enabled = False

    def connectors(self) -> list[Connector]:
        result = []
        for port in self.ports.values():
            path = self._root / f"{port.name}.edid"
            path.write_bytes(port.identity.encode() if port.identity else b"")
            result.append(Connector(port.name, path, port.enabled))
        return result


@dataclass
class FakeBackend:
    hardware: FakeHardware
    applied: list[list[list[str]]] = field(default_factory=list)
    fail: bool = False

    def query(self) -> list[OutputState]:
        return [
            OutputState(
                name=p.name,
                connected=p.identity is not None,
                primary=p.primary,
                width=p.width if p.enabled else 0,
                height=p.height if p.enabled else 0,
                x=p.x,
                y=p.y,
                rotation=Rotation.NORMAL,
                active=p.enabled,
            )
            for p in self.hardware.ports.values()
        ]

    def apply(self, clauses: list[list[str]]) -> None:
        if self.fail:
            raise BackendFailure("xrandr exited with status 1: cannot find crtc")
        self.applied.append(clauses)
        for clause in clauses:
            port = self.hardware.port(clause[1])
            port.enabled = "--off" not in clause
            port.primary = "--primary" in clause


@pytest.fixture
def hardware(tmp_path):
    edid_dir = tmp_path / "edid"
    edid_dir.mkdir()
    return FakeHardware(edid_dir)


@pytest.fixture
def backend(hardware):
    return FakeBackend(hardware)


@pytest.fixture
def extractor(hardware):
    return FingerprintExtractor(IdentityReader(text_decoder), connectors=hardware.connectors)


@pytest.fixture
def store(tmp_path):
    return ProfileStore(tmp_path / "profiles")


@pytest.fixture
def hooks():
    return HookSet()


@pytest.fixture
def controller(store, extractor, backend, hooks):
    return SwitchController(store, extractor, backend, hooks)
