"""Tests for monswitch.identity: EDID identities and fingerprints."""

from __future__ import annotations

import itertools
from pathlib import Path

import pytest

from monswitch.identity import (
    CommandDecoder,
    Connector,
    FingerprintExtractor,
    IdentityReader,
    decoder_from_settings,
    drm_connectors,
    hex_decoder,
    normalize,
)
from monswitch.models import MonitorSet


def _connector(tmp_path: Path, name: str, data: bytes, enabled: bool = True) -> Connector:
    path = tmp_path / f"{name}.edid"
    path.write_bytes(data)
    return Connector(name, path, enabled)


class TestIdentityReader:

    def test_default_decoder_is_hex(self, tmp_path):
        reader = IdentityReader()
        assert reader.read(_connector(tmp_path, "DP-1", b"\x00\xff\x10")) == "00ff10"

    def test_empty_edid_has_no_identity(self, tmp_path):
        assert IdentityReader().read(_connector(tmp_path, "DP-1", b"")) is None

    def test_missing_edid_file_has_no_identity(self, tmp_path):
        connector = Connector("DP-1", tmp_path / "absent", True)
        assert IdentityReader().read(connector) is None

    def test_decoder_output_is_whitespace_normalized(self, tmp_path):
        reader = IdentityReader(lambda raw: "  Vendor: DEL\n\tSerial:\t1234  \n")
        assert reader.read(_connector(tmp_path, "DP-1", b"x")) == "Vendor: DEL Serial: 1234"

    def test_decoder_returning_nothing_gives_no_identity(self, tmp_path):
        reader = IdentityReader(lambda raw: None)
        assert reader.read(_connector(tmp_path, "DP-1", b"x")) is None
        reader = IdentityReader(lambda raw: " \n ")
        assert reader.read(_connector(tmp_path, "DP-1", b"x")) is None


def test_normalize():
    assert normalize("a  b\n\nc\t") == "a b c"


class TestCommandDecoder:

    def test_pipes_raw_bytes_through_command(self):
        assert CommandDecoder("cat")(b"LG 27GL850\n") == "LG 27GL850\n"

    def test_missing_command_is_not_fatal(self):
        assert CommandDecoder("no-such-edid-decoder-xyz")(b"abc") is None

    def test_failing_command_is_not_fatal(self):
        assert CommandDecoder("false")(b"abc") is None


class TestDecoderSelection:

    def test_default_is_hex(self, monkeypatch):
        monkeypatch.delenv("MONSWITCH_EDID_DECODER", raising=False)
        assert decoder_from_settings({}) is hex_decoder

    def test_settings_command(self, monkeypatch):
        monkeypatch.delenv("MONSWITCH_EDID_DECODER", raising=False)
        decoder = decoder_from_settings({"edid_decoder": "parse-edid"})
        assert isinstance(decoder, CommandDecoder)
        assert decoder.command == "parse-edid"

    def test_environment_overrides_settings(self, monkeypatch):
        monkeypatch.setenv("MONSWITCH_EDID_DECODER", "edid-decode --skip-hex-dump")
        decoder = decoder_from_settings({"edid_decoder": "parse-edid"})
        assert decoder.command == "edid-decode --skip-hex-dump"


class TestFingerprintExtractor:

    def _connectors(self, tmp_path):
        return [
            _connector(tmp_path, "eDP-1", b"LAPTOP", enabled=False),
            _connector(tmp_path, "HDMI-1", b"M2"),
            _connector(tmp_path, "DP-1", b"M1"),
            _connector(tmp_path, "DP-2", b""),
        ]

    def test_connected_includes_disabled_monitors(self, tmp_path):
        connectors = self._connectors(tmp_path)
        extractor = FingerprintExtractor(IdentityReader(bytes.decode), lambda: connectors)
        assert extractor.fingerprint(MonitorSet.CONNECTED) == ("LAPTOP", "M1", "M2")

    def test_enabled_excludes_disabled_monitors(self, tmp_path):
        connectors = self._connectors(tmp_path)
        extractor = FingerprintExtractor(IdentityReader(bytes.decode), lambda: connectors)
        assert extractor.fingerprint(MonitorSet.ENABLED) == ("M1", "M2")

    def test_identities_keyed_by_connector(self, tmp_path):
        connectors = self._connectors(tmp_path)
        extractor = FingerprintExtractor(IdentityReader(bytes.decode), lambda: connectors)
        assert extractor.identities(MonitorSet.ENABLED) == {"HDMI-1": "M2", "DP-1": "M1"}

    def test_order_independent(self, tmp_path):
        connectors = self._connectors(tmp_path)
        results = set()
        for perm in itertools.permutations(connectors):
            extractor = FingerprintExtractor(
                IdentityReader(bytes.decode), lambda perm=perm: list(perm),
            )
            results.add(extractor.fingerprint(MonitorSet.CONNECTED))
        assert results == {("LAPTOP", "M1", "M2")}

    def test_identical_monitors_both_counted(self, tmp_path):
        connectors = [_connector(tmp_path, "DP-1", b"SAME"), _connector(tmp_path, "DP-2", b"SAME")]
        extractor = FingerprintExtractor(IdentityReader(bytes.decode), lambda: connectors)
        assert extractor.fingerprint(MonitorSet.CONNECTED) == ("SAME", "SAME")

    def test_same_port_name_on_two_cards(self, tmp_path):
        first = tmp_path / "card0"
        second = tmp_path / "card1"
        first.mkdir()
        second.mkdir()
        (first / "edid").write_bytes(b"MON_A")
        (second / "edid").write_bytes(b"MON_B")
        connectors = [
            Connector("DP-1", first / "edid", True, card="card0"),
            Connector("DP-1", second / "edid", True, card="card1"),
        ]
        extractor = FingerprintExtractor(IdentityReader(bytes.decode), lambda: connectors)
        assert extractor.fingerprint(MonitorSet.CONNECTED) == ("MON_A", "MON_B")
        assert extractor.identities(MonitorSet.ENABLED) == {
            "card0-DP-1": "MON_A", "card1-DP-1": "MON_B",
        }


class _FakeAttributes:
    def __init__(self, values):
        self._values = values

    def asstring(self, key):
        return self._values[key]


class _FakeDevice:
    def __init__(self, sys_path: Path, attributes=None):
        self.sys_path = str(sys_path)
        self.sys_name = sys_path.name
        self.attributes = _FakeAttributes(attributes or {})


class _FakeContext:
    def __init__(self, devices):
        self._devices = devices

    def list_devices(self, subsystem=None):
        assert subsystem == "drm"
        return iter(self._devices)


def test_drm_connectors_reads_sysfs_layout(tmp_path):
    def device(name, edid=True, **attributes):
        path = tmp_path / name
        path.mkdir()
        if edid:
            (path / "edid").write_bytes(b"")
        return _FakeDevice(path, attributes)

    context = _FakeContext([
        device("card0", edid=False),
        device("renderD128", edid=False),
        device("card0-HDMI-A-1", enabled="enabled\n", status="connected"),
        device("card0-DP-1", enabled="disabled", status="disconnected"),
        device("card0-eDP-1"),
    ])

    connectors = drm_connectors(context)

    assert [c.name for c in connectors] == ["DP-1", "HDMI-A-1", "eDP-1"]
    assert {c.name: c.enabled for c in connectors} == {
        "DP-1": False, "HDMI-A-1": True, "eDP-1": False,
    }
    assert connectors[1].edid_path == tmp_path / "card0-HDMI-A-1" / "edid"


@pytest.mark.parametrize("name", ["card0", "renderD128"])
def test_drm_connectors_skips_non_connectors(tmp_path, name):
    path = tmp_path / name
    path.mkdir()
    (path / "edid").write_bytes(b"x")
    assert drm_connectors(_FakeContext([_FakeDevice(path)])) == []


def test_drm_connectors_keeps_card_of_each_connector(tmp_path):
    devices = []
    for name in ("card1-DP-1", "card0-DP-1"):
        path = tmp_path / name
        path.mkdir()
        (path / "edid").write_bytes(b"x")
        devices.append(_FakeDevice(path, {"enabled": "enabled"}))

    connectors = drm_connectors(_FakeContext(devices))

    assert [c.key for c in connectors] == ["card0-DP-1", "card1-DP-1"]
    assert {c.name for c in connectors} == {"DP-1"}
