"""Profile management: save, load, remove, list, and match profiles."""

from __future__ import annotations

import logging
import shutil
from collections import Counter
from pathlib import Path
from typing import Iterator

from filelock import FileLock

from .codec import dump_layout, parse_layout
from .errors import CorruptProfile, InvalidProfileName, MonswitchError, ProfileNotFound
from .models import (
    Fingerprint,
    LayoutRecord,
    Profile,
    ProfileStatus,
    is_valid_profile_name,
    make_fingerprint,
)
from .utils import is_executable, read_text, write_text_pair

log = logging.getLogger(__name__)

FINGERPRINT_FILE = "fingerprint"
LAYOUT_FILE = "config"
PRESWITCH_FILE = "preswitch"
POSTSWITCH_FILE = "postswitch"
LOCK_FILE = ".lock"


def covers(available: Fingerprint, required: Fingerprint) -> bool:
    """True if every required identity is present in *available*.

    Identical monitors share an identity, so the check counts occurrences.
    """
    return not missing_from(available, required)


def missing_from(available: Fingerprint, required: Fingerprint) -> list[str]:
    """Required identities not present in *available*, in fingerprint order."""
    have = Counter(available)
    missing = []
    for identity in required:
        if have[identity] > 0:
            have[identity] -= 1
        else:
            missing.append(identity)
    return missing


class ProfileStore:
    """Manages monitor profiles stored as one directory per profile."""

    def __init__(self, directory: Path) -> None:
        self._dir = directory

    @property
    def directory(self) -> Path:
        return self._dir

    def _path_for(self, name: str) -> Path:
        if not is_valid_profile_name(name):
            raise InvalidProfileName(name)
        return self._dir / name

    def lock(self) -> FileLock:
        """Serialize store mutations and switches across processes."""
        self._dir.mkdir(parents=True, exist_ok=True)
        return FileLock(self._dir / LOCK_FILE)

    def save(
        self, name: str, fingerprint: Fingerprint, layout: list[LayoutRecord],
    ) -> Path:
        """Write a profile's fingerprint and layout. Hooks already present are kept."""
        path = self._path_for(name)
        path.mkdir(parents=True, exist_ok=True)
        write_text_pair({
            path / FINGERPRINT_FILE: "".join(f"{i}\n" for i in make_fingerprint(fingerprint)),
            path / LAYOUT_FILE: dump_layout(layout),
        })
        log.info("Saved profile %s to %s", name, path)
        return path

    def load(self, name: str) -> Profile:
        """Load a profile by name."""
        path = self._path_for(name)
        if not path.is_dir():
            raise ProfileNotFound(name)

        fp_text = read_text(path / FINGERPRINT_FILE)
        layout_text = read_text(path / LAYOUT_FILE)
        if fp_text is None or layout_text is None:
            raise CorruptProfile(f"Profile {name} is missing its fingerprint or config file")

        fingerprint = make_fingerprint(
            line.strip() for line in fp_text.splitlines() if line.strip()
        )
        layout = parse_layout(layout_text)
        if not fingerprint or not layout:
            raise CorruptProfile(f"Profile {name} has an empty fingerprint or config file")

        pre, post = path / PRESWITCH_FILE, path / POSTSWITCH_FILE
        return Profile(
            name=name,
            fingerprint=fingerprint,
            layout=layout,
            preswitch=pre if is_executable(pre) else None,
            postswitch=post if is_executable(post) else None,
        )

    def remove(self, name: str) -> None:
        """Delete a profile and everything in its directory."""
        path = self._path_for(name)
        if not path.is_dir():
            raise ProfileNotFound(name)
        shutil.rmtree(path)
        log.info("Removed profile %s", name)

    def names(self) -> list[str]:
        """Return sorted list of complete profile names."""
        if not self._dir.is_dir():
            return []
        names = []
        for p in self._dir.iterdir():
            if not p.is_dir():
                continue
            if not is_valid_profile_name(p.name):
                log.warning("Skipping %s: not a valid profile name", p)
                continue
            missing = [f for f in (FINGERPRINT_FILE, LAYOUT_FILE) if not (p / f).is_file()]
            if missing:
                log.warning("Skipping profile %s: missing %s", p.name, ", ".join(missing))
                continue
            names.append(p.name)
        return sorted(names)

    def profiles(self) -> Iterator[Profile]:
        """Load all valid profiles, in name order."""
        for name in self.names():
            try:
                yield self.load(name)
            except MonswitchError as e:
                log.warning("Skipping profile %s: %s", name, e)

    def list_profiles(
        self, enabled: Fingerprint, connected: Fingerprint,
    ) -> list[ProfileStatus]:
        """Every valid profile with its active/available status."""
        return [
            ProfileStatus(
                name=p.name,
                active=p.fingerprint == enabled,
                available=covers(connected, p.fingerprint),
            )
            for p in self.profiles()
        ]


class ProfileMatcher:
    """Find the stored profile whose fingerprint equals a live one."""

    def __init__(self, store: ProfileStore) -> None:
        self._store = store

    def match(self, fingerprint: Fingerprint) -> str | None:
        if not fingerprint:
            return None
        for profile in self._store.profiles():
            if profile.fingerprint == fingerprint:
                return profile.name
        return None
