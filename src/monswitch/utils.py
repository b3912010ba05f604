"""Utility helpers: XDG paths, file I/O, app configuration."""

from __future__ import annotations

import json
import os
from pathlib import Path


APP_NAME = "monswitch"

CONFIG_DIR_ENV = "MONSWITCH_CONFIG_DIR"
EDID_DECODER_ENV = "MONSWITCH_EDID_DECODER"


def config_dir(override: str | Path | None = None) -> Path:
    """Return the configuration root, creating it if needed.

    Resolution order: *override*, ``$MONSWITCH_CONFIG_DIR``,
    ``$XDG_CONFIG_HOME/monswitch``.
    """
    if override:
        d = Path(override)
    elif os.environ.get(CONFIG_DIR_ENV):
        d = Path(os.environ[CONFIG_DIR_ENV])
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
        d = base / APP_NAME
    d.mkdir(parents=True, exist_ok=True)
    return d


def profiles_dir(root: Path) -> Path:
    """Return the profiles subdirectory of *root*."""
    d = root / "profiles"
    d.mkdir(parents=True, exist_ok=True)
    return d


def read_json(path: Path) -> dict | list | None:
    """Read and parse a JSON file, returning None on failure."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None


def read_text(path: Path) -> str | None:
    """Read a text file, returning None if it does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def write_text(path: Path, text: str) -> None:
    """Write text to a file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def write_text_pair(files: dict[Path, str]) -> None:
    """Write several files so that each one is replaced as a whole.

    Every file is staged as ``<name>.tmp`` first; the renames only start once
    all staged copies are on disk.
    """
    staged: list[tuple[Path, Path]] = []
    try:
        for path, text in files.items():
            tmp = path.with_name(path.name + ".tmp")
            staged.append((tmp, path))
            write_text(tmp, text)
        for tmp, path in staged:
            os.replace(tmp, path)
    except OSError:
        for tmp, _ in staged:
            tmp.unlink(missing_ok=True)
        raise


def is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def _settings_path(root: Path) -> Path:
    """Return the path to the global app settings file."""
    return root / "settings.json"


def load_app_settings(root: Path) -> dict:
    """Load global application settings."""
    data = read_json(_settings_path(root))
    return data if isinstance(data, dict) else {}
