"""Command-line entry point."""

from __future__ import annotations

import argparse
import contextlib
import logging
import sys
from pathlib import Path

from . import __version__
from .codec import format_record
from .daemon import HotplugWatcher
from .errors import MonswitchError
from .hooks import HookSet
from .identity import FingerprintExtractor, IdentityReader, decoder_from_settings
from .profile_manager import ProfileStore
from .switcher import SwitchController
from .utils import config_dir, load_app_settings, profiles_dir
from .xrandr import XrandrBackend

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [monswitch] %(levelname)s %(message)s"

# Commands that change the store or the displays run under the store lock.
LOCKED_COMMANDS = {"save", "load", "auto", "remove"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monswitch",
        description="Save and restore multi-monitor layouts keyed by the connected monitors.",
    )
    parser.add_argument("--config-dir",
                        type=Path,
                        default=None,
                        help="configuration root (default: $XDG_CONFIG_HOME/monswitch)")
    parser.add_argument("-v",
                        "--verbose",
                        action="store_true",
                        help="debug logging")
    parser.add_argument("--version",
                        action="version",
                        version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.add_parser("save", help="save the current layout as a profile").add_argument("name")
    sub.add_parser("load", help="switch to a profile").add_argument("name")
    sub.add_parser("auto", help="switch to the profile matching the connected monitors")
    sub.add_parser("show", help="print a stored profile").add_argument("name")
    sub.add_parser("list", help="list profiles and their status")
    sub.add_parser("remove", aliases=["rm"], help="delete a profile").add_argument("name")
    sub.add_parser("watch", help="load matching profiles on monitor hotplug")
    sub.add_parser("help", help="show this help")
    return parser


def _controller(root: Path, settings: dict) -> SwitchController:
    return SwitchController(
        store=ProfileStore(profiles_dir(root)),
        extractor=FingerprintExtractor(IdentityReader(decoder_from_settings(settings))),
        backend=XrandrBackend(settings.get("xrandr", "xrandr")),
        hooks=HookSet.from_directory(root),
    )


def _show(store: ProfileStore, name: str) -> None:
    profile = store.load(name)
    print(f"Profile: {profile.name}")
    print("Fingerprint:")
    for identity in profile.fingerprint:
        print(f"  {identity}")
    print("Layout:")
    for record in profile.layout:
        print(f"  {format_record(record)}")
    hooks = [p.name for p in (profile.preswitch, profile.postswitch) if p is not None]
    if hooks:
        print(f"Hooks: {' '.join(hooks)}")


def run(args: argparse.Namespace) -> None:
    root = config_dir(args.config_dir)
    settings = load_app_settings(root)
    controller = _controller(root, settings)
    store = controller.store
    use_lock = settings.get("lock", True)

    command = "remove" if args.command == "rm" else args.command
    lock = store.lock() if use_lock and command in LOCKED_COMMANDS else contextlib.nullcontext()
    with lock:
        if command == "save":
            path = controller.capture(args.name)
            print(f"Saved profile {args.name} ({path})")
        elif command == "load":
            controller.load(args.name)
        elif command == "auto":
            controller.auto()
        elif command == "show":
            _show(store, args.name)
        elif command == "list":
            for status in controller.statuses():
                print(f"{status.name} ({status.label})" if status.label else status.name)
        elif command == "remove":
            store.remove(args.name)
        elif command == "watch":
            HotplugWatcher(
                controller,
                lock=store.lock if use_lock else contextlib.nullcontext,
            ).run()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on usage errors; every failure exits 1.
        return 1 if e.code else 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )

    if args.command in (None, "help"):
        parser.print_help()
        return 0

    try:
        run(args)
    except MonswitchError as e:
        log.error("%s", e)
        return e.exit_code
    except KeyboardInterrupt:
        return 1
    return 0
