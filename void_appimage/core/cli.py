from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable

from .config import load_config
from .errors import PackagingError
from .model import PipelineContext
from .profiles import DEFAULT_PROFILE, PROFILES
from .runner import run
from ..steps.packaging import cleanup
from ..steps.stage_defs import stages as profile_stages


def _list_profiles() -> None:
    print("Available profiles:")
    for name, profile in sorted(PROFILES.items()):
        print(f"  {name:<8} - {profile.description}")


def _list_stages(profile: str) -> None:
    for s in profile_stages(profile):
        print(f"  {s.number:>2}  {s.name:<16} - {s.description}")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="void-appimage",
        description="Package the Void build output in the working directory into an AppImage.",
    )
    parser.add_argument("--profile", choices=sorted(p for p in PROFILES if p != "sandbox"), default=DEFAULT_PROFILE,
                        help="Stage profile to run (default: %(default)s)")
    parser.add_argument("--workdir", type=Path, default=None, help="Build output directory (default: current directory)")
    parser.add_argument("--config", type=Path, default=None, help="JSON file overriding packaging defaults")
    parser.add_argument("--literal-url-handler", action="store_true",
                        help="Write the URL-handler entry in truncate mode (only its last line is kept)")
    parser.add_argument("--keep-on-failure", action="store_true",
                        help="Do not remove intermediate files when a stage fails")
    parser.add_argument("--list-profiles", action="store_true", help="List profiles and exit")
    parser.add_argument("--list-stages", action="store_true", help="List the stages of the selected profile and exit")
    parser.add_argument("--verbose", action="store_true", help="Print captured stage output")

    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.list_profiles:
        _list_profiles()
        return 0

    if args.list_stages:
        _list_stages(args.profile)
        return 0

    _configure_logging(args.verbose)

    overrides = {}
    if args.literal_url_handler:
        overrides["url_handler_mode"] = "truncate"
    if args.keep_on_failure:
        overrides["cleanup_on_failure"] = False

    try:
        config = load_config(args.config, overrides=overrides)
    except PackagingError as exc:
        print(f"Error: {exc}")
        return exc.exit_code

    workdir = (args.workdir or Path.cwd()).resolve()
    ctx = PipelineContext(config=config, workdir=workdir, verbose=args.verbose)

    selected = profile_stages(args.profile)
    if not selected:
        print("No stages selected.")
        return 2

    return run(selected, ctx, cleanup=cleanup)
