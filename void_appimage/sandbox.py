"""Entry point executed inside the Docker sandbox.

Runs the staging, descriptor and packaging stages against the mounted working
directory. Cleanup and the final report are left to the host.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable, Optional

from .core.config import PackagingConfig
from .core.errors import PackagingError
from .core.model import PipelineContext
from .core.runner import run
from .steps.stage_defs import stages


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="python3 -m void_appimage.sandbox")
    parser.add_argument("--workdir", type=Path, required=True)
    parser.add_argument("--config-json", required=True, help="Serialized PackagingConfig")
    parser.add_argument("--verbose", action="store_true")

    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = PackagingConfig.from_json(args.config_json)
    except PackagingError as exc:
        print(f"Error: {exc}")
        return exc.exit_code

    ctx = PipelineContext(config=config, workdir=args.workdir, verbose=args.verbose)
    return run(stages("sandbox"), ctx, cleanup=None, report=False)


if __name__ == "__main__":
    raise SystemExit(main())
