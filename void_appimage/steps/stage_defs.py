from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, Dict, List, Tuple

from ..core.model import PipelineContext, Stage
from ..core.profiles import PROFILES
from ..utils.paths import buildlog_dir
from ..utils.subproc import RunResult


def _log(number: int, name: str) -> Path:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return buildlog_dir() / f"stage-{number:02d}-{slug}.log"


def _preflight(ctx: PipelineContext) -> RunResult:
    # Imported lazily: preflight needs Pillow, which the sandbox image lacks.
    from .preflight import preflight_runner

    return preflight_runner(ctx)


def _local_preflight(ctx: PipelineContext) -> RunResult:
    from .preflight import local_preflight_runner

    return local_preflight_runner(ctx)


def _catalog() -> Dict[str, Tuple[str, Callable[[PipelineContext], RunResult]]]:
    from .container import image_runner, prepare_runner as container_prepare_runner, sandbox_runner
    from .descriptors import descriptors_runner
    from .packaging import packaging_runner, prepare_runner
    from .staging import staging_runner

    return {
        "Preflight": ("Check platform, Docker, buildx, appimagetool and icon", _preflight),
        "Prepare": ("Remove stale AppImage, write Dockerfile.build and .dockerignore", container_prepare_runner),
        "Image": ("Build the sandbox image (no cache)", image_runner),
        "Sandbox": ("Stage, describe and package inside the container", sandbox_runner),
        "Local Preflight": ("Check platform, appimagetool and icon", _local_preflight),
        "Local Prepare": ("Remove stale AppImage", prepare_runner),
        "Stage": ("Build the AppDir from the working directory", staging_runner),
        "Descriptors": ("Write desktop entries and AppRun", descriptors_runner),
        "Package": ("Strip the binary and run appimagetool", packaging_runner),
    }


def stages(profile: str) -> List[Stage]:
    catalog = _catalog()
    out: List[Stage] = []
    for number, name in enumerate(PROFILES[profile].include_stages, start=1):
        description, runner = catalog[name]
        out.append(
            Stage(
                number=number,
                name=name,
                description=description,
                log_file=_log(number, name),
                runner=runner,
            )
        )
    return out
