from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List

from ..core.errors import StagingError
from ..core.model import PipelineContext
from ..utils.subproc import RunResult
from .common import remove_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagingLayout:
    root: Path

    @property
    def bin_dir(self) -> Path:
        return self.root / "usr" / "bin"

    @property
    def lib_dir(self) -> Path:
        return self.root / "usr" / "lib"

    @property
    def applications_dir(self) -> Path:
        return self.root / "usr" / "share" / "applications"

    def skeleton(self) -> List[Path]:
        return [self.bin_dir, self.lib_dir, self.applications_dir]


def reset_layout(root: Path) -> StagingLayout:
    """Delete any previous AppDir and create an empty skeleton."""

    layout = StagingLayout(root=root)
    try:
        if remove_path(root):
            logger.debug("Removed previous staging tree %s", root)

        for d in layout.skeleton():
            d.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StagingError(f"Failed to reset staging tree {root}: {exc}") from exc
    return layout


def _top_level_entries(workdir: Path, exclude: Path) -> List[Path]:
    # Sorted so repeated runs copy in the same order.
    return sorted(p for p in workdir.iterdir() if p.name != exclude.name)


def copy_build_output(workdir: Path, layout: StagingLayout) -> List[str]:
    """Copy every top-level entry of *workdir* (except the AppDir) into usr/bin.

    No manifest or filter is applied; whatever sits in the working directory
    ends up in the package.
    """

    copied: List[str] = []
    for entry in _top_level_entries(workdir, layout.root):
        dst = layout.bin_dir / entry.name
        try:
            if entry.is_dir() and not entry.is_symlink():
                shutil.copytree(entry, dst, symlinks=True)
            else:
                shutil.copy2(entry, dst, follow_symlinks=False)
        except (OSError, shutil.Error) as exc:
            raise StagingError(f"Failed to copy {entry} -> {dst}: {exc}") from exc
        copied.append(entry.name)

    logger.info("Copied %d top-level entries into %s", len(copied), layout.bin_dir)
    return copied


def copy_icon(workdir: Path, layout: StagingLayout, icon_file: str) -> Path:
    src = workdir / icon_file
    dst = layout.root / src.name
    try:
        shutil.copy2(src, dst)
    except OSError as exc:
        raise StagingError(f"Failed to copy icon {src}: {exc}") from exc
    return dst


def stage_appdir(workdir: Path, root: Path, icon_file: str) -> StagingLayout:
    if not workdir.is_dir():
        raise StagingError(f"Working directory does not exist: {workdir}")

    layout = reset_layout(root)
    copy_build_output(workdir, layout)
    copy_icon(workdir, layout, icon_file)
    return layout


def staging_runner(ctx: PipelineContext) -> RunResult:
    layout = stage_appdir(ctx.workdir, ctx.appdir, ctx.config.icon_file)
    return RunResult(
        command_str=f"(internal) stage {os.path.relpath(layout.root, ctx.workdir)}",
        stdout="",
        stderr="",
        exit_code=0,
    )
