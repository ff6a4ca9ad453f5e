from __future__ import annotations

import logging
import shutil
import stat
from pathlib import Path
from typing import List

from ..core.errors import PackagingError
from ..core.model import PipelineContext
from ..utils.subproc import RunResult, run, run_checked
from .common import remove_path
from .staging import StagingLayout

logger = logging.getLogger(__name__)


def remove_stale_artifact(path: Path) -> bool:
    """Delete an AppImage left by a previous run so a fresh one is unambiguous."""
    try:
        removed = remove_path(path)
    except OSError as exc:
        raise PackagingError(f"Cannot remove previous artifact {path}: {exc}") from exc
    if removed:
        logger.info("Removed previous artifact %s", path.name)
    return removed


def strip_binary(binary: Path) -> bool:
    """Strip unneeded symbols from *binary*. Best effort: returns False when skipped."""

    strip = shutil.which("strip")
    if strip is None:
        logger.warning("strip not found; packaging %s unstripped", binary.name)
        return False
    if not binary.is_file():
        logger.warning("Binary to strip does not exist: %s", binary)
        return False

    result = run([strip, "--strip-unneeded", str(binary)], cwd=str(binary.parent))
    if result.exit_code != 0:
        logger.warning("strip failed (exit %d): %s", result.exit_code, result.stderr.strip())
        return False
    return True


def list_tree(root: Path) -> List[str]:
    """Describe the top level of *root* the way `ls -la` would, for the log."""

    lines: List[str] = []
    for p in sorted(root.iterdir()):
        st = p.lstat()
        lines.append(f"{stat.filemode(st.st_mode)} {st.st_size:>10} {p.name}")
    for line in lines:
        logger.info(line)
    return lines


def build_appimage(tool: Path, appdir: Path, out: Path, *, arch: str, cwd: Path) -> Path:
    if not tool.exists():
        raise PackagingError(f"appimagetool not found: {tool}")

    env = {"ARCH": arch, "APPIMAGE_EXTRACT_AND_RUN": "1"}
    run_checked([str(tool), "-n", str(appdir), str(out)], cwd=str(cwd), env_overrides=env)

    if not out.exists():
        raise PackagingError(f"AppImage build did not produce: {out}")

    logger.info("Built AppImage: %s", out)
    return out


def prepare_runner(ctx: PipelineContext) -> RunResult:
    remove_stale_artifact(ctx.artifact_path)
    return RunResult(command_str=f"rm -f {ctx.config.artifact_name}", stdout="", stderr="", exit_code=0)


def packaging_runner(ctx: PipelineContext) -> RunResult:
    layout = StagingLayout(root=ctx.appdir)
    if not layout.root.is_dir():
        raise PackagingError(f"Staging tree does not exist: {layout.root}")

    strip_binary(layout.bin_dir / ctx.config.binary_name)
    list_tree(layout.root)

    out = build_appimage(
        ctx.appimagetool,
        layout.root,
        ctx.artifact_path,
        arch=ctx.config.arch,
        cwd=ctx.workdir,
    )
    return RunResult(
        command_str=f"ARCH={ctx.config.arch} ./{ctx.config.appimagetool_file} -n {ctx.config.appdir_name} {out.name}",
        stdout="",
        stderr="",
        exit_code=0,
        artifact=out.name,
    )


def cleanup(ctx: PipelineContext) -> None:
    """Remove the staging tree and transient support files from the working directory."""

    keep_tool = not (ctx.preflight_passed or ctx.fetched_appimagetool)

    for name in ctx.config.transient_files():
        if keep_tool and name == ctx.config.appimagetool_file:
            logger.info("Keeping %s; this run stopped before using it", name)
            continue
        try:
            removed = remove_path(ctx.workdir / name)
        except OSError as exc:
            logger.warning("Could not remove %s: %s", name, exc)
            continue
        if removed:
            logger.info("Removed %s", name)
