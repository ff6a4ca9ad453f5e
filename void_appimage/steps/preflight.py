"""Environment preflight.

Checks the host before anything is written to the working directory: platform,
Docker availability, the buildx plugin, the appimagetool binary and the icon.
Each check raises on the first problem; nothing is retried.
"""

from __future__ import annotations

import logging
import platform
import shutil
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..core.errors import EnvironmentCheckError
from ..core.model import PipelineContext
from ..utils.paths import docker_plugins_dir
from ..utils.subproc import RunResult, run
from .common import chmod_x, download

logger = logging.getLogger(__name__)

LINUX = "Linux"
MACOS = "Darwin"

DOCKER_DESKTOP_URL = "https://www.docker.com/products/docker-desktop"

_CPU_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


def resolve_platform(system: str | None = None) -> str:
    name = platform.system() if system is None else system

    if name == MACOS:
        logger.info("Running on macOS. Note that the AppImage created will only work on Linux systems.")
    elif name == LINUX:
        logger.info("Running on Linux. Proceeding with AppImage creation...")
    else:
        raise EnvironmentCheckError(
            f"This script is intended to run on macOS or Linux. Current platform: {name}"
        )
    return name


def require_docker_installed() -> None:
    if shutil.which("docker") is None:
        raise EnvironmentCheckError(
            f"Docker Desktop for Mac is not installed. Please install it from {DOCKER_DESKTOP_URL}"
        )


def check_docker_running(workdir: Path) -> None:
    result = run(["docker", "info"], cwd=str(workdir))
    if result.exit_code != 0:
        raise EnvironmentCheckError("Docker is not running. Please start Docker first.")


def _buildx_target(system: str) -> tuple[str, str]:
    cpu = _CPU_ALIASES.get(platform.machine().lower(), "amd64")
    return system.lower(), cpu


def ensure_buildx(ctx: PipelineContext, system: str) -> Path | None:
    """Install the pinned buildx plugin when `docker buildx` is unavailable.

    Returns the installed plugin path, or None when buildx was already present.
    """

    if run(["docker", "buildx", "version"], cwd=str(ctx.workdir)).exit_code == 0:
        return None

    os_name, cpu = _buildx_target(system)
    url = ctx.config.buildx_url(os_name, cpu)
    dst = docker_plugins_dir() / "docker-buildx"

    logger.info("Installing Docker Buildx %s -> %s", ctx.config.buildx_version, dst)
    download(url, dst)
    chmod_x(dst)
    return dst


def ensure_appimagetool(ctx: PipelineContext) -> Path:
    tool = ctx.appimagetool
    if not tool.exists():
        logger.info("Downloading appimagetool...")
        download(ctx.config.appimagetool_url, tool)
        chmod_x(tool)
        ctx.fetched_appimagetool = True
    return tool


def check_icon(ctx: PipelineContext) -> Path:
    icon = ctx.workdir / ctx.config.icon_file
    if not icon.is_file():
        raise EnvironmentCheckError(f"Missing icon: {icon}")

    try:
        with Image.open(icon) as img:
            fmt = img.format
            size = img.size
            img.verify()
    except (UnidentifiedImageError, OSError) as exc:
        raise EnvironmentCheckError(f"Icon is not a readable image: {icon} ({exc})") from exc

    if fmt != "PNG":
        raise EnvironmentCheckError(f"Icon must be a PNG file, got {fmt}: {icon}")
    if size[0] != size[1]:
        logger.warning("Icon %s is not square (%dx%d); desktop environments may distort it", icon.name, *size)
    return icon


def preflight_runner(ctx: PipelineContext) -> RunResult:
    system = resolve_platform(ctx.system)
    if system == MACOS:
        require_docker_installed()

    check_docker_running(ctx.workdir)
    ensure_buildx(ctx, system)
    ensure_appimagetool(ctx)
    check_icon(ctx)
    ctx.preflight_passed = True

    return RunResult(command_str="(internal) preflight", stdout="", stderr="", exit_code=0)


def local_preflight_runner(ctx: PipelineContext) -> RunResult:
    """Preflight for packaging directly on the host, without the container."""

    system = resolve_platform(ctx.system)
    if system != LINUX:
        raise EnvironmentCheckError(
            f"Packaging without Docker requires Linux. Current platform: {system}"
        )

    ensure_appimagetool(ctx)
    check_icon(ctx)
    ctx.preflight_passed = True

    return RunResult(command_str="(internal) preflight (local)", stdout="", stderr="", exit_code=0)
