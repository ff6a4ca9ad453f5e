"""Docker sandbox: build descriptor, ignore list, image build and the sandboxed run.

The staging, descriptor and packaging stages run inside the container through
`python3 -m void_appimage.sandbox`, with this package mounted read-only.
"""

from __future__ import annotations

import logging
import os
from typing import List

from ..core.errors import PackagingError
from ..core.model import PipelineContext
from ..utils.paths import package_root
from ..utils.subproc import RunResult, run
from .common import write_text
from .packaging import remove_stale_artifact

logger = logging.getLogger(__name__)

CONTAINER_WORKDIR = "/app"
CONTAINER_LOG_DIR = "/tmp/void-appimage-buildlog"


def dockerfile_text(ctx: PipelineContext) -> str:
    cfg = ctx.config
    packages = " \\\n".join(f"    {p}" for p in cfg.apt_packages)
    return (
        "# syntax=docker/dockerfile:1\n"
        f"FROM {cfg.base_image}\n"
        "\n"
        "ENV DEBIAN_FRONTEND=noninteractive\n"
        "\n"
        "# Install required dependencies\n"
        "RUN apt-get update && apt-get install -y \\\n"
        f"{packages} \\\n"
        "    && rm -rf /var/lib/apt/lists/*\n"
        "\n"
        f"WORKDIR {CONTAINER_WORKDIR}\n"
    )


def dockerignore_text(ctx: PipelineContext) -> str:
    return "\n".join(ctx.config.dockerignore_patterns) + "\n"


def write_build_files(ctx: PipelineContext) -> None:
    try:
        logger.info("Creating build Dockerfile...")
        write_text(ctx.workdir / ctx.config.dockerfile_name, dockerfile_text(ctx))
        logger.info("Creating .dockerignore file...")
        write_text(ctx.workdir / ctx.config.dockerignore_name, dockerignore_text(ctx))
    except OSError as exc:
        raise PackagingError(f"Failed to write Docker build files: {exc}") from exc


def build_env(ctx: PipelineContext) -> dict:
    return {"DOCKER_BUILDKIT": "1"} if ctx.config.buildkit else {}


def image_build_command(ctx: PipelineContext) -> List[str]:
    return [
        "docker",
        "build",
        "--no-cache",
        "-t",
        ctx.config.image_name,
        "-f",
        ctx.config.dockerfile_name,
        ".",
    ]


def sandbox_command(ctx: PipelineContext) -> List[str]:
    cfg = ctx.config
    args = [
        "docker",
        "run",
        "--rm",
        "--privileged",
        "-v",
        f"{ctx.workdir.resolve()}:{CONTAINER_WORKDIR}",
        "-v",
        f"{package_root()}:{cfg.sandbox_mount}:ro",
        "-e",
        f"PYTHONPATH={cfg.sandbox_mount}",
        "-e",
        f"VOID_APPIMAGE_LOG_DIR={CONTAINER_LOG_DIR}",
        "-w",
        CONTAINER_WORKDIR,
    ]
    # Keep files written into the mounted workdir owned by the invoking user.
    if hasattr(os, "getuid"):
        args += ["--user", f"{os.getuid()}:{os.getgid()}"]
    args += [
        cfg.image_name,
        "python3",
        "-m",
        "void_appimage.sandbox",
        "--workdir",
        CONTAINER_WORKDIR,
        "--config-json",
        cfg.to_json(),
    ]
    if ctx.verbose:
        args.append("--verbose")
    return args


def prepare_runner(ctx: PipelineContext) -> RunResult:
    remove_stale_artifact(ctx.artifact_path)
    write_build_files(ctx)
    return RunResult(
        command_str=f"(internal) write {ctx.config.dockerfile_name} {ctx.config.dockerignore_name}",
        stdout="",
        stderr="",
        exit_code=0,
    )


def image_runner(ctx: PipelineContext) -> RunResult:
    logger.info("Building Docker image (no cache)...")
    return run(image_build_command(ctx), cwd=str(ctx.workdir), env_overrides=build_env(ctx))


def sandbox_runner(ctx: PipelineContext) -> RunResult:
    logger.info("Creating AppImage...")
    result = run(sandbox_command(ctx), cwd=str(ctx.workdir))
    if result.exit_code != 0:
        return result

    if not ctx.artifact_path.exists():
        raise PackagingError(f"Sandbox finished but did not produce {ctx.artifact_path}")

    return RunResult(
        command_str=result.command_str,
        stdout=result.stdout,
        stderr=result.stderr,
        exit_code=0,
        artifact=ctx.artifact_path.name,
    )
