from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from ..core.errors import ToolInvocationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunResult:
    command_str: str
    stdout: str
    stderr: str
    exit_code: int
    artifact: Optional[str] = None


def command_string(args: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(p)) for p in args)


def run(
    args: Sequence[str],
    *,
    cwd: str,
    env_overrides: Mapping[str, str] | None = None,
) -> RunResult:
    command_str = command_string(args)
    env = {**os.environ, **(env_overrides or {})}

    logger.debug("Running: %s (cwd=%s)", command_str, cwd)
    try:
        proc = subprocess.run(
            [str(a) for a in args],
            cwd=cwd,
            text=True,
            capture_output=True,
            env=env,
        )
    except FileNotFoundError as exc:
        # Same convention as the shell: command not found is exit 127.
        return RunResult(command_str=command_str, stdout="", stderr=f"{exc}\n", exit_code=127)

    return RunResult(
        command_str=command_str,
        stdout=proc.stdout,
        stderr=proc.stderr,
        exit_code=proc.returncode,
    )


def run_checked(
    args: Sequence[str],
    *,
    cwd: str,
    env_overrides: Mapping[str, str] | None = None,
) -> RunResult:
    result = run(args, cwd=cwd, env_overrides=env_overrides)
    for stream in (result.stdout, result.stderr):
        if stream.strip():
            logger.info(stream.rstrip())
    if result.exit_code != 0:
        raise ToolInvocationError(result.command_str, result.exit_code, output=result.stderr)
    return result
