from __future__ import annotations

import io
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional

from .errors import PackagingError
from .model import PipelineContext, Stage, StageOutcome
from .summary import BuildSummary, StageSummary, write_summary
from ..utils.paths import buildlog_dir

logger = logging.getLogger(__name__)

_PACKAGE_LOGGER = "void_appimage"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _write_log(stage: Stage, command: str, stdout: str, stderr: str, exit_code: int, duration_s: float) -> None:
    stage.log_file.parent.mkdir(parents=True, exist_ok=True)

    body = (
        f"=== {stage.name} - {_timestamp()} ===\n"
        f"Command: {command}\n"
        f"Duration: {duration_s:.1f}s\n"
        f"Exit Code: {exit_code}\n"
        f"\n=== STDOUT ===\n{stdout.rstrip() or '(empty)'}\n"
        f"\n=== STDERR ===\n{stderr.rstrip() or '(empty)'}\n"
        "\n=== END ===\n"
    )
    stage.log_file.write_text(body, encoding="utf-8")


@contextmanager
def _capture_logs(*, verbose: bool) -> Iterator[io.StringIO]:
    """Collect package log records emitted while a stage runs."""

    buf = io.StringIO()
    handler = logging.StreamHandler(buf)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    pkg_logger = logging.getLogger(_PACKAGE_LOGGER)
    previous_level = pkg_logger.level
    wanted = logging.DEBUG if verbose else logging.INFO
    if pkg_logger.getEffectiveLevel() > wanted:
        pkg_logger.setLevel(wanted)
    pkg_logger.addHandler(handler)
    try:
        yield buf
    finally:
        pkg_logger.removeHandler(handler)
        pkg_logger.setLevel(previous_level)


def run_stage(stage: Stage, ctx: PipelineContext) -> StageOutcome:
    start = time.time()

    command = f"(internal) {stage.name.lower()}"
    stdout = ""
    stderr = ""
    exit_code = 0
    message = ""
    artifact: Optional[str] = None

    with _capture_logs(verbose=ctx.verbose) as captured:
        try:
            result = stage.runner(ctx)
        except PackagingError as exc:
            logger.error("%s", exc)
            exit_code = exc.exit_code or 1
            message = str(exc)
            stderr = getattr(exc, "output", "") or ""
        except OSError as exc:
            logger.error("%s: %s", stage.name, exc)
            exit_code = 1
            message = f"{stage.name} failed: {exc}"
        else:
            command = result.command_str
            stdout = result.stdout
            stderr = result.stderr
            exit_code = result.exit_code
            artifact = result.artifact

    duration = time.time() - start
    stdout = captured.getvalue() + stdout

    _write_log(stage, command, stdout, stderr, exit_code, duration)

    status = "OK" if exit_code == 0 else "FAIL"
    print(f"[{stage.number}] {stage.name}: {status} ({duration:.1f}s)")

    if ctx.verbose and stdout.strip():
        print(stdout.rstrip())
    if exit_code != 0:
        if message:
            print(message)
        if stderr.strip():
            print(stderr.rstrip())

    return StageOutcome(
        status="success" if exit_code == 0 else "failure",
        exit_code=exit_code,
        duration_s=duration,
        message=message,
        artifact=artifact,
    )


def run(
    stages: List[Stage],
    ctx: PipelineContext,
    *,
    cleanup: Optional[Callable[[PipelineContext], None]] = None,
    report: bool = True,
) -> int:
    """Run *stages* in order, stopping at the first failure.

    *cleanup* runs after the last stage on success, and after the failing stage
    when `cleanup_on_failure` is enabled in the config.
    """

    print(f"Void AppImage builder (logs: {buildlog_dir()})")

    started = time.time()
    summaries: List[StageSummary] = []
    failed: Optional[StageOutcome] = None

    for stage in stages:
        outcome = run_stage(stage, ctx)

        summaries.append(
            StageSummary(
                number=stage.number,
                name=stage.name,
                status=outcome.status,
                exit_code=outcome.exit_code,
                duration_s=outcome.duration_s,
                message=outcome.message,
            )
        )

        if outcome.artifact:
            ctx.artifact = ctx.workdir / outcome.artifact

        if outcome.status == "failure":
            print(f"Stopped on failure in stage {stage.number}: {stage.name}")
            failed = outcome
            break

    cleaned_up = False
    if cleanup is not None and (failed is None or ctx.config.cleanup_on_failure):
        cleanup(ctx)
        cleaned_up = True
    elif cleanup is not None:
        logger.warning("Leaving intermediate files in place after failure: %s", ", ".join(ctx.config.transient_files()))

    write_summary(
        buildlog_dir(),
        BuildSummary(
            passed=failed is None,
            total_duration_s=time.time() - started,
            stages=summaries,
            artifact=ctx.artifact.name if ctx.artifact is not None else None,
            cleaned_up=cleaned_up,
        ),
    )

    if failed is not None:
        return failed.exit_code

    if report and ctx.artifact is not None:
        print(f"AppImage creation complete! Your AppImage is: {ctx.artifact.name}")

    return 0
