from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..utils.subproc import RunResult
from .config import PackagingConfig


@dataclass
class PipelineContext:
    config: PackagingConfig
    workdir: Path
    verbose: bool = False
    # Host OS identifier; None means "ask platform.system()".
    system: Optional[str] = None
    artifact: Optional[Path] = None
    # Cleanup removes appimagetool only when one of these is set.
    preflight_passed: bool = False
    fetched_appimagetool: bool = False

    @property
    def appdir(self) -> Path:
        return self.workdir / self.config.appdir_name

    @property
    def artifact_path(self) -> Path:
        return self.workdir / self.config.artifact_name

    @property
    def appimagetool(self) -> Path:
        return self.workdir / self.config.appimagetool_file


@dataclass(frozen=True)
class Stage:
    number: int
    name: str
    description: str
    log_file: Path
    runner: Callable[[PipelineContext], RunResult]


@dataclass(frozen=True)
class StageOutcome:
    status: str  # success|failure
    exit_code: int
    duration_s: float
    message: str = ""
    artifact: Optional[str] = None
