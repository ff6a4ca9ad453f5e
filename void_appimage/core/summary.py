from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class StageSummary:
    number: int
    name: str
    status: str  # success|failure
    exit_code: int
    duration_s: float
    message: str = ""


@dataclass(frozen=True)
class BuildSummary:
    passed: bool
    total_duration_s: float
    stages: List[StageSummary]
    artifact: Optional[str] = None
    cleaned_up: bool = False


def write_summary(buildlog_dir: Path, summary: BuildSummary) -> None:
    buildlog_dir.mkdir(parents=True, exist_ok=True)

    json_path = buildlog_dir / "build-summary.json"
    md_path = buildlog_dir / "build-summary.md"

    json_path.write_text(json.dumps(asdict(summary), indent=2) + "\n", encoding="utf-8")

    lines: List[str] = []
    lines.append("# AppImage build summary")
    lines.append("")
    lines.append(f"- Passed: {'yes' if summary.passed else 'no'}")
    lines.append(f"- Duration: {summary.total_duration_s:.1f}s")
    lines.append(f"- Artifact: {summary.artifact or '(none)'}")
    lines.append(f"- Cleaned up: {'yes' if summary.cleaned_up else 'no'}")
    lines.append("")
    lines.append("| Stage | Name | Status | Duration | Exit |")
    lines.append("|---:|---|---|---:|---:|")

    for s in summary.stages:
        lines.append(
            f"| {s.number} | {s.name} | {s.status} | {s.duration_s:.1f}s | {s.exit_code} |"
        )

    md_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
