from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class Profile:
    name: str
    description: str
    include_stages: List[str]  # by stage name, in run order


PROFILES: Dict[str, Profile] = {
    "docker": Profile(
        name="docker",
        description="Package inside a Docker sandbox (default)",
        include_stages=["Preflight", "Prepare", "Image", "Sandbox"],
    ),
    "local": Profile(
        name="local",
        description="Package directly on a Linux host, without Docker",
        include_stages=["Local Preflight", "Local Prepare", "Stage", "Descriptors", "Package"],
    ),
    "sandbox": Profile(
        name="sandbox",
        description="Stages executed inside the container (internal)",
        include_stages=["Stage", "Descriptors", "Package"],
    ),
}

DEFAULT_PROFILE = "docker"
