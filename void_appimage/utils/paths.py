from __future__ import annotations

import os
from pathlib import Path


def package_root() -> Path:
    """Directory that contains the `void_appimage` package (mounted into the sandbox)."""
    return Path(__file__).resolve().parents[2]


def buildlog_dir() -> Path:
    """Return the directory used for stage logs and build summaries.

    Priority:
    - VOID_APPIMAGE_LOG_DIR
    - XDG_CACHE_HOME/void-appimage/buildlog
    - ~/.cache/void-appimage/buildlog
    """

    p = os.environ.get("VOID_APPIMAGE_LOG_DIR")
    if p:
        return Path(p)

    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg) / "void-appimage" / "buildlog"

    return Path.home() / ".cache" / "void-appimage" / "buildlog"


def docker_plugins_dir() -> Path:
    """Directory where the Docker CLI looks for plugins such as buildx."""
    p = os.environ.get("DOCKER_CONFIG")
    if p:
        return Path(p) / "cli-plugins"
    return Path.home() / ".docker" / "cli-plugins"
