from __future__ import annotations

import shutil
import stat
import urllib.error
import urllib.request
from pathlib import Path

from ..core.errors import FetchError


def download(url: str, dst: Path) -> None:
    dst.parent.mkdir(parents=True, exist_ok=True)

    try:
        with urllib.request.urlopen(url) as resp, dst.open("wb") as f:
            shutil.copyfileobj(resp, f)
    except (urllib.error.URLError, OSError) as exc:
        # Never leave a truncated tool behind; the next run would trust it.
        if dst.exists():
            dst.unlink()
        raise FetchError(f"Failed to download {url}: {exc}") from exc


def chmod_x(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def remove_path(path: Path) -> bool:
    """Remove a file, symlink or directory tree. Returns True if something was removed."""
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    return False
