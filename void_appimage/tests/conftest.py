from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest
from PIL import Image

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)


# Safety default: during pytest, keep stage logs out of the user's cache dir
# and ignore any personal packaging config.
os.environ.setdefault(
    "VOID_APPIMAGE_LOG_DIR",
    tempfile.mkdtemp(prefix="void-appimage-test-logs-"),
)
os.environ.pop("VOID_APPIMAGE_CONFIG", None)


FAKE_APPIMAGETOOL = """#!/bin/sh
# Fake appimagetool: appimagetool -n <appdir> <out>
[ -d "$2" ] || exit 3
printf 'fake-appimage:%s\\n' "$ARCH" > "$3"
"""


def write_png(path: Path, size: tuple = (64, 64)) -> Path:
    Image.new("RGBA", size, (40, 90, 200, 255)).save(path, format="PNG")
    return path


@pytest.fixture
def config():
    from void_appimage.core.config import load_config

    return load_config()


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """A build output directory with a fake executable and the icon."""
    wd = tmp_path / "build"
    wd.mkdir()

    binary = wd / "void"
    binary.write_text("#!/bin/sh\necho void\n", encoding="utf-8")
    binary.chmod(0o755)

    write_png(wd / "void.png")
    return wd


@pytest.fixture
def fake_appimagetool():
    def _install(wd: Path, *, script: str = FAKE_APPIMAGETOOL) -> Path:
        tool = wd / "appimagetool"
        tool.write_text(script, encoding="utf-8")
        tool.chmod(0o755)
        return tool

    return _install


@pytest.fixture
def ctx_factory(config):
    from void_appimage.core.model import PipelineContext

    def _make(wd: Path, *, cfg=None, system: str | None = "Linux", verbose: bool = False):
        return PipelineContext(config=cfg or config, workdir=wd, verbose=verbose, system=system)

    return _make
