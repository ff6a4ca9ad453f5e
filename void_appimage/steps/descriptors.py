"""Desktop entries and the AppRun launcher.

Desktop entries are built as immutable records and rendered once; the file on
disk is never assembled line by line from shell fragments. The url-handler
entry can still be written in the historical "truncate" mode, where every line
replaces the file and only the last one survives.
"""

from __future__ import annotations

import configparser
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.config import PackagingConfig
from ..core.errors import DescriptorError
from ..core.model import PipelineContext
from ..utils.subproc import RunResult
from .common import chmod_x, write_text
from .staging import StagingLayout

logger = logging.getLogger(__name__)

MAIN_GROUP = "Desktop Entry"
ACTION_GROUP_PREFIX = "Desktop Action "
REQUIRED_KEYS = ("Name", "Exec", "Type")

NEW_WINDOW_ACTION = "new-empty-window"

TREE_MODE = 0o755


@dataclass(frozen=True)
class DesktopGroup:
    header: str
    entries: Tuple[Tuple[str, str], ...]

    def get(self, key: str) -> Optional[str]:
        for k, v in self.entries:
            if k == key:
                return v
        return None

    def lines(self) -> List[str]:
        return [f"[{self.header}]"] + [f"{k}={v}" for k, v in self.entries]


@dataclass(frozen=True)
class DesktopEntry:
    filename: str
    groups: Tuple[DesktopGroup, ...]

    @property
    def main(self) -> DesktopGroup:
        return self.groups[0]

    def group(self, header: str) -> Optional[DesktopGroup]:
        for g in self.groups:
            if g.header == header:
                return g
        return None

    def actions(self) -> List[str]:
        raw = self.main.get("Actions") or ""
        return [a for a in raw.split(";") if a]

    def validate(self) -> None:
        if not self.groups or self.main.header != MAIN_GROUP:
            raise DescriptorError(f"{self.filename}: first group must be [{MAIN_GROUP}]")

        missing = [k for k in REQUIRED_KEYS if not self.main.get(k)]
        if missing:
            raise DescriptorError(f"{self.filename}: missing required keys: {', '.join(missing)}")

        for action in self.actions():
            group = self.group(ACTION_GROUP_PREFIX + action)
            if group is None:
                raise DescriptorError(f"{self.filename}: action {action!r} has no [{ACTION_GROUP_PREFIX}{action}] group")
            if not group.get("Name"):
                raise DescriptorError(f"{self.filename}: action {action!r} has no Name")

    def lines(self) -> List[str]:
        out: List[str] = []
        for g in self.groups:
            out.extend(g.lines())
        return out

    def render(self) -> str:
        return "\n".join(self.lines()) + "\n"


def list_value(items: Iterable[str]) -> str:
    """Format a desktop-entry string list (`a;b;`)."""
    return "".join(f"{item};" for item in items)


def localized(key: str, translations: Sequence[Tuple[str, str]]) -> List[Tuple[str, str]]:
    return [(f"{key}[{tag}]", text) for tag, text in translations]


def primary_entry(cfg: PackagingConfig) -> DesktopEntry:
    binary = cfg.binary_name
    icon = cfg.icon_name

    main = DesktopGroup(
        header=MAIN_GROUP,
        entries=(
            ("Name", cfg.app_name),
            ("Comment", cfg.comment),
            ("GenericName", cfg.generic_name),
            ("Exec", f"{binary} %F"),
            ("Icon", icon),
            ("Type", "Application"),
            ("StartupNotify", "false"),
            ("StartupWMClass", cfg.wm_class),
            ("Categories", list_value(cfg.categories)),
            ("MimeType", list_value([cfg.mime_type])),
            ("Keywords", list_value(cfg.keywords)),
            ("Actions", list_value([NEW_WINDOW_ACTION])),
        ),
    )
    new_window = DesktopGroup(
        header=ACTION_GROUP_PREFIX + NEW_WINDOW_ACTION,
        entries=tuple(
            [("Name", cfg.new_window_name)]
            + localized("Name", cfg.new_window_translations)
            + [
                ("Exec", f"{binary} --new-window %F"),
                ("Icon", icon),
            ]
        ),
    )
    return DesktopEntry(filename=f"{binary}.desktop", groups=(main, new_window))


def url_handler_entry(cfg: PackagingConfig) -> DesktopEntry:
    binary = cfg.binary_name

    main = DesktopGroup(
        header=MAIN_GROUP,
        entries=(
            ("Name", f"{cfg.app_name} - URL Handler"),
            ("Comment", cfg.comment),
            ("GenericName", cfg.generic_name),
            ("Exec", f"{binary} --open-url %U"),
            ("Icon", cfg.icon_name),
            ("Type", "Application"),
            ("NoDisplay", "true"),
            ("StartupNotify", "true"),
            ("Categories", list_value(cfg.url_handler_categories)),
            ("MimeType", list_value([f"x-scheme-handler/{cfg.url_scheme}"])),
            ("Keywords", list_value(cfg.keywords)),
        ),
    )
    return DesktopEntry(filename=f"{binary}-url-handler.desktop", groups=(main,))


def write_entry(entry: DesktopEntry, directory: Path, *, mode: str = "append") -> Path:
    """Validate and write *entry* into *directory*, marked executable."""

    entry.validate()
    path = directory / entry.filename

    if mode == "append":
        write_text(path, entry.render())
    elif mode == "truncate":
        logger.warning("Writing %s in truncate mode; only its last line is kept", entry.filename)
        for line in entry.lines():
            write_text(path, line + "\n")
    else:
        raise DescriptorError(f"Unknown descriptor write mode: {mode!r}")

    chmod_x(path)
    return path


def parse_desktop_entry(path: Path) -> Dict[str, Dict[str, str]]:
    """Read a desktop entry back into {group: {key: value}}."""

    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # type: ignore[assignment]
    try:
        with open(path, "r", encoding="utf-8") as f:
            parser.read_file(f)
    except configparser.Error as exc:
        raise DescriptorError(f"Cannot parse desktop entry {path}: {exc}") from exc

    return {section: dict(parser.items(section)) for section in parser.sections()}


def launcher_script(binary_name: str) -> str:
    return "\n".join(
        [
            "#!/bin/bash",
            'HERE=$(dirname "$(readlink -f "${0}")")',
            "export PATH=${HERE}/usr/bin:${PATH}",
            "export LD_LIBRARY_PATH=${HERE}/usr/lib:${LD_LIBRARY_PATH}",
            f'exec ${{HERE}}/usr/bin/{binary_name} --no-sandbox "$@"',
            "",
        ]
    )


def write_launcher(layout: StagingLayout, binary_name: str) -> Path:
    path = layout.root / "AppRun"
    write_text(path, launcher_script(binary_name))
    chmod_x(path)
    return path


def normalize_permissions(root: Path, mode: int = TREE_MODE) -> None:
    """Set *mode* on every directory and file under *root* (symlinks untouched)."""

    os.chmod(root, mode)
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            p = os.path.join(dirpath, name)
            if os.path.islink(p):
                continue
            os.chmod(p, mode)


def _generate(layout: StagingLayout, cfg: PackagingConfig) -> List[Path]:
    written: List[Path] = []
    for entry, mode in (
        (primary_entry(cfg), "append"),
        (url_handler_entry(cfg), cfg.url_handler_mode),
    ):
        path = write_entry(entry, layout.root, mode=mode)
        layout.applications_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, layout.applications_dir / path.name)
        written.append(path)
        logger.info("Wrote %s", path.name)

    written.append(write_launcher(layout, cfg.binary_name))
    normalize_permissions(layout.root)
    return written


def generate_descriptors(layout: StagingLayout, cfg: PackagingConfig) -> List[Path]:
    try:
        return _generate(layout, cfg)
    except (OSError, shutil.Error) as exc:
        raise DescriptorError(f"Failed to write descriptors into {layout.root}: {exc}") from exc


def descriptors_runner(ctx: PipelineContext) -> RunResult:
    if not ctx.appdir.is_dir():
        raise DescriptorError(f"Staging tree does not exist: {ctx.appdir}")

    written = generate_descriptors(StagingLayout(root=ctx.appdir), ctx.config)
    return RunResult(
        command_str="(internal) descriptors " + " ".join(p.name for p in written),
        stdout="",
        stderr="",
        exit_code=0,
    )
