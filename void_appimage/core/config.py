"""Packaging configuration.

Values come from `DEFAULTS`, an optional JSON file and explicit overrides (in
that order). The resulting `PackagingConfig` is immutable and is serialized to
JSON to hand it to the in-container stages.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

from .defaults import DEFAULTS
from .errors import PackagingError

logger = logging.getLogger(__name__)

URL_HANDLER_MODES = ("append", "truncate")

CONFIG_ENV = "VOID_APPIMAGE_CONFIG"


@dataclass(frozen=True)
class PackagingConfig:
    app_name: str
    binary_name: str
    comment: str
    generic_name: str
    wm_class: str
    categories: Tuple[str, ...]
    url_handler_categories: Tuple[str, ...]
    mime_type: str
    url_scheme: str
    keywords: Tuple[str, ...]
    new_window_name: str
    new_window_translations: Tuple[Tuple[str, str], ...]
    appdir_name: str
    icon_file: str
    arch: str
    appimagetool_file: str
    dockerfile_name: str
    dockerignore_name: str
    url_handler_mode: str
    appimagetool_url: str
    buildx_version: str
    buildx_url_template: str
    image_name: str
    base_image: str
    apt_packages: Tuple[str, ...]
    dockerignore_patterns: Tuple[str, ...]
    buildkit: bool
    sandbox_mount: str
    cleanup_on_failure: bool

    @property
    def artifact_name(self) -> str:
        return f"{self.app_name}-{self.arch}.AppImage"

    @property
    def icon_name(self) -> str:
        """Icon reference used in desktop entries (file name without extension)."""
        return Path(self.icon_file).stem

    def buildx_url(self, os_name: str, cpu: str) -> str:
        return self.buildx_url_template.format(version=self.buildx_version, os=os_name, arch=cpu)

    def transient_files(self) -> Tuple[str, ...]:
        """Working-directory entries removed by cleanup."""
        return (self.appdir_name, self.dockerignore_name, self.dockerfile_name, self.appimagetool_file)

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False, sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> "PackagingConfig":
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise PackagingError(f"Invalid config JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise PackagingError("Invalid config JSON: expected an object")
        return _build(data)


def _is_str_list(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value)


def _coerce(name: str, kind: str, value: Any) -> Any:
    if name == "new_window_translations":
        if isinstance(value, Mapping):
            value = list(value.items())
        if not isinstance(value, (list, tuple)) or not all(_is_str_list(p) and len(p) == 2 for p in value):
            raise PackagingError(f"Config key {name!r} must map language tags to strings")
        return tuple((tag, text) for tag, text in value)

    if kind.startswith("Tuple"):
        if not _is_str_list(value):
            raise PackagingError(f"Config key {name!r} must be a list of strings, got {type(value).__name__}")
        return tuple(value)
    if kind == "bool":
        if not isinstance(value, bool):
            raise PackagingError(f"Config key {name!r} must be true or false, got {value!r}")
        return value
    if not isinstance(value, str):
        raise PackagingError(f"Config key {name!r} must be a string, got {type(value).__name__}")
    return value


def _build(settings: Mapping[str, Any]) -> PackagingConfig:
    kinds = {f.name: str(f.type) for f in fields(PackagingConfig)}
    known = set(kinds)
    unknown = sorted(set(settings) - known)
    for key in unknown:
        logger.warning("Ignoring unknown config key: %s", key)

    merged = {**DEFAULTS, **{k: v for k, v in settings.items() if k in known}}
    cfg = PackagingConfig(**{name: _coerce(name, kinds[name], merged[name]) for name in known})

    if cfg.url_handler_mode not in URL_HANDLER_MODES:
        raise PackagingError(
            f"Invalid url_handler_mode {cfg.url_handler_mode!r}; expected one of {', '.join(URL_HANDLER_MODES)}"
        )
    return cfg


def _load_file(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as exc:
        raise PackagingError(f"Cannot read config file {path}: {exc}") from exc
    except ValueError as exc:
        raise PackagingError(f"Invalid JSON in config file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise PackagingError(f"Config file {path} must contain a JSON object")
    return data


def load_config(
    path: Optional[Path] = None,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> PackagingConfig:
    """Build the effective configuration.

    Priority (lowest to highest):
    - DEFAULTS
    - JSON file (`path`, else VOID_APPIMAGE_CONFIG)
    - overrides
    """

    settings: dict = {}

    if path is None:
        env_path = os.environ.get(CONFIG_ENV)
        if env_path:
            path = Path(env_path)

    if path is not None:
        settings.update(_load_file(path))
        logger.debug("Loaded config file %s", path)

    settings.update(overrides or {})
    return _build(settings)
