"""Default packaging configuration values.

Split out from `void_appimage.core.config` so the loader stays small.
"""

from __future__ import annotations

DEFAULTS: dict = {
    # Application identity, used for file names and desktop entries.
    "app_name": "Void",
    "binary_name": "void",
    "comment": "Open source AI code editor.",
    "generic_name": "Text Editor",
    "wm_class": "Void",
    "categories": ["TextEditor", "Development", "IDE"],
    "url_handler_categories": ["Utility", "TextEditor", "Development", "IDE"],
    "mime_type": "application/x-void-workspace",
    "url_scheme": "void",
    "keywords": ["void"],
    "new_window_name": "New Empty Window",
    # IETF-style tag -> localized "New Empty Window"; order is the emitted order.
    "new_window_translations": {
        "de": "Neues leeres Fenster",
        "es": "Nueva ventana vacía",
        "fr": "Nouvelle fenêtre vide",
        "it": "Nuova finestra vuota",
        "ja": "新しい空のウィンドウ",
        "ko": "새 빈 창",
        "ru": "Новое пустое окно",
        "zh_CN": "新建空窗口",
        "zh_TW": "開新空視窗",
    },
    # Layout and artifacts (relative to the working directory).
    "appdir_name": "VoidApp.AppDir",
    "icon_file": "void.png",
    "arch": "x86_64",
    "appimagetool_file": "appimagetool",
    "dockerfile_name": "Dockerfile.build",
    "dockerignore_name": ".dockerignore",
    # 'append' writes every url-handler line; 'truncate' keeps only the last
    # one, matching the historical shell script output.
    "url_handler_mode": "append",
    # Pinned tool sources.
    "appimagetool_url": (
        "https://github.com/AppImage/AppImageKit/releases/download/continuous/"
        "appimagetool-x86_64.AppImage"
    ),
    "buildx_version": "v0.13.1",
    "buildx_url_template": (
        "https://github.com/docker/buildx/releases/download/{version}/buildx-{version}.{os}-{arch}"
    ),
    # Container sandbox.
    "image_name": "void-appimage-builder",
    "base_image": "ubuntu:20.04",
    "apt_packages": [
        "libfuse2",
        "libglib2.0-0",
        "libgtk-3-0",
        "libx11-xcb1",
        "libxss1",
        "libxtst6",
        "libnss3",
        "libasound2",
        "libdrm2",
        "libgbm1",
        "python3",
        "binutils",
    ],
    "dockerignore_patterns": [
        "Dockerfile.build",
        ".dockerignore",
        ".git",
        ".gitignore",
        ".DS_Store",
        "*~",
        "*.swp",
        "*.swo",
        "*.tmp",
        "*.bak",
        "*.log",
        "*.err",
        "node_modules/",
        "venv/",
        "*.egg-info/",
        "*.tox/",
        "dist/",
    ],
    "buildkit": True,
    "sandbox_mount": "/opt/void-appimage",
    # Run cleanup when a stage fails (the shell script only cleaned up on success).
    "cleanup_on_failure": True,
}
