from __future__ import annotations

import json

import pytest

import void_appimage.steps.container as container
from void_appimage.core.config import PackagingConfig, load_config
from void_appimage.core.errors import PackagingError
from void_appimage.utils.subproc import RunResult


class _Recorder:
    def __init__(self, exit_code: int = 0, on_call=None) -> None:
        self.exit_code = exit_code
        self.on_call = on_call
        self.calls: list[tuple[list[str], dict]] = []

    def __call__(self, args, *, cwd, env_overrides=None):
        self.calls.append((list(args), dict(env_overrides or {})))
        if self.on_call is not None:
            self.on_call()
        return RunResult(command_str=" ".join(args), stdout="out", stderr="", exit_code=self.exit_code)


def test_prepare_writes_build_files_and_removes_stale_artifact(workdir, ctx_factory) -> None:
    (workdir / "Void-x86_64.AppImage").write_bytes(b"old")
    ctx = ctx_factory(workdir)

    container.prepare_runner(ctx)

    assert not (workdir / "Void-x86_64.AppImage").exists()
    dockerfile = (workdir / "Dockerfile.build").read_text(encoding="utf-8")
    assert dockerfile.startswith("# syntax=docker/dockerfile:1\nFROM ubuntu:20.04\n")
    for pkg in ("libfuse2", "libgbm1", "python3", "binutils"):
        assert f"    {pkg} \\\n" in dockerfile
    assert dockerfile.rstrip().endswith("WORKDIR /app")

    ignore = (workdir / ".dockerignore").read_text(encoding="utf-8").splitlines()
    assert ignore[0] == "Dockerfile.build"
    assert "node_modules/" in ignore
    assert ignore[-1] == "dist/"


def test_image_build_passes_buildkit_explicitly(workdir, ctx_factory, monkeypatch) -> None:
    rec = _Recorder()
    monkeypatch.setattr(container, "run", rec)
    monkeypatch.delenv("DOCKER_BUILDKIT", raising=False)

    container.image_runner(ctx_factory(workdir))

    args, env = rec.calls[0]
    assert args == ["docker", "build", "--no-cache", "-t", "void-appimage-builder", "-f", "Dockerfile.build", "."]
    assert env == {"DOCKER_BUILDKIT": "1"}


def test_image_build_without_buildkit(workdir, ctx_factory, monkeypatch) -> None:
    rec = _Recorder()
    monkeypatch.setattr(container, "run", rec)

    container.image_runner(ctx_factory(workdir, cfg=load_config(overrides={"buildkit": False})))

    assert rec.calls[0][1] == {}


def test_sandbox_command_mounts_workdir_and_package(workdir, ctx_factory) -> None:
    ctx = ctx_factory(workdir)

    args = container.sandbox_command(ctx)

    assert args[:4] == ["docker", "run", "--rm", "--privileged"]
    assert f"{workdir.resolve()}:/app" in args
    assert any(a.endswith(":/opt/void-appimage:ro") for a in args)
    assert "PYTHONPATH=/opt/void-appimage" in args
    tail = args[args.index("void-appimage-builder"):]
    assert tail[1:4] == ["python3", "-m", "void_appimage.sandbox"]
    cfg_json = tail[tail.index("--config-json") + 1]
    assert PackagingConfig.from_json(cfg_json) == ctx.config
    assert json.loads(cfg_json)["url_handler_mode"] == "append"


def test_sandbox_runner_reports_artifact(workdir, ctx_factory, monkeypatch) -> None:
    ctx = ctx_factory(workdir)
    rec = _Recorder(on_call=lambda: ctx.artifact_path.write_bytes(b"appimage"))
    monkeypatch.setattr(container, "run", rec)

    result = container.sandbox_runner(ctx)

    assert result.exit_code == 0
    assert result.artifact == "Void-x86_64.AppImage"


def test_sandbox_runner_propagates_exit_code(workdir, ctx_factory, monkeypatch) -> None:
    monkeypatch.setattr(container, "run", _Recorder(exit_code=125))

    result = container.sandbox_runner(ctx_factory(workdir))

    assert result.exit_code == 125
    assert result.artifact is None


def test_sandbox_runner_without_artifact_fails(workdir, ctx_factory, monkeypatch) -> None:
    monkeypatch.setattr(container, "run", _Recorder())

    with pytest.raises(PackagingError, match="did not produce"):
        container.sandbox_runner(ctx_factory(workdir))


def test_unwritable_build_files_are_a_packaging_error(workdir, ctx_factory, monkeypatch) -> None:
    def read_only(path, text):
        raise OSError(30, "Read-only file system", str(path))

    monkeypatch.setattr(container, "write_text", read_only)

    with pytest.raises(PackagingError, match="Read-only file system"):
        container.prepare_runner(ctx_factory(workdir))
