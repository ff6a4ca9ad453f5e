"""End-to-end runs of the local profile with a fake appimagetool."""

from __future__ import annotations

import errno

from void_appimage.core.cli import main


def _run_local(workdir) -> int:
    return main(["--profile", "local", "--workdir", str(workdir)])


def test_local_pipeline_produces_single_artifact_and_cleans_up(workdir, fake_appimagetool) -> None:
    fake_appimagetool(workdir)

    rc = _run_local(workdir)

    assert rc == 0
    artifacts = sorted(p.name for p in workdir.glob("*.AppImage"))
    assert artifacts == ["Void-x86_64.AppImage"]
    for name in ("VoidApp.AppDir", "Dockerfile.build", ".dockerignore", "appimagetool"):
        assert not (workdir / name).exists(), name
    assert sorted(p.name for p in workdir.iterdir()) == ["Void-x86_64.AppImage", "void", "void.png"]


def test_rerun_replaces_previous_artifact(workdir, fake_appimagetool) -> None:
    (workdir / "Void-x86_64.AppImage").write_text("from an older run\n", encoding="utf-8")
    fake_appimagetool(workdir)

    assert _run_local(workdir) == 0

    artifact = workdir / "Void-x86_64.AppImage"
    assert list(workdir.glob("*.AppImage")) == [artifact]
    assert artifact.read_text(encoding="utf-8") == "fake-appimage:x86_64\n"


def test_failed_packaging_still_cleans_up(workdir, fake_appimagetool) -> None:
    fake_appimagetool(workdir, script="#!/bin/sh\nexit 4\n")

    rc = _run_local(workdir)

    assert rc == 4
    assert not (workdir / "VoidApp.AppDir").exists()
    assert not (workdir / "appimagetool").exists()
    assert not list(workdir.glob("*.AppImage"))


def test_keep_on_failure_leaves_staging_tree(workdir, fake_appimagetool) -> None:
    fake_appimagetool(workdir, script="#!/bin/sh\nexit 4\n")

    rc = main(["--profile", "local", "--workdir", str(workdir), "--keep-on-failure"])

    assert rc == 4
    assert (workdir / "VoidApp.AppDir" / "AppRun").exists()
    assert (workdir / "appimagetool").exists()


def test_sandbox_entry_leaves_cleanup_to_host(workdir, fake_appimagetool, config, capsys) -> None:
    from void_appimage import sandbox

    fake_appimagetool(workdir)

    rc = sandbox.main(["--workdir", str(workdir), "--config-json", config.to_json()])

    assert rc == 0
    assert (workdir / "Void-x86_64.AppImage").exists()
    assert (workdir / "VoidApp.AppDir" / "usr" / "share" / "applications" / "void.desktop").exists()
    assert "AppImage creation complete" not in capsys.readouterr().out


def test_disk_full_during_descriptors_fails_stage_and_cleans_up(workdir, fake_appimagetool, monkeypatch, capsys) -> None:
    import json

    import void_appimage.steps.descriptors as descriptors
    from void_appimage.utils.paths import buildlog_dir

    def disk_full(path, text):
        raise OSError(errno.ENOSPC, "No space left on device", str(path))

    fake_appimagetool(workdir)
    monkeypatch.setattr(descriptors, "write_text", disk_full)

    rc = _run_local(workdir)

    assert rc == 1
    assert "[4] Descriptors: FAIL" in capsys.readouterr().out
    assert sorted(p.name for p in workdir.iterdir()) == ["void", "void.png"]

    summary = json.loads((buildlog_dir() / "build-summary.json").read_text(encoding="utf-8"))
    assert summary["passed"] is False
    assert summary["cleaned_up"] is True
    assert summary["stages"][-1]["name"] == "Descriptors"
    assert "No space left on device" in summary["stages"][-1]["message"]


def test_failed_preflight_keeps_user_supplied_appimagetool(workdir, fake_appimagetool, monkeypatch) -> None:
    import void_appimage.steps.preflight as preflight
    from void_appimage.utils.subproc import RunResult

    fake_appimagetool(workdir)
    monkeypatch.setattr(preflight.platform, "system", lambda: "Linux")
    monkeypatch.setattr(
        preflight,
        "run",
        lambda args, *, cwd, env_overrides=None: RunResult(command_str="docker info", stdout="", stderr="", exit_code=1),
    )

    rc = main(["--workdir", str(workdir)])

    assert rc == 1
    assert (workdir / "appimagetool").exists()


def test_failed_preflight_removes_appimagetool_it_downloaded(workdir, monkeypatch) -> None:
    import void_appimage.steps.preflight as preflight

    def fake_download(url, dst):
        dst.write_bytes(b"#!/bin/sh\n")

    (workdir / "void.png").unlink()
    monkeypatch.setattr(preflight.platform, "system", lambda: "Linux")
    monkeypatch.setattr(preflight, "download", fake_download)

    rc = _run_local(workdir)

    assert rc == 1
    assert not (workdir / "appimagetool").exists()
