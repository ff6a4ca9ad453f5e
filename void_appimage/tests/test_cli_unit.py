from __future__ import annotations

import void_appimage.core.cli as cli
import void_appimage.steps.preflight as preflight


def test_list_profiles(capsys) -> None:
    assert cli.main(["--list-profiles"]) == 0

    out = capsys.readouterr().out
    assert "docker" in out
    assert "local" in out


def test_list_stages_default_profile(capsys) -> None:
    assert cli.main(["--list-stages"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert [line.split()[1] for line in out] == ["Preflight", "Prepare", "Image", "Sandbox"]


def test_unsupported_platform_exits_1(workdir, monkeypatch, capsys) -> None:
    monkeypatch.setattr(preflight.platform, "system", lambda: "Windows")

    rc = cli.main(["--workdir", str(workdir)])

    assert rc == 1
    out = capsys.readouterr().out
    assert "[1] Preflight: FAIL" in out
    assert "Current platform: Windows" in out
    assert not (workdir / "Dockerfile.build").exists()


def test_bad_config_file_exits_1(tmp_path, capsys) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text("{", encoding="utf-8")

    assert cli.main(["--config", str(bad)]) == 1
    assert "Invalid JSON" in capsys.readouterr().out


def test_literal_url_handler_flag_selects_truncate_mode(workdir, monkeypatch) -> None:
    seen = {}

    def fake_run(stages, ctx, *, cleanup=None, report=True):
        seen["mode"] = ctx.config.url_handler_mode
        seen["names"] = [s.name for s in stages]
        return 0

    monkeypatch.setattr(cli, "run", fake_run)

    assert cli.main(["--workdir", str(workdir), "--profile", "local", "--literal-url-handler"]) == 0
    assert seen == {
        "mode": "truncate",
        "names": ["Local Preflight", "Local Prepare", "Stage", "Descriptors", "Package"],
    }
