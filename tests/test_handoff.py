import os
import stat
from pathlib import Path

import pytest

from runner_provisioner.errors import HandoffError, PrivilegeError
from runner_provisioner.handoff import exec_start_script, install_start_script, make_executable


class Exec(Exception):
    """Raised by the fake execve in place of replacing the process."""


def _fake_execve(calls: list):
    def execve(path, argv, env):
        calls.append((path, argv, env))
        raise Exec()

    return execve


def test_install_start_script_marks_executable(tmp_path: Path, start_script: Path) -> None:
    dest = tmp_path / "home" / "start.sh"

    install_start_script(start_script, dest)

    assert dest.read_text(encoding="utf-8") == start_script.read_text(encoding="utf-8")
    assert stat.S_IMODE(dest.stat().st_mode) == 0o755


def test_install_start_script_requires_source(tmp_path: Path) -> None:
    with pytest.raises(HandoffError):
        install_start_script(tmp_path / "missing.sh", tmp_path / "start.sh")


def test_make_executable_adds_exec_bits(tmp_path: Path) -> None:
    script = tmp_path / "installdependencies.sh"
    script.write_text("#!/bin/sh\n", encoding="utf-8")
    script.chmod(0o644)

    make_executable(script)

    assert stat.S_IMODE(script.stat().st_mode) == 0o755


def test_exec_start_script_runs_without_arguments(
    tmp_path: Path, start_script: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(os, "geteuid", lambda: 1000)
    start_script.chmod(0o755)
    home = tmp_path / "home"
    home.mkdir()
    calls: list = []

    with pytest.raises(Exec):
        exec_start_script(start_script, cwd=home, env={"HOME": str(home)}, execve=_fake_execve(calls))

    assert calls == [(str(start_script), [str(start_script)], {"HOME": str(home)})]
    assert Path.cwd() == home.resolve()


def test_exec_start_script_refuses_root(
    tmp_path: Path, start_script: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(os, "geteuid", lambda: 0)
    start_script.chmod(0o755)
    calls: list = []

    with pytest.raises(PrivilegeError):
        exec_start_script(start_script, cwd=tmp_path, execve=_fake_execve(calls))

    assert calls == []


def test_exec_start_script_requires_existing_script(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(os, "geteuid", lambda: 1000)

    with pytest.raises(HandoffError):
        exec_start_script(tmp_path / "start.sh", cwd=tmp_path, execve=_fake_execve([]))


def test_exec_failure_is_handoff_error(
    tmp_path: Path, start_script: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(os, "geteuid", lambda: 1000)
    start_script.chmod(0o755)

    def failing_execve(path, argv, env):
        raise OSError(8, "Exec format error")

    with pytest.raises(HandoffError):
        exec_start_script(start_script, cwd=tmp_path, env={}, execve=failing_execve)
