import pytest

from runner_provisioner import packages
from runner_provisioner.commands import format_argv, run_command
from runner_provisioner.errors import DependencyInstallError, PackageInstallError


def test_run_command_captures_output() -> None:
    result = run_command(["sh", "-c", "echo hello"], error=PackageInstallError)

    assert result.returncode == 0
    assert result.stdout == "hello\n"


def test_run_command_raises_caller_error_with_output() -> None:
    with pytest.raises(DependencyInstallError) as excinfo:
        run_command(["sh", "-c", "echo partial; echo 'libicu missing' >&2; exit 3"], error=DependencyInstallError)

    assert "(3)" in str(excinfo.value)
    assert excinfo.value.context["stderr"] == "libicu missing"
    assert excinfo.value.context["stdout"] == "partial"


def test_run_command_missing_binary() -> None:
    with pytest.raises(PackageInstallError):
        run_command(["definitely-not-a-real-apt-get"], error=PackageInstallError)


def test_run_command_passes_env_and_cwd(tmp_path) -> None:
    result = run_command(
        ["sh", "-c", 'echo "$DEBIAN_FRONTEND $(pwd)"'],
        error=PackageInstallError,
        env={"DEBIAN_FRONTEND": "noninteractive"},
        cwd=tmp_path,
    )

    assert result.stdout.split() == ["noninteractive", str(tmp_path.resolve())]


def test_format_argv_quotes() -> None:
    assert format_argv(["echo", "a b"]) == "echo 'a b'"


def test_install_packages_is_noninteractive(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[list[str], dict]] = []
    monkeypatch.setattr(packages, "run_command", lambda argv, **kw: calls.append((list(argv), kw)))

    packages.install_packages(["curl", "jq"])
    packages.install_packages([])

    assert len(calls) == 1
    argv, kw = calls[0]
    assert argv == ["apt-get", "install", "-y", "--no-install-recommends", "curl", "jq"]
    assert kw["env"] == {"DEBIAN_FRONTEND": "noninteractive"}
    assert kw["error"] is PackageInstallError
