from pathlib import Path

import pytest

from runner_provisioner.errors import ExtractionError
from runner_provisioner.extract import extract_archive

from conftest import build_tarball


def test_extract_archive_into_install_dir(tmp_path: Path, runner_archive: tuple[bytes, str]) -> None:
    archive = tmp_path / "runner.tar.gz"
    archive.write_bytes(runner_archive[0])
    dest = tmp_path / "home" / "actions-runner"

    assert extract_archive(archive, dest) == dest
    assert (dest / "bin" / "installdependencies.sh").is_file()
    assert (dest / "run.sh").is_file()
    assert not (tmp_path / "home" / ".actions-runner.partial").exists()


def test_extract_replaces_previous_install(tmp_path: Path, runner_archive: tuple[bytes, str]) -> None:
    archive = tmp_path / "runner.tar.gz"
    archive.write_bytes(runner_archive[0])
    dest = tmp_path / "actions-runner"
    dest.mkdir()
    (dest / "stale.txt").write_text("old", encoding="utf-8")

    extract_archive(archive, dest)

    assert not (dest / "stale.txt").exists()
    assert (dest / "config.sh").is_file()


def test_corrupt_archive_leaves_no_install_dir(tmp_path: Path) -> None:
    archive = tmp_path / "runner.tar.gz"
    archive.write_bytes(b"definitely not gzip")
    dest = tmp_path / "actions-runner"

    with pytest.raises(ExtractionError):
        extract_archive(archive, dest)

    assert not dest.exists()
    assert not (tmp_path / ".actions-runner.partial").exists()


def test_path_traversal_member_is_rejected(tmp_path: Path) -> None:
    archive = tmp_path / "evil.tar.gz"
    archive.write_bytes(build_tarball({"../escaped.txt": (b"pwned", 0o644)}))
    dest = tmp_path / "install" / "actions-runner"

    with pytest.raises(ExtractionError):
        extract_archive(archive, dest)

    assert not dest.exists()
    assert not (tmp_path / "install" / "escaped.txt").exists()
