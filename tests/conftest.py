"""Shared test fixtures."""

from __future__ import annotations

import hashlib
import io
import os
import tarfile
from pathlib import Path

import pytest

from runner_provisioner.identity import Identity

INSTALLER = """\
#!/bin/sh
set -e
touch ../deps-installed
"""


def build_tarball(members: dict[str, tuple[bytes, int]]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, (data, mode) in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = mode
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


@pytest.fixture
def runner_archive() -> tuple[bytes, str]:
    """A miniature runner release: (archive bytes, sha256 hex)."""
    payload = build_tarball(
        {
            "bin/installdependencies.sh": (INSTALLER.encode(), 0o644),
            "config.sh": (b"#!/bin/sh\nexit 0\n", 0o755),
            "run.sh": (b"#!/bin/sh\nexit 0\n", 0o755),
        }
    )
    return payload, hashlib.sha256(payload).hexdigest()


@pytest.fixture
def current_identity(tmp_path: Path) -> Identity:
    """The test process's own uid/gid, with a scratch home directory."""
    home = tmp_path / "home" / "runner"
    home.mkdir(parents=True)
    return Identity(name="runner", uid=os.getuid(), gid=os.getgid(), home=home)


@pytest.fixture
def start_script(tmp_path: Path) -> Path:
    script = tmp_path / "start.sh"
    script.write_text("#!/bin/sh\nexec ./actions-runner/run.sh\n", encoding="utf-8")
    return script
