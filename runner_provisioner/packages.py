"""OS package installation through apt."""

from __future__ import annotations

import logging
from typing import Sequence

from .commands import run_command
from .errors import PackageInstallError

logger = logging.getLogger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def refresh_package_index() -> None:
    run_command(["apt-get", "update", "-y"], error=PackageInstallError, env=APT_ENV)
    run_command(["apt-get", "upgrade", "-y"], error=PackageInstallError, env=APT_ENV)


def install_packages(packages: Sequence[str]) -> None:
    if not packages:
        return
    logger.info(f"Installing {len(packages)} packages: {' '.join(packages)}")
    run_command(
        ["apt-get", "install", "-y", "--no-install-recommends", *packages],
        error=PackageInstallError,
        env=APT_ENV,
    )
