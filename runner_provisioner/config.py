from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping

from .errors import ConfigError

logger = logging.getLogger(__name__)

# Pinned release
RUNNER_VERSION = "2.320.0"
RUNNER_CHECKSUM = "93ac1b7ce743ee85b5d386f5c1787385ef07b3d7c728ff66ce0d3813d5f46900"
RUNNER_PLATFORM = "linux-x64"

DISTRIBUTOR_URL = "https://github.com/actions/runner/releases/download"
ARTIFACT_NAME = "actions-runner"

RUNNER_USER = "docker"
INSTALL_DIR_NAME = "actions-runner"
START_SCRIPT_NAME = "start.sh"
HTTP_TIMEOUT_SECONDS = 60.0

# Network client, JSON tool, compiler toolchain, crypto and scripting runtimes
BASE_PACKAGES = (
    "curl",
    "jq",
    "build-essential",
    "libssl-dev",
    "libffi-dev",
    "python3",
    "python3-venv",
    "python3-dev",
    "python3-pip",
)

# Shared libraries the runner's .NET host links against
RUNNER_PACKAGES = (
    "libkrb5-3",
    "zlib1g",
    "libicu70",
)

_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")
_SHA256_RE = re.compile(r"^[0-9a-f]{64}$")


def normalize_version(version: str) -> str:
    value = version.strip()
    if value.startswith("v"):
        value = value[1:]
    if not _VERSION_RE.match(value):
        raise ConfigError(
            f"Invalid runner version: {version!r}",
            hint="Use a published release identifier such as 2.320.0.",
        )
    return value


def normalize_checksum(checksum: str) -> str:
    """Return the 64-char lowercase hex digest, accepting a ``sha256:`` prefix."""
    value = checksum.strip().lower()
    if value.startswith("sha256:"):
        value = value[len("sha256:"):]
    if not _SHA256_RE.match(value):
        raise ConfigError(
            f"Invalid SHA-256 checksum: {checksum!r}",
            hint="Expected 64 hexadecimal characters.",
        )
    return value


@dataclass(frozen=True)
class ProvisionConfig:
    version: str = RUNNER_VERSION
    checksum: str = RUNNER_CHECKSUM
    platform: str = RUNNER_PLATFORM
    distributor_url: str = DISTRIBUTOR_URL
    artifact_name: str = ARTIFACT_NAME
    user: str = RUNNER_USER
    home: Path | None = None
    install_dir_name: str = INSTALL_DIR_NAME
    start_script_source: Path = Path(START_SCRIPT_NAME)
    download_dir: Path | None = None
    base_packages: tuple[str, ...] = BASE_PACKAGES
    runner_packages: tuple[str, ...] = RUNNER_PACKAGES
    http_timeout: float = HTTP_TIMEOUT_SECONDS
    extra_packages: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "version", normalize_version(self.version))
        object.__setattr__(self, "checksum", normalize_checksum(self.checksum))
        if not self.user or self.user == "root":
            raise ConfigError(
                f"Refusing to provision for user {self.user!r}",
                hint="The runner must run as a non-privileged user.",
            )
        if self.http_timeout <= 0:
            raise ConfigError(f"HTTP timeout must be positive, got {self.http_timeout}")

    @property
    def archive_name(self) -> str:
        return f"{self.artifact_name}-{self.platform}-{self.version}.tar.gz"

    @property
    def artifact_url(self) -> str:
        return f"{self.distributor_url}/v{self.version}/{self.archive_name}"

    @property
    def home_dir(self) -> Path:
        return self.home if self.home is not None else Path("/home") / self.user

    @property
    def install_dir(self) -> Path:
        return self.home_dir / self.install_dir_name

    @property
    def start_script_path(self) -> Path:
        return self.home_dir / START_SCRIPT_NAME

    @property
    def packages(self) -> tuple[str, ...]:
        return self.base_packages + self.extra_packages

    def with_overrides(self, **overrides: object) -> "ProvisionConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ProvisionConfig":
        env = os.environ if environ is None else environ

        timeout_str = env.get("RUNNER_HTTP_TIMEOUT")
        try:
            timeout = float(timeout_str) if timeout_str else HTTP_TIMEOUT_SECONDS
        except ValueError as e:
            raise ConfigError(f"RUNNER_HTTP_TIMEOUT is not a number: {timeout_str!r}") from e

        extra_packages: tuple[str, ...] = ()
        extra_str = env.get("RUNNER_EXTRA_PACKAGES")
        if extra_str:
            try:
                parsed = json.loads(extra_str)
                if not isinstance(parsed, list) or not all(isinstance(p, str) for p in parsed):
                    raise ValueError("expected a JSON list of strings")
                extra_packages = tuple(parsed)
            except ValueError as e:
                logger.warning(f"Ignoring RUNNER_EXTRA_PACKAGES ({e})")

        home = env.get("RUNNER_HOME")
        download_dir = env.get("RUNNER_DOWNLOAD_DIR")
        return cls(
            version=env.get("RUNNER_VERSION", RUNNER_VERSION),
            checksum=env.get("RUNNER_CHECKSUM", RUNNER_CHECKSUM),
            platform=env.get("RUNNER_PLATFORM", RUNNER_PLATFORM),
            user=env.get("RUNNER_USER", RUNNER_USER),
            home=Path(home) if home else None,
            start_script_source=Path(env.get("RUNNER_START_SCRIPT", START_SCRIPT_NAME)),
            download_dir=Path(download_dir) if download_dir else None,
            http_timeout=timeout,
            extra_packages=extra_packages,
        )
