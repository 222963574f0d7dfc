"""The provisioning steps, in the order they run.

``build_steps()`` prepares the image as root; ``launch_steps()`` runs at
container start and ends by replacing the process with the start script.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable

from . import packages
from .commands import run_command
from .errors import DependencyInstallError, FetchError, IntegrityError, PrivilegeError
from .extract import extract_archive
from .fetch import Download, download
from .handoff import exec_start_script, install_start_script, make_executable
from .identity import assert_owned_by, chown_tree, drop_privileges, ensure_user, lookup_identity
from .integrity import verify_digest
from .pipeline import ProvisionContext, Step

DEPENDENCY_INSTALLER = "installdependencies.sh"


class InstallPackagesStep:
    step_id = "install_packages"

    def run(self, ctx: ProvisionContext) -> None:
        packages.refresh_package_index()
        packages.install_packages(ctx.config.packages)
        packages.install_packages(ctx.config.runner_packages)


class CreateIdentityStep:
    step_id = "create_identity"

    def run(self, ctx: ProvisionContext) -> None:
        ctx.identity = ensure_user(ctx.config.user, ctx.config.home_dir)


class FetchArtifactStep:
    step_id = "fetch_artifact"

    def run(self, ctx: ProvisionContext) -> None:
        cfg = ctx.config
        ctx.download = download(
            cfg.artifact_url,
            dest_dir=cfg.download_dir,
            filename=cfg.archive_name,
            timeout=cfg.http_timeout,
        )


class VerifyArtifactStep:
    step_id = "verify_artifact"

    def run(self, ctx: ProvisionContext) -> None:
        fetched = _require_download(ctx)
        try:
            verify_digest(fetched.sha256, ctx.config.checksum, source=ctx.config.artifact_url)
        except IntegrityError:
            fetched.path.unlink(missing_ok=True)
            ctx.download = None
            raise


class ExtractArtifactStep:
    step_id = "extract_artifact"

    def run(self, ctx: ProvisionContext) -> None:
        fetched = _require_download(ctx)
        if "verify_artifact" not in ctx.completed:
            raise IntegrityError("Refusing to extract an archive that has not been verified.")
        try:
            ctx.install_dir = extract_archive(fetched.path, ctx.config.install_dir)
        finally:
            fetched.path.unlink(missing_ok=True)


class InstallDependenciesStep:
    step_id = "install_dependencies"

    def run(self, ctx: ProvisionContext) -> None:
        install_dir = ctx.install_dir or ctx.config.install_dir
        bin_dir = install_dir / "bin"
        script = bin_dir / DEPENDENCY_INSTALLER
        if not script.is_file():
            raise DependencyInstallError(
                f"{DEPENDENCY_INSTALLER} not found in {bin_dir}.",
                hint="The archive layout may have changed for this runner version.",
            )
        make_executable(script)
        run_command([str(script)], cwd=bin_dir, error=DependencyInstallError)


class InstallStartScriptStep:
    step_id = "install_start_script"

    def run(self, ctx: ProvisionContext) -> None:
        install_start_script(ctx.config.start_script_source, ctx.config.start_script_path)


class ChownTreeStep:
    step_id = "chown_tree"

    def run(self, ctx: ProvisionContext) -> None:
        identity = ctx.identity or lookup_identity(ctx.config.user)
        ctx.identity = identity
        chown_tree(ctx.config.home_dir, identity)
        assert_owned_by(ctx.config.home_dir, identity)


class DropPrivilegesStep:
    step_id = "drop_privileges"

    def run(self, ctx: ProvisionContext) -> None:
        identity = ctx.identity or lookup_identity(ctx.config.user)
        ctx.identity = identity
        drop_privileges(identity, ctx.environ)


@dataclass
class HandoffStep:
    execve: Callable = os.execve
    step_id: str = "handoff"

    def run(self, ctx: ProvisionContext) -> None:
        if "drop_privileges" not in ctx.completed:
            raise PrivilegeError("Privileges must be dropped before handing off.")
        exec_start_script(
            ctx.config.start_script_path,
            cwd=ctx.config.home_dir,
            env=ctx.environ,
            execve=self.execve,
        )


def _require_download(ctx: ProvisionContext) -> Download:
    if ctx.download is None:
        raise FetchError("No downloaded archive; fetch_artifact must run first.")
    return ctx.download


def build_steps() -> list[Step]:
    return [
        InstallPackagesStep(),
        CreateIdentityStep(),
        FetchArtifactStep(),
        VerifyArtifactStep(),
        ExtractArtifactStep(),
        InstallDependenciesStep(),
        InstallStartScriptStep(),
        ChownTreeStep(),
    ]


def launch_steps() -> list[Step]:
    return [
        DropPrivilegesStep(),
        HandoffStep(),
    ]
