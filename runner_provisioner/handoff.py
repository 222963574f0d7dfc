from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Callable, Mapping, NoReturn

from .errors import HandoffError, PrivilegeError

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755


def install_start_script(source: Path, dest: Path) -> Path:
    if not source.is_file():
        raise HandoffError(
            f"Start script {source} not found.",
            hint="Set RUNNER_START_SCRIPT or pass --start-script.",
        )
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, dest)
    os.chmod(dest, EXECUTABLE_MODE)
    logger.info(f"Installed start script {dest}")
    return dest


def make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def exec_start_script(
    script: Path,
    *,
    cwd: Path,
    env: Mapping[str, str] | None = None,
    execve: Callable[[str, list[str], Mapping[str, str]], object] = os.execve,
) -> NoReturn:
    """Replace the current process with ``script``, invoked without arguments.

    Never runs while the effective uid is 0.
    """
    if os.geteuid() == 0:
        raise PrivilegeError(
            "Refusing to start the runner as root.",
            hint="Drop privileges before handing off.",
        )
    if not script.is_file() or not os.access(script, os.X_OK):
        raise HandoffError(f"Start script {script} is missing or not executable.")

    os.chdir(cwd)
    logger.info(f"Handing off to {script} as uid {os.geteuid()}")
    for handler in logging.getLogger().handlers:
        handler.flush()
    try:
        execve(str(script), [str(script)], dict(os.environ if env is None else env))
    except OSError as e:
        raise HandoffError(f"Could not execute {script}.", context={"error": str(e)}) from e
    raise HandoffError(f"exec of {script} returned unexpectedly.")
