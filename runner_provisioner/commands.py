from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from .errors import ProvisionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_command(
    argv: Sequence[str],
    *,
    error: type[ProvisionError],
    env: Mapping[str, str] | None = None,
    cwd: str | Path | None = None,
) -> CommandResult:
    """Run a command to completion, raising ``error`` on a non-zero exit.

    The command line is logged before it runs; its output is kept on the
    raised error so the caller can surface it.
    """
    argv_list = [str(a) for a in argv]
    logger.info(f"$ {format_argv(argv_list)}")

    try:
        p = subprocess.run(
            argv_list,
            text=True,
            capture_output=True,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(os.environ, **(env or {})),
            check=False,
        )
    except OSError as e:
        raise error(
            f"Could not start command: {format_argv(argv_list)}",
            context={"error": str(e)},
        ) from e

    if p.stdout:
        logger.debug(p.stdout.rstrip())
    if p.stderr:
        logger.debug(p.stderr.rstrip())

    if p.returncode != 0:
        raise error(
            f"Command failed ({p.returncode}): {format_argv(argv_list)}",
            context={"stdout": p.stdout.strip(), "stderr": p.stderr.strip()},
        )

    return CommandResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)
