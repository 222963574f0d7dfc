from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Optional

from .config import ProvisionConfig
from .errors import ProvisionError
from .integrity import verify_file
from .pipeline import ProvisionContext, run_pipeline
from .steps import build_steps, launch_steps

logger = logging.getLogger("runner-provisioner")

PHASES = {
    "build": build_steps,
    "launch": launch_steps,
    "run": lambda: build_steps() + launch_steps(),
}


def configure_logging(level: str | None = None) -> None:
    level_name = (level or os.environ.get("RUNNER_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="runner-provisioner",
        description="Install a pinned, checksum-verified GitHub Actions runner and launch it unprivileged.",
    )
    p.add_argument("--log-level", default=None, help="Logging level (default: $RUNNER_LOG_LEVEL or INFO)")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--version", dest="runner_version", default=None, help="Runner release, e.g. 2.320.0")
    common.add_argument("--checksum", default=None, help="Expected SHA-256 of the release archive")
    common.add_argument("--user", default=None, help="Non-privileged user the runner runs as")
    common.add_argument("--home", type=Path, default=None, help="Home directory of that user")
    common.add_argument("--start-script", type=Path, default=None, help="Startup script to install")

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("build", parents=[common], help="Install packages and the verified runner (as root)")
    sub.add_parser("launch", parents=[common], help="Drop privileges and exec the start script")
    sub.add_parser("run", parents=[common], help="build, then launch")
    verify = sub.add_parser("verify", parents=[common], help="Check a local archive against the pinned checksum")
    verify.add_argument("archive", type=Path)
    return p


def load_config(args: argparse.Namespace) -> ProvisionConfig:
    return ProvisionConfig.from_env().with_overrides(
        version=args.runner_version,
        checksum=args.checksum,
        user=args.user,
        home=args.home,
        start_script_source=args.start_script,
    )


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = load_config(args)
        if args.command == "verify":
            verify_file(args.archive, config.checksum)
            return 0
        logger.info(f"Provisioning actions runner {config.version} ({config.platform}) for {config.user}")
        run_pipeline(ProvisionContext(config=config), PHASES[args.command]())
    except ProvisionError as e:
        logger.error(f"Provisioning failed [{e.code.value}]: {e}")
        return 1
    return 0
