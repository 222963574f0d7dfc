from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import MutableMapping, Protocol, Sequence

from .config import ProvisionConfig
from .errors import ProvisionError
from .fetch import Download
from .identity import Identity

logger = logging.getLogger(__name__)


@dataclass
class ProvisionContext:
    """State shared by the steps of one provisioning run."""

    config: ProvisionConfig
    environ: MutableMapping[str, str] = field(default_factory=lambda: os.environ)
    identity: Identity | None = None
    download: Download | None = None
    install_dir: Path | None = None
    completed: list[str] = field(default_factory=list)


class Step(Protocol):
    step_id: str

    def run(self, ctx: ProvisionContext) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    context: ProvisionContext
    ran_steps: list[str]


def run_pipeline(ctx: ProvisionContext, steps: Sequence[Step]) -> PipelineResult:
    """Run ``steps`` in order. The first failure aborts the whole sequence."""
    ran: list[str] = []
    for step in steps:
        logger.info(f"Running step {step.step_id}")
        try:
            step.run(ctx)
        except ProvisionError as e:
            e.context.setdefault("step", step.step_id)
            logger.error(f"Step {step.step_id} failed: {e.args[0]}")
            raise
        ctx.completed.append(step.step_id)
        ran.append(step.step_id)
        logger.info(f"Completed step {step.step_id}")
    return PipelineResult(context=ctx, ran_steps=ran)
