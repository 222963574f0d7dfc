"""Verified install and unprivileged launch of the GitHub Actions runner."""

from .config import ProvisionConfig
from .errors import ProvisionError
from .pipeline import ProvisionContext, run_pipeline
from .steps import build_steps, launch_steps

__all__ = [
    "ProvisionConfig",
    "ProvisionContext",
    "ProvisionError",
    "build_steps",
    "launch_steps",
    "run_pipeline",
]
