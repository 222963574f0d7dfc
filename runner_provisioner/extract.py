from __future__ import annotations

import logging
import os
import shutil
import tarfile
from pathlib import Path

from .errors import ExtractionError

logger = logging.getLogger(__name__)


def extract_archive(archive: Path, dest: Path) -> Path:
    """Unpack a gzip tarball into ``dest``, replacing any previous install.

    Extraction happens in a sibling staging directory that is only renamed
    to ``dest`` once complete, so a failure never leaves ``dest`` behind.
    """
    staging = dest.with_name(f".{dest.name}.partial")
    if staging.exists():
        shutil.rmtree(staging)
    dest.parent.mkdir(parents=True, exist_ok=True)
    staging.mkdir()

    logger.info(f"Extracting {archive} into {dest}")
    try:
        with tarfile.open(archive, "r:gz") as tar:
            tar.extractall(staging, filter="data")
    except (tarfile.TarError, OSError, EOFError) as e:
        shutil.rmtree(staging, ignore_errors=True)
        raise ExtractionError(
            "Could not extract runner archive.",
            context={"archive": str(archive), "error": f"{type(e).__name__}: {e}"},
        ) from e

    if dest.exists():
        logger.info(f"Replacing existing install at {dest}")
        shutil.rmtree(dest)
    os.replace(staging, dest)
    return dest
