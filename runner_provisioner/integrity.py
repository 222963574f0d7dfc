"""SHA-256 pinning for downloaded release archives."""

from __future__ import annotations

import hashlib
import hmac
import logging
from pathlib import Path

from .config import normalize_checksum
from .errors import IntegrityError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as e:
        raise IntegrityError(
            "Could not read archive to verify it.",
            context={"path": str(path), "error": f"{type(e).__name__}: {e}"},
        ) from e
    return digest.hexdigest()


def verify_digest(actual: str, expected: str, *, source: str) -> None:
    """Raise IntegrityError unless ``actual`` equals the pinned ``expected`` digest."""
    expected = normalize_checksum(expected)
    if not hmac.compare_digest(actual.lower(), expected):
        logger.error(f"Checksum mismatch for {source}")
        raise IntegrityError(
            "Artifact checksum mismatch.",
            hint="Refusing to trust the archive. Check the pinned version and checksum.",
            context={"source": source, "expected": expected, "actual": actual},
        )
    logger.info(f"Checksum verified for {source}: sha256:{expected}")


def verify_file(path: Path, expected: str) -> str:
    actual = sha256_file(path)
    verify_digest(actual, expected, source=str(path))
    return actual
