"""Streaming download of the runner release archive."""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

import httpx

from .config import HTTP_TIMEOUT_SECONDS
from .errors import FetchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Download:
    path: Path
    sha256: str
    size: int


def download(
    url: str,
    *,
    dest_dir: Path | None = None,
    filename: str | None = None,
    timeout: float = HTTP_TIMEOUT_SECONDS,
    transport: httpx.BaseTransport | None = None,
) -> Download:
    """Fetch ``url`` into a fresh temporary file, hashing bytes as they arrive.

    No retry: any transport error or non-2xx status raises FetchError and
    removes the partial file.
    """
    if dest_dir is not None:
        dest_dir.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=".download-",
        suffix=f"-{filename}" if filename else "",
        dir=str(dest_dir) if dest_dir is not None else None,
    )
    tmp_path = Path(tmp_name)
    digest = hashlib.sha256()
    size = 0

    logger.info(f"Downloading {url}...")
    try:
        with os.fdopen(fd, "wb") as out, httpx.Client(
            follow_redirects=True, timeout=timeout, transport=transport
        ) as client:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                for chunk in response.iter_bytes():
                    out.write(chunk)
                    digest.update(chunk)
                    size += len(chunk)
    except httpx.HTTPStatusError as e:
        tmp_path.unlink(missing_ok=True)
        raise FetchError(
            f"Download failed with HTTP {e.response.status_code}.",
            hint="Check that the pinned version has been published.",
            context={"url": url},
        ) from e
    except httpx.HTTPError as e:
        tmp_path.unlink(missing_ok=True)
        raise FetchError(
            "Download failed.",
            context={"url": url, "error": f"{type(e).__name__}: {e}"},
        ) from e
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise FetchError(
            "Could not write downloaded archive.",
            context={"url": url, "path": str(tmp_path), "error": str(e)},
        ) from e

    logger.info(f"Downloaded {size} bytes to {tmp_path}")
    return Download(path=tmp_path, sha256=digest.hexdigest(), size=size)
