"""Distribution download helpers."""

from __future__ import annotations

import http.client
import logging
import os
import tempfile
import urllib.error
import urllib.request
from pathlib import Path

from .artifacts import artifact_name, artifact_path, download_url
from .constants import HarnessSettings
from .errors import DownloadError

CHUNK_SIZE = 64 * 1024


def is_downloaded(path: Path) -> bool:
    """Whether a non-empty artifact already exists at ``path``."""
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def download_artifact(url: str, destination: Path, timeout: float, logger: logging.Logger) -> Path:
    """Stream ``url`` into ``destination``.

    The body is written to a temporary sibling and renamed into place, so an
    interrupted download never leaves a partial artifact behind.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{destination.name}.", dir=destination.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as out_file, urllib.request.urlopen(url, timeout=timeout) as response:  # noqa: S310
            while True:
                chunk = response.read(CHUNK_SIZE)
                if not chunk:
                    break
                out_file.write(chunk)
        os.replace(tmp_path, destination)
    except (urllib.error.URLError, http.client.HTTPException, TimeoutError, OSError, ValueError) as exc:
        raise DownloadError(f"Unable to download {url} into {destination}: {exc}") from exc
    finally:
        tmp_path.unlink(missing_ok=True)

    logger.info("Downloaded %s into %s", url, destination)
    return destination


def ensure_artifact(settings: HarnessSettings, logger: logging.Logger) -> Path:
    """Download the configured distribution unless it is already present."""
    name = artifact_name(settings.scala_version, settings.kafka_version)
    path = artifact_path(settings.artifact_dir, settings.scala_version, settings.kafka_version)

    logger.debug("Checking if %s is already downloaded into %s", name, settings.artifact_dir)
    if is_downloaded(path):
        logger.debug("%s is already downloaded into %s", name, settings.artifact_dir)
        return path

    url = download_url(settings.mirror_url, settings.scala_version, settings.kafka_version)
    logger.info("Downloading %s into %s", name, settings.artifact_dir)
    return download_artifact(url, path, settings.download_timeout, logger)
