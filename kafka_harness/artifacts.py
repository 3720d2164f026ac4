"""Distribution naming helpers mapping versions to artifact paths."""

from __future__ import annotations

import re
from pathlib import Path

from .constants import INSTANCE_DIR_NAME

_SAFE_VERSION_PATTERN = re.compile(r"^[0-9][0-9A-Za-z._-]*$")
_GZIP_SUFFIXES = (".tgz", ".tar.gz", ".gz")


def _check_version(kind: str, version: str) -> str:
    if not version or not _SAFE_VERSION_PATTERN.match(version):
        raise ValueError(f"Invalid {kind} version: {version!r}")
    return version


def instance_name(scala_version: str, kafka_version: str) -> str:
    """Top-level directory name inside the distribution archive."""
    scala = _check_version("Scala", scala_version)
    kafka = _check_version("Kafka", kafka_version)
    return f"kafka_{scala}-{kafka}"


def artifact_name(scala_version: str, kafka_version: str) -> str:
    return f"{instance_name(scala_version, kafka_version)}.tgz"


def artifact_path(artifact_dir: Path, scala_version: str, kafka_version: str) -> Path:
    return Path(artifact_dir) / artifact_name(scala_version, kafka_version)


def instance_dir(build_dir: Path) -> Path:
    return Path(build_dir) / INSTANCE_DIR_NAME


def download_url(mirror_url: str, scala_version: str, kafka_version: str) -> str:
    name = artifact_name(scala_version, kafka_version)
    return f"{mirror_url.rstrip('/')}/{kafka_version}/{name}"


def is_gzipped_archive(path: Path) -> bool:
    return Path(path).name.lower().endswith(_GZIP_SUFFIXES)
