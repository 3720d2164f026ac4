"""Test configuration: stable temp directory on WSL and archive fixtures."""

from __future__ import annotations

import os
import platform
import tempfile
from pathlib import Path

import pytest

from tar_helpers import tar_bytes


def _is_wsl() -> bool:
    release = platform.release().lower()
    version = platform.version().lower()
    return "microsoft" in release or "microsoft" in version


if _is_wsl() and os.path.isdir("/tmp"):
    os.environ["TMPDIR"] = "/tmp"
    os.environ["TEMP"] = "/tmp"
    os.environ["TMP"] = "/tmp"
    tempfile.tempdir = "/tmp"


@pytest.fixture
def make_archive(tmp_path):
    """Write an archive built from entries and return its path."""
    counter = {"n": 0}

    def _make(entries, compressed=True, name=None) -> Path:
        counter["n"] += 1
        if name is None:
            suffix = ".tar.gz" if compressed else ".tar"
            name = f"archive{counter['n']}{suffix}"
        path = tmp_path / name
        path.write_bytes(tar_bytes(entries, compressed=compressed))
        return path

    return _make
