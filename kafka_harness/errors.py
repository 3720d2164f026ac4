"""
Custom exception classes for the Kafka harness.
"""

from __future__ import annotations

from typing import Optional


class KafkaHarnessError(Exception):
    """Base exception class for Kafka harness errors."""
    pass


class UnpackError(KafkaHarnessError):
    """Raised when a distribution archive cannot be extracted.

    Carries the archive being read, the destination path involved and the
    underlying cause so failures can be diagnosed without re-running.
    """

    def __init__(self, message: str, archive: str, destination: str,
                 cause: Optional[BaseException] = None) -> None:
        self.archive = archive
        self.destination = destination
        self.cause = cause
        detail = f"{message} (archive={archive!r}, destination={destination!r})"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail)


class StreamOpenError(UnpackError):
    """Raised when the archive stream or the decompression filter cannot be opened."""
    pass


class EntryIOError(UnpackError):
    """Raised when reading an entry header or its content fails mid-stream."""
    pass


class MaterializeError(UnpackError):
    """Raised when a directory or file sink cannot be created or closed."""
    pass


class PermissionApplyError(UnpackError):
    """Raised when permission bits cannot be applied to an extracted file."""
    pass


class UnsafeEntryPathError(UnpackError):
    """Raised when an entry name would resolve outside the destination root."""
    pass


class DownloadError(KafkaHarnessError):
    """Raised when a distribution artifact cannot be downloaded."""
    pass


class InstanceError(KafkaHarnessError):
    """Raised when an extracted instance is missing or unusable."""
    pass


class ProcessLaunchError(KafkaHarnessError):
    """Raised when a server process fails to start or become reachable."""
    pass
