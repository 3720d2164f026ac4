"""Streaming tar/tar.gz extraction that preserves POSIX permission bits."""

from __future__ import annotations

import logging
import os
import tarfile
from contextlib import ExitStack
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .archive_utils import (
    ArchiveEntry,
    DirectoryEntry,
    OtherEntry,
    RegularFileEntry,
    iter_entries,
    open_tar_stream,
    resolve_entry_path,
)
from .errors import (
    EntryIOError,
    MaterializeError,
    PermissionApplyError,
    StreamOpenError,
    UnsafeEntryPathError,
)
from .logging_utils import get_logger
from .posix_permissions import PERMISSION_BITS, format_permissions, to_mode, to_permission_set

PathLike = Union[str, os.PathLike]

_READ_ERRORS = (tarfile.TarError, OSError, EOFError)


def supports_posix_permissions() -> bool:
    """Whether the platform exposes POSIX permission bits."""
    return os.name == "posix"


class TarUnpacker:
    """Unpack tar archives entry by entry without buffering them in memory.

    Extraction is not transactional: when an entry fails, entries written
    before it stay on disk.
    """

    BUFFER_SIZE = 8 * 1024

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or get_logger(__name__)

    def unpack(self, archive_path: PathLike, output_path: PathLike, is_gzipped: bool) -> bool:
        """Unpack the archive file at ``archive_path`` into ``output_path``.

        Returns True on success and raises an ``UnpackError`` subclass
        otherwise.
        """
        archive = str(archive_path)
        try:
            source = open(archive_path, "rb")
        except OSError as exc:
            raise StreamOpenError("Unable to open archive", archive, str(output_path), exc) from exc
        with source:
            return self.unpack_stream(source, output_path, is_gzipped, archive_name=archive)

    def unpack_stream(
        self,
        source: BinaryIO,
        output_path: PathLike,
        compressed: bool,
        archive_name: Optional[str] = None,
    ) -> bool:
        """Unpack tar data read from ``source`` into ``output_path``.

        ``source`` is left open; the caller owns it.
        """
        archive = archive_name or str(getattr(source, "name", "<stream>"))
        root = Path(output_path).resolve()

        count = 0
        with ExitStack() as stack:
            try:
                tar = stack.enter_context(open_tar_stream(source, compressed, self.BUFFER_SIZE))
            except _READ_ERRORS as exc:
                raise StreamOpenError("Unable to open tar stream", archive, str(root), exc) from exc

            entries = iter_entries(tar)
            while True:
                try:
                    entry = next(entries, None)
                except _READ_ERRORS as exc:
                    raise EntryIOError("Unable to read archive entry", archive, str(root), exc) from exc
                if entry is None:
                    break
                self._materialize(tar, entry, root, archive)
                count += 1

        self.logger.debug("Unpacked %d entries from %s into %s", count, archive, root)
        return True

    def _materialize(self, tar: tarfile.TarFile, entry: ArchiveEntry, root: Path, archive: str) -> None:
        if isinstance(entry, DirectoryEntry):
            self._make_directory(self._resolve(root, entry.name, archive), archive)
        elif isinstance(entry, RegularFileEntry):
            self._write_file(tar, entry, self._resolve(root, entry.name, archive), archive)
        elif isinstance(entry, OtherEntry):
            self.logger.debug("Skipping unsupported %s entry %s", entry.kind, entry.name)
        else:
            raise TypeError(f"Unhandled archive entry: {entry!r}")

    @staticmethod
    def _resolve(root: Path, name: str, archive: str) -> Path:
        try:
            return resolve_entry_path(root, name)
        except ValueError as exc:
            raise UnsafeEntryPathError("Refusing to extract entry", archive, str(root), exc) from exc

    def _make_directory(self, target: Path, archive: str) -> None:
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise MaterializeError("Unable to create directory", archive, str(target), exc) from exc

    def _write_file(self, tar: tarfile.TarFile, entry: RegularFileEntry, target: Path, archive: str) -> None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            # Leftovers from a previous run may be read-only; links are never written through.
            if target.is_symlink() or target.is_file():
                target.unlink()
            sink = open(target, "wb", buffering=self.BUFFER_SIZE)
        except OSError as exc:
            raise MaterializeError("Unable to create file", archive, str(target), exc) from exc

        try:
            try:
                with sink:
                    self._copy_content(tar, entry, sink, target, archive)
            except OSError as exc:
                raise MaterializeError("Unable to close file", archive, str(target), exc) from exc
        except (EntryIOError, MaterializeError):
            target.unlink(missing_ok=True)
            raise

        self.logger.debug(
            "Extracted %s (%d bytes, %s)",
            entry.name,
            entry.size,
            format_permissions(entry.mode),
        )
        try:
            self.set_permissions(entry.mode, target)
        except OSError as exc:
            raise PermissionApplyError("Unable to set permissions", archive, str(target), exc) from exc

    def _copy_content(
        self,
        tar: tarfile.TarFile,
        entry: RegularFileEntry,
        sink: BinaryIO,
        target: Path,
        archive: str,
    ) -> None:
        copied = 0
        try:
            source = tar.extractfile(entry.member)
        except _READ_ERRORS as exc:
            raise EntryIOError("Unable to read entry content", archive, str(target), exc) from exc
        if source is None:
            raise EntryIOError("Entry has no content stream", archive, str(target))

        with source:
            while True:
                try:
                    chunk = source.read(self.BUFFER_SIZE)
                except _READ_ERRORS as exc:
                    raise EntryIOError("Unable to read entry content", archive, str(target), exc) from exc
                if not chunk:
                    break
                try:
                    sink.write(chunk)
                except OSError as exc:
                    raise MaterializeError("Unable to write file", archive, str(target), exc) from exc
                copied += len(chunk)

        if copied != entry.size:
            raise EntryIOError(
                f"Short entry content: expected {entry.size} bytes, got {copied}",
                archive,
                str(target),
            )

    def set_permissions(self, mode: int, path: Path) -> None:
        """Apply the nine permission bits of ``mode`` to ``path``.

        No-op on platforms without POSIX permissions.
        """
        if not supports_posix_permissions():
            return
        os.chmod(path, to_mode(to_permission_set(mode & PERMISSION_BITS)))


def unpack(archive_path: PathLike, output_path: PathLike, is_gzipped: bool,
           logger: Optional[logging.Logger] = None) -> bool:
    """Convenience wrapper around :meth:`TarUnpacker.unpack`."""
    return TarUnpacker(logger).unpack(archive_path, output_path, is_gzipped)


__all__ = ["TarUnpacker", "supports_posix_permissions", "unpack"]
