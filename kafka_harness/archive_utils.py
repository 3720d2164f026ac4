"""Archive reading helpers shared by the unpacker.

The tape archive is read strictly sequentially: each member is classified
into one of a closed set of entry variants and must be consumed before the
next one is requested.
"""

from __future__ import annotations

import gzip
import posixpath
import tarfile
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterator, Union


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    mode: int


@dataclass(frozen=True)
class RegularFileEntry:
    name: str
    mode: int
    size: int
    member: tarfile.TarInfo = field(repr=False, compare=False)


@dataclass(frozen=True)
class OtherEntry:
    """An entry kind the unpacker does not materialize (links, devices, ...)."""

    name: str
    kind: str


ArchiveEntry = Union[DirectoryEntry, RegularFileEntry, OtherEntry]


def _other_kind(member: tarfile.TarInfo) -> str:
    if member.issym():
        return "symlink"
    if member.islnk():
        return "hardlink"
    if member.ischr():
        return "character device"
    if member.isblk():
        return "block device"
    if member.isfifo():
        return "fifo"
    return "unknown"


def classify_member(member: tarfile.TarInfo) -> ArchiveEntry:
    """Map a tar member onto its entry variant."""
    if member.isdir():
        return DirectoryEntry(name=member.name, mode=member.mode)
    if member.isreg():
        return RegularFileEntry(name=member.name, mode=member.mode, size=member.size, member=member)
    return OtherEntry(name=member.name, kind=_other_kind(member))


@contextmanager
def open_tar_stream(
    source: BinaryIO, compressed: bool, bufsize: int = tarfile.RECORDSIZE
) -> Iterator[tarfile.TarFile]:
    """Open a forward-only tar reader over ``source``.

    Compressed input is read through ``gzip.GzipFile``, which raises
    ``EOFError`` when the stream ends before its end-of-stream marker.
    ``source`` stays owned by the caller and is never closed here.
    """
    with ExitStack() as stack:
        fileobj = source
        if compressed:
            fileobj = stack.enter_context(gzip.GzipFile(fileobj=source, mode="rb"))
        yield stack.enter_context(tarfile.open(fileobj=fileobj, mode="r|", bufsize=bufsize))


def iter_entries(tar: tarfile.TarFile) -> Iterator[ArchiveEntry]:
    """Yield entries in archive order until end of archive."""
    while True:
        member = tar.next()
        if member is None:
            return
        yield classify_member(member)


def resolve_entry_path(destination_root: Path, name: str) -> Path:
    """Resolve an archive entry name against an already resolved root.

    Raises ``ValueError`` for absolute names and names that would land
    outside ``destination_root``, including through symlinked parents.
    The final path component is not resolved.
    """
    normalized = posixpath.normpath(name)
    if posixpath.isabs(normalized) or normalized == ".." or normalized.startswith("../"):
        raise ValueError(f"Unsafe tar member path detected: {name!r}")
    if normalized == ".":
        return destination_root

    target = destination_root.joinpath(*normalized.split("/"))
    parent = target.parent.resolve()
    if parent != destination_root and destination_root not in parent.parents:
        raise ValueError(f"Unsafe tar member path detected: {name!r}")
    return parent / target.name


__all__ = [
    "ArchiveEntry",
    "DirectoryEntry",
    "OtherEntry",
    "RegularFileEntry",
    "classify_member",
    "iter_entries",
    "open_tar_stream",
    "resolve_entry_path",
]
