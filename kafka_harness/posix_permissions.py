"""Conversion between POSIX mode integers and symbolic permission sets."""

from __future__ import annotations

from enum import Enum
from typing import AbstractSet, FrozenSet


class PosixPermission(Enum):
    """The nine read/write/execute permissions for owner, group and others."""

    OWNER_READ = 0o400
    OWNER_WRITE = 0o200
    OWNER_EXECUTE = 0o100
    GROUP_READ = 0o040
    GROUP_WRITE = 0o020
    GROUP_EXECUTE = 0o010
    OTHERS_READ = 0o004
    OTHERS_WRITE = 0o002
    OTHERS_EXECUTE = 0o001

    @property
    def bit(self) -> int:
        return self.value


PERMISSION_BITS = 0o777

_SYMBOLS = "rwxrwxrwx"


def _is_set(mode: int, bit: int) -> bool:
    return (mode & bit) == bit


def to_permission_set(mode: int) -> FrozenSet[PosixPermission]:
    """Return the permissions encoded in the low nine bits of ``mode``."""
    return frozenset(perm for perm in PosixPermission if _is_set(mode, perm.bit))


def to_mode(permissions: AbstractSet[PosixPermission]) -> int:
    """Return the nine-bit mode integer for ``permissions``."""
    result = 0
    for perm in permissions:
        result |= perm.bit
    return result


def format_permissions(mode: int) -> str:
    """Render ``mode`` the way ``ls -l`` does, e.g. ``rwxr-xr-x``."""
    granted = to_permission_set(mode)
    return "".join(
        symbol if perm in granted else "-"
        for symbol, perm in zip(_SYMBOLS, PosixPermission)
    )


__all__ = [
    "PERMISSION_BITS",
    "PosixPermission",
    "format_permissions",
    "to_mode",
    "to_permission_set",
]
