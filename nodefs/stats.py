"""Metadata snapshots built from raw binding stat results"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Optional, Union

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_NS_PER_MS = 1_000_000

# Raw type flags a binding reports alongside the numeric fields
_TYPE_FLAGS = (
    "is_file",
    "is_directory",
    "is_symlink",
    "is_block_device",
    "is_char_device",
    "is_socket",
)


def _to_number(value: Any) -> Optional[Union[int, float]]:
    """Standard precision: route the value through an IEEE double"""
    if value is None:
        return None
    number = float(value)
    if number.is_integer():
        return int(number)
    return number


def _to_bigint(value: Any) -> Optional[int]:
    """Arbitrary precision: keep integers exact, floor fractional values"""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return math.floor(value)


def _to_datetime(ms: Any) -> Optional[datetime]:
    if ms is None:
        return None
    return _EPOCH + timedelta(milliseconds=ms)


def _type_flags(raw: Mapping) -> Mapping:
    return MappingProxyType({name: bool(raw.get(name, False)) for name in _TYPE_FLAGS})


class _TypePredicates:
    """Type predicates answered from the snapshot's private raw flags"""

    _flags: Mapping

    def is_file(self) -> bool:
        """Check if this is a regular file"""
        return self._flags["is_file"]

    def is_directory(self) -> bool:
        """Check if this is a directory"""
        return self._flags["is_directory"]

    def is_symbolic_link(self) -> bool:
        """Check if this is a symbolic link"""
        return self._flags["is_symlink"]

    def is_block_device(self) -> bool:
        return self._flags["is_block_device"]

    def is_character_device(self) -> bool:
        return self._flags["is_char_device"]

    def is_socket(self) -> bool:
        return self._flags["is_socket"]

    def is_fifo(self) -> bool:
        """Always False: bindings cannot represent FIFOs"""
        return False


@dataclass(frozen=True)
class Stats(_TypePredicates):
    """File/directory statistics in standard precision

    Numeric fields pass through a double, so values beyond 2**53 may lose
    precision. Use BigIntStats when exact values matter.

    Attributes:
        dev: Device id
        ino: Inode number
        mode: File mode and permissions
        nlink: Number of hard links
        uid: User ID
        gid: Group ID
        rdev: Special device id
        size: File size in bytes (0 when the binding omits it)
        blksize: Block size for filesystem I/O
        blocks: Number of allocated blocks
        atime, mtime, ctime, birthtime: Timestamps as UTC datetimes
        atime_ms, mtime_ms, ctime_ms, birthtime_ms: Timestamps in epoch milliseconds
    """

    dev: Optional[int]
    ino: Optional[int]
    mode: Optional[int]
    nlink: Optional[int]
    uid: Optional[int]
    gid: Optional[int]
    rdev: Optional[int]
    size: int
    blksize: Optional[int]
    blocks: Optional[int]
    atime: Optional[datetime]
    mtime: Optional[datetime]
    ctime: Optional[datetime]
    birthtime: Optional[datetime]
    atime_ms: Optional[float]
    mtime_ms: Optional[float]
    ctime_ms: Optional[float]
    birthtime_ms: Optional[float]
    _flags: Mapping = field(repr=False, compare=False)

    @classmethod
    def from_raw(cls, raw: Mapping) -> "Stats":
        if not isinstance(raw, Mapping):
            raise TypeError(f"raw stat must be a mapping, got {type(raw).__name__}")
        size = _to_number(raw.get("size"))
        return cls(
            dev=_to_number(raw.get("dev")),
            ino=_to_number(raw.get("ino")),
            mode=_to_number(raw.get("mode")),
            nlink=_to_number(raw.get("nlink")),
            uid=_to_number(raw.get("uid")),
            gid=_to_number(raw.get("gid")),
            rdev=_to_number(raw.get("rdev")),
            size=size if size else 0,
            blksize=_to_number(raw.get("blksize")),
            blocks=_to_number(raw.get("blocks")),
            atime=_to_datetime(raw.get("atime")),
            mtime=_to_datetime(raw.get("mtime")),
            ctime=_to_datetime(raw.get("mtime")),
            birthtime=_to_datetime(raw.get("birthtime")),
            atime_ms=_to_number(raw.get("atime")),
            mtime_ms=_to_number(raw.get("mtime")),
            ctime_ms=_to_number(raw.get("mtime")),
            birthtime_ms=_to_number(raw.get("birthtime")),
            _flags=_type_flags(raw),
        )


def _ns(ms: Optional[int]) -> Optional[int]:
    return None if ms is None else ms * _NS_PER_MS


@dataclass(frozen=True)
class BigIntStats(_TypePredicates):
    """File/directory statistics with exact integers

    Same fields as Stats, plus nanosecond timestamps derived from the
    millisecond values.
    """

    dev: Optional[int]
    ino: Optional[int]
    mode: Optional[int]
    nlink: Optional[int]
    uid: Optional[int]
    gid: Optional[int]
    rdev: Optional[int]
    size: int
    blksize: Optional[int]
    blocks: Optional[int]
    atime: Optional[datetime]
    mtime: Optional[datetime]
    ctime: Optional[datetime]
    birthtime: Optional[datetime]
    atime_ms: Optional[int]
    mtime_ms: Optional[int]
    ctime_ms: Optional[int]
    birthtime_ms: Optional[int]
    atime_ns: Optional[int]
    mtime_ns: Optional[int]
    ctime_ns: Optional[int]
    birthtime_ns: Optional[int]
    _flags: Mapping = field(repr=False, compare=False)

    @classmethod
    def from_raw(cls, raw: Mapping) -> "BigIntStats":
        if not isinstance(raw, Mapping):
            raise TypeError(f"raw stat must be a mapping, got {type(raw).__name__}")
        size = _to_bigint(raw.get("size"))
        atime_ms = _to_bigint(raw.get("atime"))
        mtime_ms = _to_bigint(raw.get("mtime"))
        birthtime_ms = _to_bigint(raw.get("birthtime"))
        return cls(
            dev=_to_bigint(raw.get("dev")),
            ino=_to_bigint(raw.get("ino")),
            mode=_to_bigint(raw.get("mode")),
            nlink=_to_bigint(raw.get("nlink")),
            uid=_to_bigint(raw.get("uid")),
            gid=_to_bigint(raw.get("gid")),
            rdev=_to_bigint(raw.get("rdev")),
            size=size if size else 0,
            blksize=_to_bigint(raw.get("blksize")),
            blocks=_to_bigint(raw.get("blocks")),
            atime=_to_datetime(raw.get("atime")),
            mtime=_to_datetime(raw.get("mtime")),
            ctime=_to_datetime(raw.get("mtime")),
            birthtime=_to_datetime(raw.get("birthtime")),
            atime_ms=atime_ms,
            mtime_ms=mtime_ms,
            ctime_ms=mtime_ms,
            birthtime_ms=birthtime_ms,
            atime_ns=_ns(atime_ms),
            mtime_ns=_ns(mtime_ms),
            ctime_ns=_ns(mtime_ms),
            birthtime_ns=_ns(birthtime_ms),
            _flags=_type_flags(raw),
        )


def create_stats(raw: Mapping, bigint: bool = False) -> Union[Stats, BigIntStats]:
    """Build the snapshot for one raw stat result in the requested precision"""
    if bigint:
        return BigIntStats.from_raw(raw)
    return Stats.from_raw(raw)
