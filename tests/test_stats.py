"""Metadata snapshot tests"""

import dataclasses
from datetime import datetime, timezone

import pytest

from nodefs import BigIntStats, Stats, create_stats

RAW = {
    "is_file": True,
    "is_directory": False,
    "is_symlink": False,
    "size": 1234,
    "mtime": 1_700_000_000_123,
    "atime": 1_700_000_000_456,
    "birthtime": None,
    "dev": 1,
    "ino": 42,
    "mode": 0o100644,
    "nlink": 1,
    "uid": 1000,
    "gid": 1000,
    "rdev": 0,
    "blksize": 4096,
    "blocks": 8,
}


class TestStats:
    """Standard precision snapshots"""

    def test_fields_from_raw(self):
        """Should copy numeric fields and convert timestamps"""
        stats = create_stats(RAW)
        assert isinstance(stats, Stats)
        assert stats.ino == 42
        assert stats.size == 1234
        assert stats.mode == 0o100644
        assert stats.mtime_ms == 1_700_000_000_123
        assert stats.mtime == datetime(2023, 11, 14, 22, 13, 20, 123000, tzinfo=timezone.utc)

    def test_ctime_mirrors_mtime(self):
        """Should report ctime equal to mtime"""
        stats = create_stats(RAW)
        assert stats.ctime == stats.mtime
        assert stats.ctime_ms == stats.mtime_ms

    def test_missing_fields_are_none(self):
        """Should map omitted raw values to None and size to 0"""
        stats = create_stats({"is_file": True})
        assert stats.size == 0
        assert stats.ino is None
        assert stats.mtime is None
        assert stats.birthtime_ms is None

    def test_type_predicates(self):
        """Should answer predicates from the raw type flags"""
        stats = create_stats({"is_directory": True})
        assert stats.is_directory()
        assert not stats.is_file()
        assert not stats.is_symbolic_link()
        assert not stats.is_fifo()

    def test_snapshot_is_frozen(self):
        """Should not allow mutating a snapshot"""
        stats = create_stats(RAW)
        with pytest.raises(dataclasses.FrozenInstanceError):
            stats.size = 0

    def test_precision_loss_beyond_double(self):
        """Should route standard precision values through a double"""
        stats = create_stats({"size": 2**53 + 1})
        assert stats.size == 2**53

    def test_non_mapping_rejected(self):
        """Should raise TypeError for a non-mapping raw result"""
        with pytest.raises(TypeError):
            create_stats([("size", 1)])


class TestBigIntStats:
    """Arbitrary precision snapshots"""

    def test_exact_integers(self):
        """Should keep integers exact"""
        stats = create_stats({"size": 2**53 + 1}, bigint=True)
        assert isinstance(stats, BigIntStats)
        assert stats.size == 2**53 + 1

    def test_nanoseconds_derived_from_milliseconds(self):
        """Should derive *_ns as ms * 1,000,000"""
        stats = create_stats(RAW, bigint=True)
        assert stats.mtime_ns == 1_700_000_000_123 * 1_000_000
        assert stats.atime_ns == 1_700_000_000_456 * 1_000_000
        assert stats.ctime_ns == stats.mtime_ns
        assert stats.birthtime_ns is None

    def test_agrees_with_standard_precision(self):
        """Should agree with Stats for values inside the double range"""
        standard = create_stats(RAW)
        exact = create_stats(RAW, bigint=True)
        for name in ("dev", "ino", "mode", "nlink", "uid", "gid", "size", "blocks"):
            assert getattr(standard, name) == getattr(exact, name)
        assert standard.mtime == exact.mtime
        assert standard.is_file() and exact.is_file()
