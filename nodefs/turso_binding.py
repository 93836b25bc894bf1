"""Virtual binding backed by SQLite

Inodes, directory entries, chunked file data and symlink targets each live
in their own table. Descriptors are tracked in memory and never persisted.
"""

import functools
import logging
import posixpath
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import turso

from .binding import RawEntry, RawStat, ReaddirPage
from .constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PAGE_SIZE,
    O_ACCMODE,
    O_APPEND,
    O_CREAT,
    O_DIRECTORY,
    O_EXCL,
    O_RDONLY,
    O_TRUNC,
    O_WRONLY,
    S_IFDIR,
    S_IFLNK,
    S_IFMT,
    S_IFREG,
    FileType,
)
from .errors import BindingError
from .guards import (
    assert_directory_empty,
    assert_inode_is_directory,
    assert_not_directory,
    assert_not_root,
    get_inode_mode,
    get_inode_mode_or_raise,
    is_dir_mode,
    is_symlink_mode,
    raw_error,
)

logger = logging.getLogger(__name__)

ROOT_INO = 1
MAX_SYMLINK_HOPS = 40

_FIRST_FD = 3
_NS_PER_SEC = 1_000_000_000
_NS_PER_MS = 1_000_000

_F = TypeVar("_F", bound=Callable[..., Any])


def _atomic(method: _F) -> _F:
    """Roll back uncommitted changes when a primitive fails

    Driver errors are reported as BindingError with code IO so callers
    only ever see the binding's error vocabulary.
    """

    @functools.wraps(method)
    def wrapper(self: "TursoBinding", *args: Any) -> Any:
        try:
            return method(self, *args)
        except BindingError:
            self._db.rollback()
            raise
        except turso.Error as e:
            self._db.rollback()
            logger.warning("[TursoBinding] %s failed: %s", method.__name__, e)
            raise BindingError(str(e), "IO") from e

    return wrapper  # type: ignore[return-value]


_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS fs_config (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS fs_inode (
        ino INTEGER PRIMARY KEY AUTOINCREMENT,
        mode INTEGER NOT NULL,
        nlink INTEGER NOT NULL DEFAULT 0,
        uid INTEGER NOT NULL DEFAULT 0,
        gid INTEGER NOT NULL DEFAULT 0,
        size INTEGER NOT NULL DEFAULT 0,
        atime INTEGER NOT NULL,
        mtime INTEGER NOT NULL,
        ctime INTEGER NOT NULL,
        rdev INTEGER NOT NULL DEFAULT 0,
        atime_nsec INTEGER NOT NULL DEFAULT 0,
        mtime_nsec INTEGER NOT NULL DEFAULT 0,
        ctime_nsec INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS fs_dentry (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        parent_ino INTEGER NOT NULL,
        ino INTEGER NOT NULL,
        UNIQUE(parent_ino, name)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_fs_dentry_parent
    ON fs_dentry(parent_ino, name)
    """,
    """
    CREATE TABLE IF NOT EXISTS fs_data (
        ino INTEGER NOT NULL,
        chunk_index INTEGER NOT NULL,
        data BLOB NOT NULL,
        PRIMARY KEY (ino, chunk_index)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS fs_symlink (
        ino INTEGER PRIMARY KEY,
        target TEXT NOT NULL
    )
    """,
)


def _now() -> Tuple[int, int]:
    return divmod(time.time_ns(), _NS_PER_SEC)


def _to_ms(seconds: int, nsec: int) -> int:
    return seconds * 1000 + nsec // _NS_PER_MS


def _mode_to_filetype(mode: int) -> FileType:
    kind = mode & S_IFMT
    if kind == S_IFREG:
        return FileType.REGULAR_FILE
    if kind == S_IFDIR:
        return FileType.DIRECTORY
    if kind == S_IFLNK:
        return FileType.SYMBOLIC_LINK
    return FileType.UNKNOWN


@dataclass
class _OpenFile:
    """In-memory descriptor table entry"""

    ino: int
    path: str
    flags: int
    position: int = 0

    def readable(self) -> bool:
        return (self.flags & O_ACCMODE) != O_WRONLY

    def writable(self) -> bool:
        return (self.flags & O_ACCMODE) != O_RDONLY


class TursoBinding:
    """Binding storing a POSIX-like tree in a SQLite database

    Paths are absolute within the database; relative paths are taken from
    the root. Directory cookies are dentry ids, so entries added while a
    directory is being paged appear at most once.

    Example:
        >>> binding = TursoBinding.open_database(":memory:")
        >>> binding.mkdir("/data", False, 0o755)
    """

    def __init__(self, db: "turso.Connection", page_size: int = DEFAULT_PAGE_SIZE):
        """Private constructor - use TursoBinding.from_database() instead"""
        self._db = db
        self._page_size = page_size
        self._chunk_size = DEFAULT_CHUNK_SIZE
        self._files: Dict[int, _OpenFile] = {}
        self._next_fd = _FIRST_FD

    @staticmethod
    def from_database(db: "turso.Connection", page_size: int = DEFAULT_PAGE_SIZE) -> "TursoBinding":
        """Create a binding from an existing database connection

        Args:
            db: An existing turso Connection
            page_size: Entries returned per freaddir page

        Returns:
            Fully initialized TursoBinding instance
        """
        binding = TursoBinding(db, page_size)
        binding._initialize()
        return binding

    @staticmethod
    def open_database(path: str, page_size: int = DEFAULT_PAGE_SIZE) -> "TursoBinding":
        """Connect to the database at path (':memory:' allowed) and initialize it"""
        return TursoBinding.from_database(turso.connect(path), page_size)

    def get_database(self) -> "turso.Connection":
        """Get the underlying database connection"""
        return self._db

    def get_chunk_size(self) -> int:
        """Get the configured chunk size"""
        return self._chunk_size

    def close_database(self) -> None:
        """Drop every open descriptor and close the connection"""
        if self._files:
            logger.debug("[TursoBinding] Dropping %d open descriptors", len(self._files))
        self._files.clear()
        self._db.close()

    def _initialize(self) -> None:
        for statement in _SCHEMA:
            self._db.execute(statement)
        self._db.commit()
        self._chunk_size = self._ensure_root()

    def _ensure_root(self) -> int:
        """Ensure config and root directory exist, returns the chunk_size"""
        cursor = self._db.execute("SELECT value FROM fs_config WHERE key = 'chunk_size'")
        config = cursor.fetchone()

        if not config:
            self._db.execute(
                "INSERT INTO fs_config (key, value) VALUES ('chunk_size', ?)",
                (str(DEFAULT_CHUNK_SIZE),),
            )
            self._db.commit()
            chunk_size = DEFAULT_CHUNK_SIZE
        else:
            chunk_size = int(config[0]) if config[0] else DEFAULT_CHUNK_SIZE

        cursor = self._db.execute("SELECT ino FROM fs_inode WHERE ino = ?", (ROOT_INO,))
        if not cursor.fetchone():
            sec, nsec = _now()
            self._db.execute(
                """
                INSERT INTO fs_inode (ino, mode, nlink, uid, gid, size, atime, mtime, ctime,
                                      atime_nsec, mtime_nsec, ctime_nsec)
                VALUES (?, ?, 1, 0, 0, 0, ?, ?, ?, ?, ?, ?)
                """,
                (ROOT_INO, S_IFDIR | 0o755, sec, sec, sec, nsec, nsec, nsec),
            )
            self._db.commit()

        return chunk_size

    # Path resolution

    def _normalize_path(self, path: str) -> str:
        return posixpath.normpath("/" + path.lstrip("/"))

    def _split_path(self, path: str) -> List[str]:
        normalized = self._normalize_path(path)
        if normalized == "/":
            return []
        return [p for p in normalized.split("/") if p]

    def _lookup(self, parent_ino: int, name: str) -> Optional[int]:
        cursor = self._db.execute(
            """
            SELECT ino FROM fs_dentry
            WHERE parent_ino = ? AND name = ?
            """,
            (parent_ino, name),
        )
        row = cursor.fetchone()
        return row[0] if row else None

    def _walk(self, path: str, follow_last: bool = True) -> Tuple[int, str]:
        """Resolve path to (inode, canonical path), following symlinks

        The final component is only followed when follow_last is set.
        """
        normalized = self._normalize_path(path)
        parts = deque(self._split_path(normalized))
        stack = [ROOT_INO]
        names: List[str] = []
        hops = 0

        while parts:
            name = parts.popleft()
            if name == ".":
                continue
            if name == "..":
                if names:
                    names.pop()
                    stack.pop()
                continue

            if not is_dir_mode(get_inode_mode_or_raise(self._db, stack[-1], normalized)):
                raise raw_error("NOTDIR", normalized)
            child = self._lookup(stack[-1], name)
            if child is None:
                raise raw_error("NOENT", normalized)

            mode = get_inode_mode_or_raise(self._db, child, normalized)
            if is_symlink_mode(mode) and (parts or follow_last):
                hops += 1
                if hops > MAX_SYMLINK_HOPS:
                    raise raw_error("LOOP", normalized)
                target = self._read_symlink_target(child)
                if target.startswith("/"):
                    stack = [ROOT_INO]
                    names = []
                parts.extendleft(reversed([p for p in target.split("/") if p]))
                continue

            stack.append(child)
            names.append(name)

        return stack[-1], "/" + "/".join(names)

    def _resolve_parent(self, path: str) -> Optional[Tuple[int, str, str]]:
        """Get (parent inode, basename, normalized path); None for the root"""
        normalized = self._normalize_path(path)
        if normalized == "/":
            return None
        parent_ino, _ = self._walk(posixpath.dirname(normalized))
        assert_inode_is_directory(self._db, parent_ino, normalized)
        return parent_ino, posixpath.basename(normalized), normalized

    def _creation_target(self, path: str, exclusive: bool) -> Tuple[int, str, str]:
        """Where O_CREAT places a new file: (parent inode, basename, path)

        A dangling symlink in the final component is followed, so the file
        is created at its target. With O_EXCL any existing entry, dangling
        symlinks included, is EXIST.
        """
        hops = 0
        while True:
            parent = self._resolve_parent(path)
            if parent is None:
                raise raw_error("ISDIR", "/")
            parent_ino, name, normalized = parent
            child = self._lookup(parent_ino, name)
            if child is None:
                return parent
            if exclusive or not is_symlink_mode(get_inode_mode_or_raise(self._db, child, normalized)):
                raise raw_error("EXIST", normalized)
            hops += 1
            if hops > MAX_SYMLINK_HOPS:
                raise raw_error("LOOP", normalized)
            target = self._read_symlink_target(child)
            path = posixpath.join(posixpath.dirname(normalized), target)

    def _file(self, fd: int) -> _OpenFile:
        entry = self._files.get(fd)
        if entry is None:
            raise raw_error("BADF")
        return entry

    # Inode and dentry bookkeeping

    def _create_inode(self, mode: int, uid: int = 0, gid: int = 0) -> int:
        """Create an inode

        Note: We use RETURNING clause which requires explicit cursor close
        when working with CDC-enabled TursoDB connections.
        """
        sec, nsec = _now()
        cursor = self._db.cursor()
        try:
            cursor.execute(
                """
                INSERT INTO fs_inode (mode, uid, gid, size, atime, mtime, ctime,
                                      atime_nsec, mtime_nsec, ctime_nsec)
                VALUES (?, ?, ?, 0, ?, ?, ?, ?, ?, ?)
                RETURNING ino
                """,
                (mode, uid, gid, sec, sec, sec, nsec, nsec, nsec),
            )
            row = cursor.fetchone()
            assert row is not None
            ino = row[0]
        finally:
            cursor.close()
        return ino

    def _create_dentry(self, parent_ino: int, name: str, ino: int) -> None:
        self._db.execute(
            """
            INSERT INTO fs_dentry (name, parent_ino, ino)
            VALUES (?, ?, ?)
            """,
            (name, parent_ino, ino),
        )
        self._db.execute(
            "UPDATE fs_inode SET nlink = nlink + 1 WHERE ino = ?",
            (ino,),
        )

    def _get_link_count(self, ino: int) -> int:
        cursor = self._db.execute("SELECT nlink FROM fs_inode WHERE ino = ?", (ino,))
        result = cursor.fetchone()
        return result[0] if result else 0

    def _inode_size(self, ino: int) -> int:
        cursor = self._db.execute("SELECT size FROM fs_inode WHERE ino = ?", (ino,))
        row = cursor.fetchone()
        return row[0] if row else 0

    def _is_open(self, ino: int) -> bool:
        return any(entry.ino == ino for entry in self._files.values())

    def _purge_inode(self, ino: int) -> None:
        self._db.execute("DELETE FROM fs_inode WHERE ino = ?", (ino,))
        self._db.execute("DELETE FROM fs_data WHERE ino = ?", (ino,))
        self._db.execute("DELETE FROM fs_symlink WHERE ino = ?", (ino,))

    def _remove_dentry_and_maybe_inode(self, parent_ino: int, name: str, ino: int) -> None:
        """Remove directory entry, and the inode once unlinked and unopened"""
        self._db.execute(
            """
            DELETE FROM fs_dentry
            WHERE parent_ino = ? AND name = ?
            """,
            (parent_ino, name),
        )
        self._db.execute(
            "UPDATE fs_inode SET nlink = nlink - 1 WHERE ino = ?",
            (ino,),
        )
        if self._get_link_count(ino) == 0 and not self._is_open(ino):
            self._purge_inode(ino)

    def _remove_tree(self, dir_ino: int) -> None:
        """Recursively remove directory contents"""
        cursor = self._db.execute(
            """
            SELECT name, ino FROM fs_dentry
            WHERE parent_ino = ?
            ORDER BY name ASC
            """,
            (dir_ino,),
        )
        children = cursor.fetchall()

        for name, child_ino in children:
            mode = get_inode_mode(self._db, child_ino)
            if mode is not None and is_dir_mode(mode):
                self._remove_tree(child_ino)
            self._remove_dentry_and_maybe_inode(dir_ino, name, child_ino)

    def _touch(self, ino: int, *columns: str) -> None:
        sec, nsec = _now()
        assignments = ", ".join(f"{c} = ?, {c}_nsec = ?" for c in columns)
        params: List[Any] = []
        for _ in columns:
            params.extend((sec, nsec))
        params.append(ino)
        self._db.execute(f"UPDATE fs_inode SET {assignments} WHERE ino = ?", tuple(params))

    def _read_symlink_target(self, ino: int) -> str:
        cursor = self._db.execute("SELECT target FROM fs_symlink WHERE ino = ?", (ino,))
        row = cursor.fetchone()
        if not row:
            raise raw_error("NOENT")
        return row[0]

    def _stat_inode(self, ino: int, path: str) -> RawStat:
        cursor = self._db.execute(
            """
            SELECT ino, mode, nlink, uid, gid, size, atime, mtime, ctime, rdev,
                   atime_nsec, mtime_nsec, ctime_nsec
            FROM fs_inode
            WHERE ino = ?
            """,
            (ino,),
        )
        row = cursor.fetchone()
        if not row:
            raise raw_error("NOENT", path)

        (ino, mode, nlink, uid, gid, size, atime, mtime, _ctime, rdev,
         atime_nsec, mtime_nsec, _ctime_nsec) = row
        kind = mode & S_IFMT
        return {
            "is_file": kind == S_IFREG,
            "is_directory": kind == S_IFDIR,
            "is_symlink": kind == S_IFLNK,
            "is_block_device": False,
            "is_char_device": False,
            "is_socket": False,
            "size": size,
            "atime": _to_ms(atime, atime_nsec),
            "mtime": _to_ms(mtime, mtime_nsec),
            "birthtime": None,
            "dev": 0,
            "ino": ino,
            "mode": mode,
            "nlink": nlink,
            "uid": uid,
            "gid": gid,
            "rdev": rdev,
            "blksize": self._chunk_size,
            "blocks": -(-size // 512),
        }

    # Chunked data

    def _read_range(self, ino: int, offset: int, length: int) -> bytes:
        size = self._inode_size(ino)
        if offset >= size or length <= 0:
            return b""
        end = min(size, offset + length)
        first = offset // self._chunk_size
        last = (end - 1) // self._chunk_size

        cursor = self._db.execute(
            """
            SELECT chunk_index, data FROM fs_data
            WHERE ino = ? AND chunk_index BETWEEN ? AND ?
            ORDER BY chunk_index ASC
            """,
            (ino, first, last),
        )
        chunks = {index: bytes(data) for index, data in cursor.fetchall()}

        # Missing or short chunks read back as zeros up to the file size
        buffer = bytearray()
        for index in range(first, last + 1):
            buffer += chunks.get(index, b"").ljust(self._chunk_size, b"\0")
        start = offset - first * self._chunk_size
        return bytes(buffer[start : start + (end - offset)])

    def _write_range(self, ino: int, offset: int, data: bytes) -> int:
        if not data:
            return 0
        end = offset + len(data)
        first = offset // self._chunk_size
        last = (end - 1) // self._chunk_size

        cursor = self._db.execute(
            """
            SELECT chunk_index, data FROM fs_data
            WHERE ino = ? AND chunk_index BETWEEN ? AND ?
            """,
            (ino, first, last),
        )
        existing = {index: bytes(chunk) for index, chunk in cursor.fetchall()}

        for index in range(first, last + 1):
            chunk_start = index * self._chunk_size
            lo = max(offset, chunk_start) - chunk_start
            hi = min(end, chunk_start + self._chunk_size) - chunk_start
            chunk = bytearray(existing.get(index, b""))
            if len(chunk) < lo:
                chunk.extend(b"\0" * (lo - len(chunk)))
            chunk[lo:hi] = data[chunk_start + lo - offset : chunk_start + hi - offset]

            self._db.execute(
                "DELETE FROM fs_data WHERE ino = ? AND chunk_index = ?", (ino, index)
            )
            self._db.execute(
                """
                INSERT INTO fs_data (ino, chunk_index, data)
                VALUES (?, ?, ?)
                """,
                (ino, index, bytes(chunk)),
            )

        size = max(self._inode_size(ino), end)
        self._db.execute("UPDATE fs_inode SET size = ? WHERE ino = ?", (size, ino))
        self._touch(ino, "mtime", "ctime")
        return len(data)

    def _truncate_inode(self, ino: int, length: int) -> None:
        if length < self._inode_size(ino):
            keep = -(-length // self._chunk_size)
            self._db.execute(
                "DELETE FROM fs_data WHERE ino = ? AND chunk_index >= ?", (ino, keep)
            )
            tail = length % self._chunk_size
            if tail:
                cursor = self._db.execute(
                    "SELECT data FROM fs_data WHERE ino = ? AND chunk_index = ?",
                    (ino, keep - 1),
                )
                row = cursor.fetchone()
                if row and len(row[0]) > tail:
                    self._db.execute(
                        "UPDATE fs_data SET data = ? WHERE ino = ? AND chunk_index = ?",
                        (bytes(row[0])[:tail], ino, keep - 1),
                    )
        self._db.execute("UPDATE fs_inode SET size = ? WHERE ino = ?", (length, ino))
        self._touch(ino, "mtime", "ctime")

    # Binding primitives

    def stat(self, path: str) -> RawStat:
        ino, resolved = self._walk(path)
        return self._stat_inode(ino, resolved)

    def lstat(self, path: str) -> RawStat:
        ino, resolved = self._walk(path, follow_last=False)
        return self._stat_inode(ino, resolved)

    def fstat(self, fd: int) -> RawStat:
        entry = self._file(fd)
        return self._stat_inode(entry.ino, entry.path)

    @_atomic
    def mkdir(self, path: str, recursive: bool, mode: int) -> None:
        normalized = self._normalize_path(path)
        dir_mode = S_IFDIR | (mode & 0o7777)

        if recursive:
            parts = self._split_path(normalized)
            current = ROOT_INO
            prefix = ""
            for i, name in enumerate(parts):
                prefix += "/" + name
                child = self._lookup(current, name)
                if child is None:
                    child = self._create_inode(dir_mode)
                    self._create_dentry(current, name, child)
                else:
                    child, _ = self._walk(prefix)
                    if not is_dir_mode(get_inode_mode_or_raise(self._db, child, prefix)):
                        raise raw_error("EXIST" if i == len(parts) - 1 else "NOTDIR", prefix)
                current = child
            self._db.commit()
            return

        parent = self._resolve_parent(normalized)
        if parent is None:
            raise raw_error("EXIST", normalized)
        parent_ino, name, _ = parent
        if self._lookup(parent_ino, name) is not None:
            raise raw_error("EXIST", normalized)

        dir_ino = self._create_inode(dir_mode)
        self._create_dentry(parent_ino, name, dir_ino)
        self._touch(parent_ino, "mtime", "ctime")
        self._db.commit()

    @_atomic
    def rmdir(self, path: str, recursive: bool) -> None:
        normalized = self._normalize_path(path)
        assert_not_root(normalized)

        ino, _ = self._walk(normalized, follow_last=False)
        mode = get_inode_mode_or_raise(self._db, ino, normalized)
        if not is_dir_mode(mode):
            raise raw_error("NOTDIR", normalized)
        if recursive:
            self._remove_tree(ino)
        else:
            assert_directory_empty(self._db, ino, normalized)

        parent = self._resolve_parent(normalized)
        assert parent is not None
        parent_ino, name, _ = parent
        self._remove_dentry_and_maybe_inode(parent_ino, name, ino)
        self._db.commit()

    @_atomic
    def rm(self, path: str, recursive: bool, force: bool) -> None:
        normalized = self._normalize_path(path)
        assert_not_root(normalized)

        try:
            ino, _ = self._walk(normalized, follow_last=False)
        except BindingError as e:
            if force and e.code == "NOENT":
                return
            raise

        mode = get_inode_mode_or_raise(self._db, ino, normalized)
        if is_dir_mode(mode):
            if not recursive:
                raise raw_error("ISDIR", normalized)
            self._remove_tree(ino)

        parent = self._resolve_parent(normalized)
        assert parent is not None
        parent_ino, name, _ = parent
        self._remove_dentry_and_maybe_inode(parent_ino, name, ino)
        self._db.commit()

    @_atomic
    def rename(self, old_path: str, new_path: str) -> None:
        old_normalized = self._normalize_path(old_path)
        new_normalized = self._normalize_path(new_path)

        old_ino, _ = self._walk(old_normalized, follow_last=False)
        if old_normalized == new_normalized:
            return

        assert_not_root(old_normalized)
        assert_not_root(new_normalized)

        old_parent = self._resolve_parent(old_normalized)
        new_parent = self._resolve_parent(new_normalized)
        assert old_parent is not None and new_parent is not None
        old_parent_ino, old_name, _ = old_parent
        new_parent_ino, new_name, _ = new_parent

        old_is_dir = is_dir_mode(get_inode_mode_or_raise(self._db, old_ino, old_normalized))

        # Prevent renaming a directory into its own subtree (would create cycles)
        if old_is_dir and new_normalized.startswith(old_normalized + "/"):
            raise raw_error("INVAL", new_normalized)

        new_ino = self._lookup(new_parent_ino, new_name)
        if new_ino is not None:
            if new_ino == old_ino:
                return
            new_is_dir = is_dir_mode(get_inode_mode_or_raise(self._db, new_ino, new_normalized))
            if new_is_dir and not old_is_dir:
                raise raw_error("ISDIR", new_normalized)
            if not new_is_dir and old_is_dir:
                raise raw_error("NOTDIR", new_normalized)
            if new_is_dir:
                assert_directory_empty(self._db, new_ino, new_normalized)
            self._remove_dentry_and_maybe_inode(new_parent_ino, new_name, new_ino)

        self._db.execute(
            """
            UPDATE fs_dentry
            SET parent_ino = ?, name = ?
            WHERE parent_ino = ? AND name = ?
            """,
            (new_parent_ino, new_name, old_parent_ino, old_name),
        )

        self._touch(old_ino, "ctime")
        self._touch(old_parent_ino, "mtime", "ctime")
        if new_parent_ino != old_parent_ino:
            self._touch(new_parent_ino, "mtime", "ctime")
        self._db.commit()

    @_atomic
    def truncate(self, path: str, length: int) -> None:
        ino, resolved = self._walk(path)
        assert_not_directory(self._db, ino, resolved)
        self._truncate_inode(ino, length)
        self._db.commit()

    @_atomic
    def ftruncate(self, fd: int, length: int) -> None:
        entry = self._file(fd)
        if not entry.writable():
            raise raw_error("INVAL", entry.path)
        assert_not_directory(self._db, entry.ino, entry.path)
        self._truncate_inode(entry.ino, length)
        self._db.commit()

    def realpath(self, path: str) -> str:
        _, resolved = self._walk(path)
        return resolved

    @_atomic
    def copy_file(self, src: str, dest: str) -> None:
        src_ino, src_resolved = self._walk(src)
        src_mode = assert_not_directory(self._db, src_ino, src_resolved)

        dest_parent = self._resolve_parent(dest)
        if dest_parent is None:
            raise raw_error("ISDIR", "/")
        dest_parent_ino, dest_name, dest_normalized = dest_parent

        dest_ino = self._lookup(dest_parent_ino, dest_name)
        if dest_ino is not None:
            dest_ino, _ = self._walk(dest_normalized)
            if dest_ino == src_ino:
                raise raw_error("INVAL", dest_normalized)
            assert_not_directory(self._db, dest_ino, dest_normalized)
            self._db.execute("DELETE FROM fs_data WHERE ino = ?", (dest_ino,))
        else:
            dest_ino = self._create_inode(S_IFREG | (src_mode & 0o7777))
            self._create_dentry(dest_parent_ino, dest_name, dest_ino)

        cursor = self._db.execute(
            """
            SELECT chunk_index, data FROM fs_data
            WHERE ino = ?
            ORDER BY chunk_index ASC
            """,
            (src_ino,),
        )
        for chunk_index, data in cursor.fetchall():
            self._db.execute(
                """
                INSERT INTO fs_data (ino, chunk_index, data)
                VALUES (?, ?, ?)
                """,
                (dest_ino, chunk_index, data),
            )

        self._db.execute(
            "UPDATE fs_inode SET size = ? WHERE ino = ?",
            (self._inode_size(src_ino), dest_ino),
        )
        self._touch(dest_ino, "mtime", "ctime")
        self._db.commit()

    @_atomic
    def link(self, existing_path: str, new_path: str) -> None:
        ino, resolved = self._walk(existing_path, follow_last=False)
        if is_dir_mode(get_inode_mode_or_raise(self._db, ino, resolved)):
            raise raw_error("PERM", resolved)

        parent = self._resolve_parent(new_path)
        if parent is None:
            raise raw_error("EXIST", "/")
        parent_ino, name, normalized = parent
        if self._lookup(parent_ino, name) is not None:
            raise raw_error("EXIST", normalized)

        self._create_dentry(parent_ino, name, ino)
        self._touch(ino, "ctime")
        self._db.commit()

    @_atomic
    def symlink(self, target: str, path: str) -> None:
        parent = self._resolve_parent(path)
        if parent is None:
            raise raw_error("EXIST", "/")
        parent_ino, name, normalized = parent
        if self._lookup(parent_ino, name) is not None:
            raise raw_error("EXIST", normalized)

        ino = self._create_inode(S_IFLNK | 0o777)
        self._db.execute(
            "INSERT INTO fs_symlink (ino, target) VALUES (?, ?)",
            (ino, target),
        )
        self._db.execute(
            "UPDATE fs_inode SET size = ? WHERE ino = ?",
            (len(target.encode("utf-8")), ino),
        )
        self._create_dentry(parent_ino, name, ino)
        self._db.commit()

    def readlink(self, path: str) -> str:
        ino, resolved = self._walk(path, follow_last=False)
        if not is_symlink_mode(get_inode_mode_or_raise(self._db, ino, resolved)):
            raise raw_error("INVAL", resolved)
        return self._read_symlink_target(ino)

    @_atomic
    def open(self, path: str, flags: int, mode: int) -> int:
        normalized = self._normalize_path(path)
        writable = (flags & O_ACCMODE) != O_RDONLY

        try:
            ino, resolved = self._walk(normalized)
        except BindingError as e:
            if e.code != "NOENT" or not flags & O_CREAT:
                raise
            parent_ino, name, resolved = self._creation_target(normalized, bool(flags & O_EXCL))
            ino = self._create_inode(S_IFREG | (mode & 0o7777))
            self._create_dentry(parent_ino, name, ino)
            self._touch(parent_ino, "mtime", "ctime")
            self._db.commit()
        else:
            if flags & O_CREAT and flags & O_EXCL:
                raise raw_error("EXIST", normalized)
            existing_mode = get_inode_mode_or_raise(self._db, ino, resolved)
            if is_dir_mode(existing_mode):
                if writable:
                    raise raw_error("ISDIR", resolved)
            elif flags & O_DIRECTORY:
                raise raw_error("NOTDIR", resolved)
            elif flags & O_TRUNC and writable:
                self._truncate_inode(ino, 0)
                self._db.commit()

        fd = self._next_fd
        self._next_fd += 1
        self._files[fd] = _OpenFile(ino=ino, path=resolved, flags=flags)
        logger.debug("[TursoBinding] Opened %s as fd %d", resolved, fd)
        return fd

    @_atomic
    def close(self, fd: int) -> None:
        entry = self._files.pop(fd, None)
        if entry is None:
            raise raw_error("BADF")
        if self._get_link_count(entry.ino) == 0 and not self._is_open(entry.ino):
            self._purge_inode(entry.ino)
            self._db.commit()
        logger.debug("[TursoBinding] Closed fd %d", fd)

    def fsync(self, fd: int) -> None:
        self._file(fd)
        self._db.commit()

    def fdatasync(self, fd: int) -> None:
        self._file(fd)
        self._db.commit()

    def fread(self, fd: int, position: int, length: int) -> bytes:
        entry = self._file(fd)
        if not entry.readable():
            raise raw_error("BADF")
        assert_not_directory(self._db, entry.ino, entry.path)

        offset = entry.position if position < 0 else position
        data = self._read_range(entry.ino, offset, length)
        if position < 0:
            entry.position += len(data)
        return data

    @_atomic
    def fwrite(self, fd: int, position: int, data: bytes) -> int:
        entry = self._file(fd)
        if not entry.writable():
            raise raw_error("BADF")

        if entry.flags & O_APPEND:
            offset = self._inode_size(entry.ino)
        elif position < 0:
            offset = entry.position
        else:
            offset = position

        written = self._write_range(entry.ino, offset, bytes(data))
        if position < 0 or entry.flags & O_APPEND:
            entry.position = offset + written
        self._db.commit()
        return written

    def freaddir(self, fd: int, cookie: Any) -> ReaddirPage:
        entry = self._file(fd)
        assert_inode_is_directory(self._db, entry.ino, entry.path)

        after = cookie or 0
        entries: List[RawEntry] = []
        if after == 0:
            entries.append({"name": ".", "filetype": FileType.DIRECTORY})
            entries.append({"name": "..", "filetype": FileType.DIRECTORY})

        cursor = self._db.execute(
            """
            SELECT d.id, d.name, i.mode
            FROM fs_dentry d JOIN fs_inode i ON i.ino = d.ino
            WHERE d.parent_ino = ? AND d.id > ?
            ORDER BY d.id ASC
            LIMIT ?
            """,
            (entry.ino, after, self._page_size + 1),
        )
        rows = cursor.fetchall()
        finished = len(rows) <= self._page_size
        rows = rows[: self._page_size]

        for _, name, mode in rows:
            entries.append({"name": name, "filetype": _mode_to_filetype(mode)})
        next_cookie = rows[-1][0] if rows else after
        logger.debug(
            "[TursoBinding] Page of %d entries for fd %d (cookie %s, finished %s)",
            len(entries), fd, next_cookie, finished,
        )
        return ReaddirPage(entries=entries, cookie=next_cookie, finished=finished)

    def _set_times(self, ino: int, atime_ns: int, mtime_ns: int) -> None:
        atime, atime_nsec = divmod(atime_ns, _NS_PER_SEC)
        mtime, mtime_nsec = divmod(mtime_ns, _NS_PER_SEC)
        self._db.execute(
            """
            UPDATE fs_inode
            SET atime = ?, atime_nsec = ?, mtime = ?, mtime_nsec = ?
            WHERE ino = ?
            """,
            (atime, atime_nsec, mtime, mtime_nsec, ino),
        )
        self._touch(ino, "ctime")
        self._db.commit()

    @_atomic
    def utime(self, path: str, atime_ns: int, mtime_ns: int) -> None:
        ino, _ = self._walk(path)
        self._set_times(ino, atime_ns, mtime_ns)

    @_atomic
    def futime(self, fd: int, atime_ns: int, mtime_ns: int) -> None:
        self._set_times(self._file(fd).ino, atime_ns, mtime_ns)
