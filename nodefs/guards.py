"""Guard functions for the SQLite-backed binding

Guards raise raw BindingError failures; the facade translates them like any
other binding failure.
"""

from typing import TYPE_CHECKING, Optional

from .constants import S_IFDIR, S_IFLNK, S_IFMT, S_IFREG
from .errors import BindingError

if TYPE_CHECKING:
    from turso import Connection

# Native messages, keyed by errno name without the leading 'E'
_MESSAGES = {
    "NOENT": "no such file or directory",
    "EXIST": "file already exists",
    "NOTDIR": "not a directory",
    "ISDIR": "is a directory",
    "NOTEMPTY": "directory not empty",
    "PERM": "operation not permitted",
    "INVAL": "invalid argument",
    "BADF": "bad file descriptor",
    "LOOP": "too many levels of symbolic links",
}


def raw_error(code: str, path: Optional[str] = None, message: Optional[str] = None) -> BindingError:
    """Build a raw failure in the shape a native binding reports"""
    text = message or _MESSAGES.get(code, code.lower())
    if path is not None:
        text = f"{text}: {path}"
    return BindingError(text, code)


def get_inode_mode(db: "Connection", ino: int) -> Optional[int]:
    """Get mode for an inode"""
    cursor = db.execute("SELECT mode FROM fs_inode WHERE ino = ?", (ino,))
    row = cursor.fetchone()
    return row[0] if row else None


def is_dir_mode(mode: int) -> bool:
    return (mode & S_IFMT) == S_IFDIR


def is_symlink_mode(mode: int) -> bool:
    return (mode & S_IFMT) == S_IFLNK


def is_file_mode(mode: int) -> bool:
    return (mode & S_IFMT) == S_IFREG


def get_inode_mode_or_raise(db: "Connection", ino: int, path: str) -> int:
    """Get inode mode or raise NOENT if the inode vanished"""
    mode = get_inode_mode(db, ino)
    if mode is None:
        raise raw_error("NOENT", path)
    return mode


def assert_not_root(path: str) -> None:
    """Assert that path is not the root directory"""
    if path == "/":
        raise raw_error("PERM", path, "operation not permitted on root directory")


def assert_inode_is_directory(db: "Connection", ino: int, path: str) -> None:
    """Assert that inode is a directory"""
    mode = get_inode_mode_or_raise(db, ino, path)
    if not is_dir_mode(mode):
        raise raw_error("NOTDIR", path)


def assert_not_directory(db: "Connection", ino: int, path: str) -> int:
    """Assert inode exists and is not a directory; returns its mode"""
    mode = get_inode_mode_or_raise(db, ino, path)
    if is_dir_mode(mode):
        raise raw_error("ISDIR", path)
    return mode


def assert_directory_empty(db: "Connection", ino: int, path: str) -> None:
    cursor = db.execute(
        """
        SELECT 1 as one FROM fs_dentry
        WHERE parent_ino = ?
        LIMIT 1
        """,
        (ino,),
    )
    if cursor.fetchone():
        raise raw_error("NOTEMPTY", path)
