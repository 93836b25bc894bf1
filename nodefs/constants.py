"""Filesystem constants"""

import os
from enum import IntEnum
from typing import Union

from .errors import InvalidArgValueError

# File types for mode field
S_IFMT = 0o170000  # File type mask
S_IFSOCK = 0o140000  # Socket
S_IFLNK = 0o120000  # Symbolic link
S_IFREG = 0o100000  # Regular file
S_IFBLK = 0o060000  # Block device
S_IFDIR = 0o040000  # Directory
S_IFCHR = 0o020000  # Character device
S_IFIFO = 0o010000  # FIFO

# File access modes for access()
F_OK = 0
R_OK = 4
W_OK = 2
X_OK = 1

# copy_file() mode flags
COPYFILE_EXCL = 1
COPYFILE_FICLONE = 2
COPYFILE_FICLONE_FORCE = 4

# open() flags, taken from the host so the host binding can pass them through
O_RDONLY = os.O_RDONLY
O_WRONLY = os.O_WRONLY
O_RDWR = os.O_RDWR
O_CREAT = os.O_CREAT
O_EXCL = os.O_EXCL
O_TRUNC = os.O_TRUNC
O_APPEND = os.O_APPEND
O_SYNC = getattr(os, "O_SYNC", 0)
O_DSYNC = getattr(os, "O_DSYNC", 0)
O_NOCTTY = getattr(os, "O_NOCTTY", 0)
O_NONBLOCK = getattr(os, "O_NONBLOCK", 0)
O_DIRECTORY = getattr(os, "O_DIRECTORY", 0)
O_NOFOLLOW = getattr(os, "O_NOFOLLOW", 0)
O_ACCMODE = O_RDONLY | O_WRONLY | O_RDWR

# Default permissions
DEFAULT_FILE_MODE = 0o666
DEFAULT_DIR_MODE = 0o777

DEFAULT_CHUNK_SIZE = 4096
DEFAULT_PAGE_SIZE = 64

# Buffer size used by read() when the caller supplies no buffer
DEFAULT_READ_BUFFER_SIZE = 16384


class FileType(IntEnum):
    """Directory entry file types, numbered as the binding reports them"""

    UNKNOWN = 0
    BLOCK_DEVICE = 1
    CHARACTER_DEVICE = 2
    DIRECTORY = 3
    REGULAR_FILE = 4
    SOCKET_DGRAM = 5
    SOCKET_STREAM = 6
    SYMBOLIC_LINK = 7


_FLAG_STRINGS = {
    "r": O_RDONLY,
    "rs": O_RDONLY | O_SYNC,
    "sr": O_RDONLY | O_SYNC,
    "r+": O_RDWR,
    "rs+": O_RDWR | O_SYNC,
    "sr+": O_RDWR | O_SYNC,
    "w": O_TRUNC | O_CREAT | O_WRONLY,
    "wx": O_TRUNC | O_CREAT | O_WRONLY | O_EXCL,
    "xw": O_TRUNC | O_CREAT | O_WRONLY | O_EXCL,
    "w+": O_TRUNC | O_CREAT | O_RDWR,
    "wx+": O_TRUNC | O_CREAT | O_RDWR | O_EXCL,
    "xw+": O_TRUNC | O_CREAT | O_RDWR | O_EXCL,
    "a": O_APPEND | O_CREAT | O_WRONLY,
    "ax": O_APPEND | O_CREAT | O_WRONLY | O_EXCL,
    "xa": O_APPEND | O_CREAT | O_WRONLY | O_EXCL,
    "as": O_APPEND | O_CREAT | O_WRONLY | O_SYNC,
    "sa": O_APPEND | O_CREAT | O_WRONLY | O_SYNC,
    "a+": O_APPEND | O_CREAT | O_RDWR,
    "ax+": O_APPEND | O_CREAT | O_RDWR | O_EXCL,
    "xa+": O_APPEND | O_CREAT | O_RDWR | O_EXCL,
    "as+": O_APPEND | O_CREAT | O_RDWR | O_SYNC,
    "sa+": O_APPEND | O_CREAT | O_RDWR | O_SYNC,
}


def string_to_flags(flags: Union[str, int, None]) -> int:
    """Convert an open() flag string such as 'r+' or 'wx' to flag bits

    Integers are returned unchanged and None means 'r'.

    Raises:
        InvalidArgValueError: If the string is not a known flag
    """
    if flags is None:
        return O_RDONLY
    if isinstance(flags, int) and not isinstance(flags, bool):
        return flags
    if isinstance(flags, str) and flags in _FLAG_STRINGS:
        return _FLAG_STRINGS[flags]
    raise InvalidArgValueError("flags", flags)
