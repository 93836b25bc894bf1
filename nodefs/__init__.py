"""nodefs

A Node-style filesystem API (blocking, callback and promise forms) over a
pluggable binding: the host filesystem or a SQLite database.
"""

import logging

from . import constants
from .binding import Binding, HostBinding, ReaddirPage
from .constants import FileType, string_to_flags
from .deferred import promisify
from .dir import Dir, Dirent
from .errors import (
    BindingError,
    CopyError,
    DirClosedError,
    ErrnoException,
    FileExistsErrnoException,
    IncompatibleOptionPairError,
    FileNotFoundErrnoException,
    FsErrorCode,
    FsSyscall,
    InvalidArgTypeError,
    InvalidArgValueError,
    IsADirectoryErrnoException,
    NodeError,
    NotADirectoryErrnoException,
    OutOfRangeError,
    PermissionErrnoException,
    UnsupportedOperationError,
    create_cp_error,
    create_fs_error,
)
from .filehandle import CloseNotifier, FileHandle
from .filesystem import Filesystem
from .nodefs import FsOptions, NodeFS, default_fs
from .promises import FilesystemPromises
from .stats import BigIntStats, Stats, create_stats
from .streams import ReadStream, WriteStream
from .turso_binding import TursoBinding

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "NodeFS",
    "FsOptions",
    "default_fs",
    "Filesystem",
    "FilesystemPromises",
    "FileHandle",
    "CloseNotifier",
    "Dir",
    "Dirent",
    "Stats",
    "BigIntStats",
    "create_stats",
    "ReadStream",
    "WriteStream",
    "Binding",
    "BindingError",
    "HostBinding",
    "TursoBinding",
    "ReaddirPage",
    "FileType",
    "constants",
    "string_to_flags",
    "promisify",
    "ErrnoException",
    "FileNotFoundErrnoException",
    "FileExistsErrnoException",
    "NotADirectoryErrnoException",
    "IsADirectoryErrnoException",
    "PermissionErrnoException",
    "UnsupportedOperationError",
    "NodeError",
    "InvalidArgTypeError",
    "InvalidArgValueError",
    "OutOfRangeError",
    "DirClosedError",
    "FsErrorCode",
    "FsSyscall",
    "CopyError",
    "IncompatibleOptionPairError",
    "create_cp_error",
    "create_fs_error",
]
