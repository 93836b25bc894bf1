"""Error types for filesystem operations and the binding error translator"""

from typing import Any, Dict, Literal, Optional, Type

# POSIX-style error codes surfaced to callers
FsErrorCode = Literal[
    "ENOENT",     # No such file or directory
    "EEXIST",     # File already exists
    "EISDIR",     # Is a directory (when file expected)
    "ENOTDIR",    # Not a directory (when directory expected)
    "ENOTEMPTY",  # Directory not empty
    "EPERM",      # Operation not permitted
    "EACCES",     # Permission denied
    "EINVAL",     # Invalid argument
    "EBADF",      # Bad file descriptor
    "EOVERFLOW",  # Value too large (out-of-range read)
    "ENOSYS",     # Function not implemented
]

# Filesystem syscall names for error reporting
# rm, scandir, copyfile and cp are not actual syscalls but used for convenience
FsSyscall = Literal[
    "open",
    "close",
    "stat",
    "lstat",
    "fstat",
    "mkdir",
    "rmdir",
    "rm",
    "unlink",
    "rename",
    "truncate",
    "ftruncate",
    "realpath",
    "scandir",
    "opendir",
    "copyfile",
    "cp",
    "access",
    "link",
    "symlink",
    "readlink",
    "read",
    "write",
    "fsync",
    "fdatasync",
    "utime",
    "futime",
]

# libuv errno values reported in the errno field
UV_EPERM = -1
UV_ENOENT = -2
UV_EBADF = -9
UV_EACCES = -13
UV_EEXIST = -17
UV_ENOTDIR = -20
UV_EISDIR = -21
UV_EINVAL = -22
UV_ENOSYS = -38
UV_ENOTEMPTY = -39
UV_EOVERFLOW = -75

_UV_ERRNOS: Dict[str, int] = {
    "EPERM": UV_EPERM,
    "ENOENT": UV_ENOENT,
    "EBADF": UV_EBADF,
    "EACCES": UV_EACCES,
    "EEXIST": UV_EEXIST,
    "ENOTDIR": UV_ENOTDIR,
    "EISDIR": UV_EISDIR,
    "EINVAL": UV_EINVAL,
    "ENOSYS": UV_ENOSYS,
    "ENOTEMPTY": UV_ENOTEMPTY,
    "EOVERFLOW": UV_EOVERFLOW,
}

_DESCRIPTIONS: Dict[str, str] = {
    "ENOENT": "no such file or directory",
    "EEXIST": "file already exists",
    "EISDIR": "illegal operation on a directory",
    "ENOTDIR": "not a directory",
    "ENOTEMPTY": "directory not empty",
    "EPERM": "operation not permitted",
    "EACCES": "permission denied",
    "EINVAL": "invalid argument",
    "EBADF": "bad file descriptor",
    "EOVERFLOW": "value too large for defined data type",
    "ENOSYS": "function not implemented",
}

# Raw codes the translator rewrites into a formatted, path-carrying error
_TRANSLATED_CODES = frozenset({"ENOENT", "EEXIST", "ENOTDIR"})


class BindingError(Exception):
    """Raw failure raised by a binding primitive

    Attributes:
        message: Native error message
        code: Errno name without its leading 'E' (e.g. 'NOENT')
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class ErrnoException(Exception):
    """Exception with errno-style attributes"""

    name = "Error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        syscall: Optional[str] = None,
        path: Optional[str] = None,
        errno: Optional[int] = None,
        dest: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.syscall = syscall
        self.path = path
        self.errno = errno
        self.dest = dest


class FileNotFoundErrnoException(ErrnoException, FileNotFoundError):
    pass


class FileExistsErrnoException(ErrnoException, FileExistsError):
    pass


class NotADirectoryErrnoException(ErrnoException, NotADirectoryError):
    pass


class IsADirectoryErrnoException(ErrnoException, IsADirectoryError):
    pass


class PermissionErrnoException(ErrnoException, PermissionError):
    pass


class UnsupportedOperationError(ErrnoException, NotImplementedError):
    """Raised by APIs this target cannot provide (watch, watch_file, unwatch)"""

    def __init__(self, operation: str):
        super().__init__(f"'{operation}' is unsupported", code="ENOSYS", syscall=None)


# Python-level exception classes per code, so callers can use built-in except clauses
_ERROR_CLASSES: Dict[str, Type[ErrnoException]] = {
    "ENOENT": FileNotFoundErrnoException,
    "EEXIST": FileExistsErrnoException,
    "ENOTDIR": NotADirectoryErrnoException,
    "EISDIR": IsADirectoryErrnoException,
    "EACCES": PermissionErrnoException,
    "EPERM": PermissionErrnoException,
}


def create_fs_error(
    code: FsErrorCode,
    syscall: FsSyscall,
    path: Optional[str] = None,
    message: Optional[str] = None,
    errno: Optional[int] = None,
    dest: Optional[str] = None,
) -> ErrnoException:
    """Create a filesystem error with consistent formatting

    Args:
        code: POSIX error code (e.g., 'ENOENT')
        syscall: System call name (e.g., 'open')
        path: Optional path involved in the error
        message: Optional custom message (defaults to the code's description)
        errno: Optional libuv errno value (defaults to the code's value)
        dest: Optional destination path for two-path operations

    Returns:
        ErrnoException with formatted message and attributes

    Example:
        >>> str(create_fs_error("ENOENT", "access", "/missing"))
        "ENOENT: no such file or directory, access '/missing'"
    """
    base = message if message else _DESCRIPTIONS.get(code, code)
    suffix = f" '{path}'" if path is not None else ""
    if dest is not None:
        suffix += f" -> '{dest}'"
    error_message = f"{code}: {base}, {syscall}{suffix}"

    if errno is None:
        errno = _UV_ERRNOS.get(code)

    error_class = _ERROR_CLASSES.get(code, ErrnoException)
    return error_class(
        error_message, code=code, syscall=syscall, path=path, errno=errno, dest=dest
    )


class CopyError(ErrnoException):
    """Failure of a tree copy that is not a plain primitive error

    Codes are ERR_FS_EISDIR, ERR_FS_CP_EINVAL, ERR_FS_CP_EEXIST,
    ERR_FS_CP_DIR_TO_NON_DIR, ERR_FS_CP_NON_DIR_TO_DIR, ERR_FS_CP_FIFO_PIPE,
    ERR_FS_CP_SOCKET and ERR_FS_CP_UNKNOWN.
    """

    name = "SystemError"


def create_cp_error(
    code: str,
    message: str,
    path: str,
    dest: Optional[str] = None,
    errno: int = UV_EINVAL,
) -> CopyError:
    """Create a copy error formatted like the other filesystem errors

    Example:
        >>> str(create_cp_error("ERR_FS_CP_EEXIST", "file already exists", "/b"))
        "ERR_FS_CP_EEXIST: file already exists, cp '/b'"
    """
    suffix = f" '{path}'"
    if dest is not None:
        suffix += f" -> '{dest}'"
    return CopyError(
        f"{code}: {message}, cp{suffix}",
        code=code, syscall="cp", path=path, errno=errno, dest=dest,
    )


def pass_through_error(err: BindingError) -> ErrnoException:
    """Forward a raw failure unchanged except for the 'E' code prefix"""
    if not err.code:
        return ErrnoException(err.message)
    code = f"E{err.code}"
    error_class = _ERROR_CLASSES.get(code, ErrnoException)
    return error_class(err.message, code=code, errno=_UV_ERRNOS.get(code))


def translate_error(
    err: BindingError,
    syscall: FsSyscall,
    path: Optional[str] = None,
    dest: Optional[str] = None,
) -> ErrnoException:
    """Map a raw binding failure onto the public error vocabulary

    Missing-entry, already-exists and not-a-directory failures become
    formatted errors carrying path and syscall; everything else keeps the
    native message with the code prefixed.
    """
    code = f"E{err.code}" if err.code else None
    if code in _TRANSLATED_CODES:
        return create_fs_error(code, syscall, path=path, dest=dest)  # type: ignore[arg-type]
    return pass_through_error(err)


def translate_read_error(err: BindingError) -> ErrnoException:
    """Translate a read failure; an invalid-argument read is out of range"""
    if err.code == "INVAL":
        return ErrnoException(err.message, code="EOVERFLOW", errno=UV_EOVERFLOW)
    return translate_error(err, "read")


class NodeError(Exception):
    """Argument validation failure, always raised synchronously"""

    code = "ERR_INVALID_ARG"
    name = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _describe(value: Any) -> str:
    if value is None:
        return "None"
    if callable(value):
        return f"function {getattr(value, '__name__', '<anonymous>')}"
    return f"type {type(value).__name__} ({value!r})"


class InvalidArgTypeError(NodeError, TypeError):
    code = "ERR_INVALID_ARG_TYPE"
    name = "TypeError"

    def __init__(self, name: str, expected: str, actual: Any):
        super().__init__(
            f'The "{name}" argument must be of type {expected}. Received {_describe(actual)}'
        )


class InvalidArgValueError(NodeError, ValueError):
    code = "ERR_INVALID_ARG_VALUE"
    name = "TypeError"

    def __init__(self, name: str, value: Any, reason: str = "is invalid"):
        super().__init__(f"The argument '{name}' {reason}. Received {value!r}")


class OutOfRangeError(NodeError, ValueError):
    code = "ERR_OUT_OF_RANGE"
    name = "RangeError"

    def __init__(self, name: str, expected: str, actual: Any):
        super().__init__(
            f'The value of "{name}" is out of range. It must be {expected}. Received {actual!r}'
        )


class IncompatibleOptionPairError(NodeError, TypeError):
    code = "ERR_INCOMPATIBLE_OPTION_PAIR"
    name = "TypeError"

    def __init__(self, first: str, second: str):
        super().__init__(f'Option "{first}" cannot be used in combination with option "{second}"')


class DirClosedError(NodeError):
    code = "ERR_DIR_CLOSED"

    def __init__(self) -> None:
        super().__init__("Directory handle was closed")
