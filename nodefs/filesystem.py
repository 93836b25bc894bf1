"""Filesystem facade over a Binding

Each verb has one blocking body. The blocking form ``foo_sync`` validates
its arguments and runs the body directly; the callback form ``foo`` is
derived from the same two halves by ``callback_form`` and runs the body on
a later loop turn; the promise form lives on ``Filesystem.promises``.
"""

import logging
import posixpath
import random
import string
import time
from typing import Any, Callable, List, NamedTuple, Optional, Sequence, Tuple, Union

from . import constants
from .arguments import (
    ReadRequest,
    WriteRequest,
    decode_bytes,
    format_path,
    resolve_buffers,
    resolve_read_args,
    resolve_write_args,
    to_bytes,
)
from .binding import Binding
from .constants import (
    COPYFILE_EXCL,
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    O_DIRECTORY,
    O_RDONLY,
    string_to_flags,
)
from .deferred import Deliver, callback_form
from .dir import Dir, Dirent
from .errors import (
    UV_EEXIST,
    UV_EISDIR,
    UV_ENOENT,
    UV_ENOTDIR,
    BindingError,
    ErrnoException,
    IncompatibleOptionPairError,
    InvalidArgValueError,
    NodeError,
    UnsupportedOperationError,
    create_cp_error,
    create_fs_error,
    translate_error,
    translate_read_error,
)
from .options import (
    APPEND_FILE_DEFAULTS,
    CP_DEFAULTS,
    ENCODING_DEFAULTS,
    MKDIR_DEFAULTS,
    OPENDIR_DEFAULTS,
    READ_FILE_DEFAULTS,
    READDIR_DEFAULTS,
    RM_DEFAULTS,
    RMDIR_DEFAULTS,
    STAT_DEFAULTS,
    WRITE_FILE_DEFAULTS,
    apply_default_value,
    encoding_options,
)
from .promises import FilesystemPromises
from .stats import BigIntStats, Stats, create_stats
from .streams import ReadStream, WriteStream
from .validators import (
    get_valid_mode,
    get_valid_time,
    get_validated_fd,
    get_validated_path,
    optional_position,
    parse_file_mode,
    validate_boolean,
    validate_encoding,
    validate_function,
    validate_integer,
)

logger = logging.getLogger(__name__)

_TEMP_CHARACTERS = string.ascii_letters + string.digits
_TEMP_SUFFIX_LENGTH = 6
_READ_ALL_CHUNK = 64 * 1024
_SYMLINK_TYPES = (None, "file", "dir", "junction")
_ID_MAX = 2**32 - 1

Snapshot = Optional[Union[Stats, BigIntStats]]
FileTarget = Union[int, str]


def _stat_options(options: Any) -> Tuple[bool, bool]:
    options = apply_default_value(options, STAT_DEFAULTS)
    validate_boolean(options["bigint"], "options.bigint")
    validate_boolean(options["throw_if_no_entry"], "options.throw_if_no_entry")
    return options["bigint"], options["throw_if_no_entry"]


def _file_target(file: Any) -> FileTarget:
    """A file argument is either an open descriptor or a path"""
    if isinstance(file, int) and not isinstance(file, bool):
        return get_validated_fd(file, "file")
    return get_validated_path(file, "file")


def _encoding_option(options: Any, defaults: Any) -> Optional[str]:
    options = encoding_options(options, defaults)
    validate_encoding(options["encoding"])
    return options["encoding"]


def _validate_id(value: Any, name: str) -> None:
    validate_integer(value, name, -1, _ID_MAX)


class CopyOptions(NamedTuple):
    """Validated cp options"""

    dereference: bool
    error_on_exist: bool
    filter: Optional[Callable[[str, str], Any]]
    force: bool
    preserve_timestamps: bool
    recursive: bool
    verbatim_symlinks: bool


def _is_subdirectory(src: str, dest: str) -> bool:
    src_parts = [p for p in posixpath.normpath(src).split("/") if p]
    dest_parts = [p for p in posixpath.normpath(dest).split("/") if p]
    return len(dest_parts) > len(src_parts) and dest_parts[: len(src_parts)] == src_parts


class Filesystem:
    """Node-style filesystem API over a raw Binding

    Args:
        binding: Object implementing the Binding primitives

    Example:
        >>> fs = Filesystem(HostBinding())
        >>> fs.write_file_sync("/tmp/hello.txt", "Hello, world!")
        >>> fs.read_file_sync("/tmp/hello.txt", "utf8")
        'Hello, world!'
    """

    constants = constants

    def __init__(self, binding: Binding):
        self._binding = binding
        self._promises: Optional[FilesystemPromises] = None

    @property
    def binding(self) -> Binding:
        return self._binding

    @property
    def promises(self) -> FilesystemPromises:
        """Coroutine forms of the operations, created on first access"""
        if self._promises is None:
            self._promises = FilesystemPromises(self)
        return self._promises

    # ==================== Metadata ====================

    def _snapshot(
        self,
        fetch: Callable[[Any], Any],
        target: Any,
        syscall: str,
        path: Optional[str],
        bigint: bool,
        throw_if_no_entry: bool,
    ) -> Snapshot:
        try:
            raw = fetch(target)
        except BindingError as e:
            if e.code == "NOENT" and not throw_if_no_entry:
                return None
            raise translate_error(e, syscall, path) from e
        return create_stats(raw, bigint)

    def _prepare_stat(self, path: Any, options: Any = None) -> tuple:
        return (get_validated_path(path), *_stat_options(options))

    def _stat(self, path: str, bigint: bool, throw_if_no_entry: bool) -> Snapshot:
        return self._snapshot(self._binding.stat, path, "stat", path, bigint, throw_if_no_entry)

    def stat_sync(self, path: Any, options: Any = None) -> Snapshot:
        """Get metadata for a path, following symlinks

        Args:
            path: Path to inspect
            options: {bigint: False, throw_if_no_entry: True}

        Returns:
            Stats (or BigIntStats with bigint=True), or None for a missing
            entry when throw_if_no_entry is False

        Raises:
            FileNotFoundErrnoException: If the path does not exist
        """
        return self._stat(*self._prepare_stat(path, options))

    stat = callback_form(_prepare_stat, _stat, Deliver.VALUE)

    def _lstat(self, path: str, bigint: bool, throw_if_no_entry: bool) -> Snapshot:
        return self._snapshot(self._binding.lstat, path, "lstat", path, bigint, throw_if_no_entry)

    def lstat_sync(self, path: Any, options: Any = None) -> Snapshot:
        """Like stat_sync, but a symlink describes itself"""
        return self._lstat(*self._prepare_stat(path, options))

    lstat = callback_form(_prepare_stat, _lstat, Deliver.VALUE)

    def _prepare_fstat(self, fd: Any, options: Any = None) -> tuple:
        return (get_validated_fd(fd), *_stat_options(options))

    def _fstat(self, fd: int, bigint: bool, throw_if_no_entry: bool) -> Snapshot:
        return self._snapshot(self._binding.fstat, fd, "fstat", None, bigint, throw_if_no_entry)

    def fstat_sync(self, fd: Any, options: Any = None) -> Snapshot:
        return self._fstat(*self._prepare_fstat(fd, options))

    fstat = callback_form(_prepare_fstat, _fstat, Deliver.VALUE)

    def _prepare_access(self, path: Any, mode: Any = None) -> tuple:
        return get_validated_path(path), get_valid_mode(mode)

    def _access(self, path: str, mode: int) -> None:
        # Every failure, permission included, is reported as ENOENT
        try:
            raw = self._binding.stat(path)
            if (raw["mode"] & mode) != mode:
                raise create_fs_error("EACCES", "access", path)
        except (BindingError, ErrnoException) as e:
            raise create_fs_error("ENOENT", "access", path, errno=UV_ENOENT) from e

    def access_sync(self, path: Any, mode: Any = None) -> None:
        """Check that path exists and its mode grants every bit of mode

        Raises:
            FileNotFoundErrnoException: On any failure, including a denied mode
        """
        self._access(*self._prepare_access(path, mode))

    access = callback_form(_prepare_access, _access)

    def _prepare_exists(self, path: Any) -> tuple:
        return (path,)

    def _exists(self, path: Any) -> bool:
        try:
            self._binding.stat(get_validated_path(path))
        except (BindingError, NodeError):
            return False
        return True

    def exists_sync(self, path: Any) -> bool:
        """True if path exists; never raises"""
        return self._exists(path)

    exists = callback_form(_prepare_exists, _exists, Deliver.BARE)

    # ==================== Directories ====================

    def _prepare_mkdir(self, path: Any, options: Any = None) -> tuple:
        path = get_validated_path(path)
        if isinstance(options, (int, str)) and not isinstance(options, bool):
            options = {"mode": options}
        options = apply_default_value(options, MKDIR_DEFAULTS)
        validate_boolean(options["recursive"], "options.recursive")
        mode = parse_file_mode(options["mode"], "mode", DEFAULT_DIR_MODE)
        return path, options["recursive"], mode

    def _first_missing(self, path: str) -> Optional[str]:
        """First prefix of path that does not exist, scanning from the root"""
        normalized = posixpath.normpath(path)
        current = "/" if normalized.startswith("/") else ""
        for part in normalized.split("/"):
            if not part:
                continue
            current = posixpath.join(current, part) if current else part
            try:
                self._binding.stat(current)
            except BindingError:
                return current
        return None

    def _mkdir(self, path: str, recursive: bool, mode: int) -> Optional[str]:
        first_created = self._first_missing(path) if recursive else None
        try:
            self._binding.mkdir(path, recursive, mode)
        except BindingError as e:
            raise translate_error(e, "mkdir", path) from e
        return first_created

    def mkdir_sync(self, path: Any, options: Any = None) -> Optional[str]:
        """Create a directory

        Args:
            path: Directory to create
            options: {recursive: False, mode: 0o777}; an int or octal string
                is taken as the mode

        Returns:
            With recursive, the first directory actually created (None when
            everything existed); otherwise None

        Raises:
            FileExistsErrnoException: If path exists (non-recursive)
            FileNotFoundErrnoException: If the parent is missing (non-recursive)
            NotADirectoryErrnoException: If a component is not a directory
        """
        return self._mkdir(*self._prepare_mkdir(path, options))

    mkdir = callback_form(_prepare_mkdir, _mkdir, Deliver.VALUE)

    def _prepare_mkdtemp(self, prefix: Any, options: Any = None) -> tuple:
        return get_validated_path(prefix, "prefix"), _encoding_option(options, ENCODING_DEFAULTS)

    def _mkdtemp(self, prefix: str, encoding: Optional[str]) -> Union[str, bytes]:
        # No retry on collision
        suffix = "".join(random.choices(_TEMP_CHARACTERS, k=_TEMP_SUFFIX_LENGTH))
        path = prefix + suffix
        self._mkdir(path, False, DEFAULT_DIR_MODE)
        return format_path(path, encoding)

    def mkdtemp_sync(self, prefix: Any, options: Any = None) -> Union[str, bytes]:
        """Create a directory named prefix plus six random alphanumerics"""
        return self._mkdtemp(*self._prepare_mkdtemp(prefix, options))

    mkdtemp = callback_form(_prepare_mkdtemp, _mkdtemp, Deliver.VALUE)

    def _prepare_rmdir(self, path: Any, options: Any = None) -> tuple:
        path = get_validated_path(path)
        options = apply_default_value(options, RMDIR_DEFAULTS)
        validate_boolean(options["recursive"], "options.recursive")
        max_retries = validate_integer(options["max_retries"], "options.max_retries", 0)
        validate_integer(options["retry_delay"], "options.retry_delay", 0)
        return path, options["recursive"], max_retries

    def _rmdir(self, path: str, recursive: bool, max_retries: int) -> None:
        if max_retries:
            logger.warning(
                "[rmdir] Ignoring max_retries=%d for %s; rmdir makes a single attempt",
                max_retries, path,
            )
        try:
            self._binding.rmdir(path, recursive)
        except BindingError as e:
            raise translate_error(e, "rmdir", path) from e

    def rmdir_sync(self, path: Any, options: Any = None) -> None:
        """Remove a directory. Retry options are accepted but not honored."""
        self._rmdir(*self._prepare_rmdir(path, options))

    rmdir = callback_form(_prepare_rmdir, _rmdir)

    def _prepare_rm(self, path: Any, options: Any = None) -> tuple:
        path = get_validated_path(path)
        options = apply_default_value(options, RM_DEFAULTS)
        validate_boolean(options["force"], "options.force")
        validate_boolean(options["recursive"], "options.recursive")
        max_retries = validate_integer(options["max_retries"], "options.max_retries", 0)
        retry_delay = validate_integer(options["retry_delay"], "options.retry_delay", 0)
        return path, options["recursive"], options["force"], max_retries, retry_delay

    def _rm(self, path: str, recursive: bool, force: bool, max_retries: int, retry_delay: int) -> None:
        attempt = 0
        while True:
            try:
                self._binding.rm(path, recursive, force)
                return
            except BindingError as e:
                if attempt >= max_retries:
                    raise translate_error(e, "rm", path) from e
                attempt += 1
                logger.warning(
                    "[rm] Attempt %d/%d for %s failed (%s), retrying in %d ms",
                    attempt, max_retries + 1, path, e.message, retry_delay,
                )
                time.sleep(retry_delay / 1000)

    def rm_sync(self, path: Any, options: Any = None) -> None:
        """Remove a file or directory

        Args:
            path: Path to remove
            options: {force: False, max_retries: 0, recursive: False,
                retry_delay: 100}. A failed attempt is retried up to
                max_retries times, sleeping retry_delay milliseconds
                between attempts; only the last failure is raised.

        The sleep blocks the calling thread. The callback and promise forms
        run this body on the event loop, so their retries hold the loop for
        up to max_retries * retry_delay milliseconds.

        Example:
            >>> fs.rm_sync("/tmp/build", {"recursive": True, "force": True})
        """
        self._rm(*self._prepare_rm(path, options))

    rm = callback_form(_prepare_rm, _rm)

    def _prepare_opendir(self, path: Any, options: Any = None) -> tuple:
        return get_validated_path(path), _encoding_option(options, OPENDIR_DEFAULTS)

    def _opendir(self, path: str, encoding: Optional[str], syscall: str = "opendir") -> Dir:
        fd = self._open(path, O_RDONLY | O_DIRECTORY, 0, syscall)
        return Dir(self, fd, path, encoding)

    def opendir_sync(self, path: Any, options: Any = None) -> Dir:
        """Open a directory for lazy, paged iteration

        The returned Dir owns its descriptor; iterate it to the end or
        close it.
        """
        return self._opendir(*self._prepare_opendir(path, options))

    opendir = callback_form(_prepare_opendir, _opendir, Deliver.VALUE)

    def _prepare_readdir(self, path: Any, options: Any = None) -> tuple:
        path = get_validated_path(path)
        options = encoding_options(options, READDIR_DEFAULTS)
        validate_encoding(options["encoding"])
        validate_boolean(options["with_file_types"], "options.with_file_types")
        return path, options["encoding"], options["with_file_types"]

    def _readdir(self, path: str, encoding: Optional[str], with_file_types: bool) -> List[Any]:
        entries: List[Dirent] = list(self._opendir(path, encoding, "scandir"))
        if with_file_types:
            return entries
        return [entry.name for entry in entries]

    def readdir_sync(self, path: Any, options: Any = None) -> List[Any]:
        """List a directory without '.' and '..'

        Args:
            path: Directory to list
            options: {encoding: 'utf8', with_file_types: False}

        Returns:
            Entry names, or Dirent objects with with_file_types
        """
        return self._readdir(*self._prepare_readdir(path, options))

    readdir = callback_form(_prepare_readdir, _readdir, Deliver.VALUE)

    # ==================== Paths ====================

    def _prepare_rename(self, old_path: Any, new_path: Any) -> tuple:
        return get_validated_path(old_path, "old_path"), get_validated_path(new_path, "new_path")

    def _rename(self, old_path: str, new_path: str) -> None:
        try:
            self._binding.rename(old_path, new_path)
        except BindingError as e:
            raise translate_error(e, "rename", old_path, new_path) from e

    def rename_sync(self, old_path: Any, new_path: Any) -> None:
        self._rename(*self._prepare_rename(old_path, new_path))

    rename = callback_form(_prepare_rename, _rename)

    def _prepare_unlink(self, path: Any) -> tuple:
        return (get_validated_path(path),)

    def _unlink(self, path: str) -> None:
        try:
            self._binding.rm(path, False, False)
        except BindingError as e:
            raise translate_error(e, "unlink", path) from e

    def unlink_sync(self, path: Any) -> None:
        self._unlink(*self._prepare_unlink(path))

    unlink = callback_form(_prepare_unlink, _unlink)

    def _prepare_truncate(self, path: Any, length: Any = 0) -> tuple:
        path = get_validated_path(path)
        length = validate_integer(length, "len")
        return path, max(length, 0)

    def _truncate(self, path: str, length: int) -> None:
        try:
            self._binding.truncate(path, length)
        except BindingError as e:
            raise translate_error(e, "truncate", path) from e

    def truncate_sync(self, path: Any, length: Any = 0) -> None:
        """Resize a file to length bytes; a negative length means 0"""
        self._truncate(*self._prepare_truncate(path, length))

    truncate = callback_form(_prepare_truncate, _truncate)

    def _prepare_ftruncate(self, fd: Any, length: Any = 0) -> tuple:
        fd = get_validated_fd(fd)
        length = validate_integer(length, "len")
        return fd, max(length, 0)

    def _ftruncate(self, fd: int, length: int) -> None:
        try:
            self._binding.ftruncate(fd, length)
        except BindingError as e:
            raise translate_error(e, "ftruncate") from e

    def ftruncate_sync(self, fd: Any, length: Any = 0) -> None:
        self._ftruncate(*self._prepare_ftruncate(fd, length))

    ftruncate = callback_form(_prepare_ftruncate, _ftruncate)

    def _prepare_realpath(self, path: Any, options: Any = None) -> tuple:
        return get_validated_path(path), _encoding_option(options, ENCODING_DEFAULTS)

    def _realpath(self, path: str, encoding: Optional[str]) -> Union[str, bytes]:
        snapshot = self._lstat(path, False, False)
        if snapshot is not None and not snapshot.is_symbolic_link():
            return format_path(posixpath.normpath(path), encoding)
        try:
            resolved = self._binding.realpath(path)
        except BindingError as e:
            raise translate_error(e, "realpath", path) from e
        return format_path(posixpath.normpath(resolved), encoding)

    def realpath_sync(self, path: Any, options: Any = None) -> Union[str, bytes]:
        """Resolve path to its canonical form

        A path that is not a symlink is only normalized; the binding
        resolves everything else.
        """
        return self._realpath(*self._prepare_realpath(path, options))

    realpath = callback_form(_prepare_realpath, _realpath, Deliver.VALUE)

    def _prepare_copy_file(self, src: Any, dest: Any, mode: Any = 0) -> tuple:
        src = get_validated_path(src, "src")
        dest = get_validated_path(dest, "dest")
        mode = validate_integer(mode, "mode", 0, 7)
        return src, dest, mode

    def _copy_file(self, src: str, dest: str, mode: int) -> None:
        if mode & COPYFILE_EXCL and self._exists(dest):
            raise create_fs_error("EEXIST", "copyfile", src, dest=dest)
        try:
            self._binding.copy_file(src, dest)
        except BindingError as e:
            raise translate_error(e, "copyfile", src, dest) from e

    def copy_file_sync(self, src: Any, dest: Any, mode: Any = 0) -> None:
        """Copy src to dest, overwriting unless mode has COPYFILE_EXCL

        Raises:
            FileExistsErrnoException: With COPYFILE_EXCL when dest exists
        """
        self._copy_file(*self._prepare_copy_file(src, dest, mode))

    copy_file = callback_form(_prepare_copy_file, _copy_file)

    def _prepare_cp(self, src: Any, dest: Any, options: Any = None) -> tuple:
        options = apply_default_value(options, CP_DEFAULTS)
        for key in (
            "dereference",
            "error_on_exist",
            "force",
            "preserve_timestamps",
            "recursive",
            "verbatim_symlinks",
        ):
            validate_boolean(options[key], f"options.{key}")
        if options["dereference"] and options["verbatim_symlinks"]:
            raise IncompatibleOptionPairError("dereference", "verbatim_symlinks")
        if options["filter"] is not None:
            validate_function(options["filter"], "options.filter")
        src = get_validated_path(src, "src")
        dest = get_validated_path(dest, "dest")
        return src, dest, CopyOptions(**{key: options[key] for key in CopyOptions._fields})

    def _cp(self, src: str, dest: str, options: CopyOptions) -> None:
        if options.filter is not None and not options.filter(src, dest):
            return
        fetch = self._stat if options.dereference else self._lstat
        src_stat = fetch(src, True, True)
        dest_stat = fetch(dest, True, False)

        if dest_stat is not None:
            if src_stat.ino == dest_stat.ino and src_stat.dev == dest_stat.dev:
                raise create_cp_error("ERR_FS_CP_EINVAL", "src and dest cannot be the same", dest)
            if src_stat.is_directory() and not dest_stat.is_directory():
                raise create_cp_error(
                    "ERR_FS_CP_DIR_TO_NON_DIR",
                    f"cannot overwrite non-directory {dest} with directory {src}",
                    dest, errno=UV_EISDIR,
                )
            if not src_stat.is_directory() and dest_stat.is_directory():
                raise create_cp_error(
                    "ERR_FS_CP_NON_DIR_TO_DIR",
                    f"cannot overwrite directory {dest} with non-directory {src}",
                    dest, errno=UV_ENOTDIR,
                )
        if src_stat.is_directory() and _is_subdirectory(src, dest):
            raise create_cp_error(
                "ERR_FS_CP_EINVAL", f"cannot copy {src} to a subdirectory of self {dest}", dest
            )

        parent = posixpath.dirname(dest)
        if parent and not self._exists(parent):
            self._mkdir(parent, True, DEFAULT_DIR_MODE)
        self._copy_entry(src, dest, src_stat, dest_stat, options)

    def _copy_entry(
        self,
        src: str,
        dest: str,
        src_stat: BigIntStats,
        dest_stat: Optional[BigIntStats],
        options: CopyOptions,
    ) -> None:
        if src_stat.is_directory():
            if not options.recursive:
                raise create_cp_error(
                    "ERR_FS_EISDIR",
                    f"Recursive option is required to copy a directory: {src}",
                    src, errno=UV_EISDIR,
                )
            if dest_stat is None:
                self._mkdir(dest, False, src_stat.mode & 0o777)
            for name in self._readdir(src, "utf8", False):
                self._cp(posixpath.join(src, name), posixpath.join(dest, name), options)
        elif src_stat.is_file() or src_stat.is_character_device() or src_stat.is_block_device():
            if dest_stat is not None:
                if not options.force:
                    if options.error_on_exist:
                        raise create_cp_error(
                            "ERR_FS_CP_EEXIST", f"{dest} already exists", dest, errno=UV_EEXIST
                        )
                    return
                self._unlink(dest)
            self._copy_file(src, dest, 0)
            if options.preserve_timestamps:
                self._utimes(dest, src_stat.atime_ns, src_stat.mtime_ns)
        elif src_stat.is_symbolic_link():
            target = self._readlink(src, "utf8")
            if not options.verbatim_symlinks and not posixpath.isabs(target):
                target = posixpath.normpath(posixpath.join(posixpath.dirname(src), target))
            if dest_stat is not None:
                self._unlink(dest)
            self._symlink(target, dest)
        elif src_stat.is_socket():
            raise create_cp_error("ERR_FS_CP_SOCKET", f"cannot copy a socket file: {dest}", dest)
        else:
            raise create_cp_error("ERR_FS_CP_UNKNOWN", f"cannot copy an unknown file type: {dest}", dest)

    def cp_sync(self, src: Any, dest: Any, options: Any = None) -> None:
        """Copy a file, symlink or directory tree

        Args:
            src: Entry to copy
            dest: Destination path; missing parents are created
            options: {dereference: False, error_on_exist: False, filter: None,
                force: True, preserve_timestamps: False, recursive: False,
                verbatim_symlinks: False}. filter(src, dest) is called for
                every entry and skips it (and its subtree) when falsy.

        Raises:
            CopyError: For the ERR_FS_CP_* conditions and for a directory
                without recursive
        """
        self._cp(*self._prepare_cp(src, dest, options))

    cp = callback_form(_prepare_cp, _cp)

    def _prepare_link(self, existing_path: Any, new_path: Any) -> tuple:
        return (
            get_validated_path(existing_path, "existing_path"),
            get_validated_path(new_path, "new_path"),
        )

    def _link(self, existing_path: str, new_path: str) -> None:
        try:
            self._binding.link(existing_path, new_path)
        except BindingError as e:
            raise translate_error(e, "link", existing_path, new_path) from e

    def link_sync(self, existing_path: Any, new_path: Any) -> None:
        self._link(*self._prepare_link(existing_path, new_path))

    link = callback_form(_prepare_link, _link)

    def _prepare_symlink(self, target: Any, path: Any, type: Optional[str] = None) -> tuple:
        target = get_validated_path(target, "target")
        path = get_validated_path(path)
        if type not in _SYMLINK_TYPES:
            raise InvalidArgValueError("type", type, "must be one of 'file', 'dir', 'junction'")
        return target, path

    def _symlink(self, target: str, path: str) -> None:
        try:
            self._binding.symlink(target, path)
        except BindingError as e:
            raise translate_error(e, "symlink", target, path) from e

    def symlink_sync(self, target: Any, path: Any, type: Optional[str] = None) -> None:
        """Create path as a symlink to target. type is accepted and ignored."""
        self._symlink(*self._prepare_symlink(target, path, type))

    symlink = callback_form(_prepare_symlink, _symlink)

    def _prepare_readlink(self, path: Any, options: Any = None) -> tuple:
        return get_validated_path(path), _encoding_option(options, ENCODING_DEFAULTS)

    def _readlink(self, path: str, encoding: Optional[str]) -> Union[str, bytes]:
        try:
            target = self._binding.readlink(path)
        except BindingError as e:
            raise translate_error(e, "readlink", path) from e
        return format_path(target, encoding)

    def readlink_sync(self, path: Any, options: Any = None) -> Union[str, bytes]:
        return self._readlink(*self._prepare_readlink(path, options))

    readlink = callback_form(_prepare_readlink, _readlink, Deliver.VALUE)

    # ==================== Timestamps ====================

    def _prepare_utimes(self, path: Any, atime: Any, mtime: Any) -> tuple:
        return (
            get_validated_path(path),
            get_valid_time(atime, "atime"),
            get_valid_time(mtime, "mtime"),
        )

    def _utimes(self, path: str, atime_ns: int, mtime_ns: int) -> None:
        try:
            self._binding.utime(path, atime_ns, mtime_ns)
        except BindingError as e:
            raise translate_error(e, "utime", path) from e

    def utimes_sync(self, path: Any, atime: Any, mtime: Any) -> None:
        """Set access and modification times

        Times are seconds since the epoch (int, float or numeric str) or
        datetime objects.
        """
        self._utimes(*self._prepare_utimes(path, atime, mtime))

    utimes = callback_form(_prepare_utimes, _utimes)

    def lutimes_sync(self, path: Any, atime: Any, mtime: Any) -> None:
        """Same as utimes_sync; symlinks are followed"""
        self._utimes(*self._prepare_utimes(path, atime, mtime))

    lutimes = callback_form(_prepare_utimes, _utimes, name="lutimes")

    def _prepare_futimes(self, fd: Any, atime: Any, mtime: Any) -> tuple:
        return (
            get_validated_fd(fd),
            get_valid_time(atime, "atime"),
            get_valid_time(mtime, "mtime"),
        )

    def _futimes(self, fd: int, atime_ns: int, mtime_ns: int) -> None:
        try:
            self._binding.futime(fd, atime_ns, mtime_ns)
        except BindingError as e:
            raise translate_error(e, "futime") from e

    def futimes_sync(self, fd: Any, atime: Any, mtime: Any) -> None:
        self._futimes(*self._prepare_futimes(fd, atime, mtime))

    futimes = callback_form(_prepare_futimes, _futimes)

    # ==================== Descriptors ====================

    def _prepare_open(self, path: Any, flags: Any = "r", mode: Any = None) -> tuple:
        path = get_validated_path(path)
        flags = string_to_flags(flags)
        mode = parse_file_mode(mode, "mode", DEFAULT_FILE_MODE, 0o777)
        return path, flags, mode

    def _open(self, path: str, flags: int, mode: int, syscall: str = "open") -> int:
        try:
            return self._binding.open(path, flags, mode)
        except BindingError as e:
            raise translate_error(e, syscall, path) from e

    def open_sync(self, path: Any, flags: Any = "r", mode: Any = None) -> int:
        """Open a file and return its descriptor

        Args:
            path: File to open
            flags: Flag string ('r', 'w+', 'ax', ...) or O_* bits
            mode: Permission bits for a created file (default 0o666)

        Returns:
            The descriptor; the caller must close it
        """
        return self._open(*self._prepare_open(path, flags, mode))

    open = callback_form(_prepare_open, _open, Deliver.VALUE)

    def _prepare_fd(self, fd: Any) -> tuple:
        return (get_validated_fd(fd),)

    def _close(self, fd: int) -> None:
        try:
            self._binding.close(fd)
        except BindingError as e:
            raise translate_error(e, "close") from e

    def close_sync(self, fd: Any) -> None:
        self._close(*self._prepare_fd(fd))

    close = callback_form(_prepare_fd, _close)

    def _fsync(self, fd: int) -> None:
        try:
            self._binding.fsync(fd)
        except BindingError as e:
            raise translate_error(e, "fsync") from e

    def fsync_sync(self, fd: Any) -> None:
        self._fsync(*self._prepare_fd(fd))

    fsync = callback_form(_prepare_fd, _fsync)

    def _fdatasync(self, fd: int) -> None:
        try:
            self._binding.fdatasync(fd)
        except BindingError as e:
            raise translate_error(e, "fdatasync") from e

    def fdatasync_sync(self, fd: Any) -> None:
        self._fdatasync(*self._prepare_fd(fd))

    fdatasync = callback_form(_prepare_fd, _fdatasync)

    # ==================== Reading and writing ====================

    def _fread(self, fd: int, position: int, length: int) -> bytes:
        try:
            return self._binding.fread(fd, position, length)
        except BindingError as e:
            raise translate_read_error(e) from e

    def _write_all(self, fd: int, data: bytes, position: int) -> int:
        """Write every byte of data, looping over short writes"""
        view = memoryview(data)
        total = 0
        while total < len(view):
            at = position if position < 0 else position + total
            try:
                written = self._binding.fwrite(fd, at, bytes(view[total:]))
            except BindingError as e:
                raise translate_error(e, "write") from e
            if written <= 0:
                break
            total += written
        return total

    def _read_all(self, fd: int) -> bytes:
        """Read from the current position until EOF"""
        chunks = []
        while True:
            chunk = self._fread(fd, -1, _READ_ALL_CHUNK)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    def _prepare_read(self, fd: Any, *args: Any) -> tuple:
        return get_validated_fd(fd), resolve_read_args(args)

    def _read(self, fd: int, request: ReadRequest) -> Tuple[int, Any]:
        if request.length == 0:
            return 0, request.buffer
        data = self._fread(fd, request.position, request.length)
        view = memoryview(request.buffer).cast("B")
        view[request.offset : request.offset + len(data)] = data
        return len(data), request.buffer

    def read_sync(self, fd: Any, *args: Any) -> int:
        """Read from fd into a buffer

        Call shapes after fd:
            ()                                       fresh 16 KiB buffer
            (options)                                {buffer, offset, length, position}
            (buffer, options)
            (buffer, offset=0, length=None, position=None)

        position None (or -1) reads from the descriptor's current position
        and advances it.

        Returns:
            Number of bytes read; 0 at end of file
        """
        return self._read(*self._prepare_read(fd, *args))[0]

    read = callback_form(_prepare_read, _read, Deliver.VALUES)

    def _prepare_write(self, fd: Any, data: Any, *args: Any) -> tuple:
        return get_validated_fd(fd), resolve_write_args(data, args)

    def _write(self, fd: int, request: WriteRequest) -> Tuple[int, Any]:
        return self._write_all(fd, request.data, request.position), request.original

    def write_sync(self, fd: Any, data: Any, *args: Any) -> int:
        """Write str or bytes to fd

        Call shapes after data:
            str:    (position=None, encoding='utf8')
            buffer: (options) or (offset=0, length=None, position=None)

        Returns:
            Number of bytes written
        """
        return self._write(*self._prepare_write(fd, data, *args))[0]

    write = callback_form(_prepare_write, _write, Deliver.VALUES)

    def _prepare_readv(self, fd: Any, buffers: Any, position: Any = None) -> tuple:
        return (
            get_validated_fd(fd),
            buffers,
            resolve_buffers(buffers, writable=True),
            optional_position(position),
        )

    def _readv(self, fd: int, buffers: Sequence[Any], views: List[memoryview], position: int) -> Tuple[int, Sequence[Any]]:
        total = 0
        for view in views:
            if not len(view):
                continue
            at = position if position < 0 else position + total
            data = self._fread(fd, at, len(view))
            view[: len(data)] = data
            total += len(data)
            if len(data) < len(view):
                break
        return total, buffers

    def readv_sync(self, fd: Any, buffers: Any, position: Any = None) -> int:
        """Fill buffers in order; stops early at end of file"""
        return self._readv(*self._prepare_readv(fd, buffers, position))[0]

    readv = callback_form(_prepare_readv, _readv, Deliver.VALUES)

    def _prepare_writev(self, fd: Any, buffers: Any, position: Any = None) -> tuple:
        return (
            get_validated_fd(fd),
            buffers,
            resolve_buffers(buffers, writable=False),
            optional_position(position),
        )

    def _writev(self, fd: int, buffers: Sequence[Any], views: List[memoryview], position: int) -> Tuple[int, Sequence[Any]]:
        total = 0
        for view in views:
            at = position if position < 0 else position + total
            total += self._write_all(fd, bytes(view), at)
        return total, buffers

    def writev_sync(self, fd: Any, buffers: Any, position: Any = None) -> int:
        return self._writev(*self._prepare_writev(fd, buffers, position))[0]

    writev = callback_form(_prepare_writev, _writev, Deliver.VALUES)

    # ==================== Whole files ====================

    def _acquire(self, target: FileTarget, flags: int, mode: int) -> Tuple[int, bool]:
        """Descriptor for target, and whether this call owns (must close) it"""
        if isinstance(target, int):
            return target, False
        return self._open(target, flags, mode), True

    def _prepare_read_file(self, file: Any, options: Any = None) -> tuple:
        target = _file_target(file)
        options = encoding_options(options, READ_FILE_DEFAULTS)
        validate_encoding(options["encoding"])
        return target, options["encoding"], string_to_flags(options["flag"])

    def _read_file(self, target: FileTarget, encoding: Optional[str], flags: int) -> Union[str, bytes]:
        fd, owned = self._acquire(target, flags, DEFAULT_FILE_MODE)
        try:
            data = self._read_all(fd)
        finally:
            if owned:
                self._close(fd)
        return decode_bytes(data, encoding)

    def read_file_sync(self, file: Any, options: Any = None) -> Union[str, bytes]:
        """Read a whole file

        Args:
            file: Path, or an open descriptor (read from its current
                position and left open)
            options: {encoding: None, flag: 'r'}; a str is the encoding

        Returns:
            bytes, or str when an encoding is given

        Example:
            >>> fs.read_file_sync("/notes.txt", "utf8")
            'hello'
        """
        return self._read_file(*self._prepare_read_file(file, options))

    read_file = callback_form(_prepare_read_file, _read_file, Deliver.VALUE)

    def _prepare_write_file(self, file: Any, data: Any, options: Any = None, defaults: Any = WRITE_FILE_DEFAULTS) -> tuple:
        target = _file_target(file)
        options = encoding_options(options, defaults)
        validate_encoding(options["encoding"])
        payload = to_bytes(data, options["encoding"])
        flags = string_to_flags(options["flag"])
        mode = parse_file_mode(options["mode"], "mode", DEFAULT_FILE_MODE)
        return target, payload, flags, mode

    def _write_file(self, target: FileTarget, payload: bytes, flags: int, mode: int) -> None:
        fd, owned = self._acquire(target, flags, mode)
        try:
            self._write_all(fd, payload, -1)
        finally:
            if owned:
                self._close(fd)

    def write_file_sync(self, file: Any, data: Any, options: Any = None) -> None:
        """Replace a file's contents

        Args:
            file: Path, or an open descriptor (written at its current
                position and left open)
            data: str or bytes-like
            options: {encoding: 'utf8', mode: 0o666, flag: 'w'}
        """
        self._write_file(*self._prepare_write_file(file, data, options))

    write_file = callback_form(_prepare_write_file, _write_file)

    def _prepare_append_file(self, file: Any, data: Any, options: Any = None) -> tuple:
        return self._prepare_write_file(file, data, options, APPEND_FILE_DEFAULTS)

    def append_file_sync(self, file: Any, data: Any, options: Any = None) -> None:
        """Append to a file, creating it if needed"""
        self._write_file(*self._prepare_append_file(file, data, options))

    append_file = callback_form(_prepare_append_file, _write_file, name="append_file")

    # ==================== Permissions (inert) ====================

    def _prepare_chown(self, path: Any, uid: Any, gid: Any) -> tuple:
        get_validated_path(path)
        _validate_id(uid, "uid")
        _validate_id(gid, "gid")
        return ()

    def _prepare_fchown(self, fd: Any, uid: Any, gid: Any) -> tuple:
        get_validated_fd(fd)
        _validate_id(uid, "uid")
        _validate_id(gid, "gid")
        return ()

    def _prepare_chmod(self, path: Any, mode: Any) -> tuple:
        get_validated_path(path)
        parse_file_mode(mode, "mode", DEFAULT_FILE_MODE)
        return ()

    def _prepare_fchmod(self, fd: Any, mode: Any) -> tuple:
        get_validated_fd(fd)
        parse_file_mode(mode, "mode", DEFAULT_FILE_MODE)
        return ()

    def _ignore(self) -> None:
        """Ownership and permission changes are accepted and discarded"""

    def chown_sync(self, path: Any, uid: Any, gid: Any) -> None:
        self._prepare_chown(path, uid, gid)

    def lchown_sync(self, path: Any, uid: Any, gid: Any) -> None:
        self._prepare_chown(path, uid, gid)

    def fchown_sync(self, fd: Any, uid: Any, gid: Any) -> None:
        self._prepare_fchown(fd, uid, gid)

    def chmod_sync(self, path: Any, mode: Any) -> None:
        self._prepare_chmod(path, mode)

    def lchmod_sync(self, path: Any, mode: Any) -> None:
        self._prepare_chmod(path, mode)

    def fchmod_sync(self, fd: Any, mode: Any) -> None:
        self._prepare_fchmod(fd, mode)

    chown = callback_form(_prepare_chown, _ignore, name="chown")
    lchown = callback_form(_prepare_chown, _ignore, name="lchown")
    fchown = callback_form(_prepare_fchown, _ignore, name="fchown")
    chmod = callback_form(_prepare_chmod, _ignore, name="chmod")
    lchmod = callback_form(_prepare_chmod, _ignore, name="lchmod")
    fchmod = callback_form(_prepare_fchmod, _ignore, name="fchmod")

    # ==================== Streams ====================

    def create_read_stream(self, path: Any, options: Any = None) -> ReadStream:
        """Stream a file's contents in chunks; see ReadStream"""
        return ReadStream(self, get_validated_path(path), options)

    def create_write_stream(self, path: Any, options: Any = None) -> WriteStream:
        return WriteStream(self, get_validated_path(path), options)

    # ==================== Unsupported ====================

    def watch(self, *args: Any, **kwargs: Any) -> None:
        raise UnsupportedOperationError("watch")

    def watch_file(self, *args: Any, **kwargs: Any) -> None:
        raise UnsupportedOperationError("watch_file")

    def unwatch(self, *args: Any, **kwargs: Any) -> None:
        raise UnsupportedOperationError("unwatch")
