"""Native binding contract and the host-backed implementation

A binding exposes the raw synchronous primitives the facade is built on.
Every primitive raises BindingError on failure; stat primitives return a
raw mapping (see nodefs.stats) and freaddir pages through a directory with
an opaque cookie.
"""

import errno
import logging
import os
import shutil
import stat as stat_module
from typing import Any, Dict, List, NamedTuple, Protocol

from .constants import DEFAULT_PAGE_SIZE, FileType
from .errors import BindingError

logger = logging.getLogger(__name__)

RawStat = Dict[str, Any]
RawEntry = Dict[str, Any]


class ReaddirPage(NamedTuple):
    """One page of raw directory entries

    Attributes:
        entries: Raw entries ({'name', 'filetype'}), possibly including '.' and '..'
        cookie: Continuation token to pass to the next freaddir call
        finished: True when no entries remain after this page
    """

    entries: List[RawEntry]
    cookie: Any
    finished: bool


class Binding(Protocol):
    """Raw filesystem primitives consumed by the facade"""

    def stat(self, path: str) -> RawStat: ...

    def lstat(self, path: str) -> RawStat: ...

    def fstat(self, fd: int) -> RawStat: ...

    def mkdir(self, path: str, recursive: bool, mode: int) -> None: ...

    def rmdir(self, path: str, recursive: bool) -> None: ...

    def rm(self, path: str, recursive: bool, force: bool) -> None: ...

    def rename(self, old_path: str, new_path: str) -> None: ...

    def truncate(self, path: str, length: int) -> None: ...

    def ftruncate(self, fd: int, length: int) -> None: ...

    def realpath(self, path: str) -> str: ...

    def copy_file(self, src: str, dest: str) -> None: ...

    def link(self, existing_path: str, new_path: str) -> None: ...

    def symlink(self, target: str, path: str) -> None: ...

    def open(self, path: str, flags: int, mode: int) -> int: ...

    def close(self, fd: int) -> None: ...

    def fsync(self, fd: int) -> None: ...

    def fdatasync(self, fd: int) -> None: ...

    def fread(self, fd: int, position: int, length: int) -> bytes: ...

    def fwrite(self, fd: int, position: int, data: bytes) -> int: ...

    def readlink(self, path: str) -> str: ...

    def freaddir(self, fd: int, cookie: Any) -> ReaddirPage: ...

    def utime(self, path: str, atime_ns: int, mtime_ns: int) -> None: ...

    def futime(self, fd: int, atime_ns: int, mtime_ns: int) -> None: ...


def binding_error_from_os_error(err: OSError) -> BindingError:
    """Convert a host OSError into a raw binding failure"""
    name = errno.errorcode.get(err.errno, "") if err.errno is not None else ""
    code = name[1:] if name.startswith("E") else None
    return BindingError(err.strerror or str(err), code)


def _stat_to_raw(st: os.stat_result) -> RawStat:
    mode = st.st_mode
    birthtime = getattr(st, "st_birthtime", None)
    return {
        "is_file": stat_module.S_ISREG(mode),
        "is_directory": stat_module.S_ISDIR(mode),
        "is_symlink": stat_module.S_ISLNK(mode),
        "is_block_device": stat_module.S_ISBLK(mode),
        "is_char_device": stat_module.S_ISCHR(mode),
        "is_socket": stat_module.S_ISSOCK(mode),
        "size": st.st_size,
        "mtime": st.st_mtime_ns // 1_000_000,
        "atime": st.st_atime_ns // 1_000_000,
        "birthtime": int(birthtime * 1000) if birthtime is not None else None,
        "dev": st.st_dev,
        "ino": st.st_ino,
        "mode": mode,
        "nlink": st.st_nlink,
        "uid": st.st_uid,
        "gid": st.st_gid,
        "rdev": getattr(st, "st_rdev", 0),
        "blksize": getattr(st, "st_blksize", None),
        "blocks": getattr(st, "st_blocks", None),
    }


def _mode_to_filetype(mode: int) -> FileType:
    if stat_module.S_ISREG(mode):
        return FileType.REGULAR_FILE
    if stat_module.S_ISDIR(mode):
        return FileType.DIRECTORY
    if stat_module.S_ISLNK(mode):
        return FileType.SYMBOLIC_LINK
    if stat_module.S_ISBLK(mode):
        return FileType.BLOCK_DEVICE
    if stat_module.S_ISCHR(mode):
        return FileType.CHARACTER_DEVICE
    if stat_module.S_ISSOCK(mode):
        return FileType.SOCKET_STREAM
    return FileType.UNKNOWN


class HostBinding:
    """Binding backed by the host operating system

    Directory paging mimics WASI fd_readdir: the first page starts with the
    '.' and '..' entries, and the cookie is an index into a listing captured
    when paging starts, so a directory modified mid-iteration never yields
    duplicated or skipped entries.
    """

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE):
        self._page_size = page_size
        self._paths: Dict[int, str] = {}
        self._listings: Dict[int, List[RawEntry]] = {}

    def stat(self, path: str) -> RawStat:
        try:
            return _stat_to_raw(os.stat(path))
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def lstat(self, path: str) -> RawStat:
        try:
            return _stat_to_raw(os.lstat(path))
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def fstat(self, fd: int) -> RawStat:
        try:
            return _stat_to_raw(os.fstat(fd))
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def mkdir(self, path: str, recursive: bool, mode: int) -> None:
        try:
            if recursive:
                os.makedirs(path, mode, exist_ok=True)
            else:
                os.mkdir(path, mode)
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def rmdir(self, path: str, recursive: bool) -> None:
        try:
            if recursive:
                shutil.rmtree(path)
            else:
                os.rmdir(path)
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def rm(self, path: str, recursive: bool, force: bool) -> None:
        try:
            st = os.lstat(path)
        except FileNotFoundError as e:
            if force:
                return
            raise binding_error_from_os_error(e) from e
        except OSError as e:
            raise binding_error_from_os_error(e) from e

        try:
            if stat_module.S_ISDIR(st.st_mode):
                if not recursive:
                    raise BindingError(
                        f"Path is a directory: rm returned EISDIR (is a directory) {path}",
                        "ISDIR",
                    )
                shutil.rmtree(path)
            else:
                os.unlink(path)
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def rename(self, old_path: str, new_path: str) -> None:
        try:
            os.rename(old_path, new_path)
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def truncate(self, path: str, length: int) -> None:
        try:
            os.truncate(path, length)
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def ftruncate(self, fd: int, length: int) -> None:
        try:
            os.ftruncate(fd, length)
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def realpath(self, path: str) -> str:
        try:
            return os.path.realpath(path, strict=True)
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def copy_file(self, src: str, dest: str) -> None:
        try:
            shutil.copyfile(src, dest)
        except shutil.SameFileError as e:
            raise BindingError(str(e), "INVAL") from e
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def link(self, existing_path: str, new_path: str) -> None:
        try:
            os.link(existing_path, new_path)
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def symlink(self, target: str, path: str) -> None:
        try:
            os.symlink(target, path)
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def readlink(self, path: str) -> str:
        try:
            return os.readlink(path)
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def open(self, path: str, flags: int, mode: int) -> int:
        try:
            fd = os.open(path, flags, mode)
        except OSError as e:
            raise binding_error_from_os_error(e) from e
        self._paths[fd] = path
        logger.debug("[HostBinding] Opened %s as fd %d", path, fd)
        return fd

    def close(self, fd: int) -> None:
        try:
            os.close(fd)
        except OSError as e:
            raise binding_error_from_os_error(e) from e
        self._paths.pop(fd, None)
        self._listings.pop(fd, None)
        logger.debug("[HostBinding] Closed fd %d", fd)

    def fsync(self, fd: int) -> None:
        try:
            os.fsync(fd)
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def fdatasync(self, fd: int) -> None:
        sync = getattr(os, "fdatasync", os.fsync)
        try:
            sync(fd)
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def fread(self, fd: int, position: int, length: int) -> bytes:
        try:
            if position < 0:
                return os.read(fd, length)
            return os.pread(fd, length, position)
        except OverflowError as e:
            raise BindingError(str(e), "INVAL") from e
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def fwrite(self, fd: int, position: int, data: bytes) -> int:
        try:
            if position < 0:
                return os.write(fd, data)
            return os.pwrite(fd, data, position)
        except OverflowError as e:
            raise BindingError(str(e), "INVAL") from e
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def freaddir(self, fd: int, cookie: Any) -> ReaddirPage:
        start = cookie or 0
        if start == 0 or fd not in self._listings:
            self._listings[fd] = self._list_directory(fd)
        listing = self._listings[fd]

        end = start + self._page_size
        page = listing[start:end]
        finished = end >= len(listing)
        if finished:
            self._listings.pop(fd, None)
        return ReaddirPage(entries=page, cookie=end, finished=finished)

    def _list_directory(self, fd: int) -> List[RawEntry]:
        path = self._paths.get(fd)
        if path is None:
            raise BindingError("Bad file descriptor", "BADF")
        # The descriptor still names the directory after a rename
        source: Any = fd if os.scandir in os.supports_fd else path

        entries: List[RawEntry] = [
            {"name": ".", "filetype": FileType.DIRECTORY},
            {"name": "..", "filetype": FileType.DIRECTORY},
        ]
        try:
            with os.scandir(source) as it:
                for entry in it:
                    try:
                        filetype = _mode_to_filetype(entry.stat(follow_symlinks=False).st_mode)
                    except OSError:
                        filetype = FileType.UNKNOWN
                    entries.append({"name": entry.name, "filetype": filetype})
        except OSError as e:
            raise binding_error_from_os_error(e) from e
        return entries

    def utime(self, path: str, atime_ns: int, mtime_ns: int) -> None:
        try:
            os.utime(path, ns=(atime_ns, mtime_ns))
        except OSError as e:
            raise binding_error_from_os_error(e) from e

    def futime(self, fd: int, atime_ns: int, mtime_ns: int) -> None:
        try:
            os.utime(fd, ns=(atime_ns, mtime_ns))
        except OSError as e:
            raise binding_error_from_os_error(e) from e
