"""Directory cursor and directory entries"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Iterator,
    List,
    Optional,
    Union,
)

from .arguments import format_path
from .constants import FileType
from .deferred import Deliver, defer, promisify
from .errors import BindingError, DirClosedError, translate_error

if TYPE_CHECKING:
    from .filesystem import Filesystem

logger = logging.getLogger(__name__)

_DOT_ENTRIES = frozenset({".", ".."})


@dataclass(frozen=True)
class Dirent:
    """One directory entry

    Attributes:
        name: Entry name (bytes when read with encoding='buffer')
        file_type: Entry type as reported by the binding
        path: Directory the entry was read from
    """

    name: Union[str, bytes]
    file_type: FileType
    path: str

    @classmethod
    def from_raw(cls, raw: Mapping, path: str, encoding: Optional[str] = "utf8") -> "Dirent":
        name = format_path(raw["name"], encoding)
        try:
            file_type = FileType(raw.get("filetype", FileType.UNKNOWN))
        except ValueError:
            file_type = FileType.UNKNOWN
        return cls(name=name, file_type=file_type, path=path)

    def is_file(self) -> bool:
        return self.file_type == FileType.REGULAR_FILE

    def is_directory(self) -> bool:
        return self.file_type == FileType.DIRECTORY

    def is_symbolic_link(self) -> bool:
        return self.file_type == FileType.SYMBOLIC_LINK

    def is_block_device(self) -> bool:
        return self.file_type == FileType.BLOCK_DEVICE

    def is_character_device(self) -> bool:
        return self.file_type == FileType.CHARACTER_DEVICE

    def is_socket(self) -> bool:
        return self.file_type in (FileType.SOCKET_DGRAM, FileType.SOCKET_STREAM)

    def is_fifo(self) -> bool:
        return False


class Dir:
    """Lazy cursor over one open directory

    Entries are fetched from the binding a page at a time, only once the
    local buffer is drained. '.' and '..' are never returned. The cursor
    owns its descriptor; iterating it to the end (or abandoning iteration)
    closes it.

    Example:
        >>> with fs.opendir_sync("/data") as d:
        ...     for entry in d:
        ...         print(entry.name, entry.is_directory())
    """

    def __init__(self, fs: "Filesystem", fd: int, path: str, encoding: Optional[str] = "utf8"):
        self._fs = fs
        self._fd = fd
        self._encoding = encoding
        self._buffer: List[Mapping] = []
        self._index = 0
        self._cookie: Any = 0
        self._finished = False
        self._closed = False
        self.path = path

    def _assert_open(self) -> None:
        if self._closed:
            raise DirClosedError()

    def _fill(self) -> bool:
        """Refill when drained; False once the directory is exhausted"""
        if self._index == len(self._buffer) and not self._finished:
            try:
                page = self._fs.binding.freaddir(self._fd, self._cookie)
            except BindingError as e:
                raise translate_error(e, "scandir", self.path) from e
            self._buffer = [e for e in page.entries if e["name"] not in _DOT_ENTRIES]
            self._index = 0
            self._cookie = page.cookie
            self._finished = page.finished
            logger.debug(
                "[Dir] Fetched %d entries from %s (finished=%s)",
                len(self._buffer), self.path, self._finished,
            )
        return self._index < len(self._buffer)

    def read_sync(self) -> Optional[Dirent]:
        """Return the next entry, or None at the end of the directory"""
        self._assert_open()
        # A page may hold only '.' and '..'; keep paging until it yields entries
        while not self._fill():
            if self._finished:
                return None
        raw = self._buffer[self._index]
        self._index += 1
        return Dirent.from_raw(raw, self.path, self._encoding)

    def read(self, callback: Optional[Callable[..., None]] = None) -> Optional[Awaitable[Optional[Dirent]]]:
        """Read the next entry on a later loop turn

        With a callback, delivers callback(err) or callback(None, entry);
        without one, returns an awaitable resolving to the entry.
        """
        self._assert_open()
        if callback is None:
            return promisify(self.read)()
        defer(callback, Deliver.VALUE, self.read_sync)
        return None

    def close_sync(self) -> None:
        self._assert_open()
        self._closed = True
        self._fs.close_sync(self._fd)

    def close(self, callback: Optional[Callable[..., None]] = None) -> Optional[Awaitable[None]]:
        """Close the descriptor; awaitable when called without a callback"""
        self._assert_open()
        if callback is None:
            return promisify(self.close)()
        self._closed = True
        self._fs.close(self._fd, callback)
        return None

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[Dirent]:
        try:
            while True:
                entry = self.read_sync()
                if entry is None:
                    break
                yield entry
        finally:
            if not self._closed:
                self.close_sync()

    async def __aiter__(self) -> AsyncIterator[Dirent]:
        try:
            while True:
                entry = await self.read()
                if entry is None:
                    break
                yield entry
        finally:
            if not self._closed:
                self.close_sync()

    def __enter__(self) -> "Dir":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._closed:
            self.close_sync()

    async def __aenter__(self) -> "Dir":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self._closed:
            await self.close()
