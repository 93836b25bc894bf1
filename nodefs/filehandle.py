"""Promise-style wrapper owning one file descriptor"""

import logging
from typing import TYPE_CHECKING, Any, Callable, List, NamedTuple, Optional, Sequence

from .deferred import promisify

if TYPE_CHECKING:
    from .filesystem import Filesystem
    from .streams import ReadStream, WriteStream

logger = logging.getLogger(__name__)


class ReadResult(NamedTuple):
    bytes_read: int
    buffer: Any


class WriteResult(NamedTuple):
    bytes_written: int
    buffer: Any


class ReadvResult(NamedTuple):
    bytes_read: int
    buffers: Sequence[Any]


class WritevResult(NamedTuple):
    bytes_written: int
    buffers: Sequence[Any]


class CloseNotifier:
    """Minimal publish/subscribe channel for close notifications"""

    def __init__(self) -> None:
        self._listeners: List[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register listener; returns a function that unregisters it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self) -> None:
        for listener in list(self._listeners):
            listener()


class FileHandle:
    """Descriptor opened by promises.open, with coroutine methods

    Every method runs the callback form of the matching operation bound
    to this handle's descriptor and awaits its completion. There is no
    guard against use after close.

    Example:
        >>> async with await fs.promises.open("/notes.txt", "w+") as handle:
        ...     await handle.write("hello")
        ...     stats = await handle.stat()
    """

    def __init__(self, fs: "Filesystem", fd: int, path: str):
        self._fs = fs
        self._fd = fd
        self._path = path
        self._notifier = CloseNotifier()

    @property
    def fd(self) -> int:
        return self._fd

    @property
    def path(self) -> str:
        return self._path

    def on_close(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Call listener when close() starts; returns an unsubscribe function"""
        return self._notifier.subscribe(listener)

    async def read(self, *args: Any) -> ReadResult:
        """Read into a buffer; accepts the same shapes as Filesystem.read"""
        bytes_read, buffer = await promisify(self._fs.read)(self._fd, *args)
        return ReadResult(bytes_read, buffer)

    async def write(self, data: Any, *args: Any) -> WriteResult:
        """Write str or bytes; accepts the same shapes as Filesystem.write"""
        written, buffer = await promisify(self._fs.write)(self._fd, data, *args)
        return WriteResult(written, buffer)

    async def readv(self, buffers: Sequence[Any], position: Optional[int] = None) -> ReadvResult:
        bytes_read, filled = await promisify(self._fs.readv)(self._fd, buffers, position)
        return ReadvResult(bytes_read, filled)

    async def writev(self, buffers: Sequence[Any], position: Optional[int] = None) -> WritevResult:
        written, sent = await promisify(self._fs.writev)(self._fd, buffers, position)
        return WritevResult(written, sent)

    async def stat(self, options: Optional[Any] = None) -> Any:
        return await promisify(self._fs.fstat)(self._fd, options)

    async def sync(self) -> None:
        await promisify(self._fs.fsync)(self._fd)

    async def datasync(self) -> None:
        await promisify(self._fs.fdatasync)(self._fd)

    async def truncate(self, length: int = 0) -> None:
        await promisify(self._fs.ftruncate)(self._fd, length)

    async def utimes(self, atime: Any, mtime: Any) -> None:
        await promisify(self._fs.futimes)(self._fd, atime, mtime)

    async def append_file(self, data: Any, options: Optional[Any] = None) -> None:
        await promisify(self._fs.append_file)(self._fd, data, options)

    async def read_file(self, options: Optional[Any] = None) -> Any:
        """Read from the current position to the end of the file"""
        return await promisify(self._fs.read_file)(self._fd, options)

    async def write_file(self, data: Any, options: Optional[Any] = None) -> None:
        await promisify(self._fs.write_file)(self._fd, data, options)

    async def chown(self, uid: int, gid: int) -> None:
        await promisify(self._fs.fchown)(self._fd, uid, gid)

    async def chmod(self, mode: Any) -> None:
        await promisify(self._fs.fchmod)(self._fd, mode)

    def create_read_stream(self, options: Optional[Any] = None) -> "ReadStream":
        return self._fs.create_read_stream(self._path, options)

    def create_write_stream(self, options: Optional[Any] = None) -> "WriteStream":
        return self._fs.create_write_stream(self._path, options)

    async def close(self) -> None:
        """Notify close listeners, then release the descriptor"""
        self._notifier.publish()
        logger.debug("[FileHandle] Closing fd %d (%s)", self._fd, self._path)
        await promisify(self._fs.close)(self._fd)

    async def __aenter__(self) -> "FileHandle":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
