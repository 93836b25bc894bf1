"""Minimal file streams built on the callback operations"""

import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional, Union

from .arguments import decode_bytes, to_bytes
from .deferred import promisify
from .options import READ_STREAM_DEFAULTS, WRITE_STREAM_DEFAULTS, encoding_options
from .validators import parse_file_mode, validate_encoding, validate_integer

if TYPE_CHECKING:
    from .filesystem import Filesystem

logger = logging.getLogger(__name__)


class ReadStream:
    """Asynchronous iterator over a file's contents in chunks

    The file is opened on first iteration and closed when the end is
    reached, when iteration is abandoned, or by close().

    Options:
        flags: Open flags (default 'r')
        encoding: Decode chunks to str when set (default None, bytes)
        start: First byte offset to read (default: current position, 0)
        end: Last byte offset to read, inclusive (default: end of file)
        high_water_mark: Maximum chunk size (default 64 KiB)

    Example:
        >>> async for chunk in fs.create_read_stream("/log.txt", {"encoding": "utf8"}):
        ...     print(chunk)
    """

    def __init__(self, fs: "Filesystem", path: str, options: Any = None):
        options = encoding_options(options, READ_STREAM_DEFAULTS)
        validate_encoding(options["encoding"])
        start = options["start"]
        end = options["end"]
        if start is not None:
            validate_integer(start, "start", 0)
        if end is not None:
            validate_integer(end, "end", 0 if start is None else start)
        self._fs = fs
        self._flags = options["flags"]
        self._mode = parse_file_mode(options["mode"], "mode", 0o666)
        self._encoding = options["encoding"]
        self._start = start
        self._end = end
        self._high_water_mark = validate_integer(options["high_water_mark"], "high_water_mark", 1)
        self._fd: Optional[int] = None
        self.path = path
        self.bytes_read = 0
        self.closed = False

    def _chunk_size(self) -> int:
        if self._end is None:
            return self._high_water_mark
        remaining = self._end - (self._start or 0) + 1 - self.bytes_read
        return max(0, min(self._high_water_mark, remaining))

    async def __aiter__(self) -> AsyncIterator[Union[str, bytes]]:
        if self._fd is None:
            self._fd = await promisify(self._fs.open)(self.path, self._flags, self._mode)
            logger.debug("[ReadStream] Opened %s as fd %d", self.path, self._fd)
        try:
            while True:
                size = self._chunk_size()
                if size == 0:
                    break
                position = None if self._start is None else self._start + self.bytes_read
                buffer = bytearray(size)
                count, _ = await promisify(self._fs.read)(self._fd, buffer, 0, size, position)
                if count == 0:
                    break
                self.bytes_read += count
                yield decode_bytes(buffer[:count], self._encoding)
        finally:
            await self.close()

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._fd is not None:
            await promisify(self._fs.close)(self._fd)


class WriteStream:
    """Sequential writer; the file is opened on the first write

    Options:
        flags: Open flags (default 'w')
        encoding: Encoding for str chunks (default 'utf8')
        mode: Permission bits for a created file (default 0o666)
        start: Byte offset of the first write (default: current position)
    """

    def __init__(self, fs: "Filesystem", path: str, options: Any = None):
        options = encoding_options(options, WRITE_STREAM_DEFAULTS)
        validate_encoding(options["encoding"])
        if options["start"] is not None:
            validate_integer(options["start"], "start", 0)
        self._fs = fs
        self._flags = options["flags"]
        self._mode = parse_file_mode(options["mode"], "mode", 0o666)
        self._encoding = options["encoding"]
        self._start = options["start"]
        self._fd: Optional[int] = None
        self.path = path
        self.bytes_written = 0
        self.closed = False

    async def write(self, chunk: Any) -> int:
        """Write one chunk (str or bytes-like) after the previous ones"""
        if self.closed:
            raise ValueError("write after end")
        data = to_bytes(chunk, self._encoding, "chunk")
        if self._fd is None:
            self._fd = await promisify(self._fs.open)(self.path, self._flags, self._mode)
            logger.debug("[WriteStream] Opened %s as fd %d", self.path, self._fd)
        position = None if self._start is None else self._start + self.bytes_written
        written, _ = await promisify(self._fs.write)(self._fd, data, 0, len(data), position)
        self.bytes_written += written
        return written

    async def end(self, chunk: Any = None) -> None:
        """Write an optional last chunk and close the file"""
        if chunk is not None:
            await self.write(chunk)
        if self.closed:
            return
        if self._fd is None:
            # An empty stream still creates or truncates the file
            self._fd = await promisify(self._fs.open)(self.path, self._flags, self._mode)
        self.closed = True
        await promisify(self._fs.close)(self._fd)

    async def __aenter__(self) -> "WriteStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.end()
