"""Overload resolution for the polymorphic call shapes

read/write/readv/writev accept several positional layouts. Each layout is
inspected once here and turned into a canonical request record, so the
operation bodies only ever see one shape.
"""

import base64
from collections.abc import Mapping
from typing import Any, Callable, List, NamedTuple, Optional, Sequence, Tuple, Union

from .constants import DEFAULT_READ_BUFFER_SIZE
from .errors import InvalidArgTypeError
from .validators import optional_position, validate_encoding, validate_function, validate_integer

Buffer = Union[bytearray, memoryview]
BytesLike = Union[bytes, bytearray, memoryview]

_UTF8_NAMES = frozenset({"utf8", "utf-8", "UTF8", "UTF-8"})


class ReadRequest(NamedTuple):
    """Canonical read: fill buffer[offset:offset + length] from position (-1 = current)"""

    buffer: Buffer
    offset: int
    length: int
    position: int


class WriteRequest(NamedTuple):
    """Canonical write of data at position (-1 = current)

    original is what the caller passed, handed back to callbacks.
    """

    data: bytes
    position: int
    original: Any


def pop_callback(args: Sequence[Any], name: str = "cb") -> Tuple[Tuple[Any, ...], Callable]:
    """Split the trailing completion callback off a callback-form call"""
    if not args:
        raise InvalidArgTypeError(name, "function", None)
    callback = args[-1]
    validate_function(callback, name)
    return tuple(args[:-1]), callback


def is_bytes_like(value: Any) -> bool:
    return isinstance(value, (bytes, bytearray, memoryview))


def _writable_view(buffer: Any, name: str = "buffer") -> memoryview:
    if isinstance(buffer, bytearray) or (isinstance(buffer, memoryview) and not buffer.readonly):
        return memoryview(buffer).cast("B")
    raise InvalidArgTypeError(name, "bytearray or writable memoryview", buffer)


def _readable_view(buffer: Any, name: str = "buffer") -> memoryview:
    if not is_bytes_like(buffer):
        raise InvalidArgTypeError(name, "bytes, bytearray or memoryview", buffer)
    return memoryview(buffer).cast("B")


def encode_text(text: str, encoding: Optional[str]) -> bytes:
    """Encode a str with a Node-style encoding name"""
    if encoding in (None, "buffer") or encoding in _UTF8_NAMES:
        return text.encode("utf-8")
    if encoding == "hex":
        return bytes.fromhex(text)
    if encoding in ("base64", "base64url"):
        padded = text + "=" * (-len(text) % 4)
        if encoding == "base64url":
            return base64.urlsafe_b64decode(padded)
        return base64.b64decode(padded)
    return text.encode(encoding)


def decode_bytes(data: BytesLike, encoding: Optional[str]) -> Union[str, bytes]:
    """Decode bytes with a Node-style encoding name; None/'buffer' keep bytes"""
    data = bytes(data)
    if encoding in (None, "buffer"):
        return data
    if encoding in _UTF8_NAMES:
        return data.decode("utf-8", errors="replace")
    if encoding == "hex":
        return data.hex()
    if encoding == "base64":
        return base64.b64encode(data).decode("ascii")
    if encoding == "base64url":
        return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")
    return data.decode(encoding)


def format_path(path: str, encoding: Optional[str]) -> Union[str, bytes]:
    """Render a path or entry name in the caller's requested encoding"""
    if encoding is None or encoding in _UTF8_NAMES:
        return path
    return decode_bytes(path.encode("utf-8", errors="surrogateescape"), encoding)


def to_bytes(data: Any, encoding: Optional[str], name: str = "data") -> bytes:
    """Turn str or bytes-like file contents into bytes"""
    if isinstance(data, str):
        return encode_text(data, encoding)
    if is_bytes_like(data):
        return bytes(data)
    raise InvalidArgTypeError(name, "str, bytes, bytearray or memoryview", data)


def _bounds(view_length: int, offset: Any, length: Any) -> Tuple[int, int]:
    offset = 0 if offset is None else validate_integer(offset, "offset", 0, view_length)
    if length is None:
        length = view_length - offset
    else:
        validate_integer(length, "length", 0, view_length - offset)
    return offset, length


def resolve_read_args(args: Sequence[Any]) -> ReadRequest:
    """Resolve the read() call shapes

    Accepted layouts after the descriptor:
        ()                                   -> fresh 16 KiB buffer
        (options)                            -> {buffer, offset, length, position}
        (buffer, options)
        (buffer, offset=0, length=None, position=None)
    """
    if len(args) > 4:
        raise InvalidArgTypeError("args", "at most 4 positional arguments", args)

    options: Optional[Mapping] = None
    if not args:
        buffer: Any = bytearray(DEFAULT_READ_BUFFER_SIZE)
        rest: Sequence[Any] = ()
    elif isinstance(args[0], Mapping):
        options = args[0]
        buffer = options.get("buffer")
        if buffer is None:
            buffer = bytearray(DEFAULT_READ_BUFFER_SIZE)
        rest = ()
    else:
        buffer = args[0]
        rest = args[1:]
        if rest and isinstance(rest[0], Mapping):
            options = rest[0]
            rest = ()

    view = _writable_view(buffer)
    if options is not None:
        offset, length, position = (
            options.get("offset"),
            options.get("length"),
            options.get("position"),
        )
    else:
        padded = list(rest) + [None] * (3 - len(rest))
        offset, length, position = padded

    offset, length = _bounds(len(view), offset, length)
    return ReadRequest(buffer, offset, length, optional_position(position))


def resolve_write_args(data: Any, args: Sequence[Any]) -> WriteRequest:
    """Resolve the write() call shapes

    Accepted layouts after the descriptor:
        (str, position=None, encoding='utf8')
        (buffer, options)                    -> {offset, length, position}
        (buffer, offset=0, length=None, position=None)
    """
    if isinstance(data, str):
        if len(args) > 2:
            raise InvalidArgTypeError("args", "at most 2 positional arguments", args)
        position = args[0] if args else None
        encoding = args[1] if len(args) > 1 and args[1] is not None else "utf8"
        validate_encoding(encoding)
        return WriteRequest(encode_text(data, encoding), optional_position(position), data)

    view = _readable_view(data)
    if len(args) > 3:
        raise InvalidArgTypeError("args", "at most 3 positional arguments", args)
    if args and isinstance(args[0], Mapping):
        options = args[0]
        offset, length, position = (
            options.get("offset"),
            options.get("length"),
            options.get("position"),
        )
    else:
        padded = list(args) + [None] * (3 - len(args))
        offset, length, position = padded

    offset, length = _bounds(len(view), offset, length)
    payload = bytes(view[offset : offset + length])
    return WriteRequest(payload, optional_position(position), data)


def resolve_buffers(buffers: Any, writable: bool) -> List[memoryview]:
    """Validate the buffer list of readv/writev"""
    if isinstance(buffers, (str, bytes, bytearray, memoryview)) or not isinstance(
        buffers, Sequence
    ):
        raise InvalidArgTypeError("buffers", "sequence of buffers", buffers)
    to_view = _writable_view if writable else _readable_view
    return [to_view(buffer, "buffers") for buffer in buffers]
