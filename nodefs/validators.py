"""Argument validation shared by every filesystem entry point

Every helper either returns the canonical form of its argument or raises a
NodeError subclass. Validation runs before any work is scheduled, so these
errors always surface synchronously.
"""

import codecs
import math
import os
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from .constants import F_OK, R_OK, W_OK, X_OK
from .errors import InvalidArgTypeError, InvalidArgValueError, OutOfRangeError

MAX_SAFE_INTEGER = 2**53 - 1
MIN_SAFE_INTEGER = -(2**53 - 1)
INT32_MAX = 2**31 - 1


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_function(value: Any, name: str) -> None:
    if not callable(value):
        raise InvalidArgTypeError(name, "function", value)


def validate_boolean(value: Any, name: str) -> None:
    if not isinstance(value, bool):
        raise InvalidArgTypeError(name, "boolean", value)


def validate_integer(
    value: Any,
    name: str,
    minimum: int = MIN_SAFE_INTEGER,
    maximum: int = MAX_SAFE_INTEGER,
) -> int:
    """Require an int within [minimum, maximum]"""
    if not _is_int(value):
        raise InvalidArgTypeError(name, "int", value)
    if value < minimum or value > maximum:
        raise OutOfRangeError(name, f">= {minimum} && <= {maximum}", value)
    return value


def validate_object(value: Any, name: str, nullable: bool = False) -> None:
    if value is None and nullable:
        return
    if not isinstance(value, Mapping):
        raise InvalidArgTypeError(name, "Mapping", value)


def validate_encoding(encoding: Any, name: str = "encoding") -> None:
    """Accept None, 'buffer' or any codec name Python knows"""
    if encoding is None or encoding == "buffer":
        return
    if not isinstance(encoding, str):
        raise InvalidArgTypeError(name, "str", encoding)
    try:
        codecs.lookup(encoding)
    except LookupError:
        raise InvalidArgValueError(name, encoding, "is invalid encoding") from None


def get_validated_path(path: Any, name: str = "path") -> str:
    """Return the path as text, rejecting wrong types and embedded null bytes"""
    if isinstance(path, os.PathLike):
        path = os.fspath(path)
    if isinstance(path, (bytes, bytearray)):
        path = bytes(path).decode("utf-8", errors="surrogateescape")
    if not isinstance(path, str):
        raise InvalidArgTypeError(name, "str, bytes or os.PathLike", path)
    if "\x00" in path:
        raise InvalidArgValueError(name, path, "must be a string without null bytes")
    return path


def get_validated_fd(fd: Any, name: str = "fd") -> int:
    return validate_integer(fd, name, 0, INT32_MAX)


def get_valid_mode(mode: Any) -> int:
    """Validate an access() mode mask; None means F_OK"""
    if mode is None:
        return F_OK
    return validate_integer(mode, "mode", F_OK, R_OK | W_OK | X_OK)


def parse_file_mode(
    value: Any, name: str, default: int, maximum: int = 0o7777
) -> int:
    """Accept an int or an octal string ('644') as a permission mode"""
    if value is None:
        return default
    if isinstance(value, str):
        try:
            value = int(value, 8)
        except ValueError:
            raise InvalidArgValueError(
                name, value, "must be a 32-bit unsigned integer or an octal string"
            ) from None
    return validate_integer(value, name, 0, maximum)


def get_valid_time(value: Any, name: str) -> int:
    """Convert a timestamp to integer nanoseconds since the epoch

    Numbers and numeric strings are seconds; datetimes are converted
    directly.
    """
    if isinstance(value, datetime):
        return int(value.timestamp() * 1_000_000) * 1000
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            raise InvalidArgTypeError(name, "int, float, str or datetime", value) from None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgTypeError(name, "int, float, str or datetime", value)
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidArgTypeError(name, "int, float, str or datetime", value)
    if _is_int(value):
        return value * 1_000_000_000
    return int(round(value * 1_000_000)) * 1000


def optional_position(position: Optional[Any], name: str = "position") -> int:
    """Canonicalize a read/write position; None and -1 mean the current position"""
    if position is None:
        return -1
    return validate_integer(position, name, -1, 2**63 - 1)
