"""Per-operation option defaults and the shallow option defaulter"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Optional

from .constants import DEFAULT_DIR_MODE, DEFAULT_FILE_MODE
from .validators import validate_object

STAT_DEFAULTS = MappingProxyType({"bigint": False, "throw_if_no_entry": True})
MKDIR_DEFAULTS = MappingProxyType({"recursive": False, "mode": DEFAULT_DIR_MODE})
RMDIR_DEFAULTS = MappingProxyType({"max_retries": 0, "recursive": False, "retry_delay": 100})
RM_DEFAULTS = MappingProxyType(
    {"force": False, "max_retries": 0, "recursive": False, "retry_delay": 100}
)
ENCODING_DEFAULTS = MappingProxyType({"encoding": "utf8"})
READ_FILE_DEFAULTS = MappingProxyType({"encoding": None, "flag": "r", "signal": None})
WRITE_FILE_DEFAULTS = MappingProxyType(
    {"encoding": "utf8", "mode": DEFAULT_FILE_MODE, "flag": "w", "signal": None}
)
APPEND_FILE_DEFAULTS = MappingProxyType(
    {"encoding": "utf8", "mode": DEFAULT_FILE_MODE, "flag": "a", "signal": None}
)
CP_DEFAULTS = MappingProxyType(
    {
        "dereference": False,
        "error_on_exist": False,
        "filter": None,
        "force": True,
        "preserve_timestamps": False,
        "recursive": False,
        "verbatim_symlinks": False,
    }
)
OPENDIR_DEFAULTS = MappingProxyType({"encoding": "utf8"})
READDIR_DEFAULTS = MappingProxyType({"encoding": "utf8", "with_file_types": False})
READ_STREAM_DEFAULTS = MappingProxyType(
    {
        "flags": "r",
        "encoding": None,
        "mode": DEFAULT_FILE_MODE,
        "start": None,
        "end": None,
        "high_water_mark": 64 * 1024,
    }
)
WRITE_STREAM_DEFAULTS = MappingProxyType(
    {"flags": "w", "encoding": "utf8", "mode": DEFAULT_FILE_MODE, "start": None}
)


def apply_default_value(
    options: Optional[Mapping], defaults: Mapping, name: str = "options"
) -> Dict[str, Any]:
    """Shallow-merge caller options over a fixed default

    Every key the caller supplies wins for that key only, including keys the
    defaults do not know about. The result is always a new dict; neither
    input is mutated.

    Args:
        options: Caller-supplied mapping, or None for all defaults
        defaults: Per-operation default record
        name: Argument name used in validation errors

    Returns:
        A fresh dict with the merged options

    Example:
        >>> apply_default_value({"bigint": True}, STAT_DEFAULTS)
        {'bigint': True, 'throw_if_no_entry': True}
    """
    validate_object(options, name, nullable=True)
    merged = dict(defaults)
    if options:
        merged.update(options)
    return merged


def encoding_options(
    options: Any, defaults: Mapping, name: str = "options"
) -> Dict[str, Any]:
    """Default options that may also be given as a bare encoding string"""
    if isinstance(options, str):
        options = {"encoding": options}
    return apply_default_value(options, defaults, name)
