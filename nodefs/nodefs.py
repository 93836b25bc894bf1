"""Main NodeFS class"""

import logging
from dataclasses import dataclass
from typing import Literal, Optional

from .binding import Binding, HostBinding
from .constants import DEFAULT_PAGE_SIZE
from .filesystem import Filesystem
from .promises import FilesystemPromises
from .turso_binding import TursoBinding

logger = logging.getLogger(__name__)

Backend = Literal["host", "turso"]

_BACKENDS = ("host", "turso")

_default_fs: Optional[Filesystem] = None


@dataclass
class FsOptions:
    """Configuration options for opening a NodeFS instance

    Attributes:
        backend: Which binding serves the primitives.
            - "host": The operating system's filesystem
            - "turso": A virtual filesystem stored in a SQLite database
        path: Database file for the turso backend (":memory:" allowed).
            Ignored by the host backend.
        page_size: Number of entries a directory page may hold
    """

    backend: Backend = "host"
    path: Optional[str] = None
    page_size: int = DEFAULT_PAGE_SIZE


class NodeFS:
    """NodeFS - a Node-style filesystem API over a pluggable binding

    Exposes the blocking and callback operations as ``fs`` and the
    coroutine operations as ``promises``.
    """

    def __init__(self, binding: Binding, fs: Filesystem):
        """Private constructor - use NodeFS.open() instead"""
        self._binding = binding
        self.fs = fs

    @property
    def promises(self) -> FilesystemPromises:
        return self.fs.promises

    @staticmethod
    def open(options: Optional[FsOptions] = None) -> "NodeFS":
        """Open a filesystem

        Args:
            options: Configuration options (defaults to the host backend)

        Returns:
            Fully initialized NodeFS instance

        Raises:
            ValueError: If the backend is unknown, the page size is not a
                positive integer, or the turso backend has no path

        Example:
            >>> # Host filesystem
            >>> nfs = NodeFS.open()
            >>>
            >>> # Virtual filesystem in a database file
            >>> nfs = NodeFS.open(FsOptions(backend="turso", path="./data/fs.db"))
        """
        options = options or FsOptions()

        if options.backend not in _BACKENDS:
            raise ValueError(
                f"Unknown backend {options.backend!r}; expected one of {', '.join(_BACKENDS)}"
            )
        if (
            not isinstance(options.page_size, int)
            or isinstance(options.page_size, bool)
            or options.page_size < 1
        ):
            raise ValueError("page_size must be a positive integer")

        if options.backend == "turso":
            if not options.path:
                raise ValueError("The turso backend requires a database 'path'.")
            binding: Binding = TursoBinding.open_database(options.path, options.page_size)
        else:
            binding = HostBinding(options.page_size)

        logger.debug("Opened %s backend (page_size=%d)", options.backend, options.page_size)
        return NodeFS.open_with(binding)

    @staticmethod
    def open_with(binding: Binding) -> "NodeFS":
        """Open a NodeFS instance over an existing binding

        Args:
            binding: Any object implementing the Binding primitives

        Returns:
            Fully initialized NodeFS instance
        """
        return NodeFS(binding, Filesystem(binding))

    def get_binding(self) -> Binding:
        """Get the underlying binding"""
        return self._binding

    def close(self) -> None:
        """Release the binding's resources (the database for turso)"""
        if isinstance(self._binding, TursoBinding):
            self._binding.close_database()

    def __enter__(self) -> "NodeFS":
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """Context manager exit"""
        self.close()


def default_fs() -> Filesystem:
    """Module-wide host-backed Filesystem, created on first use"""
    global _default_fs
    if _default_fs is None:
        _default_fs = Filesystem(HostBinding())
    return _default_fs
