"""Coroutine forms of the filesystem operations

Every coroutine runs the callback form of the same operation and awaits
its completion, so argument errors still raise before anything is
scheduled and binding errors raise from the await.
"""

from typing import TYPE_CHECKING, Any, List, Optional, Union

from . import constants
from .deferred import promisify
from .dir import Dir
from .errors import UnsupportedOperationError
from .filehandle import FileHandle
from .validators import get_validated_path

if TYPE_CHECKING:
    from .filesystem import Filesystem, Snapshot


class FilesystemPromises:
    """Promise API bound to one Filesystem

    Example:
        >>> await fs.promises.write_file("/notes.txt", "hello")
        >>> await fs.promises.read_file("/notes.txt", "utf8")
        'hello'
    """

    constants = constants

    def __init__(self, fs: "Filesystem"):
        self._fs = fs

    async def access(self, path: Any, mode: Any = None) -> None:
        await promisify(self._fs.access)(path, mode)

    async def append_file(self, file: Any, data: Any, options: Any = None) -> None:
        await promisify(self._fs.append_file)(file, data, options)

    async def chmod(self, path: Any, mode: Any) -> None:
        await promisify(self._fs.chmod)(path, mode)

    async def chown(self, path: Any, uid: int, gid: int) -> None:
        await promisify(self._fs.chown)(path, uid, gid)

    async def lchmod(self, path: Any, mode: Any) -> None:
        await promisify(self._fs.lchmod)(path, mode)

    async def lchown(self, path: Any, uid: int, gid: int) -> None:
        await promisify(self._fs.lchown)(path, uid, gid)

    async def copy_file(self, src: Any, dest: Any, mode: Any = 0) -> None:
        await promisify(self._fs.copy_file)(src, dest, mode)

    async def cp(self, src: Any, dest: Any, options: Any = None) -> None:
        """Copy a file, symlink or directory tree; filter must be a plain function"""
        await promisify(self._fs.cp)(src, dest, options)

    async def link(self, existing_path: Any, new_path: Any) -> None:
        await promisify(self._fs.link)(existing_path, new_path)

    async def lstat(self, path: Any, options: Any = None) -> "Snapshot":
        return await promisify(self._fs.lstat)(path, options)

    async def stat(self, path: Any, options: Any = None) -> "Snapshot":
        return await promisify(self._fs.stat)(path, options)

    async def mkdir(self, path: Any, options: Any = None) -> Optional[str]:
        return await promisify(self._fs.mkdir)(path, options)

    async def mkdtemp(self, prefix: Any, options: Any = None) -> Union[str, bytes]:
        return await promisify(self._fs.mkdtemp)(prefix, options)

    async def open(self, path: Any, flags: Any = "r", mode: Any = None) -> FileHandle:
        """Open a file and wrap its descriptor in a FileHandle

        Args:
            path: File to open
            flags: Flag string or O_* bits (default 'r')
            mode: Permission bits for a created file (default 0o666)

        Returns:
            FileHandle owning the new descriptor
        """
        path = get_validated_path(path)
        fd = await promisify(self._fs.open)(path, flags, mode)
        return FileHandle(self._fs, fd, path)

    async def opendir(self, path: Any, options: Any = None) -> Dir:
        return await promisify(self._fs.opendir)(path, options)

    async def readdir(self, path: Any, options: Any = None) -> List[Any]:
        return await promisify(self._fs.readdir)(path, options)

    async def read_file(self, file: Any, options: Any = None) -> Union[str, bytes]:
        """Read a whole file; a FileHandle reads from its descriptor"""
        if isinstance(file, FileHandle):
            return await file.read_file(options)
        return await promisify(self._fs.read_file)(file, options)

    async def write_file(self, file: Any, data: Any, options: Any = None) -> None:
        if isinstance(file, FileHandle):
            await file.write_file(data, options)
            return
        await promisify(self._fs.write_file)(file, data, options)

    async def readlink(self, path: Any, options: Any = None) -> Union[str, bytes]:
        return await promisify(self._fs.readlink)(path, options)

    async def realpath(self, path: Any, options: Any = None) -> Union[str, bytes]:
        return await promisify(self._fs.realpath)(path, options)

    async def rename(self, old_path: Any, new_path: Any) -> None:
        await promisify(self._fs.rename)(old_path, new_path)

    async def rmdir(self, path: Any, options: Any = None) -> None:
        await promisify(self._fs.rmdir)(path, options)

    async def rm(self, path: Any, options: Any = None) -> None:
        await promisify(self._fs.rm)(path, options)

    async def symlink(self, target: Any, path: Any, type: Optional[str] = None) -> None:
        await promisify(self._fs.symlink)(target, path, type)

    async def truncate(self, path: Any, length: Any = 0) -> None:
        await promisify(self._fs.truncate)(path, length)

    async def unlink(self, path: Any) -> None:
        await promisify(self._fs.unlink)(path)

    async def utimes(self, path: Any, atime: Any, mtime: Any) -> None:
        await promisify(self._fs.utimes)(path, atime, mtime)

    async def lutimes(self, path: Any, atime: Any, mtime: Any) -> None:
        await promisify(self._fs.lutimes)(path, atime, mtime)

    async def watch(self, *args: Any, **kwargs: Any) -> None:
        raise UnsupportedOperationError("watch")
