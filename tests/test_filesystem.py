"""Filesystem Integration Tests (host binding)"""

import os
import tempfile

import pytest

from nodefs import (
    Dirent,
    ErrnoException,
    FileExistsErrnoException,
    Filesystem,
    HostBinding,
    InvalidArgTypeError,
    IsADirectoryErrnoException,
    OutOfRangeError,
    UnsupportedOperationError,
    constants,
)
from nodefs.errors import UV_ENOENT


def make_fs(page_size: int = 64) -> Filesystem:
    return Filesystem(HostBinding(page_size))


class TestFilesystemStat:
    """stat, lstat, fstat"""

    def test_stat_regular_file(self):
        """Should report size and type of a file"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.txt")
            fs.write_file_sync(path, "Hello, World!")

            stats = fs.stat_sync(path)
            assert stats.is_file()
            assert not stats.is_directory()
            assert stats.size == 13

    def test_stat_missing_raises_enoent(self):
        """Should raise ENOENT for a missing path"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            missing = os.path.join(tmpdir, "missing")
            with pytest.raises(FileNotFoundError, match="ENOENT") as exc_info:
                fs.stat_sync(missing)
            assert exc_info.value.syscall == "stat"
            assert exc_info.value.path == missing

    def test_stat_missing_without_throw(self):
        """Should return None when throw_if_no_entry is False"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            result = fs.stat_sync(os.path.join(tmpdir, "missing"), {"throw_if_no_entry": False})
            assert result is None

    def test_bigint_agrees_with_standard(self):
        """Should produce equal values in both precisions"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.txt")
            fs.write_file_sync(path, b"\x00" * 100)

            standard = fs.stat_sync(path)
            exact = fs.stat_sync(path, {"bigint": True})
            assert standard.size == exact.size == 100
            assert standard.ino == exact.ino
            assert standard.mtime_ms == exact.mtime_ms
            assert exact.mtime_ns == exact.mtime_ms * 1_000_000

    def test_lstat_describes_symlink(self):
        """Should describe the link itself"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            target = os.path.join(tmpdir, "target.txt")
            link = os.path.join(tmpdir, "link")
            fs.write_file_sync(target, "data")
            fs.symlink_sync(target, link)

            assert fs.lstat_sync(link).is_symbolic_link()
            assert fs.stat_sync(link).is_file()

    def test_fstat(self):
        """Should stat an open descriptor"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.txt")
            fs.write_file_sync(path, "12345")
            fd = fs.open_sync(path)
            try:
                assert fs.fstat_sync(fd).size == 5
            finally:
                fs.close_sync(fd)


class TestFilesystemAccess:
    """access and exists"""

    def test_access_existing(self):
        """Should succeed for an existing path"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            fs.access_sync(tmpdir)
            fs.access_sync(tmpdir, constants.F_OK)

    def test_access_missing_is_enoent(self):
        """Should raise ENOENT with path, syscall and errno"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            missing = os.path.join(tmpdir, "missing")
            with pytest.raises(FileNotFoundError) as exc_info:
                fs.access_sync(missing)
            err = exc_info.value
            assert err.code == "ENOENT"
            assert err.syscall == "access"
            assert err.path == missing
            assert err.errno == UV_ENOENT

    def test_access_denied_mode_is_enoent(self):
        """Should report a denied mode as ENOENT"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "plain.txt")
            fs.write_file_sync(path, "x", {"mode": 0o644})
            os.chmod(path, 0o644)
            with pytest.raises(FileNotFoundError, match="ENOENT"):
                fs.access_sync(path, constants.X_OK)

    def test_access_rejects_bad_mode(self):
        """Should validate the mode synchronously"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            with pytest.raises(OutOfRangeError):
                fs.access_sync(tmpdir, 8)

    def test_exists(self):
        """Should return booleans and never raise"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            assert fs.exists_sync(tmpdir) is True
            assert fs.exists_sync(os.path.join(tmpdir, "missing")) is False
            assert fs.exists_sync(12.5) is False
            assert fs.exists_sync("bad\x00path") is False


class TestFilesystemDirectories:
    """mkdir, rmdir, rm, mkdtemp, readdir"""

    def test_mkdir_recursive_returns_first_created(self):
        """Should return the first directory actually created"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "a", "b", "c")
            first = fs.mkdir_sync(path, {"recursive": True})
            assert first == os.path.join(tmpdir, "a")
            assert fs.stat_sync(path).is_directory()

    def test_mkdir_recursive_existing_returns_none(self):
        """Should return None when every component exists"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "a", "b")
            fs.mkdir_sync(path, {"recursive": True})
            assert fs.mkdir_sync(path, {"recursive": True}) is None

    def test_mkdir_existing_raises_eexist(self):
        """Should raise EEXIST without recursive"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            with pytest.raises(FileExistsError) as exc_info:
                fs.mkdir_sync(tmpdir)
            assert exc_info.value.code == "EEXIST"
            assert exc_info.value.syscall == "mkdir"

    def test_mkdir_missing_parent_raises_enoent(self):
        """Should raise ENOENT when the parent is missing"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            with pytest.raises(FileNotFoundError, match="ENOENT"):
                fs.mkdir_sync(os.path.join(tmpdir, "missing", "child"))

    def test_mkdir_under_file_raises_enotdir(self):
        """Should raise ENOTDIR when a component is a file"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            file_path = os.path.join(tmpdir, "file.txt")
            fs.write_file_sync(file_path, "x")
            with pytest.raises(NotADirectoryError, match="ENOTDIR"):
                fs.mkdir_sync(os.path.join(file_path, "child"))

    def test_mkdir_mode_shorthand(self):
        """Should accept an int or octal string as the mode"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            assert fs.mkdir_sync(os.path.join(tmpdir, "int"), 0o755) is None
            assert fs.mkdir_sync(os.path.join(tmpdir, "str"), "755") is None
            assert fs.stat_sync(os.path.join(tmpdir, "str")).is_directory()

    def test_rmdir(self):
        """Should remove an empty directory and refuse a non-empty one"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            empty = os.path.join(tmpdir, "empty")
            full = os.path.join(tmpdir, "full")
            fs.mkdir_sync(empty)
            fs.mkdir_sync(full)
            fs.write_file_sync(os.path.join(full, "f"), "x")

            fs.rmdir_sync(empty, {"max_retries": 3})
            assert not fs.exists_sync(empty)
            with pytest.raises(ErrnoException) as exc_info:
                fs.rmdir_sync(full)
            assert exc_info.value.code == "ENOTEMPTY"

    def test_rm_file_and_tree(self):
        """Should remove files, and trees with recursive"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            tree = os.path.join(tmpdir, "tree")
            fs.mkdir_sync(os.path.join(tree, "sub"), {"recursive": True})
            fs.write_file_sync(os.path.join(tree, "sub", "f.txt"), "x")

            with pytest.raises(IsADirectoryErrnoException) as exc_info:
                fs.rm_sync(tree)
            assert exc_info.value.code == "EISDIR"

            fs.rm_sync(tree, {"recursive": True})
            assert not fs.exists_sync(tree)

    def test_rm_force_ignores_missing(self):
        """Should ignore a missing path with force"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            missing = os.path.join(tmpdir, "missing")
            fs.rm_sync(missing, {"force": True})
            with pytest.raises(FileNotFoundError):
                fs.rm_sync(missing)

    def test_mkdtemp(self):
        """Should create prefix plus six alphanumerics"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            prefix = os.path.join(tmpdir, "tmp-")
            path = fs.mkdtemp_sync(prefix)
            assert path.startswith(prefix)
            suffix = path[len(prefix):]
            assert len(suffix) == 6
            assert suffix.isalnum()
            assert fs.stat_sync(path).is_directory()

            raw = fs.mkdtemp_sync(prefix, "buffer")
            assert isinstance(raw, bytes)

    def test_readdir_names_and_types(self):
        """Should list entries without '.' and '..' across several pages"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs(page_size=2)
            for i in range(5):
                fs.write_file_sync(os.path.join(tmpdir, f"file{i}.txt"), str(i))
            fs.mkdir_sync(os.path.join(tmpdir, "sub"))

            names = fs.readdir_sync(tmpdir)
            assert sorted(names) == ["file0.txt", "file1.txt", "file2.txt", "file3.txt", "file4.txt", "sub"]

            entries = fs.readdir_sync(tmpdir, {"with_file_types": True})
            assert all(isinstance(e, Dirent) for e in entries)
            by_name = {e.name: e for e in entries}
            assert by_name["sub"].is_directory()
            assert by_name["file0.txt"].is_file()

    def test_readdir_buffer_names(self):
        """Should return bytes names with encoding='buffer'"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            fs.write_file_sync(os.path.join(tmpdir, "a.txt"), "x")
            assert fs.readdir_sync(tmpdir, "buffer") == [b"a.txt"]

    def test_readdir_of_file_raises_enotdir(self):
        """Should raise ENOTDIR when listing a file"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.txt")
            fs.write_file_sync(path, "x")
            with pytest.raises(NotADirectoryError):
                fs.readdir_sync(path)

    @pytest.mark.skipif(os.scandir not in os.supports_fd, reason="scandir cannot list a descriptor")
    def test_open_dir_survives_rename(self):
        """Should keep listing the opened directory after it is renamed"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs(page_size=2)
            before = os.path.join(tmpdir, "before")
            after = os.path.join(tmpdir, "after")
            fs.mkdir_sync(before)
            for name in ("a.txt", "b.txt", "c.txt"):
                fs.write_file_sync(os.path.join(before, name), name)

            d = fs.opendir_sync(before)
            os.rename(before, after)
            assert sorted(entry.name for entry in d) == ["a.txt", "b.txt", "c.txt"]
            assert d.closed


class TestFilesystemPaths:
    """rename, unlink, truncate, realpath, links, copy_file"""

    def test_rename_and_unlink(self):
        """Should move and then remove a file"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            old = os.path.join(tmpdir, "old.txt")
            new = os.path.join(tmpdir, "new.txt")
            fs.write_file_sync(old, "content")
            fs.rename_sync(old, new)
            assert not fs.exists_sync(old)
            assert fs.read_file_sync(new, "utf8") == "content"

            fs.unlink_sync(new)
            assert not fs.exists_sync(new)
            with pytest.raises(FileNotFoundError) as exc_info:
                fs.unlink_sync(new)
            assert exc_info.value.syscall == "unlink"

    def test_truncate(self):
        """Should shrink files and treat a negative length as 0"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.txt")
            fs.write_file_sync(path, "0123456789")
            fs.truncate_sync(path, 4)
            assert fs.read_file_sync(path, "utf8") == "0123"
            fs.truncate_sync(path, -5)
            assert fs.stat_sync(path).size == 0

    def test_realpath_normalizes_plain_path(self):
        """Should normalize a path that is not a symlink"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            fs.mkdir_sync(os.path.join(tmpdir, "a"))
            fs.write_file_sync(os.path.join(tmpdir, "f.txt"), "x")
            assert fs.realpath_sync(os.path.join(tmpdir, "a", "..", "f.txt")) == os.path.join(tmpdir, "f.txt")

    def test_realpath_resolves_symlink(self):
        """Should resolve a symlink through the binding"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            target = os.path.join(tmpdir, "target.txt")
            link = os.path.join(tmpdir, "link")
            fs.write_file_sync(target, "x")
            fs.symlink_sync(target, link)
            assert fs.realpath_sync(link) == os.path.realpath(target)
            assert fs.realpath_sync(link, {"encoding": "buffer"}) == os.path.realpath(target).encode()

    def test_readlink(self):
        """Should return the symlink target"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            link = os.path.join(tmpdir, "link")
            fs.symlink_sync("target.txt", link)
            assert fs.readlink_sync(link) == "target.txt"

    def test_hard_link(self):
        """Should share contents between links"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            original = os.path.join(tmpdir, "original.txt")
            linked = os.path.join(tmpdir, "linked.txt")
            fs.write_file_sync(original, "shared")
            fs.link_sync(original, linked)
            assert fs.stat_sync(original).nlink == 2
            assert fs.read_file_sync(linked, "utf8") == "shared"

    def test_copy_file(self):
        """Should copy contents and overwrite by default"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            src = os.path.join(tmpdir, "src.txt")
            dest = os.path.join(tmpdir, "dest.txt")
            fs.write_file_sync(src, "source")
            fs.write_file_sync(dest, "old")
            fs.copy_file_sync(src, dest)
            assert fs.read_file_sync(dest, "utf8") == "source"

    def test_copy_file_excl(self):
        """Should refuse an existing destination with COPYFILE_EXCL"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            src = os.path.join(tmpdir, "src.txt")
            dest = os.path.join(tmpdir, "dest.txt")
            fs.write_file_sync(src, "source")
            fs.write_file_sync(dest, "keep")

            with pytest.raises(FileExistsErrnoException) as exc_info:
                fs.copy_file_sync(src, dest, constants.COPYFILE_EXCL)
            err = exc_info.value
            assert err.code == "EEXIST"
            assert err.syscall == "copyfile"
            assert err.path == src
            assert err.dest == dest
            assert fs.read_file_sync(dest, "utf8") == "keep"

            fresh = os.path.join(tmpdir, "fresh.txt")
            fs.copy_file_sync(src, fresh, constants.COPYFILE_EXCL)
            assert fs.read_file_sync(fresh, "utf8") == "source"

    def test_utimes(self):
        """Should set access and modification times in seconds"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.txt")
            fs.write_file_sync(path, "x")
            fs.utimes_sync(path, 1_000_000, 2_000_000)
            stats = fs.stat_sync(path)
            assert stats.atime_ms == 1_000_000_000
            assert stats.mtime_ms == 2_000_000_000


class TestFilesystemDescriptors:
    """open, read, write, readv, writev"""

    def test_write_then_read_at_positions(self):
        """Should honor explicit positions and the implicit position"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.bin")
            fd = fs.open_sync(path, "w+")
            try:
                assert fs.write_sync(fd, b"hello world") == 11
                assert fs.write_sync(fd, "HELLO", 0) == 5

                buffer = bytearray(5)
                assert fs.read_sync(fd, buffer, 0, 5, 6) == 5
                assert bytes(buffer) == b"world"

                buffer = bytearray(20)
                count = fs.read_sync(fd, buffer, {"position": 0})
                assert bytes(buffer[:count]) == b"HELLO world"
            finally:
                fs.close_sync(fd)

    def test_read_default_buffer_at_eof(self):
        """Should return 0 at end of file"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.txt")
            fs.write_file_sync(path, "abc")
            fd = fs.open_sync(path)
            try:
                assert fs.read_sync(fd) == 3
                assert fs.read_sync(fd) == 0
            finally:
                fs.close_sync(fd)

    def test_readv_and_writev(self):
        """Should scatter and gather across buffers in order"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.bin")
            fd = fs.open_sync(path, "w+")
            try:
                assert fs.writev_sync(fd, [b"abc", bytearray(b"def"), memoryview(b"gh")], 0) == 8
                first, second = bytearray(3), bytearray(10)
                assert fs.readv_sync(fd, [first, second], 0) == 8
                assert bytes(first) == b"abc"
                assert bytes(second[:5]) == b"defgh"
            finally:
                fs.close_sync(fd)

    def test_open_flags(self):
        """Should honor exclusive creation"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.txt")
            fs.close_sync(fs.open_sync(path, "wx", "600"))
            with pytest.raises(FileExistsError, match="EEXIST"):
                fs.open_sync(path, "wx")

    def test_open_missing_is_enoent(self):
        """Should raise ENOENT for a missing file opened for reading"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            with pytest.raises(FileNotFoundError) as exc_info:
                fs.open_sync(os.path.join(tmpdir, "missing"))
            assert exc_info.value.syscall == "open"

    def test_invalid_arguments_raise_immediately(self):
        """Should validate descriptors and buffers"""
        fs = make_fs()
        with pytest.raises(InvalidArgTypeError):
            fs.read_sync("3", bytearray(1))
        with pytest.raises(InvalidArgTypeError):
            fs.read_sync(3, b"immutable")
        with pytest.raises(OutOfRangeError):
            fs.read_sync(3, bytearray(4), 0, 10)
        with pytest.raises(OutOfRangeError):
            fs.close_sync(-1)


class TestFilesystemWholeFiles:
    """read_file, write_file, append_file"""

    def test_bytes_round_trip(self):
        """Should return the same bytes that were written"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "data.bin")
            payload = bytes(range(256)) * 300
            fs.write_file_sync(path, payload)
            assert fs.read_file_sync(path) == payload

    def test_text_and_encodings(self):
        """Should encode and decode with the requested encoding"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "text.txt")
            fs.write_file_sync(path, "héllo")
            assert fs.read_file_sync(path, "utf8") == "héllo"
            assert fs.read_file_sync(path, {"encoding": "hex"}) == "héllo".encode().hex()

            fs.write_file_sync(path, "68656c6c6f", {"encoding": "hex"})
            assert fs.read_file_sync(path, "utf8") == "hello"

    def test_append_file(self):
        """Should append and create missing files"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "log.txt")
            fs.append_file_sync(path, "one\n")
            fs.append_file_sync(path, b"two\n")
            assert fs.read_file_sync(path, "utf8") == "one\ntwo\n"

    def test_descriptor_is_left_open(self):
        """Should never close a caller-supplied descriptor"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.txt")
            fd = fs.open_sync(path, "w+")
            try:
                fs.write_file_sync(fd, "hello")
                fs.write_file_sync(fd, " world")
                assert fs.read_file_sync(fd) == b""
                assert fs.fstat_sync(fd).size == 11
            finally:
                fs.close_sync(fd)
            assert fs.read_file_sync(path, "utf8") == "hello world"

    def test_read_file_of_directory(self):
        """Should raise for a directory"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            with pytest.raises(IsADirectoryError):
                fs.read_file_sync(tmpdir)


class TestFilesystemInertAndUnsupported:
    """Permission no-ops and unsupported APIs"""

    def test_chown_chmod_are_inert(self):
        """Should validate arguments and change nothing"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.txt")
            fs.write_file_sync(path, "x")
            before = fs.stat_sync(path).mode
            fs.chmod_sync(path, 0o000)
            fs.lchmod_sync(path, "700")
            fs.chown_sync(path, 0, 0)
            fs.lchown_sync(path, -1, -1)
            assert fs.stat_sync(path).mode == before

            with pytest.raises(InvalidArgTypeError):
                fs.chown_sync(path, "root", 0)

    def test_watch_is_unsupported(self):
        """Should raise ENOSYS for watch APIs"""
        fs = make_fs()
        for method in (fs.watch, fs.watch_file, fs.unwatch):
            with pytest.raises(UnsupportedOperationError) as exc_info:
                method("/tmp")
            assert exc_info.value.code == "ENOSYS"
