"""Callback form and deferred execution tests"""

import asyncio
import os
import tempfile

import pytest

from nodefs import Filesystem, HostBinding, InvalidArgTypeError, promisify
from nodefs.deferred import Deliver, defer


def make_fs() -> Filesystem:
    return Filesystem(HostBinding())


def collector(loop: asyncio.AbstractEventLoop):
    """Callback that resolves a future with every argument it receives"""
    future = loop.create_future()

    def callback(*args):
        future.set_result(args)

    return future, callback


@pytest.mark.asyncio
class TestCallbackForms:
    """Deferred delivery through callbacks"""

    async def test_result_is_delivered_later(self):
        """Should deliver (None, value) on a later loop turn"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            future, callback = collector(asyncio.get_running_loop())

            fs.stat(tmpdir, callback)
            assert not future.done()

            err, stats = await future
            assert err is None
            assert stats.is_directory()

    async def test_error_is_first_argument(self):
        """Should deliver a translated error as the only argument"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            future, callback = collector(asyncio.get_running_loop())

            fs.stat(os.path.join(tmpdir, "missing"), callback)
            (err,) = await future
            assert isinstance(err, FileNotFoundError)
            assert err.code == "ENOENT"

    async def test_void_operations_pass_only_none(self):
        """Should call back with a single None for void operations"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            future, callback = collector(asyncio.get_running_loop())

            fs.mkdir(os.path.join(tmpdir, "d"), callback)
            assert await future == (None,)

    async def test_options_before_callback(self):
        """Should accept options ahead of the callback"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            future, callback = collector(asyncio.get_running_loop())

            fs.stat(tmpdir, {"bigint": True}, callback)
            err, stats = await future
            assert err is None
            assert isinstance(stats.size, int)
            assert stats.mtime_ns is not None

    async def test_read_delivers_count_and_buffer(self):
        """Should deliver bytes read and the buffer"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            path = os.path.join(tmpdir, "file.txt")
            fs.write_file_sync(path, "abcdef")
            fd = fs.open_sync(path)
            try:
                buffer = bytearray(4)
                future, callback = collector(asyncio.get_running_loop())
                fs.read(fd, buffer, 0, 4, 2, callback)
                err, count, returned = await future
                assert err is None
                assert count == 4
                assert returned is buffer
                assert bytes(buffer) == b"cdef"
            finally:
                fs.close_sync(fd)

    async def test_exists_has_no_error_slot(self):
        """Should call exists callbacks with the boolean only"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            future, callback = collector(asyncio.get_running_loop())
            fs.exists(os.path.join(tmpdir, "missing"), callback)
            assert await future == (False,)

    async def test_completion_order_is_enqueue_order(self):
        """Should complete deferred operations in FIFO order"""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = make_fs()
            loop = asyncio.get_running_loop()
            order = []
            done = loop.create_future()

            def record(label):
                def callback(*args):
                    order.append(label)
                    if len(order) == 3:
                        done.set_result(None)

                return callback

            fs.write_file(os.path.join(tmpdir, "a"), "a", record("write"))
            fs.stat(tmpdir, record("stat"))
            fs.readdir(tmpdir, record("readdir"))
            await done
            assert order == ["write", "stat", "readdir"]

    async def test_validation_raises_at_call_site(self):
        """Should raise argument errors before scheduling anything"""
        fs = make_fs()
        calls = []
        with pytest.raises(InvalidArgTypeError):
            fs.stat(42, lambda *args: calls.append(args))
        with pytest.raises(InvalidArgTypeError):
            fs.stat("/tmp", {"bigint": True})
        await asyncio.sleep(0)
        assert calls == []

    async def test_defer_delivery_shapes(self):
        """Should shape callback arguments per delivery mode"""
        loop = asyncio.get_running_loop()
        results = {}
        for deliver, value in (
            (Deliver.VOID, "ignored"),
            (Deliver.VALUE, 1),
            (Deliver.VALUES, (1, 2)),
            (Deliver.BARE, True),
        ):
            future, callback = collector(loop)
            defer(callback, deliver, lambda v=value: v)
            results[deliver] = await future
        assert results[Deliver.VOID] == (None,)
        assert results[Deliver.VALUE] == (None, 1)
        assert results[Deliver.VALUES] == (None, 1, 2)
        assert results[Deliver.BARE] == (True,)

    async def test_promisify(self):
        """Should resolve with None, one value or a tuple and raise errors"""

        def none(cb):
            cb(None)

        def one(x, cb):
            cb(None, x)

        def many(cb):
            cb(None, 1, 2)

        def failing(cb):
            cb(ValueError("boom"))

        assert await promisify(none)() is None
        assert await promisify(one)(5) == 5
        assert await promisify(many)() == (1, 2)
        with pytest.raises(ValueError, match="boom"):
            await promisify(failing)()


class TestCallbackFormsWithoutLoop:
    """Callback forms outside an event loop"""

    def test_requires_running_loop(self):
        """Should raise RuntimeError when no loop is running"""
        fs = make_fs()
        with pytest.raises(RuntimeError):
            fs.stat("/", lambda *args: None)
