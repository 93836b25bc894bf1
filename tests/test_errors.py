"""Error translation and option defaulting tests"""

import pytest

from nodefs import (
    BindingError,
    ErrnoException,
    FileExistsErrnoException,
    FileNotFoundErrnoException,
    InvalidArgTypeError,
    InvalidArgValueError,
    NotADirectoryErrnoException,
    OutOfRangeError,
    create_fs_error,
)
from nodefs.errors import UV_EEXIST, UV_ENOENT, translate_error, translate_read_error
from nodefs.options import MKDIR_DEFAULTS, STAT_DEFAULTS, apply_default_value, encoding_options
from nodefs.validators import get_valid_time, get_validated_path, parse_file_mode


class TestCreateFsError:
    """Formatted errors"""

    def test_message_and_attributes(self):
        """Should format code, description, syscall and path"""
        err = create_fs_error("ENOENT", "open", "/missing.txt")
        assert str(err) == "ENOENT: no such file or directory, open '/missing.txt'"
        assert err.code == "ENOENT"
        assert err.syscall == "open"
        assert err.path == "/missing.txt"
        assert err.errno == UV_ENOENT
        assert err.name == "Error"

    def test_dest_is_appended(self):
        """Should append the destination for two-path operations"""
        err = create_fs_error("EEXIST", "copyfile", "/a", dest="/b")
        assert str(err) == "EEXIST: file already exists, copyfile '/a' -> '/b'"
        assert err.dest == "/b"
        assert err.errno == UV_EEXIST

    def test_builtin_exception_classes(self):
        """Should be catchable with built-in OSError subclasses"""
        assert isinstance(create_fs_error("ENOENT", "stat", "/x"), FileNotFoundError)
        assert isinstance(create_fs_error("EEXIST", "mkdir", "/x"), FileExistsError)
        assert isinstance(create_fs_error("ENOTDIR", "mkdir", "/x"), NotADirectoryError)
        assert isinstance(create_fs_error("EISDIR", "open", "/x"), IsADirectoryError)


class TestTranslateError:
    """Binding error translation"""

    def test_noent_becomes_formatted_enoent(self):
        """Should rewrite NOENT with path and syscall"""
        err = translate_error(BindingError("No such file or directory", "NOENT"), "stat", "/x")
        assert isinstance(err, FileNotFoundErrnoException)
        assert err.code == "ENOENT"
        assert err.syscall == "stat"
        assert err.path == "/x"

    def test_exist_and_notdir(self):
        """Should rewrite EXIST and NOTDIR"""
        exist = translate_error(BindingError("File exists", "EXIST"), "mkdir", "/d")
        notdir = translate_error(BindingError("Not a directory", "NOTDIR"), "mkdir", "/f/d")
        assert isinstance(exist, FileExistsErrnoException)
        assert isinstance(notdir, NotADirectoryErrnoException)

    def test_other_codes_pass_through(self):
        """Should keep the native message and prefix the code"""
        err = translate_error(BindingError("Directory not empty", "NOTEMPTY"), "rmdir", "/d")
        assert isinstance(err, ErrnoException)
        assert err.message == "Directory not empty"
        assert err.code == "ENOTEMPTY"
        assert err.path is None

    def test_read_inval_becomes_overflow(self):
        """Should report an invalid read as EOVERFLOW"""
        err = translate_read_error(BindingError("offset out of range", "INVAL"))
        assert err.code == "EOVERFLOW"
        assert err.message == "offset out of range"


class TestApplyDefaultValue:
    """Option defaulting"""

    def test_none_gives_defaults(self):
        """Should return a copy of the defaults"""
        merged = apply_default_value(None, STAT_DEFAULTS)
        assert merged == {"bigint": False, "throw_if_no_entry": True}

    def test_caller_keys_win_per_key(self):
        """Should override only the keys the caller supplies"""
        merged = apply_default_value({"recursive": True}, MKDIR_DEFAULTS)
        assert merged == {"recursive": True, "mode": 0o777}

    def test_unknown_keys_are_kept(self):
        """Should carry unknown keys through"""
        merged = apply_default_value({"signal": "abort"}, STAT_DEFAULTS)
        assert merged["signal"] == "abort"

    def test_caller_mapping_not_mutated(self):
        """Should never mutate the caller's mapping"""
        options = {"bigint": True}
        merged = apply_default_value(options, STAT_DEFAULTS)
        merged["bigint"] = False
        assert options == {"bigint": True}

    def test_non_mapping_rejected(self):
        """Should reject options that are not a mapping"""
        with pytest.raises(InvalidArgTypeError):
            apply_default_value(["bigint"], STAT_DEFAULTS)

    def test_string_is_encoding(self):
        """Should treat a bare string as the encoding"""
        assert encoding_options("hex", {"encoding": "utf8"}) == {"encoding": "hex"}


class TestValidators:
    """Argument validation"""

    def test_path_types(self):
        """Should accept str, bytes and PathLike and reject others"""
        assert get_validated_path(b"/a") == "/a"
        with pytest.raises(InvalidArgTypeError):
            get_validated_path(42)
        with pytest.raises(InvalidArgValueError):
            get_validated_path("/a\x00b")

    def test_octal_mode_strings(self):
        """Should parse octal strings and range-check modes"""
        assert parse_file_mode("755", "mode", 0o666) == 0o755
        assert parse_file_mode(None, "mode", 0o666) == 0o666
        with pytest.raises(InvalidArgValueError):
            parse_file_mode("rwx", "mode", 0o666)
        with pytest.raises(OutOfRangeError):
            parse_file_mode(0o10000, "mode", 0o666)

    def test_times_in_nanoseconds(self):
        """Should convert seconds to nanoseconds"""
        assert get_valid_time(1, "atime") == 1_000_000_000
        assert get_valid_time(1.5, "atime") == 1_500_000_000
        assert get_valid_time("2", "atime") == 2_000_000_000
        with pytest.raises(InvalidArgTypeError):
            get_valid_time(None, "atime")
