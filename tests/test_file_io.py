import os
import stat

import pytest

from rsa_crypto import file_io
from rsa_crypto import FileAccessError, InvalidParameter, NotFound, read_bytes, write_bytes


def test_write_and_read(tmp_path):
    path = str(tmp_path / "data.bin")
    assert write_bytes(path, b"\x00\x01\x02") == path
    assert read_bytes(path) == b"\x00\x01\x02"
    assert not os.path.exists(path + ".tmp")


def test_read_missing(tmp_path):
    with pytest.raises(NotFound):
        read_bytes(str(tmp_path / "missing.bin"))
    with pytest.raises(FileNotFoundError):
        read_bytes(str(tmp_path / "missing.bin"))


def test_read_empty_path():
    with pytest.raises(InvalidParameter):
        read_bytes("")


def test_read_only_file_is_overwritten(tmp_path):
    path = str(tmp_path / "priv.key.pem")
    write_bytes(path, b"first", read_only=True)
    assert stat.S_IMODE(os.stat(path).st_mode) == stat.S_IRUSR

    write_bytes(path, b"second", read_only=True)
    assert read_bytes(path) == b"second"


def test_write_into_missing_directory(tmp_path):
    with pytest.raises(NotFound):
        write_bytes(str(tmp_path / "no" / "such" / "file"), b"x")


def test_read_directory(tmp_path):
    with pytest.raises(NotFound):
        read_bytes(str(tmp_path))


def test_read_unreadable_file(tmp_path, monkeypatch):
    path = tmp_path / "locked.bin"
    path.write_bytes(b"x")

    def deny(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(file_io, "open", deny, raising=False)
    with pytest.raises(FileAccessError):
        read_bytes(str(path))


def test_write_over_directory(tmp_path):
    target = tmp_path / "adir"
    target.mkdir()
    with pytest.raises(FileAccessError):
        write_bytes(str(target), b"x")
    assert os.listdir(tmp_path) == ["adir"]


def test_existing_tmp_file_is_left_alone(tmp_path):
    path = tmp_path / "data.bin"
    neighbour = tmp_path / "data.bin.tmp"
    neighbour.write_bytes(b"keep me")

    write_bytes(str(path), b"new")
    assert neighbour.read_bytes() == b"keep me"
    assert sorted(os.listdir(tmp_path)) == ["data.bin", "data.bin.tmp"]


def test_plain_file_permissions(tmp_path):
    path = str(tmp_path / "pub.bin")
    write_bytes(path, b"x")
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o644
