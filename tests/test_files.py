import os

import pytest

from dotseal import files
from dotseal.utils import NotFound


def test_read_missing_file(tmp_path):
    with pytest.raises(NotFound):
        files.read_bytes(tmp_path / 'missing')


def test_write_replaces_contents(tmp_path):
    path = tmp_path / '.env'
    path.write_bytes(b'A=old\nB=old\n')

    files.write_bytes(path, b'A=new\n')

    assert files.read_bytes(path) == b'A=new\n'
    assert [p.name for p in tmp_path.iterdir()] == ['.env']


def test_write_creates_directories(tmp_path):
    path = tmp_path / 'config' / 'production' / '.env'
    files.write_bytes(path, b'A=1\n')
    assert files.exists(path)


def test_backup(tmp_path):
    path = tmp_path / '.env'
    path.write_bytes(b'A=1\n')

    backup = files.backup(path)

    assert backup.parent == tmp_path
    assert backup.name.startswith('.env.backup.')
    assert len(backup.name) == len('.env.backup.') + len('yyyymmddHHMMSS')
    assert backup.read_bytes() == b'A=1\n'


def test_backup_missing_file(tmp_path):
    with pytest.raises(NotFound):
        files.backup(tmp_path / '.env')


def test_exists(tmp_path):
    assert not files.exists(tmp_path / '.env')
    assert not files.exists(tmp_path)


def test_write_with_backup(tmp_path):
    path = tmp_path / '.env'
    path.write_bytes(b'A=old\n')

    backup = files.write_bytes(path, b'A=new\n', backup_existing=True)

    assert backup.read_bytes() == b'A=old\n'
    assert path.read_bytes() == b'A=new\n'


def test_write_without_existing_file_takes_no_backup(tmp_path):
    assert files.write_bytes(tmp_path / '.env', b'A=1\n', backup_existing=True) is None


def test_failed_write_closes_the_temporary_file(tmp_path, monkeypatch):
    path = tmp_path / '.env'
    path.write_bytes(b'A=old\n')

    closed = []
    close = os.close

    def record_close(fd):
        closed.append(fd)
        close(fd)

    def fail(fd, *args, **kwargs):
        raise OSError("cannot open")

    monkeypatch.setattr(os, 'fdopen', fail)
    monkeypatch.setattr(os, 'close', record_close)

    with pytest.raises(OSError, match="cannot open"):
        files.write_bytes(path, b'A=new\n', backup_existing=True)

    assert len(closed) == 1
    assert path.read_bytes() == b'A=old\n'
    assert [p.name for p in tmp_path.iterdir()] == ['.env']
