import datetime
import logging
import os
import pathlib
import shutil
import tempfile
import typing

from .utils import NotFound

log = logging.getLogger(__name__)


def exists(path: pathlib.Path) -> bool:
    return path.is_file()


def read_bytes(path: pathlib.Path) -> bytes:
    if not exists(path):
        raise NotFound(f"File not found: {path}")
    log.debug(f"Reading {path}")
    return path.read_bytes()


def write_bytes(
        path: pathlib.Path,
        data: bytes,
        backup_existing: bool = False) -> typing.Optional[pathlib.Path]:
    """
    Replace the contents of a file.

    The data is written to a temporary file next to the destination, which is
    then renamed over it. An existing file is never left truncated. With
    `backup_existing`, an existing file is copied aside once the new contents
    are safely on disk, and the copy's path is returned.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    log.debug(f"Writing {len(data)} bytes to {path}")

    fd, temporary = tempfile.mkstemp(
        dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
    backup_path = None
    try:
        try:
            f = os.fdopen(fd, 'wb')
        except BaseException:
            os.close(fd)
            raise
        with f:
            f.write(data)
        if exists(path):
            shutil.copymode(path, temporary)
            if backup_existing:
                backup_path = backup(path)
        os.replace(temporary, path)
    except BaseException:
        os.unlink(temporary)
        raise
    return backup_path


def backup(path: pathlib.Path) -> pathlib.Path:
    """Copy a file to '{path}.backup.{timestamp}' and return the copy's path."""
    if not exists(path):
        raise NotFound(f"Cannot backup non-existent file: {path}")

    timestamp = datetime.datetime.now(datetime.timezone.utc).strftime('%Y%m%d%H%M%S')
    destination = path.with_name(f"{path.name}.backup.{timestamp}")
    log.info(f"Backing up {path} to {destination}")
    shutil.copyfile(path, destination)
    return destination
