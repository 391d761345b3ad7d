import base64
import logging
import pathlib
import re
import typing

import click
import git

log = logging.getLogger(__name__)

BASE64_ALPHABET = re.compile(r'^[A-Za-z0-9+/=]+$')

# Shortest value worth decoding, and the salt and IV every envelope starts with.
MINIMUM_ENCRYPTED_LENGTH = 20
MINIMUM_ENCRYPTED_BYTES = 32


def looks_encrypted(value: str, strict: bool = False) -> bool:
    """
    Guess if a value is an envelope produced by dotseal.

    This is a heuristic: a long random plaintext secret that happens to be
    valid base64 will be reported as encrypted. The strict form also rejects
    anything outside the base64 alphabet, including whitespace.
    """
    if not value or len(value) < MINIMUM_ENCRYPTED_LENGTH:
        return False

    if strict and not BASE64_ALPHABET.match(value):
        return False

    try:
        decoded = base64.b64decode(''.join(value.split()), validate=True)
    except ValueError:
        return False

    return len(decoded) >= MINIMUM_ENCRYPTED_BYTES


def find_git_directory(
        path: typing.Optional[pathlib.Path] = None) -> typing.Optional[pathlib.Path]:
    try:
        repo = git.Repo(path, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
        return None
    if repo.working_tree_dir is None:
        return None
    return pathlib.Path(repo.working_tree_dir)


def ignored_by_git(path: pathlib.Path) -> typing.Optional[bool]:
    """
    Check if a file is excluded by a .gitignore file.

    Returns None when the file is not inside a git repository.
    """
    path = path.resolve()
    directory = find_git_directory(path.parent)
    if directory is None:
        return None

    try:
        relative = path.relative_to(directory.resolve())
    except ValueError:
        return None

    log.debug(f"Checking {relative} is ignored by the repository in {directory}")
    return bool(git.Repo(directory).ignored(relative.as_posix()))


class DotsealException(click.ClickException):
    pass


class InvalidInput(DotsealException):
    """An empty plaintext, password or path was given."""


class MalformedEnvelope(DotsealException):
    """A value is not base64 or is too short to hold a salt, IV and block."""


class DecryptionFailed(DotsealException):
    """
    A value could not be decrypted.

    Raised both for a wrong password and for corrupted ciphertext: without a
    MAC the two cannot be told apart.
    """


class EntryDecryptionFailed(DecryptionFailed):
    def __init__(self, key: str, cause: DotsealException):
        super().__init__(f"Failed to decrypt '{key}': {cause.message}")
        self.key = key


class NotFound(DotsealException):
    pass


class NoEntries(DotsealException):
    pass
