import datetime
import logging
import pathlib
import re
import time
import typing

import attr

from . import cipher, envfile, files
from .envfile import Document, Entry
from .utils import (
    DecryptionFailed,
    DotsealException,
    EntryDecryptionFailed,
    InvalidInput,
    MalformedEnvelope,
    NoEntries,
    looks_encrypted,
)

log = logging.getLogger(__name__)

HEADER_MARKER = 'Encrypted with dotseal'

HEADER_PATTERN = re.compile(
    rf'^{HEADER_MARKER} on \d{{4}}-\d\d-\d\d \d\d:\d\d:\d\d UTC$')

PathLike = typing.Union[str, pathlib.Path]


def header() -> Entry:
    now = datetime.datetime.now(datetime.timezone.utc)
    return Entry(comment=f"{HEADER_MARKER} on {now:%Y-%m-%d %H:%M:%S} UTC")


def is_header(entry: Entry) -> bool:
    return entry.is_comment and bool(HEADER_PATTERN.match(entry.comment or ''))


def needs_encryption(entry: Entry) -> bool:
    return entry.is_variable and bool(entry.value) and not entry.is_encrypted


def needs_decryption(entry: Entry) -> bool:
    return entry.is_variable and bool(entry.value) and (
        entry.is_encrypted or looks_encrypted(entry.value))


def encrypt_document(
        entries: typing.Iterable[Entry],
        password: str) -> typing.Tuple[Document, int]:
    """
    Encrypt every plaintext value in a document.

    Values already marked as encrypted are left alone, so encrypting a
    document twice only encrypts new values. Any previous header comment is
    replaced with a single new one at the top of the document.
    """
    if not password:
        raise InvalidInput("Password cannot be empty")

    processed = 0
    encrypted: typing.List[Entry] = []

    for entry in entries:
        if is_header(entry):
            continue
        if needs_encryption(entry):
            log.debug(f"Encrypting {entry.key}")
            entry = attr.evolve(
                entry,
                value=cipher.encrypt(entry.value, password),
                is_encrypted=True)
            processed += 1
        encrypted.append(entry)

    log.info(f"Encrypted {processed} values")
    return (header(), *encrypted), processed


def decrypt_document(
        entries: typing.Iterable[Entry],
        password: str) -> typing.Tuple[Document, int]:
    """
    Decrypt every encrypted value in a document.

    Stops at the first value that fails to decrypt and raises
    EntryDecryptionFailed naming its key; no partly decrypted document is
    returned.
    """
    if not password:
        raise InvalidInput("Password cannot be empty")

    processed = 0
    decrypted: typing.List[Entry] = []
    seen_header = False

    for entry in entries:
        if not seen_header and is_header(entry):
            seen_header = True
            continue
        if needs_decryption(entry):
            log.debug(f"Decrypting {entry.key}")
            try:
                value = cipher.decrypt(entry.value, password)
            except (MalformedEnvelope, DecryptionFailed) as error:
                raise EntryDecryptionFailed(entry.key, error) from error
            entry = attr.evolve(entry, value=value, is_encrypted=False)
            processed += 1
        decrypted.append(entry)

    log.info(f"Decrypted {processed} values")
    return tuple(decrypted), processed


def validate_document(entries: typing.Iterable[Entry], password: str) -> bool:
    """
    Check a password against the first encrypted value in a document.

    Other values are not checked. Returns False if nothing is encrypted.
    """
    entry = next((e for e in entries if needs_decryption(e)), None)
    if entry is None:
        log.debug("No encrypted values to validate")
        return False
    log.debug(f"Validating password against {entry.key}")
    return cipher.validate(entry.value, password)


@attr.s(frozen=True, kw_only=True)
class OperationResult:
    success: bool = attr.ib()
    error_message: typing.Optional[str] = attr.ib(default=None)
    output_path: typing.Optional[pathlib.Path] = attr.ib(default=None)
    backup_path: typing.Optional[pathlib.Path] = attr.ib(default=None)
    processed_entries: int = attr.ib(default=0)
    duration: datetime.timedelta = attr.ib(factory=datetime.timedelta)

    def __attrs_post_init__(self):
        if self.success and self.error_message is not None:
            raise DotsealException("A successful result has no error message")
        if not self.success and (self.output_path or self.processed_entries):
            raise DotsealException("A failed result has no output")

    @classmethod
    def succeeded(
            cls,
            output_path: pathlib.Path,
            processed_entries: int,
            duration: datetime.timedelta,
            backup_path: typing.Optional[pathlib.Path] = None):
        return cls(
            success=True,
            output_path=output_path,
            backup_path=backup_path,
            processed_entries=processed_entries,
            duration=duration)

    @classmethod
    def failed(
            cls,
            error_message: str,
            duration: datetime.timedelta = datetime.timedelta()):
        return cls(success=False, error_message=error_message, duration=duration)


class EncryptionResult(OperationResult):
    pass


class DecryptionResult(OperationResult):
    pass


def encrypted_path(path: pathlib.Path) -> pathlib.Path:
    """'.env' is encrypted to '.env.enc'."""
    return path.with_name(f"{path.name}.enc")


def decrypted_path(path: pathlib.Path) -> pathlib.Path:
    """'.env.enc' is decrypted to '.env', anything else to '{name}.decrypted'."""
    if path.name.lower().endswith('.enc') and len(path.name) > len('.enc'):
        return path.with_name(path.name[:-len('.enc')])
    return path.with_name(f"{path.name}.decrypted")


def elapsed(started: float) -> datetime.timedelta:
    return datetime.timedelta(seconds=time.perf_counter() - started)


@attr.s(frozen=True)
class SecretManager:
    """
    Encrypt and decrypt .env files on disk.

    Outputs are only written once the whole document has been processed. With
    `backup` set, an existing output file is copied aside before it is
    replaced.
    """

    backup: bool = attr.ib(default=False)

    @staticmethod
    def check(input_path: PathLike, password: str) -> pathlib.Path:
        if not input_path:
            raise InvalidInput("Input file path cannot be empty")
        if not password:
            raise InvalidInput("Password cannot be empty")
        return pathlib.Path(input_path)

    def read(self, path: pathlib.Path) -> Document:
        data = files.read_bytes(path)
        try:
            text = data.decode('utf-8')
        except UnicodeDecodeError as error:
            raise InvalidInput(f"Input file is not valid UTF-8: {path}") from error

        entries = envfile.parse(text)
        if not entries:
            raise NoEntries("Input file contains no valid entries")
        return entries

    def write(
            self,
            path: pathlib.Path,
            entries: Document) -> typing.Optional[pathlib.Path]:
        return files.write_bytes(
            path,
            envfile.render(entries).encode('utf-8'),
            backup_existing=self.backup)

    def encrypt_file(
            self,
            input_path: PathLike,
            password: str,
            output_path: typing.Optional[PathLike] = None) -> EncryptionResult:
        started = time.perf_counter()
        try:
            source = self.check(input_path, password)
            destination = pathlib.Path(output_path) if output_path else encrypted_path(source)
            log.info(f"Encrypting {source} to {destination}")
            entries, processed = encrypt_document(self.read(source), password)
            backup_path = self.write(destination, entries)
        except DotsealException as error:
            log.info(error.message)
            return EncryptionResult.failed(error.message, elapsed(started))
        except OSError as error:
            log.info(f"Encryption failed: {error}")
            return EncryptionResult.failed(f"Encryption failed: {error}", elapsed(started))

        return EncryptionResult.succeeded(
            destination, processed, elapsed(started), backup_path=backup_path)

    def decrypt_file(
            self,
            input_path: PathLike,
            password: str,
            output_path: typing.Optional[PathLike] = None) -> DecryptionResult:
        started = time.perf_counter()
        try:
            source = self.check(input_path, password)
            destination = pathlib.Path(output_path) if output_path else decrypted_path(source)
            log.info(f"Decrypting {source} to {destination}")
            entries, processed = decrypt_document(self.read(source), password)
            backup_path = self.write(destination, entries)
        except DotsealException as error:
            log.info(error.message)
            return DecryptionResult.failed(error.message, elapsed(started))
        except OSError as error:
            log.info(f"Decryption failed: {error}")
            return DecryptionResult.failed(f"Decryption failed: {error}", elapsed(started))

        return DecryptionResult.succeeded(
            destination, processed, elapsed(started), backup_path=backup_path)

    def validate_file(self, path: PathLike, password: str) -> bool:
        try:
            source = self.check(path, password)
            return validate_document(self.read(source), password)
        except (DotsealException, OSError) as error:
            log.debug(f"Could not validate {path}: {error}")
            return False
