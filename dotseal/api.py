import typing

from . import cipher, envfile
from .envfile import Document, Entry
from .utils import InvalidInput


def encrypt_value(plaintext: str, password: str) -> str:
    return cipher.encrypt(plaintext, password)


def decrypt_value(envelope: str, password: str) -> str:
    return cipher.decrypt(envelope, password)


def parse_document(data: typing.Union[bytes, str]) -> Document:
    if isinstance(data, bytes):
        try:
            data = data.decode('utf-8')
        except UnicodeDecodeError as error:
            raise InvalidInput("Document is not valid UTF-8") from error
    return envfile.parse(data)


def serialize_document(entries: typing.Iterable[Entry]) -> bytes:
    return envfile.render(entries).encode('utf-8')
