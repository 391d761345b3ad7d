"""
Password based encryption of single values.

An envelope is the base64 encoding of ``salt[16] || iv[16] || ciphertext``.
The ciphertext is AES-256-CBC with PKCS#7 padding, keyed with
PBKDF2-HMAC-SHA256 over the password and salt. The envelope carries no MAC, so
a wrong password and corrupted bytes fail in the same way.

The constants below define the wire format and are not configurable.
"""

import base64
import logging
import os

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .utils import DecryptionFailed, InvalidInput, MalformedEnvelope

log = logging.getLogger(__name__)

ITERATIONS = 10_000
KEY_SIZE = 32
SALT_SIZE = 16
IV_SIZE = 16
BLOCK_SIZE = 16

MINIMUM_ENVELOPE_SIZE = SALT_SIZE + IV_SIZE + BLOCK_SIZE


def derive_key(password: bytes, salt: bytes) -> bytes:
    """Derive a 256 bit key from a password and a 16 byte salt."""
    if len(salt) != SALT_SIZE:
        raise InvalidInput(f"Salt must be {SALT_SIZE} bytes, not {len(salt)}")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt,
        iterations=ITERATIONS)
    return kdf.derive(password)


def _cipher(key: bytes, iv: bytes) -> Cipher:
    return Cipher(algorithms.AES(key), modes.CBC(iv))


def encrypt(plaintext: str, password: str) -> str:
    """
    Encrypt a string into a base64 envelope.

    A fresh salt and IV are used for every call, so encrypting the same
    plaintext twice gives two different envelopes.
    """
    if not plaintext:
        raise InvalidInput("Plaintext cannot be empty")
    if not password:
        raise InvalidInput("Password cannot be empty")

    salt = os.urandom(SALT_SIZE)
    iv = os.urandom(IV_SIZE)
    key = derive_key(password.encode('utf-8'), salt)

    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext.encode('utf-8')) + padder.finalize()

    encryptor = _cipher(key, iv).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    return base64.b64encode(salt + iv + ciphertext).decode('ascii')


def decrypt(envelope: str, password: str) -> str:
    """Decrypt a base64 envelope back into the original string."""
    if not envelope:
        raise InvalidInput("Ciphertext cannot be empty")
    if not password:
        raise InvalidInput("Password cannot be empty")

    try:
        data = base64.b64decode(''.join(envelope.split()), validate=True)
    except ValueError as error:
        raise MalformedEnvelope("Ciphertext is not valid base64") from error

    if len(data) < MINIMUM_ENVELOPE_SIZE:
        raise MalformedEnvelope(
            f"Ciphertext is {len(data)} bytes, "
            f"expected at least {MINIMUM_ENVELOPE_SIZE}")

    salt = data[:SALT_SIZE]
    iv = data[SALT_SIZE:SALT_SIZE + IV_SIZE]
    ciphertext = data[SALT_SIZE + IV_SIZE:]

    if len(ciphertext) % BLOCK_SIZE:
        raise DecryptionFailed(
            "Failed to decrypt: invalid password or corrupted data")

    key = derive_key(password.encode('utf-8'), salt)

    try:
        decryptor = _cipher(key, iv).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
        return plaintext.decode('utf-8')
    except ValueError as error:
        raise DecryptionFailed(
            "Failed to decrypt: invalid password or corrupted data") from error


def validate(envelope: str, password: str) -> bool:
    """Check a password opens an envelope, without raising."""
    try:
        decrypt(envelope, password)
    except (InvalidInput, MalformedEnvelope, DecryptionFailed) as error:
        log.debug(f"Envelope did not validate: {error.message}")
        return False
    return True
