"""Symmetric payload encryption and hashing helpers.

Payloads stored in the content store may be encrypted with a passphrase (the
creator's secret key, or a password digest during registration). Tokens are
``base64url(salt) + "." + fernet_token`` so the salt travels with the data.
"""

from __future__ import annotations

import base64
import hashlib
import os
from typing import Final

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from tokenops.errors import InvalidInputError

__all__ = ["decrypt", "encrypt", "sha256_hex"]

_SALT_BYTES: Final[int] = 16
_KDF_ITERATIONS: Final[int] = 390_000


def sha256_hex(text: str) -> str:
    """Return the lowercase hex SHA-256 digest of a UTF-8 string."""

    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _derive_key(passphrase: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=_KDF_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(passphrase.encode("utf-8")))


def encrypt(plaintext: str, passphrase: str) -> str:
    """Encrypt ``plaintext`` with a key derived from ``passphrase``.

    Args:
        plaintext: Text to protect.
        passphrase: Secret used to derive the Fernet key.

    Returns:
        Salted ciphertext token safe to embed in JSON.
    """

    if not passphrase:
        raise InvalidInputError("Encryption passphrase cannot be empty")
    salt = os.urandom(_SALT_BYTES)
    token = Fernet(_derive_key(passphrase, salt)).encrypt(plaintext.encode("utf-8"))
    encoded_salt = base64.urlsafe_b64encode(salt).decode("ascii")
    return f"{encoded_salt}.{token.decode('ascii')}"


def decrypt(token: str, passphrase: str) -> str:
    """Reverse :func:`encrypt`.

    Raises:
        InvalidInputError: If the token is malformed or the passphrase is wrong.
    """

    encoded_salt, sep, body = token.partition(".")
    if not sep or not body:
        raise InvalidInputError("Malformed encrypted payload")
    try:
        salt = base64.urlsafe_b64decode(encoded_salt.encode("ascii"))
        plaintext = Fernet(_derive_key(passphrase, salt)).decrypt(body.encode("ascii"))
    except (InvalidToken, ValueError) as exc:
        raise InvalidInputError("Unable to decrypt payload") from exc
    return plaintext.decode("utf-8")
