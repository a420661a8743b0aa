"""Tests for payload encryption and hashing helpers."""

from __future__ import annotations

import pytest

from tokenops.crypto import decrypt, encrypt, sha256_hex
from tokenops.errors import InvalidInputError


def test_sha256_hex_known_vector() -> None:
    assert sha256_hex("abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_encrypt_is_salted() -> None:
    first = encrypt("payload", "passphrase")
    second = encrypt("payload", "passphrase")

    assert first != second
    assert "payload" not in first
    assert decrypt(first, "passphrase") == decrypt(second, "passphrase") == "payload"


def test_decrypt_with_wrong_passphrase() -> None:
    token = encrypt("payload", "right")

    with pytest.raises(InvalidInputError, match="Unable to decrypt"):
        decrypt(token, "wrong")


@pytest.mark.parametrize("token", ["", "no-separator", "salt."])
def test_decrypt_malformed(token: str) -> None:
    with pytest.raises(InvalidInputError):
        decrypt(token, "passphrase")


def test_encrypt_requires_passphrase() -> None:
    with pytest.raises(InvalidInputError):
        encrypt("payload", "")
