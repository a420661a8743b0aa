"""Local format checks applied before any network call."""

from __future__ import annotations

import re
from typing import Final

from stellar_sdk import Keypair

from tokenops.errors import InvalidInputError

__all__ = [
    "PATTERN_IDENTIFIER",
    "PATTERN_PUBLIC_KEY",
    "PATTERN_SECRET_KEY",
    "is_public_key",
    "is_secret_key",
    "load_keypair",
    "require_identifier",
    "require_non_empty",
    "require_public_key",
    "require_secret_key",
]

PATTERN_PUBLIC_KEY: Final[re.Pattern[str]] = re.compile(r"^G[A-Z2-7]{55}$")
PATTERN_SECRET_KEY: Final[re.Pattern[str]] = re.compile(r"^S[A-Z2-7]{55}$")
PATTERN_IDENTIFIER: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9]{1,12}$")


def is_public_key(value: object) -> bool:
    return isinstance(value, str) and PATTERN_PUBLIC_KEY.fullmatch(value) is not None


def is_secret_key(value: object) -> bool:
    return isinstance(value, str) and PATTERN_SECRET_KEY.fullmatch(value) is not None


def require_public_key(value: str | None, label: str) -> str | None:
    """Validate an optional public key.

    Args:
        value: Candidate key; ``None`` passes through untouched.
        label: Human readable role used in the error message.

    Returns:
        The unchanged value.

    Raises:
        InvalidInputError: If ``value`` is present but malformed.
    """

    if value is not None and not is_public_key(value):
        raise InvalidInputError(f"Invalid {label} public key")
    return value


def require_secret_key(value: str | None, label: str) -> str | None:
    """Validate an optional secret key (see :func:`require_public_key`)."""

    if value is not None and not is_secret_key(value):
        raise InvalidInputError(f"Invalid {label} secret key")
    return value


def require_identifier(value: str | None, label: str = "asset code") -> str | None:
    if value is not None and (
        not isinstance(value, str) or PATTERN_IDENTIFIER.fullmatch(value) is None
    ):
        raise InvalidInputError(f"Invalid {label}")
    return value


def require_non_empty(value: object, label: str) -> str:
    if not isinstance(value, str) or value == "":
        raise InvalidInputError(f"{label} cannot be null or empty")
    return value


def load_keypair(secret_key: str, label: str) -> Keypair:
    """Return the keypair for a secret key, rejecting malformed or bad-checksum keys."""

    require_secret_key(secret_key, label)
    try:
        return Keypair.from_secret(secret_key)
    except ValueError as exc:
        raise InvalidInputError(f"Invalid {label} secret key") from exc
