"""Deterministic asset identifiers.

An identifier is twelve characters::

    K T X A H D P P P P P P
    | | | | | |  first three + last three of the payload digest
    | | | | | discriminator: N (canonical) or R (redeem variant)
    | | | | first character of SHA-256(name)
    | | | authorizable A/N
    | | transferable T/N
    | tradable T/N
    kind letter

``id`` and ``redeem_id`` share everything but the discriminator. The scheme is
a content fingerprint: payload digests colliding in their outer characters
produce the same identifier.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final

from tokenops.crypto import sha256_hex
from tokenops.errors import InvalidInputError
from tokenops.validation import require_non_empty

__all__ = [
    "IDENTIFIER_VERSION",
    "Identifier",
    "TokenKind",
    "coerce_kind",
    "derive_identifier",
]

IDENTIFIER_VERSION: Final[str] = "1.0"
CANONICAL_DISCRIMINATOR: Final[str] = "N"
REDEEM_DISCRIMINATOR: Final[str] = "R"


class TokenKind(str, Enum):
    """Token standards understood by the registry."""

    NFT = "NFT"
    SFT = "SFT"
    ERC20 = "ERC20"
    ERC721 = "ERC721"
    ERC777 = "ERC777"
    ERC1155 = "ERC1155"


_KIND_LETTERS: Final[dict[TokenKind, str]] = {
    TokenKind.NFT: "N",
    TokenKind.SFT: "S",
}
_DEFAULT_KIND_LETTER: Final[str] = "A"


@dataclass(frozen=True, slots=True)
class Identifier:
    """Canonical and redeem identifiers derived from the same inputs."""

    id: str
    redeem_id: str
    version: str = IDENTIFIER_VERSION

    def to_dict(self) -> dict[str, str]:
        """Return the wire representation used by the registry."""

        return {"id": self.id, "redeemId": self.redeem_id, "version": self.version}


def coerce_kind(kind: TokenKind | str) -> TokenKind:
    """Return the :class:`TokenKind` for an enum member or case-insensitive name."""

    if isinstance(kind, TokenKind):
        return kind
    try:
        return TokenKind(str(kind).upper())
    except ValueError as exc:
        raise InvalidInputError(f"Unknown token kind: {kind!r}") from exc


def derive_identifier(
    kind: TokenKind | str,
    tradable: bool,
    transferable: bool,
    authorizable: bool,
    name: str,
    payload: str,
    *,
    payload_is_digest: bool = False,
) -> Identifier:
    """Derive the identifier pair for an asset.

    Args:
        kind: Token kind (enum member or its string value).
        tradable: Whether the asset may be traded.
        transferable: Whether the asset may be transferred.
        authorizable: Whether holding the asset requires issuer authorisation.
        name: Token name.
        payload: Token payload, or its digest when ``payload_is_digest`` is set.
        payload_is_digest: Treat ``payload`` as an already computed digest and
            only case-normalise it.

    Returns:
        The :class:`Identifier` for the inputs.

    Raises:
        InvalidInputError: If the kind is unknown or name/payload are empty.
    """

    token_kind = coerce_kind(kind)
    require_non_empty(name, "Token name")
    require_non_empty(payload, "Token data")

    digest = payload if payload_is_digest else sha256_hex(payload)
    digest = digest.upper()
    if len(digest) < 6:
        raise InvalidInputError("Token data digest must be at least 6 characters")

    prefix = "".join(
        (
            _KIND_LETTERS.get(token_kind, _DEFAULT_KIND_LETTER),
            "T" if tradable else "N",
            "T" if transferable else "N",
            "A" if authorizable else "N",
            sha256_hex(name).upper()[0],
        )
    )
    suffix = digest[:3] + digest[-3:]
    return Identifier(
        id=prefix + CANONICAL_DISCRIMINATOR + suffix,
        redeem_id=prefix + REDEEM_DISCRIMINATOR + suffix,
    )
