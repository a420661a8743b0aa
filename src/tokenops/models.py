"""Wire models exchanged with the ledger service and operation request types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tokenops.identifier import TokenKind

__all__ = [
    "ActivateRequest",
    "BuilderMetadata",
    "BuilderResponse",
    "EnvelopeRecord",
    "MintOptions",
    "MintRequest",
    "MintedToken",
    "Project",
    "ProjectIssuer",
    "RegisterRequest",
    "RegisteredAccount",
    "RegistrationResult",
    "SignerEntry",
    "SignerStatus",
    "SubAccount",
    "TokenCategory",
    "TokenRealm",
    "TokenRecord",
    "TransferRecord",
    "TransferRequest",
    "TrustRecord",
    "TrustRequest",
    "UserAuthType",
    "UserType",
]

TRADABLE_ACCOUNT_TYPE = "0"
NON_TRADABLE_ACCOUNT_TYPE = "1"


class TokenCategory(str, Enum):
    """Mint categories accepted by the builder (``/xdrs/mint/{path}``)."""

    CERTIFICATE = "CERTIFICATE"
    BADGE = "BADGE"
    GIFTCARD = "GIFTCARD"

    @property
    def path(self) -> str:
        return self.value.lower()


class TokenRealm(str, Enum):
    DIGITAL = "DIGITAL"
    PHYSICAL = "PHYSICAL"


class SignerStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class UserType(str, Enum):
    DEVELOPER = "0"
    USER = "1"


class UserAuthType(str, Enum):
    LOW_PRIVACY = "0"
    MEDIUM_PRIVACY = "1"
    HIGH_PRIVACY = "2"


class WireModel(BaseModel):
    """Base for camelCase JSON documents; unknown fields are ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON body sent to the service, ``None`` values removed."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EnvelopeRecord(WireModel):
    """One unsigned envelope returned by the builder."""

    xdr: str = Field(..., min_length=1)
    version: str | None = None
    sequence: str | None = None
    signers: list[str] | None = None
    niftron_cost: float | None = None

    @field_validator("version", "sequence", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class BuilderMetadata(WireModel):
    niftron_id: str | None = None
    secondary_public_key: str | None = None


class BuilderResponse(WireModel):
    """Builder reply: ordered envelopes (primary first) plus metadata.

    The go-live and activate builders answer with a bare XDR string in
    ``data``; it is normalised to a single-envelope list.
    """

    data: list[EnvelopeRecord] = Field(default_factory=list)
    meta_data: BuilderMetadata = Field(default_factory=BuilderMetadata)
    code: int | None = None

    @field_validator("data", mode="before")
    @classmethod
    def _normalise_data(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [{"xdr": value}] if value else []
        return value

    @field_validator("meta_data", mode="before")
    @classmethod
    def _default_metadata(cls, value: object) -> object:
        return {} if value is None else value


class SubAccount(WireModel):
    public_key: str
    account_type: str


class RegisteredAccount(WireModel):
    """Registry record of a user account and its issuing sub-accounts."""

    public_key: str
    alias: str = ""
    email: str | None = None
    type: str | None = None
    auth_type: str | None = None
    accounts: list[SubAccount] = Field(default_factory=list)
    verified: bool = False

    def issuer_for(self, tradable: bool) -> str:
        """Return the sub-account that issues tokens of this tradability.

        Tradable tokens issue from the sub-account of type ``"0"``, others from
        type ``"1"``. The primary key is used when no sub-account matches.
        """

        wanted = TRADABLE_ACCOUNT_TYPE if tradable else NON_TRADABLE_ACCOUNT_TYPE
        issuer = self.public_key
        for account in self.accounts:
            if account.account_type == wanted:
                issuer = account.public_key
        return issuer


class ProjectIssuer(WireModel):
    public_key: str


class Project(WireModel):
    public_key: str | None = None
    name: str = ""
    project_issuer: ProjectIssuer


class TokenRecord(WireModel):
    """Registry record of a minted token."""

    token_name: str
    token_type: str | None = None
    asset_code: str | None = None
    asset_issuer: str | None = None
    asset_count: int | None = None
    preview_url: str | None = None
    category: str | None = None


class MintedToken(WireModel):
    """Token document submitted to ``/tokens/mint/{category}``."""

    token_name: str
    token_type: str
    asset_realm: TokenRealm = TokenRealm.DIGITAL
    tradable: bool
    transferable: bool
    category: TokenCategory
    asset_code: str
    asset_issuer: str
    issuer_alias: str
    asset_count: int
    preview_url: str | None = None
    is_url: bool
    ipfs_hash: str | None = None
    price: float = 0.0
    xdr: str
    txn_hash: str | None = None


class SignerEntry(WireModel):
    public_key: str
    status: SignerStatus


class TransferRecord(WireModel):
    """Transfer document submitted to the transfer endpoints."""

    transfer_type: str = "0"
    sender: str
    receiver: str
    asset_code: str
    asset_issuer: str
    asset_count: int
    token_name: str | None = None
    preview_url: str | None = None
    xdr: str
    reject_xdr: str | None = None
    signers: list[SignerEntry] | None = None
    txn_hash: str | None = None


class TrustRecord(WireModel):
    asset_code: str
    asset_issuer: str
    xdr: str
    txn_hash: str | None = None


@dataclass(frozen=True, slots=True)
class MintRequest:
    """Inputs for minting a token.

    Attributes:
        token_name: Display name; also feeds the identifier.
        token_kind: Token standard.
        token_data: Payload persisted to the content store.
        token_count: Number of units to issue.
        token_cost: Optional price attached to the token.
        preview_image_url: Preview reference when the image is hosted.
        preview_image_base64: Inline preview; takes precedence over the URL.
        creator_public_key: Creator account when it is not the merchant.
        creator_secret_key: Creator secret when the caller holds it.
    """

    token_name: str
    token_kind: TokenKind | str
    token_data: str
    token_count: int
    token_cost: float = 0.0
    preview_image_url: str | None = None
    preview_image_base64: str | None = None
    creator_public_key: str | None = None
    creator_secret_key: str | None = None


@dataclass(frozen=True, slots=True)
class MintOptions:
    tradable: bool = False
    transferable: bool = False
    authorizable: bool = False
    encrypt_data: bool = False


@dataclass(frozen=True, slots=True)
class TransferRequest:
    """Inputs shared by the transfer and express-transfer operations."""

    receiver_public_key: str
    asset_code: str
    asset_issuer: str
    asset_count: int
    sender_public_key: str | None = None
    sender_secret_key: str | None = None


@dataclass(frozen=True, slots=True)
class TrustRequest:
    asset_code: str
    asset_issuer: str
    truster_public_key: str | None = None
    truster_secret_key: str | None = None


@dataclass(frozen=True, slots=True)
class RegisterRequest:
    """Inputs for registering a user account.

    A fresh keypair is generated when ``secret_key`` is omitted. Empty
    ``password`` or ``security_answer`` skip the matching encrypted copy of
    the secret.
    """

    alias: str
    user_type: UserType = UserType.USER
    auth_type: UserAuthType = UserAuthType.HIGH_PRIVACY
    email: str = ""
    password: str = ""
    recovery_question: str = ""
    security_answer: str = ""
    secret_key: str | None = None


@dataclass(frozen=True, slots=True)
class RegistrationResult:
    public_key: str
    secret_key: str
    secondary_public_key: str | None = None


@dataclass(frozen=True, slots=True)
class ActivateRequest:
    user_secret_key: str
