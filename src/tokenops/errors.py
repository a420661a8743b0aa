"""Exception hierarchy raised by :mod:`tokenops` operations."""

from __future__ import annotations

__all__ = [
    "AccountNotRegisteredError",
    "ApprovalDeclinedError",
    "ConfigurationError",
    "ConflictError",
    "ContentStoreError",
    "DuplicateResourceError",
    "InsufficientFundsError",
    "InvalidInputError",
    "OperationNotPermittedError",
    "RemoteBuildFailedError",
    "RemoteSubmitFailedError",
    "ServiceUnavailableError",
    "SigningFailedError",
    "StatusCodeError",
    "TokenNotFoundError",
    "TokenOpsError",
]


class TokenOpsError(Exception):
    """Base class for every error surfaced to callers of the toolkit."""


class ConfigurationError(TokenOpsError):
    """Raised when required session configuration is missing."""


class InvalidInputError(TokenOpsError, ValueError):
    """Raised when a key, identifier or payload fails local validation."""


class ApprovalDeclinedError(TokenOpsError):
    """Raised when a delegated signer declined or closed the approval surface."""


class AccountNotRegisteredError(TokenOpsError):
    """Raised when the registry or the ledger has no record of an account."""


class TokenNotFoundError(TokenOpsError):
    """Raised when the registry has no record of the referenced token."""


class RemoteBuildFailedError(TokenOpsError):
    """Raised when the envelope builder returned no usable envelopes."""


class SigningFailedError(TokenOpsError):
    """Raised when no configured network accepted an envelope for signing."""


class ContentStoreError(TokenOpsError):
    """Raised when a payload could not be persisted to the content store."""


class ServiceUnavailableError(TokenOpsError):
    """Raised when a remote service could not be reached or failed server-side.

    Distinguishes an outage from a lookup that found no record.
    """


class StatusCodeError(TokenOpsError):
    """Base class for failures selected from a ledger-operations status code.

    Attributes:
        status_code: Status returned by the remote service, or ``None`` when
            the service returned nothing at all.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteSubmitFailedError(StatusCodeError):
    """Raised for a missing, generic (400) or unrecognised submit status."""


class ConflictError(StatusCodeError):
    """Status 201: name, alias or merchant lookup conflict."""


class InsufficientFundsError(StatusCodeError):
    """Status 202: insufficient funds or account-type restriction."""


class OperationNotPermittedError(StatusCodeError):
    """Status 203: the account role may not perform this operation."""


class DuplicateResourceError(StatusCodeError):
    """Status 204: the resource already exists for this issuer."""
