"""Translate ledger-service status codes into typed outcomes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Generic, NoReturn, TypeVar

from tokenops.errors import (
    ConflictError,
    DuplicateResourceError,
    InsufficientFundsError,
    OperationNotPermittedError,
    RemoteSubmitFailedError,
    StatusCodeError,
)

__all__ = [
    "ACTIVATE_STATUS",
    "CANONICAL_ERRORS",
    "EXPRESS_TRANSFER_STATUS",
    "Failure",
    "GO_LIVE_STATUS",
    "MINT_STATUS",
    "Outcome",
    "REGISTER_STATUS",
    "STATUS_OK",
    "StatusTable",
    "Success",
    "TRANSFER_STATUS",
    "TRUST_STATUS",
    "interpret_status",
]

T = TypeVar("T")

STATUS_OK = 200

CANONICAL_ERRORS: Mapping[int, type[StatusCodeError]] = {
    201: ConflictError,
    202: InsufficientFundsError,
    203: OperationNotPermittedError,
    204: DuplicateResourceError,
}


@dataclass(frozen=True, slots=True)
class StatusTable:
    """Per-operation status messages.

    The canonical classes follow the code. Where an operation reuses a code for
    a different kind of failure, ``errors`` picks the class matching the
    message: missing records are :class:`ConflictError` and missing funds are
    :class:`InsufficientFundsError` whatever code carries them.

    Attributes:
        operation: Operation label used in the generic failure message.
        messages: Message for each recognised non-success code.
        errors: Error classes overriding :data:`CANONICAL_ERRORS` for this
            operation, including codes outside the canonical set.
    """

    operation: str
    messages: Mapping[int, str]
    errors: Mapping[int, type[StatusCodeError]] = field(default_factory=dict)

    @property
    def failure_message(self) -> str:
        return f"Failed to submit {self.operation} to the ledger service"

    def error_for(self, status_code: int | None) -> StatusCodeError:
        if status_code is None:
            return RemoteSubmitFailedError(self.failure_message, None)
        error_type = self.errors.get(status_code) or CANONICAL_ERRORS.get(status_code)
        message = self.messages.get(status_code)
        if error_type is None or message is None:
            return RemoteSubmitFailedError(self.failure_message, status_code)
        return error_type(message, status_code)


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    value: T
    status_code: int = STATUS_OK

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Failure:
    error: StatusCodeError

    @property
    def ok(self) -> bool:
        return False

    @property
    def status_code(self) -> int | None:
        return self.error.status_code

    def unwrap(self) -> NoReturn:
        raise self.error


Outcome = Success[T] | Failure


def interpret_status(status_code: int | None, table: StatusTable, value: T) -> Outcome[T]:
    """Map a submit status to ``Success(value)`` or ``Failure(error)``.

    ``None`` (the service returned nothing), ``400`` and any code the table
    does not recognise map to :class:`RemoteSubmitFailedError`.
    """

    if status_code == STATUS_OK:
        return Success(value)
    return Failure(table.error_for(status_code))


MINT_STATUS = StatusTable(
    "mint",
    {
        201: "Token name is already taken",
        202: "Insufficient fund in account",
        203: "Only creators can create tradable tokens",
        204: "Token name already used by issuer",
    },
)

TRANSFER_STATUS = StatusTable(
    "transfer",
    {201: "Account not found", 202: "Token not found"},
    errors={202: ConflictError},
)

EXPRESS_TRANSFER_STATUS = StatusTable(
    "express transfer",
    {201: "Merchant not found", 202: "User not found"},
    errors={202: ConflictError},
)

TRUST_STATUS = StatusTable(
    "trust",
    {
        201: "Account not found",
        202: "Token not found",
        203: "Insufficient fund in account",
    },
    errors={202: ConflictError, 203: InsufficientFundsError},
)

REGISTER_STATUS = StatusTable(
    "registration",
    {201: "Email already used", 202: "Alias already used"},
    errors={201: ConflictError, 202: ConflictError},
)

_ACCOUNT_STATE_MESSAGES = {
    201: "Merchant not found",
    202: "Activate merchant account first",
    203: "Account not found",
    205: "Insufficient fund in account",
}

GO_LIVE_STATUS = StatusTable(
    "go live",
    {**_ACCOUNT_STATE_MESSAGES, 204: "User account is already activated"},
    errors={203: ConflictError, 205: InsufficientFundsError},
)

ACTIVATE_STATUS = StatusTable(
    "activation",
    {**_ACCOUNT_STATE_MESSAGES, 204: "User account is not live"},
    errors={
        203: ConflictError,
        204: OperationNotPermittedError,
        205: InsufficientFundsError,
    },
)
