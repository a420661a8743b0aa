"""Remote ledger service collaborator and status-code mapping."""

from __future__ import annotations

from tokenops.api.client import LedgerServiceClient
from tokenops.api.status import (
    Failure,
    Outcome,
    StatusTable,
    Success,
    interpret_status,
)

__all__ = [
    "Failure",
    "LedgerServiceClient",
    "Outcome",
    "StatusTable",
    "Success",
    "interpret_status",
]
