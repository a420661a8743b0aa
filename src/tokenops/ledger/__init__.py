"""Ledger networks, account reads and envelope signing."""

from __future__ import annotations

from tokenops.ledger.accounts import AssetBalance, HorizonAccountReader, LedgerAccount
from tokenops.ledger.networks import PRODUCTION, TEST, LedgerNetwork, default_networks
from tokenops.ledger.signer import (
    AccountLookupError,
    EnvelopeSigner,
    SignedEnvelope,
    SigningAttempt,
)

__all__ = [
    "AccountLookupError",
    "AssetBalance",
    "EnvelopeSigner",
    "HorizonAccountReader",
    "LedgerAccount",
    "LedgerNetwork",
    "PRODUCTION",
    "SignedEnvelope",
    "SigningAttempt",
    "TEST",
    "default_networks",
]
