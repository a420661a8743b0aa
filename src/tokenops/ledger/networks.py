"""Ledger networks an envelope may belong to."""

from __future__ import annotations

from dataclasses import dataclass, replace

from stellar_sdk import Network

__all__ = ["PRODUCTION", "TEST", "LedgerNetwork", "default_networks"]


@dataclass(frozen=True, slots=True)
class LedgerNetwork:
    """Signing rules and account endpoint for one ledger network.

    Attributes:
        name: Short label used in logs and results.
        passphrase: Network passphrase mixed into transaction hashes.
        horizon_url: Base URL used for account lookups.
    """

    name: str
    passphrase: str
    horizon_url: str

    def with_horizon(self, horizon_url: str | None) -> LedgerNetwork:
        if not horizon_url:
            return self
        return replace(self, horizon_url=horizon_url.rstrip("/"))


PRODUCTION = LedgerNetwork(
    name="production",
    passphrase=Network.PUBLIC_NETWORK_PASSPHRASE,
    horizon_url="https://horizon.stellar.org",
)
TEST = LedgerNetwork(
    name="test",
    passphrase=Network.TESTNET_NETWORK_PASSPHRASE,
    horizon_url="https://horizon-testnet.stellar.org",
)


def default_networks(
    horizon_url: str | None = None, horizon_test_url: str | None = None
) -> tuple[LedgerNetwork, LedgerNetwork]:
    """Return the production-then-test attempt order."""

    return (PRODUCTION.with_horizon(horizon_url), TEST.with_horizon(horizon_test_url))
