"""Read account balances from the ledger endpoints."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from tokenops.errors import AccountNotRegisteredError, ServiceUnavailableError
from tokenops.ledger.networks import LedgerNetwork, default_networks

__all__ = [
    "NATIVE_ASSET_CODE",
    "AssetBalance",
    "HorizonAccountReader",
    "HorizonBalance",
    "LedgerAccount",
]

LOGGER = logging.getLogger(__name__)

NATIVE_ASSET_CODE = "XLM"


class HorizonBalance(BaseModel):
    """One entry of a ledger account's ``balances`` list."""

    model_config = ConfigDict(extra="ignore")

    asset_type: str
    asset_code: str | None = None
    asset_issuer: str | None = None
    balance: Decimal
    limit: Decimal | None = None

    @property
    def is_native(self) -> bool:
        return self.asset_type == "native"


class LedgerAccount(BaseModel):
    model_config = ConfigDict(extra="ignore")

    account_id: str
    balances: list[HorizonBalance] = []


@dataclass(frozen=True, slots=True)
class AssetBalance:
    """Balance of one asset held by an account.

    Attributes:
        asset_code: Asset code, ``XLM`` for the native asset.
        balance: Amount held.
        limit: Trustline limit; ``None`` for the native asset.
        issuer: Issuing account; ``None`` for the native asset.
        network: Name of the network the account was found on.
    """

    asset_code: str
    balance: Decimal
    limit: Decimal | None
    issuer: str | None
    network: str

    @classmethod
    def from_horizon(cls, entry: HorizonBalance, network: LedgerNetwork) -> AssetBalance:
        return cls(
            asset_code=NATIVE_ASSET_CODE if entry.is_native else entry.asset_code or "",
            balance=entry.balance,
            limit=None if entry.is_native else entry.limit,
            issuer=None if entry.is_native else entry.asset_issuer,
            network=network.name,
        )


class HorizonAccountReader:
    """Load accounts from the first network that knows them.

    Networks are tried in the configured order (production first), the same
    order :class:`tokenops.ledger.signer.EnvelopeSigner` uses.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        networks: Sequence[LedgerNetwork] | None = None,
    ) -> None:
        self._http = http_client
        self._networks: tuple[LedgerNetwork, ...] = tuple(
            networks if networks is not None else default_networks()
        )
        if not self._networks:
            raise ValueError("At least one ledger network is required")

    async def load(self, public_key: str) -> tuple[LedgerNetwork, LedgerAccount]:
        """Return the account and the network it was found on.

        Raises:
            AccountNotRegisteredError: No network knows the account.
            ServiceUnavailableError: No network knows the account and at least
                one of them could not be reached or answered malformed data.
        """

        outage: Exception | None = None
        for network in self._networks:
            url = f"{network.horizon_url.rstrip('/')}/accounts/{public_key}"
            try:
                response = await self._http.get(url)
            except httpx.HTTPError as exc:
                LOGGER.warning(
                    "Ledger endpoint unreachable",
                    extra={"network": network.name, "url": url},
                    exc_info=exc,
                )
                outage = exc
                continue
            if response.status_code == 404:
                continue
            if response.status_code != 200:
                outage = ServiceUnavailableError(
                    f"{network.name} ledger endpoint answered {response.status_code}"
                )
                continue
            try:
                return network, LedgerAccount.model_validate(response.json())
            except (ValueError, ValidationError) as exc:
                outage = exc

        if outage is not None:
            raise ServiceUnavailableError(
                f"Account {public_key} could not be read from any ledger network"
            ) from outage
        raise AccountNotRegisteredError(
            f"Account {public_key} is not on any ledger network"
        )

    async def balances(self, public_key: str) -> list[AssetBalance]:
        network, account = await self.load(public_key)
        return [AssetBalance.from_horizon(entry, network) for entry in account.balances]
