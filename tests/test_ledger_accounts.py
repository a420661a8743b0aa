"""Tests for ledger account balance reads."""

from __future__ import annotations

from decimal import Decimal

import httpx
import pytest
from conftest import PRODUCTION_HORIZON, TEST_HORIZON, FakeServices
from stellar_sdk import Keypair

from tokenops.errors import AccountNotRegisteredError, ServiceUnavailableError
from tokenops.ledger import PRODUCTION, TEST, HorizonAccountReader


@pytest.mark.asyncio
async def test_production_account_is_read_first(
    services: FakeServices, subject: Keypair
) -> None:
    services.set_balances(
        subject.public_key,
        [{"asset_type": "native", "balance": "5.0000000"}],
        PRODUCTION_HORIZON,
        TEST_HORIZON,
    )

    async with services.client() as client:
        network, account = await HorizonAccountReader(client).load(subject.public_key)

    assert network == PRODUCTION
    assert account.account_id == subject.public_key
    assert account.balances[0].is_native
    assert services.calls("GET", f"{TEST_HORIZON}/accounts/{subject.public_key}") == []


@pytest.mark.asyncio
async def test_falls_back_to_test_network(services: FakeServices, subject: Keypair) -> None:
    issuer = Keypair.random().public_key
    services.set_balances(
        subject.public_key,
        [
            {"asset_type": "native", "balance": "1.5"},
            {
                "asset_type": "credit_alphanum12",
                "asset_code": "NNTNANABCDEF",
                "asset_issuer": issuer,
                "balance": "2",
                "limit": "10",
            },
        ],
    )

    async with services.client() as client:
        balances = await HorizonAccountReader(client).balances(subject.public_key)

    native, token = balances
    assert (native.asset_code, native.issuer, native.limit) == ("XLM", None, None)
    assert native.network == TEST.name
    assert token.asset_code == "NNTNANABCDEF"
    assert token.issuer == issuer
    assert token.balance == Decimal("2")
    assert token.limit == Decimal("10")


@pytest.mark.asyncio
async def test_unknown_account(services: FakeServices, subject: Keypair) -> None:
    async with services.client() as client:
        with pytest.raises(AccountNotRegisteredError):
            await HorizonAccountReader(client).load(subject.public_key)


@pytest.mark.asyncio
async def test_unreachable_network_is_an_outage(subject: Keypair) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "horizon.stellar.org":
            raise httpx.ConnectError("unreachable", request=request)
        return httpx.Response(404, json={"status": 404})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ServiceUnavailableError) as excinfo:
            await HorizonAccountReader(client).load(subject.public_key)

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_outage_on_one_network_still_finds_account(subject: Keypair) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "horizon.stellar.org":
            return httpx.Response(503)
        return httpx.Response(
            200, json={"account_id": subject.public_key, "balances": []}
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        network, account = await HorizonAccountReader(client).load(subject.public_key)

    assert network == TEST
    assert account.balances == []


@pytest.mark.asyncio
async def test_reader_requires_networks() -> None:
    async with httpx.AsyncClient() as client:
        with pytest.raises(ValueError):
            HorizonAccountReader(client, networks=())
