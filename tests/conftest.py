"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import inspect
import json
import os
import sys
from collections.abc import Callable
from typing import Any

import httpx
import pytest

# Ensure src/ is on sys.path for tests so the src layout is used during test runs
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from stellar_sdk import (  # noqa: E402
    Account,
    Asset,
    Keypair,
    Network,
    TransactionBuilder,
)

PRODUCTION_HORIZON = "https://horizon.stellar.org"
TEST_HORIZON = "https://horizon-testnet.stellar.org"
API_URL = "https://api.tokenops.test"
CONTENT_STORE_URL = "https://store.tokenops.test/api/v0"

Handler = Callable[[httpx.Request], httpx.Response]


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring an event loop")


def pytest_pyfunc_call(pyfuncitem: Any) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames  # type: ignore[attr-defined]
        }

        event_loop = asyncio.new_event_loop()
        try:
            event_loop.run_until_complete(pyfuncitem.obj(**call_kwargs))
        finally:
            event_loop.close()
        return True
    return None


def build_envelope(
    source: str,
    passphrase: str = Network.TESTNET_NETWORK_PASSPHRASE,
    sequence: int = 1,
) -> str:
    """Return an unsigned payment envelope sourced from ``source``."""

    transaction = (
        TransactionBuilder(
            Account(source, sequence),
            network_passphrase=passphrase,
            base_fee=100,
        )
        .append_payment_op(
            destination=Keypair.random().public_key,
            asset=Asset.native(),
            amount="10",
        )
        .set_timeout(30)
        .build()
    )
    return transaction.to_xdr()


class FakeServices:
    """In-memory stand-in for horizon, the ledger service and the content store.

    Horizon answers ``/accounts/{id}`` with 200 for registered accounts and
    404 otherwise. Every other request is served from ``routes`` keyed by
    ``(method, url)``; unknown routes answer 404.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, set[str]] = {PRODUCTION_HORIZON: set(), TEST_HORIZON: set()}
        self.routes: dict[tuple[str, str], httpx.Response | Handler] = {}
        self.requests: list[httpx.Request] = []
        self.accept_any_account = False
        self.balances: dict[str, list[dict[str, str]]] = {}

    def register_account(self, public_key: str, *horizons: str) -> None:
        for horizon in horizons or (TEST_HORIZON,):
            self.accounts[horizon].add(public_key)

    def set_balances(
        self, public_key: str, balances: list[dict[str, str]], *horizons: str
    ) -> None:
        """Register ``public_key`` and serve ``balances`` for it."""

        self.register_account(public_key, *horizons)
        self.balances[public_key] = balances

    def route(
        self,
        method: str,
        url: str,
        response: httpx.Response | Handler | None = None,
        *,
        status: int = 200,
        json_body: Any = None,
    ) -> None:
        if response is None:
            response = httpx.Response(status, json=json_body)
        self.routes[(method, url)] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url).split("?", 1)[0]
        for horizon, known in self.accounts.items():
            prefix = f"{horizon}/accounts/"
            if url.startswith(prefix):
                account_id = url[len(prefix):]
                if self.accept_any_account or account_id in known:
                    return httpx.Response(
                        200,
                        json={
                            "id": account_id,
                            "account_id": account_id,
                            "sequence": "1",
                            "balances": self.balances.get(account_id, []),
                        },
                    )
                return httpx.Response(404, json={"status": 404})
        entry = self.routes.get((request.method, url))
        if entry is None:
            return httpx.Response(404, json={"message": "not found"})
        if callable(entry):
            return entry(request)
        return entry

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def calls(self, method: str, url: str) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method and str(request.url).split("?", 1)[0] == url
        ]

    def json_bodies(self, method: str, url: str) -> list[Any]:
        return [json.loads(request.content) for request in self.calls(method, url)]


@pytest.fixture
def services() -> FakeServices:
    return FakeServices()


@pytest.fixture
def merchant() -> Keypair:
    return Keypair.random()


@pytest.fixture
def subject() -> Keypair:
    return Keypair.random()


@pytest.fixture
def project_key() -> str:
    return Keypair.random().public_key
