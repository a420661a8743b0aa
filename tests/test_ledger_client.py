"""Tests for the ledger service HTTP client."""

from __future__ import annotations

import httpx
import pytest
from conftest import API_URL, FakeServices

from tokenops.api.client import LedgerServiceClient
from tokenops.errors import RemoteBuildFailedError, ServiceUnavailableError
from tokenops.models import TokenCategory


def _client(client: httpx.AsyncClient) -> LedgerServiceClient:
    return LedgerServiceClient(client, f"{API_URL}/")


@pytest.mark.asyncio
async def test_get_account_parses_data_envelope(services: FakeServices) -> None:
    services.route(
        "GET",
        f"{API_URL}/users/GUSER",
        json_body={
            "data": {
                "publicKey": "GUSER",
                "alias": "alice",
                "accounts": [
                    {"publicKey": "GTRADE", "accountType": "0"},
                    {"publicKey": "GHOLD", "accountType": "1"},
                ],
                "unknownField": True,
            }
        },
    )

    async with services.client() as client:
        account = await _client(client).get_account("GUSER")

    assert account is not None
    assert account.alias == "alice"
    assert account.issuer_for(True) == "GTRADE"
    assert account.issuer_for(False) == "GHOLD"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(404, json={"message": "not found"}),
        httpx.Response(200, json={"data": None}),
        httpx.Response(200, json={"data": {"alias": "missing key"}}),
        httpx.Response(200, content=b"<html>"),
    ],
)
async def test_lookup_misses_return_none(
    services: FakeServices, response: httpx.Response
) -> None:
    services.route("GET", f"{API_URL}/tokens/CODE", response)

    async with services.client() as client:
        assert await _client(client).get_token("CODE") is None


@pytest.mark.asyncio
async def test_lookup_outage_is_not_a_miss(services: FakeServices) -> None:
    def explode(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    services.route("GET", f"{API_URL}/projects/GPROJECT", explode)
    services.route("GET", f"{API_URL}/users/GUSER", status=503)

    async with services.client() as client:
        with pytest.raises(ServiceUnavailableError, match="unreachable") as excinfo:
            await _client(client).get_project("GPROJECT")
        with pytest.raises(ServiceUnavailableError, match="503"):
            await _client(client).get_account("GUSER")

    assert isinstance(excinfo.value.__cause__, httpx.ReadTimeout)


@pytest.mark.asyncio
async def test_build_returns_envelopes_in_order(services: FakeServices) -> None:
    services.route(
        "POST",
        f"{API_URL}/xdrs/mint/giftcard",
        json_body={
            "data": [{"xdr": "AAA", "sequence": 7}, {"xdr": "BBB"}],
            "metaData": {"niftronId": "NID"},
        },
    )

    async with services.client() as client:
        built = await _client(client).build_mint(TokenCategory.GIFTCARD, {"a": 1})

    assert [record.xdr for record in built.data] == ["AAA", "BBB"]
    assert built.data[0].sequence == "7"
    assert built.meta_data.niftron_id == "NID"
    assert services.json_bodies("POST", f"{API_URL}/xdrs/mint/giftcard") == [{"a": 1}]


@pytest.mark.asyncio
async def test_build_bare_xdr_reply(services: FakeServices) -> None:
    services.route(
        "POST", f"{API_URL}/xdrs/activate", json_body={"data": "XDR", "code": 200}
    )

    async with services.client() as client:
        built = await _client(client).build_activate({})

    assert [record.xdr for record in built.data] == ["XDR"]


@pytest.mark.asyncio
async def test_build_non_success_code_is_returned(services: FakeServices) -> None:
    services.route("POST", f"{API_URL}/xdrs/goLive", json_body={"code": 203})

    async with services.client() as client:
        built = await _client(client).build_go_live({})

    assert built.code == 203
    assert built.data == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"message": "boom"}),
        httpx.Response(200, json={"data": []}),
        httpx.Response(200, json={"data": [{"version": 1}]}),
        httpx.Response(200, content=b"not json"),
    ],
)
async def test_build_failures(services: FakeServices, response: httpx.Response) -> None:
    services.route("POST", f"{API_URL}/xdrs/trust", response)

    async with services.client() as client:
        with pytest.raises(RemoteBuildFailedError):
            await _client(client).build_trust({})


@pytest.mark.asyncio
async def test_submit_returns_status(services: FakeServices) -> None:
    services.route("POST", f"{API_URL}/tokens/trust", status=203)

    async with services.client() as client:
        assert await _client(client).submit_trust({"xdr": "X"}) == 203
        # Unrouted endpoint answers 404 in the fake.
        assert await _client(client).submit_register({}) == 404


@pytest.mark.asyncio
async def test_get_tokens_posts_code_issuer_pairs(services: FakeServices) -> None:
    services.route(
        "POST",
        f"{API_URL}/tokens/getData",
        json_body={
            "data": [
                {"data": {"tokenName": "Diploma", "assetCode": "NNTNANABCDEF"}},
                {"data": {"tokenName": "Ticket", "assetCode": "STTNANFEDCBA"}},
            ]
        },
    )

    async with services.client() as client:
        records = await _client(client).get_tokens(
            [("NNTNANABCDEF", "GISSUER"), ("STTNANFEDCBA", "GISSUER")]
        )

    assert records is not None
    assert [record.token_name for record in records] == ["Diploma", "Ticket"]
    [body] = services.json_bodies("POST", f"{API_URL}/tokens/getData")
    assert body == [
        {"id": "NNTNANABCDEF", "issuer": "GISSUER"},
        {"id": "STTNANFEDCBA", "issuer": "GISSUER"},
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(404, json={"message": "not found"}),
        httpx.Response(200, json={"data": []}),
        httpx.Response(200, json={"data": None}),
        httpx.Response(200, content=b"<html>"),
    ],
)
async def test_get_tokens_misses_return_none(
    services: FakeServices, response: httpx.Response
) -> None:
    services.route("POST", f"{API_URL}/tokens/getData", response)

    async with services.client() as client:
        assert await _client(client).get_tokens([("CODE", "GISSUER")]) is None


@pytest.mark.asyncio
async def test_get_tokens_outage(services: FakeServices) -> None:
    services.route("POST", f"{API_URL}/tokens/getData", status=502)

    async with services.client() as client:
        with pytest.raises(ServiceUnavailableError):
            await _client(client).get_tokens([("CODE", "GISSUER")])
