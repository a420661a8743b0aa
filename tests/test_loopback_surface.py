"""Tests for the browser-backed loopback authorization surface."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from tokenops.approval import ApprovalBroker, LoopbackAuthorizationSurface
from tokenops.approval.loopback import MAX_BODY_BYTES

AUTH_URL = "https://account.example.com/"
AUTH_ORIGIN = "https://account.example.com"


class RecordingOpener:
    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.urls: list[str] = []

    def __call__(self, url: str) -> bool:
        self.urls.append(url)
        return self.result


def _callback_origin(url: str) -> str:
    return parse_qs(urlsplit(url).query)["origin"][0]


async def _opened_url(opener: RecordingOpener) -> str:
    while not opener.urls:
        await asyncio.sleep(0.005)
    return opener.urls[0]


def _broker(surface: LoopbackAuthorizationSurface) -> ApprovalBroker:
    return ApprovalBroker(
        surface,
        authorization_url=AUTH_URL,
        project_key="GPROJECT",
        poll_interval=0.01,
    )


@pytest.mark.asyncio
async def test_posted_credential_resolves_approval() -> None:
    opener = RecordingOpener()
    surface = LoopbackAuthorizationSurface(authorization_origin=AUTH_URL, opener=opener)
    task = asyncio.create_task(_broker(surface).request_approval())
    callback = _callback_origin(await _opened_url(opener))

    async with httpx.AsyncClient(trust_env=False) as client:
        response = await client.post(
            f"{callback}/", json={"data": "SCREDENTIAL"}, headers={"Origin": AUTH_ORIGIN}
        )

    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == AUTH_ORIGIN
    assert await asyncio.wait_for(task, timeout=2.0) == "SCREDENTIAL"
    assert callback.startswith("http://127.0.0.1:")


@pytest.mark.asyncio
async def test_raw_text_body_and_foreign_origin() -> None:
    opener = RecordingOpener()
    surface = LoopbackAuthorizationSurface(authorization_origin=AUTH_URL, opener=opener)
    task = asyncio.create_task(_broker(surface).request_approval())
    callback = _callback_origin(await _opened_url(opener))

    async with httpx.AsyncClient(trust_env=False) as client:
        await client.post(
            f"{callback}/", content=b"SSPOOFED", headers={"Origin": "https://evil.example"}
        )
        await asyncio.sleep(0.05)
        assert not task.done()
        await client.post(f"{callback}/", content=b"SRAW", headers={"Origin": AUTH_ORIGIN})

    assert await asyncio.wait_for(task, timeout=2.0) == "SRAW"


@pytest.mark.asyncio
async def test_close_beacon_cancels_approval() -> None:
    opener = RecordingOpener()
    surface = LoopbackAuthorizationSurface(authorization_origin=AUTH_URL, opener=opener)
    task = asyncio.create_task(_broker(surface).request_approval())
    callback = _callback_origin(await _opened_url(opener))

    async with httpx.AsyncClient(trust_env=False) as client:
        ignored = await client.post(
            f"{callback}/closed", headers={"Origin": "https://evil.example"}
        )
        assert ignored.status_code == 204
        await asyncio.sleep(0.05)
        assert not task.done()
        await client.post(f"{callback}/closed", headers={"Origin": AUTH_ORIGIN})

    assert await asyncio.wait_for(task, timeout=2.0) is None


@pytest.mark.asyncio
async def test_failed_opener_reports_closed() -> None:
    surface = LoopbackAuthorizationSurface(
        authorization_origin=AUTH_URL, opener=RecordingOpener(result=False)
    )

    assert await asyncio.wait_for(_broker(surface).request_approval(), timeout=2.0) is None


@pytest.mark.asyncio
async def test_opener_error_reports_closed() -> None:
    def opener(url: str) -> bool:
        raise OSError("no display")

    surface = LoopbackAuthorizationSurface(authorization_origin=AUTH_URL, opener=opener)

    assert await asyncio.wait_for(_broker(surface).request_approval(), timeout=2.0) is None


@pytest.mark.asyncio
async def test_timeout_reports_closed() -> None:
    surface = LoopbackAuthorizationSurface(
        authorization_origin=AUTH_URL, opener=RecordingOpener(), timeout=0.05
    )

    assert await asyncio.wait_for(_broker(surface).request_approval(), timeout=2.0) is None


@pytest.mark.asyncio
async def test_preflight_and_unknown_routes() -> None:
    messages: list[tuple[str, str | None]] = []
    surface = LoopbackAuthorizationSurface(
        authorization_origin=AUTH_URL, opener=RecordingOpener()
    )
    window = await surface.open(
        lambda origin: f"{AUTH_URL}?origin={origin}",
        lambda origin, data: messages.append((origin, data)),
    )
    try:
        async with httpx.AsyncClient(trust_env=False) as client:
            preflight = await client.options(
                f"{window.callback_origin}/",
                headers={
                    "Origin": AUTH_ORIGIN,
                    "Access-Control-Request-Method": "POST",
                    "Access-Control-Request-Headers": "Content-Type",
                },
            )
            missing = await client.post(f"{window.callback_origin}/elsewhere", content=b"x")
            wrong_method = await client.get(f"{window.callback_origin}/")
            declined = await client.post(
                f"{window.callback_origin}/",
                json={"data": None},
                headers={"Origin": AUTH_ORIGIN},
            )
    finally:
        await window.close()

    assert preflight.status_code == 200
    assert preflight.headers["access-control-allow-origin"] == AUTH_ORIGIN
    assert "POST" in preflight.headers["access-control-allow-methods"]
    assert missing.status_code == 404
    assert wrong_method.status_code == 405
    assert declined.status_code == 204
    assert messages == [(AUTH_ORIGIN, None)]
    assert window.closed


@pytest.mark.asyncio
async def test_chunked_body_is_read_in_full() -> None:
    opener = RecordingOpener()
    surface = LoopbackAuthorizationSurface(authorization_origin=AUTH_URL, opener=opener)
    task = asyncio.create_task(_broker(surface).request_approval())
    callback = _callback_origin(await _opened_url(opener))

    async def _chunks() -> AsyncIterator[bytes]:
        yield b'{"data":'
        yield b'"SCREDENTIAL"}'

    async with httpx.AsyncClient(trust_env=False) as client:
        response = await client.post(
            f"{callback}/", content=_chunks(), headers={"Origin": AUTH_ORIGIN}
        )

    assert "content-length" not in response.request.headers
    assert response.request.headers["transfer-encoding"] == "chunked"
    assert response.status_code == 204
    assert await asyncio.wait_for(task, timeout=2.0) == "SCREDENTIAL"


@pytest.mark.asyncio
async def test_rejects_oversized_and_undecodable_bodies() -> None:
    messages: list[tuple[str, str | None]] = []
    surface = LoopbackAuthorizationSurface(
        authorization_origin=AUTH_URL, opener=RecordingOpener()
    )
    window = await surface.open(
        lambda origin: f"{AUTH_URL}?origin={origin}",
        lambda origin, data: messages.append((origin, data)),
    )
    try:
        async with httpx.AsyncClient(trust_env=False) as client:
            oversized = await client.post(
                f"{window.callback_origin}/",
                content=b"x" * (MAX_BODY_BYTES + 1),
                headers={"Origin": AUTH_ORIGIN},
            )
            undecodable = await client.post(
                f"{window.callback_origin}/",
                content=b"\xff\xfe",
                headers={"Origin": AUTH_ORIGIN},
            )
    finally:
        await window.close()

    assert oversized.status_code == 413
    assert undecodable.status_code == 400
    assert messages == []


@pytest.mark.asyncio
async def test_closed_window_stops_listening() -> None:
    surface = LoopbackAuthorizationSurface(
        authorization_origin=AUTH_URL, opener=RecordingOpener()
    )
    window = await surface.open(lambda origin: AUTH_URL, lambda origin, data: None)
    await window.close()

    async with httpx.AsyncClient(trust_env=False) as client:
        with pytest.raises(httpx.ConnectError):
            await client.post(f"{window.callback_origin}/closed")
