"""Authorization surface backed by the system browser and a loopback listener.

The surface URL is opened with :mod:`webbrowser`. The authorization page posts
its answer to a short-lived FastAPI app served by uvicorn on ``127.0.0.1``:

* ``POST /`` carries the response, either ``{"data": ...}`` JSON or raw text.
* ``POST /closed`` is the beacon the page sends when the user dismisses it.

CORS is limited to the authorization origin so the page can post cross-origin.
"""

from __future__ import annotations

import asyncio
import json
import logging
import socket
import webbrowser
from collections.abc import Callable
from typing import Final

import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from tokenops.approval.broker import MessageListener, origin_of

__all__ = ["LoopbackAuthorizationSurface", "LoopbackWindow"]

LOGGER = logging.getLogger(__name__)

MAX_BODY_BYTES: Final[int] = 64 * 1024
_STARTUP_POLL_SECONDS: Final[float] = 0.01


class LoopbackWindow:
    """Handle for one browser-hosted authorization surface and its listener."""

    def __init__(self, sock: socket.socket, host: str, deadline: float) -> None:
        self._socket = sock
        self._callback_origin = f"http://{host}:{sock.getsockname()[1]}"
        self._deadline = deadline
        self._closed = False
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def callback_origin(self) -> str:
        return self._callback_origin

    @property
    def closed(self) -> bool:
        if self._closed:
            return True
        return asyncio.get_running_loop().time() >= self._deadline

    def mark_closed(self) -> None:
        self._closed = True

    async def start(self, app: FastAPI) -> None:
        """Serve ``app`` on the bound socket and wait until it accepts connections.

        Raises:
            OSError: If the listener stopped before it started accepting.
        """

        config = uvicorn.Config(
            app,
            log_config=None,
            log_level="warning",
            access_log=False,
            lifespan="off",
            timeout_graceful_shutdown=1,
        )
        self._server = uvicorn.Server(config)
        self._task = asyncio.create_task(self._server.serve(sockets=[self._socket]))
        while not self._server.started:
            if self._task.done():
                self._socket.close()
                self._task.result()
                raise OSError("Authorization listener stopped before accepting connections")
            await asyncio.sleep(_STARTUP_POLL_SECONDS)

    async def close(self) -> None:
        self._closed = True
        if self._server is None or self._task is None:
            self._socket.close()
            return
        self._server.should_exit = True
        await self._task


class LoopbackAuthorizationSurface:
    """Open authorization surfaces in a browser and relay their answers.

    Args:
        authorization_origin: Origin the authorization page is served from.
            Only its close beacon is honoured, and CORS allows only it.
        opener: Callable that displays a URL. Defaults to
            :func:`webbrowser.open`. A ``False`` return or an ``OSError``
            marks the window closed.
        host: Interface for the loopback listener.
        timeout: Seconds after which an unanswered window reports closed.
    """

    def __init__(
        self,
        *,
        authorization_origin: str,
        opener: Callable[[str], bool] | None = None,
        host: str = "127.0.0.1",
        timeout: float = 600.0,
    ) -> None:
        self._authorization_origin = origin_of(authorization_origin)
        self._opener = opener or webbrowser.open
        self._host = host
        self._timeout = timeout

    async def open(
        self,
        url_for: Callable[[str], str],
        on_message: MessageListener,
    ) -> LoopbackWindow:
        loop = asyncio.get_running_loop()
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((self._host, 0))
        window = LoopbackWindow(sock, self._host, loop.time() + self._timeout)
        await window.start(self._build_app(on_message, window))

        url = url_for(window.callback_origin)
        try:
            opened = await asyncio.to_thread(self._opener, url)
        except (OSError, webbrowser.Error) as exc:
            LOGGER.warning(
                "Failed to open authorization surface",
                extra={"error_type": type(exc).__name__},
            )
            opened = False
        if not opened:
            window.mark_closed()
        LOGGER.debug(
            "Authorization surface listening",
            extra={"callback_origin": window.callback_origin, "opened": bool(opened)},
        )
        return window

    def _build_app(self, on_message: MessageListener, window: LoopbackWindow) -> FastAPI:
        app = FastAPI(openapi_url=None, docs_url=None, redoc_url=None)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[self._authorization_origin],
            allow_methods=["POST"],
            allow_headers=["Content-Type"],
        )
        authorization_origin = self._authorization_origin

        @app.post("/", status_code=204)
        async def receive_response(request: Request) -> Response:
            body = await _read_body(request)
            try:
                message = _decode_message(body)
            except UnicodeDecodeError as exc:
                raise HTTPException(status_code=400, detail="Body is not UTF-8") from exc
            on_message(request.headers.get("origin", ""), message)
            return Response(status_code=204)

        @app.post("/closed", status_code=204)
        async def receive_close_beacon(request: Request) -> Response:
            if request.headers.get("origin") == authorization_origin:
                window.mark_closed()
            return Response(status_code=204)

        return app


async def _read_body(request: Request) -> bytes:
    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size <= MAX_BODY_BYTES:
            chunks.append(chunk)
    if size > MAX_BODY_BYTES:
        raise HTTPException(status_code=413, detail="Body too large")
    return b"".join(chunks)


def _decode_message(body: bytes) -> str | None:
    """Return the posted data; JSON ``{"data": null}`` means declined."""

    text = body.decode("utf-8").strip()
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(parsed, dict):
        data = parsed.get("data")
        return None if data is None else str(data)
    if parsed is None:
        return None
    return text if not isinstance(parsed, str) else parsed
