"""Delegated approval through an out-of-band authorization surface."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol
from urllib.parse import urlencode, urlsplit

__all__ = [
    "ApprovalBroker",
    "ApprovalState",
    "AuthorizationSurface",
    "AuthorizationWindow",
    "MessageListener",
    "PendingApproval",
    "origin_of",
]

LOGGER = logging.getLogger(__name__)

MessageListener = Callable[[str, "str | None"], None]


def origin_of(url: str) -> str:
    """Return the ``scheme://host[:port]`` origin of ``url``."""

    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


class ApprovalState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class AuthorizationWindow(Protocol):
    """Handle to an open authorization surface."""

    @property
    def closed(self) -> bool:
        """Whether the user closed the surface (or it can no longer answer)."""
        ...

    async def close(self) -> None:
        """Dismiss the surface and release its resources."""
        ...


class AuthorizationSurface(Protocol):
    """Capability that opens authorization surfaces and relays their messages."""

    async def open(
        self,
        url_for: Callable[[str], str],
        on_message: MessageListener,
    ) -> AuthorizationWindow:
        """Open a surface.

        Args:
            url_for: Builds the surface URL from the callback origin the
                surface should post its response to.
            on_message: Receives ``(origin, data)`` for every inbound message.
        """
        ...


@dataclass(slots=True)
class PendingApproval:
    """One in-flight approval request and its listener scope."""

    correlation_id: str
    future: asyncio.Future[str | None]
    state: ApprovalState = ApprovalState.IDLE
    window: AuthorizationWindow | None = None
    context: Mapping[str, str] = field(default_factory=dict)


class ApprovalBroker:
    """Obtain a delegated signing credential from an authorization surface.

    Each request moves ``IDLE -> AWAITING_RESPONSE -> RESOLVED | CANCELLED``.
    Requests are keyed by correlation id so several may be pending at once.
    Only messages from the authorization origin are accepted; the first one
    settles the request. A closed window settles it with ``None``; the closed
    flag is re-checked every ``poll_interval`` seconds while pending.
    """

    def __init__(
        self,
        surface: AuthorizationSurface,
        *,
        authorization_url: str,
        project_key: str,
        service_type: str = "0",
        poll_interval: float = 0.5,
    ) -> None:
        self._surface = surface
        self._authorization_url = authorization_url
        self._authorization_origin = origin_of(authorization_url)
        self._project_key = project_key
        self._service_type = service_type
        self._poll_interval = poll_interval
        self._pending: dict[str, PendingApproval] = {}

    @property
    def authorization_origin(self) -> str:
        return self._authorization_origin

    def pending(self) -> Mapping[str, PendingApproval]:
        """Return a read-only view of in-flight requests."""

        return dict(self._pending)

    def build_url(
        self,
        callback_origin: str,
        correlation_id: str,
        context: Mapping[str, str] | None = None,
    ) -> str:
        """Return the authorization surface URL for a request."""

        query = {
            "serviceType": self._service_type,
            "projectKey": self._project_key,
            "origin": callback_origin,
            "requestId": correlation_id,
        }
        if context:
            query.update(context)
        separator = "&" if "?" in self._authorization_url else "?"
        return f"{self._authorization_url}{separator}{urlencode(query)}"

    async def request_approval(
        self, context: Mapping[str, str] | None = None
    ) -> str | None:
        """Open the authorization surface and wait for its answer.

        Args:
            context: Extra query parameters forwarded to the surface.

        Returns:
            The signing credential posted by the surface, or ``None`` when the
            user declined or closed the surface.
        """

        loop = asyncio.get_running_loop()
        request = PendingApproval(
            correlation_id=uuid.uuid4().hex,
            future=loop.create_future(),
            context=dict(context or {}),
        )
        self._pending[request.correlation_id] = request

        def _listener(origin: str, data: str | None) -> None:
            if origin != self._authorization_origin:
                LOGGER.debug(
                    "Ignoring approval message from unexpected origin",
                    extra={"origin": origin, "request_id": request.correlation_id},
                )
                return
            if request.future.done():
                return
            request.state = ApprovalState.RESOLVED
            request.future.set_result(data)

        try:
            request.window = await self._surface.open(
                lambda callback_origin: self.build_url(
                    callback_origin, request.correlation_id, request.context
                ),
                _listener,
            )
            if request.state is ApprovalState.IDLE:
                request.state = ApprovalState.AWAITING_RESPONSE
            LOGGER.info(
                "Awaiting delegated approval",
                extra={"request_id": request.correlation_id},
            )
            return await self._wait(request)
        finally:
            self._pending.pop(request.correlation_id, None)
            if request.window is not None:
                await request.window.close()

    async def _wait(self, request: PendingApproval) -> str | None:
        window = request.window
        while not request.future.done():
            if window is None or window.closed:
                request.state = ApprovalState.CANCELLED
                LOGGER.info(
                    "Approval window closed without a response",
                    extra={"request_id": request.correlation_id},
                )
                return None
            await asyncio.wait({request.future}, timeout=self._poll_interval)
        return request.future.result()
