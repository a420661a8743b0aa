"""Wire the toolkit's components around one shared HTTP client."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from tokenops.api.client import LedgerServiceClient
from tokenops.approval.broker import ApprovalBroker, AuthorizationSurface
from tokenops.approval.loopback import LoopbackAuthorizationSurface
from tokenops.config import TokenOpsConfig
from tokenops.content_store import ContentStore
from tokenops.ledger.accounts import HorizonAccountReader
from tokenops.ledger.signer import EnvelopeSigner
from tokenops.orchestrator import OperationOrchestrator

__all__ = ["open_session"]

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def open_session(
    config: TokenOpsConfig,
    *,
    surface: AuthorizationSurface | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncIterator[OperationOrchestrator]:
    """Yield an orchestrator bound to ``config``.

    Args:
        config: Session configuration, built before the session starts.
        surface: Authorization surface for delegated approval. Defaults to a
            :class:`LoopbackAuthorizationSurface` for the configured origin.
        http_client: Client to share instead of creating one. A supplied client
            is left open on exit.
    """

    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=config.http_timeout)
    endpoints = config.endpoints
    broker = ApprovalBroker(
        surface
        or LoopbackAuthorizationSurface(
            authorization_origin=endpoints.authorization_url,
            timeout=config.approval_timeout,
        ),
        authorization_url=endpoints.authorization_url,
        project_key=config.project_key,
        poll_interval=config.approval_poll_interval,
    )
    orchestrator = OperationOrchestrator(
        config,
        LedgerServiceClient(client, endpoints.api_url),
        EnvelopeSigner(client, endpoints.networks),
        broker,
        ContentStore(client, endpoints.content_store_url),
        HorizonAccountReader(client, endpoints.networks),
    )
    LOGGER.debug(
        "Session opened",
        extra={
            "public_key": config.merchant_public_key,
            "networks": [network.name for network in endpoints.networks],
        },
    )
    try:
        yield orchestrator
    finally:
        if owns_client:
            await client.aclose()
