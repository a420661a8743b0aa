"""HTTP client for the registry, envelope builder and ledger-operations service."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from tokenops.errors import RemoteBuildFailedError, ServiceUnavailableError
from tokenops.models import (
    BuilderResponse,
    Project,
    RegisteredAccount,
    TokenCategory,
    TokenRecord,
)

__all__ = ["LedgerServiceClient"]

LOGGER = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

JsonBody = Mapping[str, Any]


class LedgerServiceClient:
    """Thin async wrapper around the ledger service REST endpoints.

    Lookups return ``None`` when the registry has no usable record so the
    orchestrator can map the absence to a typed error. An unreachable service
    or a 5xx answer raises :class:`ServiceUnavailableError` instead, so an
    outage is never reported as a missing record. Submits never raise: they
    return the status, or ``None`` when the service could not be reached.
    Builders raise :class:`RemoteBuildFailedError` because there is nothing
    to sign without envelopes.
    """

    def __init__(self, http_client: httpx.AsyncClient, base_url: str) -> None:
        self._http = http_client
        self._base = base_url.rstrip("/")

    # Lookups

    async def get_account(self, public_key: str) -> RegisteredAccount | None:
        return await self._lookup(f"/users/{public_key}", RegisteredAccount)

    async def get_project(self, public_key: str) -> Project | None:
        return await self._lookup(f"/projects/{public_key}", Project)

    async def get_token(self, asset_code: str) -> TokenRecord | None:
        return await self._lookup(f"/tokens/{asset_code}", TokenRecord)

    async def get_tokens(
        self, assets: Sequence[tuple[str, str]]
    ) -> list[TokenRecord] | None:
        """Look up several tokens by ``(asset_code, asset_issuer)`` in one call.

        Returns ``None`` when the registry knows none of them.
        """

        url = f"{self._base}/tokens/getData"
        body = [{"id": code, "issuer": issuer} for code, issuer in assets]
        try:
            response = await self._http.post(url, json=body)
        except httpx.HTTPError as exc:
            raise ServiceUnavailableError(f"Registry unreachable at {url}") from exc
        if response.status_code >= 500:
            raise ServiceUnavailableError(
                f"Registry failed with status {response.status_code}"
            )
        if response.status_code != 200:
            return None

        try:
            payload = response.json()
            entries = payload.get("data") if isinstance(payload, dict) else None
            records = [
                TokenRecord.model_validate(entry.get("data", entry))
                for entry in entries or ()
                if isinstance(entry, dict)
            ]
        except (ValueError, ValidationError) as exc:
            LOGGER.warning(
                "Registry returned an unexpected token list",
                extra={"url": url},
                exc_info=exc,
            )
            return None
        return records or None

    # Envelope builders

    async def build_mint(
        self, category: TokenCategory, body: JsonBody
    ) -> BuilderResponse:
        return await self._build(f"/xdrs/mint/{category.path}", body)

    async def build_transfer(self, body: JsonBody) -> BuilderResponse:
        return await self._build("/xdrs/transfer/badge", body)

    async def build_express_transfer(self, body: JsonBody) -> BuilderResponse:
        return await self._build("/xdrs/expressTransfer/token", body)

    async def build_trust(self, body: JsonBody) -> BuilderResponse:
        return await self._build("/xdrs/trust", body)

    async def build_register(self, body: JsonBody) -> BuilderResponse:
        return await self._build("/xdrs/register", body)

    async def build_go_live(self, body: JsonBody) -> BuilderResponse:
        return await self._build("/xdrs/goLive", body)

    async def build_activate(self, body: JsonBody) -> BuilderResponse:
        return await self._build("/xdrs/activate", body)

    # Submits

    async def submit_mint(self, category: TokenCategory, body: JsonBody) -> int | None:
        return await self._submit(f"/tokens/mint/{category.path}", body)

    async def submit_transfer(self, body: JsonBody) -> int | None:
        return await self._submit("/transactions/transfers", body)

    async def submit_express_transfer(self, body: JsonBody) -> int | None:
        return await self._submit("/transactions/expressTransfer", body)

    async def submit_trust(self, body: JsonBody) -> int | None:
        return await self._submit("/tokens/trust", body)

    async def submit_register(self, body: JsonBody) -> int | None:
        return await self._submit("/users/register", body)

    async def submit_go_live(self, body: JsonBody) -> int | None:
        return await self._submit("/users/goLive", body)

    async def submit_activate(self, body: JsonBody) -> int | None:
        return await self._submit("/users/activate", body)

    async def _lookup(self, path: str, model: type[ModelT]) -> ModelT | None:
        url = f"{self._base}{path}"
        try:
            response = await self._http.get(url)
        except httpx.HTTPError as exc:
            raise ServiceUnavailableError(f"Ledger service unreachable at {url}") from exc

        if response.status_code >= 500:
            raise ServiceUnavailableError(
                f"Ledger service failed with status {response.status_code}"
            )
        if response.status_code != 200:
            LOGGER.info(
                "Ledger service lookup found nothing",
                extra={"url": url, "status_code": response.status_code},
            )
            return None

        try:
            payload = response.json()
            document = payload.get("data", payload) if isinstance(payload, dict) else None
            if document is None:
                return None
            return model.model_validate(document)
        except (ValueError, ValidationError) as exc:
            LOGGER.warning(
                "Ledger service lookup returned an unexpected document",
                extra={"url": url, "model": model.__name__},
                exc_info=exc,
            )
            return None

    async def _build(self, path: str, body: JsonBody) -> BuilderResponse:
        """POST to a builder endpoint.

        A reply carrying a non-success ``code`` is returned as-is so the
        caller can map the code; otherwise at least one envelope is required.
        """

        url = f"{self._base}{path}"
        try:
            response = await self._http.post(url, json=dict(body))
            response.raise_for_status()
            result = BuilderResponse.model_validate(response.json())
        except httpx.HTTPStatusError as exc:
            raise RemoteBuildFailedError(
                f"Envelope builder {path} failed with status "
                f"{exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteBuildFailedError(f"Envelope builder {path} unreachable") from exc
        except (ValueError, ValidationError) as exc:
            raise RemoteBuildFailedError(
                f"Envelope builder {path} returned an unexpected document"
            ) from exc

        if result.code not in (None, 200):
            return result
        if not result.data:
            raise RemoteBuildFailedError(f"Envelope builder {path} returned no envelopes")
        LOGGER.debug(
            "Built envelopes",
            extra={"url": url, "envelopes": len(result.data)},
        )
        return result

    async def _submit(self, path: str, body: JsonBody) -> int | None:
        url = f"{self._base}{path}"
        try:
            response = await self._http.post(url, json=dict(body))
        except httpx.HTTPError as exc:
            LOGGER.warning(
                "Ledger service submit transport error",
                extra={"url": url},
                exc_info=exc,
            )
            return None
        LOGGER.info(
            "Ledger service submit answered",
            extra={"url": url, "status_code": response.status_code},
        )
        return response.status_code
