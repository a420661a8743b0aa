"""Persist token payloads to a content-addressed store (IPFS ``add`` API)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from tokenops.crypto import encrypt
from tokenops.errors import ContentStoreError

__all__ = ["ContentStore", "StoredContent"]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoredContent:
    """Result of an upload.

    Attributes:
        content_id: Content identifier reported by the store.
        data: Exact string uploaded (ciphertext when encryption was applied).
    """

    content_id: str
    data: str


class ContentStore:
    """Upload string payloads as multipart form data to ``{base_url}/add``."""

    def __init__(self, http_client: httpx.AsyncClient, base_url: str) -> None:
        self._http = http_client
        self._base = base_url.rstrip("/")

    async def add(self, payload: str, *, encryption_key: str | None = None) -> StoredContent:
        """Store ``payload``, encrypting it first when ``encryption_key`` is set.

        Raises:
            ContentStoreError: If the upload fails or no content id is returned.
        """

        data = encrypt(payload, encryption_key) if encryption_key else payload
        url = f"{self._base}/add"
        try:
            response = await self._http.post(url, files={"base64": (None, data)})
            response.raise_for_status()
            content_id = response.json().get("Hash")
        except httpx.HTTPError as exc:
            raise ContentStoreError("Failed to add data to the content store") from exc
        except (ValueError, AttributeError) as exc:
            raise ContentStoreError("Content store returned an unexpected document") from exc

        if not isinstance(content_id, str) or not content_id:
            raise ContentStoreError("Content store returned no content identifier")
        LOGGER.debug(
            "Stored payload",
            extra={"content_id": content_id, "encrypted": encryption_key is not None},
        )
        return StoredContent(content_id=content_id, data=data)
