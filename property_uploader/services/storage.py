"""
Storage Service - Single Responsibility: push image bytes to the storage function.

The storage endpoint takes the raw body plus a ``path`` query parameter and
answers with ``{"url": ...}``.
"""
from __future__ import annotations

import logging
import time
import uuid
from typing import Optional

import httpx

from ..errors import UploadError
from .api_client import supabase_headers

logger = logging.getLogger(__name__)


def generate_object_path(prefix: str, filename: str) -> str:
    """Fresh random object path keeping the file's extension."""
    extension = filename.rsplit(".", 1)[-1]
    token = uuid.uuid4().hex[:13]
    return f"{prefix}/{token}_{int(time.time() * 1000)}.{extension}"


class StorageService:
    """
    Uploads files to the storage function.

    Implements IStorageClient protocol.
    """

    def __init__(
        self,
        upload_url: str,
        api_key: Optional[str] = None,
        timeout: int = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._upload_url = upload_url
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            headers=supabase_headers(self._api_key),
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def upload_bytes(self, data: bytes, content_type: str, path: str) -> str:
        """
        Store raw bytes at ``path``.

        Returns:
            Public URL reported by the endpoint

        Raises:
            UploadError: on non-2xx responses or a body without ``url``
        """
        if not self._client:
            raise RuntimeError("StorageService not initialized. Use 'async with' context.")

        response = await self._client.post(
            self._upload_url,
            params={"path": path},
            content=data,
            headers={"Content-Type": content_type},
        )
        if response.status_code >= 400:
            raise UploadError(f"Upload failed ({response.status_code}) for {path}")

        try:
            url = response.json().get("url")
        except (ValueError, AttributeError) as exc:
            raise UploadError(f"Invalid upload response for {path}") from exc
        if not url:
            raise UploadError(f"No URL returned for {path}")

        logger.debug(f"Stored {path} -> {url}")
        return url
