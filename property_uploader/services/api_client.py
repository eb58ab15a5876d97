"""HTTP adapter for the PostgREST (Supabase) API."""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ..errors import APIError


def supabase_headers(api_key: Optional[str]) -> Dict[str, str]:
    """Headers PostgREST and edge functions expect for an anon/service key."""
    if not api_key:
        return {}
    return {"apikey": api_key, "Authorization": f"Bearer {api_key}"}


class HTTPAPIClient:
    """
    HTTP client adapter for REST calls.

    Implements IAPIClient protocol. Requests are made once; callers decide
    what a failure means for their unit of work.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: int = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=supabase_headers(self._api_key),
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("HTTPAPIClient not initialized. Use 'async with' context.")
        return self._client

    @staticmethod
    def _raise_for_status(response: httpx.Response, method: str, endpoint: str) -> None:
        if response.status_code < 400:
            return
        try:
            error_detail = response.json()
        except ValueError:
            error_detail = response.text
        raise APIError(response.status_code, method, endpoint, error_detail)

    async def get(self, endpoint: str, params: Optional[Dict] = None) -> Any:
        response = await self._require_client().get(endpoint, params=params)
        self._raise_for_status(response, "GET", endpoint)
        return response

    async def patch(self, endpoint: str, json: Dict, params: Optional[Dict] = None) -> Any:
        response = await self._require_client().patch(
            endpoint,
            json=json,
            params=params,
            headers={"Prefer": "return=minimal"},
        )
        self._raise_for_status(response, "PATCH", endpoint)
        return response
