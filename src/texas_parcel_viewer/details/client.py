from __future__ import annotations

import logging
import urllib.parse
from typing import Any, Dict, Optional, Union

import httpx

from texas_parcel_viewer.errors import Found, NotFound, TransportError


logger = logging.getLogger("tpv.client")

DetailResult = Union[Found, NotFound, TransportError]


class DetailStoreClient:
    """Async client for the detail API.

    Lookups never raise: HTTP and network failures come back as
    `TransportError` values.
    """

    def __init__(
        self,
        api_base: str,
        tile_base: str = "",
        timeout: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.tile_base = (tile_base or "").rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, url: str) -> Union[Any, TransportError]:
        client = await self._ensure_client()
        try:
            response = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("request failed url=%s error=%s", url, exc)
            return TransportError(status=0, message=str(exc) or type(exc).__name__)
        if response.status_code < 200 or response.status_code >= 300:
            body = None
            try:
                body = response.json()
            except ValueError:
                body = response.text
            logger.warning("request failed url=%s status=%d", url, response.status_code)
            return TransportError(
                status=response.status_code,
                message=f"HTTP {response.status_code}",
                body=body,
            )
        try:
            return response.json()
        except ValueError as exc:
            return TransportError(
                status=response.status_code, message=f"invalid JSON: {exc}"
            )

    async def _lookup(self, path: str, identifier: Any) -> DetailResult:
        ident = str(identifier)
        url = f"{self.api_base}{path}/{urllib.parse.quote(ident, safe='')}"
        payload = await self._get_json(url)
        if isinstance(payload, TransportError):
            return payload
        details = payload.get("details") if isinstance(payload, dict) else None
        if details:
            return Found(record=details)
        note = payload.get("note") if isinstance(payload, dict) else None
        return NotFound(identifier=ident, note=note)

    async def fetch_details(self, identifier: Any) -> DetailResult:
        return await self._lookup("/api/details", identifier)

    async def fetch_parcel(self, text: str) -> DetailResult:
        return await self._lookup("/api/parcels", text)

    async def fetch_tilejson(self, name: str) -> Optional[Dict[str, Any]]:
        """Return the TileJSON document for a dataset, or None when unavailable."""

        if not self.tile_base:
            return None
        url = f"{self.tile_base}/data/{urllib.parse.quote(name, safe='')}.json"
        payload = await self._get_json(url)
        if isinstance(payload, TransportError) or not isinstance(payload, dict):
            return None
        return payload
