from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """An upstream monitoring API call failed; carries the HTTP status to surface."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)


class UpstreamClient:
    """
    Thin async REST client for one upstream monitoring service.

    - Owns a single httpx.AsyncClient (connection pooling, base URL, timeout).
    - Every failure (transport error or non-2xx status) surfaces as UpstreamError.
    """

    name = "upstream"

    def __init__(
        self,
        base_url: str,
        timeout_sec: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_sec,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def _request(self, action: str, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            res = await self._client.request(method, path, **kwargs)
            res.raise_for_status()
            return res
        except httpx.HTTPStatusError as exc:
            logger.warning("%s %s %s failed with status %s", self.name, method, path, exc.response.status_code)
            raise UpstreamError(f"{action}: {exc}", exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            logger.warning("%s %s %s failed: %s", self.name, method, path, exc)
            raise UpstreamError(f"{action}: {exc}") from exc

    async def get_json(self, action: str, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        res = await self._request(action, "GET", path, params=params)
        try:
            return res.json()
        except ValueError as exc:
            raise UpstreamError(f"{action}: invalid JSON from {self.name}") from exc

    async def post_json(self, action: str, path: str, payload: Any) -> Any:
        res = await self._request(action, "POST", path, json=payload)
        if not res.content:
            return None
        try:
            return res.json()
        except ValueError as exc:
            raise UpstreamError(f"{action}: invalid JSON from {self.name}") from exc

    async def delete(self, action: str, path: str) -> None:
        await self._request(action, "DELETE", path)

    # PUBLIC_INTERFACE
    async def healthy(self) -> Dict[str, str]:
        """Probe /-/healthy (shared by Prometheus and Alertmanager)."""
        res = await self._request(f"{self.name} health check failed", "GET", "/-/healthy")
        return {"status": "healthy" if res.status_code == 200 else "unhealthy"}

    async def aclose(self) -> None:
        await self._client.aclose()
