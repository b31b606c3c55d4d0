from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from src.api.clients.base import UpstreamClient, UpstreamError


def _data(body: Any, action: str) -> Any:
    """Unwrap the {status, data} envelope of the Prometheus HTTP API."""
    if not isinstance(body, dict) or "data" not in body:
        raise UpstreamError(f"{action}: unexpected response shape")
    return body["data"]


class PrometheusClient(UpstreamClient):
    """Prometheus HTTP API (v1) client."""

    name = "prometheus"

    # PUBLIC_INTERFACE
    async def query(self, query: str, time: Optional[str] = None) -> Dict[str, Any]:
        """Instant query; returns the full Prometheus response body."""
        params: Dict[str, Any] = {"query": query}
        if time:
            params["time"] = time
        return await self.get_json("Prometheus query failed", "/api/v1/query", params)

    # PUBLIC_INTERFACE
    async def query_range(self, query: str, start: str, end: str, step: str) -> Dict[str, Any]:
        """Range query; returns the full Prometheus response body."""
        params = {"query": query, "start": start, "end": end, "step": step}
        return await self.get_json("Prometheus range query failed", "/api/v1/query_range", params)

    async def labels(self) -> List[str]:
        action = "Failed to fetch labels"
        return _data(await self.get_json(action, "/api/v1/labels"), action)

    async def label_values(self, label: str) -> List[str]:
        action = "Failed to fetch label values"
        return _data(await self.get_json(action, f"/api/v1/label/{label}/values"), action)

    async def series(self, match: Sequence[str], start: Optional[str] = None, end: Optional[str] = None) -> List[Any]:
        action = "Failed to fetch series"
        params: Dict[str, Any] = {"match[]": list(match)}
        if start:
            params["start"] = start
        if end:
            params["end"] = end
        return _data(await self.get_json(action, "/api/v1/series", params), action)

    async def targets(self) -> Dict[str, Any]:
        action = "Failed to fetch targets"
        return _data(await self.get_json(action, "/api/v1/targets"), action)

    async def rules(self) -> Dict[str, Any]:
        action = "Failed to fetch rules"
        return _data(await self.get_json(action, "/api/v1/rules"), action)

    async def alerts(self) -> List[Any]:
        action = "Failed to fetch alerts"
        data = _data(await self.get_json(action, "/api/v1/alerts"), action)
        return list((data or {}).get("alerts") or [])
