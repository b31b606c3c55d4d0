from __future__ import annotations

from typing import Any, Dict, List, Optional

from src.api.clients.base import UpstreamClient


def _filter_params(filter: Optional[str]) -> Dict[str, str]:
    return {"filter": filter} if filter else {}


class AlertmanagerClient(UpstreamClient):
    """Alertmanager HTTP API (v2) client."""

    name = "alertmanager"

    async def alerts(self, filter: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self.get_json("Failed to fetch alerts", "/api/v2/alerts", _filter_params(filter))

    async def alert_groups(self, filter: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self.get_json("Failed to fetch alert groups", "/api/v2/alerts/groups", _filter_params(filter))

    async def post_alerts(self, alerts: List[Dict[str, Any]]) -> None:
        await self.post_json("Failed to post alerts", "/api/v2/alerts", alerts)

    async def silences(self, filter: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self.get_json("Failed to fetch silences", "/api/v2/silences", _filter_params(filter))

    async def silence(self, silence_id: str) -> Dict[str, Any]:
        return await self.get_json("Failed to fetch silence", f"/api/v2/silence/{silence_id}")

    # PUBLIC_INTERFACE
    async def create_silence(self, silence: Dict[str, Any]) -> Dict[str, Any]:
        """Create (or update, when `id` is set) a silence; returns {silenceID}."""
        return await self.post_json("Failed to create silence", "/api/v2/silences", silence)

    async def delete_silence(self, silence_id: str) -> None:
        await self.delete("Failed to delete silence", f"/api/v2/silence/{silence_id}")

    async def receivers(self) -> List[Dict[str, Any]]:
        return await self.get_json("Failed to fetch receivers", "/api/v2/receivers")

    async def status(self) -> Dict[str, Any]:
        return await self.get_json("Failed to fetch status", "/api/v2/status")
