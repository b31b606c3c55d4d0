from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import FastAPI

from src.api.clients.alertmanager import AlertmanagerClient
from src.api.clients.prometheus import PrometheusClient
from src.api.config import GatewayConfig


@dataclass
class AppState:
    """Typed app.state container for shared singletons."""

    config: GatewayConfig
    prometheus: PrometheusClient
    alertmanager: AlertmanagerClient

    async def aclose(self) -> None:
        await self.prometheus.aclose()
        await self.alertmanager.aclose()


# PUBLIC_INTERFACE
def init_state(app: FastAPI, config: GatewayConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
    """Initialize app.state with upstream clients and config (transport is injectable for tests)."""
    timeout = float(config.upstream_timeout_sec)
    app.state.state = AppState(
        config=config,
        prometheus=PrometheusClient(config.prometheus_url, timeout, transport=transport),
        alertmanager=AlertmanagerClient(config.alertmanager_url, timeout, transport=transport),
    )


# PUBLIC_INTERFACE
def get_state(app: FastAPI) -> AppState:
    """Fetch typed AppState from a FastAPI app."""
    return app.state.state  # type: ignore[attr-defined]
