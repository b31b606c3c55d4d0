from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest

from src.api.config import GatewayConfig

PROMETHEUS_URL = "http://prometheus.test/prometheus"
ALERTMANAGER_URL = "http://alertmanager.test"

Handler = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeUpstream:
    """
    In-process stand-in for Prometheus and Alertmanager.

    Routes are keyed by (method, host + path); unregistered routes answer 404.
    Every request is recorded for assertions.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url: str, handler: Handler) -> None:
        parsed = httpx.URL(url)
        self.routes[(method.upper(), f"{parsed.host}{parsed.path}")] = handler

    def json(self, method: str, url: str, body: Any, status_code: int = 200) -> None:
        self.add(method, url, lambda request: httpx.Response(status_code, json=body))

    def prometheus(self, path: str, data: Any) -> None:
        """Register a Prometheus v1 endpoint answering {status: success, data}."""
        self.json("GET", f"{PROMETHEUS_URL}{path}", {"status": "success", "data": data})

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, f"{request.url.host}{request.url.path}"))
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        if callable(handler):
            return handler(request)
        return handler


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(
        prometheus_url=PROMETHEUS_URL,
        alertmanager_url=ALERTMANAGER_URL,
        upstream_timeout_sec=5,
        allowed_origins=("*",),
        environment="test",
        request_logging=False,
    )


@pytest.fixture
def app(gateway_config: GatewayConfig, upstream: FakeUpstream):
    """FastAPI app whose upstream clients are wired to the fake upstream."""
    from src.api.main import create_app

    return create_app(gateway_config, transport=httpx.MockTransport(upstream.handle))


@pytest.fixture
async def async_client(app) -> AsyncIterator[httpx.AsyncClient]:
    """Async HTTP client bound to the FastAPI ASGI app."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sample_records() -> List[Dict[str, Any]]:
    return [
        {"name": "CPU Usage", "severity": "critical", "duration": 8},
        {"name": "Memory Alert", "severity": "warning", "duration": 3},
        {"name": "CPU Load", "severity": "critical", "duration": 12},
    ]


@pytest.fixture
def rule_groups() -> List[Dict[str, Any]]:
    """Prometheus /api/v1/rules groups (data.groups)."""
    return [
        {
            "name": "elasticsearch",
            "rules": [
                {
                    "name": "HighCPU",
                    "state": "firing",
                    "query": "elasticsearch_process_cpu_percent > 90",
                    "duration": 60,
                    "labels": {"severity": "critical"},
                    "annotations": {"summary": "CPU above 90%"},
                    "alerts": [{"state": "firing", "labels": {"name": "es-1"}, "value": "97"}],
                    "lastEvaluation": "2024-05-01T10:00:00.123456789Z",
                },
                {
                    "name": "DiskFull",
                    "state": "pending",
                    "query": "elasticsearch_filesystem_data_free_bytes < 1e9",
                    "duration": 300,
                    "labels": {"severity": "warning"},
                    "annotations": {},
                    "alerts": [],
                    "lastEvaluation": "2024-05-01T10:00:15Z",
                },
            ],
        },
        {
            "name": "nodes",
            "rules": [
                {
                    "name": "NodeDown",
                    "state": "inactive",
                    "query": "up == 0",
                    "duration": 0,
                    "labels": {"severity": "critical"},
                    "annotations": {},
                    "alerts": [],
                    "lastEvaluation": "2024-05-01T10:01:00.5Z",
                }
            ],
        },
    ]
