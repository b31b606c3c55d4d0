from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from src.api.config import sanitize_url
from src.api.schemas.common import HealthResponse, utc_now
from src.api.state import get_state

router = APIRouter(tags=["Health"])


class ServiceHealthResponse(BaseModel):
    """Response model for the process-level health endpoint."""

    status: str = Field(..., description="Always 'ok' while the process serves requests.")
    timestamp: str = Field(..., description="UTC timestamp (ISO string).")
    environment: str = Field(..., description="Deployment environment name (APP_ENV).")


class UpstreamsDiagnosticsResponse(BaseModel):
    """Configured upstream endpoints (credentials masked)."""

    prometheus_url: str = Field(..., description="Prometheus base URL.")
    alertmanager_url: str = Field(..., description="Alertmanager base URL.")
    timeout_sec: int = Field(..., description="Per-request upstream timeout (seconds).")
    timestamp: str = Field(..., description="UTC timestamp when the diagnostics were produced (ISO string).")


@router.get(
    "/",
    response_model=HealthResponse,
    summary="Health check",
    description="Basic service liveness check used by deployment and the frontend.",
    operation_id="health_check",
)
def health_check() -> HealthResponse:
    """Return service liveness status."""
    return HealthResponse(status="ok", message="Healthy", timestamp=utc_now())


@router.get(
    "/health",
    response_model=ServiceHealthResponse,
    summary="Service health",
    description="Liveness plus the deployment environment name.",
    operation_id="service_health",
)
def service_health(request: Request) -> ServiceHealthResponse:
    """Return status, timestamp and environment."""
    state = get_state(request.app)
    return ServiceHealthResponse(status="ok", timestamp=utc_now().isoformat(), environment=state.config.environment)


@router.get(
    "/api/health/upstreams",
    response_model=UpstreamsDiagnosticsResponse,
    summary="Upstream configuration diagnostics",
    description="Reports which Prometheus/Alertmanager endpoints the gateway talks to. Credentials are masked.",
    operation_id="upstreams_diagnostics",
)
def upstreams_diagnostics(request: Request) -> UpstreamsDiagnosticsResponse:
    """Return upstream configuration diagnostics."""
    cfg = get_state(request.app).config
    return UpstreamsDiagnosticsResponse(
        prometheus_url=sanitize_url(cfg.prometheus_url),
        alertmanager_url=sanitize_url(cfg.alertmanager_url),
        timeout_sec=int(cfg.upstream_timeout_sec),
        timestamp=utc_now().isoformat(),
    )
