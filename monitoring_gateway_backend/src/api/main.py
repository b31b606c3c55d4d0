from __future__ import annotations

import logging
import time
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.clients.base import UpstreamError
from src.api.config import GatewayConfig, load_config
from src.api.routers import alertmanager, health, prometheus
from src.api.state import get_state, init_state

openapi_tags = [
    {"name": "Health", "description": "Service health and upstream diagnostics."},
    {"name": "Prometheus", "description": "Processed Prometheus data (cluster/CPU/JVM metrics, rules)."},
    {"name": "Prometheus (raw)", "description": "Pass-through Prometheus HTTP API endpoints."},
    {"name": "Alertmanager", "description": "Alerts, silences, receivers and status from Alertmanager."},
]

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(UpstreamError)
    async def _upstream_error(request: Request, exc: UpstreamError) -> JSONResponse:
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = str(errors[0].get("msg")) if errors else "Invalid request"
        return _error(422, message)


def _install_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def _log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s %s %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000.0,
        )
        return response


# PUBLIC_INTERFACE
def create_app(config: Optional[GatewayConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """Build the gateway app; `transport` replaces the network for both upstream clients (tests)."""
    config = config or load_config()
    app = FastAPI(
        title="Monitoring Gateway API",
        description=(
            "Backend API in front of Prometheus and Alertmanager. "
            "List endpoints (rules, alerts, silences) support ad-hoc filtering, sorting, "
            "field projection and pagination over the fetched result sets."
        ),
        version="1.0.0",
        openapi_tags=openapi_tags,
    )

    # Initialize typed app state (config + upstream clients)
    init_state(app, config, transport=transport)

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        """Shutdown hook: close upstream HTTP clients."""
        try:
            await get_state(app).aclose()
        except Exception:
            logger.exception("Error closing upstream clients")

    _install_error_handlers(app)
    if config.request_logging:
        _install_request_logging(app)

    allowed_origins = list(config.allowed_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        # Browsers reject credentialed requests against a wildcard origin.
        allow_credentials="*" not in allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(prometheus.router)
    app.include_router(prometheus.raw_router)
    app.include_router(alertmanager.router)
    return app


app = create_app()
