from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Request
from pydantic import TypeAdapter, ValidationError

from src.api.routers.deps import get_query_spec_without_filter
from src.api.schemas.alertmanager import SILENCE_REQUIRED_FIELDS, AlertIn, SilenceCreate, SilenceCreatedResponse
from src.api.schemas.common import DataResponse, ErrorResponse, MessageResponse, PaginatedResponse
from src.api.services import alertmanager_service
from src.api.services.query_pipeline import QuerySpec, run_pipeline

router = APIRouter(prefix="/api/alertmanager", tags=["Alertmanager"])

_ERRORS = {400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}}
_ALERTS_ADAPTER = TypeAdapter(List[AlertIn])

_FILTER_DESCRIPTION = "Alertmanager matcher (e.g. alertname=\"X\"), forwarded upstream."


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))


@router.get(
    "/alerts",
    response_model=PaginatedResponse,
    responses=_ERRORS,
    summary="List alerts",
    description="Active alerts with ad-hoc filtering, sort, fields projection and pagination.",
    operation_id="list_alertmanager_alerts",
)
async def list_alerts(
    request: Request,
    matcher_filter: Optional[str] = Query(default=None, alias="filter", description=_FILTER_DESCRIPTION),
    query: QuerySpec = Depends(get_query_spec_without_filter),
) -> PaginatedResponse:
    """List alerts through the query pipeline."""
    records = await alertmanager_service.list_alerts(request, matcher_filter)
    page, meta = run_pipeline(records, query)
    return PaginatedResponse(data=page, pagination=meta)


@router.get(
    "/alerts/groups",
    response_model=DataResponse,
    responses=_ERRORS,
    summary="List alert groups",
    operation_id="list_alertmanager_alert_groups",
)
async def list_alert_groups(
    request: Request,
    matcher_filter: Optional[str] = Query(default=None, alias="filter", description=_FILTER_DESCRIPTION),
) -> DataResponse:
    """Return alert groups unchanged."""
    return DataResponse(data=await alertmanager_service.list_alert_groups(request, matcher_filter))


@router.post(
    "/alerts",
    response_model=MessageResponse,
    responses=_ERRORS,
    summary="Post alerts",
    description="Forward a JSON array of alerts to Alertmanager.",
    operation_id="post_alertmanager_alerts",
)
async def post_alerts(request: Request, payload: Any = Body(default=None)) -> MessageResponse:
    """Post alerts."""
    if not isinstance(payload, list):
        raise HTTPException(status_code=400, detail="Request body must be an array of alerts")
    try:
        alerts = _ALERTS_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_first_error(exc)) from exc
    await alertmanager_service.post_alerts(request, alerts)
    return MessageResponse(message="Alerts posted successfully")


@router.get(
    "/silences",
    response_model=PaginatedResponse,
    responses=_ERRORS,
    summary="List silences",
    description="Silences with ad-hoc filtering (e.g. state=active), sort, fields projection and pagination.",
    operation_id="list_alertmanager_silences",
)
async def list_silences(
    request: Request,
    matcher_filter: Optional[str] = Query(default=None, alias="filter", description=_FILTER_DESCRIPTION),
    query: QuerySpec = Depends(get_query_spec_without_filter),
) -> PaginatedResponse:
    """List silences through the query pipeline."""
    records = await alertmanager_service.list_silences(request, matcher_filter)
    page, meta = run_pipeline(records, query)
    return PaginatedResponse(data=page, pagination=meta)


@router.get(
    "/silence/{silence_id}",
    response_model=DataResponse,
    responses=_ERRORS,
    summary="Get silence",
    operation_id="get_alertmanager_silence",
)
async def get_silence(request: Request, silence_id: str = Path(..., description="Silence id.")) -> DataResponse:
    """Fetch one silence."""
    return DataResponse(data=await alertmanager_service.get_silence(request, silence_id))


@router.post(
    "/silences",
    response_model=SilenceCreatedResponse,
    responses=_ERRORS,
    summary="Create silence",
    description="Create a silence; matchers, startsAt, endsAt, createdBy and comment are required.",
    operation_id="create_alertmanager_silence",
)
async def create_silence(request: Request, payload: Any = Body(default=None)) -> SilenceCreatedResponse:
    """Create a silence."""
    body = payload if isinstance(payload, dict) else {}
    if any(not body.get(name) for name in SILENCE_REQUIRED_FIELDS):
        raise HTTPException(
            status_code=400,
            detail=f"Missing required fields: {', '.join(SILENCE_REQUIRED_FIELDS)}",
        )
    try:
        silence = SilenceCreate.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_first_error(exc)) from exc
    return SilenceCreatedResponse(data=await alertmanager_service.create_silence(request, silence))


@router.delete(
    "/silence/{silence_id}",
    response_model=MessageResponse,
    responses=_ERRORS,
    summary="Delete silence",
    operation_id="delete_alertmanager_silence",
)
async def delete_silence(request: Request, silence_id: str = Path(..., description="Silence id.")) -> MessageResponse:
    """Expire a silence."""
    await alertmanager_service.delete_silence(request, silence_id)
    return MessageResponse(message="Silence deleted successfully")


@router.get("/receivers", response_model=DataResponse, responses=_ERRORS, operation_id="list_alertmanager_receivers")
async def list_receivers(request: Request) -> DataResponse:
    return DataResponse(data=await alertmanager_service.get_receivers(request))


@router.get("/status", response_model=DataResponse, responses=_ERRORS, operation_id="get_alertmanager_status")
async def get_status(request: Request) -> DataResponse:
    return DataResponse(data=await alertmanager_service.get_status(request))


@router.get("/health", response_model=DataResponse, responses=_ERRORS, operation_id="alertmanager_health")
async def alertmanager_health(request: Request) -> DataResponse:
    """Probe Alertmanager liveness."""
    return DataResponse(data=await alertmanager_service.check_health(request))
