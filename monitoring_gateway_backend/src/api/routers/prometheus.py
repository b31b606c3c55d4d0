from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request

from src.api.routers.deps import get_query_spec
from src.api.schemas.common import DataResponse, ErrorResponse, PaginatedResponse
from src.api.schemas.prometheus import ClusterMetricsResponse, CPUMetricsResponse, JVMMetricsResponse
from src.api.services import prometheus_service
from src.api.services.query_pipeline import QuerySpec, run_pipeline
from src.api.state import get_state

router = APIRouter(prefix="/api/prometheus", tags=["Prometheus"])
raw_router = APIRouter(prefix="/api/prometheus/raw", tags=["Prometheus (raw)"])

_ERRORS = {400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}}


def _require(**params: Optional[str]) -> None:
    missing = [name for name, value in params.items() if not value]
    if missing:
        raise HTTPException(status_code=400, detail=f"{', '.join(params)} parameters are required")


@router.get(
    "/cluster-metrics",
    response_model=ClusterMetricsResponse,
    responses=_ERRORS,
    summary="Cluster metrics",
    description="Elasticsearch cluster snapshot (health color, nodes, shards, documents) read from exporter gauges.",
    operation_id="get_cluster_metrics",
)
async def get_cluster_metrics(request: Request) -> ClusterMetricsResponse:
    """Return the cluster snapshot."""
    return ClusterMetricsResponse(data=await prometheus_service.get_cluster_metrics(request))


@router.get(
    "/cpu-metrics",
    response_model=CPUMetricsResponse,
    responses=_ERRORS,
    summary="CPU metrics",
    description="CPU usage per node over [start, end] with the given step.",
    operation_id="get_cpu_metrics",
)
async def get_cpu_metrics(
    request: Request,
    start: Optional[str] = Query(default=None, description="Range start (RFC3339 or unix seconds)."),
    end: Optional[str] = Query(default=None, description="Range end (RFC3339 or unix seconds)."),
    step: Optional[str] = Query(default=None, description="Resolution step (e.g. 30s)."),
) -> CPUMetricsResponse:
    """Return CPU usage points."""
    _require(start=start, end=end, step=step)
    return CPUMetricsResponse(data=await prometheus_service.get_cpu_metrics(request, start, end, step))


@router.get(
    "/jvm-metrics",
    response_model=JVMMetricsResponse,
    responses=_ERRORS,
    summary="JVM metrics",
    description="JVM heap used/max (KiB) and percent per node over [start, end] with the given step.",
    operation_id="get_jvm_metrics",
)
async def get_jvm_metrics(
    request: Request,
    start: Optional[str] = Query(default=None, description="Range start (RFC3339 or unix seconds)."),
    end: Optional[str] = Query(default=None, description="Range end (RFC3339 or unix seconds)."),
    step: Optional[str] = Query(default=None, description="Resolution step (e.g. 30s)."),
) -> JVMMetricsResponse:
    """Return JVM heap points."""
    _require(start=start, end=end, step=step)
    return JVMMetricsResponse(data=await prometheus_service.get_jvm_metrics(request, start, end, step))


@router.get(
    "/rules",
    response_model=PaginatedResponse,
    responses=_ERRORS,
    summary="List rules",
    description=(
        "Flattened alerting/recording rules with ad-hoc filtering (field=value, OR-lists 'a,b', "
        "ranges gte:/gt:/lte:/lt:), sort (comma list, '-' for desc), fields projection and page/limit pagination."
    ),
    operation_id="list_prometheus_rules",
)
async def list_rules(request: Request, query: QuerySpec = Depends(get_query_spec)) -> PaginatedResponse:
    """List rules through the query pipeline."""
    records = await prometheus_service.get_rules_processed(request)
    page, meta = run_pipeline(records, query)
    return PaginatedResponse(data=page, pagination=meta)


@router.get(
    "/rule-groups",
    response_model=DataResponse,
    responses=_ERRORS,
    summary="List rule group names",
    operation_id="list_prometheus_rule_groups",
)
async def list_rule_groups(request: Request) -> DataResponse:
    """Return distinct rule group names."""
    return DataResponse(data=await prometheus_service.get_rule_groups(request))


@raw_router.get("/query", response_model=DataResponse, responses=_ERRORS, operation_id="raw_query")
async def raw_query(
    request: Request,
    query: Optional[str] = Query(default=None, description="PromQL expression."),
    time: Optional[str] = Query(default=None, description="Evaluation time."),
) -> DataResponse:
    """Execute an instant query."""
    if not query:
        raise HTTPException(status_code=400, detail="Query parameter is required")
    return DataResponse(data=await get_state(request.app).prometheus.query(query, time))


@raw_router.get("/query_range", response_model=DataResponse, responses=_ERRORS, operation_id="raw_query_range")
async def raw_query_range(
    request: Request,
    query: Optional[str] = Query(default=None),
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    step: Optional[str] = Query(default=None),
) -> DataResponse:
    """Execute a range query."""
    _require(query=query, start=start, end=end, step=step)
    return DataResponse(data=await get_state(request.app).prometheus.query_range(query, start, end, step))


@raw_router.get("/labels", response_model=DataResponse, responses=_ERRORS, operation_id="raw_labels")
async def raw_labels(request: Request) -> DataResponse:
    """List label names."""
    return DataResponse(data=await get_state(request.app).prometheus.labels())


@raw_router.get("/label/{label}/values", response_model=DataResponse, responses=_ERRORS, operation_id="raw_label_values")
async def raw_label_values(request: Request, label: str = Path(..., description="Label name.")) -> DataResponse:
    """List values of one label."""
    return DataResponse(data=await get_state(request.app).prometheus.label_values(label))


@raw_router.get("/metrics", response_model=DataResponse, responses=_ERRORS, operation_id="raw_metric_names")
async def raw_metric_names(request: Request) -> DataResponse:
    """List metric names."""
    return DataResponse(data=await get_state(request.app).prometheus.label_values("__name__"))


@raw_router.get("/series", response_model=DataResponse, responses=_ERRORS, operation_id="raw_series")
async def raw_series(
    request: Request,
    match: Optional[List[str]] = Query(default=None, description="Series selector; repeatable."),
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
) -> DataResponse:
    """Find series by selector."""
    if not match:
        raise HTTPException(status_code=400, detail="Match parameter is required")
    return DataResponse(data=await get_state(request.app).prometheus.series(match, start, end))


@raw_router.get("/targets", response_model=DataResponse, responses=_ERRORS, operation_id="raw_targets")
async def raw_targets(request: Request) -> DataResponse:
    return DataResponse(data=await get_state(request.app).prometheus.targets())


@raw_router.get("/rules", response_model=DataResponse, responses=_ERRORS, operation_id="raw_rules")
async def raw_rules(request: Request) -> DataResponse:
    return DataResponse(data=await get_state(request.app).prometheus.rules())


@raw_router.get("/alerts", response_model=DataResponse, responses=_ERRORS, operation_id="raw_alerts")
async def raw_alerts(request: Request) -> DataResponse:
    return DataResponse(data=await get_state(request.app).prometheus.alerts())


@raw_router.get("/health", response_model=DataResponse, responses=_ERRORS, operation_id="prometheus_health")
async def prometheus_health(request: Request) -> DataResponse:
    """Probe Prometheus liveness."""
    return DataResponse(data=await get_state(request.app).prometheus.healthy())
