from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Request

from src.api.clients.base import UpstreamError
from src.api.clients.prometheus import PrometheusClient
from src.api.schemas.common import utc_now
from src.api.schemas.prometheus import ClusterMetrics, CPUMetric, JVMMetric
from src.api.state import get_state

logger = logging.getLogger(__name__)

CLUSTER_HEALTH_QUERY = "elasticsearch_cluster_health_status"
NODE_COUNT_QUERY = "elasticsearch_cluster_health_number_of_nodes"
DATA_NODE_COUNT_QUERY = "elasticsearch_cluster_health_number_of_data_nodes"
PRIMARY_SHARDS_QUERY = "elasticsearch_cluster_health_active_primary_shards"
UNASSIGNED_SHARDS_QUERY = "elasticsearch_cluster_health_unassigned_shards"
DOCS_TOTAL_QUERY = "elasticsearch_indices_docs_total"
CPU_PERCENT_QUERY = "elasticsearch_process_cpu_percent"
HEAP_USED_QUERY = 'elasticsearch_jvm_memory_used_bytes{area="heap"}'
HEAP_MAX_QUERY = "elasticsearch_jvm_memory_max_bytes"


def _client(request: Request) -> PrometheusClient:
    return get_state(request.app).prometheus


def _result(body: Dict[str, Any]) -> List[Dict[str, Any]]:
    data = body.get("data") if isinstance(body, dict) else None
    return list((data or {}).get("result") or [])


def _safe_float(v: Any, default: float = 0.0) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def _iso_from_epoch(ts: Any) -> str:
    dt = datetime.fromtimestamp(_safe_float(ts), tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def _gauge(client: PrometheusClient, query: str) -> int:
    """Read the first sample of an instant gauge query as an int."""
    result = _result(await client.query(query))
    if not result:
        raise UpstreamError(f"Prometheus query failed: no samples for {query}")
    return int(_safe_float(result[0]["value"][1]))


def _range_points(body: Dict[str, Any]) -> List[Tuple[str, Optional[str], float]]:
    points: List[Tuple[str, Optional[str], float]] = []
    for series in _result(body):
        node = (series.get("metric") or {}).get("name")
        for ts, raw in series.get("values") or []:
            points.append((_iso_from_epoch(ts), node, _safe_float(raw)))
    return points


# PUBLIC_INTERFACE
async def get_cluster_metrics(request: Request) -> ClusterMetrics:
    """Assemble an Elasticsearch cluster snapshot from exporter gauges."""
    client = _client(request)

    health = ""
    for series in _result(await client.query(CLUSTER_HEALTH_QUERY)):
        value = series.get("value") or [None, None]
        if value[1] == "1":
            health = (series.get("metric") or {}).get("color", "")
            break

    docs = _result(await client.query(DOCS_TOTAL_QUERY))
    return ClusterMetrics(
        health=health,
        nodeCount=await _gauge(client, NODE_COUNT_QUERY),
        dataNodeCount=await _gauge(client, DATA_NODE_COUNT_QUERY),
        primaryShards=await _gauge(client, PRIMARY_SHARDS_QUERY),
        unassignedShards=await _gauge(client, UNASSIGNED_SHARDS_QUERY),
        documentCount=sum(int(_safe_float(s["value"][1])) for s in docs),
        timestamp=utc_now(),
    )


# PUBLIC_INTERFACE
async def get_cpu_metrics(request: Request, start: str, end: str, step: str) -> List[CPUMetric]:
    """CPU usage per node over a time range."""
    body = await _client(request).query_range(CPU_PERCENT_QUERY, start, end, step)
    return [CPUMetric(timestamp=ts, nodeName=node, usage=value) for ts, node, value in _range_points(body)]


# PUBLIC_INTERFACE
async def get_jvm_metrics(request: Request, start: str, end: str, step: str) -> List[JVMMetric]:
    """
    JVM heap usage per node over a time range.

    Heap-used and heap-max series are joined on (timestamp, nodeName); memory
    is reported in KiB. Points without a matching heap-max sample are skipped.
    """
    client = _client(request)
    used = _range_points(await client.query_range(HEAP_USED_QUERY, start, end, step))
    maxes = {(ts, node): value for ts, node, value in _range_points(await client.query_range(HEAP_MAX_QUERY, start, end, step))}

    out: List[JVMMetric] = []
    for ts, node, used_bytes in used:
        max_bytes = maxes.get((ts, node))
        if max_bytes is None:
            logger.debug("No heap max sample for node=%s ts=%s", node, ts)
            continue
        heap_used = round(used_bytes / 1024, 2)
        heap_max = round(max_bytes / 1024, 2)
        percent = round(heap_used / heap_max * 100, 2) if heap_max else 0.0
        out.append(JVMMetric(timestamp=ts, nodeName=node, heapUsed=heap_used, heapMax=heap_max, heapPercent=percent))
    return out


def _rule_record(group: Dict[str, Any], rule: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": rule.get("name"),
        "name": rule.get("name"),
        "groupName": group.get("name"),
        "state": rule.get("state"),
        "query": rule.get("query"),
        "duration": rule.get("duration"),
        "severity": (rule.get("labels") or {}).get("severity"),
        "annotations": rule.get("annotations") or {},
        "alerts": [{"id": str(uuid.uuid4()), **alert} for alert in rule.get("alerts") or []],
        "lastEvaluation": rule.get("lastEvaluation"),
    }


# PUBLIC_INTERFACE
def flatten_rule_groups(groups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten Prometheus rule groups into one record per rule."""
    return [_rule_record(g, r) for g in groups for r in g.get("rules") or []]


# PUBLIC_INTERFACE
async def get_rules_processed(request: Request) -> List[Dict[str, Any]]:
    """Fetch alerting/recording rules as flat records ready for the query pipeline."""
    data = await _client(request).rules()
    return flatten_rule_groups(list((data or {}).get("groups") or []))


# PUBLIC_INTERFACE
async def get_rule_groups(request: Request) -> List[str]:
    """Distinct rule group names in first-seen order."""
    data = await _client(request).rules()
    names: List[str] = []
    for g in (data or {}).get("groups") or []:
        name = g.get("name")
        if name not in names:
            names.append(name)
    return names
