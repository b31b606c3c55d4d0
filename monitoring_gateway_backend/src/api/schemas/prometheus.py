from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ClusterMetrics(BaseModel):
    """Elasticsearch cluster snapshot derived from exporter gauges."""

    health: str = Field(..., description="Cluster color (green|yellow|red) or empty when unknown.")
    node_count: int = Field(..., description="Number of nodes.", alias="nodeCount")
    data_node_count: int = Field(..., description="Number of data nodes.", alias="dataNodeCount")
    primary_shards: int = Field(..., description="Active primary shards.", alias="primaryShards")
    unassigned_shards: int = Field(..., description="Unassigned shards.", alias="unassignedShards")
    document_count: int = Field(..., description="Total documents across indices.", alias="documentCount")
    timestamp: datetime = Field(..., description="UTC timestamp when the snapshot was assembled.")


class CPUMetric(BaseModel):
    """One CPU usage point for a node."""

    timestamp: str = Field(..., description="Sample time (ISO, UTC).")
    node_name: Optional[str] = Field(default=None, description="Node name label.", alias="nodeName")
    usage: float = Field(..., description="CPU usage percent.")


class JVMMetric(BaseModel):
    """One JVM heap usage point for a node (KiB)."""

    timestamp: str = Field(..., description="Sample time (ISO, UTC).")
    node_name: Optional[str] = Field(default=None, description="Node name label.", alias="nodeName")
    heap_used: float = Field(..., description="Heap used (KiB).", alias="heapUsed")
    heap_max: float = Field(..., description="Heap max (KiB).", alias="heapMax")
    heap_percent: float = Field(..., description="heapUsed / heapMax * 100.", alias="heapPercent")


class ClusterMetricsResponse(BaseModel):
    """Envelope for the cluster snapshot."""

    success: bool = Field(True, description="Always true on success.")
    data: ClusterMetrics = Field(..., description="Cluster snapshot.")


class CPUMetricsResponse(BaseModel):
    """Envelope for CPU usage points."""

    success: bool = Field(True, description="Always true on success.")
    data: List[CPUMetric] = Field(..., description="CPU usage points, flattened across nodes.")


class JVMMetricsResponse(BaseModel):
    """Envelope for JVM heap points."""

    success: bool = Field(True, description="Always true on success.")
    data: List[JVMMetric] = Field(..., description="JVM heap points, flattened across nodes.")
