from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for health endpoints."""

    status: str = Field(..., description="High-level health status string (e.g., 'ok').")
    message: str = Field(..., description="Human-readable status message.")
    timestamp: datetime = Field(..., description="UTC timestamp at time of response.")


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    success: bool = Field(False, description="Always false for errors.")
    error: str = Field(..., description="Human-readable error details.")


class PageMetadata(BaseModel):
    """Pagination metadata computed against the filtered (pre-slice) record count."""

    page: int = Field(..., ge=1, description="Current page number (1-based).")
    limit: int = Field(..., ge=1, description="Page size.")
    total: int = Field(..., ge=0, description="Number of records after filtering, before pagination.")
    total_pages: int = Field(..., ge=0, description="ceil(total / limit).", alias="totalPages")
    has_next_page: bool = Field(..., description="Whether a later page exists.", alias="hasNextPage")
    has_prev_page: bool = Field(..., description="Whether an earlier page exists.", alias="hasPrevPage")


class DataResponse(BaseModel):
    """Success envelope wrapping an arbitrary payload."""

    success: bool = Field(True, description="Always true on success.")
    data: Any = Field(default=None, description="Response payload.")


class PaginatedResponse(BaseModel):
    """Success envelope for record lists processed by the query pipeline."""

    success: bool = Field(True, description="Always true on success.")
    data: List[Dict[str, Any]] = Field(..., description="Records of the requested page.")
    pagination: PageMetadata = Field(..., description="Pagination metadata.")


class MessageResponse(BaseModel):
    """Success envelope carrying only a message."""

    success: bool = Field(True, description="Always true on success.")
    message: str = Field(..., description="Human-readable outcome.")


# PUBLIC_INTERFACE
def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
