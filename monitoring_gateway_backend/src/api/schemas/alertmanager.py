from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

SILENCE_REQUIRED_FIELDS = ("matchers", "startsAt", "endsAt", "createdBy", "comment")


class Matcher(BaseModel):
    """Label matcher of a silence."""

    name: str = Field(..., min_length=1, description="Label name.")
    value: str = Field(..., description="Label value (or regex when isRegex).")
    is_regex: bool = Field(False, description="Treat value as a regular expression.", alias="isRegex")
    is_equal: bool = Field(True, description="False negates the matcher.", alias="isEqual")


class SilenceCreate(BaseModel):
    """Request model for creating (or updating, with id) a silence."""

    id: Optional[str] = Field(default=None, description="Existing silence id to update.")
    matchers: List[Matcher] = Field(..., min_length=1, description="Label matchers.")
    starts_at: datetime = Field(..., description="Silence start (ISO).", alias="startsAt")
    ends_at: datetime = Field(..., description="Silence end (ISO).", alias="endsAt")
    created_by: str = Field(..., min_length=1, description="Author.", alias="createdBy")
    comment: str = Field(..., min_length=1, description="Why the silence exists.")


class AlertIn(BaseModel):
    """Alert posted to Alertmanager."""

    labels: Dict[str, str] = Field(..., description="Identifying labels (alertname, severity, ...).")
    annotations: Dict[str, str] = Field(default_factory=dict, description="Informational annotations.")
    starts_at: Optional[datetime] = Field(default=None, description="Start time.", alias="startsAt")
    ends_at: Optional[datetime] = Field(default=None, description="End time.", alias="endsAt")
    generator_url: Optional[str] = Field(default=None, description="Link back to the source.", alias="generatorURL")


class SilenceCreated(BaseModel):
    """Alertmanager's answer to a silence creation."""

    silence_id: str = Field(..., description="Id of the created/updated silence.", alias="silenceID")


class SilenceCreatedResponse(BaseModel):
    """Envelope for a created silence."""

    success: bool = Field(True, description="Always true on success.")
    data: SilenceCreated = Field(..., description="Created silence id.")
