from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Request
from pydantic import ValidationError

from src.api.clients.alertmanager import AlertmanagerClient
from src.api.clients.base import UpstreamError
from src.api.schemas.alertmanager import AlertIn, SilenceCreate, SilenceCreated
from src.api.state import get_state

logger = logging.getLogger(__name__)


def _client(request: Request) -> AlertmanagerClient:
    return get_state(request.app).alertmanager


def alert_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map one Alertmanager v2 alert to the flat record exposed by the gateway."""
    labels = raw.get("labels") or {}
    annotations = raw.get("annotations") or {}
    status = raw.get("status")
    if isinstance(status, dict):
        status = status.get("state")
    return {
        "id": raw.get("fingerprint"),
        "name": labels.get("alertname"),
        "severity": labels.get("severity"),
        "status": status,
        "description": annotations.get("description"),
        "labels": {
            "cluster": labels.get("cluster"),
            "alertname": labels.get("alertname"),
            "instance": labels.get("instance"),
        },
        "startsAt": raw.get("startsAt"),
    }


def silence_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Expose silence state as a top-level field so it can be filtered on."""
    record = dict(raw)
    record["state"] = (raw.get("status") or {}).get("state")
    return record


# PUBLIC_INTERFACE
async def list_alerts(request: Request, filter: Optional[str] = None) -> List[Dict[str, Any]]:
    """Active alerts as flat records (Alertmanager-side `filter` matchers applied upstream)."""
    raw = await _client(request).alerts(filter)
    return [alert_record(a) for a in raw or []]


# PUBLIC_INTERFACE
async def list_alert_groups(request: Request, filter: Optional[str] = None) -> List[Dict[str, Any]]:
    """Alert groups, passed through unchanged."""
    return await _client(request).alert_groups(filter)


# PUBLIC_INTERFACE
async def post_alerts(request: Request, alerts: List[AlertIn]) -> None:
    """Push alerts to Alertmanager."""
    payload = [a.model_dump(mode="json", by_alias=True, exclude_none=True) for a in alerts]
    await _client(request).post_alerts(payload)
    logger.info("Posted %d alert(s) to alertmanager", len(payload))


# PUBLIC_INTERFACE
async def list_silences(request: Request, filter: Optional[str] = None) -> List[Dict[str, Any]]:
    """Silences as records with a top-level `state`."""
    raw = await _client(request).silences(filter)
    return [silence_record(s) for s in raw or []]


# PUBLIC_INTERFACE
async def get_silence(request: Request, silence_id: str) -> Dict[str, Any]:
    """Fetch one silence by id."""
    return await _client(request).silence(silence_id)


# PUBLIC_INTERFACE
async def create_silence(request: Request, silence: SilenceCreate) -> SilenceCreated:
    """Create a silence and return its id."""
    payload = silence.model_dump(mode="json", by_alias=True, exclude_none=True)
    result = await _client(request).create_silence(payload)
    try:
        created = SilenceCreated.model_validate(result or {})
    except ValidationError as exc:
        raise UpstreamError("Failed to create silence: unexpected response shape") from exc
    logger.info("Created silence id=%s by=%s", created.silence_id, silence.created_by)
    return created


# PUBLIC_INTERFACE
async def delete_silence(request: Request, silence_id: str) -> None:
    """Expire a silence."""
    await _client(request).delete_silence(silence_id)
    logger.info("Deleted silence id=%s", silence_id)


async def get_receivers(request: Request) -> List[Dict[str, Any]]:
    return await _client(request).receivers()


async def get_status(request: Request) -> Dict[str, Any]:
    return await _client(request).status()


async def check_health(request: Request) -> Dict[str, str]:
    return await _client(request).healthy()
