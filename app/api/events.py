"""Event pipeline endpoints.

Backend-to-backend surface called by application code and the scheduler:
emit (record + process), process (by event id) and scan-overdue.
"""

from typing import Any

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.deps import DBSession, EdgeSecret
from app.errors import ValidationError
from app.events.emitter import get_event_emitter
from app.events.processor import EventProcessor
from app.workers.overdue_scanner import OverdueScanner

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "content-type, x-edge-secret, authorization",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

router = APIRouter(prefix="/api/events", tags=["Events"])


class EmitEventRequest(BaseModel):
    """Body of POST /api/events/emit."""

    org_id: str | None = None
    actor_user_id: str | None = None
    event_type: str | None = None
    entity_type: str | None = None
    entity_id: str | int | None = None
    payload: dict[str, Any] | None = None
    # null means the default (process)
    process_now: bool | None = None


class ProcessEventRequest(BaseModel):
    """Body of POST /api/events/process."""

    event_id: str | None = None


def _json(body: dict[str, Any], status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(content=body, status_code=status_code, headers=CORS_HEADERS)


def _preflight() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)


@router.post("/emit", dependencies=[EdgeSecret])
def emit_event_endpoint(session: DBSession, body: EmitEventRequest) -> JSONResponse:
    """Record an event and, unless process_now is false, process it."""
    result = get_event_emitter().emit(
        session,
        org_id=body.org_id,
        event_type=body.event_type,
        actor_user_id=body.actor_user_id,
        entity_type=body.entity_type,
        entity_id=body.entity_id,
        payload=body.payload,
        process_now=body.process_now is not False,
    )
    return _json(result.to_dict(), status_code=result.status_code)


@router.post("/process", dependencies=[EdgeSecret])
def process_event_endpoint(session: DBSession, body: ProcessEventRequest) -> JSONResponse:
    """Apply feed, baseline notification and automation side effects."""
    event_id = (body.event_id or "").strip()
    if not event_id:
        raise ValidationError("event_id is required")

    result = EventProcessor().process(session, event_id)
    return _json(result.to_dict())


@router.post("/scan-overdue", dependencies=[EdgeSecret])
def scan_overdue_endpoint(session: DBSession) -> JSONResponse:
    """Emit assignment_overdue events for every overdue assignment."""
    result = OverdueScanner().scan(session)
    return _json(result.to_dict())


@router.options("/emit", include_in_schema=False)
def emit_event_preflight() -> Response:
    return _preflight()


@router.options("/process", include_in_schema=False)
def process_event_preflight() -> Response:
    return _preflight()


@router.options("/scan-overdue", include_in_schema=False)
def scan_overdue_preflight() -> Response:
    return _preflight()
