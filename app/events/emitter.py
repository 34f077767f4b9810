"""Event emitter.

Records a new event and, by default, processes it right away:

1. Validate org_id / event_type
2. Persist the OrgEvent and commit (the event is durable from here on)
3. Chain processing, either by POSTing to PROCESS_EVENT_URL (httpx) or by
   calling the EventProcessor in-process when no URL is configured
4. Processing failures are reported (processed=False, HTTP 202) and never
   undo the stored event; it can be reprocessed later
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.config import get_settings
from app.errors import PipelineError, StorageError, ValidationError
from app.events.processor import EventProcessor
from app.models.org_event import EventResponse, OrgEvent

logger = logging.getLogger(__name__)


@dataclass
class EmitResult:
    """Outcome of an emit call."""

    event: dict[str, Any]
    process_requested: bool = True
    processed: bool = False
    process_response: Any = None
    process_error: dict[str, Any] | None = None

    @property
    def event_id(self) -> str:
        return self.event["id"]

    @property
    def status_code(self) -> int:
        """200 when processed (or not requested), 202 when processing failed."""
        if self.process_requested and not self.processed:
            return 202
        return 200

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "ok": True,
            "event": self.event,
            "processed": self.processed,
        }
        if not self.process_requested:
            data["skipped"] = "process_now=false"
        if self.process_response is not None:
            data["process_response"] = self.process_response
        if self.process_error is not None:
            data["process_error"] = self.process_error
        return data


def _clean(value: str | None) -> str:
    return (value or "").strip()


class EventEmitter:
    """Validates, stores and (optionally) processes events."""

    def __init__(
        self,
        processor: EventProcessor | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the emitter.

        Args:
            processor: In-process processor (default EventProcessor())
            client: HTTP client for remote chaining (created lazily)
        """
        self.processor = processor or EventProcessor()
        self._client = client

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=get_settings().PROCESS_TIMEOUT_SECONDS)
        return self._client

    def create_event(
        self,
        org_id: str | None,
        event_type: str | None,
        actor_user_id: str | None = None,
        entity_type: str | None = None,
        entity_id: str | int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> OrgEvent:
        """Build a validated, unsaved event.

        Raises:
            ValidationError: If org_id or event_type is missing or blank
        """
        org_id = _clean(org_id)
        event_type = _clean(event_type)
        if not org_id:
            raise ValidationError("org_id is required")
        if not event_type:
            raise ValidationError("event_type is required")

        return OrgEvent(
            org_id=org_id,
            actor_user_id=actor_user_id or None,
            event_type=event_type,
            entity_type=entity_type or None,
            entity_id=str(entity_id) if entity_id is not None else None,
            payload=dict(payload or {}),
        )

    def persist_event(self, session: Session, event: OrgEvent) -> OrgEvent:
        """Insert and commit the event.

        Raises:
            StorageError: If the insert fails (nothing is left behind)
        """
        try:
            session.add(event)
            session.commit()
            session.refresh(event)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(
                "Failed to insert event",
                extra={"org_id": event.org_id, "event_type": event.event_type, "error": str(e)},
            )
            raise StorageError("Failed to insert event", detail=str(e)) from e
        return event

    def emit(
        self,
        session: Session,
        org_id: str | None,
        event_type: str | None,
        *,
        actor_user_id: str | None = None,
        entity_type: str | None = None,
        entity_id: str | int | None = None,
        payload: dict[str, Any] | None = None,
        process_now: bool = True,
    ) -> EmitResult:
        """Record an event and optionally process it.

        This is the main entry point for producing events.

        Args:
            session: Database session
            org_id: Tenant id
            event_type: Event type tag
            actor_user_id: User who caused the event, if any
            entity_type: Type of the entity the event is about
            entity_id: Id of that entity
            payload: Free-form event data
            process_now: Chain processing immediately (default True)

        Returns:
            EmitResult with the stored event and processing outcome

        Raises:
            ValidationError: Missing org_id/event_type
            StorageError: The event could not be stored
        """
        event = self.create_event(
            org_id=org_id,
            event_type=event_type,
            actor_user_id=actor_user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            payload=payload,
        )
        event = self.persist_event(session, event)
        event_data = EventResponse.model_validate(event).model_dump(mode="json")

        logger.info(
            "Event emitted",
            extra={
                "event_id": event_data["id"],
                "event_type": event_data["event_type"],
                "org_id": event_data["org_id"],
                "process_now": process_now,
            },
        )

        result = EmitResult(event=event_data, process_requested=process_now)
        if not process_now:
            return result

        settings = get_settings()
        if settings.PROCESS_EVENT_URL:
            self._process_remote(event.id, result)
        else:
            self._process_local(session, event.id, result)
        return result

    def _process_local(self, session: Session, event_id: UUID, result: EmitResult) -> None:
        """Run the processor in-process; failures leave the event stored."""
        try:
            processed = self.processor.process(session, event_id)
        except PipelineError as e:
            session.rollback()
            result.process_error = {"status": e.status_code, **e.to_dict()}
            logger.warning(
                "Event processing failed, event kept for reprocessing",
                extra={"event_id": str(event_id), "error": e.message},
            )
            return
        except Exception as e:
            session.rollback()
            result.process_error = {"message": str(e) or e.__class__.__name__}
            logger.error(
                "Unexpected error processing event",
                extra={"event_id": str(event_id), "error": str(e)},
                exc_info=True,
            )
            return

        result.processed = True
        result.process_response = processed.to_dict()

    def _process_remote(self, event_id: UUID, result: EmitResult) -> None:
        """POST the event id to the process endpoint."""
        settings = get_settings()
        target = settings.PROCESS_EVENT_URL
        headers = {"Content-Type": "application/json"}
        if settings.EDGE_FUNCTION_SECRET:
            headers[settings.EDGE_SECRET_HEADER] = settings.EDGE_FUNCTION_SECRET

        try:
            response = self.client.post(
                target,
                json={"event_id": str(event_id)},
                headers=headers,
            )
        except httpx.HTTPError as e:
            result.process_error = {"message": str(e) or e.__class__.__name__}
            logger.warning(
                "Process call failed, event kept for reprocessing",
                extra={"event_id": str(event_id), "target": target, "error": str(e)},
            )
            return

        if not response.is_success:
            result.process_error = {"status": response.status_code, "body": response.text or None}
            logger.warning(
                "Process call returned an error status",
                extra={
                    "event_id": str(event_id),
                    "target": target,
                    "status_code": response.status_code,
                },
            )
            return

        result.processed = True
        try:
            result.process_response = response.json() if response.text else None
        except ValueError:
            result.process_response = response.text

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None


_emitter_instance: EventEmitter | None = None


def get_event_emitter() -> EventEmitter:
    """Get or create the event emitter singleton.

    Returns:
        EventEmitter: The emitter instance
    """
    global _emitter_instance
    if _emitter_instance is None:
        _emitter_instance = EventEmitter()
    return _emitter_instance
