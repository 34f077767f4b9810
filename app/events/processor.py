"""Event processor.

Processes one stored event in a fixed order:

    A. activity feed entry
    B. baseline notifications
    C. tenant automations

Each step's writes are committed before the next step starts. The steps are
independent writes: a crash mid-way can leave a feed row without its
notifications, and reprocessing fills in whatever is missing without
duplicating what is already there.
"""

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.errors import NotFoundError, StorageError
from app.events.automations import AutomationEngine, AutomationOutcome
from app.events.feed import (
    build_baseline_notifications,
    build_feed_entry,
    event_needs_managers,
)
from app.events.recipients import get_manager_user_ids
from app.models.activity_feed import ActivityFeedEntry
from app.models.notification import Notification, NotificationSource
from app.models.org_event import OrgEvent

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Aggregate report for one processed event."""

    event_id: UUID
    feed_created: bool = False
    notifications_created: int = 0
    automations: list[AutomationOutcome] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "event_id": str(self.event_id),
            "feed_created": self.feed_created,
            "notifications_created": self.notifications_created,
            "automations": [o.to_dict() for o in self.automations],
        }


def _parse_event_id(event_id: UUID | str) -> UUID:
    if isinstance(event_id, UUID):
        return event_id
    try:
        return UUID(str(event_id))
    except ValueError as e:
        raise NotFoundError("Event not found", detail={"event_id": str(event_id)}) from e


class EventProcessor:
    """Builds feed entries and notifications and runs automations for an event."""

    def __init__(self, engine: AutomationEngine | None = None) -> None:
        self.engine = engine or AutomationEngine()

    def load_event(self, session: Session, event_id: UUID | str) -> OrgEvent:
        """Fetch an event by id.

        Raises:
            NotFoundError: If no such event exists
            StorageError: If the lookup fails
        """
        parsed_id = _parse_event_id(event_id)
        try:
            event = session.get(OrgEvent, parsed_id)
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError("Failed to load event", detail=str(e)) from e
        if event is None:
            raise NotFoundError("Event not found", detail={"event_id": str(parsed_id)})
        return event

    def process(self, session: Session, event_id: UUID | str) -> ProcessResult:
        """Process a stored event.

        Args:
            session: Database session
            event_id: Id of the event to process

        Returns:
            ProcessResult with feed, notification and automation outcomes

        Raises:
            NotFoundError: If the event does not exist
            StorageError: If feed/notification writes or the automation
                lookup fail (automation failures themselves are reported
                per automation, never raised)
        """
        event = self.load_event(session, event_id)
        result = ProcessResult(event_id=event.id)

        logger.info(
            "Processing event",
            extra={
                "event_id": str(event.id),
                "event_type": event.event_type,
                "org_id": event.org_id,
            },
        )

        result.feed_created = self._write_feed(session, event)
        result.notifications_created = self._write_baseline_notifications(session, event)
        result.automations = self.engine.run(session, event)

        logger.info(
            "Event processed",
            extra={
                "event_id": str(result.event_id),
                "feed_created": result.feed_created,
                "notifications_created": result.notifications_created,
                "automations": len(result.automations),
            },
        )
        return result

    def _write_feed(self, session: Session, event: OrgEvent) -> bool:
        """Insert the feed entry unless the event has no rendering or already has one."""
        draft = build_feed_entry(event)
        if draft is None:
            return False

        try:
            existing = session.exec(
                select(ActivityFeedEntry.id).where(ActivityFeedEntry.event_id == event.id)
            ).first()
            if existing is not None:
                logger.debug(
                    "Feed entry already exists, skipping",
                    extra={"event_id": str(event.id)},
                )
                return True

            session.add(
                ActivityFeedEntry(
                    org_id=event.org_id,
                    actor_user_id=event.actor_user_id,
                    event_id=event.id,
                    feed_type=draft.feed_type,
                    message=draft.message,
                    href=draft.href,
                    meta=draft.meta,
                )
            )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError("Failed to insert feed entry", detail=str(e)) from e
        return True

    def _write_baseline_notifications(self, session: Session, event: OrgEvent) -> int:
        """Insert baseline notifications once per event."""
        managers = (
            get_manager_user_ids(session, event.org_id)
            if event_needs_managers(event)
            else []
        )
        drafts = build_baseline_notifications(event, managers)
        if not drafts:
            return 0

        try:
            existing = session.exec(
                select(Notification.id)
                .where(Notification.event_id == event.id)
                .where(Notification.source == NotificationSource.BASELINE.value)
            ).first()
            if existing is not None:
                logger.debug(
                    "Baseline notifications already exist, skipping",
                    extra={"event_id": str(event.id)},
                )
                return 0

            for draft in drafts:
                session.add(
                    Notification(
                        org_id=event.org_id,
                        user_id=draft.user_id,
                        title=draft.title,
                        body=draft.body,
                        severity=draft.severity,
                        href=draft.href,
                        meta=draft.meta,
                        source=NotificationSource.BASELINE.value,
                        event_id=event.id,
                    )
                )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError("Failed to insert notifications", detail=str(e)) from e

        return len(drafts)
