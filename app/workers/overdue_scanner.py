"""Overdue assignment scanner.

Periodic sweep, triggered by an external scheduler:
1. Finds assignments due before today (UTC date) that are not completed
2. Resolves each assignee's name and login id (missing staff -> nulls)
3. Emits one ``assignment_overdue`` event per assignment, processed
   immediately, so feed entries and notifications follow

Without a dedup window every scan emits again for every assignment that is
still overdue (a daily reminder when scheduled daily). With
OVERDUE_DEDUP_WINDOW_HOURS > 0, assignments that already got an overdue
event inside the window are skipped.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from app.config import get_settings
from app.errors import StorageError
from app.events.emitter import EventEmitter, get_event_emitter
from app.events.feed import assignment_link
from app.events.types import EntityType, EventType
from app.models.assignment import Assignment, AssignmentStatus, StaffMember
from app.models.org_event import OrgEvent
from app.workers.base import WorkerBase, WorkerResult

logger = logging.getLogger(__name__)


@dataclass
class OverdueItem:
    """Snapshot of one overdue assignment and its assignee."""

    assignment_id: str
    org_id: str
    staff_id: str | None
    facility_id: str | None
    due_date: date | None
    staff_name: str | None = None
    staff_user_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = {
            "assignment_id": self.assignment_id,
            "staff_id": self.staff_id,
            "staff_user_id": self.staff_user_id,
            "staff_name": self.staff_name,
            "facility_id": self.facility_id,
            "due_date": self.due_date.isoformat() if self.due_date else None,
        }
        payload["href"] = assignment_link(payload)
        return payload


@dataclass
class ScanResult:
    """Counts reported by one scan."""

    overdue_found: int = 0
    emitted: int = 0
    processed: int = 0
    deduplicated: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "overdue_found": self.overdue_found,
            "emitted": self.emitted,
            "processed": self.processed,
            "deduplicated": self.deduplicated,
        }


class OverdueScanner(WorkerBase[OverdueItem]):
    """Emits ``assignment_overdue`` events for overdue assignments."""

    def __init__(
        self,
        emitter: EventEmitter | None = None,
        dedup_window_hours: int | None = None,
    ) -> None:
        """Initialize the scanner.

        Args:
            emitter: Event emitter (default: shared instance)
            dedup_window_hours: Override OVERDUE_DEDUP_WINDOW_HOURS (0 disables)
        """
        super().__init__()
        self.emitter = emitter or get_event_emitter()
        if dedup_window_hours is None:
            dedup_window_hours = get_settings().OVERDUE_DEDUP_WINDOW_HOURS
        self.dedup_window_hours = dedup_window_hours
        self._today: date | None = None

    @property
    def worker_name(self) -> str:
        return "OverdueScanner"

    def scan(self, session: Session, today: date | None = None) -> ScanResult:
        """Run one scan.

        Args:
            session: Database session
            today: Reference date (default: current UTC date)

        Returns:
            ScanResult with overdue_found / emitted / processed counts

        Raises:
            StorageError: If overdue assignments or staff cannot be loaded
        """
        self._today = today or datetime.utcnow().date()
        result = self.run(session)
        return ScanResult(
            overdue_found=result.items_found,
            emitted=result.processed_count,
            processed=result.metadata.get("processed", 0),
            deduplicated=result.skipped_count,
            errors=result.errors,
        )

    def fetch_pending(self, session: Session) -> list[OverdueItem]:
        """Load overdue assignments together with their assignees."""
        today = self._today or datetime.utcnow().date()

        try:
            assignments = session.exec(
                select(Assignment)
                .where(col(Assignment.due_date).is_not(None))
                .where(Assignment.due_date < today)
                .where(Assignment.status != AssignmentStatus.COMPLETED.value)
                .order_by(Assignment.due_date)
            ).all()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError("Failed to load overdue assignments", detail=str(e)) from e

        if not assignments:
            return []

        staff_ids = sorted({a.staff_id for a in assignments if a.staff_id})
        try:
            staff_rows = session.exec(
                select(StaffMember).where(col(StaffMember.id).in_(staff_ids))
            ).all() if staff_ids else []
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError("Failed to load staff members", detail=str(e)) from e

        staff_map = {s.id: s for s in staff_rows}

        items: list[OverdueItem] = []
        for assignment in assignments:
            staff = staff_map.get(assignment.staff_id)
            items.append(
                OverdueItem(
                    assignment_id=str(assignment.id),
                    org_id=assignment.org_id,
                    staff_id=assignment.staff_id,
                    facility_id=assignment.facility_id,
                    due_date=assignment.due_date,
                    staff_name=staff.full_name if staff else None,
                    staff_user_id=staff.auth_user_id if staff else None,
                )
            )
        return items

    def should_process(self, session: Session, item: OverdueItem) -> bool:
        """Skip assignments already reported inside the dedup window."""
        if self.dedup_window_hours <= 0:
            return True

        cutoff = datetime.utcnow() - timedelta(hours=self.dedup_window_hours)
        recent = session.exec(
            select(OrgEvent.id)
            .where(OrgEvent.event_type == EventType.ASSIGNMENT_OVERDUE.value)
            .where(OrgEvent.entity_type == EntityType.ASSIGNMENT.value)
            .where(OrgEvent.entity_id == item.assignment_id)
            .where(OrgEvent.created_at >= cutoff)
        ).first()
        return recent is None

    def process_item(self, session: Session, item: OverdueItem, result: WorkerResult) -> None:
        """Emit and process the overdue event for one assignment."""
        emitted = self.emitter.emit(
            session,
            org_id=item.org_id,
            event_type=EventType.ASSIGNMENT_OVERDUE.value,
            actor_user_id=None,
            entity_type=EntityType.ASSIGNMENT.value,
            entity_id=item.assignment_id,
            payload=item.to_payload(),
            process_now=True,
        )
        if emitted.processed:
            result.metadata["processed"] = result.metadata.get("processed", 0) + 1

    def get_item_id(self, item: OverdueItem) -> str:
        return item.assignment_id
