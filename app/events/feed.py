"""Feed and baseline notification rendering.

Pure functions mapping an event to its activity-feed entry and to the
hard-coded notifications every tenant gets, independent of automations.
"""

from dataclasses import dataclass, field
from typing import Any

from app.config import get_settings
from app.events.types import EventType
from app.models.notification import NotificationSeverity
from app.models.org_event import OrgEvent

STAFF_FALLBACK = "A staff member"
COMPETENCY_FALLBACK = "a competency"
POLICY_FALLBACK = "A policy"
DEFICIENCY_FALLBACK = "A deficiency"


@dataclass
class FeedDraft:
    """Activity feed entry ready to be persisted."""

    feed_type: str
    message: str
    href: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class NotificationDraft:
    """Notification ready to be persisted."""

    user_id: str
    title: str
    body: str
    severity: str = NotificationSeverity.INFO.value
    href: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)


def _text(payload: dict[str, Any], key: str, fallback: str) -> str:
    """Payload text, or the fallback when absent, null or empty."""
    value = payload.get(key)
    if value is None or value == "":
        return fallback
    return str(value)


def _link(payload: dict[str, Any], id_key: str, section: str) -> str | None:
    """Explicit ``href`` from the payload, else a deep link built from an id."""
    if payload.get("href"):
        return str(payload["href"])
    entity_id = payload.get(id_key)
    if not entity_id:
        return None
    base = get_settings().APP_LINK_BASE.rstrip("/")
    return f"{base}/{section}/{entity_id}"


def assignment_link(payload: dict[str, Any]) -> str | None:
    return _link(payload, "assignment_id", "assignments")


def _staff_meta(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "staff_id": payload.get("staff_id"),
        "facility_id": payload.get("facility_id"),
    }


# Assignment event types and their message templates
_ASSIGNMENT_TEMPLATES: dict[str, str] = {
    EventType.ASSIGNMENT_CREATED.value: "{staff} was assigned {competency}.",
    EventType.ASSIGNMENT_COMPLETED.value: "{staff} completed {competency}.",
    EventType.ASSIGNMENT_OVERDUE.value: "{staff} is overdue for {competency}.",
}


def build_feed_entry(event: OrgEvent) -> FeedDraft | None:
    """Render the activity feed entry for an event.

    Args:
        event: The stored event

    Returns:
        FeedDraft, or None for event types without a rendering
    """
    event_type = event.event_type
    payload = event.payload or {}

    template = _ASSIGNMENT_TEMPLATES.get(event_type)
    if template is not None:
        return FeedDraft(
            feed_type=event_type,
            message=template.format(
                staff=_text(payload, "staff_name", STAFF_FALLBACK),
                competency=_text(payload, "competency_title", COMPETENCY_FALLBACK),
            ),
            href=assignment_link(payload),
            meta=_staff_meta(payload),
        )

    if event_type == EventType.POLICY_PUBLISHED.value:
        return FeedDraft(
            feed_type=event_type,
            message=f"{_text(payload, 'policy_title', POLICY_FALLBACK)} was published.",
            href=_link(payload, "policy_id", "policies"),
            meta={"facility_id": payload.get("facility_id")},
        )

    if event_type == EventType.DEFICIENCY_CREATED.value:
        return FeedDraft(
            feed_type=event_type,
            message=f"{_text(payload, 'title', DEFICIENCY_FALLBACK)} was added.",
            href=_link(payload, "deficiency_id", "deficiencies"),
            meta={"facility_id": payload.get("facility_id")},
        )

    return None


def event_needs_managers(event: OrgEvent) -> bool:
    """Whether baseline notifications for this event fan out to managers."""
    payload = event.payload or {}
    return event.event_type == EventType.ASSIGNMENT_OVERDUE.value and bool(
        payload.get("staff_user_id")
    )


def build_baseline_notifications(
    event: OrgEvent,
    manager_user_ids: list[str] | None = None,
) -> list[NotificationDraft]:
    """Hard-coded notifications for an event type.

    - assignment_created: info to the assigned staff user
    - assignment_overdue: warning to the staff user and to every manager

    Both require ``payload.staff_user_id``; other event types produce none.

    Args:
        event: The stored event
        manager_user_ids: Tenant managers (only used for overdue events)

    Returns:
        List of NotificationDraft
    """
    payload = event.payload or {}
    staff_user_id = payload.get("staff_user_id")
    if not staff_user_id:
        return []

    href = assignment_link(payload)
    meta = _staff_meta(payload)
    competency = payload.get("competency_title")

    if event.event_type == EventType.ASSIGNMENT_CREATED.value:
        return [
            NotificationDraft(
                user_id=str(staff_user_id),
                title="New assignment",
                body=(
                    f"You were assigned: {competency}"
                    if competency
                    else "You received a new assignment."
                ),
                severity=NotificationSeverity.INFO.value,
                href=href,
                meta=meta,
            )
        ]

    if event.event_type == EventType.ASSIGNMENT_OVERDUE.value:
        drafts = [
            NotificationDraft(
                user_id=str(staff_user_id),
                title="Overdue assignment",
                body=(
                    f"Overdue: {competency}"
                    if competency
                    else "You have an overdue assignment."
                ),
                severity=NotificationSeverity.WARNING.value,
                href=href,
                meta=meta,
            )
        ]
        staff_name = payload.get("staff_name")
        manager_body = (
            f"{staff_name} is overdue for {competency}."
            if staff_name and competency
            else "A staff member has an overdue assignment."
        )
        for manager_id in manager_user_ids or []:
            drafts.append(
                NotificationDraft(
                    user_id=manager_id,
                    title="Staff overdue",
                    body=manager_body,
                    severity=NotificationSeverity.WARNING.value,
                    href=href,
                    meta=dict(meta),
                )
            )
        return drafts

    return []
