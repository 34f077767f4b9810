"""SQLModel entities for the compliance event pipeline."""

from app.models.activity_feed import ActivityFeedEntry
from app.models.assignment import Assignment, AssignmentStatus, StaffMember
from app.models.automation import Automation, AutomationRun, RunStatus
from app.models.notification import (
    Notification,
    NotificationSeverity,
    NotificationSource,
)
from app.models.org_event import EventResponse, OrgEvent

__all__ = [
    "OrgEvent",
    "EventResponse",
    "ActivityFeedEntry",
    "Notification",
    "NotificationSeverity",
    "NotificationSource",
    "Automation",
    "AutomationRun",
    "RunStatus",
    "Assignment",
    "AssignmentStatus",
    "StaffMember",
]
