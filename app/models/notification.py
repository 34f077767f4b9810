"""Notification entity model for per-user in-app notifications."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlmodel import Column, Field, SQLModel

from app.models.org_event import JSONType


class NotificationSeverity(str, Enum):
    """Notification severity levels."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class NotificationSource(str, Enum):
    """What produced a notification."""

    BASELINE = "baseline"  # Hard-coded per event type
    AUTOMATION = "automation"  # Tenant-defined automation action


class Notification(SQLModel, table=True):
    """Notification database model.

    Created by event processing; marked read by the dashboard, which is
    outside this service.
    """

    __tablename__ = "notifications"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    org_id: str = Field(max_length=64, index=True)
    user_id: str = Field(max_length=64, index=True)
    title: str = Field(max_length=200)
    body: str = Field(default="", max_length=2000)
    severity: str = Field(default=NotificationSeverity.INFO.value, max_length=20)
    href: str | None = Field(default=None, max_length=500)
    meta: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSONType, nullable=False)
    )
    source: str = Field(default=NotificationSource.BASELINE.value, max_length=20)
    event_id: UUID | None = Field(default=None, foreign_key="org_events.id", index=True)
    automation_id: UUID | None = Field(default=None, foreign_key="automations.id")
    read_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)

