"""ActivityFeedEntry entity model."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlmodel import Column, Field, SQLModel

from app.models.org_event import JSONType


class ActivityFeedEntry(SQLModel, table=True):
    """Human-readable, tenant-visible projection of one event.

    At most one row exists per event (unique ``event_id``).
    """

    __tablename__ = "activity_feed"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    org_id: str = Field(max_length=64, index=True)
    actor_user_id: str | None = Field(default=None, max_length=64)
    event_id: UUID = Field(foreign_key="org_events.id", unique=True)
    feed_type: str = Field(max_length=100)
    message: str = Field(max_length=1000)
    href: str | None = Field(default=None, max_length=500)
    meta: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSONType, nullable=False)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
