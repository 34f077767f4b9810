"""OrgEvent entity model: the append-only tenant event log."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Column, Field, SQLModel

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class OrgEvent(SQLModel, table=True):
    """Immutable fact recorded for a tenant.

    Rows are inserted once by the emitter and never updated.
    """

    __tablename__ = "org_events"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    org_id: str = Field(max_length=64, index=True)
    actor_user_id: str | None = Field(default=None, max_length=64)
    event_type: str = Field(max_length=100, index=True)
    entity_type: str | None = Field(default=None, max_length=50)
    entity_id: str | None = Field(default=None, max_length=64, index=True)
    payload: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSONType, nullable=False)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    def to_context(self) -> dict[str, Any]:
        """Return the structure that dotted paths in automations resolve against."""
        return {
            "id": str(self.id),
            "org_id": self.org_id,
            "actor_user_id": self.actor_user_id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "payload": self.payload or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class EventResponse(SQLModel):
    """Schema for event response."""

    id: UUID
    org_id: str
    actor_user_id: str | None
    event_type: str
    entity_type: str | None
    entity_id: str | None
    payload: dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}
