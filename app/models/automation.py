"""Automation and AutomationRun entity models."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Column, Field, SQLModel

from app.models.org_event import JSONType


class Automation(SQLModel, table=True):
    """Tenant-defined if-this-then-that rule bound to one event type.

    ``conditions`` and ``actions`` hold the raw JSON as edited by tenant
    admins; they are validated when an event is processed.
    """

    __tablename__ = "automations"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    org_id: str = Field(max_length=64, index=True)
    name: str = Field(default="", max_length=200)
    enabled: bool = Field(default=True, index=True)
    trigger_event: str = Field(max_length=100, index=True)
    conditions: list[Any] = Field(
        default_factory=list, sa_column=Column(JSONType, nullable=False)
    )
    actions: list[Any] = Field(
        default_factory=list, sa_column=Column(JSONType, nullable=False)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class RunStatus(str, Enum):
    """Outcome stored on an automation run."""

    SUCCESS = "success"
    FAILED = "failed"


class AutomationRun(SQLModel, table=True):
    """Idempotency record for one (automation, event) pair.

    The unique constraint is the gate: a second insert for the same pair
    fails, so the automation is never executed twice for one event.
    """

    __tablename__ = "automation_runs"
    __table_args__ = (
        UniqueConstraint("automation_id", "event_id", name="uq_automation_runs_automation_event"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    org_id: str = Field(max_length=64, index=True)
    automation_id: UUID = Field(foreign_key="automations.id", index=True)
    event_id: UUID = Field(foreign_key="org_events.id", index=True)
    status: str = Field(default=RunStatus.SUCCESS.value, max_length=20)
    error: str | None = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
