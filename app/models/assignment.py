"""Assignment and StaffMember entity models.

Both tables are owned by the competency-tracking screens; the pipeline
reads them and the ``create_assignment`` action inserts assignments.
"""

from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class AssignmentStatus(str, Enum):
    """Assignment lifecycle states."""

    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Assignment(SQLModel, table=True):
    """A competency assigned to a staff member."""

    __tablename__ = "assignments"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    org_id: str = Field(max_length=64, index=True)
    staff_id: str = Field(max_length=64, index=True)
    facility_id: str | None = Field(default=None, max_length=64)
    competency_id: str = Field(max_length=64)
    status: str = Field(default=AssignmentStatus.ASSIGNED.value, max_length=20, index=True)
    due_date: date | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class StaffMember(SQLModel, table=True):
    """Staff member of a tenant, optionally linked to a login account."""

    __tablename__ = "staff_members"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=64)
    org_id: str = Field(max_length=64, index=True)
    full_name: str | None = Field(default=None, max_length=200)
    auth_user_id: str | None = Field(default=None, max_length=64)
    is_manager: bool = Field(default=False)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
