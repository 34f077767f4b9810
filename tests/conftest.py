"""Shared fixtures: in-memory SQLite database, API client and row factories."""

import os

# Configure before app modules build their engine and settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EDGE_FUNCTION_SECRET"] = ""
os.environ["PROCESS_EVENT_URL"] = ""
os.environ["OVERDUE_DEDUP_WINDOW_HOURS"] = "0"

from collections.abc import Generator
from datetime import date
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.api.deps import get_db_session
from app.main import app
from app.models import Assignment, Automation, OrgEvent, StaffMember


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """TestClient whose requests share the test's database session."""
    def override_get_db_session():
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db_session
    yield TestClient(app)
    app.dependency_overrides.clear()


# ============================================================================
# Factories
# ============================================================================

@pytest.fixture
def make_staff(db_session: Session):
    def _make(
        org_id: str = "t1",
        full_name: str | None = "Staff Member",
        auth_user_id: str | None = None,
        is_manager: bool = False,
        is_active: bool = True,
        **kwargs: Any,
    ) -> StaffMember:
        staff = StaffMember(
            org_id=org_id,
            full_name=full_name,
            auth_user_id=auth_user_id,
            is_manager=is_manager,
            is_active=is_active,
            **kwargs,
        )
        db_session.add(staff)
        db_session.commit()
        db_session.refresh(staff)
        return staff

    return _make


@pytest.fixture
def make_automation(db_session: Session):
    def _make(
        org_id: str = "t1",
        trigger_event: str = "assignment_overdue",
        conditions: Any = None,
        actions: Any = None,
        enabled: bool = True,
        name: str = "Test automation",
    ) -> Automation:
        automation = Automation(
            org_id=org_id,
            name=name,
            enabled=enabled,
            trigger_event=trigger_event,
            conditions=conditions if conditions is not None else [],
            actions=actions if actions is not None else [],
        )
        db_session.add(automation)
        db_session.commit()
        db_session.refresh(automation)
        return automation

    return _make


@pytest.fixture
def make_assignment(db_session: Session):
    def _make(
        org_id: str = "t1",
        staff_id: str = "staff-1",
        competency_id: str = "comp-1",
        due_date: date | None = None,
        status: str = "assigned",
        facility_id: str | None = "fac-1",
    ) -> Assignment:
        assignment = Assignment(
            org_id=org_id,
            staff_id=staff_id,
            competency_id=competency_id,
            due_date=due_date,
            status=status,
            facility_id=facility_id,
        )
        db_session.add(assignment)
        db_session.commit()
        db_session.refresh(assignment)
        return assignment

    return _make


@pytest.fixture
def make_event(db_session: Session):
    def _make(
        org_id: str = "t1",
        event_type: str = "assignment_overdue",
        payload: dict[str, Any] | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
    ) -> OrgEvent:
        event = OrgEvent(
            org_id=org_id,
            event_type=event_type,
            payload=payload or {},
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make
