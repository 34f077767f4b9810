"""Automation action executors.

Each action type has one executor. An executor either performs its writes
(added to the session, committed by the rule engine), or reports the action
as skipped when a required field cannot be resolved. Anything it raises is
wrapped in ``ActionError`` by the registry.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from sqlmodel import Session

from app.errors import ActionError
from app.events.paths import get_by_path, is_present
from app.events.recipients import get_manager_user_ids
from app.events.rules import (
    CreateAssignmentAction,
    NotifyManagersAction,
    NotifyUserAction,
)
from app.models.assignment import Assignment, AssignmentStatus
from app.models.automation import Automation
from app.models.notification import Notification, NotificationSeverity, NotificationSource
from app.models.org_event import OrgEvent

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATION_TITLE = "Notification"


class ActionStatus:
    EXECUTED = "executed"
    SKIPPED = "skipped"


@dataclass
class ActionResult:
    """Result of executing one action."""

    action_type: str
    status: str = ActionStatus.EXECUTED
    reason: str | None = None
    records_created: int = 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.action_type,
            "status": self.status,
            "records_created": self.records_created,
        }
        if self.reason:
            data["reason"] = self.reason
        return data


# -----------------------------------------------------------------------------
# Executor Base Class
# -----------------------------------------------------------------------------


class ActionExecutor(ABC):
    """Abstract base class for action executors."""

    action_type: str

    def handles(self, action: Any) -> bool:
        """Check if this executor handles the given action."""
        return getattr(action, "type", None) == self.action_type

    @abstractmethod
    def execute(
        self,
        session: Session,
        event: OrgEvent,
        automation: Automation,
        action: Any,
    ) -> ActionResult:
        """Execute an action for an event.

        Args:
            session: Database session (caller commits)
            event: The event being processed
            automation: The automation owning the action
            action: Parsed action model

        Returns:
            ActionResult describing what was done
        """
        pass


def _notification_from_action(
    event: OrgEvent,
    automation: Automation,
    action: NotifyUserAction | NotifyManagersAction,
    user_id: str,
) -> Notification:
    return Notification(
        org_id=event.org_id,
        user_id=user_id,
        title=action.title or DEFAULT_NOTIFICATION_TITLE,
        body=action.body or "",
        severity=action.severity or NotificationSeverity.INFO.value,
        href=action.href or None,
        meta=dict(action.meta or {}),
        source=NotificationSource.AUTOMATION.value,
        event_id=event.id,
        automation_id=automation.id,
    )


# -----------------------------------------------------------------------------
# Executors
# -----------------------------------------------------------------------------


class NotifyUserExecutor(ActionExecutor):
    """Notify the user resolved from a dotted path into the event."""

    action_type = "notify_user"

    def execute(
        self,
        session: Session,
        event: OrgEvent,
        automation: Automation,
        action: NotifyUserAction,
    ) -> ActionResult:
        recipient = get_by_path(event.to_context(), action.to) if action.to else None
        if not is_present(recipient):
            return ActionResult(
                action_type=self.action_type,
                status=ActionStatus.SKIPPED,
                reason="recipient_unresolved",
            )

        session.add(_notification_from_action(event, automation, action, str(recipient)))
        return ActionResult(action_type=self.action_type, records_created=1)


class NotifyManagersExecutor(ActionExecutor):
    """Notify every active manager of the tenant."""

    action_type = "notify_managers"

    def execute(
        self,
        session: Session,
        event: OrgEvent,
        automation: Automation,
        action: NotifyManagersAction,
    ) -> ActionResult:
        managers = get_manager_user_ids(session, event.org_id)
        for user_id in managers:
            session.add(_notification_from_action(event, automation, action, user_id))
        return ActionResult(action_type=self.action_type, records_created=len(managers))


class CreateAssignmentExecutor(ActionExecutor):
    """Create an assignment for a staff member."""

    action_type = "create_assignment"

    @staticmethod
    def _resolve(context: dict[str, Any], literal: str | None, path: str | None) -> Any:
        if literal is not None:
            return literal
        if path:
            value = get_by_path(context, path)
            return value if is_present(value) else None
        return None

    def execute(
        self,
        session: Session,
        event: OrgEvent,
        automation: Automation,
        action: CreateAssignmentAction,
    ) -> ActionResult:
        context = event.to_context()
        staff_id = self._resolve(context, action.staff_id, action.staff_id_path)
        facility_id = self._resolve(context, action.facility_id, action.facility_id_path)

        if not staff_id or not action.competency_id:
            return ActionResult(
                action_type=self.action_type,
                status=ActionStatus.SKIPPED,
                reason="staff_or_competency_unresolved",
            )

        assignment = Assignment(
            org_id=event.org_id,
            staff_id=str(staff_id),
            facility_id=str(facility_id) if facility_id else None,
            competency_id=action.competency_id,
            status=AssignmentStatus.ASSIGNED.value,
            due_date=action.due_date,
        )
        session.add(assignment)

        logger.info(
            "Assignment created by automation",
            extra={
                "automation_id": str(automation.id),
                "event_id": str(event.id),
                "staff_id": str(staff_id),
                "competency_id": action.competency_id,
            },
        )
        return ActionResult(action_type=self.action_type, records_created=1)


# -----------------------------------------------------------------------------
# Registry - Routes actions to executors
# -----------------------------------------------------------------------------


class ActionRegistry:
    """Routes parsed actions to their executors."""

    def __init__(self) -> None:
        self._executors: list[ActionExecutor] = [
            NotifyUserExecutor(),
            NotifyManagersExecutor(),
            CreateAssignmentExecutor(),
        ]

    def register(self, executor: ActionExecutor) -> None:
        """Register an additional executor (checked before the built-ins)."""
        self._executors.insert(0, executor)

    def execute(
        self,
        session: Session,
        event: OrgEvent,
        automation: Automation,
        action: Any,
    ) -> ActionResult:
        """Execute one action.

        Raises:
            ActionError: If no executor handles the action or the executor fails
        """
        action_type = getattr(action, "type", type(action).__name__)
        for executor in self._executors:
            if not executor.handles(action):
                continue
            try:
                return executor.execute(session, event, automation, action)
            except ActionError:
                raise
            except Exception as e:
                raise ActionError(action_type, str(e) or e.__class__.__name__) from e

        raise ActionError(action_type, f"Unsupported action type: {action_type}")
