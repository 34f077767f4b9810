"""Automation rule engine.

For one event, loads the tenant's enabled automations bound to the event
type and runs each of them in isolation:

    gate (insert AutomationRun) -> parse rules -> conditions -> actions

The run row is inserted with status ``success`` before anything else and
its unique (automation_id, event_id) constraint is the idempotency gate:
reprocessing an event never executes an automation's actions twice. A crash
after the gate but before the actions leaves the run marked ``success``
with actions that never ran; that tradeoff is accepted.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from app.errors import ActionError, StorageError
from app.events.actions import ActionRegistry, ActionResult
from app.events.conditions import conditions_pass
from app.events.rules import parse_rules
from app.models.automation import Automation, AutomationRun, RunStatus
from app.models.org_event import OrgEvent

logger = logging.getLogger(__name__)


class OutcomeReason:
    ALREADY_PROCESSED = "already_processed"
    CONDITIONS_NOT_MET = "conditions_not_met"


@dataclass
class AutomationOutcome:
    """Per-automation result reported by the processor."""

    automation_id: UUID
    ran: bool = False
    skipped: bool = False
    reason: str | None = None
    error: str | None = None
    actions: list[ActionResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape returned by the process endpoint."""
        data: dict[str, Any] = {"automation_id": str(self.automation_id)}
        if self.skipped:
            data["skipped"] = True
            data["reason"] = self.reason
            return data
        data["ran"] = self.ran
        if self.reason:
            data["reason"] = self.reason
        if self.error:
            data["error"] = self.error
        if self.actions:
            data["actions"] = [a.to_dict() for a in self.actions]
        if self.warnings:
            data["warnings"] = self.warnings
        return data


class AutomationEngine:
    """Evaluates and executes tenant automations for an event."""

    def __init__(self, registry: ActionRegistry | None = None) -> None:
        self.registry = registry or ActionRegistry()

    def load_automations(self, session: Session, event: OrgEvent) -> list[Automation]:
        """Enabled automations of the event's tenant bound to its type.

        Raises:
            StorageError: If the query fails
        """
        try:
            automations = session.exec(
                select(Automation)
                .where(Automation.org_id == event.org_id)
                .where(Automation.enabled == True)  # noqa: E712
                .where(Automation.trigger_event == event.event_type)
                .order_by(Automation.created_at)
            ).all()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError("Failed to load automations", detail=str(e)) from e
        return list(automations)

    def run(self, session: Session, event: OrgEvent) -> list[AutomationOutcome]:
        """Run every matching automation for an event.

        One automation failing never affects the others.

        Args:
            session: Database session
            event: The event being processed

        Returns:
            One outcome per matching automation

        Raises:
            StorageError: If automations cannot be loaded
        """
        automations = self.load_automations(session, event)
        event_id = event.id
        outcomes: list[AutomationOutcome] = []

        for automation in automations:
            automation_id = automation.id
            try:
                outcome = self.run_automation(session, event, automation)
            except StorageError as e:
                # Failure outside the action loop (gate or run update)
                session.rollback()
                outcome = AutomationOutcome(automation_id=automation_id, error=e.message)
                logger.error(
                    "Automation storage failure",
                    extra={
                        "automation_id": str(automation_id),
                        "event_id": str(event_id),
                        "error": e.message,
                    },
                    exc_info=True,
                )
            except Exception as e:
                session.rollback()
                outcome = AutomationOutcome(
                    automation_id=automation_id, error=str(e) or e.__class__.__name__
                )
                logger.error(
                    "Unexpected automation failure",
                    extra={
                        "automation_id": str(automation_id),
                        "event_id": str(event_id),
                        "error": str(e),
                    },
                    exc_info=True,
                )
            outcomes.append(outcome)

        logger.info(
            "Automations evaluated",
            extra={
                "event_id": str(event_id),
                "matched": len(automations),
                "ran": sum(1 for o in outcomes if o.ran),
                "skipped": sum(1 for o in outcomes if o.skipped),
                "failed": sum(1 for o in outcomes if o.error),
            },
        )
        return outcomes

    def acquire_run(self, session: Session, event: OrgEvent, automation: Automation) -> bool:
        """Insert the run row for (automation, event).

        Returns:
            True if this call created the row, False if it already existed

        Raises:
            StorageError: For failures other than the unique conflict
        """
        run = AutomationRun(
            org_id=event.org_id,
            automation_id=automation.id,
            event_id=event.id,
            status=RunStatus.SUCCESS.value,
        )
        session.add(run)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            return False
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError("Failed to record automation run", detail=str(e)) from e
        return True

    def mark_run_failed(
        self, session: Session, automation_id: UUID, event_id: UUID, error: str
    ) -> None:
        """Flip a run row to ``failed`` with the error message."""
        try:
            run = session.exec(
                select(AutomationRun)
                .where(AutomationRun.automation_id == automation_id)
                .where(AutomationRun.event_id == event_id)
            ).first()
            if run is None:
                return
            run.status = RunStatus.FAILED.value
            run.error = error[:1000]
            run.updated_at = datetime.utcnow()
            session.add(run)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError("Failed to update automation run", detail=str(e)) from e

    def run_automation(
        self, session: Session, event: OrgEvent, automation: Automation
    ) -> AutomationOutcome:
        """Gate, evaluate and execute one automation."""
        # Capture ids before commits/rollbacks expire the instances
        automation_id = automation.id
        event_id = event.id

        if not self.acquire_run(session, event, automation):
            logger.info(
                "Automation already processed for event, skipping",
                extra={"automation_id": str(automation_id), "event_id": str(event_id)},
            )
            return AutomationOutcome(
                automation_id=automation_id,
                skipped=True,
                reason=OutcomeReason.ALREADY_PROCESSED,
            )

        rules = parse_rules(automation.conditions, automation.actions)
        if rules.warnings:
            logger.warning(
                "Automation has invalid rules",
                extra={
                    "automation_id": str(automation_id),
                    "warnings": rules.warnings,
                },
            )

        if not conditions_pass(event.to_context(), rules.conditions):
            return AutomationOutcome(
                automation_id=automation_id,
                reason=OutcomeReason.CONDITIONS_NOT_MET,
                warnings=rules.warnings,
            )

        results: list[ActionResult] = []
        for action in rules.actions:
            try:
                result = self.registry.execute(session, event, automation, action)
                session.commit()
            except (ActionError, SQLAlchemyError) as e:
                session.rollback()
                message = e.message if isinstance(e, ActionError) else str(e)
                logger.error(
                    "Automation action failed",
                    extra={
                        "automation_id": str(automation_id),
                        "event_id": str(event_id),
                        "action_type": getattr(action, "type", None),
                        "error": message,
                    },
                    exc_info=True,
                )
                self.mark_run_failed(session, automation_id, event_id, message)
                return AutomationOutcome(
                    automation_id=automation_id,
                    error=message,
                    actions=results,
                    warnings=rules.warnings,
                )
            results.append(result)

        logger.info(
            "Automation ran",
            extra={
                "automation_id": str(automation_id),
                "event_id": str(event_id),
                "actions": [r.to_dict() for r in results],
            },
        )
        return AutomationOutcome(
            automation_id=automation_id,
            ran=True,
            actions=results,
            warnings=rules.warnings,
        )
