"""Typed automation rule definitions.

Automations store their conditions and actions as raw JSON. They are
validated here, one entry at a time, into tagged Pydantic models so that an
unknown ``op`` or ``type`` shows up as a warning instead of silently doing
nothing.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError


# -----------------------------------------------------------------------------
# Conditions
# -----------------------------------------------------------------------------


class _ConditionBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    path: str = Field(min_length=1)


class ExistsCondition(_ConditionBase):
    """Field is present and not null or empty string."""

    op: Literal["exists"]


class EqCondition(_ConditionBase):
    """Field strictly equals ``value``."""

    op: Literal["eq"]
    value: Any = None


class NeqCondition(_ConditionBase):
    """Field does not strictly equal ``value``."""

    op: Literal["neq"]
    value: Any = None


class InCondition(_ConditionBase):
    """Field strictly equals one member of ``value`` (a list)."""

    op: Literal["in"]
    value: Any = None


class InvalidCondition(BaseModel):
    """Placeholder for a condition that failed validation. Never passes."""

    op: Literal["invalid"] = "invalid"
    raw: Any = None
    reason: str = ""


ConditionSpec = Annotated[
    Union[ExistsCondition, EqCondition, NeqCondition, InCondition],
    Field(discriminator="op"),
]


# -----------------------------------------------------------------------------
# Actions
# -----------------------------------------------------------------------------


class _NotifyActionBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    body: str | None = None
    # Free-form; known levels are NotificationSeverity values
    severity: str | None = None
    href: str | None = None
    meta: dict[str, Any] | None = None


class NotifyUserAction(_NotifyActionBase):
    """Notify the user found at dotted path ``to`` in the event."""

    type: Literal["notify_user"]
    to: str | None = None


class NotifyManagersAction(_NotifyActionBase):
    """Notify every active manager of the tenant with a linked account."""

    type: Literal["notify_managers"]


class CreateAssignmentAction(BaseModel):
    """Insert a new assignment.

    Staff and facility ids come from literal ids, or from dotted paths into
    the event when the literal is absent.
    """

    model_config = ConfigDict(extra="ignore")

    type: Literal["create_assignment"]
    competency_id: str | None = None
    staff_id: str | None = None
    staff_id_path: str | None = None
    facility_id: str | None = None
    facility_id_path: str | None = None
    due_date: date | None = None


ActionSpec = Annotated[
    Union[NotifyUserAction, NotifyManagersAction, CreateAssignmentAction],
    Field(discriminator="type"),
]

_condition_adapter: TypeAdapter[Any] = TypeAdapter(ConditionSpec)
_action_adapter: TypeAdapter[Any] = TypeAdapter(ActionSpec)


@dataclass
class ParsedRules:
    """Validated conditions and actions of one automation."""

    conditions: list[Any] = field(default_factory=list)
    actions: list[Any] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _describe(exc: PydanticValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()))
    message = first.get("msg", str(exc))
    return f"{location}: {message}" if location else message


def parse_rules(raw_conditions: Any, raw_actions: Any) -> ParsedRules:
    """Validate raw automation JSON.

    Invalid conditions are kept as ``InvalidCondition`` so the automation
    cannot fire on a rule it does not understand. Invalid actions are
    dropped. Both produce a warning.

    Args:
        raw_conditions: Stored ``conditions`` column
        raw_actions: Stored ``actions`` column

    Returns:
        ParsedRules with typed models and any warnings
    """
    parsed = ParsedRules()

    if raw_conditions is not None and not isinstance(raw_conditions, list):
        parsed.warnings.append("conditions is not a list; treated as empty")
        raw_conditions = []
    if raw_actions is not None and not isinstance(raw_actions, list):
        parsed.warnings.append("actions is not a list; treated as empty")
        raw_actions = []

    for index, raw in enumerate(raw_conditions or []):
        try:
            parsed.conditions.append(_condition_adapter.validate_python(raw))
        except PydanticValidationError as e:
            reason = _describe(e)
            parsed.conditions.append(InvalidCondition(raw=raw, reason=reason))
            parsed.warnings.append(f"condition {index} is invalid ({reason})")

    for index, raw in enumerate(raw_actions or []):
        try:
            parsed.actions.append(_action_adapter.validate_python(raw))
        except PydanticValidationError as e:
            parsed.warnings.append(f"action {index} is invalid and was skipped ({_describe(e)})")

    return parsed
