"""Event type definitions for the compliance event pipeline.

Event types are free-form strings on the wire; the values below are the
ones the pipeline knows how to render or notify about.
"""

from enum import Enum


class EventType(str, Enum):
    """Known event types."""

    ASSIGNMENT_CREATED = "assignment_created"
    ASSIGNMENT_COMPLETED = "assignment_completed"
    ASSIGNMENT_OVERDUE = "assignment_overdue"
    POLICY_PUBLISHED = "policy_published"
    DEFICIENCY_CREATED = "deficiency_created"


class EntityType(str, Enum):
    """Entity types referenced by events."""

    ASSIGNMENT = "assignment"
    POLICY = "policy"
    DEFICIENCY = "deficiency"
