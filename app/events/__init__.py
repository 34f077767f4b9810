"""Event pipeline.

Components:
- types.py: Known event and entity types
- emitter.py: Validates and stores events, chains processing
- processor.py: Feed entry, baseline notifications, automations per event
- automations.py / rules.py / conditions.py / actions.py: Rule engine
- feed.py: Feed and baseline notification templates
"""

from app.events.actions import ActionExecutor, ActionRegistry, ActionResult
from app.events.automations import AutomationEngine, AutomationOutcome
from app.events.emitter import EmitResult, EventEmitter, get_event_emitter
from app.events.processor import EventProcessor, ProcessResult
from app.events.types import EntityType, EventType

__all__ = [
    # Types
    "EventType",
    "EntityType",
    # Emitter
    "EventEmitter",
    "EmitResult",
    "get_event_emitter",
    # Processor
    "EventProcessor",
    "ProcessResult",
    # Rule engine
    "AutomationEngine",
    "AutomationOutcome",
    "ActionExecutor",
    "ActionRegistry",
    "ActionResult",
]
