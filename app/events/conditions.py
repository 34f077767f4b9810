"""Condition evaluation against an event context."""

from collections.abc import Mapping
from typing import Any

from app.events.paths import MISSING, get_by_path, is_present
from app.events.rules import (
    EqCondition,
    ExistsCondition,
    InCondition,
    NeqCondition,
)


def strict_equals(actual: Any, expected: Any) -> bool:
    """Equality without type coercion.

    Booleans only equal booleans, strings only equal strings, and an
    unresolved path never equals anything (not even ``None``). Ints and
    floats compare by value since JSON has a single number type. Objects
    and arrays compare member by member under the same rules.
    """
    if actual is MISSING or expected is MISSING:
        return False
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if isinstance(actual, (int, float)) and isinstance(expected, (int, float)):
        return actual == expected
    if isinstance(actual, Mapping) and isinstance(expected, Mapping):
        return actual.keys() == expected.keys() and all(
            strict_equals(actual[key], expected[key]) for key in actual
        )
    if isinstance(actual, list) and isinstance(expected, list):
        return len(actual) == len(expected) and all(
            strict_equals(a, e) for a, e in zip(actual, expected)
        )
    if type(actual) is not type(expected):
        return False
    return actual == expected


def evaluate_condition(context: dict[str, Any], condition: Any) -> bool:
    """Evaluate one parsed condition.

    Unknown or invalid conditions evaluate to False.
    """
    if isinstance(condition, ExistsCondition):
        return is_present(get_by_path(context, condition.path))

    if isinstance(condition, EqCondition):
        return strict_equals(get_by_path(context, condition.path), condition.value)

    if isinstance(condition, NeqCondition):
        return not strict_equals(get_by_path(context, condition.path), condition.value)

    if isinstance(condition, InCondition):
        if not isinstance(condition.value, list):
            return False
        actual = get_by_path(context, condition.path)
        return any(strict_equals(actual, candidate) for candidate in condition.value)

    return False


def conditions_pass(context: dict[str, Any], conditions: list[Any]) -> bool:
    """All conditions must hold. An empty list passes."""
    return all(evaluate_condition(context, c) for c in conditions)
