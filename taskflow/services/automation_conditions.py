"""
Condition evaluation for automation rules.

A rule's conditions are AND-combined; an empty list is always satisfied.
Each descriptor is parsed into one of the tagged condition models and
dispatched on its kind. Anything that cannot be parsed or evaluated makes
the whole list fail closed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import ConditionEvaluationError, ValidationError
from ..models import utcnow
from ..schemas.automation import (
    CONDITION_ADAPTER,
    AssigneeIsCondition,
    ColumnIsCondition,
    DueWithinDaysCondition,
    FieldChangedCondition,
    FieldEqualsCondition,
    PriorityIsCondition,
)
from .board_ops import coerce_due_date

logger = logging.getLogger("automation.conditions")


def calendar_days_until(due: datetime, now: datetime) -> int:
    """Whole calendar days from `now` to `due`, both naive UTC."""
    return (due.date() - now.date()).days


def event_card(event_data: dict) -> dict:
    card = event_data.get("card") or event_data.get("new_card") or {}
    return card if isinstance(card, dict) else {}


def _same(actual: Any, expected: Any) -> bool:
    if actual == expected:
        return True
    # Ids arrive as strings from hand-written test payloads.
    if actual is None or expected is None:
        return False
    return str(actual) == str(expected)


def _field_equals(cond: FieldEqualsCondition, event_data: dict, now: datetime) -> bool:
    return _same(event_card(event_data).get(cond.field), cond.value)


def _field_changed(cond: FieldChangedCondition, event_data: dict, now: datetime) -> bool:
    changes = event_data.get("changes") or {}
    return cond.field in changes


def _priority_is(cond: PriorityIsCondition, event_data: dict, now: datetime) -> bool:
    return event_card(event_data).get("priority") in cond.priorities


def _column_is(cond: ColumnIsCondition, event_data: dict, now: datetime) -> bool:
    to_column = event_data.get("to_column") or {}
    current = to_column.get("id") if isinstance(to_column, dict) and to_column.get("id") is not None else None
    if current is None:
        current = event_card(event_data).get("column_id")
    return _same(current, cond.column_id)


def _assignee_is(cond: AssigneeIsCondition, event_data: dict, now: datetime) -> bool:
    assignee = event_card(event_data).get("assignee_id")
    if cond.user_id is None:
        return assignee is None
    return _same(assignee, cond.user_id)


def _due_within_days(cond: DueWithinDaysCondition, event_data: dict, now: datetime) -> bool:
    days = event_data.get("days_until_due")
    if days is None:
        try:
            due = coerce_due_date(event_card(event_data).get("due_date"))
        except ValidationError as exc:
            raise ConditionEvaluationError(str(exc)) from exc
        if due is None:
            return False
        days = calendar_days_until(due, now)
    return 0 <= int(days) <= cond.days


_HANDLERS: dict[type, Callable[[Any, dict, datetime], bool]] = {
    FieldEqualsCondition: _field_equals,
    FieldChangedCondition: _field_changed,
    PriorityIsCondition: _priority_is,
    ColumnIsCondition: _column_is,
    AssigneeIsCondition: _assignee_is,
    DueWithinDaysCondition: _due_within_days,
}


def parse_condition(raw: Any):
    try:
        return CONDITION_ADAPTER.validate_python(raw)
    except PydanticValidationError as exc:
        kind = raw.get("type") if isinstance(raw, dict) else type(raw).__name__
        raise ConditionEvaluationError(f"Invalid condition {kind!r}: {exc.error_count()} error(s)") from exc


def evaluate(conditions: Optional[Iterable[Any]], event_data: dict, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    for raw in conditions or []:
        try:
            cond = parse_condition(raw)
            if not _HANDLERS[type(cond)](cond, event_data or {}, now):
                return False
        except ConditionEvaluationError as exc:
            logger.warning("Condition failed closed: %s", exc)
            return False
        except Exception as exc:
            logger.warning("Condition %r raised during evaluation: %s", raw, exc)
            return False
    return True
