"""
Card mutation helpers shared by the board API and automation actions.

Nothing in here dispatches automations. Route handlers call the hooks on
the dispatcher after a mutation; automation actions call these helpers
directly so an action never re-triggers rules.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, ValidationError
from ..models.board import BoardColumn, Card

# Fields compared when building the `changes` diff of a card_updated event.
CARD_DIFF_FIELDS = ("title", "description", "priority", "assignee_id", "due_date", "status")
UPDATABLE_FIELDS = {"title", "description", "priority", "status", "due_date", "assignee_id"}
PRIORITIES = {"low", "medium", "high", "urgent"}
COMPLETED_STATUS = "completed"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def card_snapshot(card: Card) -> dict:
    board_id = card.column.board_id if card.column is not None else None
    return {
        "id": card.id,
        "board_id": board_id,
        "column_id": card.column_id,
        "title": card.title,
        "description": card.description,
        "order_index": card.order_index,
        "status": card.status,
        "priority": card.priority,
        "due_date": _iso(card.due_date),
        "assignee_id": card.assignee_id,
    }


def column_snapshot(column: Optional[BoardColumn]) -> Optional[dict]:
    if column is None:
        return None
    return {
        "id": column.id,
        "board_id": column.board_id,
        "title": column.title,
        "order_index": column.order_index,
    }


def card_changes(old: dict, new: dict) -> dict:
    changes: dict[str, dict] = {}
    for field in CARD_DIFF_FIELDS:
        if old.get(field) != new.get(field):
            changes[field] = {"from": old.get(field), "to": new.get(field)}
    return changes


def get_card(db: Session, card_id: Any) -> Card:
    try:
        key = int(card_id)
    except (TypeError, ValueError):
        raise NotFoundError(f"Card not found: {card_id!r}")
    card = db.get(Card, key)
    if card is None:
        raise NotFoundError(f"Card not found: {card_id}")
    return card


def _next_order(db: Session, column_id: int) -> int:
    current = db.query(func.max(Card.order_index)).filter(Card.column_id == column_id).scalar()
    return (current or 0) + 1


def create_card(db: Session, column: BoardColumn, **fields: Any) -> Card:
    priority = fields.get("priority") or "medium"
    if priority not in PRIORITIES:
        raise ValidationError(f"Invalid priority: {priority}")
    card = Card(
        column_id=column.id,
        title=fields["title"],
        description=fields.get("description"),
        status=fields.get("status") or "todo",
        priority=priority,
        due_date=to_naive_utc(fields.get("due_date")),
        assignee_id=fields.get("assignee_id"),
        order_index=_next_order(db, column.id),
    )
    db.add(card)
    db.flush()
    db.refresh(card)
    return card


def move_card(db: Session, card: Card, target_column_id: int, position: Optional[int] = None) -> Card:
    """Move `card` into another column of the same board, appended unless `position` is given."""
    target = db.get(BoardColumn, target_column_id)
    if target is None:
        raise NotFoundError(f"Column not found: {target_column_id}")
    if target.board_id != card.column.board_id:
        raise ValidationError("Target column belongs to a different board")
    if position is None:
        if card.column_id != target.id:
            card.order_index = _next_order(db, target.id)
    else:
        (
            db.query(Card)
            .filter(Card.column_id == target.id, Card.order_index >= position, Card.id != card.id)
            .update({Card.order_index: Card.order_index + 1}, synchronize_session="fetch")
        )
        card.order_index = position
    card.column_id = target.id
    card.column = target
    db.add(card)
    db.flush()
    return card


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def coerce_due_date(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(f"Invalid due_date: {value!r}") from exc
    return to_naive_utc(parsed)


def update_card_fields(db: Session, card: Card, values: dict) -> dict:
    """Apply `values` to the card and return the `{field: {from, to}}` diff."""
    before = card_snapshot(card)
    for field, value in values.items():
        if field not in UPDATABLE_FIELDS:
            raise ValidationError(f"Field cannot be updated: {field}")
        if field == "due_date":
            value = coerce_due_date(value)
        elif field == "priority" and value not in PRIORITIES:
            raise ValidationError(f"Invalid priority: {value}")
        elif field in {"title", "status"} and not value:
            raise ValidationError(f"{field} cannot be empty")
        setattr(card, field, value)
    db.add(card)
    db.flush()
    return card_changes(before, card_snapshot(card))
