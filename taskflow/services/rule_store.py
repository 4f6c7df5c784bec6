"""
Persistence for automation rules and their execution log.

CRUD helpers raise `ValidationError` / `NotFoundError`; the API layer maps
them to 400 / 404 responses. Every mutation writes an activity-trail entry
with before/after snapshots of the rule's name and active flag.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.orm import Session

from ..core.auth import UserContext
from ..core.errors import NotFoundError, ValidationError
from ..models.automation import Automation, AutomationLog
from ..models.board import Board
from ..schemas.automation import AutomationCreate, AutomationUpdate
from .activity import log_activity


def _state_snapshot(rule: Automation) -> dict:
    return {"name": rule.name, "is_active": bool(rule.is_active)}


def _dump_list(items: list) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


def get_rule(db: Session, rule_id: int) -> Automation:
    rule = db.get(Automation, rule_id)
    if rule is None:
        raise NotFoundError("Automation not found")
    return rule


def list_rules(db: Session, board_id: int) -> list[Automation]:
    return (
        db.query(Automation)
        .filter(Automation.board_id == board_id)
        .order_by(Automation.created_at.desc(), Automation.id.desc())
        .all()
    )


def list_active_rules(db: Session, board_id: int, trigger_type: str) -> list[Automation]:
    """Active rules of a board for one trigger type, in creation order."""
    return (
        db.query(Automation)
        .filter(
            Automation.board_id == board_id,
            Automation.trigger_type == trigger_type,
            Automation.is_active == True,  # noqa: E712
        )
        .order_by(Automation.id.asc())
        .all()
    )


def create_rule(db: Session, payload: AutomationCreate, user: Optional[UserContext] = None) -> Automation:
    name = (payload.name or "").strip()
    if payload.board_id is None or not name or payload.trigger_type is None:
        raise ValidationError("Board ID, name, and trigger type are required")
    board = db.get(Board, payload.board_id)
    if board is None:
        raise NotFoundError("Board not found")
    rule = Automation(
        board_id=board.id,
        name=name,
        trigger_type=payload.trigger_type.value,
        trigger_config=payload.trigger_config.model_dump(mode="json", exclude_none=True),
        conditions=_dump_list(payload.conditions),
        actions=_dump_list(payload.actions),
        is_active=payload.is_active,
    )
    db.add(rule)
    db.flush()
    log_activity(
        db,
        user=user,
        board_id=board.id,
        action_type="create",
        entity_type="automation",
        entity_id=rule.id,
        new_values={**_state_snapshot(rule), "trigger_type": rule.trigger_type},
        description=f'Automation "{rule.name}" created',
    )
    db.commit()
    db.refresh(rule)
    return rule


def update_rule(
    db: Session,
    rule_id: int,
    payload: AutomationUpdate,
    user: Optional[UserContext] = None,
) -> Automation:
    """Merge the provided fields over the stored rule; omitted or null fields are kept."""
    rule = get_rule(db, rule_id)
    before = _state_snapshot(rule)
    data: dict[str, Any] = payload.model_dump(exclude_unset=True)

    if data.get("name") is not None:
        name = payload.name.strip()
        if not name:
            raise ValidationError("name cannot be empty")
        rule.name = name
    if payload.trigger_type is not None:
        rule.trigger_type = payload.trigger_type.value
    if payload.trigger_config is not None:
        rule.trigger_config = payload.trigger_config.model_dump(mode="json", exclude_none=True)
    if payload.conditions is not None:
        rule.conditions = _dump_list(payload.conditions)
    if payload.actions is not None:
        rule.actions = _dump_list(payload.actions)
    if payload.is_active is not None:
        rule.is_active = payload.is_active

    db.add(rule)
    db.flush()
    log_activity(
        db,
        user=user,
        board_id=rule.board_id,
        action_type="update",
        entity_type="automation",
        entity_id=rule.id,
        old_values=before,
        new_values=_state_snapshot(rule),
        description=f'Automation "{rule.name}" updated',
    )
    db.commit()
    db.refresh(rule)
    return rule


def delete_rule(db: Session, rule_id: int, user: Optional[UserContext] = None) -> None:
    """Delete a rule; its execution log goes with it."""
    rule = get_rule(db, rule_id)
    log_activity(
        db,
        user=user,
        board_id=rule.board_id,
        action_type="delete",
        entity_type="automation",
        entity_id=rule.id,
        old_values=_state_snapshot(rule),
        description=f'Automation "{rule.name}" deleted',
    )
    db.delete(rule)
    db.commit()


def list_logs(db: Session, rule_id: int, limit: int = 50) -> list[AutomationLog]:
    get_rule(db, rule_id)
    return (
        db.query(AutomationLog)
        .filter(AutomationLog.automation_id == rule_id)
        .order_by(AutomationLog.executed_at.desc(), AutomationLog.id.desc())
        .limit(limit)
        .all()
    )
