"""
API endpoints for board automations and their execution log.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...core.auth import UserContext, get_current_user
from ...core.db import get_db
from ...core.errors import TaskflowError
from ...core.pagination import clamp_limit, set_pagination_headers
from ...models.automation import Automation
from ...models.board import Board
from ...schemas.automation import (
    AutomationCreate,
    AutomationLogOut,
    AutomationOut,
    AutomationTestIn,
    AutomationUpdate,
)
from ...services import rule_store
from ...services.automation_dispatcher import AutomationDispatcher
from ..deps import get_board_for_user, get_dispatcher, http_error


router = APIRouter(prefix="/api/v1", tags=["automations"])


def _get_rule_for_user(db: Session, rule_id: int, user: UserContext) -> Automation:
    try:
        rule = rule_store.get_rule(db, rule_id)
    except TaskflowError as exc:
        raise http_error(exc)
    get_board_for_user(db, rule.board_id, user)
    return rule


@router.get("/boards/{board_id}/automations", response_model=List[AutomationOut])
def list_automations(
    board_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> List[AutomationOut]:
    get_board_for_user(db, board_id, user)
    return [AutomationOut.model_validate(r) for r in rule_store.list_rules(db, board_id)]


@router.post("/automations", response_model=AutomationOut, status_code=201)
def create_automation(
    payload: AutomationCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> AutomationOut:
    if payload.board_id is not None:
        board = db.get(Board, payload.board_id)
        if board is not None:
            get_board_for_user(db, board.id, user)
    try:
        rule = rule_store.create_rule(db, payload, user)
    except TaskflowError as exc:
        raise http_error(exc)
    return AutomationOut.model_validate(rule)


@router.get("/automations/{automation_id}", response_model=AutomationOut)
def get_automation(
    automation_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> AutomationOut:
    return AutomationOut.model_validate(_get_rule_for_user(db, automation_id, user))


@router.put("/automations/{automation_id}", response_model=AutomationOut)
def update_automation(
    automation_id: int,
    payload: AutomationUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> AutomationOut:
    _get_rule_for_user(db, automation_id, user)
    try:
        rule = rule_store.update_rule(db, automation_id, payload, user)
    except TaskflowError as exc:
        raise http_error(exc)
    return AutomationOut.model_validate(rule)


@router.delete("/automations/{automation_id}")
def delete_automation(
    automation_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    _get_rule_for_user(db, automation_id, user)
    try:
        rule_store.delete_rule(db, automation_id, user)
    except TaskflowError as exc:
        raise http_error(exc)
    return {"status": "deleted", "id": automation_id}


@router.post("/automations/{automation_id}/test")
def test_automation(
    automation_id: int,
    payload: AutomationTestIn,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
    dispatcher: AutomationDispatcher = Depends(get_dispatcher),
) -> dict:
    rule = _get_rule_for_user(db, automation_id, user)
    return dispatcher.test_rule(rule, payload.test_data)


@router.get("/automations/{automation_id}/logs", response_model=List[AutomationLogOut])
def list_automation_logs(
    automation_id: int,
    response: Response,
    limit: int = Query(50, ge=1),
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> List[AutomationLogOut]:
    _get_rule_for_user(db, automation_id, user)
    limit = clamp_limit(limit)
    logs = rule_store.list_logs(db, automation_id, limit)
    set_pagination_headers(response, total=None, limit=limit)
    return [AutomationLogOut.model_validate(entry) for entry in logs]
