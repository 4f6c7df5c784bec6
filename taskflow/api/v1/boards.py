"""
API endpoints for boards, columns, cards and checklists.

Card mutations are committed first; the matching automation hooks are then
scheduled as background tasks so the response never waits on automations.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from ...core.auth import UserContext, get_current_user
from ...core.db import get_db
from ...core.errors import TaskflowError
from ...core.pagination import clamp_limit, set_pagination_headers
from ...models import utcnow
from ...models.activity_log import ActivityLog
from ...models.board import Board, BoardColumn, Card, Checklist, ChecklistItem
from ...models.card_template import CardTemplate
from ...schemas.board import (
    ActivityOut,
    BoardCreate,
    BoardOut,
    BoardUpdate,
    CardCreate,
    CardMoveIn,
    CardOut,
    CardUpdate,
    ChecklistCreate,
    ChecklistItemCreate,
    ChecklistItemOut,
    ChecklistItemUpdate,
    ChecklistOut,
    ColumnConfigUpdate,
    ColumnCreate,
    ColumnOut,
    ColumnUpdate,
)
from ...services import board_ops
from ...services.activity import log_activity
from ...services.automation_dispatcher import AutomationDispatcher
from ..deps import (
    board_query_for_user,
    get_board_for_user,
    get_card_for_user,
    get_column_for_user,
    get_dispatcher,
    http_error,
)


router = APIRouter(prefix="/api/v1", tags=["boards"])


def _checklist_snapshot(checklist: Checklist) -> dict:
    items = list(checklist.items)
    return {
        "id": checklist.id,
        "card_id": checklist.card_id,
        "title": checklist.title,
        "total_items": len(items),
        "completed_items": sum(1 for item in items if item.completed),
    }


# Boards


@router.get("/boards", response_model=List[BoardOut])
def list_boards(
    response: Response,
    limit: int = Query(50, ge=1),
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> List[BoardOut]:
    limit = clamp_limit(limit)
    query = board_query_for_user(db, user)
    total = query.count()
    boards = query.order_by(Board.updated_at.desc(), Board.id.desc()).limit(limit).all()
    set_pagination_headers(response, total=total, limit=limit)
    return [BoardOut.model_validate(b) for b in boards]


@router.post("/boards", response_model=BoardOut, status_code=201)
def create_board(
    payload: BoardCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> BoardOut:
    board = Board(
        title=payload.title.strip(),
        background_color=payload.background_color or "#ffffff",
        created_by_user_id=user.user_id,
    )
    db.add(board)
    db.flush()
    for idx, title in enumerate(t.strip() for t in payload.columns if t and t.strip()):
        db.add(BoardColumn(board_id=board.id, title=title, order_index=idx))
    log_activity(
        db,
        user=user,
        board_id=board.id,
        action_type="create",
        entity_type="board",
        entity_id=board.id,
        new_values={"title": board.title},
        description=f'Board "{board.title}" created',
    )
    db.commit()
    db.refresh(board)
    return BoardOut.model_validate(board)


@router.get("/boards/{board_id}", response_model=BoardOut)
def get_board(
    board_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> BoardOut:
    return BoardOut.model_validate(get_board_for_user(db, board_id, user))


@router.put("/boards/{board_id}", response_model=BoardOut)
def update_board(
    board_id: int,
    payload: BoardUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> BoardOut:
    board = get_board_for_user(db, board_id, user)
    before = {"title": board.title, "background_color": board.background_color}
    data = payload.model_dump(exclude_unset=True)
    if data.get("title") is not None:
        board.title = data["title"].strip()
    if "background_color" in data and data["background_color"]:
        board.background_color = data["background_color"]
    log_activity(
        db,
        user=user,
        board_id=board.id,
        action_type="update",
        entity_type="board",
        entity_id=board.id,
        old_values=before,
        new_values={"title": board.title, "background_color": board.background_color},
        description=f'Board "{board.title}" updated',
    )
    db.commit()
    db.refresh(board)
    return BoardOut.model_validate(board)


@router.delete("/boards/{board_id}")
def delete_board(
    board_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    board = get_board_for_user(db, board_id, user)
    log_activity(
        db,
        user=user,
        board_id=board.id,
        action_type="delete",
        entity_type="board",
        entity_id=board.id,
        old_values={"title": board.title},
        description=f'Board "{board.title}" deleted',
    )
    db.delete(board)
    db.commit()
    return {"status": "deleted", "id": board_id}


@router.get("/boards/{board_id}/cards", response_model=List[CardOut])
def list_board_cards(
    board_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> List[CardOut]:
    get_board_for_user(db, board_id, user)
    cards = (
        db.query(Card)
        .join(BoardColumn, Card.column_id == BoardColumn.id)
        .filter(BoardColumn.board_id == board_id)
        .order_by(BoardColumn.order_index.asc(), Card.order_index.asc(), Card.id.asc())
        .all()
    )
    return [CardOut.model_validate(c) for c in cards]


@router.get("/boards/{board_id}/activity", response_model=List[ActivityOut])
def list_board_activity(
    board_id: int,
    response: Response,
    limit: int = Query(50, ge=1),
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> List[ActivityOut]:
    get_board_for_user(db, board_id, user)
    limit = clamp_limit(limit)
    query = db.query(ActivityLog).filter(ActivityLog.board_id == board_id)
    total = query.count()
    rows = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).all()
    set_pagination_headers(response, total=total, limit=limit)
    return [ActivityOut.model_validate(r) for r in rows]


# Columns


@router.post("/boards/{board_id}/columns", response_model=ColumnOut, status_code=201)
def create_column(
    board_id: int,
    payload: ColumnCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> ColumnOut:
    board = get_board_for_user(db, board_id, user)
    order_index = payload.order_index
    if order_index is None:
        current = db.query(func.max(BoardColumn.order_index)).filter(BoardColumn.board_id == board.id).scalar()
        order_index = 0 if current is None else current + 1
    column = BoardColumn(board_id=board.id, title=payload.title.strip(), order_index=order_index)
    db.add(column)
    db.commit()
    db.refresh(column)
    return ColumnOut.model_validate(column)


@router.put("/columns/{column_id}", response_model=ColumnOut)
def update_column(
    column_id: int,
    payload: ColumnUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> ColumnOut:
    column = get_column_for_user(db, column_id, user)
    if payload.title is not None:
        column.title = payload.title.strip()
    if payload.order_index is not None:
        column.order_index = payload.order_index
    db.commit()
    db.refresh(column)
    return ColumnOut.model_validate(column)


@router.put("/columns/{column_id}/config", response_model=ColumnOut)
def update_column_config(
    column_id: int,
    payload: ColumnConfigUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> ColumnOut:
    column = get_column_for_user(db, column_id, user)
    data = payload.model_dump(exclude_unset=True)
    if "wip_limit" in data:
        # 0 or null clears the limit.
        column.wip_limit = data["wip_limit"] or None
    if data.get("is_collapsed") is not None:
        column.is_collapsed = data["is_collapsed"]
    db.commit()
    db.refresh(column)
    return ColumnOut.model_validate(column)


@router.delete("/columns/{column_id}")
def delete_column(
    column_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    column = get_column_for_user(db, column_id, user)
    db.delete(column)
    db.commit()
    return {"status": "deleted", "id": column_id}


# Cards


@router.get("/cards/{card_id}", response_model=CardOut)
def get_card(
    card_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> CardOut:
    return CardOut.model_validate(get_card_for_user(db, card_id, user))


@router.post("/cards", response_model=CardOut, status_code=201)
def create_card(
    payload: CardCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
    dispatcher: AutomationDispatcher = Depends(get_dispatcher),
) -> CardOut:
    column = get_column_for_user(db, payload.column_id, user)
    fields = payload.model_dump(exclude={"column_id", "template_id"})
    if payload.template_id is not None:
        template = db.get(CardTemplate, payload.template_id)
        if not template or template.board_id != column.board_id:
            raise HTTPException(status_code=404, detail="Template not found")
        if "description" not in payload.model_fields_set:
            fields["description"] = template.description
        if "priority" not in payload.model_fields_set:
            fields["priority"] = template.priority
    try:
        card = board_ops.create_card(db, column, **fields)
    except TaskflowError as exc:
        raise http_error(exc)
    log_activity(
        db,
        user=user,
        board_id=column.board_id,
        card_id=card.id,
        action_type="create",
        entity_type="card",
        entity_id=card.id,
        new_values={"title": card.title, "column_id": card.column_id},
        description=f'Card "{card.title}" created',
    )
    db.commit()
    db.refresh(card)
    background_tasks.add_task(dispatcher.on_card_created, board_ops.card_snapshot(card), column.board_id)
    return CardOut.model_validate(card)


def _schedule_card_hooks(
    background_tasks: BackgroundTasks,
    dispatcher: AutomationDispatcher,
    board_id: int,
    before: dict,
    after: dict,
    from_column: Optional[dict],
    to_column: Optional[dict],
) -> None:
    if from_column and to_column and from_column["id"] != to_column["id"]:
        background_tasks.add_task(dispatcher.on_card_moved, after, from_column, to_column, board_id)
    if board_ops.card_changes(before, after):
        background_tasks.add_task(dispatcher.on_card_updated, before, after, board_id)
    if after.get("status") == board_ops.COMPLETED_STATUS and before.get("status") != board_ops.COMPLETED_STATUS:
        background_tasks.add_task(dispatcher.on_card_completed, after, board_id)


@router.put("/cards/{card_id}", response_model=CardOut)
def update_card(
    card_id: int,
    payload: CardUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
    dispatcher: AutomationDispatcher = Depends(get_dispatcher),
) -> CardOut:
    card = get_card_for_user(db, card_id, user)
    board_id = card.column.board_id
    before = board_ops.card_snapshot(card)
    from_column = board_ops.column_snapshot(card.column)
    data = payload.model_dump(exclude_unset=True)
    column_id = data.pop("column_id", None)
    order_index = data.pop("order_index", None)
    try:
        changes = board_ops.update_card_fields(db, card, data)
        if column_id is not None and column_id != card.column_id:
            board_ops.move_card(db, card, column_id, order_index)
        elif order_index is not None:
            board_ops.move_card(db, card, card.column_id, order_index)
    except TaskflowError as exc:
        db.rollback()
        raise http_error(exc)
    after = board_ops.card_snapshot(card)
    to_column = board_ops.column_snapshot(card.column)
    if changes or from_column["id"] != to_column["id"]:
        log_activity(
            db,
            user=user,
            board_id=board_id,
            card_id=card.id,
            action_type="update",
            entity_type="card",
            entity_id=card.id,
            old_values={k: v["from"] for k, v in changes.items()},
            new_values={k: v["to"] for k, v in changes.items()},
            description=f'Card "{card.title}" updated',
        )
    db.commit()
    db.refresh(card)
    _schedule_card_hooks(background_tasks, dispatcher, board_id, before, after, from_column, to_column)
    return CardOut.model_validate(card)


@router.put("/cards/{card_id}/move", response_model=CardOut)
def move_card(
    card_id: int,
    payload: CardMoveIn,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
    dispatcher: AutomationDispatcher = Depends(get_dispatcher),
) -> CardOut:
    card = get_card_for_user(db, card_id, user)
    board_id = card.column.board_id
    before = board_ops.card_snapshot(card)
    from_column = board_ops.column_snapshot(card.column)
    try:
        board_ops.move_card(db, card, payload.column_id, payload.order_index)
    except TaskflowError as exc:
        db.rollback()
        raise http_error(exc)
    to_column = board_ops.column_snapshot(card.column)
    log_activity(
        db,
        user=user,
        board_id=board_id,
        card_id=card.id,
        action_type="move",
        entity_type="card",
        entity_id=card.id,
        old_values={"column_id": from_column["id"]},
        new_values={"column_id": to_column["id"], "order_index": card.order_index},
        description=f'Card "{card.title}" moved from "{from_column["title"]}" to "{to_column["title"]}"',
    )
    db.commit()
    db.refresh(card)
    _schedule_card_hooks(
        background_tasks, dispatcher, board_id, before, board_ops.card_snapshot(card), from_column, to_column
    )
    return CardOut.model_validate(card)


@router.delete("/cards/{card_id}")
def delete_card(
    card_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    card = get_card_for_user(db, card_id, user)
    log_activity(
        db,
        user=user,
        board_id=card.column.board_id,
        card_id=card.id,
        action_type="delete",
        entity_type="card",
        entity_id=card.id,
        old_values={"title": card.title},
        description=f'Card "{card.title}" deleted',
    )
    db.delete(card)
    db.commit()
    return {"status": "deleted", "id": card_id}


# Checklists


@router.get("/cards/{card_id}/checklists", response_model=List[ChecklistOut])
def list_checklists(
    card_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> List[ChecklistOut]:
    card = get_card_for_user(db, card_id, user)
    return [ChecklistOut.model_validate(c) for c in card.checklists]


@router.post("/cards/{card_id}/checklists", response_model=ChecklistOut, status_code=201)
def create_checklist(
    card_id: int,
    payload: ChecklistCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> ChecklistOut:
    card = get_card_for_user(db, card_id, user)
    checklist = Checklist(card_id=card.id, title=payload.title.strip())
    db.add(checklist)
    db.flush()
    for idx, text in enumerate(t.strip() for t in payload.items if t and t.strip()):
        db.add(ChecklistItem(checklist_id=checklist.id, text=text, order_index=idx))
    db.commit()
    db.refresh(checklist)
    return ChecklistOut.model_validate(checklist)


def _get_checklist_for_user(db: Session, checklist_id: int, user: UserContext) -> Checklist:
    checklist = db.get(Checklist, checklist_id)
    if not checklist:
        raise HTTPException(status_code=404, detail="Checklist not found")
    get_card_for_user(db, checklist.card_id, user)
    return checklist


def _get_item_for_user(db: Session, item_id: int, user: UserContext) -> ChecklistItem:
    item = db.get(ChecklistItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Checklist item not found")
    _get_checklist_for_user(db, item.checklist_id, user)
    return item


@router.delete("/checklists/{checklist_id}")
def delete_checklist(
    checklist_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    checklist = _get_checklist_for_user(db, checklist_id, user)
    db.delete(checklist)
    db.commit()
    return {"status": "deleted", "id": checklist_id}


@router.post("/checklists/{checklist_id}/items", response_model=ChecklistItemOut, status_code=201)
def add_checklist_item(
    checklist_id: int,
    payload: ChecklistItemCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> ChecklistItemOut:
    checklist = _get_checklist_for_user(db, checklist_id, user)
    current = db.query(func.max(ChecklistItem.order_index)).filter(ChecklistItem.checklist_id == checklist.id).scalar()
    item = ChecklistItem(
        checklist_id=checklist.id,
        text=payload.text.strip(),
        order_index=0 if current is None else current + 1,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return ChecklistItemOut.model_validate(item)


@router.put("/checklist-items/{item_id}", response_model=ChecklistItemOut)
def update_checklist_item(
    item_id: int,
    payload: ChecklistItemUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
    dispatcher: AutomationDispatcher = Depends(get_dispatcher),
) -> ChecklistItemOut:
    item = _get_item_for_user(db, item_id, user)
    checklist = item.checklist
    was_done = bool(checklist.items) and all(i.completed for i in checklist.items)
    if payload.text is not None:
        item.text = payload.text.strip()
    if payload.completed is not None and payload.completed != item.completed:
        item.completed = payload.completed
        item.completed_at = utcnow() if payload.completed else None
    db.commit()
    db.refresh(item)
    db.refresh(checklist)
    now_done = bool(checklist.items) and all(i.completed for i in checklist.items)
    if now_done and not was_done:
        card = checklist.card
        background_tasks.add_task(
            dispatcher.on_checklist_completed,
            board_ops.card_snapshot(card),
            _checklist_snapshot(checklist),
            card.column.board_id,
        )
    return ChecklistItemOut.model_validate(item)


@router.delete("/checklist-items/{item_id}")
def delete_checklist_item(
    item_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    item = _get_item_for_user(db, item_id, user)
    db.delete(item)
    db.commit()
    return {"status": "deleted", "id": item_id}
