"""
Shared dependencies for the v1 routers: board scoping, the automation
dispatcher and domain error mapping.
"""

from __future__ import annotations

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from ..core.auth import UserContext
from ..core.errors import NotFoundError, TaskflowError
from ..models.board import Board, BoardColumn, Card
from ..services.automation_dispatcher import AutomationDispatcher


def board_query_for_user(db: Session, user: UserContext):
    query = db.query(Board)
    if user.is_admin:
        return query
    if not user.user_id:
        return query.filter(Board.id == -1)
    return query.filter(Board.created_by_user_id == user.user_id)


def get_board_for_user(db: Session, board_id: int, user: UserContext) -> Board:
    board = db.get(Board, board_id)
    if not board:
        raise HTTPException(status_code=404, detail="Board not found")
    if not user.is_admin and (not user.user_id or board.created_by_user_id != user.user_id):
        raise HTTPException(status_code=403, detail="Forbidden")
    return board


def get_column_for_user(db: Session, column_id: int, user: UserContext) -> BoardColumn:
    column = db.get(BoardColumn, column_id)
    if not column:
        raise HTTPException(status_code=404, detail="Column not found")
    get_board_for_user(db, column.board_id, user)
    return column


def get_card_for_user(db: Session, card_id: int, user: UserContext) -> Card:
    card = db.get(Card, card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Card not found")
    get_board_for_user(db, card.column.board_id, user)
    return card


def get_dispatcher(request: Request) -> AutomationDispatcher:
    dispatcher = getattr(request.app.state, "automation_dispatcher", None)
    if dispatcher is None:
        dispatcher = AutomationDispatcher()
        request.app.state.automation_dispatcher = dispatcher
    return dispatcher


def http_error(exc: TaskflowError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))
