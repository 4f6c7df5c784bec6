"""
API endpoints for card templates.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...core.auth import UserContext, get_current_user
from ...core.db import get_db
from ...models.card_template import CardTemplate
from ...schemas.board import TemplateCreate, TemplateOut
from ...services.board_ops import PRIORITIES
from ..deps import get_board_for_user


router = APIRouter(prefix="/api/v1", tags=["templates"])


@router.get("/boards/{board_id}/templates", response_model=List[TemplateOut])
def list_templates(
    board_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> List[TemplateOut]:
    get_board_for_user(db, board_id, user)
    rows = (
        db.query(CardTemplate)
        .filter(CardTemplate.board_id == board_id)
        .order_by(CardTemplate.created_at.desc(), CardTemplate.id.desc())
        .all()
    )
    return [TemplateOut.model_validate(r) for r in rows]


@router.post("/templates", response_model=TemplateOut, status_code=201)
def create_template(
    payload: TemplateCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> TemplateOut:
    name = (payload.name or "").strip()
    title = (payload.title or "").strip()
    if payload.board_id is None or not name or not title:
        raise HTTPException(status_code=400, detail="Board ID, name, and title are required")
    if payload.priority not in PRIORITIES:
        raise HTTPException(status_code=400, detail=f"Invalid priority: {payload.priority}")
    get_board_for_user(db, payload.board_id, user)
    template = CardTemplate(
        board_id=payload.board_id,
        name=name,
        title=title,
        description=payload.description,
        priority=payload.priority,
        labels=list(payload.labels),
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    return TemplateOut.model_validate(template)


@router.delete("/templates/{template_id}")
def delete_template(
    template_id: int,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    template = db.get(CardTemplate, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    get_board_for_user(db, template.board_id, user)
    db.delete(template)
    db.commit()
    return {"status": "deleted", "id": template_id}
