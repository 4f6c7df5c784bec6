"""
Pydantic schemas for boards, columns, cards, checklists and templates.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BoardCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    background_color: Optional[str] = None
    columns: List[str] = Field(default_factory=lambda: ["To Do", "In Progress", "Done"])


class BoardUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    background_color: Optional[str] = None


class ColumnCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    order_index: Optional[int] = None


class ColumnUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    order_index: Optional[int] = None


class ColumnConfigUpdate(BaseModel):
    wip_limit: Optional[int] = Field(default=None, ge=0)
    is_collapsed: Optional[bool] = None


class ColumnOut(BaseModel):
    id: int
    board_id: int
    title: str
    order_index: int
    wip_limit: Optional[int] = None
    is_collapsed: bool = False

    model_config = ConfigDict(from_attributes=True)


class BoardOut(BaseModel):
    id: int
    title: str
    background_color: Optional[str] = None
    created_by_user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    columns: List[ColumnOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class CardCreate(BaseModel):
    column_id: int
    title: str = Field(min_length=1, max_length=512)
    description: Optional[str] = None
    status: str = "todo"
    priority: str = "medium"
    due_date: Optional[datetime] = None
    assignee_id: Optional[str] = None
    template_id: Optional[int] = None


class CardUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=512)
    description: Optional[str] = None
    column_id: Optional[int] = None
    order_index: Optional[int] = Field(default=None, ge=0)
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[datetime] = None
    assignee_id: Optional[str] = None


class CardMoveIn(BaseModel):
    column_id: int
    order_index: Optional[int] = Field(default=None, ge=0)


class CardOut(BaseModel):
    id: int
    column_id: int
    title: str
    description: Optional[str] = None
    order_index: int
    status: str
    priority: str
    due_date: Optional[datetime] = None
    assignee_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChecklistCreate(BaseModel):
    title: str = Field(default="Checklist", min_length=1, max_length=255)
    items: List[str] = Field(default_factory=list)


class ChecklistItemCreate(BaseModel):
    text: str = Field(min_length=1, max_length=1024)


class ChecklistItemUpdate(BaseModel):
    text: Optional[str] = Field(default=None, min_length=1, max_length=1024)
    completed: Optional[bool] = None


class ChecklistItemOut(BaseModel):
    id: int
    checklist_id: int
    text: str
    completed: bool
    order_index: int
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChecklistOut(BaseModel):
    id: int
    card_id: int
    title: str
    items: List[ChecklistItemOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class TemplateCreate(BaseModel):
    board_id: Optional[int] = None
    name: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    priority: str = "medium"
    labels: List[str] = Field(default_factory=list)


class TemplateOut(BaseModel):
    id: int
    board_id: int
    name: str
    title: str
    description: Optional[str] = None
    priority: str
    labels: list = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ActivityOut(BaseModel):
    id: int
    user_id: Optional[str] = None
    actor: Optional[str] = None
    board_id: Optional[int] = None
    card_id: Optional[int] = None
    action_type: str
    entity_type: str
    entity_id: int
    old_values: Optional[dict] = None
    new_values: Optional[dict] = None
    description: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
