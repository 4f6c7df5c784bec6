"""
Pydantic schemas for board automations.

Conditions and actions are closed sets of tagged variants keyed by their
``type`` field. The API validates incoming rules against these unions so
only well-formed descriptors are ever written; the evaluator and executor
parse stored rows with the same adapters and fail closed on anything they
do not recognise.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator


class TriggerType(str, Enum):
    CARD_CREATED = "card_created"
    CARD_MOVED = "card_moved"
    CARD_UPDATED = "card_updated"
    CARD_COMPLETED = "card_completed"
    CHECKLIST_COMPLETED = "checklist_completed"
    DUE_DATE_APPROACHING = "due_date_approaching"


CardField = Literal["title", "description", "priority", "status", "due_date", "assignee_id", "column_id"]
UpdatableField = Literal["title", "description", "priority", "status", "due_date", "assignee_id"]


# Conditions


class FieldEqualsCondition(BaseModel):
    type: Literal["field_equals"]
    field: CardField
    value: Any = None


class FieldChangedCondition(BaseModel):
    type: Literal["field_changed"]
    field: CardField


class PriorityIsCondition(BaseModel):
    type: Literal["priority_is"]
    priorities: List[str] = Field(min_length=1)


class ColumnIsCondition(BaseModel):
    type: Literal["column_is"]
    column_id: int


class AssigneeIsCondition(BaseModel):
    type: Literal["assignee_is"]
    user_id: Optional[str] = None


class DueWithinDaysCondition(BaseModel):
    type: Literal["due_within_days"]
    days: int = Field(ge=0)


ConditionSpec = Annotated[
    Union[
        FieldEqualsCondition,
        FieldChangedCondition,
        PriorityIsCondition,
        ColumnIsCondition,
        AssigneeIsCondition,
        DueWithinDaysCondition,
    ],
    Field(discriminator="type"),
]


# Actions


class MoveCardAction(BaseModel):
    type: Literal["move_card"]
    target_column_id: int
    position: Optional[int] = Field(default=None, ge=0)


class SendNotificationAction(BaseModel):
    type: Literal["send_notification"]
    message: str = Field(min_length=1)
    title: str = "TaskFlow Pro"
    user_id: Optional[str] = None
    to_assignee: bool = False

    @model_validator(mode="after")
    def _needs_recipient(self) -> "SendNotificationAction":
        if not self.user_id and not self.to_assignee:
            raise ValueError("send_notification needs user_id or to_assignee")
        return self


class UpdateFieldAction(BaseModel):
    type: Literal["update_field"]
    field: UpdatableField
    value: Any = None


class AssignUserAction(BaseModel):
    type: Literal["assign_user"]
    user_id: Optional[str] = None


class SendWebhookAction(BaseModel):
    type: Literal["send_webhook"]
    url: str
    payload: Optional[dict] = None

    @field_validator("url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        value = value.strip()
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("url must be http(s)")
        return value


ActionSpec = Annotated[
    Union[
        MoveCardAction,
        SendNotificationAction,
        UpdateFieldAction,
        AssignUserAction,
        SendWebhookAction,
    ],
    Field(discriminator="type"),
]

CONDITION_ADAPTER: TypeAdapter = TypeAdapter(ConditionSpec)
ACTION_ADAPTER: TypeAdapter = TypeAdapter(ActionSpec)


class TriggerConfig(BaseModel):
    """Per-trigger options, read only by the dispatcher for the matching trigger type."""

    days_before: Optional[Union[int, List[int]]] = None
    from_column_id: Optional[int] = None
    to_column_id: Optional[int] = None
    fields: Optional[List[str]] = None

    model_config = ConfigDict(extra="allow")


# Rule payloads


class AutomationCreate(BaseModel):
    # Required fields are checked by the rule store so a missing one is a 400.
    board_id: Optional[int] = None
    name: Optional[str] = None
    trigger_type: Optional[TriggerType] = None
    trigger_config: TriggerConfig = Field(default_factory=TriggerConfig)
    conditions: List[ConditionSpec] = Field(default_factory=list)
    actions: List[ActionSpec] = Field(default_factory=list)
    is_active: bool = True


class AutomationUpdate(BaseModel):
    name: Optional[str] = None
    trigger_type: Optional[TriggerType] = None
    trigger_config: Optional[TriggerConfig] = None
    conditions: Optional[List[ConditionSpec]] = None
    actions: Optional[List[ActionSpec]] = None
    is_active: Optional[bool] = None


class AutomationOut(BaseModel):
    id: int
    board_id: int
    name: str
    trigger_type: str
    trigger_config: dict = Field(default_factory=dict)
    conditions: list = Field(default_factory=list)
    actions: list = Field(default_factory=list)
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AutomationLogOut(BaseModel):
    id: int
    automation_id: int
    trigger_data: Optional[dict] = None
    execution_result: str
    error_message: Optional[str] = None
    details: Optional[dict] = None
    executed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AutomationTestIn(BaseModel):
    test_data: dict = Field(default_factory=dict, validation_alias=AliasChoices("test_data", "testData"))
