"""
Action execution for automation rules.

Actions run in list order and each produces exactly one result entry:
``{"action", "result"}`` on success or ``{"action", "error"}`` on failure.
A failing or unknown action never stops the actions after it. In
simulation mode descriptors are parsed and validated but no handler runs.

Card mutations go through `board_ops` so an action never re-triggers
automations.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

import requests
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import UnknownActionError, ValidationError
from ..models.board import Card
from ..schemas.automation import (
    ACTION_ADAPTER,
    AssignUserAction,
    MoveCardAction,
    SendNotificationAction,
    SendWebhookAction,
    UpdateFieldAction,
)
from . import board_ops
from .automation_conditions import event_card
from .notifications import PushProvider, build_payload, build_push_provider, send_push_to_user

ACTION_KINDS = {"move_card", "send_notification", "update_field", "assign_user", "send_webhook"}
RESULT_SUCCESS = "success"
RESULT_SIMULATED = "simulated_success"


def parse_action(raw: Any):
    kind = raw.get("type") if isinstance(raw, dict) else None
    if kind not in ACTION_KINDS:
        raise UnknownActionError(kind)
    try:
        return ACTION_ADAPTER.validate_python(raw)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(part) for part in first["loc"][1:]) or kind
        raise ValidationError(f"Invalid {kind} action: {where}: {first['msg']}") from exc


class ActionExecutor:
    def __init__(
        self,
        push_provider: Optional[PushProvider] = None,
        webhook_timeout_sec: Optional[float] = None,
    ) -> None:
        self.push_provider = push_provider
        self.webhook_timeout_sec = (
            webhook_timeout_sec if webhook_timeout_sec is not None else settings.webhook_timeout_sec
        )
        self.logger = logging.getLogger("automation.actions")
        self._handlers: dict[type, Callable[[Session, Any, dict, int], Optional[dict]]] = {
            MoveCardAction: self._move_card,
            SendNotificationAction: self._send_notification,
            UpdateFieldAction: self._update_field,
            AssignUserAction: self._assign_user,
            SendWebhookAction: self._send_webhook,
        }

    def execute_all(
        self,
        db: Session,
        actions: Optional[Iterable[Any]],
        event_data: dict,
        board_id: int,
        simulate: bool = False,
    ) -> list[dict]:
        results: list[dict] = []
        for raw in actions or []:
            try:
                action = parse_action(raw)
                if simulate:
                    results.append({"action": raw, "result": RESULT_SIMULATED})
                    continue
                detail = self._handlers[type(action)](db, action, event_data or {}, board_id)
            except Exception as exc:
                self.logger.warning("Automation action %r failed on board=%s: %s", raw, board_id, exc)
                results.append({"action": raw, "error": str(exc)})
                continue
            entry: dict = {"action": raw, "result": RESULT_SUCCESS}
            if detail:
                entry["detail"] = detail
            results.append(entry)
        return results

    def _card(self, db: Session, event_data: dict, board_id: int) -> Card:
        card_id = event_card(event_data).get("id")
        if card_id is None:
            raise ValidationError("Event has no card")
        card = board_ops.get_card(db, card_id)
        if card.column.board_id != board_id:
            raise ValidationError(f"Card {card.id} does not belong to board {board_id}")
        return card

    def _move_card(self, db: Session, action: MoveCardAction, event_data: dict, board_id: int) -> Optional[dict]:
        card = self._card(db, event_data, board_id)
        board_ops.move_card(db, card, action.target_column_id, action.position)
        return {"card_id": card.id, "column_id": card.column_id, "order_index": card.order_index}

    def _update_field(self, db: Session, action: UpdateFieldAction, event_data: dict, board_id: int) -> Optional[dict]:
        card = self._card(db, event_data, board_id)
        changes = board_ops.update_card_fields(db, card, {action.field: action.value})
        return {"card_id": card.id, "changes": changes}

    def _assign_user(self, db: Session, action: AssignUserAction, event_data: dict, board_id: int) -> Optional[dict]:
        card = self._card(db, event_data, board_id)
        changes = board_ops.update_card_fields(db, card, {"assignee_id": action.user_id})
        return {"card_id": card.id, "changes": changes}

    def _send_notification(
        self, db: Session, action: SendNotificationAction, event_data: dict, board_id: int
    ) -> Optional[dict]:
        card_data = event_card(event_data)
        recipient = action.user_id
        if not recipient and action.to_assignee:
            recipient = card_data.get("assignee_id")
            if not recipient:
                raise ValidationError("Card has no assignee to notify")
        payload = build_payload(
            action.title,
            action.message,
            data={"board_id": board_id, "card_id": card_data.get("id"), "url": f"/boards/{board_id}"},
            tag="automation",
        )
        provider = self.push_provider or build_push_provider()
        return send_push_to_user(db, recipient, payload, provider=provider)

    def _send_webhook(self, db: Session, action: SendWebhookAction, event_data: dict, board_id: int) -> Optional[dict]:
        body = {"board_id": board_id, "event": jsonable_encoder(event_data)}
        if action.payload:
            body["payload"] = action.payload
        response = requests.post(action.url, json=body, timeout=self.webhook_timeout_sec)
        response.raise_for_status()
        return {"status_code": response.status_code}
