"""
Activity trail writer.

Entries are added to the caller's session so they commit together with
the change they describe.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from ..core.auth import UserContext
from ..models.activity_log import ActivityLog

logger = logging.getLogger("activity")


def log_activity(
    db: Session,
    *,
    user: Optional[UserContext],
    action_type: str,
    entity_type: str,
    entity_id: int,
    description: str,
    board_id: Optional[int] = None,
    card_id: Optional[int] = None,
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
) -> ActivityLog:
    entry = ActivityLog(
        user_id=user.user_id if user else None,
        actor=user.actor if user else "automation",
        board_id=board_id,
        card_id=card_id,
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        old_values=jsonable_encoder(old_values) if old_values is not None else None,
        new_values=jsonable_encoder(new_values) if new_values is not None else None,
        description=description,
    )
    db.add(entry)
    logger.debug("Activity %s %s id=%s board=%s", action_type, entity_type, entity_id, board_id)
    return entry
