"""
Pydantic schemas for push notification subscriptions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PushKeys(BaseModel):
    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class PushSubscribeIn(BaseModel):
    endpoint: str = Field(min_length=1, max_length=1024)
    keys: PushKeys


class PushUnsubscribeIn(BaseModel):
    endpoint: str = Field(min_length=1, max_length=1024)


class PushSubscriptionOut(BaseModel):
    id: int
    user_id: str
    endpoint: str
    user_agent: Optional[str] = None
    active: bool
    created_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
