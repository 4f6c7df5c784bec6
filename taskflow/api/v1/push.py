"""
Push subscription endpoints.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from ...core.auth import UserContext, get_current_user
from ...core.config import settings
from ...core.db import get_db
from ...models.push_subscription import PushSubscription
from ...schemas.push import PushSubscribeIn, PushSubscriptionOut, PushUnsubscribeIn
from ...services.notifications import build_payload, send_push_to_user


router = APIRouter(prefix="/api/v1/push", tags=["push"])


def _subscriber_id(user: UserContext) -> str:
    subscriber = user.user_id or user.username
    if not subscriber:
        raise HTTPException(status_code=400, detail="User identity required")
    return subscriber


@router.get("/vapid-public-key")
def vapid_public_key() -> dict:
    if not settings.vapid_public_key:
        raise HTTPException(status_code=503, detail="Push notifications are not configured")
    return {"publicKey": settings.vapid_public_key}


@router.post("/subscribe", response_model=PushSubscriptionOut)
def subscribe(
    payload: PushSubscribeIn,
    user_agent: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> PushSubscriptionOut:
    user_id = _subscriber_id(user)
    sub = (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == payload.endpoint)
        .first()
    )
    if sub is None:
        sub = PushSubscription(user_id=user_id, endpoint=payload.endpoint)
    sub.p256dh_key = payload.keys.p256dh
    sub.auth_key = payload.keys.auth
    sub.user_agent = (user_agent or "")[:512] or None
    sub.active = True
    db.add(sub)
    db.commit()
    db.refresh(sub)
    return PushSubscriptionOut.model_validate(sub)


@router.post("/unsubscribe")
def unsubscribe(
    payload: PushUnsubscribeIn,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    user_id = _subscriber_id(user)
    updated = (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == payload.endpoint)
        .update({PushSubscription.active: False}, synchronize_session=False)
    )
    db.commit()
    if not updated:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return {"status": "unsubscribed"}


@router.get("/subscriptions", response_model=List[PushSubscriptionOut])
def list_subscriptions(
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> List[PushSubscriptionOut]:
    user_id = _subscriber_id(user)
    rows = (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id)
        .order_by(PushSubscription.created_at.desc(), PushSubscription.id.desc())
        .all()
    )
    return [PushSubscriptionOut.model_validate(r) for r in rows]


@router.post("/test")
def send_test_notification(
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    user_id = _subscriber_id(user)
    payload = build_payload("TaskFlow Pro", "Push notifications are working.", tag="test")
    result = send_push_to_user(db, user_id, payload)
    db.commit()
    return result
