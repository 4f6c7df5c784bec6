"""
Push notification helpers (browser push subscriptions).

Delivery goes through a provider chosen by ``PUSH_PROVIDER``: ``log`` only
writes the notification to the log, ``webpush`` sends an encrypted Web Push
message signed with the VAPID key pair from settings. Subscriptions whose
endpoint answers 404 or 410 are deactivated.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Optional

import requests
from pywebpush import WebPushException, webpush
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models import utcnow
from ..models.push_subscription import PushSubscription

DEFAULT_ICON = "/icons/icon-192x192.png"
DEFAULT_BADGE = "/icons/icon-96x96.png"
DEFAULT_TTL_SEC = 24 * 60 * 60
EXPIRED_STATUS_CODES = {404, 410}


class PushDeliveryError(RuntimeError):
    def __init__(self, endpoint: str, status_code: Optional[int], message: str) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class PushProvider:
    def send(self, subscription: PushSubscription, payload: dict) -> None:
        raise NotImplementedError


class LogPushProvider(PushProvider):
    def send(self, subscription: PushSubscription, payload: dict) -> None:
        logging.getLogger("notifications").info(
            "Push to user=%s endpoint=%s title=%s body=%s",
            subscription.user_id,
            subscription.endpoint,
            payload.get("title"),
            payload.get("body"),
        )


class WebPushProvider(PushProvider):
    """Encrypted Web Push delivery signed with the server's VAPID key."""

    def __init__(
        self,
        vapid_private_key: Optional[str] = None,
        vapid_subject: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        ttl_sec: int = DEFAULT_TTL_SEC,
    ) -> None:
        self.vapid_private_key = vapid_private_key if vapid_private_key is not None else settings.vapid_private_key
        self.vapid_subject = vapid_subject if vapid_subject is not None else settings.vapid_subject
        self.timeout_sec = timeout_sec if timeout_sec is not None else settings.push_http_timeout_sec
        self.ttl_sec = ttl_sec

    def send(self, subscription: PushSubscription, payload: dict) -> None:
        if not self.vapid_private_key:
            raise PushDeliveryError(subscription.endpoint, None, "VAPID_PRIVATE_KEY is not configured")
        subscription_info = {
            "endpoint": subscription.endpoint,
            "keys": {"p256dh": subscription.p256dh_key, "auth": subscription.auth_key},
        }
        try:
            webpush(
                subscription_info=subscription_info,
                data=json.dumps(payload),
                vapid_private_key=self.vapid_private_key,
                # webpush fills in aud/exp, so each call gets its own claims
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl_sec,
                timeout=self.timeout_sec,
            )
        except WebPushException as exc:
            response = getattr(exc, "response", None)
            status_code = getattr(response, "status_code", None)
            raise PushDeliveryError(subscription.endpoint, status_code, f"Push rejected: {exc}") from exc
        except requests.RequestException as exc:
            raise PushDeliveryError(subscription.endpoint, None, f"Push request failed: {exc}") from exc


def build_push_provider() -> PushProvider:
    if (settings.push_provider or "").lower() == "webpush":
        return WebPushProvider()
    return LogPushProvider()


def build_payload(title: str, body: str, data: Optional[dict] = None, tag: str = "general") -> dict:
    return {
        "title": title,
        "body": body,
        "icon": DEFAULT_ICON,
        "badge": DEFAULT_BADGE,
        "tag": tag,
        "data": data or {},
        "timestamp": int(time.time() * 1000),
    }


def send_push_to_user(
    db: Session,
    user_id: str,
    payload: dict,
    provider: Optional[PushProvider] = None,
) -> dict:
    """Send `payload` to every active subscription of `user_id`.

    Returns ``{"success", "sent", "total"}`` plus a ``reason`` when nothing
    was attempted. Changes to subscriptions are left for the caller to commit.
    """
    logger = logging.getLogger("notifications")
    provider = provider or build_push_provider()
    subscriptions = (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == str(user_id), PushSubscription.active == True)  # noqa: E712
        .order_by(PushSubscription.id.asc())
        .all()
    )
    if not subscriptions:
        logger.info("No active push subscriptions for user %s", user_id)
        return {"success": False, "sent": 0, "total": 0, "reason": "no_subscriptions"}

    sent = 0
    for sub in subscriptions:
        try:
            provider.send(sub, payload)
        except PushDeliveryError as exc:
            logger.warning("Push delivery failed (%s): %s", sub.endpoint, exc)
            if exc.status_code in EXPIRED_STATUS_CODES:
                sub.active = False
                db.add(sub)
            continue
        sent += 1
        sub.last_used_at = utcnow()
        db.add(sub)
    db.flush()
    logger.info("Sent push notification to %s/%s subscriptions for user %s", sent, len(subscriptions), user_id)
    return {"success": sent > 0, "sent": sent, "total": len(subscriptions)}
