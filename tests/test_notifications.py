import json

import pytest
import requests
from pywebpush import WebPushException

from taskflow.core.config import settings
from taskflow.models.push_subscription import PushSubscription
from taskflow.services import notifications
from taskflow.services.notifications import PushDeliveryError, WebPushProvider, build_payload, send_push_to_user


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


def _subscribe(db, user_id, endpoint):
    sub = PushSubscription(user_id=user_id, endpoint=endpoint, p256dh_key="k", auth_key="a")
    db.add(sub)
    db.commit()
    return sub


def _provider(timeout=1):
    return WebPushProvider(vapid_private_key="private-key", vapid_subject="mailto:ops@example.com", timeout_sec=timeout)


def _rejecting(status_code):
    def fake_webpush(**kwargs):
        raise WebPushException("Push failed", response=FakeResponse(status_code))

    return fake_webpush


def test_no_subscriptions(db):
    result = send_push_to_user(db, "nobody", build_payload("t", "b"))
    assert result == {"success": False, "sent": 0, "total": 0, "reason": "no_subscriptions"}


def test_webpush_provider_signs_and_encrypts(db, monkeypatch):
    calls = []
    monkeypatch.setattr(notifications, "webpush", lambda **kwargs: calls.append(kwargs))
    sub = _subscribe(db, "u-1", "https://push.example/ok")

    result = send_push_to_user(db, "u-1", build_payload("Hi", "there", tag="test"), provider=_provider(3))
    db.commit()

    assert result == {"success": True, "sent": 1, "total": 1}
    call = calls[0]
    assert call["subscription_info"] == {
        "endpoint": "https://push.example/ok",
        "keys": {"p256dh": "k", "auth": "a"},
    }
    assert call["vapid_private_key"] == "private-key"
    assert call["vapid_claims"] == {"sub": "mailto:ops@example.com"}
    assert call["ttl"] == notifications.DEFAULT_TTL_SEC
    assert call["timeout"] == 3
    body = json.loads(call["data"])
    assert body["title"] == "Hi" and body["tag"] == "test"
    db.refresh(sub)
    assert sub.last_used_at is not None


def test_webpush_provider_failures(monkeypatch):
    sub = PushSubscription(user_id="u-1", endpoint="https://push.example/x", p256dh_key="k", auth_key="a")

    monkeypatch.setattr(notifications, "webpush", _rejecting(410))
    with pytest.raises(PushDeliveryError) as excinfo:
        _provider().send(sub, {})
    assert excinfo.value.status_code == 410

    def refuse(**kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(notifications, "webpush", refuse)
    with pytest.raises(PushDeliveryError) as excinfo:
        _provider().send(sub, {})
    assert excinfo.value.status_code is None


def test_missing_vapid_key_is_a_delivery_error(monkeypatch):
    monkeypatch.setattr(notifications, "webpush", lambda **kwargs: pytest.fail("must not send unsigned"))
    sub = PushSubscription(user_id="u-1", endpoint="https://push.example/x", p256dh_key="k", auth_key="a")
    with pytest.raises(PushDeliveryError, match="VAPID_PRIVATE_KEY"):
        WebPushProvider(vapid_private_key="").send(sub, {})


def test_expired_subscription_is_deactivated(db, monkeypatch):
    monkeypatch.setattr(notifications, "webpush", _rejecting(404))
    sub = _subscribe(db, "u-3", "https://push.example/gone")

    result = send_push_to_user(db, "u-3", build_payload("t", "b"), provider=_provider())
    db.commit()

    assert result == {"success": False, "sent": 0, "total": 1}
    db.refresh(sub)
    assert sub.active is False


def test_transient_failure_keeps_subscription(db, monkeypatch):
    monkeypatch.setattr(notifications, "webpush", _rejecting(500))
    sub = _subscribe(db, "u-2", "https://push.example/flaky")

    result = send_push_to_user(db, "u-2", build_payload("t", "b"), provider=_provider())
    db.commit()

    assert result == {"success": False, "sent": 0, "total": 1}
    db.refresh(sub)
    assert sub.active is True


def test_vapid_public_key_route(client, monkeypatch):
    monkeypatch.setattr(settings, "vapid_public_key", "")
    assert client.get("/api/v1/push/vapid-public-key").status_code == 503

    monkeypatch.setattr(settings, "vapid_public_key", "BPublicKey")
    response = client.get("/api/v1/push/vapid-public-key")
    assert response.status_code == 200
    assert response.json() == {"publicKey": "BPublicKey"}
