import requests

from taskflow.models.board import Board, BoardColumn, Card
from taskflow.models.push_subscription import PushSubscription
from taskflow.services import automation_actions
from taskflow.services.automation_actions import ActionExecutor
from taskflow.services.board_ops import card_snapshot
from taskflow.services.notifications import PushDeliveryError, PushProvider


class RecordingProvider(PushProvider):
    def __init__(self, fail_status=None):
        self.sent = []
        self.fail_status = fail_status

    def send(self, subscription, payload):
        if self.fail_status:
            raise PushDeliveryError(subscription.endpoint, self.fail_status, "gone")
        self.sent.append((subscription.user_id, payload))


def _seed(db):
    board = Board(title="Sprint")
    db.add(board)
    db.flush()
    todo = BoardColumn(board_id=board.id, title="To Do", order_index=0)
    done = BoardColumn(board_id=board.id, title="Done", order_index=1)
    db.add_all([todo, done])
    db.flush()
    card = Card(column_id=todo.id, title="Ship it", order_index=1, assignee_id="u-1")
    db.add(card)
    db.commit()
    db.refresh(card)
    return board, todo, done, card


def test_move_card_and_update_field(db):
    board, todo, done, card = _seed(db)
    executor = ActionExecutor(push_provider=RecordingProvider())
    actions = [
        {"type": "move_card", "target_column_id": done.id},
        {"type": "update_field", "field": "priority", "value": "urgent"},
    ]
    results = executor.execute_all(db, actions, {"card": card_snapshot(card)}, board.id)
    db.commit()

    assert [r["result"] for r in results] == ["success", "success"]
    assert results[0]["action"] == actions[0]
    db.refresh(card)
    assert card.column_id == done.id
    assert card.priority == "urgent"
    assert results[1]["detail"]["changes"]["priority"] == {"from": "medium", "to": "urgent"}


def test_unknown_action_is_captured_and_later_actions_still_run(db):
    board, todo, done, card = _seed(db)
    executor = ActionExecutor(push_provider=RecordingProvider())
    actions = [
        {"type": "launch_rocket"},
        {"type": "assign_user", "user_id": "u-2"},
    ]
    results = executor.execute_all(db, actions, {"card": card_snapshot(card)}, board.id)

    assert results[0] == {"action": {"type": "launch_rocket"}, "error": "Unknown action type: launch_rocket"}
    assert results[1]["result"] == "success"
    assert card.assignee_id == "u-2"


def test_failing_action_reports_error(db):
    board, todo, done, card = _seed(db)
    executor = ActionExecutor(push_provider=RecordingProvider())
    results = executor.execute_all(
        db,
        [
            {"type": "update_field", "field": "priority", "value": "whenever"},
            {"type": "move_card", "target_column_id": 9999},
        ],
        {"card": card_snapshot(card)},
        board.id,
    )
    assert "Invalid priority" in results[0]["error"]
    assert "Column not found" in results[1]["error"]


def test_simulation_validates_without_side_effects(db):
    board, todo, done, card = _seed(db)
    executor = ActionExecutor(push_provider=RecordingProvider())
    results = executor.execute_all(
        db,
        [
            {"type": "move_card", "target_column_id": done.id},
            {"type": "move_card"},
        ],
        {"card": card_snapshot(card)},
        board.id,
        simulate=True,
    )
    assert results[0]["result"] == "simulated_success"
    assert "error" in results[1]
    db.refresh(card)
    assert card.column_id == todo.id


def test_send_notification_to_assignee(db):
    board, todo, done, card = _seed(db)
    db.add(PushSubscription(user_id="u-1", endpoint="https://push.example/1", p256dh_key="k", auth_key="a"))
    db.commit()
    provider = RecordingProvider()
    executor = ActionExecutor(push_provider=provider)
    results = executor.execute_all(
        db,
        [{"type": "send_notification", "to_assignee": True, "message": "Card moved"}],
        {"card": card_snapshot(card)},
        board.id,
    )
    assert results[0]["result"] == "success"
    assert results[0]["detail"]["sent"] == 1
    user_id, payload = provider.sent[0]
    assert user_id == "u-1"
    assert payload["body"] == "Card moved"
    assert payload["data"]["card_id"] == card.id


def test_expired_push_subscription_is_deactivated(db):
    board, todo, done, card = _seed(db)
    sub = PushSubscription(user_id="u-1", endpoint="https://push.example/gone", p256dh_key="k", auth_key="a")
    db.add(sub)
    db.commit()
    executor = ActionExecutor(push_provider=RecordingProvider(fail_status=410))
    results = executor.execute_all(
        db,
        [{"type": "send_notification", "user_id": "u-1", "message": "hello"}],
        {"card": card_snapshot(card)},
        board.id,
    )
    db.commit()
    assert results[0]["detail"] == {"success": False, "sent": 0, "total": 1}
    db.refresh(sub)
    assert sub.active is False


def test_send_webhook_posts_event(db, monkeypatch):
    board, todo, done, card = _seed(db)
    calls = []

    class FakeResponse:
        status_code = 204

        def raise_for_status(self):
            return None

    def fake_post(url, json=None, timeout=None):
        calls.append((url, json, timeout))
        return FakeResponse()

    monkeypatch.setattr(automation_actions.requests, "post", fake_post)
    executor = ActionExecutor(push_provider=RecordingProvider(), webhook_timeout_sec=2.5)
    results = executor.execute_all(
        db,
        [{"type": "send_webhook", "url": "https://hooks.example/taskflow", "payload": {"source": "rule"}}],
        {"card": card_snapshot(card)},
        board.id,
    )
    assert results[0]["result"] == "success"
    url, body, timeout = calls[0]
    assert url == "https://hooks.example/taskflow"
    assert body["board_id"] == board.id
    assert body["event"]["card"]["id"] == card.id
    assert body["payload"] == {"source": "rule"}
    assert timeout == 2.5


def test_send_webhook_failure_is_per_action(db, monkeypatch):
    board, todo, done, card = _seed(db)

    def fake_post(url, json=None, timeout=None):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(automation_actions.requests, "post", fake_post)
    executor = ActionExecutor(push_provider=RecordingProvider())
    results = executor.execute_all(
        db,
        [
            {"type": "send_webhook", "url": "https://hooks.example/down"},
            {"type": "update_field", "field": "title", "value": "Still runs"},
        ],
        {"card": card_snapshot(card)},
        board.id,
    )
    assert "connection refused" in results[0]["error"]
    assert results[1]["result"] == "success"
