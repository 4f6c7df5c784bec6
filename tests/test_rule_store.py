import pytest

from taskflow.core.auth import UserContext
from taskflow.core.errors import NotFoundError, ValidationError
from taskflow.models.activity_log import ActivityLog
from taskflow.models.automation import Automation, AutomationLog
from taskflow.models.board import Board
from taskflow.schemas.automation import AutomationCreate, AutomationUpdate
from taskflow.services import rule_store


USER = UserContext(role="ADMIN", user_id="u-7", username="ops")


def _board(db) -> Board:
    board = Board(title="Automation board")
    db.add(board)
    db.commit()
    return board


def _create(db, board_id, **overrides) -> Automation:
    payload = {
        "board_id": board_id,
        "name": "Escalate urgent cards",
        "trigger_type": "card_created",
        "conditions": [{"type": "priority_is", "priorities": ["urgent"]}],
        "actions": [{"type": "assign_user", "user_id": "lead"}],
    }
    payload.update(overrides)
    return rule_store.create_rule(db, AutomationCreate(**payload), user=USER)


def test_create_rule_stores_descriptors(db):
    board = _board(db)
    rule = _create(db, board.id, trigger_config={"fields": ["priority"]})

    assert rule.id is not None
    assert rule.is_active is True
    assert rule.trigger_type == "card_created"
    assert rule.trigger_config == {"fields": ["priority"]}
    assert rule.conditions == [{"type": "priority_is", "priorities": ["urgent"]}]
    assert rule.actions == [{"type": "assign_user", "user_id": "lead"}]


@pytest.mark.parametrize("missing", ["board_id", "name", "trigger_type"])
def test_create_rule_requires_core_fields(db, missing):
    board = _board(db)
    board_id = None if missing == "board_id" else board.id
    overrides = {} if missing == "board_id" else {missing: None}
    with pytest.raises(ValidationError, match="Board ID, name, and trigger type are required"):
        _create(db, board_id, **overrides)


def test_create_rule_rejects_blank_name(db):
    board = _board(db)
    with pytest.raises(ValidationError):
        _create(db, board.id, name="   ")


def test_create_rule_unknown_board(db):
    with pytest.raises(NotFoundError, match="Board not found"):
        _create(db, 4242)


def test_update_merges_only_provided_fields(db):
    board = _board(db)
    rule = _create(db, board.id)

    updated = rule_store.update_rule(db, rule.id, AutomationUpdate(is_active=False), user=USER)
    assert updated.is_active is False
    assert updated.name == "Escalate urgent cards"
    assert updated.actions == [{"type": "assign_user", "user_id": "lead"}]

    updated = rule_store.update_rule(db, rule.id, AutomationUpdate(name="Renamed", conditions=[]), user=USER)
    assert updated.name == "Renamed"
    assert updated.conditions == []
    assert updated.is_active is False


def test_update_rejects_empty_name(db):
    board = _board(db)
    rule = _create(db, board.id)
    with pytest.raises(ValidationError):
        rule_store.update_rule(db, rule.id, AutomationUpdate(name="  "))


def test_unknown_rule_is_not_found(db):
    with pytest.raises(NotFoundError):
        rule_store.get_rule(db, 999)
    with pytest.raises(NotFoundError):
        rule_store.update_rule(db, 999, AutomationUpdate(is_active=True))
    with pytest.raises(NotFoundError):
        rule_store.delete_rule(db, 999)
    with pytest.raises(NotFoundError):
        rule_store.list_logs(db, 999)


def test_delete_removes_rule_and_logs(db):
    board = _board(db)
    rule = _create(db, board.id)
    db.add(AutomationLog(automation_id=rule.id, trigger_data={}, execution_result="success"))
    db.commit()
    rule_id = rule.id

    rule_store.delete_rule(db, rule_id, user=USER)

    assert db.get(Automation, rule_id) is None
    assert db.query(AutomationLog).filter(AutomationLog.automation_id == rule_id).count() == 0


def test_mutations_write_activity_trail(db):
    board = _board(db)
    rule = _create(db, board.id)
    rule_store.update_rule(db, rule.id, AutomationUpdate(is_active=False), user=USER)
    rule_store.delete_rule(db, rule.id, user=USER)

    entries = (
        db.query(ActivityLog)
        .filter(ActivityLog.entity_type == "automation")
        .order_by(ActivityLog.id)
        .all()
    )
    assert [e.action_type for e in entries] == ["create", "update", "delete"]
    assert all(e.board_id == board.id and e.actor == "ops" for e in entries)
    assert entries[1].old_values == {"name": "Escalate urgent cards", "is_active": True}
    assert entries[1].new_values == {"name": "Escalate urgent cards", "is_active": False}


def test_list_active_rules_filters_and_orders(db):
    board = _board(db)
    other = _board(db)
    first = _create(db, board.id, name="first")
    _create(db, board.id, name="moved", trigger_type="card_moved")
    _create(db, board.id, name="paused", is_active=False)
    third = _create(db, board.id, name="third")
    _create(db, other.id, name="elsewhere")

    rules = rule_store.list_active_rules(db, board.id, "card_created")
    assert [r.id for r in rules] == [first.id, third.id]
    assert len(rule_store.list_rules(db, board.id)) == 4


def test_list_logs_newest_first_with_limit(db):
    board = _board(db)
    rule = _create(db, board.id)
    for result in ["success", "error", "test_success"]:
        db.add(AutomationLog(automation_id=rule.id, trigger_data={}, execution_result=result))
    db.commit()

    logs = rule_store.list_logs(db, rule.id, limit=2)
    assert [log.execution_result for log in logs] == ["test_success", "error"]
