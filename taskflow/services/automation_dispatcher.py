"""
Trigger dispatcher for board automations.

`dispatch` loads the active rules of a board for one trigger type, keeps the
ones whose trigger configuration matches the event, and runs each rule's
pipeline (conditions, then actions). Every rule yields one outcome and one
execution log row, whatever happens inside its pipeline.

The card mutation layer calls the ``on_*`` hooks after a change has been
committed; the scheduler calls `dispatch` directly for due-date events.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from ..core.db import SessionLocal
from ..core.errors import log_exception
from ..models import utcnow
from ..models.automation import Automation
from ..models.board import BoardColumn, Card
from ..schemas.automation import TriggerType
from . import rule_store
from .automation_actions import ActionExecutor
from .automation_conditions import evaluate
from .automation_log import RESULT_ERROR, RESULT_SUCCESS, RESULT_TEST_SUCCESS, AutomationLogSink
from .board_ops import card_changes, card_snapshot, column_snapshot

SKIP_REASON = "conditions_not_met"


def _as_card(value: Any) -> dict:
    if isinstance(value, Card):
        return card_snapshot(value)
    return dict(value or {})


def _as_column(value: Any) -> Optional[dict]:
    if isinstance(value, BoardColumn):
        return column_snapshot(value)
    return dict(value) if value else None


def _ids(value: Any) -> set[str]:
    values = value if isinstance(value, (list, tuple, set)) else [value]
    return {str(v) for v in values if v is not None}


def trigger_matches(trigger_type: str, config: Optional[dict], event_data: dict) -> bool:
    """Check a rule's trigger configuration against one event."""
    config = config or {}
    if trigger_type == TriggerType.DUE_DATE_APPROACHING.value:
        wanted = config.get("days_before")
        if wanted is None:
            return True
        days = event_data.get("days_until_due")
        return days is not None and str(days) in _ids(wanted)
    if trigger_type == TriggerType.CARD_MOVED.value:
        for key, event_key in (("from_column_id", "from_column"), ("to_column_id", "to_column")):
            wanted = config.get(key)
            if wanted is None:
                continue
            column = event_data.get(event_key) or {}
            if str(column.get("id")) != str(wanted):
                return False
        return True
    if trigger_type == TriggerType.CARD_UPDATED.value:
        fields = config.get("fields")
        if not fields:
            return True
        changes = event_data.get("changes") or {}
        return any(field in changes for field in fields)
    return True


class AutomationDispatcher:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        executor: Optional[ActionExecutor] = None,
        log_sink: Optional[AutomationLogSink] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session_factory = session_factory
        self.executor = executor or ActionExecutor()
        self.log_sink = log_sink or AutomationLogSink(session_factory)
        self.clock = clock
        self.logger = logging.getLogger("automation.dispatcher")

    def dispatch(self, board_id: int, trigger_type: Any, event_data: dict) -> list[dict]:
        try:
            trigger = TriggerType(trigger_type).value
        except ValueError:
            self.logger.warning("Ignoring unknown trigger type %r for board=%s", trigger_type, board_id)
            return []
        event_data = event_data or {}
        outcomes: list[dict] = []
        with self.session_factory() as db:
            rules = [
                rule
                for rule in rule_store.list_active_rules(db, board_id, trigger)
                if self._config_matches(rule, trigger, event_data)
            ]
            for rule in rules:
                rule_id = rule.id
                try:
                    outcome = self._run_pipeline(db, rule, event_data)
                    db.commit()
                except Exception as exc:
                    db.rollback()
                    log_exception(
                        self.logger,
                        "Automation pipeline failed",
                        extra={"automation_id": rule_id, "board_id": board_id, "trigger": trigger},
                    )
                    outcome = {"automation_id": rule_id, "error": str(exc)}
                    self.log_sink.record(rule_id, event_data, RESULT_ERROR, str(exc), details=outcome)
                else:
                    self.log_sink.record(rule_id, event_data, RESULT_SUCCESS, details=outcome)
                outcomes.append(outcome)
        self.logger.info("Executed %s automations for board=%s trigger=%s", len(outcomes), board_id, trigger)
        return outcomes

    def _config_matches(self, rule: Automation, trigger: str, event_data: dict) -> bool:
        try:
            return trigger_matches(trigger, rule.trigger_config, event_data)
        except Exception as exc:
            self.logger.warning("Trigger config of automation_id=%s is unusable: %s", rule.id, exc)
            return False

    def _run_pipeline(self, db: Optional[Session], rule: Automation, event_data: dict, simulate: bool = False) -> dict:
        if not evaluate(rule.conditions, event_data, now=self.clock()):
            return {"automation_id": rule.id, "skipped": True, "reason": SKIP_REASON}
        results = self.executor.execute_all(db, rule.actions, event_data, rule.board_id, simulate=simulate)
        return {"automation_id": rule.id, "executed": True, "action_results": results}

    def test_rule(self, rule: Automation, sample_data: Optional[dict]) -> dict:
        """Run `rule` against `sample_data` without side effects and log a test_success row."""
        sample_data = sample_data or {}
        outcome = self._run_pipeline(None, rule, sample_data, simulate=True)
        report = {
            "automation_id": rule.id,
            "automation_name": rule.name,
            "trigger_type": rule.trigger_type,
            "test_data": sample_data,
            "trigger_matched": trigger_matches(rule.trigger_type, rule.trigger_config, sample_data),
            "conditions_met": not outcome.get("skipped", False),
            "actions_executed": outcome.get("action_results", []),
            "simulation": True,
        }
        self.log_sink.record(rule.id, sample_data, RESULT_TEST_SUCCESS, details=report)
        return report

    def _trigger(self, board_id: int, trigger_type: TriggerType, event_data: dict) -> list[dict]:
        try:
            return self.dispatch(board_id, trigger_type, event_data)
        except Exception:
            log_exception(
                self.logger,
                "Error triggering automations",
                extra={"board_id": board_id, "trigger": trigger_type.value},
            )
            return []

    def on_card_created(self, card: Any, board_id: int) -> list[dict]:
        return self._trigger(board_id, TriggerType.CARD_CREATED, {"card": _as_card(card)})

    def on_card_moved(self, card: Any, from_column: Any, to_column: Any, board_id: int) -> list[dict]:
        return self._trigger(
            board_id,
            TriggerType.CARD_MOVED,
            {"card": _as_card(card), "from_column": _as_column(from_column), "to_column": _as_column(to_column)},
        )

    def on_card_updated(self, old_card: Any, new_card: Any, board_id: int) -> list[dict]:
        old_data, new_data = _as_card(old_card), _as_card(new_card)
        return self._trigger(
            board_id,
            TriggerType.CARD_UPDATED,
            {"old_card": old_data, "new_card": new_data, "changes": card_changes(old_data, new_data)},
        )

    def on_card_completed(self, card: Any, board_id: int) -> list[dict]:
        return self._trigger(board_id, TriggerType.CARD_COMPLETED, {"card": _as_card(card)})

    def on_checklist_completed(self, card: Any, checklist: Any, board_id: int) -> list[dict]:
        return self._trigger(
            board_id,
            TriggerType.CHECKLIST_COMPLETED,
            {"card": _as_card(card), "checklist": dict(checklist or {})},
        )
