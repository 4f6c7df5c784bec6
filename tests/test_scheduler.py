import datetime
import threading

from taskflow.models.automation import Automation, AutomationLog
from taskflow.models.board import Board, BoardColumn, Card
from taskflow.services.automation_actions import ActionExecutor
from taskflow.services.automation_dispatcher import AutomationDispatcher
from taskflow.services.automation_scheduler import AutomationScheduler
from taskflow.services.notifications import LogPushProvider


NOW = datetime.datetime(2026, 6, 1, 8, 0)


class RecordingDispatcher:
    def __init__(self):
        self.calls = []

    def dispatch(self, board_id, trigger_type, event_data):
        self.calls.append((board_id, trigger_type.value, event_data))
        return [{"automation_id": 1, "executed": True, "action_results": []}]


def _seed_cards(session_factory, *due_dates):
    with session_factory() as db:
        board = Board(title="Release")
        db.add(board)
        db.flush()
        column = BoardColumn(board_id=board.id, title="To Do", order_index=0)
        db.add(column)
        db.flush()
        cards = [
            Card(column_id=column.id, title=f"Card {i}", order_index=i + 1, due_date=due)
            for i, due in enumerate(due_dates)
        ]
        db.add_all(cards)
        db.commit()
        return board.id, [card.id for card in cards]


def test_tick_dispatches_cards_on_a_horizon(session_factory):
    board_id, (in_three, in_two, no_due) = _seed_cards(
        session_factory,
        datetime.datetime(2026, 6, 4, 17, 0),
        datetime.datetime(2026, 6, 3, 9, 0),
        None,
    )
    dispatcher = RecordingDispatcher()
    scheduler = AutomationScheduler(dispatcher, session_factory=session_factory, clock=lambda: NOW)

    outcomes = scheduler.tick()

    assert len(outcomes) == 1
    assert len(dispatcher.calls) == 1
    called_board, trigger, event = dispatcher.calls[0]
    assert called_board == board_id
    assert trigger == "due_date_approaching"
    assert event["card"]["id"] == in_three
    assert event["days_until_due"] == 3


def test_second_tick_does_not_announce_again(session_factory):
    _seed_cards(session_factory, datetime.datetime(2026, 6, 1, 23, 0))
    dispatcher = RecordingDispatcher()
    scheduler = AutomationScheduler(dispatcher, session_factory=session_factory, clock=lambda: NOW)

    scheduler.tick()
    scheduler.tick()
    assert [call[2]["days_until_due"] for call in dispatcher.calls] == [0]

    # overdue cards are not announced
    assert scheduler.tick(now=NOW + datetime.timedelta(days=1)) == []


def test_rescheduled_due_date_is_announced_again(session_factory):
    board_id, (card_id,) = _seed_cards(session_factory, datetime.datetime(2026, 6, 2, 12, 0))
    dispatcher = RecordingDispatcher()
    scheduler = AutomationScheduler(dispatcher, session_factory=session_factory, clock=lambda: NOW)
    scheduler.tick()

    with session_factory() as db:
        db.get(Card, card_id).due_date = datetime.datetime(2026, 6, 2, 18, 0)
        db.commit()
    scheduler.tick()

    assert [call[2]["days_until_due"] for call in dispatcher.calls] == [1, 1]


def test_tick_runs_matching_rules_end_to_end(session_factory):
    board_id, (card_id,) = _seed_cards(session_factory, datetime.datetime(2026, 6, 8, 10, 0))
    with session_factory() as db:
        db.add_all(
            [
                Automation(
                    board_id=board_id,
                    name="Week ahead",
                    trigger_type="due_date_approaching",
                    trigger_config={"days_before": [7]},
                    conditions=[],
                    actions=[{"type": "update_field", "field": "priority", "value": "high"}],
                ),
                Automation(
                    board_id=board_id,
                    name="Day before",
                    trigger_type="due_date_approaching",
                    trigger_config={"days_before": 1},
                    conditions=[],
                    actions=[{"type": "update_field", "field": "priority", "value": "urgent"}],
                ),
            ]
        )
        db.commit()
    dispatcher = AutomationDispatcher(
        session_factory=session_factory,
        executor=ActionExecutor(push_provider=LogPushProvider()),
        clock=lambda: NOW,
    )
    scheduler = AutomationScheduler(dispatcher, session_factory=session_factory, clock=lambda: NOW)

    outcomes = scheduler.tick()

    assert len(outcomes) == 1
    assert outcomes[0]["executed"] is True
    with session_factory() as db:
        assert db.get(Card, card_id).priority == "high"
        assert db.query(AutomationLog).count() == 1


def test_custom_horizons(session_factory):
    _seed_cards(session_factory, datetime.datetime(2026, 6, 3, 9, 0))
    dispatcher = RecordingDispatcher()
    scheduler = AutomationScheduler(
        dispatcher, session_factory=session_factory, clock=lambda: NOW, horizons=[2]
    )
    scheduler.tick()
    assert [call[2]["days_until_due"] for call in dispatcher.calls] == [2]


def test_start_and_stop_are_idempotent(session_factory):
    scheduler = AutomationScheduler(
        RecordingDispatcher(), session_factory=session_factory, interval_sec=60, clock=lambda: NOW
    )
    scheduler.stop()
    scheduler.start()
    first = scheduler._thread
    scheduler.start()
    assert scheduler._thread is first
    assert scheduler.is_running
    scheduler.stop()
    scheduler.stop()
    assert not scheduler.is_running


def test_failing_cycle_keeps_the_loop_alive(session_factory):
    class FlakyScheduler(AutomationScheduler):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self.cycles = 0
            self.second_cycle = threading.Event()

        def tick(self, now=None):
            self.cycles += 1
            if self.cycles >= 2:
                self.second_cycle.set()
            raise RuntimeError("database unavailable")

    scheduler = FlakyScheduler(
        RecordingDispatcher(), session_factory=session_factory, interval_sec=0.01, clock=lambda: NOW
    )
    scheduler.start()
    try:
        assert scheduler.second_cycle.wait(5)
        assert scheduler.is_running
    finally:
        scheduler.stop()


def _scheduler_threads():
    return {t for t in threading.enumerate() if t.name == "automation-scheduler" and t.is_alive()}


def test_announced_keys_are_dropped_once_due_dates_pass(session_factory):
    start = datetime.datetime(2026, 6, 1, 12, 0)
    _seed_cards(session_factory, *[start + datetime.timedelta(days=i) for i in range(30)])
    dispatcher = RecordingDispatcher()
    scheduler = AutomationScheduler(dispatcher, session_factory=session_factory, clock=lambda: NOW)

    for day in range(60):
        now = NOW + datetime.timedelta(days=day)
        scheduler.tick(now=now)
        # only keys for today or later survive a scan
        assert all(
            datetime.datetime.fromisoformat(due).date() >= now.date() for _, due, _ in scheduler._announced
        )
        assert len(scheduler._announced) <= 4 * 8

    assert scheduler._announced == set()
    # pruning does not re-announce: every card got each of its horizons once
    announced = [(call[2]["card"]["id"], call[2]["days_until_due"]) for call in dispatcher.calls]
    assert len(announced) == len(set(announced))


def test_restart_waits_for_a_loop_still_in_its_last_cycle(session_factory):
    class SlowScheduler(AutomationScheduler):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self.entered = threading.Event()
            self.release = threading.Event()

        def tick(self, now=None):
            self.entered.set()
            self.release.wait(5)
            return []

    before = _scheduler_threads()
    scheduler = SlowScheduler(
        RecordingDispatcher(), session_factory=session_factory, interval_sec=60, clock=lambda: NOW
    )
    scheduler.start()
    try:
        assert scheduler.entered.wait(5)
        first = scheduler._thread
        scheduler.stop(timeout=0.05)
        assert first.is_alive()
        assert not scheduler.is_running

        restarter = threading.Thread(target=scheduler.start)
        restarter.start()
        restarter.join(0.2)
        assert restarter.is_alive()
        assert len(_scheduler_threads() - before) == 1

        scheduler.release.set()
        restarter.join(5)
        assert not restarter.is_alive()
        assert not first.is_alive()
        assert scheduler.is_running
        assert scheduler._thread is not first
        assert len(_scheduler_threads() - before) == 1
    finally:
        scheduler.release.set()
        scheduler.stop()


def test_concurrent_starts_launch_one_loop(session_factory):
    before = _scheduler_threads()
    scheduler = AutomationScheduler(
        RecordingDispatcher(), session_factory=session_factory, interval_sec=60, clock=lambda: NOW
    )
    barrier = threading.Barrier(8)

    def start():
        barrier.wait(5)
        scheduler.start()

    starters = [threading.Thread(target=start) for _ in range(8)]
    for t in starters:
        t.start()
    for t in starters:
        t.join(5)
    try:
        assert scheduler.is_running
        assert len(_scheduler_threads() - before) == 1
    finally:
        scheduler.stop()
    assert not scheduler.is_running
