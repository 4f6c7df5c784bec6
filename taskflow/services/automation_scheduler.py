"""
Due-date scheduler for board automations.

A daemon thread wakes every ``interval_sec`` seconds, looks for cards due
today or in 1, 3 or 7 calendar days and feeds ``due_date_approaching``
events into the dispatcher. A card is announced at most once per due date
and horizon for the lifetime of the process; keys for due dates already in
the past are dropped at the start of each scan.

Stopping waits up to ``timeout`` for the loop. A loop that is still inside
its last scan keeps its thread handle, and ``start()`` waits for it to exit
before launching a new one, so at most one loop is ever alive.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.db import SessionLocal
from ..models import utcnow
from ..models.board import BoardColumn, Card
from ..schemas.automation import TriggerType
from .automation_conditions import calendar_days_until
from .automation_dispatcher import AutomationDispatcher
from .board_ops import card_snapshot

DEFAULT_HORIZONS = (0, 1, 3, 7)


class AutomationScheduler:
    def __init__(
        self,
        dispatcher: AutomationDispatcher,
        session_factory: Callable[[], Session] = SessionLocal,
        interval_sec: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
        horizons: Optional[Iterable[int]] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.session_factory = session_factory
        self.interval_sec = interval_sec if interval_sec is not None else settings.automation_poll_interval_sec
        self.clock = clock
        self.horizons = tuple(sorted(set(horizons if horizons is not None else DEFAULT_HORIZONS)))
        self.logger = logging.getLogger("automation.scheduler")
        self._lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._announced: set[tuple[int, str, int]] = set()

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        with self._lock:
            previous = self._thread
            if previous is not None and previous.is_alive():
                if not self._stop_event.is_set():
                    return
                if previous is threading.current_thread():
                    return
                # a stopped loop may still be inside its last tick
                self.logger.info("Waiting for the previous scheduler loop to exit")
                previous.join()
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop_event,),
                name="automation-scheduler",
                daemon=True,
            )
            self._thread.start()
        self.logger.info("Automation scheduler started (interval=%ss)", self.interval_sec)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout)
        with self._lock:
            if self._thread is thread and not thread.is_alive():
                self._thread = None
        if thread.is_alive():
            self.logger.warning("Automation scheduler loop still finishing a cycle after %ss", timeout)
        else:
            self.logger.info("Automation scheduler stopped")

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            try:
                self.tick()
            except Exception as exc:
                self.logger.exception("Automation scheduler cycle failed: %s", exc)
            stop_event.wait(self.interval_sec)

    def tick(self, now: Optional[datetime] = None) -> list[dict]:
        """Run one due-date scan; returns the dispatch outcomes it produced."""
        now = now or self.clock()
        outcomes: list[dict] = []
        with self._tick_lock:
            self._forget_past(now)
            for board_id, card_data, days in self._due_cards(now):
                key = (card_data["id"], card_data["due_date"], days)
                if key in self._announced:
                    continue
                outcomes.extend(
                    self.dispatcher.dispatch(
                        board_id,
                        TriggerType.DUE_DATE_APPROACHING,
                        {"card": card_data, "days_until_due": days},
                    )
                )
                self._announced.add(key)
        return outcomes

    def _forget_past(self, now: datetime) -> None:
        today = now.date()
        self._announced = {
            key for key in self._announced if datetime.fromisoformat(key[1]).date() >= today
        }

    def _due_cards(self, now: datetime) -> list[tuple[int, dict, int]]:
        if not self.horizons:
            return []
        start = datetime(now.year, now.month, now.day) + timedelta(days=min(self.horizons))
        end = datetime(now.year, now.month, now.day) + timedelta(days=max(self.horizons) + 1)
        found: list[tuple[int, dict, int]] = []
        with self.session_factory() as db:
            rows = (
                db.query(Card, BoardColumn.board_id)
                .join(BoardColumn, Card.column_id == BoardColumn.id)
                .filter(Card.due_date.is_not(None), Card.due_date >= start, Card.due_date < end)
                .order_by(Card.due_date.asc(), Card.id.asc())
                .all()
            )
            for card, board_id in rows:
                days = calendar_days_until(card.due_date, now)
                if days in self.horizons:
                    found.append((board_id, card_snapshot(card), days))
        return found
