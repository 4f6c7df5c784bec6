"""
Standalone automation worker entrypoint.

Runs the due-date scheduler outside the web process:

    python -m taskflow.worker

SIGINT and SIGTERM stop the scheduler before the process exits.
"""

from __future__ import annotations

import logging
import os
import signal
import threading

from .core.config import settings
from .core.db import SessionLocal
from .services.automation_dispatcher import AutomationDispatcher
from .services.automation_scheduler import AutomationScheduler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("worker")


def main() -> int:
    logger.info("Automation worker booted (pid=%s)", os.getpid())
    dispatcher = AutomationDispatcher(session_factory=SessionLocal)
    scheduler = AutomationScheduler(
        dispatcher,
        session_factory=SessionLocal,
        interval_sec=settings.automation_poll_interval_sec,
        horizons=settings.automation_due_horizons,
    )
    shutdown = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Received signal %s; shutting down automation worker", signum)
        shutdown.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    scheduler.start()
    try:
        while not shutdown.is_set():
            shutdown.wait(1.0)
    finally:
        scheduler.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
