"""
Append-only execution log for automations.

The sink writes through its own session so a rolled-back rule pipeline
still leaves its log row behind. Write failures are logged and swallowed;
logging must never change the outcome of a dispatch.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from ..core.db import SessionLocal
from ..models.automation import AutomationLog

RESULT_SUCCESS = "success"
RESULT_ERROR = "error"
RESULT_TEST_SUCCESS = "test_success"
RESULTS = {RESULT_SUCCESS, RESULT_ERROR, RESULT_TEST_SUCCESS}


class AutomationLogSink:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self.session_factory = session_factory
        self.logger = logging.getLogger("automation.log")

    def record(
        self,
        rule_id: int,
        trigger_data: Any,
        result: str,
        error_message: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        if result not in RESULTS:
            self.logger.warning("Unknown execution result %r for automation_id=%s", result, rule_id)
        try:
            with self.session_factory() as db:
                db.add(
                    AutomationLog(
                        automation_id=rule_id,
                        trigger_data=jsonable_encoder(trigger_data or {}),
                        execution_result=result,
                        error_message=error_message if result == RESULT_ERROR else None,
                        details=jsonable_encoder(details) if details is not None else None,
                    )
                )
                db.commit()
        except Exception:
            self.logger.exception("Failed to record automation log automation_id=%s result=%s", rule_id, result)
