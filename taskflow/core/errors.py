"""
Error types and logging helpers shared by the services layer.

Rule store errors (validation, not found) propagate to the HTTP layer.
Errors inside an automation pipeline are converted into failure records
by the dispatcher and never reach the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Optional


class TaskflowError(Exception):
    """Base class for domain errors raised by the services layer."""


class ValidationError(TaskflowError):
    """A required field is missing or a payload is malformed."""


class NotFoundError(TaskflowError):
    """The referenced rule, log entry, board or card does not exist."""


class UnknownActionError(TaskflowError):
    """An action descriptor names a kind no handler is registered for."""

    def __init__(self, kind: Any) -> None:
        self.kind = kind
        super().__init__(f"Unknown action type: {kind}")


class ConditionEvaluationError(TaskflowError):
    """A condition descriptor could not be parsed or evaluated."""


def log_exception(
    logger: logging.Logger,
    message: str,
    *,
    extra: Optional[dict] = None,
    exc: Optional[BaseException] = None,
) -> None:
    """Log `message` with the active (or given) exception and optional context."""
    if extra:
        details = " ".join(f"{key}={value}" for key, value in extra.items())
        message = f"{message} ({details})"
    if exc is not None:
        logger.error(message, exc_info=(type(exc), exc, exc.__traceback__))
    else:
        logger.exception(message)
