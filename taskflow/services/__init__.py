"""
Service layer for the TaskFlow Pro backend.

This package contains the automation engine (rule store, dispatcher,
condition evaluator, action executor, scheduler and execution log) and the
card, activity and push helpers it collaborates with.
"""

from .automation_dispatcher import AutomationDispatcher
from .automation_scheduler import AutomationScheduler

__all__ = ["AutomationDispatcher", "AutomationScheduler"]
