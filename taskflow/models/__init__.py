"""
SQLAlchemy model base class for the TaskFlow Pro backend.

This package defines ORM models for boards, columns, cards, checklists,
automations and their execution logs, users, push subscriptions and the
activity trail. All models should inherit from the declarative `Base`
defined here.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column stores UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


from .app_user import AppUser  # noqa: E402,F401
from .board import Board, BoardColumn, Card, Checklist, ChecklistItem  # noqa: E402,F401
from .card_template import CardTemplate  # noqa: E402,F401
from .automation import Automation, AutomationLog  # noqa: E402,F401
from .activity_log import ActivityLog  # noqa: E402,F401
from .push_subscription import PushSubscription  # noqa: E402,F401

__all__ = [
    "Base",
    "utcnow",

    # Users
    "AppUser",

    # Boards
    "Board",
    "BoardColumn",
    "Card",
    "Checklist",
    "ChecklistItem",
    "CardTemplate",

    # Automations
    "Automation",
    "AutomationLog",

    # Trail / notifications
    "ActivityLog",
    "PushSubscription",
]
