"""
ORM models for board automations and their execution log.

An automation row stores the trigger type, the trigger configuration and
the ordered condition/action descriptor lists as JSON. The descriptors are
validated by `taskflow.schemas.automation` before they are written.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base, utcnow


class Automation(Base):
    __tablename__ = "automations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    board_id: Mapped[int] = mapped_column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    trigger_type: Mapped[str] = mapped_column(String(64), index=True)
    trigger_config: Mapped[dict] = mapped_column(JSON, default=dict)
    conditions: Mapped[list] = mapped_column(JSON, default=list)
    actions: Mapped[list] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    board: Mapped["Board"] = relationship("Board", back_populates="automations")  # noqa: F821
    logs: Mapped[list[AutomationLog]] = relationship(
        "AutomationLog",
        back_populates="automation",
        cascade="all, delete-orphan",
        order_by="AutomationLog.id",
    )


class AutomationLog(Base):
    __tablename__ = "automation_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    automation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("automations.id", ondelete="CASCADE"), index=True
    )
    trigger_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    # success | error | test_success
    execution_result: Mapped[str] = mapped_column(String(32))
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    executed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    automation: Mapped[Automation] = relationship("Automation", back_populates="logs")
