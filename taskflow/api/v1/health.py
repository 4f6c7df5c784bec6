"""
Health endpoints for the TaskFlow Pro backend.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from ...core.config import get_app_env, settings
from ...core.db import get_db


router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("")
def health(request: Request, db: Session = Depends(get_db)) -> dict:
    db_ok = True
    try:
        db.execute(text("SELECT 1"))
    except Exception:
        db_ok = False
    return {
        "status": "ok" if db_ok else "degraded",
        "env": get_app_env(),
        "database": db_ok,
        "timestamp_utc": datetime.utcnow().isoformat() + "Z",
        "scheduler": scheduler_status(request),
    }


@router.get("/scheduler")
def scheduler_status(request: Request) -> dict:
    scheduler = getattr(request.app.state, "automation_scheduler", None)
    if scheduler is None:
        return {"enabled": False, "running": False, "interval_sec": settings.automation_poll_interval_sec}
    return {
        "enabled": True,
        "running": scheduler.is_running,
        "interval_sec": scheduler.interval_sec,
    }
