"""
Entry point for the TaskFlow Pro backend.

This module creates the FastAPI application, includes all API routers and
wires the automation dispatcher and due-date scheduler into the app state.
Run with:

    uvicorn taskflow.main:app --reload

"""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI

from .api import api_router
from .core.config import get_app_env, settings
from .core.db import SessionLocal, engine
from .core.errors import log_exception
from .models import Base
from .scripts.run_migrations import run_migrations_to_head
from .services.automation_dispatcher import AutomationDispatcher
from .services.automation_scheduler import AutomationScheduler


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() in {"1", "true", "yes"}


def create_app() -> FastAPI:
    app = FastAPI(title="TaskFlow Pro Backend", version="0.1.0")
    # Include API routers
    app.include_router(api_router)
    dispatcher = AutomationDispatcher(session_factory=SessionLocal)
    app.state.automation_dispatcher = dispatcher
    app.state.automation_scheduler = None

    @app.on_event("startup")
    def _init_db() -> None:
        logger = logging.getLogger("startup")
        env = get_app_env()
        if _env_flag("AUTO_CREATE_DB", settings.auto_create_db):
            try:
                Base.metadata.create_all(bind=engine)
            except Exception as exc:
                log_exception(logger, "DB create_all failed", exc=exc)
                if env == "prod":
                    raise
        if _env_flag("AUTO_RUN_MIGRATIONS", settings.auto_run_migrations):
            try:
                run_migrations_to_head()
            except Exception as exc:
                log_exception(logger, "DB migrations failed", exc=exc)
                if env == "prod":
                    raise
        if _env_flag("ENABLE_AUTOMATION_SCHEDULER", settings.enable_automation_scheduler):
            scheduler = AutomationScheduler(
                dispatcher,
                session_factory=SessionLocal,
                interval_sec=settings.automation_poll_interval_sec,
                horizons=settings.automation_due_horizons,
            )
            scheduler.start()
            app.state.automation_scheduler = scheduler

    @app.on_event("shutdown")
    def _shutdown() -> None:
        scheduler = getattr(app.state, "automation_scheduler", None)
        if scheduler:
            scheduler.stop()

    return app


app = create_app()
