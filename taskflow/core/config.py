"""
Configuration for the TaskFlow Pro backend.

This module defines settings for the API server and the automation
worker, including the database connection and the automation scheduler.
Settings are loaded from environment variables or default values
suitable for development. Use environment variables or a `.env` file to
override as needed.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pathlib import Path
from dotenv import load_dotenv
import logging
import os

ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(ENV_PATH, override=False)


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Database connection string. Default uses a local SQLite file.
    database_url: str = Field(default="sqlite+pysqlite:///./taskflow.db", validation_alias="DATABASE_URL")
    auto_create_db: bool = Field(default=True, validation_alias="AUTO_CREATE_DB")
    auto_run_migrations: bool = Field(default=True, validation_alias="AUTO_RUN_MIGRATIONS")
    # Automation scheduler (due date scans)
    enable_automation_scheduler: bool = Field(default=True, validation_alias="ENABLE_AUTOMATION_SCHEDULER")
    automation_poll_interval_sec: int = Field(default=60, validation_alias="AUTOMATION_POLL_INTERVAL_SEC")
    automation_due_horizons: list[int] = Field(default=[0, 1, 3, 7], validation_alias="AUTOMATION_DUE_HORIZONS")
    # Push notifications: "log" writes to the log, "webpush" sends signed Web Push messages
    push_provider: str = Field(default="log", validation_alias="PUSH_PROVIDER")
    push_http_timeout_sec: float = Field(default=10.0, validation_alias="PUSH_HTTP_TIMEOUT_SEC")
    vapid_public_key: str = Field(default="", validation_alias="VAPID_PUBLIC_KEY")
    vapid_private_key: str = Field(default="", validation_alias="VAPID_PRIVATE_KEY")
    vapid_subject: str = Field(default="mailto:support@taskflowpro.com", validation_alias="VAPID_SUBJECT")
    webhook_timeout_sec: float = Field(default=10.0, validation_alias="WEBHOOK_TIMEOUT_SEC")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()


def get_app_env() -> str:
    raw = os.getenv("TASKFLOW_ENV") or os.getenv("APP_ENV") or "dev"
    env = raw.strip().lower()
    if env not in {"dev", "prod"}:
        logging.getLogger("config").warning("Unknown TASKFLOW_ENV=%s; defaulting to dev", raw)
        env = "dev"
    return env


def _auth_disabled() -> bool:
    return os.getenv("TASKFLOW_AUTH_DISABLED", "true").lower() in {"1", "true", "yes"}


def _is_weak_secret(secret: str | None) -> bool:
    if not secret:
        return True
    secret = secret.strip()
    if len(secret) < 20:
        return True
    weak = {"change-me", "changeme", "secret", "password", "admin", "taskflow"}
    return secret.lower() in weak


def validate_runtime_settings() -> None:
    env = get_app_env()
    logger = logging.getLogger("config")

    auth_disabled = _auth_disabled()
    jwt_secret = (os.getenv("TASKFLOW_JWT_SECRET") or "").strip()
    if env == "prod":
        if auth_disabled:
            raise RuntimeError("TASKFLOW_AUTH_DISABLED must be false in prod.")
        if _is_weak_secret(jwt_secret):
            raise RuntimeError("TASKFLOW_JWT_SECRET must be set to a strong value in prod.")
    elif not auth_disabled and _is_weak_secret(jwt_secret):
        logger.warning("TASKFLOW_JWT_SECRET is weak or missing; dev fallback will be used.")

    provider = (settings.push_provider or "").lower().strip()
    if provider not in {"log", "webpush"}:
        logger.error("PUSH_PROVIDER=%s is not supported; falling back to log provider.", provider)
        settings.push_provider = "log"
    elif provider == "webpush" and not (settings.vapid_public_key and settings.vapid_private_key):
        if env == "prod":
            raise RuntimeError("VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY must be set when PUSH_PROVIDER=webpush.")
        logger.warning("PUSH_PROVIDER=webpush without a VAPID key pair; push delivery will fail.")

    if settings.automation_poll_interval_sec < 1:
        logger.warning(
            "AUTOMATION_POLL_INTERVAL_SEC=%s is too small; using 1 second.",
            settings.automation_poll_interval_sec,
        )
        settings.automation_poll_interval_sec = 1

    if env == "prod" and settings.auto_create_db:
        logger.warning("AUTO_CREATE_DB is enabled in prod. Consider relying on migrations only.")


validate_runtime_settings()
