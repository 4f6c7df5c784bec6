import os
import tempfile
from pathlib import Path

# Isolated lightweight DB, no migrations and no background scheduler.
DB_PATH = Path(tempfile.gettempdir()) / f"taskflow_test_{os.getpid()}.db"
if DB_PATH.exists():
    DB_PATH.unlink()

os.environ.setdefault("DATABASE_URL", f"sqlite+pysqlite:///{DB_PATH}")
os.environ.setdefault("AUTO_CREATE_DB", "true")
os.environ.setdefault("AUTO_RUN_MIGRATIONS", "false")
os.environ.setdefault("ENABLE_AUTOMATION_SCHEDULER", "false")
os.environ.setdefault("TASKFLOW_ENV", "dev")
os.environ.setdefault("TASKFLOW_AUTH_DISABLED", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("PUSH_PROVIDER", "log")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from taskflow.core.db import enable_sqlite_foreign_keys
from taskflow.models import Base


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'automation.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    yield factory
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client():
    from fastapi.testclient import TestClient

    from taskflow.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def board(client):
    response = client.post("/api/v1/boards", json={"title": "Sprint board"})
    assert response.status_code == 201
    return response.json()
