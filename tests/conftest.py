"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
DATABASE_URL is set before any signalboard import because the engine is
created at import time.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_signalboard.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from signalboard.db.base import Base, get_db
from signalboard.main import app
import signalboard.models  # noqa: F401

SQLITE_URL = "sqlite:///./test_signalboard.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def _clear_tables() -> None:
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    # Batch runs scan every active project, so each test starts empty.
    _clear_tables()
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        _clear_tables()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
