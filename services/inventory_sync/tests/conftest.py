import os

# No throttling or backoff sleeps in tests
os.environ.setdefault("BATCH_DELAY_SECONDS", "0")
os.environ.setdefault("INVENTORY_BATCH_DELAY_SECONDS", "0")
os.environ.setdefault("RETRY_BACKOFF_SECONDS", "0")
os.environ.setdefault("SQUARE_ACCESS_TOKEN", "test-token")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.db.database import Base


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads (TestClient runs in one)"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
