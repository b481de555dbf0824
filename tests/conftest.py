from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db.session import enable_sqlite_savepoints
from app.models import access_token, payment  # noqa: F401 - register tables
from app.storage.memory import MemoryTokenStorage
from app.storage.sql import SqlTokenStorage


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def memory_storage():
    return MemoryTokenStorage()


@pytest.fixture
def sql_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def sql_storage(sql_session):
    return SqlTokenStorage(sql_session)


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    """Runs a test against both backends."""
    if request.param == "memory":
        return MemoryTokenStorage()
    return request.getfixturevalue("sql_storage")
