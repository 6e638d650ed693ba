import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from miginfo.config import Settings
from miginfo.db import Base
from miginfo.models.schema_history import SchemaHistoryEntry  # noqa: F401


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def test_settings():
    """Settings pointing at an in-memory database."""
    return Settings(database_url="sqlite:///:memory:")
