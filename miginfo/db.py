"""Database engine and session setup."""

import logging
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


_engines: dict[str, Engine] = {}


def get_engine(database_url: str) -> Engine:
    """Return a cached engine for the given URL, creating SQLite parent dirs."""
    if database_url not in _engines:
        if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
            db_path = Path(database_url.removeprefix("sqlite:///"))
            db_path.parent.mkdir(parents=True, exist_ok=True)
        _engines[database_url] = create_engine(database_url)
        logger.debug(f"Created engine for {database_url}")
    return _engines[database_url]


def init_db(database_url: str) -> None:
    """Create all tables that don't exist yet."""
    import miginfo.models.schema_history  # noqa: F401

    Base.metadata.create_all(get_engine(database_url))


def get_session_factory(database_url: str) -> sessionmaker:
    return sessionmaker(bind=get_engine(database_url))
