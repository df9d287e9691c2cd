from __future__ import annotations

from functools import lru_cache

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from .errors import ConfigError
from .settings import settings


@lru_cache(maxsize=4)
def _build_session_factory(database_url: str) -> sessionmaker[Session]:
    engine = create_engine(database_url, pool_pre_ping=True)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


def get_session_factory() -> sessionmaker[Session] | None:
    """Pool-backed session factory, or None when no database is configured."""
    if not settings.database_url:
        return None
    return _build_session_factory(settings.database_url)


def get_engine() -> Engine:
    factory = get_session_factory()
    if factory is None:
        raise ConfigError("Database is not configured")
    bind = factory.kw["bind"]
    assert isinstance(bind, Engine)
    return bind


def check_db_health() -> bool:
    with get_engine().connect() as connection:
        connection.execute(text("SELECT 1"))
    return True
