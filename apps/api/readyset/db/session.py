from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from readyset.config import is_sqlite_url, settings


def _engine_options(database_url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True}
    if not is_sqlite_url(database_url):
        return options

    # Request handlers and the live stream's worker threads share connections
    options["connect_args"] = {"check_same_thread": False}
    if ":memory:" in database_url:
        # One connection, otherwise every session sees a fresh empty database
        options["poolclass"] = StaticPool
    return options


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> Callable[[], Session]:
    """Session factory for handlers that outlive the request scope (SSE streams)."""
    return SessionLocal
