"""
Engine singleton for the conference database.

Stores, workflow operations, the outbox worker and Alembic all take their
connections from here. ``CONF_DATABASE_URL`` wins over ``database.url`` in
config/app_config.json; relative SQLite paths are anchored at the project
root. SQLite connections run in WAL mode with foreign keys enforced, which
the ``ON DELETE CASCADE`` / ``SET NULL`` rules of the schema depend on.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

PROJECT_ROOT = Path(__file__).resolve().parents[2]
_SQLITE_FILE_PREFIX = "sqlite:///"
_SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
    "PRAGMA busy_timeout=30000",
)

_engine: Engine | None = None


def resolve_database_url() -> str:
    url = os.environ.get("CONF_DATABASE_URL")
    if url:
        return url
    from config.settings import settings
    return settings.database.url


def absolute_sqlite_url(url: str) -> str:
    """``sqlite:///data/x.db`` -> ``sqlite:////<project>/data/x.db``, creating the directory."""
    if not url.startswith(_SQLITE_FILE_PREFIX):
        return url
    path = url[len(_SQLITE_FILE_PREFIX):]
    if path in ("", ":memory:") or os.path.isabs(path):
        return url
    target = (PROJECT_ROOT / path).resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    return f"{_SQLITE_FILE_PREFIX}{target}"


def _sqlite_on_connect(dbapi_conn, _record) -> None:
    cursor = dbapi_conn.cursor()
    try:
        for pragma in _SQLITE_PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


def build_engine(db_url: str, **kwargs) -> Engine:
    """Engine with the project's pool and SQLite settings; extra kwargs go to ``create_engine``."""
    from config.settings import settings

    sqlite = db_url.startswith("sqlite")
    engine = create_engine(
        db_url,
        echo=settings.database.echo,
        connect_args={"check_same_thread": False, "timeout": 30} if sqlite else {},
        pool_pre_ping=True,
        **kwargs,
    )
    if sqlite:
        event.listen(engine, "connect", _sqlite_on_connect)
    return engine


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine(absolute_sqlite_url(resolve_database_url()))
    return _engine


def set_engine(engine: Engine | None) -> None:
    """Replace the process-wide engine; ``None`` makes the next ``get_engine`` build a fresh one."""
    global _engine
    _engine = engine


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request."""
    with Session(get_engine()) as session:
        yield session


def init_db() -> None:
    """Create missing tables. Alembic owns real schema changes; this covers tests and first runs."""
    from confreview.db import models  # noqa: F401
    SQLModel.metadata.create_all(get_engine())
