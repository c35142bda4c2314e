"""Alembic environment for the conference schema.

The database URL comes from ``CONF_DATABASE_URL`` / config/app_config.json
unless ``sqlalchemy.url`` in alembic.ini is set to a real URL. SQLite needs
batch mode for ALTER TABLE, so it is always on.
"""
from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlmodel import SQLModel

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import confreview.db.models  # noqa: F401,E402  registers every table on SQLModel.metadata
from confreview.db.engine import absolute_sqlite_url, build_engine, resolve_database_url  # noqa: E402

_PLACEHOLDER = "driver://"

alembic_cfg = context.config
if alembic_cfg.config_file_name is not None:
    fileConfig(alembic_cfg.config_file_name)


def database_url() -> str:
    url = alembic_cfg.get_main_option("sqlalchemy.url", default="") or ""
    if url.startswith(_PLACEHOLDER) or not url:
        url = resolve_database_url()
    return absolute_sqlite_url(url)


def _configure(**kwargs) -> None:
    context.configure(target_metadata=SQLModel.metadata, render_as_batch=True, **kwargs)


if context.is_offline_mode():
    _configure(url=database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()
else:
    engine = build_engine(database_url())
    try:
        with engine.connect() as connection:
            _configure(connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()
