# sstdesk/db/migrations/env.py
"""
Alembic працює синхронно через psycopg2, застосунок - через asyncpg.

URL: `alembic -x db_url=...` або settings.database_url. Порожні
autogenerate-ревізії не створюються.
"""
from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import URL, make_url

from sstdesk.core.config import settings
from sstdesk.db import models  # noqa: F401  (реєструє таблиці)
from sstdesk.db.base import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def sync_url(raw: str) -> URL:
    url = make_url(raw)
    if url.drivername in ("postgresql+asyncpg", "postgresql"):
        url = url.set(drivername="postgresql+psycopg2")
    return url


def _database_url() -> URL:
    return sync_url(context.get_x_argument(as_dictionary=True).get("db_url") or settings.database_url)


def _skip_empty_revision(context_, revision, directives) -> None:
    if getattr(config.cmd_opts, "autogenerate", False) and directives[0].upgrade_ops.is_empty():
        directives[:] = []


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        # кожна ревізія у своїй транзакції: збій не відкочує вже застосовані
        transaction_per_migration=True,
        process_revision_directives=_skip_empty_revision,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=_database_url().render_as_string(hide_password=False),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(_database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
