"""
Alembic entry point.

The URL comes from ``DATABASE_URL`` (the application settings). The service
uses async drivers, while Alembic drives a plain synchronous engine, so the
driver part of the URL is swapped before connecting.
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import URL, make_url

from claude_chat.core.config import get_settings
from claude_chat.models import Base

_SYNC_DRIVER_BY_ASYNC = {
    "postgresql+asyncpg": "postgresql+psycopg",
    "sqlite+aiosqlite": "sqlite",
}

alembic_config = context.config
if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

target_metadata = Base.metadata


def sync_database_url() -> URL:
    url = make_url(get_settings().database_url)
    sync_driver = _SYNC_DRIVER_BY_ASYNC.get(url.drivername)
    return url.set(drivername=sync_driver) if sync_driver else url


def _configure(**options: object) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **options)


def migrate_offline() -> None:
    """Emit SQL to stdout instead of executing it."""

    _configure(
        url=sync_database_url().render_as_string(hide_password=False),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def migrate_online() -> None:
    engine = create_engine(sync_database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            # SQLite cannot ALTER most constraints in place.
            _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    migrate_offline()
else:
    migrate_online()
