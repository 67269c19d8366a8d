import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from concierge.core.config import settings
from concierge.db.session import Base
import concierge.db.base  # <-- registers the models on Base.metadata

config = context.config

# An explicit sqlalchemy.url (tests, one-off runs) wins over application settings
explicit_url = config.get_main_option("sqlalchemy.url")
if not explicit_url:
    config.set_main_option("sqlalchemy.url", settings.async_db_uri)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,  # detect column type changes
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL without a live connection."""
    url = explicit_url or settings.sync_db_uri
    _configure(
        url=url.replace("+asyncpg", "").replace("+aiosqlite", ""),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    # SQLite can't ALTER most things in place
    _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
