"""
Alembic environment configuration (async engine: aiosqlite / asyncpg)
"""
import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from app.core.config import Config
from app.database.orm_models import Base


config = context.config

# URL базы данных берется из конфигурации приложения, а не из alembic.ini
config.set_main_option(
    "sqlalchemy.url", Config.DATABASE_URL or f"sqlite+aiosqlite:///{Config.DATABASE_PATH}"
)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def include_name(name, type_, parent_names):
    """Фильтр для игнорирования некоторых объектов при автогенерации"""
    # Игнорируем временные таблицы Alembic
    if type_ == "table" and name.startswith("_alembic"):
        return False
    return True


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (SQL в stdout)."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,  # Важно для SQLite при ALTER TABLE
        include_name=include_name,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=True,  # Важно для SQLite при ALTER TABLE
        include_name=include_name,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Run migrations in 'online' mode через async engine."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
