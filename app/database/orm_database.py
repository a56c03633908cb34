"""
SQLAlchemy ORM Database класс
"""

import logging
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import Config
from app.database.orm_models import Base


logger = logging.getLogger(__name__)


def _enable_immediate_transactions(engine: AsyncEngine) -> None:
    """
    Включение BEGIN IMMEDIATE для SQLite

    SQLite не поддерживает SELECT ... FOR UPDATE, поэтому транзакция сразу
    берет RESERVED-блокировку базы: конкурирующие писатели выстраиваются
    в очередь, а не получают SQLITE_BUSY при повышении блокировки.
    """
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Отключаем неявный BEGIN драйвера pysqlite
        dbapi_connection.isolation_level = None

    @event.listens_for(sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class ORMDatabase:
    """Класс для работы с базой данных через SQLAlchemy ORM"""

    def __init__(self, database_url: str | None = None):
        """
        Инициализация ORM Database

        Args:
            database_url: URL базы данных (SQLite или PostgreSQL)
        """
        self.database_url = database_url or self._get_database_url()
        self.engine: AsyncEngine | None = None
        self.session_factory: async_sessionmaker[AsyncSession] | None = None
        self._is_sqlite = self.database_url.startswith("sqlite")

    def _get_database_url(self) -> str:
        """Получение URL базы данных из конфигурации"""
        if Config.DATABASE_URL:
            return Config.DATABASE_URL

        # Fallback на SQLite
        return f"sqlite+aiosqlite:///{Config.DATABASE_PATH}"

    async def connect(self):
        """Подключение к базе данных"""
        logger.info("Инициализация подключения к БД...")
        logger.info(f"   Is SQLite: {self._is_sqlite}")

        if self._is_sqlite:
            self.engine = create_async_engine(
                self.database_url,
                echo=False,
                connect_args={"check_same_thread": False, "timeout": 30},
            )
            _enable_immediate_transactions(self.engine)
        else:
            self.engine = create_async_engine(
                self.database_url,
                echo=False,
                pool_pre_ping=True,  # Проверка соединения перед использованием
                pool_recycle=3600,  # Переподключение каждый час
            )

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Важно для async работы
        )

        logger.info("OK: Подключено к базе данных")
        logger.debug("Используйте 'alembic upgrade head' для применения миграций БД")

    async def init_db(self):
        """Создание таблиц без миграций (DEV_MODE и тесты)"""
        if not self.engine:
            raise RuntimeError("База данных не подключена")

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("OK: Схема БД создана")

    async def disconnect(self):
        """Отключение от базы данных"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Отключено от базы данных")

    @asynccontextmanager
    async def get_session(self):
        """
        Context manager для получения сессии

        Usage:
            async with db.get_session() as session:
                item = await session.get(Item, item_id)
                # Автоматический commit/rollback
        """
        if not self.session_factory:
            raise RuntimeError("База данных не подключена")

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
                logger.debug("OK: Транзакция успешно завершена (commit)")
            except Exception as e:
                await session.rollback()
                logger.debug(f"Транзакция отменена (rollback): {type(e).__name__}: {e}")
                raise
