"""
Базовый репозиторий для работы с базой данных
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.orm_database import ORMDatabase
from app.domain.state_machines import StatusMachine, StatusTransition
from app.repositories.exceptions import EntityNotFoundError, StaleTransitionError
from app.utils.helpers import utc_now


logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Базовый класс для всех репозиториев

    Каждый вызов открывает собственную короткую транзакцию, поэтому
    изменения фиксируются построчно. Смена статуса всегда выполняется как
    блокировка строки (SELECT ... FOR UPDATE) и условный UPDATE по
    ожидаемому текущему статусу.
    """

    model: ClassVar[type]
    status_field: ClassVar[str] = "status"
    state_machine: ClassVar[type[StatusMachine]] = StatusMachine

    def __init__(self, db: ORMDatabase):
        """
        Инициализация репозитория

        Args:
            db: Подключенная ORM база данных
        """
        self.db = db

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    @asynccontextmanager
    async def transaction(self):
        """
        Контекстный менеджер для транзакций

        Yields:
            AsyncSession: Сессия с автоматическим commit/rollback
        """
        async with self.db.get_session() as session:
            yield session

    async def find_by_id(self, entity_id: int) -> T | None:
        """Получение записи по ID или None"""
        async with self.transaction() as session:
            return await session.get(self.model, entity_id)

    async def get_by_id(self, entity_id: int) -> T:
        """
        Получение записи по ID

        Raises:
            EntityNotFoundError: Если записи нет
        """
        entity = await self.find_by_id(entity_id)
        if entity is None:
            raise EntityNotFoundError(self.entity_name, entity_id)
        return entity

    async def touch(self, entity_id: int) -> None:
        """
        Обновление updated_at без смены статуса

        Фоновые задачи выбирают записи по updated_at: пропущенная из-за
        ошибки запись уходит в конец очереди и не блокирует остальные.
        """
        async with self.transaction() as session:
            await session.execute(
                update(self.model)
                .where(self.model.id == entity_id)
                .values(updated_at=utc_now())
                .execution_options(synchronize_session=False)
            )

    async def change_status(
        self, entity_id: int, transition: StatusTransition, **values: Any
    ) -> None:
        """
        Применение заранее запрошенного перехода статуса

        Args:
            entity_id: ID записи
            transition: Переход из state machine
            **values: Дополнительные поля для обновления в той же транзакции

        Raises:
            EntityNotFoundError: Если записи нет
            StaleTransitionError: Если запись уже не в статусе transition.from_status
        """
        async with self.transaction() as session:
            await self._lock_status(session, entity_id)
            await self._apply_transition(session, entity_id, transition, values)

    async def move_to(self, entity_id: int, to_status: str, **values: Any) -> StatusTransition:
        """
        Перевод записи в статус с проверкой по state machine

        Текущий статус читается под блокировкой строки, поэтому проверка
        перехода и запись атомарны относительно других процессов.

        Args:
            entity_id: ID записи
            to_status: Целевой статус
            **values: Дополнительные поля для обновления

        Returns:
            Примененный переход

        Raises:
            EntityNotFoundError: Если записи нет
            EqualStateError: Если запись уже в целевом статусе
            IllegalTransitionError: Если переход запрещен
            StaleTransitionError: Если проиграна гонка за строку
        """
        async with self.transaction() as session:
            current = await self._lock_status(session, entity_id)
            transition = self.state_machine.request_transition(current, to_status)
            await self._apply_transition(session, entity_id, transition, values)
        logger.debug(
            "%s #%s: %s → %s",
            self.entity_name,
            entity_id,
            transition.from_status,
            transition.to_status,
        )
        return transition

    async def _lock_status(self, session: AsyncSession, entity_id: int) -> str:
        """Блокировка строки и чтение текущего статуса"""
        status_column = getattr(self.model, self.status_field)
        stmt = select(status_column).where(self.model.id == entity_id).with_for_update()
        current = (await session.execute(stmt)).scalar_one_or_none()
        if current is None:
            raise EntityNotFoundError(self.entity_name, entity_id)
        return current

    async def _apply_transition(
        self,
        session: AsyncSession,
        entity_id: int,
        transition: StatusTransition,
        values: dict[str, Any],
    ) -> None:
        """Условный UPDATE ... WHERE status = <ожидаемый>"""
        status_column = getattr(self.model, self.status_field)
        stmt = (
            update(self.model)
            .where(self.model.id == entity_id, status_column == transition.from_status)
            .values(
                {
                    self.status_field: transition.to_status,
                    "updated_at": utc_now(),
                    "version": self.model.version + 1,
                    **values,
                }
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount == 0:
            raise StaleTransitionError(self.entity_name, entity_id, transition.from_status)
