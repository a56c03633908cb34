"""
Репозиторий для работы с пользователями
"""

import logging

from sqlalchemy import select

from app.database.orm_models import User
from app.repositories.base import BaseRepository


logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Репозиторий для работы с пользователями"""

    model = User

    async def get_by_telegram_id(self, telegram_id: int) -> User | None:
        """Получение пользователя по Telegram ID"""
        async with self.transaction() as session:
            stmt = select(User).where(User.telegram_id == telegram_id)
            return (await session.execute(stmt)).scalar_one_or_none()

    async def get_or_create(
        self,
        telegram_id: int,
        chat_id: int,
        username: str | None = None,
    ) -> User:
        """
        Получение или создание пользователя

        Args:
            telegram_id: Telegram ID
            chat_id: ID чата для уведомлений
            username: Username

        Returns:
            Объект User
        """
        async with self.transaction() as session:
            stmt = select(User).where(User.telegram_id == telegram_id)
            user = (await session.execute(stmt)).scalar_one_or_none()

            if user is None:
                user = User(telegram_id=telegram_id, chat_id=chat_id, username=username)
                session.add(user)
                await session.flush()
                logger.info(f"Зарегистрирован пользователь #{user.id} (telegram_id={telegram_id})")
            elif user.chat_id != chat_id or (username and user.username != username):
                # Обновляем данные при изменении
                user.chat_id = chat_id
                user.username = username or user.username

        return user
