"""
Сервис для работы с пользователями (справочник покупателей)
"""

import logging

from app.database.orm_models import User
from app.repositories import UserRepository


logger = logging.getLogger(__name__)


class UserService:
    """
    Сервис для управления пользователями
    """

    def __init__(self, user_repo: UserRepository):
        """
        Инициализация сервиса

        Args:
            user_repo: Репозиторий пользователей
        """
        self.user_repo = user_repo

    async def register_telegram_user(
        self, telegram_id: int, chat_id: int, username: str | None = None
    ) -> User:
        """
        Получение или создание пользователя по Telegram аккаунту

        Args:
            telegram_id: Telegram ID
            chat_id: ID чата для уведомлений
            username: Username

        Returns:
            Объект User
        """
        return await self.user_repo.get_or_create(telegram_id, chat_id, username)

    async def get_user(self, user_id: int) -> User:
        """
        Получение пользователя для маршрутизации уведомлений

        Raises:
            EntityNotFoundError: Если пользователя нет
        """
        return await self.user_repo.get_by_id(user_id)
