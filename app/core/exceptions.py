"""
Базовые исключения магазина

Каждое исключение относится к одной из групп ошибок (group), по которой
вызывающий код и обработчики решают, как реагировать:

    bad_request        - запрос нельзя выполнить в текущем состоянии
    not_found          - сущность не найдена
    permission_denied  - нарушение владения
    internal           - сбой инфраструктуры или внешнего сервиса
"""


class ShopError(Exception):
    """Базовое исключение бизнес-логики"""

    group = "internal"


class BadRequestError(ShopError):
    """Операция недопустима в текущем состоянии"""

    group = "bad_request"


class NotFoundError(ShopError):
    """Сущность не найдена"""

    group = "not_found"


class ForbiddenError(ShopError):
    """Пользователь не владеет сущностью"""

    group = "permission_denied"

    def __init__(self, entity_type: str, entity_id: int, user_id: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.user_id = user_id
        super().__init__(f"User {user_id} is not the owner of {entity_type} #{entity_id}")


class InternalError(ShopError):
    """Внутренняя ошибка"""

    group = "internal"


class ProviderUnavailableError(InternalError):
    """Журнал транзакций платежного провайдера недоступен"""


class NotificationError(InternalError):
    """Не удалось доставить уведомление"""

    def __init__(self, recipient: int, reason: str = ""):
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Failed to notify {recipient}: {reason}")
