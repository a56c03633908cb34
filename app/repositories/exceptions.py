"""
Исключения для работы с репозиториями
"""

from app.core.exceptions import BadRequestError, NotFoundError


class StaleTransitionError(BadRequestError):
    """
    Исключение при проигранной гонке за переход статуса

    Возникает когда условный UPDATE ... WHERE status = <ожидаемый>
    не затронул ни одной строки: запись успела перейти в другой статус
    между чтением и попыткой обновления.
    """

    def __init__(self, entity_type: str, entity_id: int, expected_status: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_status = expected_status
        super().__init__(
            f"{entity_type} #{entity_id} is no longer in status '{expected_status}' "
            "(modified by another process)"
        )


class EntityNotFoundError(NotFoundError):
    """
    Исключение при отсутствии записи
    """

    def __init__(self, entity_type: str, entity_id: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} #{entity_id} not found")


class NoStockError(BadRequestError):
    """
    Исключение при отсутствии свободных единиц товара
    """

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"No items on sale for product #{product_id}")


class ItemNotDeletableError(BadRequestError):
    """
    Исключение при удалении единицы товара, которая уже участвовала в продаже
    """

    def __init__(self, item_id: int, status: str):
        self.item_id = item_id
        self.status = status
        super().__init__(f"Item #{item_id} cannot be deleted (status '{status}' or has orders)")
