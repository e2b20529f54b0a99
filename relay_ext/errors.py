"""Ошибки сервиса заказов."""


class RelayError(Exception):
    """Базовая ошибка сервиса."""


class InvalidOrderId(RelayError):
    def __init__(self, order_id):
        super().__init__(f"Неверный формат ID заказа: {order_id!r}")
        self.order_id = order_id


class InvalidStatus(RelayError):
    def __init__(self, status):
        super().__init__(f"Неверный статус: {status!r}")
        self.status = status


class OrderNotFound(RelayError):
    def __init__(self, order_id):
        super().__init__(f"Заказ {order_id} не найден")
        self.order_id = order_id


class ConfigError(RelayError, ValueError):
    """Переменную окружения не удалось разобрать."""

    def __init__(self, var_name: str, message: str):
        super().__init__(f"{var_name}: {message}")
        self.var_name = var_name
        self.message = message
