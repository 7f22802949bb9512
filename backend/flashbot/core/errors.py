# backend/flashbot/core/errors.py


class FlashbotError(Exception):
    """Базовая ошибка приложения."""


class NotFound(FlashbotError):
    """Колода, карточка или пользователь отсутствует."""

    def __init__(self, entity: str):
        super().__init__(f"{entity} not found")
        self.entity = entity


class ValidationFailure(FlashbotError):
    """Не хватает обязательных данных перед созданием."""


class StoreFailure(FlashbotError):
    """Ошибка хранилища. Исходное исключение лежит в __cause__."""


class SessionInconsistency(FlashbotError):
    """Учебная операция без активного снимка карточек."""
