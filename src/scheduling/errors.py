"""Исключения движка расписания механизмов."""


class SchedulingError(Exception):
    """
    Базовое исключение движка расписания.

    Attributes:
        message: Сообщение об ошибке, пригодное для показа пользователю.
        error_type: Машиночитаемый тип ошибки.
    """

    default_error_type = "scheduling_error"

    def __init__(self, message: str, error_type: str | None = None):
        super().__init__(message)
        self.message = message
        self.error_type = error_type or self.default_error_type


class ValidationError(SchedulingError):
    """Некорректные входные данные (идентификатор, дата вне допустимого диапазона). Отклоняется до любых изменений."""

    default_error_type = "validation_error"


class ConflictError(SchedulingError):
    """Конфликт уникального ключа (повторное исключение для того же вхождения)."""

    default_error_type = "conflict"


class PersistenceUnavailable(SchedulingError):
    """Хранилище (или нужная таблица) недоступно."""

    default_error_type = "persistence_unavailable"


class PermissionDenied(SchedulingError):
    """У пользователя нет прав на действие."""

    default_error_type = "permission_denied"


class PreconditionNotMet(SchedulingError):
    """Не выполнено условие перехода (например, прогресс цели ниже 100%)."""

    default_error_type = "precondition_not_met"
