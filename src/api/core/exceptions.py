"""Кастомные исключения API и их обработчики."""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError, ProgrammingError

from src.scheduling.errors import (
    ConflictError,
    PermissionDenied,
    PersistenceUnavailable,
    PreconditionNotMet,
    SchedulingError,
    ValidationError,
)

from .logging import api_log as log


class AppException(Exception):
    """
    Базовое исключение приложения.

    Attributes:
        status_code: HTTP статус ответа.
        message: Сообщение об ошибке.
        error_type: Машиночитаемый тип ошибки.
        loc: Место возникновения ошибки (например, ["path", "goal_id"]).
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error_type: str = "internal_error"

    def __init__(self, message: str, error_type: str | None = None, loc: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.error_type = error_type or self.default_error_type
        self.loc = loc

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"message": self.message, "error_type": self.error_type}
        if self.loc:
            detail["loc"] = self.loc
        return detail


class BadRequestException(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_error_type = "bad_request"


class UnauthorizedException(AppException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_error_type = "unauthorized"


class ForbiddenException(AppException):
    status_code = status.HTTP_403_FORBIDDEN
    default_error_type = "forbidden"


class NotFoundException(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    default_error_type = "not_found"


class ConflictException(AppException):
    status_code = status.HTTP_409_CONFLICT
    default_error_type = "conflict"


class ServiceUnavailableException(AppException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_error_type = "service_unavailable"


# Соответствие ошибок движка расписания HTTP статусам
SCHEDULING_ERROR_STATUS: dict[type[SchedulingError], int] = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    PermissionDenied: status.HTTP_403_FORBIDDEN,
    PreconditionNotMet: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    PersistenceUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}

# Фрагменты сообщений драйверов об отсутствующей таблице (PostgreSQL и SQLite)
MISSING_TABLE_MARKERS = ("undefinedtable", "does not exist", "no such table")


def is_missing_table_error(exc: Exception) -> bool:
    """Проверяет, что ошибка БД вызвана отсутствием таблицы."""
    if not isinstance(exc, (ProgrammingError, OperationalError)):
        return False

    text = f"{type(getattr(exc, 'orig', None)).__name__} {exc}".lower()
    return any(marker in text for marker in MISSING_TABLE_MARKERS)


def _error_response(status_code: int, detail: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    log.info(f"{request.method} {request.url.path}: {exc.status_code} ({exc.error_type}) - {exc.message}")
    return _error_response(exc.status_code, exc.to_detail())


async def scheduling_exception_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    status_code = status.HTTP_400_BAD_REQUEST
    for error_class, error_status in SCHEDULING_ERROR_STATUS.items():
        if isinstance(exc, error_class):
            status_code = error_status
            break

    if isinstance(exc, PersistenceUnavailable):
        log.warning(f"{request.method} {request.url.path}: хранилище недоступно - {exc.message}")
    else:
        log.info(f"{request.method} {request.url.path}: {status_code} ({exc.error_type}) - {exc.message}")

    return _error_response(status_code, {"message": exc.message, "error_type": exc.error_type})


async def database_exception_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    if is_missing_table_error(exc):
        log.warning(f"{request.method} {request.url.path}: таблица хранилища не найдена - {exc.orig}")
        return _error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            {"message": "Хранилище расписания недоступно.", "error_type": "persistence_unavailable"},
        )

    log.opt(exception=exc).error(f"{request.method} {request.url.path}: ошибка базы данных")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"message": "Внутренняя ошибка базы данных.", "error_type": "database_error"},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Регистрирует обработчики кастомных исключений.

    Args:
        app (FastAPI): Экземпляр приложения FastAPI.
    """
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SchedulingError, scheduling_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DBAPIError, database_exception_handler)  # type: ignore[arg-type]
