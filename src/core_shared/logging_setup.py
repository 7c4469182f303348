"""
Логирование сервисов через Loguru.

Все сервисы пишут в общий консольный обработчик, у каждого сервиса
свой файл логов. Логгер сервиса - это глобальный логгер Loguru с
привязанным `service_name`, поэтому модули API, планировщика и клиента
календаря можно импортировать в одном процессе, не ломая настройку друг друга.
"""

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger as global_loguru_logger
from pydantic import BaseModel, Field

from .config import AppSettings

if TYPE_CHECKING:
    from loguru import Logger, Record

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[service_name]}</cyan> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


class LogConfig(BaseModel):
    """Параметры обработчиков логов одного сервиса."""

    level: str = Field(default="INFO", description="Минимальный уровень записей")
    serialize: bool = Field(default=False, description="Писать записи в JSON")
    enable_file_logging: bool = Field(default=True, description="Писать записи сервиса в файл")
    log_dir: Path = Field(default=Path("logs"), description="Каталог файлов логов")
    rotation: str = Field(default="10 MB", description="Ротация файла по размеру")
    retention: str = Field(default="7 days", description="Время хранения файлов")

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "LogConfig":
        return cls(
            level=settings.LOG_LEVEL.upper(),
            serialize=settings.LOG_JSON,
            enable_file_logging=settings.LOG_TO_FILE,
        )


# ID обработчиков Loguru: "console" и по одному файлу на сервис
_handler_ids: dict[str, int] = {}


def _replace_handler(key: str, sink, **options) -> None:
    previous_id = _handler_ids.pop(key, None)
    if previous_id is not None:
        global_loguru_logger.remove(previous_id)
    _handler_ids[key] = global_loguru_logger.add(sink, **options)


def _configure_console(config: LogConfig) -> None:
    if not _handler_ids:
        # Стандартный обработчик Loguru (id 0) не знает про service_name
        global_loguru_logger.remove()
        global_loguru_logger.configure(extra={"service_name": "-"})

    _replace_handler(
        "console",
        sys.stderr,
        level=config.level,
        format=CONSOLE_FORMAT,
        colorize=not config.serialize,
        serialize=config.serialize,
    )


def _configure_file(service_name: str, config: LogConfig) -> None:
    key = f"file:{service_name}"

    if not config.enable_file_logging:
        previous_id = _handler_ids.pop(key, None)
        if previous_id is not None:
            global_loguru_logger.remove(previous_id)
        return

    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        global_loguru_logger.bind(service_name=service_name).warning(
            f"Не удалось создать каталог логов '{config.log_dir}': {exc}. Логи сервиса пишутся только в консоль."
        )
        return

    def only_this_service(record: "Record") -> bool:
        return record["extra"].get("service_name") == service_name

    _replace_handler(
        key,
        str(config.log_dir / f"{service_name.lower()}_{{time:YYYY-MM-DD}}.log"),
        level=config.level,
        format=FILE_FORMAT,
        filter=only_this_service,
        rotation=config.rotation,
        retention=config.retention,
        serialize=config.serialize,
        encoding="utf-8",
    )


def setup_logger(service_name: str, log_config: LogConfig | None = None) -> "Logger":
    """
    Настраивает обработчики Loguru для сервиса и возвращает его логгер.

    Повторный вызов заменяет консольный обработчик и файл этого сервиса,
    файлы других сервисов не затрагиваются.

    Args:
        service_name: Имя сервиса ("API", "SchedulerTasks", "CalendarClient", ...).
        log_config: Параметры логирования. По умолчанию `LogConfig()`.

    Returns:
        Логгер Loguru с привязанным service_name.
    """
    config = log_config or LogConfig()

    _configure_console(config)
    _configure_file(service_name, config)

    service_logger = global_loguru_logger.bind(service_name=service_name)
    service_logger.debug(f"Логгер сервиса настроен, уровень {config.level}")
    return service_logger


class InterceptHandler(logging.Handler):
    """Передает записи стандартного logging в Loguru."""

    def __init__(self, target_logger: "Logger"):
        super().__init__()
        self.target_logger = target_logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = self.target_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Кадр вызова вне модуля logging, чтобы в записи было исходное место
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        self.target_logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def intercept_standard_logging(
    target_logger: "Logger",
    level: int = logging.INFO,
    quiet_loggers: tuple[str, ...] = ("sqlalchemy.engine", "httpx", "apscheduler"),
) -> None:
    """
    Перенаправляет стандартный logging (SQLAlchemy, httpx, alembic, apscheduler) в Loguru.

    Args:
        target_logger: Логгер Loguru, в который пишутся перехваченные записи.
        level: Минимальный уровень перехватываемых записей.
        quiet_loggers: Логгеры, уровень которых поднимается до WARNING.
    """
    logging.basicConfig(handlers=[InterceptHandler(target_logger)], level=level, force=True)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["setup_logger", "LogConfig", "InterceptHandler", "intercept_standard_logging"]
