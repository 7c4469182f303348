"""Основной файл приложения FastAPI для сервиса расписания и прогресса механизмов.

Отвечает за:
- Создание и конфигурацию экземпляра FastAPI.
- Подключение к БД на время жизни приложения.
- Регистрацию роутеров и обработчиков исключений.
- Health check с проверкой БД и таблиц расписания.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Response, status
from sqlalchemy import text

from src.api.core.config import settings
from src.api.core.database import db
from src.api.core.dependencies import DBSession
from src.api.core.exceptions import setup_exception_handlers
from src.api.core.logging import api_log as log
from src.api.routes import api_router
from src.core_shared.logging_setup import intercept_standard_logging
from src.core_shared.sentry_sdk_setup import setup_sentry

setup_sentry(settings, service_name="API")

# Логи SQLAlchemy, uvicorn и httpx пишем через Loguru
intercept_standard_logging(log)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:  # pragma: no cover
    """
    Подключает БД при старте приложения и отключает при остановке.

    Ошибка подключения останавливает запуск: приложение без БД не стартует.
    """
    log.info(f"Запуск '{settings.PROJECT_NAME}' (DEVELOPMENT={settings.DEVELOPMENT})...")
    try:
        await db.connect()
        yield
    except Exception as exc:
        log.opt(exception=True).critical(f"Критическая ошибка при старте приложения: {exc!r}")
        raise
    finally:
        await db.disconnect()
        log.info("Приложение остановлено.")


def create_app() -> FastAPI:
    """
    Создает и конфигурирует экземпляр приложения FastAPI.

    Все эндпоинты API доступны под префиксом /api/v1.

    Returns:
        FastAPI: Сконфигурированный экземпляр приложения.
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.API_VERSION,
        debug=settings.DEVELOPMENT,
        lifespan=lifespan,
        description="API расписания механизмов, переносов, отметок о выполнении и прогресса целей",
    )

    setup_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    log.info(f"Приложение '{settings.PROJECT_NAME} {settings.API_VERSION}' сконфигурировано.")
    return app


app = create_app()


@app.get(
    "/healthcheck",
    tags=["Health Check"],
    summary="Проверка работоспособности сервиса и его зависимостей",
    description=(
        "Проверяет доступ к базе данных (503, если БД недоступна) и наличие таблиц расписания. "
        "Без таблиц расписания сервис работает в режиме degraded: переносы и отметки отвечают 503."
    ),
)
async def health_check(response: Response, db_session: DBSession) -> dict[str, Any]:
    """
    Эндпоинт для проверки работоспособности сервиса.

    Returns:
        dict: Статус API, БД и список отсутствующих таблиц расписания.
    """
    missing_tables: list[str] = []

    try:
        connection = await db_session.connection()
        await connection.execute(text("SELECT 1"))
        missing_tables = await db.missing_tables(connection)
        is_db_ok = True
    except Exception:
        log.opt(exception=True).debug("Проверка БД в health check завершилась ошибкой.")
        is_db_ok = False

    if not is_db_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        log.warning("Health check провален: нет подключения к базе данных.")

    return {
        "api_status": "degraded" if missing_tables or not is_db_ok else "ok",
        "dependencies": {
            "database": "ok" if is_db_ok else "error",
            "schedule_tables": "missing" if missing_tables else "ok",
        },
        "missing_tables": missing_tables,
    }
