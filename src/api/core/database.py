"""Подключение к базе данных: движок, фабрика сессий и зависимость FastAPI."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from .config import settings
from .logging import api_log as log


def engine_options(database_url: str) -> dict[str, Any]:
    """
    Параметры движка для URL базы данных.

    PostgreSQL использует пул с проверкой соединений. Для SQLite в памяти
    нужно одно общее соединение, иначе каждая сессия видит пустую базу.
    """
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True, "pool_recycle": 3600}

    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


class Database:
    """
    Менеджер подключений к базе данных.

    Attributes:
        engine: Асинхронный движок SQLAlchemy (None до `connect`).
        session_factory: Фабрика сессий (None до `connect`).
    """

    # Таблицы, без которых переносы и отметки о выполнении недоступны
    SCHEDULE_TABLES = ("mechanisms", "mechanism_schedule_exceptions", "mechanism_completions")

    def __init__(self) -> None:
        self.engine: AsyncEngine | None = None
        self.session_factory: async_sessionmaker[AsyncSession] | None = None

    async def connect(self, **kwargs: Any) -> None:
        """
        Создает движок и фабрику сессий, проверяет подключение и схему.

        Args:
            **kwargs: Дополнительные параметры для create_async_engine.

        Raises:
            RuntimeError: База данных недоступна.
        """
        database_url = str(settings.DATABASE_URL)

        self.engine = create_async_engine(
            database_url,
            echo=settings.DEVELOPMENT,  # SQL в лог только в DEVELOPMENT
            **{**engine_options(database_url), **kwargs},
        )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        await self._verify_connection()
        log.success("Подключение к базе данных установлено.")

    async def disconnect(self) -> None:
        """Закрывает пул соединений."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            log.info("Подключение к базе данных закрыто.")

    async def _verify_connection(self) -> None:
        """
        Выполняет SELECT 1 и проверяет наличие таблиц расписания.

        Отсутствие таблиц не является ошибкой запуска: API работает,
        а запросы к этим таблицам получают 503 persistence_unavailable.

        Raises:
            RuntimeError: Подключение не удалось.
        """
        if not self.engine:
            raise RuntimeError("Движок БД не инициализирован.")

        try:
            async with self.engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
                missing = await self.missing_tables(connection)
        except Exception as exc:
            log.opt(exception=True).critical(f"Ошибка подключения к базе данных: {exc!r}")
            raise RuntimeError("Не удалось проверить подключение к БД.") from exc

        if missing:
            log.warning(
                f"В БД нет таблиц: {', '.join(missing)}. Примените миграции (alembic upgrade head), "
                "до этого переносы и отметки о выполнении недоступны."
            )

    async def missing_tables(self, connection: AsyncConnection) -> list[str]:
        """Возвращает таблицы расписания, которых нет в БД."""
        existing = await connection.run_sync(lambda sync_connection: set(inspect(sync_connection).get_table_names()))
        return [table for table in self.SCHEDULE_TABLES if table not in existing]

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Асинхронный контекстный менеджер сессии БД.

        Незафиксированные изменения откатываются при исключении.

        Raises:
            RuntimeError: Вызов до `db.connect()`.
        """
        if not self.session_factory:
            raise RuntimeError(
                "База данных не инициализирована. Вызовите `await db.connect()` перед использованием сессий."
            )

        session: AsyncSession = self.session_factory()

        try:
            yield session
        except Exception as exc:
            # Трейсбек только в DEVELOPMENT
            log.opt(exception=settings.DEVELOPMENT).error(f"Ошибка во время сессии БД, выполняется откат: {exc!r}")
            await session.rollback()
            raise
        finally:
            await session.close()


# Глобальный экземпляр менеджера БД
db = Database()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Зависимость FastAPI: сессия БД на время запроса."""
    async with db.session() as session:
        yield session
