"""Окружение Alembic для схемы механизмов, переносов и отметок о выполнении."""

from alembic import context
from pydantic import ValidationError
from sqlalchemy import engine_from_config, pool

from src.api.models import Base  # импорт пакета регистрирует все модели в metadata
from src.core_shared.config import AppSettings, DatabaseSettings
from src.core_shared.logging_setup import LogConfig, intercept_standard_logging, setup_logger

logger = setup_logger("Alembic", LogConfig.from_settings(AppSettings()))

# Вывод alembic и SQLAlchemy идет через Loguru
intercept_standard_logging(logger, quiet_loggers=("sqlalchemy.engine",))

config = context.config
target_metadata = Base.metadata


def resolve_database_url() -> str:
    """
    URL базы для миграций.

    sqlalchemy.url из alembic.ini (или заданный тестами через Config) имеет приоритет,
    иначе URL собирается из тех же переменных окружения, что и у API.

    Raises:
        ValidationError: Не задан DB_PASSWORD и нет DATABASE_URL_OVERRIDE.
    """
    configured_url = config.get_main_option("sqlalchemy.url")
    if configured_url:
        return configured_url

    try:
        return DatabaseSettings().SYNC_DATABASE_URL  # type: ignore[call-arg]
    except ValidationError as exc:
        logger.error(f"Не заданы параметры подключения к БД для миграций: {exc.errors()}")
        raise


database_url = resolve_database_url()


def run_migrations_offline() -> None:
    """Генерирует SQL миграций без подключения к БД (alembic upgrade --sql)."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Применяет миграции через подключение к БД."""
    engine_config = config.get_section(config.config_ini_section, {})
    engine_config["sqlalchemy.url"] = database_url

    connectable = engine_from_config(engine_config, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # ALTER TABLE в SQLite возможен только через batch-операции
            render_as_batch=connection.dialect.name == "sqlite",
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()

    logger.info(f"Миграции применены ({connection.dialect.name}).")


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
