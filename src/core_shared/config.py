"""Настройки, общие для API, планировщика и клиента календаря."""

from urllib.parse import quote_plus

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Общие настройки сервисов: метаданные, режим запуска, логирование и Sentry.

    Значения читаются из переменных окружения и файла .env (регистр имен не важен).
    """

    PROJECT_NAME: str = "Mechanism Tracker"
    API_VERSION: str = "0.1.0"

    DEVELOPMENT: bool = Field(default=False, description="Режим разработки/тестирования")

    # --- Логирование ---
    LOG_LEVEL: str = Field(default="INFO", description="Уровень логирования")
    LOG_TO_FILE: bool = Field(default=True, description="Дублировать логи в файлы logs/<сервис>_<дата>.log")
    LOG_JSON: bool = Field(default=False, description="Писать логи в JSON (для сборщиков логов)")

    # --- Sentry ---
    SENTRY_DSN: str | None = Field(default=None, description="Sentry DSN. Если не задан, мониторинг отключен.")
    SENTRY_TRACES_SAMPLE_RATE: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Доля трассируемых запросов. По умолчанию 0.1 в продакшене и 1.0 в разработке.",
    )

    @property
    def PRODUCTION(self) -> bool:
        return not self.DEVELOPMENT

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class DatabaseSettings(AppSettings):
    """Подключение к БД, общее для API, планировщика и миграций Alembic."""

    DB_NAME: str = Field(default="mechanism_tracker_db", description="Название базы данных")
    DB_USER: str = Field(default="mechanism_tracker_user", description="Имя пользователя базы данных")
    DB_PASSWORD: str = Field(..., description="Пароль пользователя базы данных")
    DB_HOST: str = Field(default="db", description="Имя хоста базы данных (название сервиса в Docker)")
    DB_PORT: int = Field(default=5432, description="Порт хоста базы данных")

    # Полный URL базы данных, переопределяет DB_* (например, SQLite в тестах)
    DATABASE_URL_OVERRIDE: str | None = Field(default=None, description="Явный URL базы данных")

    @computed_field(repr=False)
    def DATABASE_URL(self) -> str:
        """URL для асинхронного движка SQLAlchemy."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE

        # Спецсимволы в пользователе и пароле не должны ломать URL
        encoded_user = quote_plus(self.DB_USER)
        encoded_password = quote_plus(self.DB_PASSWORD)

        return f"postgresql+psycopg://{encoded_user}:{encoded_password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def SYNC_DATABASE_URL(self) -> str:
        """URL для синхронных миграций: aiosqlite заменяется встроенным драйвером sqlite."""
        return str(self.DATABASE_URL).replace("sqlite+aiosqlite", "sqlite")
