"""Конфигурация планировщика."""

from pydantic import Field

from src.core_shared.config import AppSettings


class Settings(AppSettings):
    """
    Настройки планировщика. Подключение к БД берется из настроек API.
    """

    # --- Настройки, читаемые из .env ---

    # Час (UTC), в который пересчитывается сохраненный прогресс целей
    PROGRESS_REFRESH_HOUR: int = Field(default=3, ge=0, le=23, description="Час ежедневного пересчета прогресса")

    # Пересчитать прогресс сразу после запуска, не дожидаясь расписания
    PROGRESS_REFRESH_ON_STARTUP: bool = Field(default=False, description="Пересчет прогресса при запуске")


# Создаем глобальный экземпляр настроек
settings = Settings()
