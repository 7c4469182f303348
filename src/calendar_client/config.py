"""
Конфигурация клиента календаря механизмов.

Определяет настройки подключения к Backend API, загружаемые из переменных окружения (.env).
"""

from pydantic import Field, computed_field

from src.core_shared.config import AppSettings


class Settings(AppSettings):
    """Настройки клиента календаря: адрес API и таймаут запросов."""

    # --- Настройки подключения к Backend API ---
    # В Docker-сети hostname сервиса API - "api"
    # При локальном запуске вне докера может потребоваться http://localhost:8000
    API_BASE_URL: str = Field(default="http://api:8000", description="Базовый URL для подключения к Backend API")

    # Таймаут одного запроса к API в секундах
    REQUEST_TIMEOUT: float = Field(default=10.0, description="Таймаут запроса к API (секунды)")

    # Формируем URL к API
    @computed_field
    def API_V1_URL(self) -> str:
        """
        Возвращает полный URL к API v1.

        Пример: http://api:8000/api/v1
        """
        return f"{self.API_BASE_URL}/api/v1"


# Создаем глобальный экземпляр настроек
settings = Settings()
