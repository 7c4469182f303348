"""Конфигурация API."""

from pydantic import Field

from src.core_shared.config import DatabaseSettings


class Settings(DatabaseSettings):
    """
    Настройки API: адрес сервера, проверка JWT и правила окна механизмов.

    Подключение к БД, режим, логирование и Sentry наследуются от общих настроек.
    """

    # --- Статические настройки ---

    API_HOST: str = "0.0.0.0"  # noqa: S104 - 0.0.0.0 необходимо для Docker контейнера
    API_PORT: int = 8000
    JWT_ALGORITHM: str = "HS256"
    # Время жизни токенов, выпускаемых create_access_token
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Настройки, читаемые из .env ---

    JWT_SECRET_KEY: str = Field(..., description="Секретный ключ для проверки JWT")

    # Окно механизмов потока считается от дат тренингов
    MECHANISM_START_OFFSET_DAYS: int = Field(
        default=9,
        description="Через сколько дней после тренинга PL1 начинаются механизмы",
    )
    MECHANISM_END_OFFSET_DAYS: int = Field(
        default=7,
        description="За сколько дней до тренинга PL3 заканчиваются механизмы",
    )
    PREDICTION_LOOKBACK_DAYS: int = Field(
        default=28,
        description="Количество последних дней для оценки темпа выполнения",
    )


# Создаем глобальный экземпляр настроек
settings = Settings()  # type: ignore[call-arg]
