"""Схемы Pydantic для моделей Profile и Generation."""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field

from src.scheduling import Role

from .base_schema import BaseSchema


class ProfileSchemaBase(BaseSchema):
    """Базовая схема для участника."""

    name: str = Field(..., min_length=1, max_length=255, description="Имя участника")
    email: str = Field(..., max_length=255, description="Email участника")
    role: Role = Field(Role.LIDER, description="Роль участника")
    generation_id: UUID | None = Field(None, description="ID потока участника")
    supervisor_id: UUID | None = Field(None, description="ID назначенного руководителя")


class ProfileSchemaCreate(ProfileSchemaBase):
    """Схема для создания участника."""


class ProfileSchemaUpdate(BaseSchema):
    """
    Схема для обновления участника.
    Все поля опциональны.
    """

    name: str | None = Field(None, min_length=1, max_length=255, description="Новое имя")
    role: Role | None = Field(None, description="Новая роль")
    generation_id: UUID | None = Field(None, description="Новый поток")
    supervisor_id: UUID | None = Field(None, description="Новый руководитель")
    is_active: bool | None = Field(None, description="Статус активности")


class ProfileSchemaRead(ProfileSchemaBase):
    """Схема для чтения данных участника (ответа API)."""

    id: UUID = Field(..., description="ID участника")
    is_active: bool = Field(..., description="Статус активности")
    created_at: datetime = Field(..., description="Время создания записи")


class GenerationSchemaCreate(BaseSchema):
    """Схема для создания потока."""

    name: str = Field(..., min_length=1, max_length=255, description="Название потока")
    pl1_training_date: date | None = Field(None, description="Дата тренинга PL1")
    pl3_training_date: date | None = Field(None, description="Дата тренинга PL3")


class GenerationSchemaUpdate(BaseSchema):
    """Схема для обновления потока."""

    name: str | None = Field(None, min_length=1, max_length=255, description="Новое название")
    pl1_training_date: date | None = Field(None, description="Новая дата тренинга PL1")
    pl3_training_date: date | None = Field(None, description="Новая дата тренинга PL3")
    is_active: bool | None = Field(None, description="Статус активности потока")


class GenerationWindowSchemaRead(BaseSchema):
    """Окно выполнения механизмов пользователя по датам его потока."""

    generation_id: UUID | None = Field(None, description="ID потока")
    mechanisms_start: date = Field(..., description="Первая дата выполнения механизмов")
    mechanisms_end: date = Field(..., description="Последняя дата выполнения механизмов")
