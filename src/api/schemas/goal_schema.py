"""Схемы Pydantic для модели Goal."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from .base_schema import BaseSchema


class GoalSchemaBase(BaseSchema):
    """Базовая схема для цели."""

    category: str = Field(..., min_length=1, max_length=100, description="Категория цели")
    description: str = Field(..., min_length=1, description="Формулировка цели")
    participation_id: UUID | None = Field(None, description="ID участия в потоке")


class GoalSchemaCreate(GoalSchemaBase):
    """Схема для создания цели."""

    user_id: UUID = Field(..., description="ID владельца цели")


class GoalSchemaUpdate(BaseSchema):
    """
    Схема для обновления цели.
    Все поля опциональны.
    """

    description: str | None = Field(None, min_length=1, description="Новая формулировка")
    completed: bool | None = Field(None, description="Отметка о выполнении")
    completed_by_supervisor_id: UUID | None = Field(None, description="Кто из руководителей отметил выполнение")
    progress_percentage: int | None = Field(None, ge=0, le=100, description="Сохраненный процент прогресса")


class GoalSchemaRead(GoalSchemaBase):
    """Схема для чтения данных цели (ответа API)."""

    id: UUID = Field(..., description="ID цели")
    user_id: UUID = Field(..., description="ID владельца цели")
    completed: bool = Field(..., description="Цель отмечена как выполненная")
    completed_by_supervisor_id: UUID | None = Field(None, description="Кто из руководителей отметил выполнение")
    progress_percentage: int = Field(..., description="Сохраненный процент прогресса")
    created_at: datetime = Field(..., description="Время создания цели")
    updated_at: datetime = Field(..., description="Время последнего обновления цели")
