"""Базовые схемы Pydantic и общие проверки полей."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """Общая конфигурация: схемы читаются из ORM-объектов, лишние поля игнорируются."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True, extra="ignore")


class MechanismDayRecordSchema(BaseSchema):
    """Ключ записи участника о дате механизма (перенос или отметка о выполнении)."""

    mechanism_id: UUID = Field(..., description="ID механизма")
    user_id: UUID = Field(..., description="ID пользователя")


def ensure_date_order(start: date | None, end: date | None, message: str) -> None:
    """
    Проверяет, что начало периода не позже окончания. Незаданные границы не проверяются.

    Raises:
        ValueError: start > end (pydantic превращает ее в ошибку валидации 422).
    """
    if start is not None and end is not None and start > end:
        raise ValueError(message)
