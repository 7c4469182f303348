"""Записи, с которыми работает движок расписания."""

from datetime import date, timedelta
from enum import Enum
from typing import Iterator
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .frequency import Frequency


class Record(BaseModel):
    """Базовая неизменяемая запись движка."""

    model_config = ConfigDict(frozen=True, from_attributes=True, extra="ignore")


class DateRange(Record):
    """Диапазон дат, обе границы включительно."""

    start: date = Field(..., description="Первая дата диапазона")
    end: date = Field(..., description="Последняя дата диапазона")

    @property
    def is_empty(self) -> bool:
        return self.end < self.start

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    def days(self) -> Iterator[date]:
        """Итерирует по всем датам диапазона."""
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def intersect(self, other: "DateRange") -> "DateRange":
        """
        Возвращает пересечение двух диапазонов.

        Если диапазоны не пересекаются, результат пустой (end < start).
        """
        return DateRange(start=max(self.start, other.start), end=min(self.end, other.end))


class MechanismRecord(Record):
    """Механизм: повторяющееся действие пользователя в рамках цели."""

    id: UUID
    goal_id: UUID
    user_id: UUID
    description: str = ""
    frequency: Frequency
    start_date: date | None = None
    end_date: date | None = None
    goal_description: str = ""
    goal_category: str = ""

    @model_validator(mode="after")
    def check_period(self) -> "MechanismRecord":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date не может быть позже end_date")
        return self

    def effective_period(self, window: DateRange) -> DateRange:
        """
        Эффективный период механизма.

        Пустые границы механизма заменяются границами окна оценки.
        """
        return DateRange(start=self.start_date or window.start, end=self.end_date or window.end)


class ScheduleExceptionRecord(Record):
    """Перенос одного вхождения механизма на другую дату."""

    mechanism_id: UUID
    user_id: UUID
    original_date: date
    moved_to_date: date


class CompletionRecord(Record):
    """Отметка о выполнении механизма в конкретную (фактическую) дату."""

    mechanism_id: UUID
    user_id: UUID
    completed_date: date


class GoalRecord(Record):
    """Цель пользователя (только поля, нужные для прогресса и завершения)."""

    id: UUID
    user_id: UUID
    description: str = ""
    category: str = ""
    completed: bool = False
    completed_by_supervisor_id: UUID | None = None


class Role(str, Enum):
    """Роли участников программы."""

    LIDER = "lider"
    SENIOR = "senior"
    MASTER_SENIOR = "master_senior"
    ADMIN = "admin"


class ActorRecord(Record):
    """Пользователь, выполняющий действие, с его ролью."""

    id: UUID
    role: Role
    supervisor_id: UUID | None = None
