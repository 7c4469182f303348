"""Схемы Pydantic для механизмов, их переносов и выполнений."""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field, model_validator

from src.scheduling import ActivityInstance, DateRange, Frequency

from .base_schema import BaseSchema, MechanismDayRecordSchema, ensure_date_order


class MechanismSchemaBase(BaseSchema):
    """Базовая схема для механизма."""

    description: str = Field(..., min_length=1, description="Описание действия")
    frequency: Frequency = Field(..., description="Частота выполнения")
    start_date: date | None = Field(None, description="Начало механизма (по умолчанию начало окна потока)")
    end_date: date | None = Field(None, description="Окончание механизма (по умолчанию конец окна потока)")

    @model_validator(mode="after")
    def check_period(self) -> "MechanismSchemaBase":
        ensure_date_order(self.start_date, self.end_date, "Дата начала механизма не может быть позже даты окончания.")
        return self


class MechanismSchemaCreate(MechanismSchemaBase):
    """Схема для создания механизма."""

    goal_id: UUID = Field(..., description="ID цели")
    user_id: UUID = Field(..., description="ID владельца")


class MechanismSchemaUpdate(BaseSchema):
    """
    Схема для обновления механизма.
    Все поля опциональны.
    """

    description: str | None = Field(None, min_length=1, description="Новое описание")
    frequency: Frequency | None = Field(None, description="Новая частота")
    start_date: date | None = Field(None, description="Новая дата начала")
    end_date: date | None = Field(None, description="Новая дата окончания")

    @model_validator(mode="after")
    def check_period(self) -> "MechanismSchemaUpdate":
        ensure_date_order(self.start_date, self.end_date, "Дата начала механизма не может быть позже даты окончания.")
        return self


class MechanismSchemaRead(MechanismSchemaBase):
    """Схема для чтения механизма вместе с данными его цели."""

    id: UUID = Field(..., description="ID механизма")
    goal_id: UUID = Field(..., description="ID цели")
    user_id: UUID = Field(..., description="ID владельца")
    goal_description: str = Field("", description="Формулировка цели")
    goal_category: str = Field("", description="Категория цели")


class ScheduleExceptionSchemaCreate(MechanismDayRecordSchema):
    """Схема для создания переноса вхождения."""

    original_date: date = Field(..., description="Дата вхождения по правилу")
    moved_to_date: date = Field(..., description="Новая дата вхождения")


class ScheduleExceptionSchemaUpdate(BaseSchema):
    """Схема для обновления переноса (меняется только новая дата)."""

    moved_to_date: date = Field(..., description="Новая дата вхождения")


class ScheduleExceptionSchemaUpsert(BaseSchema):
    """Тело запроса на перенос вхождения (пользователь берется из пути)."""

    mechanism_id: UUID = Field(..., description="ID механизма")
    original_date: date = Field(..., description="Дата вхождения по правилу")
    moved_to_date: date = Field(..., description="Новая дата вхождения")


class ScheduleExceptionSchemaRead(ScheduleExceptionSchemaCreate):
    """Схема для чтения переноса."""

    id: UUID = Field(..., description="ID записи о переносе")
    updated_at: datetime = Field(..., description="Время последнего изменения")


class MechanismCompletionSchemaCreate(MechanismDayRecordSchema):
    """Схема для отметки выполнения механизма."""

    completed_date: date = Field(..., description="Фактическая дата выполнения")


class MechanismCompletionSchemaRead(MechanismCompletionSchemaCreate):
    """Схема для чтения отметки о выполнении."""


class CalendarSchemaRead(BaseSchema):
    """Экземпляры активностей пользователя в диапазоне дат."""

    date_range: DateRange = Field(..., description="Запрошенный диапазон")
    window: DateRange | None = Field(None, description="Окно оценки механизмов (окно потока, если определено)")
    instances: list[ActivityInstance] = Field(default_factory=list, description="Экземпляры активностей")


class MechanismCompletionSchemaStatus(BaseSchema):
    """Результат установки или снятия отметки о выполнении."""

    mechanism_id: UUID = Field(..., description="ID механизма")
    completed_date: date = Field(..., description="Фактическая дата выполнения")
    completed: bool = Field(..., description="Отметка установлена")
    changed: bool = Field(..., description="Данные изменились (False для повторного запроса)")
