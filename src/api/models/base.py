"""Базовое определение моделей SQLAlchemy и общие миксины."""

from datetime import datetime
from enum import Enum
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, MetaData, func
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# Соглашение об именовании ограничений и индексов (совпадает с именами в миграциях)
# https://alembic.sqlalchemy.org/en/latest/naming.html
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata_obj = MetaData(naming_convention=convention)


def value_enum(enum_class: type[Enum], name: str) -> SqlEnum:
    """
    Тип ENUM, хранящий значения членов перечисления ("2x_week"), а не их имена.

    Args:
        enum_class: Перечисление Python.
        name: Имя типа в PostgreSQL.
    """
    return SqlEnum(enum_class, name=name, values_callable=lambda members: [member.value for member in members])


class TimestampMixin:
    """
    Поля created_at и updated_at.

    По updated_at клиент видит, когда перенос вхождения изменялся последний раз.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        comment="Время создания записи",
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        comment="Время последнего обновления записи",
        nullable=False,
    )


class MechanismDayRecordMixin:
    """
    Запись участника о конкретной дате механизма (перенос, отметка о выполнении).

    Записи удаляются вместе с механизмом или участником.
    """

    @declared_attr
    def mechanism_id(cls) -> Mapped[UUID]:
        return mapped_column(ForeignKey("mechanisms.id", ondelete="CASCADE"), nullable=False, index=True)

    @declared_attr
    def user_id(cls) -> Mapped[UUID]:
        return mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)


class Base(DeclarativeBase, TimestampMixin):
    """
    Базовый класс моделей: UUID первичный ключ, временные метки, соглашение об именовании.

    Attributes:
        __repr_fields__: Поля (кроме id), выводимые в __repr__.
    """

    metadata = metadata_obj

    __repr_fields__: ClassVar[tuple[str, ...]] = ()

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4, index=True)

    def __repr__(self) -> str:
        """Пример: <ScheduleException(id=..., original_date=datetime.date(2024, 1, 16))>"""
        fields = ", ".join(f"{name}={getattr(self, name, None)!r}" for name in ("id", *self.__repr_fields__))
        return f"<{self.__class__.__name__}({fields})>"
