"""Модели SQLAlchemy для Mechanism (Механизм), его переносов и выполнений."""

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.scheduling import Frequency

from .base import Base, MechanismDayRecordMixin, value_enum

if TYPE_CHECKING:  # pragma: no cover
    from .goal import Goal


class Mechanism(Base):
    """
    Повторяющееся действие участника в рамках цели.

    Attributes:
        id: Первичный ключ (унаследован от Base).
        goal_id: Цель, к которой относится механизм.
        user_id: Владелец механизма.
        description: Описание действия.
        frequency: Частота выполнения (daily, 2x_week, ..., yearly).
        start_date: Начало механизма. Если None, используется начало окна потока.
        end_date: Окончание механизма. Если None, используется конец окна потока.
        goal: Связь с целью.
    """

    __tablename__ = "mechanisms"
    __repr_fields__ = ("frequency", "start_date", "end_date")

    goal_id: Mapped[UUID] = mapped_column(ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    frequency: Mapped[Frequency] = mapped_column(value_enum(Frequency, "mechanism_frequency_enum"), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)

    # Связи
    goal: Mapped["Goal"] = relationship(back_populates="mechanisms", lazy="joined")

    # Начало механизма не позже его окончания
    __table_args__ = (
        CheckConstraint(
            "start_date IS NULL OR end_date IS NULL OR start_date <= end_date",
            name="period_order",
        ),
    )

    @property
    def goal_description(self) -> str:
        return self.goal.description if self.goal else ""

    @property
    def goal_category(self) -> str:
        return self.goal.category if self.goal else ""


class ScheduleException(MechanismDayRecordMixin, Base):
    """
    Перенос одного вхождения механизма на другую дату.

    Attributes:
        mechanism_id: Механизм.
        user_id: Пользователь, перенесший вхождение.
        original_date: Дата вхождения по правилу повторения.
        moved_to_date: Новая (фактическая) дата.
    """

    __tablename__ = "mechanism_schedule_exceptions"
    __repr_fields__ = ("original_date", "moved_to_date")

    original_date: Mapped[date] = mapped_column(Date, nullable=False)
    moved_to_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Одна запись на вхождение, повторный перенос обновляет ее
    __table_args__ = (
        UniqueConstraint("mechanism_id", "user_id", "original_date", name="uq_schedule_exception_per_occurrence"),
    )


class MechanismCompletion(MechanismDayRecordMixin, Base):
    """
    Отметка о выполнении механизма в фактическую дату вхождения.

    Attributes:
        mechanism_id: Механизм.
        user_id: Пользователь.
        completed_date: Дата выполнения.
    """

    __tablename__ = "mechanism_completions"
    __repr_fields__ = ("completed_date",)

    completed_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("mechanism_id", "user_id", "completed_date", name="uq_mechanism_completion_per_day"),
    )
