"""Модель SQLAlchemy для Goal (Цель)."""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:  # pragma: no cover
    from .mechanism import Mechanism
    from .profile import Profile


class Goal(Base):
    """
    Цель участника в одной из категорий. Содержит 4-6 механизмов.

    Attributes:
        id: Первичный ключ (унаследован от Base).
        user_id: Владелец цели.
        participation_id: Участие в потоке, к которому относится цель (может быть None).
        category: Категория цели.
        description: Формулировка цели.
        completed: Цель отмечена руководителем как выполненная.
        completed_by_supervisor_id: Кто из руководителей отметил выполнение.
        progress_percentage: Последний сохраненный процент прогресса (0-100).
        mechanisms: Механизмы цели.
    """

    __tablename__ = "goals"
    __repr_fields__ = ("category", "completed")

    user_id: Mapped[UUID] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    participation_id: Mapped[UUID | None] = mapped_column(index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    completed: Mapped[bool] = mapped_column(default=False, nullable=False, index=True)
    completed_by_supervisor_id: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id", ondelete="SET NULL"))
    progress_percentage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Связи
    user: Mapped["Profile"] = relationship(back_populates="goals", foreign_keys=[user_id])
    mechanisms: Mapped[list["Mechanism"]] = relationship(
        back_populates="goal",
        cascade="all, delete-orphan",
        order_by="Mechanism.created_at",
    )
