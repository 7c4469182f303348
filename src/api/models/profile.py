"""Модели SQLAlchemy для Profile (Участник программы) и Generation (Поток)."""

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.scheduling import Role

from .base import Base, value_enum

if TYPE_CHECKING:  # pragma: no cover
    from .goal import Goal


class Generation(Base):
    """
    Поток (набор участников, проходящих программу вместе).

    Attributes:
        id: Первичный ключ (унаследован от Base).
        name: Название потока.
        pl1_training_date: Дата первого тренинга (PL1).
        pl3_training_date: Дата третьего тренинга (PL3).
        is_active: Флаг активного потока.
    """

    __tablename__ = "generations"
    __repr_fields__ = ("name",)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    pl1_training_date: Mapped[date | None] = mapped_column(Date)
    pl3_training_date: Mapped[date | None] = mapped_column(Date)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)


class Profile(Base):
    """
    Участник программы.

    Attributes:
        id: Первичный ключ (унаследован от Base).
        name: Имя участника.
        email: Email (уникальный).
        role: Роль (lider, senior, master_senior, admin).
        generation_id: Поток участника.
        supervisor_id: Назначенный руководитель (senior) для лидера.
        is_active: Флаг, активен ли участник.
        goals: Цели участника.
    """

    __tablename__ = "profiles"
    __repr_fields__ = ("email", "role")

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    role: Mapped[Role] = mapped_column(
        value_enum(Role, "user_role_enum"),
        default=Role.LIDER,
        nullable=False,
    )
    generation_id: Mapped[UUID | None] = mapped_column(ForeignKey("generations.id", ondelete="SET NULL"), index=True)
    supervisor_id: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id", ondelete="SET NULL"), index=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Связи
    generation: Mapped["Generation | None"] = relationship(lazy="joined")
    goals: Mapped[list["Goal"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="Goal.user_id",
    )
