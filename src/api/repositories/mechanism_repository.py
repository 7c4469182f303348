"""Репозиторий для работы с моделью Mechanism."""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.logging import api_log as log
from src.api.models import Goal, Mechanism
from src.api.repositories import BaseRepository
from src.api.schemas import MechanismSchemaCreate, MechanismSchemaUpdate


class MechanismRepository(BaseRepository[Mechanism, MechanismSchemaCreate, MechanismSchemaUpdate]):
    """
    Репозиторий для выполнения CRUD-операций с моделью Mechanism.

    Цель механизма загружается вместе с ним (lazy="joined"), чтобы были доступны
    ее описание и категория.
    """

    async def get_mechanisms_for_user(
        self, db_session: AsyncSession, *, user_id: UUID, participation_id: UUID | None = None
    ) -> Sequence[Mechanism]:
        """
        Получает механизмы пользователя вместе с данными их целей.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            user_id (UUID): ID владельца.
            participation_id (UUID | None): Если указан, только механизмы целей этого участия.

        Returns:
            Sequence[Mechanism]: Список механизмов.
        """
        log.debug(f"Получение механизмов пользователя ID: {user_id} (participation_id={participation_id})")
        statement = select(self.model).where(self.model.user_id == user_id)

        if participation_id is not None:
            statement = statement.join(Goal, Goal.id == self.model.goal_id).where(
                Goal.participation_id == participation_id
            )

        result = await db_session.execute(statement.order_by(self.model.created_at))
        mechanisms = result.scalars().all()
        log.debug(f"Найдено {len(mechanisms)} механизмов пользователя ID: {user_id}.")
        return mechanisms

    async def get_mechanisms_for_goal(self, db_session: AsyncSession, *, goal_id: UUID) -> Sequence[Mechanism]:
        """
        Получает механизмы цели.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            goal_id (UUID): ID цели.

        Returns:
            Sequence[Mechanism]: Список механизмов.
        """
        statement = select(self.model).where(self.model.goal_id == goal_id).order_by(self.model.created_at)
        result = await db_session.execute(statement)
        return result.scalars().all()
