"""Репозиторий для работы с моделью Goal."""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.logging import api_log as log
from src.api.models import Goal
from src.api.repositories import BaseRepository
from src.api.schemas import GoalSchemaCreate, GoalSchemaUpdate


class GoalRepository(BaseRepository[Goal, GoalSchemaCreate, GoalSchemaUpdate]):
    """
    Репозиторий для выполнения CRUD-операций с моделью Goal.

    Наследует общие методы от BaseRepository и содержит специфичные для Goal методы.
    """

    async def get_goals_for_user(
        self, db_session: AsyncSession, *, user_id: UUID, participation_id: UUID | None = None
    ) -> Sequence[Goal]:
        """
        Получает цели пользователя.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            user_id (UUID): ID владельца.
            participation_id (UUID | None): Если указан, возвращаются только цели этого участия.

        Returns:
            Sequence[Goal]: Список целей.
        """
        log.debug(f"Получение целей пользователя ID: {user_id} (participation_id={participation_id})")
        statement = select(self.model).where(self.model.user_id == user_id)

        if participation_id is not None:
            statement = statement.where(self.model.participation_id == participation_id)

        result = await db_session.execute(statement.order_by(self.model.created_at))
        return result.scalars().all()

    async def get_open_goals(self, db_session: AsyncSession) -> Sequence[Goal]:
        """
        Получает все незавершенные цели (для пересчета сохраненного прогресса).

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.

        Returns:
            Sequence[Goal]: Список незавершенных целей.
        """
        statement = select(self.model).where(self.model.completed.is_(False)).order_by(self.model.user_id)
        result = await db_session.execute(statement)
        goals = result.scalars().all()
        log.debug(f"Найдено {len(goals)} незавершенных целей.")
        return goals
