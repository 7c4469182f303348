"""Репозиторий для работы с моделью MechanismCompletion."""

from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.logging import api_log as log
from src.api.models import MechanismCompletion
from src.api.repositories import BaseRepository
from src.api.schemas import MechanismCompletionSchemaCreate


class MechanismCompletionRepository(
    BaseRepository[MechanismCompletion, MechanismCompletionSchemaCreate, MechanismCompletionSchemaCreate]
):
    """
    Репозиторий для выполнения CRUD-операций с отметками о выполнении механизмов.

    Ключ записи - (mechanism_id, user_id, completed_date), на уровне БД он уникален.
    """

    async def get_completions(
        self,
        db_session: AsyncSession,
        *,
        mechanism_ids: list[UUID],
        user_id: UUID,
        since_date: date | None = None,
    ) -> Sequence[MechanismCompletion]:
        """
        Получает отметки о выполнении набора механизмов, начиная с даты.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            mechanism_ids (list[UUID]): ID механизмов.
            user_id (UUID): ID пользователя.
            since_date (date | None): Нижняя граница дат (включительно), без верхней.

        Returns:
            Sequence[MechanismCompletion]: Список отметок, отсортированный по дате.
        """
        if not mechanism_ids:
            return []

        log.debug(f"Получение выполнений {len(mechanism_ids)} механизмов пользователя ID: {user_id} с {since_date}")
        statement = select(self.model).where(
            self.model.mechanism_id.in_(mechanism_ids),
            self.model.user_id == user_id,
        )

        if since_date is not None:
            statement = statement.where(self.model.completed_date >= since_date)

        result = await db_session.execute(statement.order_by(self.model.completed_date))
        return result.scalars().all()
