"""Репозиторий для работы с моделью ScheduleException."""

from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.logging import api_log as log
from src.api.models import ScheduleException
from src.api.repositories import BaseRepository
from src.api.schemas import ScheduleExceptionSchemaCreate, ScheduleExceptionSchemaUpdate


class ScheduleExceptionRepository(
    BaseRepository[ScheduleException, ScheduleExceptionSchemaCreate, ScheduleExceptionSchemaUpdate]
):
    """
    Репозиторий для выполнения CRUD-операций с переносами вхождений.

    Ключ записи - (mechanism_id, user_id, original_date), на уровне БД он уникален.
    """

    async def get_for_user_in_range(
        self,
        db_session: AsyncSession,
        *,
        user_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        mechanism_id: UUID | None = None,
    ) -> Sequence[ScheduleException]:
        """
        Получает переносы пользователя, затрагивающие диапазон дат.

        Перенос затрагивает диапазон, если в нем лежит исходная или новая дата.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            user_id (UUID): ID пользователя.
            start_date (date | None): Начало диапазона (включительно).
            end_date (date | None): Конец диапазона (включительно).
            mechanism_id (UUID | None): Фильтр по механизму.

        Returns:
            Sequence[ScheduleException]: Список переносов.
        """
        log.debug(f"Получение переносов пользователя ID: {user_id} за период {start_date} - {end_date}")
        statement = select(self.model).where(self.model.user_id == user_id)

        if mechanism_id is not None:
            statement = statement.where(self.model.mechanism_id == mechanism_id)

        if start_date is not None and end_date is not None:
            statement = statement.where(
                or_(
                    self.model.original_date.between(start_date, end_date),
                    self.model.moved_to_date.between(start_date, end_date),
                )
            )

        result = await db_session.execute(statement.order_by(self.model.original_date))
        return result.scalars().all()
