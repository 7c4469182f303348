"""Репозитории для работы с моделями Profile и Generation."""

from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.logging import api_log as log
from src.api.models import Generation, Profile
from src.api.repositories import BaseRepository
from src.api.schemas import (
    GenerationSchemaCreate,
    GenerationSchemaUpdate,
    ProfileSchemaCreate,
    ProfileSchemaUpdate,
)


class ProfileRepository(BaseRepository[Profile, ProfileSchemaCreate, ProfileSchemaUpdate]):
    """
    Репозиторий для выполнения CRUD-операций с моделью Profile.

    Наследует общие методы от BaseRepository и содержит специфичные для Profile методы.
    """

    async def get_supervised_profiles(self, db_session: AsyncSession, *, supervisor_id: UUID) -> Sequence[Profile]:
        """
        Получает активных участников, закрепленных за руководителем.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            supervisor_id (UUID): ID руководителя.

        Returns:
            Sequence[Profile]: Список подопечных.
        """
        log.debug(f"Получение подопечных руководителя ID: {supervisor_id}")
        return await self.get_all(
            db_session,
            self.model.supervisor_id == supervisor_id,
            self.model.is_active.is_(True),
            order_by=[self.model.name.asc()],
        )


class GenerationRepository(BaseRepository[Generation, GenerationSchemaCreate, GenerationSchemaUpdate]):
    """Репозиторий для выполнения CRUD-операций с моделью Generation."""
