"""Сервис для работы с участниками и окнами их потоков."""

from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.config import settings
from src.api.core.exceptions import ForbiddenException, NotFoundException
from src.api.core.logging import api_log as log
from src.api.models import Profile
from src.api.repositories import GenerationRepository, ProfileRepository
from src.api.schemas import ProfileSchemaCreate, ProfileSchemaUpdate
from src.scheduling import ActorRecord, DateRange, can_access, generation_window

from .base_service import BaseService


class ProfileService(BaseService[Profile, ProfileRepository, ProfileSchemaCreate, ProfileSchemaUpdate]):
    """
    Сервис для управления участниками.

    Отвечает за проверку доступа к данным участника и за расчет
    окна выполнения механизмов по датам его потока.
    """

    def __init__(self, profile_repository: ProfileRepository, generation_repository: GenerationRepository):
        """
        Инициализирует сервис участников.

        Args:
            profile_repository (ProfileRepository): Репозиторий участников.
            generation_repository (GenerationRepository): Репозиторий потоков.
        """
        super().__init__(repository=profile_repository)
        self.generation_repository = generation_repository

    @staticmethod
    def to_actor(profile: Profile) -> ActorRecord:
        return ActorRecord.model_validate(profile)

    async def get_accessible_profile(self, db_session: AsyncSession, *, actor: Profile, user_id: UUID) -> Profile:
        """
        Получает участника, если текущий пользователь имеет доступ к его данным.

        Доступ есть к своим данным и к данным подопечных (для руководителей).

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            actor (Profile): Текущий пользователь.
            user_id (UUID): ID участника.

        Returns:
            Profile: Участник.

        Raises:
            NotFoundException: Участник не найден.
            ForbiddenException: Нет доступа к данным участника.
        """
        if actor.id == user_id:
            return actor

        owner = await self.get_by_id(db_session, obj_id=user_id)

        if not can_access(self.to_actor(actor), self.to_actor(owner)):
            log.warning(f"Пользователь ID {actor.id} пытается получить доступ к данным участника ID {user_id}.")
            raise ForbiddenException(
                message="У вас нет доступа к данным этого участника.",
                error_type="profile_forbidden",
            )

        return owner

    async def get_supervised_profiles(self, db_session: AsyncSession, *, supervisor: Profile) -> Sequence[Profile]:
        """Возвращает подопечных руководителя."""
        return await self.repository.get_supervised_profiles(db_session, supervisor_id=supervisor.id)

    async def get_evaluation_window(self, db_session: AsyncSession, *, profile: Profile) -> DateRange | None:
        """
        Рассчитывает окно выполнения механизмов участника по датам его потока.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            profile (Profile): Участник.

        Returns:
            DateRange | None: Окно [PL1 + 9 дней, PL3 - 7 дней] или None, если поток или даты не заданы.
        """
        if profile.generation_id is None:
            log.debug(f"У участника ID {profile.id} не указан поток.")
            return None

        generation = await self.generation_repository.get_by_id(db_session, obj_id=profile.generation_id)

        if generation is None or not generation.pl1_training_date or not generation.pl3_training_date:
            log.debug(f"Для потока участника ID {profile.id} не заданы даты тренингов.")
            return None

        return generation_window(
            generation.pl1_training_date,
            generation.pl3_training_date,
            start_offset_days=settings.MECHANISM_START_OFFSET_DAYS,
            end_offset_days=settings.MECHANISM_END_OFFSET_DAYS,
        )

    async def get_required_evaluation_window(self, db_session: AsyncSession, *, profile: Profile) -> DateRange:
        """
        То же, что get_evaluation_window, но отсутствие окна является ошибкой.

        Raises:
            NotFoundException: Окно потока не определено.
        """
        window = await self.get_evaluation_window(db_session, profile=profile)

        if window is None:
            raise NotFoundException(
                message="Для участника не определены даты потока.",
                error_type="generation_window_not_found",
            )

        return window
