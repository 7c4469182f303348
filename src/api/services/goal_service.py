"""Сервис для работы с целями: прогресс и завершение руководителем."""

from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.exceptions import BadRequestException
from src.api.core.logging import api_log as log
from src.api.models import Goal, Profile
from src.api.repositories import GoalRepository
from src.api.schemas import GoalSchemaCreate, GoalSchemaUpdate
from src.scheduling import (
    GoalProgress,
    GoalRecord,
    SchedulingError,
    calculate_goal_progress,
    complete_goal,
    reopen_goal,
)

from .base_service import BaseService
from .schedule_service import ScheduleService


def clamp_percentage(value: int) -> int:
    """Ограничивает процент диапазоном 0..100 для сохранения в БД."""
    return max(0, min(100, value))


class GoalService(BaseService[Goal, GoalRepository, GoalSchemaCreate, GoalSchemaUpdate]):
    """
    Сервис для управления целями.

    Прогресс цели - среднее процентов ее механизмов. Завершенная руководителем
    цель всегда показывает 100% до тех пор, пока ее не вернут в работу.
    """

    def __init__(self, goal_repository: GoalRepository, schedule_service: ScheduleService):
        """
        Инициализирует сервис целей.

        Args:
            goal_repository (GoalRepository): Репозиторий целей.
            schedule_service (ScheduleService): Сервис расписания (прогресс механизмов).
        """
        super().__init__(repository=goal_repository)
        self.schedule_service = schedule_service
        self.profile_service = schedule_service.profile_service

    async def get_accessible_goal(
        self, db_session: AsyncSession, *, actor: Profile, goal_id: UUID
    ) -> tuple[Goal, Profile]:
        """
        Получает цель и ее владельца с проверкой доступа.

        Raises:
            NotFoundException: Цель не найдена.
            ForbiddenException: Нет доступа к данным владельца цели.
        """
        goal = await self.get_by_id(db_session, obj_id=goal_id)
        owner = await self.profile_service.get_accessible_profile(db_session, actor=actor, user_id=goal.user_id)
        return goal, owner

    async def calculate_goal_progress(
        self, db_session: AsyncSession, *, goal: Goal, owner: Profile, today: date | None = None
    ) -> GoalProgress:
        """
        Рассчитывает прогресс цели по ее механизмам.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            goal (Goal): Цель.
            owner (Profile): Владелец цели.
            today (date | None): Текущая дата.

        Returns:
            GoalProgress: Прогресс цели.
        """
        mechanisms = await self.schedule_service.repository.get_mechanisms_for_goal(db_session, goal_id=goal.id)
        mechanisms_progress = await self.schedule_service.calculate_progress(
            db_session, owner=owner, mechanisms=mechanisms, today=today
        )
        return calculate_goal_progress(GoalRecord.model_validate(goal), mechanisms_progress)

    async def get_goal_progress(self, db_session: AsyncSession, *, actor: Profile, goal_id: UUID) -> GoalProgress:
        goal, owner = await self.get_accessible_goal(db_session, actor=actor, goal_id=goal_id)
        return await self.calculate_goal_progress(db_session, goal=goal, owner=owner)

    async def complete_goal(self, db_session: AsyncSession, *, actor: Profile, goal_id: UUID) -> GoalProgress:
        """
        Отмечает цель как выполненную от имени руководителя.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            actor (Profile): Руководитель, завершающий цель.
            goal_id (UUID): ID цели.

        Returns:
            GoalProgress: Прогресс цели после завершения (100%).

        Raises:
            PreconditionNotMet: Цель уже завершена или ее прогресс ниже 100%.
            PermissionDenied: Пользователь не руководит владельцем цели.
        """
        goal = await self.get_by_id(db_session, obj_id=goal_id)
        owner = await self.profile_service.get_by_id(db_session, obj_id=goal.user_id)

        progress = await self.calculate_goal_progress(db_session, goal=goal, owner=owner)

        completed = complete_goal(
            GoalRecord.model_validate(goal),
            progress.live_percentage,
            actor=self.profile_service.to_actor(actor),
            owner=self.profile_service.to_actor(owner),
        )

        goal = await self.update(
            db_session,
            db_obj=goal,
            obj_in=GoalSchemaUpdate(
                completed=True,
                completed_by_supervisor_id=completed.completed_by_supervisor_id,
                progress_percentage=100,
            ),
        )
        log.info(f"Цель ID {goal_id} отмечена выполненной руководителем ID {completed.completed_by_supervisor_id}.")

        return calculate_goal_progress(GoalRecord.model_validate(goal), progress.mechanisms)

    async def reopen_goal(self, db_session: AsyncSession, *, actor: Profile, goal_id: UUID) -> GoalProgress:
        """
        Возвращает завершенную цель в работу.

        Снимает отметку руководителя, сохраненный процент снова равен проценту по механизмам.

        Raises:
            PreconditionNotMet: Цель не завершена.
            PermissionDenied: Пользователь не руководит владельцем цели.
        """
        goal = await self.get_by_id(db_session, obj_id=goal_id)
        owner = await self.profile_service.get_by_id(db_session, obj_id=goal.user_id)

        reopen_goal(
            GoalRecord.model_validate(goal),
            actor=self.profile_service.to_actor(actor),
            owner=self.profile_service.to_actor(owner),
        )

        progress = await self.calculate_goal_progress(db_session, goal=goal, owner=owner)

        # Явно переданный None попадает в обновление (exclude_unset)
        goal = await self.update(
            db_session,
            db_obj=goal,
            obj_in=GoalSchemaUpdate(
                completed=False,
                completed_by_supervisor_id=None,
                progress_percentage=clamp_percentage(progress.live_percentage),
            ),
        )
        log.info(f"Цель ID {goal_id} возвращена в работу пользователем ID {actor.id}.")

        return calculate_goal_progress(GoalRecord.model_validate(goal), progress.mechanisms)

    async def refresh_progress_snapshots(self, db_session: AsyncSession, *, today: date | None = None) -> int:
        """
        Пересчитывает сохраненный процент прогресса незавершенных целей.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            today (date | None): Текущая дата.

        Returns:
            int: Количество обновленных целей.
        """
        goals = await self.repository.get_open_goals(db_session)
        updated = 0

        for goal in goals:
            owner = await self.profile_service.get_by_id(db_session, obj_id=goal.user_id)

            try:
                progress = await self.calculate_goal_progress(db_session, goal=goal, owner=owner, today=today)
            except (BadRequestException, SchedulingError) as exc:
                # Ошибка одной цели не прерывает пересчет остальных
                log.warning(f"Прогресс цели ID {goal.id} не рассчитан: {exc.message}")
                continue

            percentage = clamp_percentage(progress.live_percentage)

            if goal.progress_percentage != percentage:
                await self.repository.update(db_session, db_obj=goal, obj_in={"progress_percentage": percentage})
                updated += 1

        await self.commit(db_session, action="пересчет прогресса целей")

        log.info(f"Пересчитан прогресс {len(goals)} целей, обновлено: {updated}.")
        return updated
