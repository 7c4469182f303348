"""
Задачи для планировщика.

Содержит ежедневный пересчет сохраненного процента прогресса целей.
"""

from datetime import date

from src.api.core.database import db
from src.api.models import Generation, Goal, Mechanism, MechanismCompletion, Profile, ScheduleException
from src.api.repositories import (
    GenerationRepository,
    GoalRepository,
    MechanismCompletionRepository,
    MechanismRepository,
    ProfileRepository,
    ScheduleExceptionRepository,
)
from src.api.services import GoalService, ProfileService, ScheduleService
from src.core_shared.logging_setup import LogConfig, setup_logger
from src.scheduler.config import settings

# Настраиваем логгер
log = setup_logger("SchedulerTasks", LogConfig.from_settings(settings))


def build_goal_service() -> GoalService:
    """Собирает сервис целей со всеми зависимостями (вне контекста FastAPI)."""
    profile_service = ProfileService(
        profile_repository=ProfileRepository(Profile),
        generation_repository=GenerationRepository(Generation),
    )
    schedule_service = ScheduleService(
        mechanism_repository=MechanismRepository(Mechanism),
        exception_repository=ScheduleExceptionRepository(ScheduleException),
        completion_repository=MechanismCompletionRepository(MechanismCompletion),
        profile_service=profile_service,
    )
    return GoalService(goal_repository=GoalRepository(Goal), schedule_service=schedule_service)


async def refresh_goal_progress(today: date | None = None) -> int:
    """
    Периодическая задача пересчета сохраненного прогресса незавершенных целей.

    Алгоритм работы:
    1. Открывает сессию базы данных.
    2. Для каждой незавершенной цели рассчитывает прогресс по ее механизмам.
    3. Сохраняет процент (в диапазоне 0..100), если он изменился.

    Args:
        today (date | None): Дата расчета (по умолчанию сегодня).

    Returns:
        int: Количество целей с обновленным процентом (0 при ошибке).
    """
    log.info("🔄 Запуск пересчета прогресса целей...")

    goal_service = build_goal_service()

    async with db.session() as session:
        try:
            updated = await goal_service.refresh_progress_snapshots(session, today=today)

        except Exception as exc:
            # Ошибка задачи не должна останавливать планировщик
            log.opt(exception=exc).error(f"💥 Ошибка при пересчете прогресса целей: {exc!r}")
            return 0

    log.info(f"✅ Пересчет прогресса целей завершен, обновлено: {updated}.")
    return updated
