"""Эндпоинты прогресса механизмов."""

from uuid import UUID

from fastapi import APIRouter, status

from src.api.core.dependencies import CurrentUser, DBSession, ScheduleSvc
from src.scheduling import MechanismProgress

router = APIRouter(prefix="/mechanisms", tags=["Mechanisms"])


@router.get(
    "/{mechanism_id}/progress",
    response_model=MechanismProgress,
    status_code=status.HTTP_200_OK,
    summary="Получение прогресса механизма",
    description=(
        "Возвращает ожидаемое и фактическое число выполнений в окне потока, процент, текущую серию "
        "и прогноз в днях до завершения."
    ),
)
async def get_mechanism_progress(
    db_session: DBSession,
    current_user: CurrentUser,
    schedule_service: ScheduleSvc,
    mechanism_id: UUID,
) -> MechanismProgress:
    """
    Рассчитывает прогресс механизма на текущую дату.

    Args:
        db_session: Асинхронная сессия базы данных.
        current_user: Аутентифицированный пользователь.
        schedule_service: Сервис расписания.
        mechanism_id: ID механизма.

    Returns:
        MechanismProgress: Прогресс механизма.

    Raises:
        NotFoundException: Механизм не найден.
        ForbiddenException: Нет доступа к данным владельца механизма.
    """
    return await schedule_service.get_mechanism_progress(db_session, actor=current_user, mechanism_id=mechanism_id)
