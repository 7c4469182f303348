"""Эндпоинты прогресса целей и их завершения руководителем."""

from uuid import UUID

from fastapi import APIRouter, status

from src.api.core.dependencies import CurrentUser, DBSession, GoalSvc
from src.scheduling import GoalProgress

router = APIRouter(prefix="/goals", tags=["Goals"])


@router.get(
    "/{goal_id}/progress",
    response_model=GoalProgress,
    status_code=status.HTTP_200_OK,
    summary="Получение прогресса цели",
    description="Средний процент механизмов цели. Для завершенной цели процент всегда 100.",
)
async def get_goal_progress(
    db_session: DBSession,
    current_user: CurrentUser,
    goal_service: GoalSvc,
    goal_id: UUID,
) -> GoalProgress:
    return await goal_service.get_goal_progress(db_session, actor=current_user, goal_id=goal_id)


@router.post(
    "/{goal_id}/complete",
    response_model=GoalProgress,
    status_code=status.HTTP_200_OK,
    summary="Завершение цели руководителем",
    description=(
        "Отмечает цель выполненной. Требуется прогресс 100% (иначе 409) "
        "и роль руководителя владельца цели (иначе 403)."
    ),
)
async def complete_goal(
    db_session: DBSession,
    current_user: CurrentUser,
    goal_service: GoalSvc,
    goal_id: UUID,
) -> GoalProgress:
    """
    Завершает цель от имени текущего пользователя.

    Args:
        db_session: Асинхронная сессия базы данных.
        current_user: Аутентифицированный руководитель.
        goal_service: Сервис целей.
        goal_id: ID цели.

    Returns:
        GoalProgress: Прогресс цели после завершения.

    Raises:
        NotFoundException: Цель не найдена.
        PreconditionNotMet: Цель уже завершена или ее прогресс ниже 100%.
        PermissionDenied: Пользователь не руководит владельцем цели.
    """
    return await goal_service.complete_goal(db_session, actor=current_user, goal_id=goal_id)


@router.post(
    "/{goal_id}/reopen",
    response_model=GoalProgress,
    status_code=status.HTTP_200_OK,
    summary="Возврат цели в работу",
    description="Снимает отметку руководителя о выполнении. Доступно только руководителю владельца цели.",
)
async def reopen_goal(
    db_session: DBSession,
    current_user: CurrentUser,
    goal_service: GoalSvc,
    goal_id: UUID,
) -> GoalProgress:
    return await goal_service.reopen_goal(db_session, actor=current_user, goal_id=goal_id)
